import base64
import io
import json
from datetime import datetime, timedelta, timezone

import pytest

from cukefmt.cucumber import cucumber_formatter_func, make_cuke_id
from cukefmt.feature import Feature
from cukefmt.messages import (
    Comment,
    DocString,
    Examples,
    FeatureChild,
    GherkinDocument,
    GherkinFeature,
    Location,
    Pickle,
    PickleDocString,
    PickleStep,
    PickleStepArgument,
    PickleTable,
    PickleTableCell,
    PickleTableRow,
    Scenario,
    Step,
    TableRow,
    Tag,
)
from cukefmt.results import (
    PickleAttachment,
    PickleResult,
    PickleStepResult,
    StepResultStatus,
    TestRunStarted,
)
from cukefmt.stepdef import StepDefinition
from cukefmt.storage import Storage

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
S = StepResultStatus
URI = "eat.feature"


def _handler():
    return None


def _storage(feature_name="Eat Godogs", plain_result=None, plain_arg=None):
    plain = Scenario(
        name="Plain One",
        keyword="Scenario",
        id="sc1",
        location=Location(line=5),
        tags=[Tag(name="@sc", location=Location(line=4))],
        steps=[
            Step(
                text="there are godogs",
                keyword="Given ",
                id="a1",
                location=Location(line=6),
                doc_string=DocString(content="x", location=Location(line=7)),
            )
        ],
    )
    outline = Scenario(
        name="Outline",
        keyword="Scenario Outline",
        id="sc2",
        location=Location(line=8),
        steps=[Step(text="eat <n>", keyword="When ", id="a2", location=Location(line=9))],
        examples=[
            Examples(
                name="Some Examples",
                tags=[Tag(name="@ex", location=Location(line=10))],
                table_header=TableRow(id="h"),
                table_body=[
                    TableRow(id="r1", location=Location(line=13)),
                    TableRow(id="r2", location=Location(line=14)),
                ],
            )
        ],
    )
    doc = GherkinDocument(
        uri=URI,
        feature=GherkinFeature(
            name=feature_name,
            keyword="Feature",
            description="desc",
            location=Location(line=2),
            tags=[Tag(name="@feat", location=Location(line=1))],
            children=[FeatureChild(scenario=plain), FeatureChild(scenario=outline)],
        ),
        comments=[Comment(text="  # hello ", location=Location(line=1))],
    )
    pickles = [
        Pickle(
            id="1",
            uri=URI,
            name="Plain One",
            ast_node_ids=["sc1"],
            steps=[PickleStep(text="there are godogs", id="11", ast_node_ids=["a1"], argument=plain_arg)],
        ),
        Pickle(
            id="2",
            uri=URI,
            name="Outline",
            ast_node_ids=["sc2", "r1"],
            steps=[PickleStep(text="eat 1", id="21", ast_node_ids=["a2"])],
        ),
        Pickle(
            id="3",
            uri=URI,
            name="Outline",
            ast_node_ids=["sc2", "r2"],
            steps=[PickleStep(text="eat 2", id="31", ast_node_ids=["a2"])],
        ),
    ]
    storage = Storage()
    storage.add_feature(Feature(doc, pickles))
    storage.set_test_run_started(TestRunStarted(T0))
    for p in pickles:
        storage.add_pickle_result(PickleResult(p.id, T0))
    storage.add_pickle_step_result(
        plain_result
        or PickleStepResult(
            S.PASSED,
            T0,
            pickle_id="1",
            pickle_step_id="11",
            attachments=[PickleAttachment(name="note", mime_type="text/plain", data=b"TheData1")],
        )
    )
    storage.add_pickle_step_result(
        PickleStepResult(S.FAILED, T0, err=ValueError("bad"), pickle_id="2", pickle_step_id="21")
    )
    storage.add_pickle_step_result(PickleStepResult(S.SKIPPED, T0, pickle_id="3", pickle_step_id="31"))
    return storage


def _render(storage):
    out = io.StringIO()
    fmt = cucumber_formatter_func("suite", out)
    fmt.set_storage(storage)
    fmt.summary()
    return out.getvalue()


def test_make_cuke_id():
    assert make_cuke_id("Eat Godogs") == "eat-godogs"
    assert make_cuke_id("") == ""


def test_feature_fields():
    (feature,) = json.loads(_render(_storage()))
    assert list(feature) == [
        "uri", "id", "keyword", "name", "description", "line", "comments", "tags", "elements",
    ]
    assert feature["uri"] == URI
    assert feature["id"] == make_cuke_id("Eat Godogs")
    assert feature["comments"] == [{"value": "# hello", "line": 1}]
    assert feature["tags"] == [{"name": "@feat", "line": 1}]


def test_element_ids_lines_and_tags():
    (feature,) = json.loads(_render(_storage()))
    plain, first, second = feature["elements"]
    prefix = make_cuke_id("Eat Godogs") + ";"
    assert plain["id"] == prefix + make_cuke_id("Plain One")
    outline_prefix = prefix + make_cuke_id("Outline") + ";" + make_cuke_id("Some Examples") + ";"
    assert first["id"] == outline_prefix + "2"
    assert second["id"] == outline_prefix + "3"
    assert (plain["line"], first["line"], second["line"]) == (5, 13, 14)
    assert [t["name"] for t in plain["tags"]] == ["@feat", "@sc"]
    assert [t["name"] for t in first["tags"]] == ["@feat", "@ex"]
    assert plain["type"] == "scenario"


def test_step_results_and_durations():
    (feature,) = json.loads(_render(_storage()))
    plain, first, second = feature["elements"]
    passed_step = plain["steps"][0]
    assert passed_step["result"] == {"status": "passed", "duration": 0}
    assert passed_step["match"] == {"location": ""}
    assert first["steps"][0]["result"] == {"status": "failed", "error_message": "bad", "duration": 0}
    assert second["steps"][0]["result"] == {"status": "skipped"}
    assert second["steps"][0]["keyword"] == "When "
    assert second["steps"][0]["line"] == 9


def test_embeddings_are_base64():
    (feature,) = json.loads(_render(_storage()))
    (embedding,) = feature["elements"][0]["steps"][0]["embeddings"]
    assert embedding["name"] == "note"
    assert embedding["mime_type"] == "text/plain"
    assert base64.b64decode(embedding["data"]) == b"TheData1"
    assert "embeddings" not in feature["elements"][1]["steps"][0]


def test_duration_measured_from_pickle_start():
    result = PickleStepResult(
        S.PASSED, T0 + timedelta(seconds=1), pickle_id="1", pickle_step_id="11"
    )
    (feature,) = json.loads(_render(_storage(plain_result=result)))
    assert feature["elements"][0]["steps"][0]["result"]["duration"] == 1_000_000_000


def test_undefined_step_matches_feature_location():
    result = PickleStepResult(S.UNDEFINED, T0, pickle_id="1", pickle_step_id="11")
    (feature,) = json.loads(_render(_storage(plain_result=result)))
    step = feature["elements"][0]["steps"][0]
    assert step["match"]["location"] == f"{URI}:6"
    assert "duration" not in step["result"]


def test_definition_location():
    definition = StepDefinition(handler=_handler)
    result = PickleStepResult(S.PASSED, T0, pickle_id="1", pickle_step_id="11", definition=definition)
    (feature,) = json.loads(_render(_storage(plain_result=result)))
    location = feature["elements"][0]["steps"][0]["match"]["location"]
    assert location.startswith("test_cucumber.py:")
    assert int(location.split(":")[1]) > 0


def test_doc_string_and_rows():
    arg = PickleStepArgument(
        doc_string=PickleDocString(content="hello", media_type=" json "),
        data_table=PickleTable(rows=[PickleTableRow(cells=[PickleTableCell("a"), PickleTableCell("b")])]),
    )
    (feature,) = json.loads(_render(_storage(plain_arg=arg)))
    step = feature["elements"][0]["steps"][0]
    assert step["doc_string"] == {"value": "hello", "content_type": "json", "line": 7}
    assert step["rows"] == [{"cells": ["a", "b"]}]
    assert list(step)[:5] == ["keyword", "name", "line", "doc_string", "match"]


def test_html_characters_escaped():
    text = _render(_storage(feature_name="<b> & co"))
    assert "\\u003cb\\u003e \\u0026 co" in text
    assert json.loads(text)[0]["name"] == "<b> & co"
    assert text.endswith("]\n")


def test_empty_run_renders_empty_list():
    storage = Storage()
    storage.set_test_run_started(TestRunStarted(T0))
    assert _render(storage) == "[]\n"


def test_missing_pickle_result_raises():
    storage = _storage()
    storage._pickle_results.clear()
    fmt = cucumber_formatter_func("suite", io.StringIO())
    fmt.set_storage(storage)
    with pytest.raises(KeyError):
        fmt.build_features(storage.features())