"""A formatter that renders the run as Cucumber JSON."""

from __future__ import annotations

import base64
import json
from datetime import timedelta
from typing import Any, TextIO

from .base import Base, definition_id
from .feature import Feature
from .messages import Pickle
from .results import PickleStepResult, StepResultStatus

_NO_DURATION = (
    StepResultStatus.UNDEFINED,
    StepResultStatus.PENDING,
    StepResultStatus.SKIPPED,
    StepResultStatus.AMBIGUOUS,
)
_MATCH_AT_STEP = (
    StepResultStatus.UNDEFINED,
    StepResultStatus.PENDING,
    StepResultStatus.AMBIGUOUS,
)

_JSON_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def make_cuke_id(name: str) -> str:
    """Lower-case *name* and replace spaces with dashes."""
    return name.lower().replace(" ", "-")


def _dumps(data: Any) -> str:
    text = json.dumps(data, indent=4, ensure_ascii=False)
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def _tag(tag) -> dict[str, Any]:
    return {"name": tag.name, "line": tag.location.line}


def _drop_empty(data: dict[str, Any], *keys: str) -> dict[str, Any]:
    for key in keys:
        if not data.get(key):
            data.pop(key, None)
    return data


def _nanoseconds(delta: timedelta) -> int:
    return (delta // timedelta(microseconds=1)) * 1000


class Cuke(Base):
    """Renders test results as Cucumber JSON."""

    def summary(self) -> None:
        features = self.build_features(self.storage.features())
        self.out.write(_dumps(features) + "\n")

    def build_features(self, features: list[Feature]) -> list[dict[str, Any]]:
        """Build the JSON structure for *features*, ordered by feature name."""
        result = []
        for feature in sorted(features, key=lambda f: f.feature.name):
            cuke_feature = self._build_feature(feature)
            pickles = sorted(self.storage.pickles(feature.uri), key=lambda p: int(p.id))
            elements = []
            for element in self._build_elements(pickles):
                element["id"] = cuke_feature["id"] + ";" + make_cuke_id(element["name"]) + element["id"]
                element["tags"] = cuke_feature["tags"] + element["tags"]
                elements.append(_drop_empty(element, "tags", "steps"))
            cuke_feature["elements"] = elements
            result.append(_drop_empty(cuke_feature, "comments", "tags", "elements"))
        return result

    @staticmethod
    def _build_feature(feature: Feature) -> dict[str, Any]:
        gherkin = feature.feature
        return {
            "uri": feature.uri,
            "id": make_cuke_id(gherkin.name),
            "keyword": gherkin.keyword,
            "name": gherkin.name,
            "description": gherkin.description,
            "line": gherkin.location.line,
            "comments": [
                {"value": c.text.strip(), "line": c.location.line} for c in feature.comments
            ],
            "tags": [_tag(t) for t in gherkin.tags],
            "elements": [],
        }

    def _build_elements(self, pickles: list[Pickle]) -> list[dict[str, Any]]:
        storage = self.storage
        elements = []
        for pickle in pickles:
            pickle_result = storage.pickle_result(pickle.id)
            step_results = sorted(
                storage.pickle_step_results_by_pickle_id(pickle.id),
                key=lambda r: int(r.pickle_step_id),
            )
            element = self._build_element(pickle)

            step_started_at = pickle_result.started_at
            for step_result in step_results:
                duration: int | None = _nanoseconds(step_result.finished_at - step_started_at)
                step_started_at = step_result.finished_at
                if step_result.status in _NO_DURATION:
                    duration = None
                element["steps"].append(self._build_step(pickle, step_result, duration))

            elements.append(element)
        return elements

    def _build_element(self, pickle: Pickle) -> dict[str, Any]:
        feature = self.storage.feature(pickle.uri)
        scenario = feature.find_scenario(pickle.ast_node_ids[0])

        element = {
            "id": "",
            "keyword": scenario.keyword,
            "name": pickle.name,
            "description": scenario.description,
            "line": scenario.location.line,
            "type": "scenario",
            "tags": [_tag(t) for t in scenario.tags],
            "steps": [],
        }
        if len(pickle.ast_node_ids) == 1:
            return element

        row_id = pickle.ast_node_ids[1]
        example, _ = feature.find_example(row_id)
        element["tags"].extend(_tag(t) for t in example.tags)

        for examples in scenario.examples:
            for idx, row in enumerate(examples.table_body):
                if row.id == row_id:
                    element["id"] += f";{make_cuke_id(examples.name)};{idx + 2}"
                    element["line"] = row.location.line

        return element

    def _build_step(
        self, pickle: Pickle, step_result: PickleStepResult, duration: int | None
    ) -> dict[str, Any]:
        feature = self.storage.feature(pickle.uri)
        pickle_step = self.storage.pickle_step(step_result.pickle_step_id)
        step = feature.find_step(pickle_step.ast_node_ids[0])

        doc_string = None
        rows = None
        arg = pickle_step.argument
        if arg is not None:
            if arg.doc_string is not None and step.doc_string is not None:
                doc_string = {
                    "value": arg.doc_string.content,
                    "content_type": arg.doc_string.media_type.strip(),
                    "line": step.doc_string.location.line,
                }
            if arg.data_table is not None:
                rows = [
                    {"cells": [cell.value for cell in row.cells]} for row in arg.data_table.rows
                ]

        location = ""
        if step_result.definition is not None:
            location = definition_id(step_result.definition).split(" ")[0]
        if step_result.status in _MATCH_AT_STEP:
            location = f"{pickle.uri}:{step.location.line}"

        result: dict[str, Any] = {"status": str(step_result.status)}
        if step_result.err is not None and str(step_result.err):
            result["error_message"] = str(step_result.err)
        if duration is not None:
            result["duration"] = duration

        embeddings = [
            {
                "name": a.name,
                "mime_type": a.mime_type,
                "data": base64.b64encode(a.data).decode("ascii"),
            }
            for a in step_result.attachments or []
        ]

        data: dict[str, Any] = {
            "keyword": step.keyword,
            "name": pickle_step.text,
            "line": step.location.line,
            "doc_string": doc_string,
            "match": {"location": location},
            "result": result,
            "rows": rows,
            "embeddings": embeddings,
        }
        if doc_string is None:
            del data["doc_string"]
        return _drop_empty(data, "rows", "embeddings")


def cucumber_formatter_func(suite: str, out: TextIO) -> Cuke:
    """Create a Cucumber JSON formatter."""
    return Cuke(suite, out)