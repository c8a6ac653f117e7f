"""Gherkin document and pickle data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


def _list():
    return field(default_factory=list)


def _here():
    return field(default_factory=Location)


@dataclass
class Location:
    """A position in a feature file."""

    line: int = 0
    column: int = 0


@dataclass
class Tag:
    name: str = ""
    location: Location = _here()
    id: str = ""


@dataclass
class Comment:
    text: str = ""
    location: Location = _here()


@dataclass
class DocString:
    content: str = ""
    media_type: str = ""
    delimiter: str = '"""'
    location: Location = _here()


@dataclass
class TableCell:
    value: str = ""
    location: Location = _here()


@dataclass
class TableRow:
    cells: list[TableCell] = _list()
    id: str = ""
    location: Location = _here()


@dataclass
class Step:
    text: str = ""
    keyword: str = ""
    id: str = ""
    location: Location = _here()
    doc_string: DocString | None = None
    data_table: list[TableRow] | None = None


@dataclass
class _Element:
    """Fields shared by titled gherkin nodes."""

    name: str = ""
    keyword: str = ""
    description: str = ""
    id: str = ""
    location: Location = _here()


@dataclass
class _TaggedElement(_Element):
    tags: list[Tag] = _list()


@dataclass
class Examples(_TaggedElement):
    table_header: TableRow | None = None
    table_body: list[TableRow] = _list()


@dataclass
class Background(_Element):
    steps: list[Step] = _list()


@dataclass
class Scenario(_TaggedElement):
    steps: list[Step] = _list()
    examples: list[Examples] = _list()


@dataclass
class RuleChild:
    background: Background | None = None
    scenario: Scenario | None = None


@dataclass
class Rule(_TaggedElement):
    children: list[RuleChild] = _list()


@dataclass
class FeatureChild:
    rule: Rule | None = None
    background: Background | None = None
    scenario: Scenario | None = None


@dataclass
class GherkinFeature(_TaggedElement):
    language: str = ""
    children: list[FeatureChild] = _list()


@dataclass
class GherkinDocument:
    uri: str = ""
    feature: GherkinFeature | None = None
    comments: list[Comment] = _list()


@dataclass
class PickleDocString:
    content: str = ""
    media_type: str = ""


@dataclass
class PickleTableCell:
    value: str = ""


@dataclass
class PickleTableRow:
    cells: list[PickleTableCell] = _list()


@dataclass
class PickleTable:
    rows: list[PickleTableRow] = _list()


@dataclass
class PickleStepArgument:
    doc_string: PickleDocString | None = None
    data_table: PickleTable | None = None


@dataclass
class PickleStep:
    text: str = ""
    id: str = ""
    ast_node_ids: list[str] = _list()
    argument: PickleStepArgument | None = None
    type: str = ""


@dataclass
class PickleTag:
    name: str = ""
    ast_node_id: str = ""


@dataclass
class Pickle:
    id: str = ""
    uri: str = ""
    name: str = ""
    language: str = ""
    steps: list[PickleStep] = _list()
    tags: list[PickleTag] = _list()
    ast_node_ids: list[str] = _list()