"""A parsed feature together with its pickles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .messages import (
    Background,
    Comment,
    Examples,
    GherkinDocument,
    GherkinFeature,
    Pickle,
    Rule,
    Scenario,
    Step,
    TableRow,
)


@dataclass
class Feature:
    """A gherkin document, the pickles compiled from it and its raw content."""

    document: GherkinDocument
    pickles: list[Pickle] = field(default_factory=list)
    content: bytes = b""

    @property
    def uri(self) -> str:
        return self.document.uri

    @uri.setter
    def uri(self, value: str) -> None:
        self.document.uri = value

    @property
    def feature(self) -> GherkinFeature | None:
        return self.document.feature

    @property
    def comments(self) -> list[Comment]:
        return self.document.comments

    def _children(self):
        return self.document.feature.children if self.document.feature else []

    def _scenarios(self) -> Iterator[Scenario]:
        for child in self._children():
            if child.scenario is not None:
                yield child.scenario
            if child.rule is not None:
                for rule_child in child.rule.children:
                    if rule_child.scenario is not None:
                        yield rule_child.scenario

    def _steps(self) -> Iterator[Step]:
        for child in self._children():
            if child.rule is not None:
                for rule_child in child.rule.children:
                    if rule_child.scenario is not None:
                        yield from rule_child.scenario.steps
                    if rule_child.background is not None:
                        yield from rule_child.background.steps
            if child.scenario is not None:
                yield from child.scenario.steps
            if child.background is not None:
                yield from child.background.steps

    def find_rule(self, ast_scenario_id: str) -> Rule | None:
        """Return the rule holding the given scenario, if any."""
        for child in self._children():
            rule = child.rule
            if rule is None:
                continue
            if any(
                rc.scenario is not None and rc.scenario.id == ast_scenario_id
                for rc in rule.children
            ):
                return rule
        return None

    def find_scenario(self, ast_scenario_id: str) -> Scenario | None:
        """Return the scenario with the given id, at feature or rule level."""
        return next(
            (sc for sc in self._scenarios() if sc.id == ast_scenario_id), None
        )

    def find_background(self, ast_scenario_id: str) -> Background | None:
        """Return the background that applies to the given scenario."""
        background = None
        for child in self._children():
            if child.background is not None:
                background = child.background
            if child.scenario is not None and child.scenario.id == ast_scenario_id:
                return background
            if child.rule is not None:
                for rule_child in child.rule.children:
                    if rule_child.background is not None:
                        background = rule_child.background
                    if (
                        rule_child.scenario is not None
                        and rule_child.scenario.id == ast_scenario_id
                    ):
                        return background
        return None

    def find_example(
        self, example_ast_id: str
    ) -> tuple[Examples | None, TableRow | None]:
        """Return the examples table and row with the given row id."""
        for scenario in self._scenarios():
            for examples in scenario.examples:
                for row in examples.table_body:
                    if row.id == example_ast_id:
                        return examples, row
        return None, None

    def find_step(self, ast_step_id: str) -> Step | None:
        """Return the step with the given id from any scenario or background."""
        return next((st for st in self._steps() if st.id == ast_step_id), None)