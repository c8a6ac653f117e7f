"""In-memory store of features, pickles and their results for formatters."""

from __future__ import annotations

import threading
from typing import Any, Mapping, TypeVar

from .feature import Feature
from .messages import Pickle, PickleStep
from .results import PickleResult, PickleStepResult, StepResultStatus, TestRunStarted

_V = TypeVar("_V")


def _lookup(mapping: Mapping[str, _V], key: str, what: str) -> _V:
    try:
        return mapping[key]
    except KeyError:
        raise KeyError(f"{what} {key!r} not found") from None


class Storage:
    """Holds everything formatters need to look up while rendering a run.

    Lookups of a single item raise KeyError when the item is unknown.
    Collections are returned in the order their items were added.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._features: dict[str, Feature] = {}
        self._pickles: dict[str, Pickle] = {}
        self._pickle_steps: dict[str, PickleStep] = {}
        self._test_run_started: TestRunStarted | None = None
        self._pickle_results: dict[str, PickleResult] = {}
        self._step_results: dict[str, PickleStepResult] = {}
        self._step_definitions: dict[str, Any] = {}

    def add_feature(self, feature: Feature) -> None:
        """Store a feature and index its pickles and pickle steps."""
        with self._lock:
            self._features[feature.uri] = feature
            for pickle in feature.pickles:
                self._pickles[pickle.id] = pickle
                for step in pickle.steps:
                    self._pickle_steps[step.id] = step

    def set_test_run_started(self, started: TestRunStarted) -> None:
        with self._lock:
            self._test_run_started = started

    def add_pickle_result(self, result: PickleResult) -> None:
        with self._lock:
            self._pickle_results[result.pickle_id] = result

    def add_pickle_step_result(self, result: PickleStepResult) -> None:
        """Store a step result, replacing any earlier one for the same step."""
        with self._lock:
            self._step_results[result.pickle_step_id] = result

    def set_step_definition_match(self, step_ast_id: str, definition: Any) -> None:
        with self._lock:
            self._step_definitions[step_ast_id] = definition

    def features(self) -> list[Feature]:
        with self._lock:
            return list(self._features.values())

    def feature(self, uri: str) -> Feature:
        with self._lock:
            return _lookup(self._features, uri, "feature")

    def pickles(self, uri: str) -> list[Pickle]:
        """Return the pickles that belong to the feature at *uri*."""
        with self._lock:
            return [p for p in self._pickles.values() if p.uri == uri]

    def pickle(self, pickle_id: str) -> Pickle:
        with self._lock:
            return _lookup(self._pickles, pickle_id, "pickle")

    def pickle_step(self, step_id: str) -> PickleStep:
        with self._lock:
            return _lookup(self._pickle_steps, step_id, "pickle step")

    def test_run_started(self) -> TestRunStarted:
        with self._lock:
            if self._test_run_started is None:
                raise KeyError("test run has not started")
            return self._test_run_started

    def pickle_results(self) -> list[PickleResult]:
        with self._lock:
            return list(self._pickle_results.values())

    def pickle_result(self, pickle_id: str) -> PickleResult:
        with self._lock:
            return _lookup(self._pickle_results, pickle_id, "pickle result")

    def pickle_step_result(self, step_id: str) -> PickleStepResult:
        with self._lock:
            return _lookup(self._step_results, step_id, "pickle step result")

    def pickle_step_results_by_pickle_id(self, pickle_id: str) -> list[PickleStepResult]:
        with self._lock:
            return [r for r in self._step_results.values() if r.pickle_id == pickle_id]

    def pickle_step_results_by_pickle_id_until_step(
        self, pickle_id: str, step_id: str
    ) -> list[PickleStepResult]:
        """Return a pickle's step results up to and including *step_id*."""
        selected = []
        for result in self.pickle_step_results_by_pickle_id(pickle_id):
            selected.append(result)
            if result.pickle_step_id == step_id:
                break
        return selected

    def pickle_step_results_by_status(
        self, status: StepResultStatus
    ) -> list[PickleStepResult]:
        with self._lock:
            return [r for r in self._step_results.values() if r.status == status]

    def step_definition_match(self, step_ast_id: str) -> Any:
        with self._lock:
            return _lookup(self._step_definitions, step_ast_id, "step definition match")