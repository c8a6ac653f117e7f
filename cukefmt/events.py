"""A formatter that streams the run as JSON events, one per line."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, TextIO

from .base import Base, definition_id
from .results import StepResultStatus, now

SPEC = "0.1.0"
CONTENT_ENCODING_BASE64 = "BASE64"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_JSON_ESCAPES = (
    ("&", "\\u0026"),
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)

_CASE_STATUSES = (
    StepResultStatus.PASSED,
    StepResultStatus.FAILED,
    StepResultStatus.UNDEFINED,
    StepResultStatus.PENDING,
    StepResultStatus.AMBIGUOUS,
)


def _timestamp() -> int:
    """Milliseconds since the Unix epoch, truncated toward zero."""
    moment = now()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    micros = (moment - _EPOCH) // timedelta(microseconds=1)
    millis = abs(micros) // 1000
    return millis if micros >= 0 else -millis


def _text(data: bytes | str) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return data


def _dumps(data: dict[str, Any]) -> str:
    text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def _argument_spans(expr, text: str) -> list[list[int]]:
    match = expr.search(text)
    if match is None:
        raise ValueError(f"step text {text!r} does not match {expr.pattern!r}")
    flat = [pos for group in range(1, match.re.groups + 1) for pos in match.span(group)]
    # pairs are taken from consecutive positions, as the event spec's producer does
    return [[flat[i], flat[i + 1]] for i in range(len(flat) // 2)]


class Events(Base):
    """Writes a JSON event per line for every stage of the run."""

    def _event(self, data: dict[str, Any]) -> None:
        self.out.write(_dumps(data) + "\n")

    def _scenario_location(self, pickle) -> str:
        feature = self.storage.feature(pickle.uri)
        scenario = feature.find_scenario(pickle.ast_node_ids[0])
        line = scenario.location.line
        if len(pickle.ast_node_ids) == 2:
            _, row = feature.find_example(pickle.ast_node_ids[1])
            line = row.location.line
        return f"{pickle.uri}:{line}"

    def test_run_started(self) -> None:
        super().test_run_started()
        with self.lock:
            self._event(
                {
                    "event": "TestRunStarted",
                    "version": SPEC,
                    "timestamp": _timestamp(),
                    "suite": self.suite_name,
                }
            )

    def feature(self, document, path, content) -> None:
        super().feature(document, path, content)
        with self.lock:
            self._event(
                {
                    "event": "TestSource",
                    "location": f"{path}:{document.feature.location.line}",
                    "source": _text(content),
                }
            )

    def pickle(self, pickle) -> None:
        super().pickle(pickle)
        with self.lock:
            location = self._scenario_location(pickle)
            self._event(
                {"event": "TestCaseStarted", "location": location, "timestamp": _timestamp()}
            )
            if not pickle.steps:
                self._event(
                    {
                        "event": "TestCaseFinished",
                        "location": location,
                        "timestamp": _timestamp(),
                        "status": "undefined",
                    }
                )

    def defined(self, pickle, step, definition) -> None:
        super().defined(pickle, step, definition)
        with self.lock:
            feature = self.storage.feature(pickle.uri)
            ast_step = feature.find_step(step.ast_node_ids[0])
            location = f"{pickle.uri}:{ast_step.location.line}"

            if definition is not None:
                matched = self.storage.step_definition_match(step.ast_node_ids[0])
                self._event(
                    {
                        "event": "StepDefinitionFound",
                        "location": location,
                        "definition_id": definition_id(matched),
                        "arguments": _argument_spans(definition.expr, step.text),
                    }
                )

            self._event(
                {"event": "TestStepStarted", "location": location, "timestamp": _timestamp()}
            )

    def _step(self, pickle, pickle_step) -> None:
        storage = self.storage
        feature = storage.feature(pickle.uri)
        result = storage.pickle_step_result(pickle_step.id)
        ast_step = feature.find_step(pickle_step.ast_node_ids[0])
        location = f"{pickle.uri}:{ast_step.location.line}"

        for attachment in result.attachments or []:
            self._event(
                {
                    "event": "Attachment",
                    "location": location,
                    "timestamp": _timestamp(),
                    "contentEncoding": CONTENT_ENCODING_BASE64,
                    "fileName": attachment.name,
                    "mimeType": attachment.mime_type,
                    "body": _text(attachment.data),
                }
            )

        finished: dict[str, Any] = {
            "event": "TestStepFinished",
            "location": location,
            "timestamp": _timestamp(),
            "status": str(result.status),
        }
        if result.err is not None and str(result.err):
            finished["summary"] = str(result.err)
        self._event(finished)

        if pickle.steps[-1].id == pickle_step.id:
            status = ""
            for step_result in storage.pickle_step_results_by_pickle_id(pickle.id):
                if step_result.status in _CASE_STATUSES:
                    status = str(step_result.status)
            self._event(
                {
                    "event": "TestCaseFinished",
                    "location": self._scenario_location(pickle),
                    "timestamp": _timestamp(),
                    "status": status,
                }
            )

    def passed(self, pickle, step, definition) -> None:
        super().passed(pickle, step, definition)
        with self.lock:
            self._step(pickle, step)

    def skipped(self, pickle, step, definition) -> None:
        super().skipped(pickle, step, definition)
        with self.lock:
            self._step(pickle, step)

    def undefined(self, pickle, step, definition) -> None:
        super().undefined(pickle, step, definition)
        with self.lock:
            self._step(pickle, step)

    def failed(self, pickle, step, definition, err) -> None:
        super().failed(pickle, step, definition, err)
        with self.lock:
            self._step(pickle, step)

    def pending(self, pickle, step, definition) -> None:
        super().pending(pickle, step, definition)
        with self.lock:
            self._step(pickle, step)

    def ambiguous(self, pickle, step, definition, err) -> None:
        super().ambiguous(pickle, step, definition, err)
        with self.lock:
            self._step(pickle, step)

    def summary(self) -> None:
        """Emit the TestRunFinished event with the overall status and snippets."""
        storage = self.storage
        by_status = storage.pickle_step_results_by_status

        status = StepResultStatus.PASSED
        if by_status(StepResultStatus.FAILED):
            status = StepResultStatus.FAILED
        elif not by_status(StepResultStatus.PASSED):
            if len(by_status(StepResultStatus.UNDEFINED)) > len(
                by_status(StepResultStatus.PENDING)
            ):
                status = StepResultStatus.UNDEFINED
            else:
                status = StepResultStatus.PENDING

        snips = self.snippets()
        if snips:
            snips = (
                "You can implement step definitions for undefined steps with these snippets:\n"
                + snips
            )

        self._event(
            {
                "event": "TestRunFinished",
                "status": str(status),
                "timestamp": _timestamp(),
                "snippets": snips,
                "memory": "",
            }
        )


def events_formatter_func(suite: str, out: TextIO) -> Events:
    """Create an events formatter."""
    return Events(suite, out)