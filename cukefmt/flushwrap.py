"""A formatter wrapper that defers every event until it is flushed."""

from __future__ import annotations

import threading
from typing import Any


class OnFlushFormatter:
    """Records formatter events and replays them on the wrapped formatter on flush."""

    def __init__(self, formatter: Any) -> None:
        self.formatter = formatter
        self._calls: list[tuple[str, tuple[Any, ...]]] = []
        self._lock = threading.Lock()

    def _defer(self, name: str, *args: Any) -> None:
        with self._lock:
            self._calls.append((name, args))

    def test_run_started(self) -> None:
        self._defer("test_run_started")

    def feature(self, document, path, content) -> None:
        self._defer("feature", document, path, content)

    def pickle(self, pickle) -> None:
        self._defer("pickle", pickle)

    def defined(self, pickle, step, definition) -> None:
        self._defer("defined", pickle, step, definition)

    def passed(self, pickle, step, definition) -> None:
        self._defer("passed", pickle, step, definition)

    def skipped(self, pickle, step, definition) -> None:
        self._defer("skipped", pickle, step, definition)

    def undefined(self, pickle, step, definition) -> None:
        self._defer("undefined", pickle, step, definition)

    def failed(self, pickle, step, definition, err) -> None:
        self._defer("failed", pickle, step, definition, err)

    def pending(self, pickle, step, definition) -> None:
        self._defer("pending", pickle, step, definition)

    def ambiguous(self, pickle, step, definition, err) -> None:
        self._defer("ambiguous", pickle, step, definition, err)

    def summary(self) -> None:
        self._defer("summary")

    def flush(self) -> None:
        """Replay every recorded event, in order, on the wrapped formatter."""
        with self._lock:
            calls = list(self._calls)
            for name, args in calls:
                getattr(self.formatter, name)(*args)


def wrap_on_flush(formatter: Any) -> OnFlushFormatter:
    """Wrap *formatter* so that it only receives events when flushed."""
    return OnFlushFormatter(formatter)