"""A minimal formatter that prints one character per step."""

from __future__ import annotations

from typing import TextIO

from . import colors
from .base import Base
from .results import StepResultStatus

_STEP_MARKS = {
    StepResultStatus.PASSED: colors.green("."),
    StepResultStatus.SKIPPED: colors.cyan("-"),
    StepResultStatus.FAILED: colors.red("F"),
    StepResultStatus.UNDEFINED: colors.yellow("U"),
    StepResultStatus.AMBIGUOUS: colors.yellow("A"),
    StepResultStatus.PENDING: colors.yellow("P"),
}

_redb = colors.bold(colors.red)
_blackb = colors.bold(colors.black)


class Progress(Base):
    """Prints a character per step, wrapping after ``steps_per_row`` steps."""

    def __init__(self, suite: str, out: TextIO) -> None:
        super().__init__(suite, out)
        self.steps_per_row = 70
        self.steps = 0

    def summary(self) -> None:
        """Finish the current row, list failed steps, then print the totals."""
        left = self.steps % self.steps_per_row
        if left:
            if self.steps > self.steps_per_row:
                self.out.write(" " * (self.steps_per_row - left) + f" {self.steps}\n")
            else:
                self.out.write(f" {self.steps}\n")

        storage = self.storage
        failed_steps = sorted(
            storage.pickle_step_results_by_status(StepResultStatus.FAILED),
            key=lambda r: int(r.pickle_step_id),
        )

        lines: list[str] = []
        for result in failed_steps:
            if result.status is not StepResultStatus.FAILED:
                continue
            pickle = storage.pickle(result.pickle_id)
            pickle_step = storage.pickle_step(result.pickle_step_id)
            feature = storage.feature(pickle.uri)

            scenario = feature.find_scenario(pickle.ast_node_ids[0])
            scenario_desc = f"{scenario.keyword}: {pickle.name}"
            scenario_line = f"{pickle.uri}:{scenario.location.line}"

            step = feature.find_step(pickle_step.ast_node_ids[0])
            step_desc = step.keyword.strip() + " " + pickle_step.text
            step_line = f"{pickle.uri}:{step.location.line}"

            lines.extend(
                [
                    "  " + colors.red(scenario_desc) + _blackb(" # " + scenario_line),
                    "    " + colors.red(step_desc) + _blackb(" # " + step_line),
                    "      " + colors.red("Error: ") + _redb(str(result.err)),
                    "",
                ]
            )

        if lines:
            self._println("\n\n--- " + colors.red("Failed steps:") + "\n")
            self.out.write("\n".join(lines))
        self._println()

        super().summary()

    def _step(self, pickle_step_id: str) -> None:
        result = self.storage.pickle_step_result(pickle_step_id)
        mark = _STEP_MARKS.get(result.status)
        if mark is not None:
            self.out.write(mark)

        self.steps += 1
        if self.steps % self.steps_per_row == 0:
            self.out.write(f" {self.steps}\n")

    def passed(self, pickle, step, definition) -> None:
        super().passed(pickle, step, definition)
        with self.lock:
            self._step(step.id)

    def skipped(self, pickle, step, definition) -> None:
        super().skipped(pickle, step, definition)
        with self.lock:
            self._step(step.id)

    def undefined(self, pickle, step, definition) -> None:
        super().undefined(pickle, step, definition)
        with self.lock:
            self._step(step.id)

    def failed(self, pickle, step, definition, err) -> None:
        super().failed(pickle, step, definition, err)
        with self.lock:
            self._step(step.id)

    def ambiguous(self, pickle, step, definition, err) -> None:
        super().ambiguous(pickle, step, definition, err)
        with self.lock:
            self._step(step.id)

    def pending(self, pickle, step, definition) -> None:
        super().pending(pickle, step, definition)
        with self.lock:
            self._step(step.id)


def progress_formatter_func(suite: str, out: TextIO) -> Progress:
    """Create a progress formatter."""
    return Progress(suite, out)