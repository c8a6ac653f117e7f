"""Test run results and step statuses."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from . import colors


def now() -> datetime:
    """Return the current time used to stamp results."""
    return datetime.now(timezone.utc)


class StepResultStatus(enum.IntEnum):
    """The outcome of running a step."""

    UNKNOWN = -1
    PASSED = 0
    FAILED = 1
    SKIPPED = 2
    UNDEFINED = 3
    PENDING = 4
    AMBIGUOUS = 5

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, int):
            return cls.UNKNOWN
        return None

    def __str__(self) -> str:
        return self.name.lower()

    def color(self) -> colors.ColorFunc:
        """Return the colour function used to print this status."""
        if self is StepResultStatus.PASSED:
            return colors.green
        if self is StepResultStatus.FAILED:
            return colors.red
        if self is StepResultStatus.SKIPPED:
            return colors.cyan
        return colors.yellow


@dataclass
class TestRunStarted:
    started_at: datetime

    __test__ = False


@dataclass
class PickleResult:
    pickle_id: str
    started_at: datetime


@dataclass
class PickleAttachment:
    name: str = ""
    mime_type: str = ""
    data: bytes = b""


@dataclass
class PickleStepResult:
    status: StepResultStatus
    finished_at: datetime
    err: BaseException | None = None
    pickle_id: str = ""
    pickle_step_id: str = ""
    definition: Any = None
    attachments: list[PickleAttachment] | None = field(default=None)


def new_step_result(
    status: StepResultStatus,
    pickle_id: str,
    pickle_step_id: str,
    match: Any,
    attachments: list[PickleAttachment] | None,
    err: BaseException | None,
) -> PickleStepResult:
    """Build a step result stamped with the current time."""
    return PickleStepResult(
        status=status,
        finished_at=now(),
        err=err,
        pickle_id=pickle_id,
        pickle_step_id=pickle_step_id,
        definition=match,
        attachments=attachments,
    )