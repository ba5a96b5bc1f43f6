# pi5setup/core/step.py
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pi5setup.core.preflight import ExecutionContext


class StepFailure(Exception):
    """A step's mutation could not be carried out (command failed, write error, missing target)."""


class StepStatus(Enum):
    APPLIED = "applied"
    ALREADY_SATISFIED = "already satisfied"
    WOULD_APPLY = "would apply"
    FAILED = "failed"


@dataclass(frozen=True)
class Step:
    """
    A named, ordered unit of mutation.

    ``precondition`` answers "is the effect already present?" and must not
    mutate anything. ``apply`` performs the mutation and must be safe to run
    again: overwrite-in-place or guarded append only. Steps that download
    artifacts set ``fetches_remote`` so the guard checks the network first.
    """

    step_id: str
    description: str
    precondition: Callable[[ExecutionContext], bool]
    apply: Callable[[ExecutionContext], None]
    fetches_remote: bool = False


@dataclass
class StepResult:
    step_id: str
    status: StepStatus
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not StepStatus.FAILED

    def as_dict(self) -> dict[str, str | None]:
        return {"step": self.step_id, "status": self.status.value, "reason": self.reason}
