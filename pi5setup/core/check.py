# pi5setup/core/check.py
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pi5setup.core.logger import LoggerProxy

if TYPE_CHECKING:
    from pi5setup.core.preflight import ExecutionContext

log = LoggerProxy(__name__)


class CheckStatus(Enum):
    """
    Verification severity. Ordered so the worst outcome wins when aggregating.
    """

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {CheckStatus.PASS: 0, CheckStatus.WARN: 1, CheckStatus.FAIL: 2}


@dataclass(frozen=True)
class CheckOutcome:
    status: CheckStatus
    detail: str

    @classmethod
    def passed(cls, detail: str) -> CheckOutcome:
        return cls(CheckStatus.PASS, detail)

    @classmethod
    def warn(cls, detail: str) -> CheckOutcome:
        return cls(CheckStatus.WARN, detail)

    @classmethod
    def fail(cls, detail: str) -> CheckOutcome:
        return cls(CheckStatus.FAIL, detail)


@dataclass(frozen=True)
class Check:
    """A named read-only inspection of system state."""

    check_id: str
    description: str
    run: Callable[[ExecutionContext], CheckOutcome]
    section: str = ""


@dataclass
class VerificationReport:
    entries: list[tuple[str, CheckOutcome]] = field(default_factory=list)

    @property
    def overall(self) -> CheckStatus:
        worst = CheckStatus.PASS
        for _, outcome in self.entries:
            if outcome.status.rank > worst.rank:
                worst = outcome.status
        return worst

    def count(self, status: CheckStatus) -> int:
        return sum(1 for _, outcome in self.entries if outcome.status is status)

    def as_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall.value,
            "checks": [
                {"check": check_id, "status": o.status.value, "detail": o.detail}
                for check_id, o in self.entries
            ],
        }


CheckListener = Callable[[Check, CheckOutcome], None]


def run_checks(
    checks: Sequence[Check],
    ctx: ExecutionContext,
    on_start: Callable[[Check], None] | None = None,
    on_outcome: CheckListener | None = None,
) -> VerificationReport:
    """
    Run every check, in order, regardless of earlier failures.

    A check that raises is reported as FAIL with the exception text; it never
    stops the run.
    """
    report = VerificationReport()
    for chk in checks:
        if on_start is not None:
            on_start(chk)
        try:
            outcome = chk.run(ctx)
        except KeyboardInterrupt:
            raise
        except Exception as exc:
            log.exception("Check %s crashed", chk.check_id)
            outcome = CheckOutcome.fail(f"check crashed: {type(exc).__name__}: {exc}")
        log.info("Check %s: %s - %s", chk.check_id, outcome.status.value, outcome.detail)
        report.entries.append((chk.check_id, outcome))
        if on_outcome is not None:
            on_outcome(chk, outcome)
    return report
