# pi5setup/core/executor.py
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from pi5setup.core.logger import LoggerProxy
from pi5setup.core.preflight import ExecutionContext
from pi5setup.core.step import Step, StepFailure, StepResult, StepStatus

log = LoggerProxy(__name__)

StepListener = Callable[[Step, StepResult], None]
StartListener = Callable[[Step], None]


@dataclass
class ExecutorRun:
    results: list[StepResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failed(self) -> StepResult | None:
        return next((r for r in self.results if not r.ok), None)

    @property
    def changed(self) -> bool:
        return any(r.status is StepStatus.APPLIED for r in self.results)


def _failure_reason(exc: BaseException) -> str:
    if isinstance(exc, StepFailure):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def run_steps(
    steps: Sequence[Step],
    ctx: ExecutionContext,
    on_start: StartListener | None = None,
    on_result: StepListener | None = None,
) -> ExecutorRun:
    """
    Apply ``steps`` strictly in order, one at a time.

    A satisfied precondition skips the step. The first failure stops the run;
    later steps are never attempted. In dry-run mode unsatisfied steps are
    reported as WOULD_APPLY and nothing is mutated.
    """
    run = ExecutorRun()

    for step in steps:
        log.info("--- Step: %s (%s) ---", step.step_id, step.description)
        if on_start is not None:
            on_start(step)
        try:
            if step.precondition(ctx):
                result = StepResult(step.step_id, StepStatus.ALREADY_SATISFIED)
            elif ctx.dry_run:
                result = StepResult(step.step_id, StepStatus.WOULD_APPLY)
            else:
                step.apply(ctx)
                result = StepResult(step.step_id, StepStatus.APPLIED)
        except KeyboardInterrupt:
            raise
        except (StepFailure, OSError) as exc:
            log.error("Step %s failed: %s", step.step_id, exc)
            result = StepResult(step.step_id, StepStatus.FAILED, _failure_reason(exc))
        except Exception as exc:
            log.exception("Step %s crashed", step.step_id)
            result = StepResult(step.step_id, StepStatus.FAILED, _failure_reason(exc))

        log.info("Step %s: %s", step.step_id, result.status.value)
        run.results.append(result)
        if on_result is not None:
            on_result(step, result)

        if not result.ok:
            log.error("Step %s FAILED - aborting remaining steps.", step.step_id)
            break

    return run
