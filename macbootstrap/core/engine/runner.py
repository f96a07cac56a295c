"""
Step runner — the provisioning engine.

Takes an ordered list of steps and, for each one: checks whether its
goal state already holds, applies it if not (unless dry-running), and
records an outcome. Step failures never escape as exceptions; they
become outcome records. Only a malformed step list (raised up front)
and a fatal step failure (returned in the result) terminate a run.

Flow:
    validate → for each step: check → [apply] → record → report
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from macbootstrap.core.engine.reporter import ProgressReporter
from macbootstrap.core.models.outcome import Outcome, StepOutcome
from macbootstrap.core.models.step import ApplyResult, Step

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the step list is malformed. No step has run."""


class FatalStepFailure(Exception):
    """A fatal step failed and the run was aborted."""

    def __init__(self, step: str, index: int, message: str = ""):
        self.step = step
        self.index = index
        self.message = message
        reason = f": {message}" if message else ""
        super().__init__(f"Fatal step '{step}' (#{index + 1}) failed{reason}")


@dataclass
class RunResult:
    """Result of running a step list."""

    outcomes: list[StepOutcome] = field(default_factory=list)
    dry_run: bool = False
    total_steps: int = 0
    fatal_index: int | None = None
    error: FatalStepFailure | None = None

    @property
    def completed(self) -> bool:
        """True unless a fatal step failed."""
        return self.fatal_index is None

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for o in self.outcomes if o.outcome == outcome)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def applied(self) -> int:
        return self._count(Outcome.APPLIED)

    @property
    def would_apply(self) -> int:
        return self._count(Outcome.WOULD_APPLY)

    @property
    def failed_non_fatal(self) -> int:
        return self._count(Outcome.FAILED_NON_FATAL)

    @property
    def had_warnings(self) -> bool:
        return self.failed_non_fatal > 0

    @property
    def exit_code(self) -> int:
        # Non-fatal failures are warnings only; they never change the exit code.
        return 0 if self.completed else 1

    @property
    def status(self) -> str:
        if not self.completed:
            return "failed"
        if self.had_warnings:
            return "partial"
        return "ok"

    def outcome_for(self, step_name: str) -> StepOutcome | None:
        for o in self.outcomes:
            if o.step == step_name:
                return o
        return None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "completed": self.completed,
            "dry_run": self.dry_run,
            "total_steps": self.total_steps,
            "evaluated": len(self.outcomes),
            "applied": self.applied,
            "skipped": self.skipped,
            "would_apply": self.would_apply,
            "failed_non_fatal": self.failed_non_fatal,
            "fatal_index": self.fatal_index,
            "error": str(self.error) if self.error else None,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }


def validate_steps(steps: Sequence[Step]) -> None:
    """Reject a malformed step list before anything runs.

    Raises:
        ConfigurationError: On an empty list, a step missing its check or
            apply capability, a blank name, or a duplicated name.
    """
    if not steps:
        raise ConfigurationError("No steps to run")

    seen: set[str] = set()
    for position, step in enumerate(steps, start=1):
        if not step.name or not step.name.strip():
            raise ConfigurationError(f"Step #{position} has no name")
        if step.name in seen:
            raise ConfigurationError(f"Duplicate step name '{step.name}'")
        seen.add(step.name)
        if not callable(step.check):
            raise ConfigurationError(f"Step '{step.name}' has no check capability")
        if not callable(step.apply):
            raise ConfigurationError(f"Step '{step.name}' has no apply capability")


def run_steps(
    steps: Sequence[Step],
    *,
    dry_run: bool = False,
    reporter: ProgressReporter | None = None,
) -> RunResult:
    """Execute steps in order with idempotence and dry-run support.

    Args:
        steps: Ordered, non-empty step list.
        dry_run: If True, run every check but never call apply.
        reporter: Progress sink (default: timestamped lines on stdout).

    Returns:
        RunResult with one outcome per evaluated step. After a fatal
        failure the remaining steps are not evaluated.

    Raises:
        ConfigurationError: If the step list is malformed.
    """
    validate_steps(steps)
    reporter = reporter or ProgressReporter()

    result = RunResult(dry_run=dry_run, total_steps=len(steps))
    reporter.run_started(len(steps), dry_run)

    for index, step in enumerate(steps):
        start = time.monotonic()
        satisfied, check_error = _evaluate_check(step)
        reporter.step_checked(step, satisfied)

        if satisfied:
            _record(result, step, index, Outcome.SKIPPED, start)
            continue

        if dry_run:
            _record(result, step, index, Outcome.WOULD_APPLY, start, check_error=check_error)
            continue

        reporter.step_applying(step)
        applied = _invoke_apply(step)

        if applied.ok:
            kind = Outcome.APPLIED
        elif step.fatal:
            kind = Outcome.FAILED
        else:
            kind = Outcome.FAILED_NON_FATAL

        outcome = _record(
            result, step, index, kind, start,
            message=applied.message, check_error=check_error,
        )
        reporter.step_finished(step, outcome)

        if kind == Outcome.FAILED:
            result.fatal_index = index
            result.error = FatalStepFailure(step.name, index, applied.message)
            break

    reporter.run_finished(result)
    return result


def _evaluate_check(step: Step) -> tuple[bool, str | None]:
    """Run a step's check. An erroring check counts as "not satisfied"."""
    assert step.check is not None
    try:
        return bool(step.check()), None
    except Exception as e:
        logger.warning(
            "Check for '%s' could not decide (%s); will attempt apply", step.name, e
        )
        return False, f"{type(e).__name__}: {e}"


def _invoke_apply(step: Step) -> ApplyResult:
    """Run a step's apply, normalising its return value to an ApplyResult."""
    assert step.apply is not None
    try:
        returned = step.apply()
    except Exception as e:
        logger.debug("Apply for '%s' raised", step.name, exc_info=True)
        return ApplyResult.failure(f"{type(e).__name__}: {e}")

    if returned is None or returned is True:
        return ApplyResult.success()
    if returned is False:
        return ApplyResult.failure("apply reported failure")
    if isinstance(returned, ApplyResult):
        return returned
    logger.warning("Apply for '%s' returned %r", step.name, returned)
    return ApplyResult.failure(f"apply returned unexpected {type(returned).__name__}")


def _record(
    result: RunResult,
    step: Step,
    index: int,
    kind: Outcome,
    start: float,
    message: str = "",
    check_error: str | None = None,
) -> StepOutcome:
    outcome = StepOutcome(
        step=step.name,
        index=index,
        outcome=kind,
        message=message,
        fatal=step.fatal,
        dry_run=result.dry_run,
        duration_ms=int((time.monotonic() - start) * 1000),
        check_error=check_error,
    )
    result.outcomes.append(outcome)
    return outcome
