"""
Outcome models — what happened to each step.

The engine records one StepOutcome per evaluated step, in declaration
order. Outcomes are plain data: the engine never raises for a step
failure, it records one.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class Outcome(StrEnum):
    """Per-step outcome."""

    SKIPPED = "skipped"                     # check said "already satisfied"
    WOULD_APPLY = "would_apply"             # dry-run, apply suppressed
    APPLIED = "applied"
    FAILED = "failed"                       # fatal step failed, run aborted
    FAILED_NON_FATAL = "failed_non_fatal"   # logged, run continued


class StepOutcome(BaseModel):
    """Recorded result of evaluating one step."""

    step: str
    index: int
    outcome: Outcome
    message: str = ""
    fatal: bool = False
    dry_run: bool = False
    duration_ms: int = 0
    check_error: str | None = None

    @property
    def failed(self) -> bool:
        return self.outcome in (Outcome.FAILED, Outcome.FAILED_NON_FATAL)
