"""
Progress reporter — the chronological run log on stdout.

One timestamped line per significant event:

    2024-05-01 09:12:44: [DRY-RUN] [3/7] Would install gh

The operator reads this stream to find what was skipped, applied or
failed. Diagnostics additionally go through ``logging`` (stderr), which
is configured separately by the CLI.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

import click

from macbootstrap.core.models.outcome import Outcome, StepOutcome
from macbootstrap.core.models.step import Step

if TYPE_CHECKING:
    from macbootstrap.core.engine.runner import RunResult

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DRY_RUN_PREFIX = "[DRY-RUN] "


class ProgressReporter:
    """Writes run events as timestamped lines.

    Args:
        echo: Line sink (default: ``click.echo`` to stdout).
        clock: Time source for the timestamp prefix.
    """

    def __init__(
        self,
        echo: Callable[[str], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._echo = echo or click.echo
        self._clock = clock
        self._dry_run = False

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def line(self, message: str, step: Step | None = None) -> None:
        """Emit one log line with timestamp, dry-run and progress prefixes."""
        prefix = DRY_RUN_PREFIX if self._dry_run else ""
        progress = step.progress_label if step is not None else ""
        stamp = self._clock().strftime(TIMESTAMP_FORMAT)
        self._echo(f"{stamp}: {prefix}{progress}{message}")

    # ── Run lifecycle ────────────────────────────────────────────

    def run_started(self, total: int, dry_run: bool) -> None:
        self._dry_run = dry_run
        if dry_run:
            self.line("Dry-run mode: no changes will be made")
        self.line(f"Run start: {total} step(s)")

    def run_finished(self, result: RunResult) -> None:
        counts = (
            f"applied={result.applied} skipped={result.skipped} "
            f"would_apply={result.would_apply} warnings={result.failed_non_fatal}"
        )
        if not result.completed:
            failed = result.outcomes[-1]
            self.line(f"Run end: aborted at step {failed.index + 1} ({failed.step}); {counts}")
        elif result.had_warnings:
            self.line(
                f"Run end: completed with {result.failed_non_fatal} warning(s); {counts}"
            )
        else:
            self.line(f"Run end: completed; {counts}")

    # ── Per-step events ──────────────────────────────────────────

    def step_checked(self, step: Step, satisfied: bool) -> None:
        if satisfied:
            self.line(f"{step.label}: already satisfied, skipping", step)
        elif self._dry_run:
            self.line(f"{step.label}: would apply", step)
        else:
            self.line(f"{step.label}: not satisfied", step)

    def step_applying(self, step: Step) -> None:
        self.line(f"{step.label}: applying...", step)

    def step_finished(self, step: Step, outcome: StepOutcome) -> None:
        detail = f" ({outcome.message})" if outcome.message else ""
        if outcome.outcome == Outcome.APPLIED:
            self.line(f"{step.label}: applied{detail}", step)
        elif outcome.outcome == Outcome.FAILED_NON_FATAL:
            self.line(f"{step.label}: failed, continuing{detail}", step)
            logger.warning("Step '%s' failed (non-fatal): %s", step.name, outcome.message)
        elif outcome.outcome == Outcome.FAILED:
            self.line(f"{step.label}: FAILED, aborting run{detail}", step)
            logger.error("Step '%s' failed (fatal): %s", step.name, outcome.message)
