"""Provisioning engine — run steps in order, idempotently."""

from macbootstrap.core.engine.reporter import ProgressReporter
from macbootstrap.core.engine.runner import (
    ConfigurationError,
    FatalStepFailure,
    RunResult,
    run_steps,
    validate_steps,
)

__all__ = [
    "ConfigurationError",
    "FatalStepFailure",
    "ProgressReporter",
    "RunResult",
    "run_steps",
    "validate_steps",
]
