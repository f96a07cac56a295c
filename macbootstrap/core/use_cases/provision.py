"""
Provision use case — the full vertical slice of a bootstrap run.

Loads the profile, wires adapters, builds the step list, optionally
narrows it to some groups, and runs it through the engine. Errors that
stop a run before it starts (bad profile, bad step list, unknown group)
come back in ``ProvisionResult.error``; step failures come back in the
run result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from macbootstrap.adapters.registry import AdapterRegistry, build_default_registry
from macbootstrap.core.config.loader import ConfigError, load_profile
from macbootstrap.core.engine.reporter import ProgressReporter
from macbootstrap.core.engine.runner import ConfigurationError, RunResult, run_steps
from macbootstrap.core.models.profile import MachineProfile
from macbootstrap.core.models.step import Step
from macbootstrap.core.services.catalog import build_steps, select_groups

logger = logging.getLogger(__name__)

EXIT_CONFIGURATION_ERROR = 2


@dataclass
class ProvisionResult:
    """Result of a provisioning run (or of planning one)."""

    run: RunResult | None = None
    profile: MachineProfile | None = None
    steps: list[Step] = field(default_factory=list)
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error:
            return EXIT_CONFIGURATION_ERROR
        if self.run is None:
            return 0
        return self.run.exit_code

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result
        result["profile"] = self.profile.name if self.profile else ""
        result["steps"] = [s.name for s in self.steps]
        if self.run:
            result["run"] = self.run.to_dict()
        return result


def plan_provision(
    config_path: Path | None = None,
    profile: MachineProfile | None = None,
    registry: AdapterRegistry | None = None,
    groups: Sequence[str] | None = None,
    use_brewfile: bool | None = None,
) -> ProvisionResult:
    """Load the profile and build the step list without running anything."""
    result = ProvisionResult()

    try:
        if profile is None:
            profile = load_profile(config_path)
        if use_brewfile is not None:
            profile = profile.model_copy(update={"use_brewfile": use_brewfile})
        result.profile = profile

        if registry is None:
            registry = build_default_registry(profile)

        steps = build_steps(profile, registry)
        if groups:
            steps = select_groups(steps, groups)
        result.steps = steps
    except (ConfigError, ConfigurationError) as e:
        result.error = str(e)

    return result


def run_provision(
    config_path: Path | None = None,
    profile: MachineProfile | None = None,
    registry: AdapterRegistry | None = None,
    groups: Sequence[str] | None = None,
    use_brewfile: bool | None = None,
    dry_run: bool = False,
    reporter: ProgressReporter | None = None,
) -> ProvisionResult:
    """Plan and execute a provisioning run.

    Args:
        config_path: Profile file; None uses the built-in defaults.
        profile: Pre-loaded profile (takes precedence over config_path).
        registry: Pre-configured adapter registry (tests, alternate hosts).
        groups: Only run steps in these catalog groups.
        use_brewfile: Override the profile's ``use_brewfile``.
        dry_run: Check everything, apply nothing.
        reporter: Progress sink for the run log.

    Returns:
        ProvisionResult; ``exit_code`` is the process exit status.
    """
    result = plan_provision(
        config_path=config_path,
        profile=profile,
        registry=registry,
        groups=groups,
        use_brewfile=use_brewfile,
    )
    if result.error:
        return result

    try:
        result.run = run_steps(result.steps, dry_run=dry_run, reporter=reporter)
    except ConfigurationError as e:
        result.error = str(e)
        return result

    run = result.run
    if run.error:
        logger.error("%s", run.error)
    elif run.had_warnings:
        failed = [o.step for o in run.outcomes if o.failed]
        logger.warning("Completed with failures in: %s", ", ".join(failed))
    return result
