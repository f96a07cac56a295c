"""
Domain models — steps, outcomes and the machine profile.

All models are re-exported here for convenient access:

    from macbootstrap.core.models import Step, ApplyResult, Outcome, MachineProfile
"""

from macbootstrap.core.models.outcome import Outcome, StepOutcome
from macbootstrap.core.models.profile import (
    AsdfConfig,
    CaskEntry,
    DotfilesConfig,
    FishConfig,
    HomebrewConfig,
    MachineProfile,
    NeovimConfig,
    RuntimeSpec,
    SshConfig,
    SshKeyConfig,
    TmuxThemeConfig,
)
from macbootstrap.core.models.step import ApplyResult, Step

__all__ = [
    # step.py
    "ApplyResult",
    # profile.py
    "AsdfConfig",
    "CaskEntry",
    "DotfilesConfig",
    "FishConfig",
    "HomebrewConfig",
    "MachineProfile",
    "NeovimConfig",
    # outcome.py
    "Outcome",
    "RuntimeSpec",
    "SshConfig",
    "SshKeyConfig",
    "Step",
    "StepOutcome",
    "TmuxThemeConfig",
]
