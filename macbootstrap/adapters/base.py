"""
Adapter base — the contract between steps and external tools.

Every collaborator the provisioning engine relies on (Homebrew, asdf,
git, stow, the login-shell database, ssh-keygen…) is an Adapter. Steps
only talk to the host through adapters, never directly.

Query methods are pure: they inspect the host and return booleans or
values. Action methods mutate the host and return an ApplyResult.
Neither kind raises for an external command failing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from macbootstrap.adapters.shell.command import CommandResult, CommandRunner
from macbootstrap.core.models.step import ApplyResult


class Adapter(ABC):
    """Abstract base class for all adapters.

    To create a new adapter:
        1. Subclass Adapter
        2. Implement name and is_available
        3. Register it in the AdapterRegistry
    """

    def __init__(self, runner: CommandRunner, home: Path | None = None):
        self.runner = runner
        self.home = home or Path.home()

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'homebrew', 'asdf', 'stow')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool is usable right now.

        Should be fast and never raise.
        """

    def _result(self, result: CommandResult, success_message: str = "") -> ApplyResult:
        """Convert a command result into an ApplyResult."""
        if result.ok:
            return ApplyResult.success(success_message, command=result.command)
        return ApplyResult.failure(
            result.diagnostic,
            command=result.command,
            return_code=result.return_code,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
