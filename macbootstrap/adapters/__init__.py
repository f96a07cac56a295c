"""Adapters — bindings for the external tools a bootstrap run drives.

Public re-exports for convenient access.
"""

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.mock import MockCommandRunner
from macbootstrap.adapters.registry import AdapterRegistry, build_default_registry
from macbootstrap.adapters.shell.command import CommandResult, CommandRunner

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CommandResult",
    "CommandRunner",
    "MockCommandRunner",
    "build_default_registry",
]
