"""
Adapter registry — central lookup for all adapters.

The catalog never constructs adapters itself; it asks the registry.
``build_default_registry`` wires the real adapters for a machine
profile. Tests build the same registry over a MockCommandRunner and a
temporary home directory.
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.build.source_build import SourceBuildAdapter
from macbootstrap.adapters.dotfiles.stow import StowAdapter
from macbootstrap.adapters.packages.homebrew import HomebrewAdapter
from macbootstrap.adapters.packages.xcode import XcodeToolsAdapter
from macbootstrap.adapters.runtimes.asdf import AsdfAdapter
from macbootstrap.adapters.shell.command import CommandRunner
from macbootstrap.adapters.shell.filesystem import ConfigFileAdapter, DownloadAdapter
from macbootstrap.adapters.system.login_shell import SHELLS_FILE, LoginShellAdapter
from macbootstrap.adapters.system.ssh_keys import Confirm, SshKeyAdapter, decline
from macbootstrap.adapters.vcs.git import GitAdapter
from macbootstrap.core.models.profile import MachineProfile, expand_path, homebrew_prefix

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=Adapter)


class AdapterRegistry:
    """Registry of adapters plus the host facts steps are built against.

    Attributes:
        home: Target home directory.
        arch: CPU architecture (``uname -m``), used for the Homebrew prefix.
    """

    def __init__(self, home: Path | None = None, arch: str | None = None):
        self._adapters: dict[str, Adapter] = {}
        self.home = home or Path.home()
        self.arch = arch or platform.machine()

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def require(self, name: str, kind: type[A]) -> A:
        """Look up an adapter that must exist and be of ``kind``.

        Raises:
            KeyError: No adapter registered under ``name``.
            TypeError: The registered adapter is of another type.
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            raise KeyError(f"No adapter registered for '{name}'")
        if not isinstance(adapter, kind):
            raise TypeError(
                f"Adapter '{name}' is {type(adapter).__name__}, expected {kind.__name__}"
            )
        return adapter

    def list_adapters(self) -> list[str]:
        return list(self._adapters.keys())

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered adapter. Never raises."""
        status = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status


def build_default_registry(
    profile: MachineProfile,
    runner: CommandRunner | None = None,
    home: Path | None = None,
    arch: str | None = None,
    confirm: Confirm = decline,
    shells_file: Path = SHELLS_FILE,
    xcode_poll_interval: float = 5.0,
    user_shell: Callable[[], str] | None = None,
) -> AdapterRegistry:
    """Wire every adapter the catalog needs for ``profile``."""
    runner = runner or CommandRunner()
    registry = AdapterRegistry(home=home, arch=arch)
    home = registry.home

    git = GitAdapter(runner, home)
    registry.register(git)
    registry.register(XcodeToolsAdapter(runner, home, poll_interval=xcode_poll_interval))
    brew = HomebrewAdapter(
        runner,
        home,
        prefix=homebrew_prefix(registry.arch),
        applications_dir=expand_path(profile.homebrew.applications_dir, home),
        install_script_url=profile.homebrew.install_script_url,
        shell_profile=expand_path(profile.homebrew.shell_profile, home),
    )
    if brew.activate_if_installed():
        logger.debug("Homebrew found under %s", brew.prefix)
    registry.register(brew)
    registry.register(
        AsdfAdapter(
            runner,
            home,
            asdf_dir=expand_path(profile.asdf.dir, home),
            tool_versions=expand_path(profile.asdf.tool_versions_file, home),
        )
    )
    registry.register(SourceBuildAdapter(runner, home, git=git))
    registry.register(StowAdapter(runner, home))
    registry.register(
        LoginShellAdapter(runner, home, shells_file=shells_file, user_shell=user_shell)
    )
    registry.register(ConfigFileAdapter(runner, home))
    registry.register(DownloadAdapter(runner, home))
    registry.register(SshKeyAdapter(runner, home, confirm=confirm))

    return registry
