"""
Xcode Command Line Tools adapter.

The tools are installed through a GUI dialog that ``xcode-select
--install`` opens. There is no way to drive it non-interactively, so
``install`` launches the dialog and then blocks, polling until the tools
show up. The wait is deliberately unbounded: a human is clicking through
an installer.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.shell.command import CommandRunner
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)


class XcodeToolsAdapter(Adapter):
    """Detect and install the Xcode Command Line Tools."""

    def __init__(
        self,
        runner: CommandRunner,
        home: Path | None = None,
        poll_interval: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(runner, home)
        self._poll_interval = poll_interval
        self._sleep = sleep

    @property
    def name(self) -> str:
        return "xcode"

    def is_available(self) -> bool:
        return self.runner.which("xcode-select") is not None

    def is_installed(self) -> bool:
        return self.runner.run(["xcode-select", "-p"]).ok

    def install_path(self) -> str | None:
        result = self.runner.run(["xcode-select", "-p"])
        return result.stdout if result.ok else None

    def install(self, wait: bool = True) -> ApplyResult:
        """Launch the installer dialog and wait for it to finish.

        The license is accepted afterwards on a best-effort basis.
        """
        if self.is_installed():
            return ApplyResult.success("already installed")

        # Exits non-zero when a dialog is already open; polling covers both.
        self.runner.run(["xcode-select", "--install"])
        if not wait:
            return ApplyResult.success("installer launched")

        logger.info("Waiting for the Command Line Tools installer dialog to finish")
        while not self.is_installed():
            self._sleep(self._poll_interval)

        license_result = self.runner.run(
            ["sudo", "xcodebuild", "-license", "accept"], capture=False
        )
        if not license_result.ok:
            logger.info("License acceptance skipped: %s", license_result.diagnostic)

        return ApplyResult.success(f"installed at {self.install_path() or 'unknown path'}")
