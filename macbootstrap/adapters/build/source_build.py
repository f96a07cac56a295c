"""
Source-build adapter — clone, make, make install.

For tools built from their repository instead of a package (Neovim).
An existing checkout is pulled rather than re-cloned; an existing
directory that is not a checkout is built as it is. Build output is
streamed to the terminal since builds run for minutes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.shell.command import CommandRunner
from macbootstrap.adapters.vcs.git import GitAdapter
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)


class SourceBuildAdapter(Adapter):
    """Build and install a tool from a git repository with make."""

    def __init__(self, runner: CommandRunner, home: Path | None = None, git: GitAdapter | None = None):
        super().__init__(runner, home)
        self.git = git or GitAdapter(runner, self.home)

    @property
    def name(self) -> str:
        return "source_build"

    def is_available(self) -> bool:
        return self.runner.which("make") is not None and self.git.is_available()

    def is_installed(self, binary: str) -> bool:
        return self.runner.which(binary) is not None

    def build_and_install(
        self,
        repo: str,
        source_dir: Path,
        make_args: Sequence[str] = (),
        sudo_install: bool = True,
    ) -> ApplyResult:
        """Fetch sources, build, and install.

        Args:
            repo: Repository URL.
            source_dir: Checkout location (reused when already cloned).
            make_args: Extra arguments for the build ``make`` call.
            sudo_install: Run ``make install`` through sudo.
        """
        if not source_dir.is_dir():
            fetched = self.git.clone(repo, source_dir)
        elif self.git.is_repo(source_dir):
            logger.info("Source directory %s exists, pulling latest changes", source_dir)
            fetched = self.git.pull(source_dir)
        else:
            logger.warning("%s is not a git checkout, building it as it is", source_dir)
            fetched = ApplyResult.success()
        if fetched.failed:
            return fetched

        built = self.runner.run(["make", *make_args], cwd=source_dir, capture=False)
        if not built.ok:
            return ApplyResult.failure(f"build failed: {built.diagnostic}")

        install_argv = ["sudo", "make", "install"] if sudo_install else ["make", "install"]
        installed = self.runner.run(install_argv, cwd=source_dir, capture=False)
        if not installed.ok:
            return ApplyResult.failure(f"install failed: {installed.diagnostic}")

        return ApplyResult.success(f"built and installed from {source_dir}")
