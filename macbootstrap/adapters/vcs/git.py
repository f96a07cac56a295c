"""
Git adapter — clone and update repositories.

Used for anything provisioned straight from a repository: the asdf
checkout, the Neovim source tree, the dotfiles repo and tmux themes.
"""

from __future__ import annotations

import logging
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)


class GitAdapter(Adapter):
    """Clone and pull git repositories."""

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return self.runner.which("git") is not None

    def is_repo(self, path: Path) -> bool:
        return (path / ".git").exists()

    def clone(self, url: str, dest: Path, branch: str | None = None) -> ApplyResult:
        """Clone ``url`` into ``dest``, optionally at a branch or tag."""
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ApplyResult.failure(f"Cannot create {dest.parent}: {e}")

        argv = ["git", "clone"]
        if branch:
            argv += ["--branch", branch]
        argv += [url, str(dest)]

        return self._result(self.runner.run(argv), f"cloned into {dest}")

    def pull(self, path: Path) -> ApplyResult:
        return self._result(self.runner.run(["git", "pull"], cwd=path), f"updated {path}")
