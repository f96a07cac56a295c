"""
Stow adapter — apply a dotfiles repository as symlinks.

Each top-level directory of the dotfiles repo is a stow package whose
tree mirrors the home directory. A package counts as linked when every
file in it is reachable from the target directory and resolves back into
the package, which covers both per-file links and folded directory links.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.shell.command import CommandRunner
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)

LOCAL_IGNORE_FILE = ".stow-local-ignore"

# GNU stow's built-in list, used for packages without a local ignore file.
DEFAULT_IGNORE_LIST = r"""
RCS
.+,v
CVS
\.\#.+       # CVS conflict files / emacs lock files
\.cvsignore
\.svn
_darcs
\.hg
\.git
\.gitignore
\.gitmodules
.+~          # emacs backup files
\#.*\#       # emacs autosave files
^/README.*
^/LICENSE.*
^/COPYING
"""


def parse_ignore_list(text: str) -> list[str]:
    """Regexes from an ignore file: one per line, ``#`` comments allowed."""
    patterns = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        line = re.sub(r"\s+#.+", "", line).replace("\\#", "#")
        patterns.append(line)
    return patterns


class IgnoreRules:
    """Decide which package paths stow leaves alone.

    Patterns without a ``/`` must match a whole path component; the
    others are searched in ``/<path from package root>``. A path is
    ignored when it or any of its parent directories is.
    """

    def __init__(self, patterns: list[str]):
        segment = [p for p in patterns if "/" not in p]
        path = [p for p in patterns if "/" in p]
        self._segment = re.compile(f"^({'|'.join(segment)})$") if segment else None
        self._path = re.compile(f"(^|/)({'|'.join(path)})(/|$)") if path else None

    @classmethod
    def for_package(cls, package_dir: Path) -> IgnoreRules:
        local = package_dir / LOCAL_IGNORE_FILE
        if local.is_file():
            return cls(parse_ignore_list(local.read_text()))
        return cls(parse_ignore_list(DEFAULT_IGNORE_LIST))

    def ignores(self, rel: Path) -> bool:
        parts = rel.parts
        for depth in range(1, len(parts) + 1):
            if self._path and self._path.search("/" + "/".join(parts[:depth])):
                return True
            if self._segment and self._segment.search(parts[depth - 1]):
                return True
        return False


class StowAdapter(Adapter):
    """Link dotfile packages into a target directory with GNU stow."""

    def __init__(self, runner: CommandRunner, home: Path | None = None, target: Path | None = None):
        super().__init__(runner, home)
        self.target = target or self.home

    @property
    def name(self) -> str:
        return "stow"

    def is_available(self) -> bool:
        return self.runner.which("stow") is not None

    def packages(self, dotfiles_dir: Path) -> list[str]:
        """Top-level package directories, hidden ones excluded."""
        if not dotfiles_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in dotfiles_dir.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def _package_files(self, package_dir: Path) -> list[Path]:
        rules = IgnoreRules.for_package(package_dir)
        files = []
        for path in package_dir.rglob("*"):
            if rules.ignores(path.relative_to(package_dir)):
                continue
            if path.is_file():
                files.append(path)
        return files

    def is_linked(self, dotfiles_dir: Path, package: str) -> bool:
        package_dir = dotfiles_dir / package
        if not package_dir.is_dir():
            return False
        for source in self._package_files(package_dir):
            link = self.target / source.relative_to(package_dir)
            if not link.exists():
                return False
            if link.resolve() != source.resolve():
                return False
        return True

    def all_linked(self, dotfiles_dir: Path) -> bool:
        packages = self.packages(dotfiles_dir)
        return all(self.is_linked(dotfiles_dir, p) for p in packages)

    def link(self, dotfiles_dir: Path, package: str) -> ApplyResult:
        """Restow one package: unstow (best effort), then stow."""
        self.runner.run(["stow", "-D", "-t", str(self.target), package], cwd=dotfiles_dir)
        result = self.runner.run(
            ["stow", "-v", "-t", str(self.target), package], cwd=dotfiles_dir
        )
        return self._result(result, f"linked {package}")

    def link_all(self, dotfiles_dir: Path) -> ApplyResult:
        """Link every package, reporting the ones that failed."""
        failed: list[str] = []
        linked: list[str] = []
        for package in self.packages(dotfiles_dir):
            logger.info("Stowing %s", package)
            outcome = self.link(dotfiles_dir, package)
            if outcome.ok:
                linked.append(package)
            else:
                logger.warning("Failed to stow %s: %s", package, outcome.message)
                failed.append(package)

        if failed:
            return ApplyResult.failure(
                f"failed to link: {', '.join(failed)}", linked=linked, failed=failed
            )
        return ApplyResult.success(f"linked {len(linked)} package(s)", linked=linked)
