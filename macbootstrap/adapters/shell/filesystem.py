"""
Filesystem adapters — small text config files and downloaded files.

``ConfigFileAdapter`` appends a line to a config file only when it is
not already there, so it is safe to re-apply. ``DownloadAdapter`` fetches
a URL to a path with curl.
"""

from __future__ import annotations

import logging
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)


def file_contains_line(path: Path, line: str) -> bool:
    """Whether ``path`` has a line equal to ``line`` (ignoring surrounding space)."""
    if not path.is_file():
        return False
    wanted = line.strip()
    with path.open("r", encoding="utf-8", errors="replace") as f:
        return any(existing.strip() == wanted for existing in f)


def append_line_if_absent(path: Path, line: str) -> bool:
    """Append ``line`` to ``path`` unless present. Returns True if written.

    Creates the file and its parent directories when missing.
    """
    if file_contains_line(path, line):
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    needs_newline = False
    if path.is_file():
        existing = path.read_bytes()
        needs_newline = bool(existing) and not existing.endswith(b"\n")

    with path.open("a", encoding="utf-8") as f:
        if needs_newline:
            f.write("\n")
        f.write(line.rstrip("\n") + "\n")
    logger.debug("Appended to %s: %s", path, line)
    return True


class ConfigFileAdapter(Adapter):
    """Append-if-absent edits to small text configuration files."""

    @property
    def name(self) -> str:
        return "config_file"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def contains_line(self, path: Path, line: str) -> bool:
        return file_contains_line(path, line)

    def append_line(self, path: Path, line: str) -> ApplyResult:
        try:
            written = append_line_if_absent(path, line)
        except OSError as e:
            return ApplyResult.failure(f"Cannot update {path}: {e}")
        if not written:
            return ApplyResult.success(f"already in {path}")
        return ApplyResult.success(f"added to {path}")


class DownloadAdapter(Adapter):
    """Download files with curl."""

    @property
    def name(self) -> str:
        return "download"

    def is_available(self) -> bool:
        return self.runner.which("curl") is not None

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def fetch(self, url: str, dest: Path, executable: bool = False) -> ApplyResult:
        """Download ``url`` to ``dest``, optionally marking it executable.

        curl writes to ``<dest>.part``, which is moved onto ``dest`` only
        after a complete transfer. An interrupted download never leaves a
        file at ``dest`` for ``exists()`` to mistake for a finished one.
        """
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ApplyResult.failure(f"Cannot create {dest.parent}: {e}")

        partial = dest.with_name(dest.name + ".part")
        result = self.runner.run(["curl", "-fsSL", "-o", str(partial), url])
        if not result.ok:
            partial.unlink(missing_ok=True)
            return self._result(result)

        try:
            if executable:
                partial.chmod(0o755)
            partial.replace(dest)
        except OSError as e:
            partial.unlink(missing_ok=True)
            return ApplyResult.failure(f"Downloaded but cannot install {dest}: {e}")

        return ApplyResult.success(f"saved to {dest}")
