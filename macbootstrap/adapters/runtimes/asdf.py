"""
asdf adapter — version-managed language runtimes.

asdf is a git checkout rather than a package, so "installing asdf" is a
clone (done through the git adapter). Once present, the ``asdf`` script
in its ``bin`` directory is invoked directly with ASDF_DIR set, which
works without sourcing asdf.sh into the current shell.

The global version is read from ``~/.tool-versions`` instead of running
``asdf current``, which keeps the check a plain file read.
"""

from __future__ import annotations

import logging
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.shell.command import CommandResult, CommandRunner
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)


def parse_tool_versions(text: str) -> dict[str, list[str]]:
    """Parse a .tool-versions file into ``{plugin: [versions…]}``."""
    versions: dict[str, list[str]] = {}
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        plugin, *rest = line.split()
        if rest:
            versions[plugin] = rest
    return versions


class AsdfAdapter(Adapter):
    """Manage asdf plugins and runtime versions.

    Args:
        runner: Command runner.
        home: Target home directory.
        asdf_dir: The asdf checkout (default ``~/.asdf``).
        tool_versions: Global versions file (default ``~/.tool-versions``).
    """

    def __init__(
        self,
        runner: CommandRunner,
        home: Path | None = None,
        asdf_dir: Path | None = None,
        tool_versions: Path | None = None,
    ):
        super().__init__(runner, home)
        self.asdf_dir = asdf_dir or self.home / ".asdf"
        self.tool_versions = tool_versions or self.home / ".tool-versions"

    @property
    def name(self) -> str:
        return "asdf"

    def is_installed(self) -> bool:
        return self.asdf_dir.is_dir()

    def is_available(self) -> bool:
        return (self.asdf_dir / "bin" / "asdf").is_file()

    def _asdf(self, *args: str) -> CommandResult:
        return self.runner.run(
            [str(self.asdf_dir / "bin" / "asdf"), *args],
            env={"ASDF_DIR": str(self.asdf_dir)},
        )

    # ── Queries ──────────────────────────────────────────────────

    def has_plugin(self, plugin: str) -> bool:
        result = self._asdf("plugin", "list")
        return result.ok and plugin in {line.strip() for line in result.stdout.splitlines()}

    def has_version(self, plugin: str, version: str) -> bool:
        result = self._asdf("list", plugin)
        if not result.ok:
            return False
        # Installed versions are listed indented; the current one is starred.
        return version in {line.strip().lstrip("*").strip() for line in result.stdout.splitlines()}

    def global_version(self, plugin: str) -> str | None:
        if not self.tool_versions.is_file():
            return None
        versions = parse_tool_versions(self.tool_versions.read_text(encoding="utf-8"))
        found = versions.get(plugin)
        return found[0] if found else None

    def runtime_ready(self, plugin: str, version: str) -> bool:
        """Plugin present, version installed, and selected globally."""
        return (
            self.is_installed()
            and self.global_version(plugin) == version
            and self.has_plugin(plugin)
            and self.has_version(plugin, version)
        )

    # ── Actions ──────────────────────────────────────────────────

    def add_plugin(self, plugin: str) -> ApplyResult:
        return self._result(self._asdf("plugin", "add", plugin), f"added plugin {plugin}")

    def install_version(self, plugin: str, version: str) -> ApplyResult:
        return self._result(
            self._asdf("install", plugin, version), f"installed {plugin} {version}"
        )

    def set_global(self, plugin: str, version: str) -> ApplyResult:
        return self._result(
            self._asdf("global", plugin, version), f"{plugin} {version} set as global"
        )

    def ensure_runtime(self, plugin: str, version: str) -> ApplyResult:
        """Add the plugin, install the version and select it, skipping done parts."""
        if not self.has_plugin(plugin):
            added = self.add_plugin(plugin)
            if added.failed:
                return added
        if not self.has_version(plugin, version):
            installed = self.install_version(plugin, version)
            if installed.failed:
                return installed
        selected = self.set_global(plugin, version)
        if selected.failed:
            return selected
        return ApplyResult.success(f"{plugin} {version}")
