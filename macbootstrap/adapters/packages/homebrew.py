"""
Homebrew adapter — the package manager everything else depends on.

The shellenv line written to the login profile only takes effect in new
shells, so the current run gets the prefix's bin and sbin directories put
on its own command search path instead: right after installing, and when
the registry finds Homebrew already installed.
"""

from __future__ import annotations

import logging
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.shell.command import CommandResult, CommandRunner
from macbootstrap.adapters.shell.filesystem import append_line_if_absent
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)

DEFAULT_INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"


class HomebrewAdapter(Adapter):
    """Install Homebrew, formulae, taps and casks.

    Args:
        runner: Command runner.
        home: Target home directory.
        prefix: Install prefix (``/opt/homebrew`` or ``/usr/local``).
        applications_dir: Where cask application bundles land.
        install_script_url: Official install script.
        shell_profile: File that receives the ``brew shellenv`` line.
    """

    def __init__(
        self,
        runner: CommandRunner,
        home: Path | None = None,
        prefix: str = "/opt/homebrew",
        applications_dir: Path = Path("/Applications"),
        install_script_url: str = DEFAULT_INSTALL_SCRIPT_URL,
        shell_profile: Path | None = None,
    ):
        super().__init__(runner, home)
        self.prefix = prefix
        self.applications_dir = applications_dir
        self.install_script_url = install_script_url
        self.shell_profile = shell_profile or self.home / ".zprofile"

    @property
    def name(self) -> str:
        return "homebrew"

    @property
    def brew_path(self) -> str | None:
        on_path = self.runner.which("brew")
        if on_path:
            return on_path
        candidate = Path(self.prefix) / "bin" / "brew"
        return str(candidate) if candidate.is_file() else None

    @property
    def shellenv_line(self) -> str:
        return f'eval "$({self.prefix}/bin/brew shellenv)"'

    @property
    def path_dirs(self) -> list[str]:
        return [f"{self.prefix}/bin", f"{self.prefix}/sbin"]

    def activate(self) -> None:
        """Make brew and the formulae it installs findable for this run."""
        self.runner.prepend_path(*self.path_dirs)

    def activate_if_installed(self) -> bool:
        if not (Path(self.prefix) / "bin" / "brew").is_file():
            return False
        self.activate()
        return True

    def is_available(self) -> bool:
        return self.brew_path is not None

    def _brew(self, *args: str) -> CommandResult:
        brew = self.brew_path
        if brew is None:
            return CommandResult(command=f"brew {' '.join(args)}", error="Homebrew is not installed")
        return self.runner.run([brew, *args])

    # ── Queries ──────────────────────────────────────────────────

    def has_formula(self, name: str) -> bool:
        return self._brew("list", name).ok

    def has_tap(self, tap: str) -> bool:
        result = self._brew("tap")
        if not result.ok:
            return False
        return tap.lower() in {line.strip().lower() for line in result.stdout.splitlines()}

    def has_app(self, app_name: str) -> bool:
        return (self.applications_dir / f"{app_name}.app").is_dir()

    def bundle_satisfied(self, brewfile: Path) -> bool:
        if not brewfile.is_file():
            return False
        return self._brew("bundle", "check", f"--file={brewfile}").ok

    # ── Actions ──────────────────────────────────────────────────

    def install_homebrew(self) -> ApplyResult:
        """Run the official installer, then put brew on the login PATH."""
        result = self.runner.run(
            ["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {self.install_script_url})"'],
            capture=False,
        )
        if not result.ok:
            return self._result(result)
        self.activate()

        try:
            append_line_if_absent(self.shell_profile, self.shellenv_line)
        except OSError as e:
            return ApplyResult.failure(f"Installed, but cannot update {self.shell_profile}: {e}")
        return ApplyResult.success(f"installed under {self.prefix}")

    def install_formula(self, name: str) -> ApplyResult:
        return self._result(self._brew("install", name), f"installed {name}")

    def tap(self, tap: str) -> ApplyResult:
        return self._result(self._brew("tap", tap), f"tapped {tap}")

    def install_cask(self, token: str) -> ApplyResult:
        return self._result(self._brew("install", "--cask", token), f"installed {token}")

    def bundle_install(self, brewfile: Path) -> ApplyResult:
        return self._result(
            self._brew("bundle", "install", f"--file={brewfile}"),
            f"bundle installed from {brewfile}",
        )
