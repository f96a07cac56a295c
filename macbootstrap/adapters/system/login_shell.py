"""
Login-shell adapter — /etc/shells registration and the user's default shell.

The current default is read from the passwd database rather than
$SHELL, since $SHELL is inherited from the parent process and goes
stale the moment chsh succeeds.
"""

from __future__ import annotations

import logging
import os
import pwd
from collections.abc import Callable
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.shell.command import CommandRunner
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)

SHELLS_FILE = Path("/etc/shells")


def _passwd_shell() -> str:
    return pwd.getpwuid(os.getuid()).pw_shell


class LoginShellAdapter(Adapter):
    """Register login shells and change the user's default shell.

    Args:
        runner: Command runner.
        home: Target home directory.
        shells_file: Allowed-shells list (default ``/etc/shells``).
        user_shell: Returns the current user's login shell.
    """

    def __init__(
        self,
        runner: CommandRunner,
        home: Path | None = None,
        shells_file: Path = SHELLS_FILE,
        user_shell: Callable[[], str] | None = None,
    ):
        super().__init__(runner, home)
        self.shells_file = shells_file
        self._user_shell = user_shell or _passwd_shell

    @property
    def name(self) -> str:
        return "login_shell"

    def is_available(self) -> bool:
        return self.runner.which("chsh") is not None

    def allowed_shells(self) -> list[str]:
        try:
            text = self.shells_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        return [
            line.strip()
            for line in text.splitlines()
            if line.strip() and not line.strip().startswith("#")
        ]

    def is_allowed(self, shell_path: str) -> bool:
        return shell_path in self.allowed_shells()

    def current_shell(self) -> str:
        return self._user_shell()

    def is_default(self, shell_path: str) -> bool:
        return self.current_shell() == shell_path

    def register(self, shell_path: str) -> ApplyResult:
        """Append ``shell_path`` to the allowed-shells file (needs sudo)."""
        if self.is_allowed(shell_path):
            return ApplyResult.success("already registered")
        result = self.runner.run(
            ["sudo", "tee", "-a", str(self.shells_file)],
            input_text=f"{shell_path}\n",
        )
        return self._result(result, f"added {shell_path} to {self.shells_file}")

    def set_default(self, shell_path: str) -> ApplyResult:
        # chsh prompts for the user's password, so it needs the terminal.
        result = self.runner.run(["chsh", "-s", shell_path], capture=False)
        return self._result(result, f"default shell is now {shell_path}")
