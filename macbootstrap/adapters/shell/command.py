"""
Command runner — the single place external programs are executed.

Every adapter runs its tools through a CommandRunner. It captures
output and never raises: timeouts, missing executables and OS errors
all come back as a failed CommandResult.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from collections.abc import Sequence

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Outcome of one external command."""

    command: str
    return_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    error: str | None = None
    duration_ms: int = 0
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None and self.return_code == 0

    @property
    def diagnostic(self) -> str:
        """Best single-line explanation of a failure."""
        if self.error:
            return self.error
        text = self.stderr.strip() or self.stdout.strip()
        if text:
            return text.splitlines()[-1]
        return f"'{self.command}' exited with code {self.return_code}"

    @classmethod
    def success(cls, command: str, stdout: str = "", **kwargs) -> CommandResult:
        return cls(command=command, return_code=0, stdout=stdout, **kwargs)

    @classmethod
    def failure(
        cls, command: str, return_code: int = 1, stderr: str = "", **kwargs
    ) -> CommandResult:
        return cls(command=command, return_code=return_code, stderr=stderr, **kwargs)


class CommandRunner:
    """Run external commands and capture their output.

    Commands run without a timeout unless one is given: some installers
    legitimately wait on a human (GUI dialogs, sudo prompts).

    Directories added with ``prepend_path`` go in front of the inherited
    PATH, both for looking up executables and in the child environment.
    Tools installed earlier in the run (Homebrew and its formulae) are
    then found by later commands without a new login shell.
    """

    def __init__(self, extra_path: Sequence[str] = ()):
        self.extra_path: list[str] = list(extra_path)

    def prepend_path(self, *dirs: str) -> None:
        """Put ``dirs`` (in order) at the front of the search path."""
        for directory in reversed(dirs):
            if directory in self.extra_path:
                self.extra_path.remove(directory)
            self.extra_path.insert(0, directory)
        logger.debug("Search path now starts with: %s", os.pathsep.join(self.extra_path))

    @property
    def search_path(self) -> str:
        inherited = os.environ.get("PATH", os.defpath)
        return os.pathsep.join([*self.extra_path, inherited])

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: str | os.PathLike[str] | None = None,
        env: dict[str, str] | None = None,
        input_text: str | None = None,
        timeout: float | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """Run ``argv`` and return a CommandResult.

        Args:
            argv: Program and arguments (no shell interpolation).
            cwd: Working directory.
            env: Extra environment variables, merged over os.environ.
            input_text: Text piped to stdin.
            timeout: Seconds before giving up (default: wait forever).
            capture: If False, stream output to the terminal (interactive
                installers, build logs).
        """
        command = shlex.join(argv)
        logger.debug("Executing: %s (cwd=%s)", command, cwd)

        full_env = None
        if env or self.extra_path:
            full_env = os.environ.copy()
            full_env["PATH"] = self.search_path
            full_env.update(env or {})

        start = time.monotonic()
        try:
            proc = subprocess.run(
                list(argv),
                cwd=cwd,
                env=full_env,
                input=input_text,
                capture_output=capture,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(command=command, error=f"Command timed out after {timeout}s")
        except FileNotFoundError:
            return CommandResult(command=command, error=f"Executable not found: {argv[0]}")
        except OSError as e:
            return CommandResult(command=command, error=f"Command execution error: {e}")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        result = CommandResult(
            command=command,
            return_code=proc.returncode,
            stdout=(proc.stdout or "").strip(),
            stderr=(proc.stderr or "").strip(),
            duration_ms=elapsed_ms,
        )
        if not result.ok:
            logger.debug("Command failed (%s): %s", result.return_code, command)
        return result

    def which(self, name: str) -> str | None:
        """Absolute path of an executable on PATH, or None."""
        return shutil.which(name, path=self.search_path)
