"""
Mock command runner — test double for every adapter.

Simulates external commands without touching the host. Responses are
configured per argv prefix (longest prefix wins); anything unconfigured
succeeds with empty output. ``which()`` answers from a configurable set
of executables, then from files placed in the directories the runner
has put on its search path.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable, Sequence
from typing import Any

from macbootstrap.adapters.shell.command import CommandResult, CommandRunner

Handler = Callable[..., CommandResult]


def _tokens(prefix: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(prefix, str):
        return tuple(shlex.split(prefix))
    return tuple(prefix)


class MockCommandRunner(CommandRunner):
    """CommandRunner that records calls and answers from a rule table.

    Rules are either fixed CommandResults or handlers. Handlers receive
    the argv and call kwargs and may change the mock's configuration,
    which is how tests simulate an install making a later query succeed.
    """

    def __init__(self, executables: dict[str, str] | None = None, strict_path: bool = False):
        super().__init__()
        self.strict_path = strict_path
        self._placed: set[str] = set()
        self._rules: dict[tuple[str, ...], CommandResult | Handler] = {}
        self._executables: dict[str, str] = dict(executables or {})
        self._call_log: list[list[str]] = []
        self._call_kwargs: list[dict[str, Any]] = []

    # ── Configuration ────────────────────────────────────────────

    def set_response(self, prefix: str | Sequence[str], result: CommandResult) -> None:
        """Return ``result`` for commands starting with ``prefix``."""
        self._rules[_tokens(prefix)] = result

    def set_failure(
        self, prefix: str | Sequence[str], stderr: str = "Mock failure", return_code: int = 1
    ) -> None:
        """Make commands starting with ``prefix`` fail."""
        tokens = _tokens(prefix)
        self._rules[tokens] = CommandResult.failure(
            shlex.join(tokens), return_code=return_code, stderr=stderr
        )

    def set_output(self, prefix: str | Sequence[str], stdout: str) -> None:
        """Make commands starting with ``prefix`` succeed with ``stdout``."""
        tokens = _tokens(prefix)
        self._rules[tokens] = CommandResult.success(shlex.join(tokens), stdout=stdout)

    def set_handler(self, prefix: str | Sequence[str], handler: Handler) -> None:
        """Compute the response for matching commands.

        The handler is called as ``handler(argv, **kwargs)`` with the same
        keyword arguments the adapter passed (cwd, env, input_text…).
        """
        self._rules[_tokens(prefix)] = handler

    def clear(self, prefix: str | Sequence[str]) -> None:
        """Remove a rule, so matching commands succeed again."""
        self._rules.pop(_tokens(prefix), None)

    def add_executable(self, name: str, path: str | None = None) -> None:
        self._executables[name] = path or f"/usr/local/bin/{name}"

    def remove_executable(self, name: str) -> None:
        self._executables.pop(name, None)

    def place_executable(self, path: str) -> None:
        """Create an executable at ``path`` without putting it on PATH.

        ``which()`` finds it only once its directory is on the search path.
        """
        self._placed.add(path)

    # ── Introspection ────────────────────────────────────────────

    @property
    def call_log(self) -> list[list[str]]:
        """Every argv this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_matching(self, prefix: str | Sequence[str]) -> list[list[str]]:
        tokens = _tokens(prefix)
        return [argv for argv in self._call_log if tuple(argv[: len(tokens)]) == tokens]

    def ran(self, prefix: str | Sequence[str]) -> bool:
        return bool(self.calls_matching(prefix))

    def kwargs_for(self, call_index: int) -> dict[str, Any]:
        """Keyword arguments (cwd, env, input_text…) of a recorded call."""
        return self._call_kwargs[call_index]

    def reset(self) -> None:
        """Clear the call log (rules and executables are kept)."""
        self._call_log.clear()
        self._call_kwargs.clear()

    # ── CommandRunner interface ──────────────────────────────────

    def run(self, argv: Sequence[str], **kwargs: Any) -> CommandResult:
        argv = list(argv)
        self._call_log.append(argv)
        self._call_kwargs.append(kwargs)

        if self.strict_path and "/" not in argv[0] and self.which(argv[0]) is None:
            return CommandResult(command=shlex.join(argv), error=f"Executable not found: {argv[0]}")

        rule = self._match(argv)
        if rule is None:
            return CommandResult.success(shlex.join(argv))
        if isinstance(rule, CommandResult):
            return rule.model_copy(update={"command": shlex.join(argv)})
        return rule(argv, **kwargs)

    def which(self, name: str) -> str | None:
        if name in self._executables:
            return self._executables[name]
        for directory in self.extra_path:
            candidate = f"{directory}/{name}"
            if candidate in self._placed:
                return candidate
        return None

    def _match(self, argv: list[str]) -> CommandResult | Handler | None:
        best: tuple[str, ...] | None = None
        for tokens in self._rules:
            if tuple(argv[: len(tokens)]) == tokens and (best is None or len(tokens) > len(best)):
                best = tokens
        return self._rules[best] if best is not None else None
