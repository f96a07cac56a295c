"""
SSH key adapter — generate a keypair with ssh-keygen.

Overwriting an existing key is destructive, so ``generate`` asks first
through an injected ``confirm(prompt) -> bool``. The CLI wires it to a
terminal prompt or to a fixed answer (``--yes`` / ``--non-interactive``);
tests pass a stub.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from macbootstrap.adapters.base import Adapter
from macbootstrap.adapters.shell.command import CommandRunner
from macbootstrap.core.models.step import ApplyResult

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]


def decline(prompt: str) -> bool:
    """Non-interactive answer: never overwrite."""
    logger.info("Non-interactive mode, answering no: %s", prompt)
    return False


def public_key_path(private_key: Path) -> Path:
    return private_key.with_name(private_key.name + ".pub")


class SshKeyAdapter(Adapter):
    """Generate SSH keypairs."""

    def __init__(self, runner: CommandRunner, home: Path | None = None, confirm: Confirm = decline):
        super().__init__(runner, home)
        self._confirm = confirm

    @property
    def name(self) -> str:
        return "ssh_keys"

    def is_available(self) -> bool:
        return self.runner.which("ssh-keygen") is not None

    def has_keypair(self, private_key: Path) -> bool:
        return private_key.is_file() and public_key_path(private_key).is_file()

    def generate(self, private_key: Path, key_type: str = "ed25519", comment: str = "") -> ApplyResult:
        """Create a passphrase-less keypair at ``private_key``.

        An existing private or public key is only replaced after
        confirmation; declining leaves it untouched and fails the step.
        """
        public_key = public_key_path(private_key)
        if private_key.exists() or public_key.exists():
            if not self._confirm(f"SSH key {private_key} already exists. Overwrite?"):
                return ApplyResult.failure(f"kept existing key at {private_key}")
            private_key.unlink(missing_ok=True)
            public_key.unlink(missing_ok=True)

        try:
            private_key.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            return ApplyResult.failure(f"Cannot create {private_key.parent}: {e}")

        argv = ["ssh-keygen", "-t", key_type, "-f", str(private_key), "-N", ""]
        if comment:
            argv += ["-C", comment]
        return self._result(self.runner.run(argv), f"generated {public_key}")
