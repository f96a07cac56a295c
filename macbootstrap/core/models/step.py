"""
Step and ApplyResult models — the provisioning contract.

A Step is one declarative unit of provisioning work: a pure check that
says whether the goal state already holds, and an apply action that
brings it about. Steps hold no state of their own. Everything they know
comes from the live system, queried through adapters.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

CheckFn = Callable[[], bool]
ApplyFn = Callable[[], "ApplyResult | bool | None"]


class ApplyResult(BaseModel):
    """Result of a step's apply action.

    Apply actions report failure here instead of raising. The engine
    still catches exceptions, but a returned failure keeps the
    diagnostic message intact.
    """

    ok: bool = True
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return not self.ok

    @classmethod
    def success(cls, message: str = "", **details: Any) -> ApplyResult:
        """Create a success result."""
        return cls(ok=True, message=message, details=details)

    @classmethod
    def failure(cls, message: str, **details: Any) -> ApplyResult:
        """Create a failure result."""
        return cls(ok=False, message=message, details=details)


@dataclass
class Step:
    """One provisioning step.

    Attributes:
        name: Unique identifier within a run (e.g. ``cask:firefox``).
        check: Pure predicate; True when the goal state already holds.
        apply: Mutating action; returns an ApplyResult (or bool / None).
        fatal: If True, a failed apply aborts the whole run.
        description: One-line human summary, used for plan listings.
        group: Catalog section the step belongs to (``casks``, ``runtimes``…).
        progress_index: 1-based position inside its group (reporting only).
        progress_total: Size of its group (reporting only).
    """

    name: str
    check: CheckFn | None
    apply: ApplyFn | None
    fatal: bool = False
    description: str = ""
    group: str = ""
    progress_index: int | None = None
    progress_total: int | None = None

    @property
    def progress_label(self) -> str:
        """``"[3/7] "`` when the step carries progress metadata, else ``""``."""
        if self.progress_index is None or self.progress_total is None:
            return ""
        return f"[{self.progress_index}/{self.progress_total}] "

    @property
    def label(self) -> str:
        return self.description or self.name
