"""
Shared test fixtures and configuration.
"""

from datetime import datetime
from pathlib import Path

import pytest

from macbootstrap.adapters.mock import MockCommandRunner
from macbootstrap.core.engine.reporter import ProgressReporter
from tests.simulated_host import SimulatedMac

FIXED_TIME = datetime(2024, 5, 1, 9, 12, 44)


class CollectingReporter(ProgressReporter):
    """ProgressReporter that keeps its lines instead of printing them."""

    def __init__(self):
        self.lines: list[str] = []
        super().__init__(echo=self.lines.append, clock=lambda: FIXED_TIME)

    def text(self) -> str:
        return "\n".join(self.lines)


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Return a temporary home directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def runner() -> MockCommandRunner:
    return MockCommandRunner()


@pytest.fixture
def reporter() -> CollectingReporter:
    return CollectingReporter()


@pytest.fixture
def mac(tmp_path: Path) -> SimulatedMac:
    """A fresh simulated Mac with nothing installed."""
    return SimulatedMac(tmp_path / "mac")
