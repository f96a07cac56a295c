"""
Brewfile rendering — the profile's Homebrew packages as one bundle.

An alternative to per-package steps: when ``use_brewfile`` is set, the
catalog writes this file and installs everything with ``brew bundle``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from macbootstrap.core.models.profile import MachineProfile

logger = logging.getLogger(__name__)


def unique_in_order(items: Iterable[str]) -> list[str]:
    """Drop repeated entries, keeping the first occurrence's position."""
    seen: set[str] = set()
    out = []
    for item in items:
        if item in seen:
            logger.debug("Dropping duplicate entry '%s'", item)
            continue
        seen.add(item)
        out.append(item)
    return out


def render_brewfile(profile: MachineProfile, path_hint: str | None = None) -> str:
    """Render the Brewfile for ``profile``.

    Taps come from tapped casks (``owner/tap/token``); formulae are the
    packages followed by the build dependencies, de-duplicated.
    """
    hb = profile.homebrew
    target = path_hint or profile.brewfile_path
    lines = [
        "# Generated Brewfile for macOS setup",
        f"# Usage: brew bundle install --file={target}",
        "",
        "# Taps",
    ]
    lines += [f'tap "{tap}"' for tap in unique_in_order(c.tap for c in hb.casks if c.tap)]
    lines += ["", "# Packages"]
    lines += [f'brew "{pkg}"' for pkg in unique_in_order([*hb.packages, *hb.build_dependencies])]
    lines += ["", "# Casks"]
    lines += [f'cask "{name}"' for name in unique_in_order(c.name for c in hb.casks)]
    return "\n".join(lines) + "\n"
