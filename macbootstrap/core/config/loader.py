"""
Configuration loader — reads machine.yml into a MachineProfile.

This is the primary entry point for loading a machine profile. It reads
YAML, validates against the Pydantic schema, and returns a typed
profile. Without a profile file the built-in defaults are used.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from macbootstrap.core.models.profile import MachineProfile

logger = logging.getLogger(__name__)

# Default config filename and location
PROFILE_FILE = "machine.yml"
CONFIG_ENV_VAR = "MBS_CONFIG"


class ConfigError(Exception):
    """Raised when a machine profile is invalid or missing."""


def default_profile_path(home: Path | None = None) -> Path:
    """``~/.config/mac-bootstrap/machine.yml``."""
    return (home or Path.home()) / ".config" / "mac-bootstrap" / PROFILE_FILE


def find_profile_file(home: Path | None = None) -> Path | None:
    """Locate the profile to use when none is given explicitly.

    Looks at $MBS_CONFIG first, then the per-user default location.

    Returns:
        Path to the profile, or None to fall back to built-in defaults.
    """
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()

    candidate = default_profile_path(home)
    if candidate.is_file():
        return candidate
    return None


def load_profile(path: Path | None = None) -> MachineProfile:
    """Load and validate a machine profile.

    Args:
        path: Explicit path to machine.yml. If None, uses defaults.

    Returns:
        Validated MachineProfile.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        logger.info("No profile file, using built-in defaults")
        return MachineProfile()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading machine profile from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under a "machine" key or be flat
    profile_data = data["machine"] if "machine" in data else data
    if not isinstance(profile_data, dict):
        raise ConfigError(f"Expected 'machine' to be a mapping in {path}")

    try:
        profile = MachineProfile.model_validate(profile_data)
    except Exception as e:
        raise ConfigError(f"Invalid machine profile: {e}") from e

    logger.info(
        "Loaded profile '%s' (%d packages, %d casks, %d runtimes)",
        profile.name,
        len(profile.homebrew.packages),
        len(profile.homebrew.casks),
        len(profile.asdf.runtimes),
    )
    return profile
