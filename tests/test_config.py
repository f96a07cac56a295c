"""
Tests for configuration loading and logging setup.
"""

import logging
import textwrap
from pathlib import Path

import pytest

from macbootstrap.core.config.loader import (
    CONFIG_ENV_VAR,
    ConfigError,
    default_profile_path,
    find_profile_file,
    load_profile,
)
from macbootstrap.core.observability.logging_config import resolve_level, setup_logging


class TestLoadProfile:
    def test_no_path_uses_defaults(self):
        profile = load_profile(None)
        assert profile.name == "default"

    def test_wrapped_profile(self, tmp_path: Path):
        content = textwrap.dedent("""\
            machine:
              name: work-laptop
              homebrew:
                packages: [jq, gh]
                casks:
                  - "firefox|Firefox"
                  - token: nikitabobko/tap/aerospace
                    app: Aerospace
              asdf:
                runtimes:
                  - plugin: golang
                    version: 1.22.0
              ssh:
                key:
                  enabled: true
                  comment: me@example.com
        """)
        path = tmp_path / "machine.yml"
        path.write_text(content)

        profile = load_profile(path)

        assert profile.name == "work-laptop"
        assert profile.homebrew.packages == ["jq", "gh"]
        assert [c.app for c in profile.homebrew.casks] == ["Firefox", "Aerospace"]
        assert profile.asdf.runtimes[0].plugin == "golang"
        assert profile.ssh.key.enabled is True

    def test_flat_profile(self, tmp_path: Path):
        path = tmp_path / "machine.yml"
        path.write_text("name: flat\nuse_brewfile: true\n")
        profile = load_profile(path)
        assert profile.name == "flat"
        assert profile.use_brewfile is True

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "machine.yml"
        path.write_text("")
        assert load_profile(path).name == "default"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_profile(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "machine.yml"
        path.write_text("homebrew: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_profile(path)

    def test_non_mapping_root(self, tmp_path: Path):
        path = tmp_path / "machine.yml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_profile(path)

    def test_non_mapping_machine(self, tmp_path: Path):
        path = tmp_path / "machine.yml"
        path.write_text("machine: laptop\n")
        with pytest.raises(ConfigError, match="'machine' to be a mapping"):
            load_profile(path)

    def test_validation_error(self, tmp_path: Path):
        path = tmp_path / "machine.yml"
        path.write_text("asdf:\n  runtimes:\n    - plugin: nodejs\n")
        with pytest.raises(ConfigError, match="Invalid machine profile"):
            load_profile(path)


class TestFindProfileFile:
    def test_env_var_wins(self, tmp_path: Path, monkeypatch):
        target = tmp_path / "elsewhere.yml"
        monkeypatch.setenv(CONFIG_ENV_VAR, str(target))
        assert find_profile_file(home=tmp_path) == target

    def test_default_location(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        path = default_profile_path(tmp_path)
        path.parent.mkdir(parents=True)
        path.write_text("name: mine\n")
        assert find_profile_file(home=tmp_path) == path

    def test_nothing_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert find_profile_file(home=tmp_path) is None


# ── Logging ──────────────────────────────────────────────────────────


class TestLogging:
    def test_flag_precedence(self, monkeypatch):
        monkeypatch.setenv("MBS_LOG_LEVEL", "INFO")
        assert resolve_level(debug=True, verbose=True, quiet=True) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True) == "INFO"
        assert resolve_level(quiet=True) == "ERROR"
        assert resolve_level() == "INFO"

    def test_default_level(self, monkeypatch):
        monkeypatch.delenv("MBS_LOG_LEVEL", raising=False)
        assert resolve_level() == "WARNING"

    def test_console_level(self):
        setup_logging("ERROR")
        assert logging.getLogger("macbootstrap").level == logging.ERROR

    def test_unknown_level_falls_back(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_log_file(self, tmp_path: Path):
        log_file = tmp_path / "bootstrap.log"
        setup_logging("WARNING", log_file=str(log_file))

        logging.getLogger("macbootstrap.test").debug("fine detail")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "fine detail" in log_file.read_text()
        # The file wants DEBUG, so the package logger lets it through
        assert logging.getLogger("macbootstrap").level == logging.DEBUG

        for handler in list(logging.getLogger().handlers):
            handler.close()
        logging.getLogger().handlers.clear()
