"""
Machine profile — what a bootstrap run installs.

Loaded from machine.yml (or taken from defaults), this is static
configuration data: package lists, casks, runtime versions, repository
URLs and target paths. Defaults reproduce the reference macOS setup.

Paths are stored as written (``~/dotfiles``) and expanded against the
target home directory with ``expand_path`` at step-building time, so a
profile can be validated without touching the host.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

ARM64_HOMEBREW_PREFIX = "/opt/homebrew"
INTEL_HOMEBREW_PREFIX = "/usr/local"


def expand_path(value: str, home: Path) -> Path:
    """Expand a leading ``~`` against ``home`` (not the process's $HOME)."""
    if value == "~":
        return home
    if value.startswith("~/"):
        return home / value[2:]
    return Path(value)


def homebrew_prefix(arch: str) -> str:
    """Homebrew install prefix for a CPU architecture (``uname -m``)."""
    return ARM64_HOMEBREW_PREFIX if arch == "arm64" else INTEL_HOMEBREW_PREFIX


class CaskEntry(BaseModel):
    """A Homebrew cask and the application bundle it installs.

    Accepts the compact form ``"nikitabobko/tap/aerospace|Aerospace"``.
    """

    token: str
    app: str

    @model_validator(mode="before")
    @classmethod
    def _parse_compact(cls, data: Any) -> Any:
        if isinstance(data, str):
            token, sep, app = data.partition("|")
            token = token.strip()
            return {"token": token, "app": app.strip() if sep else token}
        return data

    @property
    def tap(self) -> str | None:
        """``owner/tap`` for tapped casks, None for core casks."""
        if "/" not in self.token:
            return None
        return self.token.rsplit("/", 1)[0]

    @property
    def name(self) -> str:
        """Cask name without its tap prefix."""
        return self.token.rsplit("/", 1)[-1]


def _default_casks() -> list[CaskEntry]:
    return [
        CaskEntry.model_validate(entry)
        for entry in (
            "aws-vault|aws-vault",
            "raycast|Raycast",
            "visual-studio-code|Visual Studio Code",
            "shottr|Shottr",
            "ghostty|Ghostty",
            "lastpass|LastPass",
            "1password|1Password",
            "firefox|Firefox",
            "dbeaver-community|DBeaver Community",
            "nikitabobko/tap/aerospace|Aerospace",
        )
    ]


class HomebrewConfig(BaseModel):
    """Homebrew itself plus the formulae and casks installed through it."""

    install_script_url: str = (
        "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
    )
    shell_profile: str = "~/.zprofile"
    packages: list[str] = Field(
        default_factory=lambda: ["stow", "lazygit", "gh", "awscli", "tmux", "fd", "bruno"]
    )
    build_dependencies: list[str] = Field(
        default_factory=lambda: ["ninja", "cmake", "gettext", "curl", "ripgrep", "fzf"]
    )
    casks: list[CaskEntry] = Field(default_factory=_default_casks)
    applications_dir: str = "/Applications"


class RuntimeSpec(BaseModel):
    """A runtime installed through an asdf plugin."""

    plugin: str
    version: str

    @field_validator("plugin", "version")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class AsdfConfig(BaseModel):
    version: str = "v0.13.1"
    repo: str = "https://github.com/asdf-vm/asdf.git"
    dir: str = "~/.asdf"
    tool_versions_file: str = "~/.tool-versions"
    runtimes: list[RuntimeSpec] = Field(
        default_factory=lambda: [
            RuntimeSpec(plugin="nodejs", version="20.18.1"),
            RuntimeSpec(plugin="python", version="3.12.8"),
            RuntimeSpec(plugin="terraform", version="1.10.3"),
        ]
    )


class NeovimConfig(BaseModel):
    repo: str = "https://github.com/neovim/neovim"
    source_dir: str = "~/neovim"
    binary: str = "nvim"
    build_type: str = "RelWithDebInfo"


class DotfilesConfig(BaseModel):
    repo: str = "https://github.com/josh-jacobsen/dotfiles.git"
    dir: str = "~/dotfiles"


class FishConfig(BaseModel):
    formula: str = "fish"
    config_file: str = "~/.config/fish/config.fish"
    extra_config_lines: list[str] = Field(default_factory=list)


class TmuxThemeConfig(BaseModel):
    """Catppuccin theme for tmux, cloned at a pinned tag."""

    repo: str = "https://github.com/catppuccin/tmux.git"
    version: str = "v2.1.2"
    dir: str = "~/.config/tmux/plugins/catppuccin"


class SshKeyConfig(BaseModel):
    enabled: bool = False
    path: str = "~/.ssh/id_ed25519"
    key_type: str = "ed25519"
    comment: str = ""


class SshConfig(BaseModel):
    setup_script_url: str = (
        "https://raw.githubusercontent.com/josh-jacobsen/init/main/setup_github_ssh.fish"
    )
    setup_script_path: str = "~/setup_github_ssh.fish"
    key: SshKeyConfig = Field(default_factory=SshKeyConfig)


class MachineProfile(BaseModel):
    """Root profile — loaded from machine.yml.

    If something isn't declared here (or in the defaults), a bootstrap
    run doesn't install it.
    """

    version: int = 1
    name: str = "default"

    homebrew: HomebrewConfig = Field(default_factory=HomebrewConfig)
    asdf: AsdfConfig = Field(default_factory=AsdfConfig)
    neovim: NeovimConfig = Field(default_factory=NeovimConfig)
    dotfiles: DotfilesConfig = Field(default_factory=DotfilesConfig)
    fish: FishConfig = Field(default_factory=FishConfig)
    tmux_theme: TmuxThemeConfig = Field(default_factory=TmuxThemeConfig)
    ssh: SshConfig = Field(default_factory=SshConfig)

    use_brewfile: bool = False
    brewfile_path: str = "~/Brewfile"

    def get_runtime(self, plugin: str) -> RuntimeSpec | None:
        """Look up a runtime by plugin name."""
        for runtime in self.asdf.runtimes:
            if runtime.plugin == plugin:
                return runtime
        return None
