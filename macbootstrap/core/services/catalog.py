"""
Step catalog — turn a machine profile into an ordered step list.

The order mirrors what each tool needs before it: the Command Line
Tools before Homebrew, Homebrew before anything installed through it,
asdf before runtimes, stow before dotfiles. Those prerequisites are
fatal; everything after them is an independent convenience and is not.

Steps are built once per run. Host facts that only exist after an
earlier step (e.g. where fish ends up) are resolved lazily inside the
check/apply closures, never at build time.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from macbootstrap.adapters.build.source_build import SourceBuildAdapter
from macbootstrap.adapters.dotfiles.stow import StowAdapter
from macbootstrap.adapters.packages.homebrew import HomebrewAdapter
from macbootstrap.adapters.packages.xcode import XcodeToolsAdapter
from macbootstrap.adapters.registry import AdapterRegistry
from macbootstrap.adapters.runtimes.asdf import AsdfAdapter
from macbootstrap.adapters.shell.filesystem import ConfigFileAdapter, DownloadAdapter
from macbootstrap.adapters.system.login_shell import LoginShellAdapter
from macbootstrap.adapters.system.ssh_keys import SshKeyAdapter
from macbootstrap.adapters.vcs.git import GitAdapter
from macbootstrap.core.engine.runner import ConfigurationError
from macbootstrap.core.models.profile import (
    CaskEntry,
    MachineProfile,
    RuntimeSpec,
    expand_path,
    homebrew_prefix,
)
from macbootstrap.core.models.step import ApplyResult, Step
from macbootstrap.core.services.brewfile import render_brewfile, unique_in_order

logger = logging.getLogger(__name__)

# Catalog groups, in run order.
GROUP_PREREQUISITES = "prerequisites"
GROUP_SHELL = "shell"
GROUP_ASDF = "asdf"
GROUP_BREWFILE = "brewfile"
GROUP_BUILD_DEPS = "build-deps"
GROUP_RUNTIMES = "runtimes"
GROUP_NEOVIM = "neovim"
GROUP_PACKAGES = "packages"
GROUP_CASKS = "casks"
GROUP_DOTFILES = "dotfiles"
GROUP_FISH_CONFIG = "fish-config"
GROUP_TMUX_THEME = "tmux-theme"
GROUP_SSH = "ssh"

ALL_GROUPS = (
    GROUP_PREREQUISITES,
    GROUP_SHELL,
    GROUP_ASDF,
    GROUP_BREWFILE,
    GROUP_BUILD_DEPS,
    GROUP_RUNTIMES,
    GROUP_NEOVIM,
    GROUP_PACKAGES,
    GROUP_CASKS,
    GROUP_DOTFILES,
    GROUP_FISH_CONFIG,
    GROUP_TMUX_THEME,
    GROUP_SSH,
)


def _numbered(steps: list[Step]) -> list[Step]:
    """Attach ``[i/n]`` progress metadata to a group of steps."""
    total = len(steps)
    for i, step in enumerate(steps, start=1):
        step.progress_index = i
        step.progress_total = total
    return steps


class _Catalog:
    """Builds steps from a profile against one adapter registry."""

    def __init__(self, profile: MachineProfile, registry: AdapterRegistry):
        self.profile = profile
        self.home = registry.home
        self.prefix = homebrew_prefix(registry.arch)

        self.xcode = registry.require("xcode", XcodeToolsAdapter)
        self.brew = registry.require("homebrew", HomebrewAdapter)
        self.asdf = registry.require("asdf", AsdfAdapter)
        self.git = registry.require("git", GitAdapter)
        self.source_build = registry.require("source_build", SourceBuildAdapter)
        self.stow = registry.require("stow", StowAdapter)
        self.login_shell = registry.require("login_shell", LoginShellAdapter)
        self.config_file = registry.require("config_file", ConfigFileAdapter)
        self.download = registry.require("download", DownloadAdapter)
        self.ssh_keys = registry.require("ssh_keys", SshKeyAdapter)

    def path(self, value: str) -> Path:
        return expand_path(value, self.home)

    # ── Prerequisites (fatal) ────────────────────────────────────

    def prerequisites(self) -> list[Step]:
        return [
            Step(
                name="xcode-clt",
                description="Xcode Command Line Tools",
                group=GROUP_PREREQUISITES,
                fatal=True,
                check=self.xcode.is_installed,
                apply=self.xcode.install,
            ),
            Step(
                name="homebrew",
                description="Homebrew",
                group=GROUP_PREREQUISITES,
                fatal=True,
                check=self.brew.is_available,
                apply=self.brew.install_homebrew,
            ),
        ]

    def fish_path(self) -> str:
        return self.brew.runner.which("fish") or f"{self.prefix}/bin/fish"

    def shell(self) -> list[Step]:
        formula = self.profile.fish.formula

        def fish_installed() -> bool:
            return self.brew.runner.which("fish") is not None or self.brew.has_formula(formula)

        return [
            Step(
                name="fish",
                description="Fish shell",
                group=GROUP_SHELL,
                fatal=True,
                check=fish_installed,
                apply=lambda: self.brew.install_formula(formula),
            ),
            Step(
                name="fish-allowed-shell",
                description="Fish in allowed login shells",
                group=GROUP_SHELL,
                fatal=True,
                check=lambda: self.login_shell.is_allowed(self.fish_path()),
                apply=lambda: self.login_shell.register(self.fish_path()),
            ),
            Step(
                name="fish-default-shell",
                description="Fish as default shell",
                group=GROUP_SHELL,
                fatal=True,
                check=lambda: self.login_shell.is_default(self.fish_path()),
                apply=lambda: self.login_shell.set_default(self.fish_path()),
            ),
        ]

    def asdf_install(self) -> list[Step]:
        cfg = self.profile.asdf
        return [
            Step(
                name="asdf",
                description=f"asdf {cfg.version}",
                group=GROUP_ASDF,
                fatal=True,
                check=self.asdf.is_installed,
                apply=lambda: self.git.clone(cfg.repo, self.asdf.asdf_dir, branch=cfg.version),
            )
        ]

    # ── Homebrew packages ────────────────────────────────────────

    def brewfile(self) -> list[Step]:
        brewfile = self.path(self.profile.brewfile_path)
        content = render_brewfile(self.profile, path_hint=str(brewfile))

        def check() -> bool:
            if not brewfile.is_file() or brewfile.read_text(encoding="utf-8") != content:
                return False
            return self.brew.bundle_satisfied(brewfile)

        def apply() -> ApplyResult:
            try:
                brewfile.parent.mkdir(parents=True, exist_ok=True)
                brewfile.write_text(content, encoding="utf-8")
            except OSError as e:
                return ApplyResult.failure(f"Cannot write {brewfile}: {e}")
            return self.brew.bundle_install(brewfile)

        return [
            Step(
                name="brewfile",
                description=f"Brewfile bundle ({brewfile})",
                group=GROUP_BREWFILE,
                check=check,
                apply=apply,
            )
        ]

    def _formula_step(self, name: str, prefix: str, group: str) -> Step:
        return Step(
            name=f"{prefix}:{name}",
            description=name,
            group=group,
            check=lambda: self.brew.has_formula(name),
            apply=lambda: self.brew.install_formula(name),
        )

    def build_dependencies(self) -> list[Step]:
        return _numbered([
            self._formula_step(dep, "build-dep", GROUP_BUILD_DEPS)
            for dep in unique_in_order(self.profile.homebrew.build_dependencies)
        ])

    def packages(self) -> list[Step]:
        return _numbered([
            self._formula_step(pkg, "package", GROUP_PACKAGES)
            for pkg in unique_in_order(self.profile.homebrew.packages)
        ])

    def _cask_step(self, entry: CaskEntry) -> Step:
        def apply() -> ApplyResult:
            if entry.tap and not self.brew.has_tap(entry.tap):
                tapped = self.brew.tap(entry.tap)
                if tapped.failed:
                    logger.info("Tap %s failed, installing anyway: %s", entry.tap, tapped.message)
            return self.brew.install_cask(entry.token)

        return Step(
            name=f"cask:{entry.name}",
            description=entry.app,
            group=GROUP_CASKS,
            check=lambda: self.brew.has_app(entry.app),
            apply=apply,
        )

    def casks(self) -> list[Step]:
        seen: set[str] = set()
        entries = []
        for entry in self.profile.homebrew.casks:
            if entry.name not in seen:
                seen.add(entry.name)
                entries.append(entry)
        return _numbered([self._cask_step(e) for e in entries])

    # ── Runtimes and editor ──────────────────────────────────────

    def _runtime_step(self, runtime: RuntimeSpec) -> Step:
        return Step(
            name=f"runtime:{runtime.plugin}",
            description=f"{runtime.plugin} {runtime.version}",
            group=GROUP_RUNTIMES,
            check=lambda: self.asdf.runtime_ready(runtime.plugin, runtime.version),
            apply=lambda: self.asdf.ensure_runtime(runtime.plugin, runtime.version),
        )

    def runtimes(self) -> list[Step]:
        seen: set[str] = set()
        steps = []
        for runtime in self.profile.asdf.runtimes:
            if runtime.plugin in seen:
                logger.debug("Dropping duplicate runtime '%s'", runtime.plugin)
                continue
            seen.add(runtime.plugin)
            steps.append(self._runtime_step(runtime))
        return _numbered(steps)

    def neovim(self) -> list[Step]:
        cfg = self.profile.neovim
        return [
            Step(
                name="neovim",
                description="Neovim (built from source)",
                group=GROUP_NEOVIM,
                check=lambda: self.source_build.is_installed(cfg.binary),
                apply=lambda: self.source_build.build_and_install(
                    cfg.repo,
                    self.path(cfg.source_dir),
                    make_args=[f"CMAKE_BUILD_TYPE={cfg.build_type}"],
                ),
            )
        ]

    # ── Dotfiles and shell configuration ─────────────────────────

    def dotfiles(self) -> list[Step]:
        cfg = self.profile.dotfiles
        dotfiles_dir = self.path(cfg.dir)

        def check() -> bool:
            return dotfiles_dir.is_dir() and self.stow.all_linked(dotfiles_dir)

        def apply() -> ApplyResult:
            if dotfiles_dir.is_dir():
                logger.info("Dotfiles directory already exists at %s", dotfiles_dir)
            else:
                cloned = self.git.clone(cfg.repo, dotfiles_dir)
                if cloned.failed:
                    return cloned
            return self.stow.link_all(dotfiles_dir)

        return [
            Step(
                name="dotfiles",
                description=f"Dotfiles ({cfg.repo})",
                group=GROUP_DOTFILES,
                check=check,
                apply=apply,
            )
        ]

    def fish_config(self) -> list[Step]:
        cfg = self.profile.fish
        config_file = self.path(cfg.config_file)
        lines = unique_in_order([
            f"fish_add_path {self.prefix}/bin",
            f"source {self.profile.asdf.dir}/asdf.fish",
            *cfg.extra_config_lines,
        ])

        def step(index: int, line: str) -> Step:
            return Step(
                name=f"fish-config:{index}",
                description=f"Fish config: {line}",
                group=GROUP_FISH_CONFIG,
                check=lambda: self.config_file.contains_line(config_file, line),
                apply=lambda: self.config_file.append_line(config_file, line),
            )

        return _numbered([step(i, line) for i, line in enumerate(lines, start=1)])

    def tmux_theme(self) -> list[Step]:
        cfg = self.profile.tmux_theme
        checkout = self.path(cfg.dir) / "tmux"
        return [
            Step(
                name="tmux-catppuccin",
                description=f"Catppuccin for tmux {cfg.version}",
                group=GROUP_TMUX_THEME,
                check=checkout.is_dir,
                apply=lambda: self.git.clone(cfg.repo, checkout, branch=cfg.version),
            )
        ]

    def ssh(self) -> list[Step]:
        cfg = self.profile.ssh
        script = self.path(cfg.setup_script_path)
        steps = [
            Step(
                name="ssh-setup-script",
                description=f"SSH setup script ({script})",
                group=GROUP_SSH,
                check=lambda: self.download.exists(script),
                apply=lambda: self.download.fetch(cfg.setup_script_url, script, executable=True),
            )
        ]
        if cfg.key.enabled:
            key = self.path(cfg.key.path)
            steps.append(
                Step(
                    name="ssh-key",
                    description=f"SSH key ({key})",
                    group=GROUP_SSH,
                    check=lambda: self.ssh_keys.has_keypair(key),
                    apply=lambda: self.ssh_keys.generate(key, cfg.key.key_type, cfg.key.comment),
                )
            )
        return steps

    def build(self) -> list[Step]:
        steps = [*self.prerequisites(), *self.shell(), *self.asdf_install()]
        if self.profile.use_brewfile:
            steps += self.brewfile()
        else:
            steps += self.build_dependencies()
        steps += self.runtimes()
        steps += self.neovim()
        if not self.profile.use_brewfile:
            steps += self.packages()
            steps += self.casks()
        steps += self.dotfiles()
        steps += self.fish_config()
        steps += self.tmux_theme()
        steps += self.ssh()
        return steps


def build_steps(profile: MachineProfile, registry: AdapterRegistry) -> list[Step]:
    """Build the full, ordered step list for ``profile``.

    Raises:
        KeyError: A required adapter is missing from ``registry``.
    """
    steps = _Catalog(profile, registry).build()
    logger.info("Built %d step(s) for profile '%s'", len(steps), profile.name)
    return steps


def select_groups(steps: Sequence[Step], groups: Iterable[str]) -> list[Step]:
    """Keep only steps in ``groups``, preserving order.

    Raises:
        ConfigurationError: A group name is unknown.
    """
    wanted = set(groups)
    unknown = wanted - set(ALL_GROUPS)
    if unknown:
        raise ConfigurationError(
            f"Unknown step group(s): {', '.join(sorted(unknown))}. "
            f"Valid: {', '.join(ALL_GROUPS)}"
        )
    return [s for s in steps if s.group in wanted]
