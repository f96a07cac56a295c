"""
Tests for adapters — command runner, mock runner, registry, and each tool adapter.
"""

import os
from pathlib import Path

import pytest

from macbootstrap.adapters.build.source_build import SourceBuildAdapter
from macbootstrap.adapters.dotfiles.stow import (
    DEFAULT_IGNORE_LIST,
    LOCAL_IGNORE_FILE,
    IgnoreRules,
    StowAdapter,
    parse_ignore_list,
)
from macbootstrap.adapters.mock import MockCommandRunner
from macbootstrap.adapters.packages.homebrew import HomebrewAdapter
from macbootstrap.adapters.packages.xcode import XcodeToolsAdapter
from macbootstrap.adapters.registry import AdapterRegistry, build_default_registry
from macbootstrap.adapters.runtimes.asdf import AsdfAdapter, parse_tool_versions
from macbootstrap.adapters.shell.command import CommandResult, CommandRunner
from macbootstrap.adapters.shell.filesystem import (
    ConfigFileAdapter,
    DownloadAdapter,
    append_line_if_absent,
    file_contains_line,
)
from macbootstrap.adapters.system.login_shell import LoginShellAdapter
from macbootstrap.adapters.system.ssh_keys import SshKeyAdapter
from macbootstrap.adapters.vcs.git import GitAdapter
from macbootstrap.core.models.profile import MachineProfile

BREW = "/opt/homebrew/bin/brew"


# ── Command runner ───────────────────────────────────────────────────


class TestCommandRunner:
    def test_success_captures_stdout(self):
        result = CommandRunner().run(["sh", "-c", "echo hello"])
        assert result.ok
        assert result.stdout == "hello"

    def test_failure_keeps_return_code(self):
        result = CommandRunner().run(["sh", "-c", "echo nope >&2; exit 3"])
        assert not result.ok
        assert result.return_code == 3
        assert result.diagnostic == "nope"

    def test_missing_executable_does_not_raise(self):
        result = CommandRunner().run(["definitely-not-a-real-tool-xyz"])
        assert not result.ok
        assert "Executable not found" in result.error

    def test_timeout(self):
        result = CommandRunner().run(["sh", "-c", "sleep 5"], timeout=0.1)
        assert not result.ok
        assert "timed out" in result.error

    def test_stdin_and_env(self, tmp_path: Path):
        result = CommandRunner().run(
            ["sh", "-c", 'cat; echo "$MBS_TEST"'],
            input_text="from stdin\n",
            env={"MBS_TEST": "from env"},
            cwd=tmp_path,
        )
        assert result.stdout == "from stdin\nfrom env"

    def test_diagnostic_fallback(self):
        result = CommandResult.failure("brew install x", return_code=2)
        assert result.diagnostic == "'brew install x' exited with code 2"

    def test_prepended_dirs_are_searched_first(self, tmp_path: Path):
        tool = tmp_path / "bin" / "mbs-prefixed-tool"
        tool.parent.mkdir()
        tool.write_text("#!/bin/sh\necho from prefix\n")
        tool.chmod(0o755)
        runner = CommandRunner()
        assert runner.which("mbs-prefixed-tool") is None

        runner.prepend_path(str(tool.parent))

        assert runner.which("mbs-prefixed-tool") == str(tool)
        assert runner.run(["mbs-prefixed-tool"]).stdout == "from prefix"
        child_path = runner.run(["sh", "-c", 'echo "$PATH"']).stdout
        assert child_path.startswith(str(tool.parent) + os.pathsep)

    def test_prepend_path_moves_known_dir_to_front(self):
        runner = CommandRunner(extra_path=["/a"])
        runner.prepend_path("/b", "/a")
        assert runner.extra_path == ["/b", "/a"]


class TestMockCommandRunner:
    def test_unconfigured_commands_succeed(self, runner):
        assert runner.run(["brew", "install", "gh"]).ok
        assert runner.call_log == [["brew", "install", "gh"]]

    def test_longest_prefix_wins(self, runner):
        runner.set_failure("brew install")
        runner.set_output("brew install gh", "ok")
        assert runner.run(["brew", "install", "gh"]).stdout == "ok"
        assert not runner.run(["brew", "install", "jq"]).ok

    def test_handler_receives_kwargs(self, runner):
        seen = {}

        def handler(argv, **kwargs):
            seen.update(kwargs)
            return CommandResult.success("x")

        runner.set_handler(["sudo", "tee"], handler)
        runner.run(["sudo", "tee", "-a", "/etc/shells"], input_text="/bin/fish\n")
        assert seen["input_text"] == "/bin/fish\n"
        assert runner.kwargs_for(0) == {"input_text": "/bin/fish\n"}

    def test_introspection(self, runner):
        runner.run(["git", "clone", "a"])
        runner.run(["git", "pull"])
        assert runner.call_count == 2
        assert runner.ran("git clone")
        assert len(runner.calls_matching(["git"])) == 2
        runner.reset()
        assert runner.call_count == 0

    def test_clear_rule(self, runner):
        runner.set_failure("make")
        runner.clear("make")
        assert runner.run(["make"]).ok

    def test_which(self, runner):
        assert runner.which("fish") is None
        runner.add_executable("fish")
        assert runner.which("fish") == "/usr/local/bin/fish"
        runner.remove_executable("fish")
        assert runner.which("fish") is None

    def test_placed_executable_needs_its_dir_on_path(self, runner):
        runner.place_executable("/opt/homebrew/bin/stow")
        assert runner.which("stow") is None
        runner.prepend_path("/opt/homebrew/bin", "/opt/homebrew/sbin")
        assert runner.which("stow") == "/opt/homebrew/bin/stow"

    def test_strict_path_rejects_unresolved_commands(self):
        runner = MockCommandRunner(strict_path=True)
        result = runner.run(["stow", "-v", "git"])
        assert result.error == "Executable not found: stow"
        assert runner.run(["/bin/bash", "-c", "true"]).ok
        runner.add_executable("stow")
        assert runner.run(["stow", "-v", "git"]).ok


# ── Registry ─────────────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_register_and_require(self, runner, home):
        registry = AdapterRegistry(home=home, arch="arm64")
        git = GitAdapter(runner, home)
        registry.register(git)
        assert registry.get("git") is git
        assert registry.require("git", GitAdapter) is git
        assert registry.list_adapters() == ["git"]

    def test_require_missing(self, home):
        with pytest.raises(KeyError, match="stow"):
            AdapterRegistry(home=home).require("stow", StowAdapter)

    def test_require_wrong_type(self, runner, home):
        registry = AdapterRegistry(home=home)
        registry.register(GitAdapter(runner, home))
        with pytest.raises(TypeError, match="expected StowAdapter"):
            registry.require("git", StowAdapter)

    def test_unregister(self, runner, home):
        registry = AdapterRegistry(home=home)
        registry.register(GitAdapter(runner, home))
        registry.unregister("git")
        assert registry.get("git") is None

    def test_default_registry(self, runner, home):
        registry = build_default_registry(MachineProfile(), runner=runner, home=home, arch="x86_64")
        assert set(registry.list_adapters()) == {
            "git", "xcode", "homebrew", "asdf", "source_build", "stow",
            "login_shell", "config_file", "download", "ssh_keys",
        }
        brew = registry.require("homebrew", HomebrewAdapter)
        assert brew.prefix == "/usr/local"
        assert brew.shell_profile == home / ".zprofile"
        assert registry.require("asdf", AsdfAdapter).asdf_dir == home / ".asdf"

    def test_adapter_status(self, runner, home):
        runner.add_executable("git")
        registry = build_default_registry(MachineProfile(), runner=runner, home=home, arch="arm64")
        status = registry.adapter_status()
        assert status["git"]["available"] is True
        assert status["stow"]["available"] is False
        assert status["config_file"]["type"] == "ConfigFileAdapter"


# ── Xcode ────────────────────────────────────────────────────────────


class TestXcodeToolsAdapter:
    def test_already_installed(self, runner):
        adapter = XcodeToolsAdapter(runner)
        assert adapter.is_installed()
        assert adapter.install().message == "already installed"
        assert not runner.ran("xcode-select --install")

    def test_install_polls_until_present(self, runner):
        polls = []
        runner.set_failure("xcode-select -p")

        def sleep(seconds):
            polls.append(seconds)
            if len(polls) == 3:
                runner.set_output("xcode-select -p", "/Library/Developer/CommandLineTools")

        adapter = XcodeToolsAdapter(runner, poll_interval=2, sleep=sleep)
        result = adapter.install()

        assert result.ok
        assert polls == [2, 2, 2]
        assert runner.ran("xcode-select --install")
        assert runner.ran("sudo xcodebuild -license accept")
        assert "/Library/Developer/CommandLineTools" in result.message

    def test_license_failure_is_tolerated(self, runner):
        runner.set_failure("xcode-select -p")

        def sleep(seconds):
            runner.clear("xcode-select -p")

        runner.set_failure("sudo xcodebuild")
        assert XcodeToolsAdapter(runner, sleep=sleep).install().ok


# ── Homebrew ─────────────────────────────────────────────────────────


class TestHomebrewAdapter:
    def _adapter(self, runner, home, tmp_path):
        runner.add_executable("brew", BREW)
        return HomebrewAdapter(runner, home, applications_dir=tmp_path / "Applications")

    def test_not_installed(self, runner, home):
        adapter = HomebrewAdapter(runner, home, prefix=str(home / "nowhere"))
        assert not adapter.is_available()
        result = adapter.install_formula("gh")
        assert result.failed
        assert result.message == "Homebrew is not installed"
        assert runner.call_count == 0

    def test_prefix_fallback(self, runner, home):
        (home / "brew" / "bin").mkdir(parents=True)
        (home / "brew" / "bin" / "brew").write_text("")
        adapter = HomebrewAdapter(runner, home, prefix=str(home / "brew"))
        assert adapter.brew_path == str(home / "brew" / "bin" / "brew")

    def test_has_formula(self, runner, home, tmp_path):
        adapter = self._adapter(runner, home, tmp_path)
        runner.set_failure([BREW, "list", "gh"], stderr="Error: No such keg")
        assert not adapter.has_formula("gh")
        assert adapter.has_formula("jq")

    def test_has_tap(self, runner, home, tmp_path):
        adapter = self._adapter(runner, home, tmp_path)
        runner.set_output([BREW, "tap"], "homebrew/bundle\nnikitabobko/tap")
        assert adapter.has_tap("nikitabobko/tap")
        assert not adapter.has_tap("other/tap")

    def test_has_app(self, runner, home, tmp_path):
        adapter = self._adapter(runner, home, tmp_path)
        assert not adapter.has_app("Firefox")
        (tmp_path / "Applications" / "Firefox.app").mkdir(parents=True)
        assert adapter.has_app("Firefox")

    def test_install_cask(self, runner, home, tmp_path):
        adapter = self._adapter(runner, home, tmp_path)
        result = adapter.install_cask("nikitabobko/tap/aerospace")
        assert result.ok
        assert runner.call_log[-1] == [BREW, "install", "--cask", "nikitabobko/tap/aerospace"]

    def test_install_failure_carries_diagnostic(self, runner, home, tmp_path):
        adapter = self._adapter(runner, home, tmp_path)
        runner.set_failure([BREW, "install", "bruno"], stderr="Error: bruno: no bottle")
        result = adapter.install_formula("bruno")
        assert result.failed
        assert result.message == "Error: bruno: no bottle"
        assert result.details["return_code"] == 1

    def test_install_homebrew_updates_profile(self, runner, home):
        adapter = HomebrewAdapter(runner, home)
        result = adapter.install_homebrew()
        assert result.ok
        assert runner.call_log[0][:2] == ["/bin/bash", "-c"]
        assert "install.sh" in runner.call_log[0][2]
        assert runner.kwargs_for(0) == {"capture": False}
        assert file_contains_line(home / ".zprofile", 'eval "$(/opt/homebrew/bin/brew shellenv)"')

        adapter.install_homebrew()
        assert (home / ".zprofile").read_text().count("shellenv") == 1

    def test_install_homebrew_puts_prefix_on_search_path(self, runner, home):
        runner.place_executable("/opt/homebrew/bin/stow")
        adapter = HomebrewAdapter(runner, home)
        assert adapter.install_homebrew().ok
        assert runner.extra_path == ["/opt/homebrew/bin", "/opt/homebrew/sbin"]
        assert runner.which("stow") == "/opt/homebrew/bin/stow"

    def test_activate_if_installed(self, runner, home):
        prefix = home / "brew"
        adapter = HomebrewAdapter(runner, home, prefix=str(prefix))
        assert not adapter.activate_if_installed()
        assert runner.extra_path == []

        (prefix / "bin").mkdir(parents=True)
        (prefix / "bin" / "brew").write_text("")
        assert adapter.activate_if_installed()
        assert runner.extra_path == [str(prefix / "bin"), str(prefix / "sbin")]

    def test_install_homebrew_failure(self, runner, home):
        runner.set_failure("/bin/bash", stderr="curl: (6) Could not resolve host")
        result = HomebrewAdapter(runner, home).install_homebrew()
        assert result.failed
        assert not (home / ".zprofile").exists()
        assert runner.extra_path == []

    def test_bundle(self, runner, home, tmp_path):
        adapter = self._adapter(runner, home, tmp_path)
        brewfile = home / "Brewfile"
        assert not adapter.bundle_satisfied(brewfile)
        brewfile.write_text('brew "gh"\n')
        assert adapter.bundle_satisfied(brewfile)
        assert adapter.bundle_install(brewfile).ok
        assert runner.call_log[-1] == [BREW, "bundle", "install", f"--file={brewfile}"]


# ── Git and source builds ────────────────────────────────────────────


class TestGitAdapter:
    def test_clone_with_branch(self, runner, home):
        dest = home / "a" / "b"
        result = GitAdapter(runner, home).clone("https://x/repo.git", dest, branch="v1")
        assert result.ok
        assert dest.parent.is_dir()
        assert runner.call_log[0] == ["git", "clone", "--branch", "v1", "https://x/repo.git", str(dest)]

    def test_is_repo(self, runner, home):
        git = GitAdapter(runner, home)
        assert not git.is_repo(home)
        (home / ".git").mkdir()
        assert git.is_repo(home)

    def test_pull_runs_in_checkout(self, runner, home):
        GitAdapter(runner, home).pull(home)
        assert runner.kwargs_for(0) == {"cwd": home}


class TestSourceBuildAdapter:
    def test_fresh_build(self, runner, home):
        src = home / "neovim"
        result = SourceBuildAdapter(runner, home).build_and_install(
            "https://github.com/neovim/neovim", src, make_args=["CMAKE_BUILD_TYPE=Release"]
        )
        assert result.ok
        assert runner.call_log == [
            ["git", "clone", "https://github.com/neovim/neovim", str(src)],
            ["make", "CMAKE_BUILD_TYPE=Release"],
            ["sudo", "make", "install"],
        ]

    def test_existing_checkout_is_pulled(self, runner, home):
        src = home / "neovim"
        (src / ".git").mkdir(parents=True)
        SourceBuildAdapter(runner, home).build_and_install("url", src, sudo_install=False)
        assert runner.call_log[0] == ["git", "pull"]
        assert runner.call_log[-1] == ["make", "install"]

    def test_existing_plain_directory_is_built_as_is(self, runner, home):
        src = home / "neovim"
        src.mkdir()
        (src / "Makefile").write_text("all:\n")
        result = SourceBuildAdapter(runner, home).build_and_install("url", src)
        assert result.ok
        assert not runner.ran("git")
        assert runner.call_log[0] == ["make"]

    def test_build_failure_stops_before_install(self, runner, home):
        runner.set_failure("make", stderr="cmake not found")
        result = SourceBuildAdapter(runner, home).build_and_install("url", home / "src")
        assert result.message == "build failed: cmake not found"
        assert not runner.ran("sudo make install")

    def test_install_failure(self, runner, home):
        runner.set_failure("sudo make install", stderr="sudo: a password is required")
        result = SourceBuildAdapter(runner, home).build_and_install("url", home / "src")
        assert result.message == "install failed: sudo: a password is required"

    def test_is_installed(self, runner, home):
        adapter = SourceBuildAdapter(runner, home)
        assert not adapter.is_installed("nvim")
        runner.add_executable("nvim")
        assert adapter.is_installed("nvim")


# ── asdf ─────────────────────────────────────────────────────────────


class TestAsdfAdapter:
    def _adapter(self, runner, home):
        (home / ".asdf" / "bin").mkdir(parents=True)
        (home / ".asdf" / "bin" / "asdf").write_text("")
        return AsdfAdapter(runner, home)

    def test_parse_tool_versions(self):
        text = "nodejs 20.18.1\n# comment\npython 3.12.8 3.11.9  # two\n\nbroken\n"
        assert parse_tool_versions(text) == {
            "nodejs": ["20.18.1"],
            "python": ["3.12.8", "3.11.9"],
        }

    def test_invokes_checkout_binary(self, runner, home):
        adapter = self._adapter(runner, home)
        adapter.add_plugin("nodejs")
        assert runner.call_log[0] == [str(home / ".asdf" / "bin" / "asdf"), "plugin", "add", "nodejs"]
        assert runner.kwargs_for(0) == {"env": {"ASDF_DIR": str(home / ".asdf")}}

    def test_has_version_ignores_star(self, runner, home):
        adapter = self._adapter(runner, home)
        runner.set_output([str(adapter.asdf_dir / "bin" / "asdf"), "list", "nodejs"], "  18.0.0\n *20.18.1")
        assert adapter.has_version("nodejs", "20.18.1")
        assert not adapter.has_version("nodejs", "22.0.0")

    def test_runtime_ready_requires_global(self, runner, home):
        adapter = self._adapter(runner, home)
        asdf = str(adapter.asdf_dir / "bin" / "asdf")
        runner.set_output([asdf, "plugin", "list"], "nodejs")
        runner.set_output([asdf, "list", "nodejs"], "  20.18.1")
        assert not adapter.runtime_ready("nodejs", "20.18.1")

        (home / ".tool-versions").write_text("nodejs 20.18.1\n")
        assert adapter.runtime_ready("nodejs", "20.18.1")
        assert not adapter.runtime_ready("nodejs", "22.0.0")

    def test_runtime_not_ready_without_asdf(self, runner, home):
        (home / ".tool-versions").write_text("nodejs 20.18.1\n")
        assert not AsdfAdapter(runner, home).runtime_ready("nodejs", "20.18.1")
        assert runner.call_count == 0

    def test_ensure_runtime_skips_done_parts(self, runner, home):
        adapter = self._adapter(runner, home)
        asdf = str(adapter.asdf_dir / "bin" / "asdf")
        runner.set_output([asdf, "plugin", "list"], "nodejs")

        assert adapter.ensure_runtime("nodejs", "20.18.1").ok

        assert not runner.ran([asdf, "plugin", "add"])
        assert runner.ran([asdf, "install", "nodejs", "20.18.1"])
        assert runner.ran([asdf, "global", "nodejs", "20.18.1"])

    def test_ensure_runtime_stops_on_failure(self, runner, home):
        adapter = self._adapter(runner, home)
        asdf = str(adapter.asdf_dir / "bin" / "asdf")
        runner.set_failure([asdf, "plugin", "add"], stderr="plugin not found")
        result = adapter.ensure_runtime("nope", "1.0")
        assert result.message == "plugin not found"
        assert not runner.ran([asdf, "install"])


# ── Stow ─────────────────────────────────────────────────────────────


class TestStowAdapter:
    def _dotfiles(self, home: Path) -> Path:
        dotfiles = home / "dotfiles"
        (dotfiles / "git").mkdir(parents=True)
        (dotfiles / "git" / ".gitconfig").write_text("[user]\n")
        (dotfiles / "git" / "README.md").write_text("docs\n")
        (dotfiles / ".git").mkdir()
        return dotfiles

    def test_packages_skip_hidden(self, runner, home):
        dotfiles = self._dotfiles(home)
        assert StowAdapter(runner, home).packages(dotfiles) == ["git"]

    def test_is_linked(self, runner, home):
        dotfiles = self._dotfiles(home)
        stow = StowAdapter(runner, home)
        assert not stow.is_linked(dotfiles, "git")

        (home / ".gitconfig").symlink_to(dotfiles / "git" / ".gitconfig")
        assert stow.is_linked(dotfiles, "git")
        assert stow.all_linked(dotfiles)

    def test_stow_default_ignores(self, runner, home):
        dotfiles = self._dotfiles(home)
        (dotfiles / "git" / ".gitconfig~").write_text("backup\n")
        (dotfiles / "git" / "#.gitconfig#").write_text("autosave\n")
        (dotfiles / "git" / ".svn").mkdir()
        (dotfiles / "git" / ".svn" / "entries").write_text("")
        (home / ".gitconfig").symlink_to(dotfiles / "git" / ".gitconfig")
        assert StowAdapter(runner, home).is_linked(dotfiles, "git")

    def test_ds_store_is_not_ignored(self, runner, home):
        dotfiles = self._dotfiles(home)
        (dotfiles / "git" / ".DS_Store").write_text("")
        (home / ".gitconfig").symlink_to(dotfiles / "git" / ".gitconfig")
        assert not StowAdapter(runner, home).is_linked(dotfiles, "git")

    def test_local_ignore_file_replaces_defaults(self, runner, home):
        dotfiles = self._dotfiles(home)
        package = dotfiles / "git"
        (package / LOCAL_IGNORE_FILE).write_text("# mine\n\\.stow-local-ignore\n^/notes   # scratch\n")
        (package / "notes").mkdir()
        (package / "notes" / "todo.txt").write_text("")
        (home / ".gitconfig").symlink_to(package / ".gitconfig")
        stow = StowAdapter(runner, home)
        # README.md is only ignored by the default list
        assert not stow.is_linked(dotfiles, "git")
        (home / "README.md").symlink_to(package / "README.md")
        assert stow.is_linked(dotfiles, "git")

    def test_ignore_rules(self):
        rules = IgnoreRules(parse_ignore_list(DEFAULT_IGNORE_LIST))
        assert rules.ignores(Path("README.md"))
        assert not rules.ignores(Path(".config/README.md"))
        assert rules.ignores(Path(".config/nvim/init.lua~"))
        assert rules.ignores(Path(".git/config"))
        assert not rules.ignores(Path(".gitconfig"))
        assert not rules.ignores(Path(".DS_Store"))

    def test_foreign_file_is_not_linked(self, runner, home):
        dotfiles = self._dotfiles(home)
        (home / ".gitconfig").write_text("mine\n")
        assert not StowAdapter(runner, home).is_linked(dotfiles, "git")

    def test_link_restows(self, runner, home):
        dotfiles = self._dotfiles(home)
        result = StowAdapter(runner, home).link(dotfiles, "git")
        assert result.ok
        assert runner.call_log == [
            ["stow", "-D", "-t", str(home), "git"],
            ["stow", "-v", "-t", str(home), "git"],
        ]
        assert runner.kwargs_for(1) == {"cwd": dotfiles}

    def test_link_all_reports_failures(self, runner, home):
        dotfiles = self._dotfiles(home)
        (dotfiles / "fish").mkdir()
        runner.set_failure(["stow", "-v", "-t", str(home), "fish"], stderr="conflict")
        result = StowAdapter(runner, home).link_all(dotfiles)
        assert result.failed
        assert result.message == "failed to link: fish"
        assert result.details["linked"] == ["git"]


# ── Login shell ──────────────────────────────────────────────────────


class TestLoginShellAdapter:
    def _adapter(self, runner, tmp_path, current="/bin/zsh"):
        shells = tmp_path / "shells"
        shells.write_text("# allowed\n/bin/bash\n/bin/zsh\n")
        return LoginShellAdapter(runner, shells_file=shells, user_shell=lambda: current)

    def test_allowed_shells(self, runner, tmp_path):
        adapter = self._adapter(runner, tmp_path)
        assert adapter.allowed_shells() == ["/bin/bash", "/bin/zsh"]
        assert adapter.is_allowed("/bin/zsh")
        assert not adapter.is_allowed("/opt/homebrew/bin/fish")

    def test_missing_shells_file(self, runner, tmp_path):
        adapter = LoginShellAdapter(runner, shells_file=tmp_path / "none", user_shell=lambda: "")
        assert adapter.allowed_shells() == []

    def test_register_pipes_path_to_tee(self, runner, tmp_path):
        adapter = self._adapter(runner, tmp_path)
        result = adapter.register("/opt/homebrew/bin/fish")
        assert result.ok
        assert runner.call_log[0] == ["sudo", "tee", "-a", str(tmp_path / "shells")]
        assert runner.kwargs_for(0) == {"input_text": "/opt/homebrew/bin/fish\n"}

    def test_register_already_allowed(self, runner, tmp_path):
        adapter = self._adapter(runner, tmp_path)
        assert adapter.register("/bin/zsh").message == "already registered"
        assert runner.call_count == 0

    def test_default_shell(self, runner, tmp_path):
        adapter = self._adapter(runner, tmp_path, current="/opt/homebrew/bin/fish")
        assert adapter.is_default("/opt/homebrew/bin/fish")
        assert not adapter.is_default("/bin/zsh")

    def test_set_default(self, runner, tmp_path):
        adapter = self._adapter(runner, tmp_path)
        assert adapter.set_default("/opt/homebrew/bin/fish").ok
        assert runner.call_log[0] == ["chsh", "-s", "/opt/homebrew/bin/fish"]


# ── Files, downloads, SSH keys ───────────────────────────────────────


class TestConfigFiles:
    def test_append_creates_file(self, tmp_path: Path):
        path = tmp_path / "fish" / "config.fish"
        assert append_line_if_absent(path, "fish_add_path /opt/homebrew/bin")
        assert path.read_text() == "fish_add_path /opt/homebrew/bin\n"

    def test_append_is_idempotent(self, tmp_path: Path):
        path = tmp_path / "config.fish"
        path.write_text("  source ~/.asdf/asdf.fish  \n")
        assert not append_line_if_absent(path, "source ~/.asdf/asdf.fish")
        assert path.read_text().count("asdf.fish") == 1

    def test_append_adds_missing_newline(self, tmp_path: Path):
        path = tmp_path / "config.fish"
        path.write_text("set -x EDITOR nvim")
        append_line_if_absent(path, "set -x PAGER less")
        assert path.read_text() == "set -x EDITOR nvim\nset -x PAGER less\n"

    def test_adapter_messages(self, runner, tmp_path: Path):
        adapter = ConfigFileAdapter(runner)
        path = tmp_path / "config.fish"
        assert not adapter.contains_line(path, "x")
        assert adapter.append_line(path, "x").message.startswith("added to")
        assert adapter.append_line(path, "x").message.startswith("already in")
        assert adapter.contains_line(path, "x")


class TestDownloadAdapter:
    def test_fetch_executable(self, runner, tmp_path: Path):
        dest = tmp_path / "bin" / "setup.fish"

        def curl(argv, **kwargs):
            Path(argv[3]).write_text("echo hi\n")
            return CommandResult.success("curl")

        runner.set_handler("curl", curl)
        result = DownloadAdapter(runner).fetch("https://example.com/s.fish", dest, executable=True)

        assert result.ok
        partial = dest.with_name("setup.fish.part")
        assert runner.call_log[0] == [
            "curl", "-fsSL", "-o", str(partial), "https://example.com/s.fish",
        ]
        assert dest.read_text() == "echo hi\n"
        assert dest.stat().st_mode & 0o111
        assert not partial.exists()
        assert DownloadAdapter(runner).exists(dest)

    def test_fetch_failure(self, runner, tmp_path: Path):
        runner.set_failure("curl", stderr="curl: (22) 404", return_code=22)
        result = DownloadAdapter(runner).fetch("https://x", tmp_path / "s")
        assert result.failed
        assert result.details["return_code"] == 22

    def test_interrupted_download_is_retried(self, runner, tmp_path: Path):
        dest = tmp_path / "setup.fish"

        def broken_curl(argv, **kwargs):
            Path(argv[3]).write_text("echo hal")
            return CommandResult.failure("curl", return_code=18, stderr="curl: (18) transfer closed")

        runner.set_handler("curl", broken_curl)
        adapter = DownloadAdapter(runner)
        result = adapter.fetch("https://x", dest)

        assert result.failed
        assert list(tmp_path.iterdir()) == []
        assert not adapter.exists(dest)

        def curl(argv, **kwargs):
            Path(argv[3]).write_text("echo hello\n")
            return CommandResult.success("curl")

        runner.set_handler("curl", curl)
        assert adapter.fetch("https://x", dest).ok
        assert dest.read_text() == "echo hello\n"


class TestSshKeyAdapter:
    def _keygen(self, runner):
        def keygen(argv, **kwargs):
            key = Path(argv[argv.index("-f") + 1])
            key.write_text("private")
            key.with_name(key.name + ".pub").write_text("public")
            return CommandResult.success("ssh-keygen")

        runner.set_handler("ssh-keygen", keygen)

    def test_generate(self, runner, home):
        self._keygen(runner)
        key = home / ".ssh" / "id_ed25519"
        adapter = SshKeyAdapter(runner, home)

        result = adapter.generate(key, comment="me@example.com")

        assert result.ok
        assert adapter.has_keypair(key)
        assert runner.call_log[0] == [
            "ssh-keygen", "-t", "ed25519", "-f", str(key), "-N", "", "-C", "me@example.com",
        ]
        assert (home / ".ssh").stat().st_mode & 0o777 == 0o700

    def test_no_comment_flag_without_comment(self, runner, home):
        SshKeyAdapter(runner, home).generate(home / ".ssh" / "id_rsa", key_type="rsa")
        assert "-C" not in runner.call_log[0]

    def test_existing_key_declined(self, runner, home):
        key = home / ".ssh" / "id_ed25519"
        key.parent.mkdir()
        key.write_text("old")
        prompts = []

        def confirm(prompt):
            prompts.append(prompt)
            return False

        result = SshKeyAdapter(runner, home, confirm=confirm).generate(key)

        assert result.failed
        assert result.message == f"kept existing key at {key}"
        assert key.read_text() == "old"
        assert runner.call_count == 0
        assert "Overwrite?" in prompts[0]

    def test_existing_key_overwritten_on_confirm(self, runner, home):
        self._keygen(runner)
        key = home / ".ssh" / "id_ed25519"
        key.parent.mkdir()
        key.with_name("id_ed25519.pub").write_text("old")

        result = SshKeyAdapter(runner, home, confirm=lambda prompt: True).generate(key)

        assert result.ok
        assert key.read_text() == "private"
