"""
mac-bootstrap — CLI entrypoint.

Usage:
    mac-bootstrap --help
    mac-bootstrap --dry-run
    mac-bootstrap --only casks --only dotfiles
    python -m macbootstrap.main --list-steps
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from macbootstrap import __version__
from macbootstrap.adapters.system.ssh_keys import Confirm, decline
from macbootstrap.core.models.step import Step
from macbootstrap.core.observability.logging_config import resolve_level, setup_logging
from macbootstrap.core.services.catalog import ALL_GROUPS


def _confirmer(assume_yes: bool, non_interactive: bool) -> Confirm:
    if assume_yes:
        return lambda prompt: True
    if non_interactive:
        return decline
    return lambda prompt: click.confirm(prompt, default=False)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="mac-bootstrap")
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to machine.yml (default: $MBS_CONFIG, ~/.config/mac-bootstrap/machine.yml, or built-in defaults).",
)
@click.option(
    "--only",
    "groups",
    multiple=True,
    type=click.Choice(ALL_GROUPS),
    help="Only run steps in this group (repeatable).",
)
@click.option("--list-steps", is_flag=True, help="Print the planned steps and exit.")
@click.option(
    "--use-brewfile/--no-brewfile",
    default=None,
    help="Install Homebrew packages with a generated Brewfile (overrides the profile).",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Answer yes to overwrite prompts.")
@click.option("--non-interactive", is_flag=True, help="Never prompt; answer no to overwrite prompts.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
def cli(
    dry_run: bool,
    config_path: Path | None,
    groups: tuple[str, ...],
    list_steps: bool,
    use_brewfile: bool | None,
    assume_yes: bool,
    non_interactive: bool,
    verbose: bool,
    quiet: bool,
    debug: bool,
) -> None:
    """Set up a macOS development machine, idempotently.

    Installs the Xcode Command Line Tools, Homebrew, fish (as the default
    shell), asdf with its runtimes, Neovim from source, CLI tools, GUI
    applications and dotfiles. Anything already in place is skipped, so
    it is safe to run repeatedly.

    Exit status is 0 when the run completes (even if some optional steps
    failed), 1 when a required step fails, and 2 on usage or
    configuration errors.
    """
    from macbootstrap.adapters.registry import build_default_registry
    from macbootstrap.core.config.loader import ConfigError, find_profile_file, load_profile
    from macbootstrap.core.use_cases.provision import plan_provision, run_provision

    setup_logging(level=resolve_level(debug=debug, verbose=verbose, quiet=quiet))

    try:
        profile = load_profile(config_path or find_profile_file())
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(2)

    registry = build_default_registry(profile, confirm=_confirmer(assume_yes, non_interactive))

    if list_steps:
        result = plan_provision(
            profile=profile,
            registry=registry,
            groups=groups,
            use_brewfile=use_brewfile,
        )
        if result.error:
            click.secho(f"❌ {result.error}", fg="red", err=True)
            sys.exit(2)
        _print_plan(result.steps, registry.adapter_status())
        return

    result = run_provision(
        profile=profile,
        registry=registry,
        groups=groups,
        use_brewfile=use_brewfile,
        dry_run=dry_run,
    )

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(result.exit_code)

    run = result.run
    assert run is not None  # guaranteed when there is no error

    if not run.completed:
        click.secho(f"❌ {run.error}", fg="red", err=True)
    elif run.had_warnings and not quiet:
        click.secho(
            f"⚠️  {run.failed_non_fatal} optional step(s) failed; see the log above.",
            fg="yellow",
            err=True,
        )

    if result.exit_code != 0:
        sys.exit(result.exit_code)


def _print_plan(steps: list[Step], adapters: dict[str, dict]) -> None:
    click.secho(f"\n📋 Planned steps: {len(steps)}", fg="cyan", bold=True)
    for number, step in enumerate(steps, start=1):
        fatal = click.style(" [required]", fg="red") if step.fatal else ""
        click.echo(f"   {number:>2}. {step.name}{fatal}  ({step.group}) {step.label}")

    click.echo()
    click.secho("   Adapters:", fg="white", bold=True)
    for name, info in adapters.items():
        marker = click.style("✓", fg="green") if info["available"] else click.style("✗", fg="red")
        click.echo(f"     {marker} {name}")
    click.echo()


if __name__ == "__main__":
    cli()
