"""
binswap — CLI entrypoint.

Usage:
    sudo binswap install
    sudo binswap uninstall
    binswap status
    binswap config check
    binswap history
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from binswap import __version__
from binswap.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    ENV_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="binswap")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to binswap.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """binswap — install a rebuilt system utility, and put the original back."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get(ENV_LEVEL)),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


def _print_failure(error: str | None, remediation: list[str]) -> None:
    click.secho(f"❌ {error}", fg="red")
    for line in remediation:
        click.echo(f"   {line}")


def _print_plan(plan, dry_run: bool) -> None:
    for warning in plan.warnings:
        click.secho(f"   ⚠️  {warning}", fg="yellow")
    for action in plan.actions:
        prefix = "[dry-run] would " if dry_run else "→ "
        click.echo(f"   {prefix}{action.description}")


# ── install ─────────────────────────────────────────────────────────


@cli.command()
@click.option("--dry-run", is_flag=True, help="Check and plan, but build and change nothing.")
@click.pass_context
def install(ctx: click.Context, dry_run: bool) -> None:
    """Build the tool and install it, backing up the current binary."""
    from binswap.core.use_cases.install import run_install

    quiet = ctx.obj.get("quiet", False)
    if not quiet:
        click.secho("==> Starting installation", fg="cyan", bold=True)

    result = run_install(config_path=ctx.obj.get("config_path"), dry_run=dry_run)

    if result.preflight and not quiet:
        for check in result.preflight.checks:
            marker = "✓" if check.ok else "✗"
            click.echo(f"   {marker} {check.name}: {check.message}")

    if not result.ok:
        _print_failure(result.error, result.remediation)
        sys.exit(1)

    transition = result.transition
    assert transition is not None and transition.plan is not None
    loaded = result.loaded
    assert loaded is not None
    layout = loaded.layout

    _print_plan(transition.plan, dry_run)

    if dry_run:
        click.secho("==> Dry run complete. Nothing was changed.", fg="yellow", bold=True)
        return

    click.secho("==> Installation complete.", fg="green", bold=True)
    click.echo(f"   {transition.plan.message}")
    click.echo()
    click.echo("Verify with:")
    click.echo(f"  which {layout.install_path.name}")
    click.echo()
    click.echo("Rollback (if needed):")
    click.echo("  sudo binswap uninstall")
    if transition.state_after and transition.state_after.backup.exists:
        click.echo(f"  (or manually: sudo mv {layout.backup_path} {layout.install_path})")


# ── uninstall ───────────────────────────────────────────────────────


@cli.command()
@click.option("--dry-run", is_flag=True, help="Show what would happen without changing anything.")
@click.pass_context
def uninstall(ctx: click.Context, dry_run: bool) -> None:
    """Restore the backed-up binary, or remove the installed one."""
    from binswap.core.models.outcome import (
        OUTCOME_NOTHING_TO_UNINSTALL,
        OUTCOME_RESTORED,
    )
    from binswap.core.models.state import Phase
    from binswap.core.use_cases.uninstall import run_uninstall

    if not ctx.obj.get("quiet", False):
        click.secho("==> Starting uninstall", fg="cyan", bold=True)

    result = run_uninstall(config_path=ctx.obj.get("config_path"), dry_run=dry_run)

    if not result.ok:
        _print_failure(result.error, result.remediation)
        sys.exit(1)

    plan = result.transition.plan if result.transition else None
    assert plan is not None

    if result.outcome == OUTCOME_NOTHING_TO_UNINSTALL:
        click.echo(f"   {plan.message}")
        for warning in plan.warnings:
            click.secho(f"   ⚠️  {warning}", fg="yellow")
        return

    _print_plan(plan, dry_run)

    if dry_run:
        click.secho("==> Dry run complete. Nothing was changed.", fg="yellow", bold=True)
        return

    click.secho(f"   {plan.message}", fg="green")
    if result.outcome == OUTCOME_RESTORED:
        click.echo("   The backup slot is now empty.")

    click.secho("==> Uninstall complete.", fg="green", bold=True)
    click.echo()
    click.echo("You may need to run:")
    click.echo("  hash -r")
    click.echo("to refresh your shell command cache.")

    after = result.transition.state_after if result.transition else None
    lock_path = result.loaded.layout.lock_path if result.loaded else None
    if after and after.phase == Phase.ABSENT and lock_path and lock_path.exists():
        click.echo()
        click.echo(f"The lock file {lock_path} is kept between runs.")
        click.echo("Nothing else is installed; you can delete it with:")
        click.echo(f"  sudo rm {lock_path}")


# ── status ──────────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show what is installed and whether a backup exists."""
    from binswap.core.use_cases.status import get_status

    result = get_status(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.loaded is not None and result.state is not None
    config = result.loaded.config
    state = result.state

    click.secho(f"\n📦 {config.tool} ({config.target})", fg="cyan", bold=True)
    click.echo(f"   Phase:     {state.phase.value}")

    for label, observed in (("Installed", state.target), ("Backup", state.backup)):
        if observed.exists:
            click.echo(f"   {label + ':':<10} {observed.path}  sha256 {observed.short_digest()}")
        else:
            click.echo(f"   {label + ':':<10} {observed.path}  (absent)")

    artifact = result.artifact
    if artifact is not None and artifact.exists:
        click.echo(f"   Artifact:  {artifact.path}  sha256 {artifact.short_digest()}")
    else:
        click.echo(f"   Artifact:  {result.loaded.layout.artifact_path}  (not built)")

    matches = result.target_matches_artifact
    if matches is True:
        click.secho("   The installed binary is the current build.", fg="green")
    elif matches is False:
        click.echo("   The installed binary differs from the current build.")

    if result.invoking_user is not None:
        click.echo(f"   Builds run as: {result.invoking_user.name}")
    click.echo()


# ── config ──────────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate binswap.yml."""
    from binswap.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.loaded is not None
        layout = result.loaded.layout
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Install:  {layout.install_path}")
        click.echo(f"   Backup:   {layout.backup_path}")
        click.echo(f"   Artifact: {layout.artifact_path}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        sys.exit(1)


# ── history ─────────────────────────────────────────────────────────


@cli.command()
@click.option("-n", "limit", default=10, type=int, help="Number of entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show recent install/uninstall transitions."""
    from binswap.core.use_cases.history import get_history

    result = get_history(config_path=ctx.obj.get("config_path"), limit=limit)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    if not result.entries:
        click.echo("No transitions recorded yet.")
        return

    status_color = {"ok": "green", "skipped": "yellow", "failed": "red", "partial": "red"}
    for entry in result.entries:
        click.echo(f"{entry.timestamp}  {entry.operation:<9} ", nl=False)
        click.secho(f"{entry.status:<8}", fg=status_color.get(entry.status, "white"), nl=False)
        click.echo(f" {entry.from_phase} → {entry.to_phase}  ({entry.invoking_user or '?'})")
        for err in entry.errors:
            click.echo(f"    │ {err}")


if __name__ == "__main__":
    cli()
