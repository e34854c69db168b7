"""
envboot — CLI entrypoint.

Usage:
    envboot              # same as: envboot run
    envboot status
    envboot config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from envboot import __version__
from envboot.core.observability.logging_config import setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="envboot")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to config.yml (default: $ENVBOOT_CONFIG or ~/.config/envboot/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """envboot — bring this workstation to its declared state."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("ENVBOOT_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("ENVBOOT_LOG_FILE"),
        log_file_level=os.environ.get("ENVBOOT_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


def load_config_or_exit(ctx: click.Context):
    """Load the configuration, printing the error and exiting 1 on failure."""
    from envboot.core.config.loader import ConfigError, load_config

    try:
        return load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


_EVENT_STYLE = {
    "check": ("·", None),
    "ok": ("✓", "green"),
    "change": ("+", "cyan"),
    "warn": ("⚠️ ", "yellow"),
    "error": ("✗", "red"),
}


def _narrator(verbose: bool, quiet: bool):
    def narrate(event) -> None:
        if event.kind == "check" and not verbose:
            return
        if quiet and event.kind not in ("warn", "error"):
            return
        icon, color = _EVENT_STYLE[event.kind]
        click.secho(f"   {icon} ", fg=color, nl=False)
        click.echo(f"[{event.component}] {event.message}")

    return narrate


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Continue as root without asking.")
@click.pass_context
def run(ctx: click.Context, as_json: bool, assume_yes: bool) -> None:
    """Reconcile the machine (packages, shell, runtime, tools).

    Safe to re-run at any time: every step checks before it acts.
    """
    from envboot.core.use_cases.bootstrap import run_bootstrap

    config = load_config_or_exit(ctx)
    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    def confirm(question: str) -> bool:
        if assume_yes:
            return True
        if not sys.stdin.isatty():
            return False
        return click.confirm(question, default=False)

    if not as_json and not quiet:
        click.secho(f"\n🔧 envboot {__version__} — {config.base_dir}", fg="cyan", bold=True)

    result = run_bootstrap(
        config,
        confirm=confirm,
        listener=None if as_json else _narrator(verbose, quiet),
        self_path=Path(sys.argv[0]).absolute() if sys.argv and sys.argv[0] else None,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    report = result.report
    click.echo()

    if result.fatal:
        click.secho(f"❌ Fatal: {result.fatal}", fg="red", bold=True)
        if result.fatal.hint:
            click.echo(f"   {result.fatal.hint}")

    if report.errors:
        click.secho(f"⚠️  {len(report.errors)} error(s) recorded:", fg="yellow", bold=True)
        for err in report.errors:
            click.echo(f"   • {err}")
        click.echo()

    if report.degraded:
        click.secho(f"   Degraded: {', '.join(report.degraded)}", fg="yellow")

    if not result.fatal:
        changes = len(report.changes)
        if changes:
            click.secho(f"✅ Done — {changes} change(s) applied", fg="green", bold=True)
        else:
            click.secho("✅ Already up to date", fg="green", bold=True)

    if report.shell_restart:
        click.echo()
        click.secho(
            "🔄 Shell startup files changed: open a new terminal (or run `exec bash -l`).",
            fg="cyan",
        )

    click.echo()
    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show what is installed, without changing anything."""
    from envboot.core.use_cases.status import get_status

    config = load_config_or_exit(ctx)
    result = get_status(config)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho(f"\n📋 envboot — {result.base_dir}", fg="cyan", bold=True)
    click.echo(f"   Distribution: {result.distro_family}")
    if not result.tree_exists:
        click.secho("   Managed tree not created yet (run `envboot`).", fg="yellow")
        click.echo()
        return

    click.echo()
    click.secho("   Repositories:", fg="white", bold=True)
    for name, present in result.repositories.items():
        click.secho(f"     {'✓' if present else '✗'} {name}", fg="green" if present else "red")

    native = f"{result.native_version or 'not installed'} (target {result.native_target})"
    click.echo(f"   Native library: {native}")
    interpreter = f"{result.interpreter or 'none'} (target {result.interpreter_target})"
    click.echo(f"   Interpreter: {interpreter}")

    if result.links:
        click.echo()
        click.secho(f"   Links: {len(result.links)}", fg="white", bold=True)
        for link in result.links:
            if link.broken:
                click.secho(f"     ✗ {link.name} → {link.target} (broken)", fg="red")
            else:
                click.echo(f"     • {link.name} → {link.target}")

    last = result.last_run
    if last.recorded:
        click.echo()
        click.secho("   Last run:", fg="white", bold=True)
        status_color = {"ok": "green", "partial": "yellow", "fatal": "red"}.get(last.status, "white")
        click.echo(f"     {last.version} — ", nl=False)
        click.secho(last.status, fg=status_color)
        click.echo(f"     at {last.ended_at}")
        for err in last.errors:
            click.echo(f"     • {err}")

    click.echo()


# ── Register sub-command groups from envboot/ui/cli/ ──────────────

from envboot.ui.cli.config import config  # noqa: E402

cli.add_command(config)


if __name__ == "__main__":
    cli()
