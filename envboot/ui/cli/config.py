"""
CLI commands for the bootstrap configuration.

Thin wrappers over ``envboot.core.config.loader`` and
``envboot.core.use_cases.config_check``.
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def config() -> None:
    """Configuration — show the effective settings, validate a file."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective configuration (defaults + file) as YAML."""
    from envboot.core.config.loader import ConfigError, dump_config, load_config

    try:
        effective = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    click.echo(dump_config(effective), nl=False)


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate the configuration file."""
    from envboot.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        if result.config_path:
            click.echo(f"   File: {result.config_path}")
        assert result.config is not None  # guaranteed when valid
        click.echo(f"   Base directory: {result.config.base_dir}")
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
        click.echo()
        sys.exit(1)

    click.echo()
