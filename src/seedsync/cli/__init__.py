"""Command-line interface for SeedSync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- run: Start the sync service (polling + HTTP API)
- sync: Run one sync cycle
- config init: Write a config file template
- config show: Print the effective configuration
"""

from __future__ import annotations

from pathlib import Path

import click

from seedsync.cli.config import (
    get_client_factory,
    get_config_dir,
    get_config_file,
    load_config,
    load_sync_config,
    save_config,
)
from seedsync.cli.run import run
from seedsync.cli.settings import config
from seedsync.cli.sync import sync


@click.group()
@click.version_option(package_name="seedsync")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="SEEDSYNC_CONFIG",
    default=None,
    help="Config file (default: ~/.seedsync/config.json).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """SeedSync - Pull finished downloads from a seedbox."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = (config_path or get_config_file()).expanduser()
    ctx.obj["verbose"] = verbose


# Service commands
cli.add_command(run)
cli.add_command(sync)

# Config commands
cli.add_command(config)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_client_factory",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "load_sync_config",
    "save_config",
]
