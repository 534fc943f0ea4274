"""Config commands for SeedSync CLI.

Commands:
- config init: Write a config file template
- config show: Print the effective configuration
"""

from __future__ import annotations

import json
import sys

import click

from seedsync.cli.config import load_sync_config, save_config
from seedsync.core.config import PathMapping, SyncConfig


@click.group()
def config() -> None:
    """Manage the configuration file."""


@config.command("init")
@click.option("--sync-root", default="/seedbox-sync", show_default=True, help="Remote directory to scan.")
@click.option("--local-root", default="~/Media", show_default=True, help="Local root for unmapped files.")
@click.option("--mount", default=None, help="Local mount point of the remote tree.")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init_config(
    ctx: click.Context,
    sync_root: str,
    local_root: str,
    mount: str | None,
    force: bool,
) -> None:
    """Write a config file template.

    Edit path_mappings afterwards to route remote directories to their
    local libraries.
    """
    config_file = ctx.obj["config_path"]
    if config_file.exists() and not force:
        click.echo(f"Error: Config file already exists: {config_file}", err=True)
        click.echo("Use --force to overwrite it.", err=True)
        sys.exit(1)

    template = SyncConfig(
        sync_root=sync_root,
        local_sync_root=local_root,
        path_mappings=(
            PathMapping(remote_path="/tv", local_path=f"{local_root.rstrip('/')}/TV"),
            PathMapping(remote_path="/movies", local_path=f"{local_root.rstrip('/')}/Movies"),
        ),
        remote_mount=mount,
    )
    save_config(template.to_dict(), config_file)
    click.echo(f"Config written to {config_file}")


@config.command("show")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the effective configuration, defaults included."""
    sync_config = load_sync_config(ctx.obj["config_path"])
    click.echo(json.dumps(sync_config.to_dict(), indent=2))
