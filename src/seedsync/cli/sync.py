"""Sync command for SeedSync CLI.

Commands:
- sync: Run one scan-and-sync cycle
"""

from __future__ import annotations

import asyncio
import sys

import click

from seedsync.cli.config import get_client_factory, get_log_path, load_sync_config
from seedsync.sync.orchestrator import SyncOrchestrator
from seedsync.sync.types import describe_error


async def _sync_once(orchestrator: SyncOrchestrator) -> Exception | None:
    try:
        return await orchestrator.sync_once()
    finally:
        await orchestrator.stop()


@click.command()
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Run one sync cycle and exit.

    Scans the remote root, downloads everything found and removes the
    remote markers of files that landed. Exits with status 1 if the scan
    failed.
    """
    from seedsync.server.app import setup_logging

    config = load_sync_config(ctx.obj["config_path"])
    setup_logging(get_log_path(config), verbose=ctx.obj["verbose"])

    orchestrator = SyncOrchestrator(config, get_client_factory(config))
    error = asyncio.run(_sync_once(orchestrator))

    stats = orchestrator.stats
    click.echo(
        f"Downloaded {stats.downloads_completed} files "
        f"({stats.downloads_failed} failed, {stats.already_synced} already synced, "
        f"{stats.files_skipped} skipped, "
        f"{orchestrator.delete_queue.deleted_count} remote deleted)"
    )

    if error is not None:
        click.echo(f"Error: Scan failed: {describe_error(error)}", err=True)
        sys.exit(1)
