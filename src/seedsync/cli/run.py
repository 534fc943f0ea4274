"""Run command for SeedSync CLI.

Commands:
- run: Start the long-running sync service
"""

from __future__ import annotations

import asyncio

import click

from seedsync.cli.config import get_client_factory, get_log_path, load_sync_config
from seedsync.sync.orchestrator import SyncOrchestrator

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8800


async def _poll_forever(orchestrator: SyncOrchestrator) -> None:
    """Run the orchestrator until cancelled."""
    orchestrator.start()
    try:
        await asyncio.Event().wait()
    finally:
        await orchestrator.stop()


@click.command()
@click.option("--host", default=DEFAULT_HOST, show_default=True, help="Address the HTTP API binds to.")
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, show_default=True, help="HTTP API port.")
@click.option("--no-server", is_flag=True, help="Poll only, without the HTTP API.")
@click.pass_context
def run(ctx: click.Context, host: str, port: int, no_server: bool) -> None:
    """Start the sync service.

    Syncs immediately, then every polling_interval seconds. Unless
    --no-server is given, also serves the trigger and status API.

    Examples:

        # Serve the API on the default port
        seedsync run

        # Poll only
        seedsync run --no-server
    """
    from seedsync.server.app import create_app, setup_logging

    config = load_sync_config(ctx.obj["config_path"])
    setup_logging(get_log_path(config), verbose=ctx.obj["verbose"])

    orchestrator = SyncOrchestrator(config, get_client_factory(config))

    if no_server:
        click.echo(f"Syncing {config.sync_root} every {config.polling_interval:.0f}s (Ctrl+C to stop)")
        try:
            asyncio.run(_poll_forever(orchestrator))
        except KeyboardInterrupt:
            click.echo("Stopped.")
        return

    import uvicorn

    click.echo(f"Serving SeedSync API on http://{host}:{port}")
    uvicorn.run(create_app(orchestrator), host=host, port=port)
