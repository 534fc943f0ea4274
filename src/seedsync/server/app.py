"""FastAPI application for the SeedSync service.

This module creates and configures the FastAPI application with:
- Health check
- Sync trigger, download queue and status endpoints

The application owns the orchestrator lifecycle: it starts polling on
startup and stops it on shutdown. Built by ``seedsync run``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from seedsync import __version__
from seedsync.server.api.router import router as api_router
from seedsync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_path: Path | None = None, verbose: bool = False) -> None:
    """Configure logging to output to stdout and optionally a file.

    Args:
        log_path: Path to the log file, or None for stdout only.
        verbose: Log at DEBUG instead of INFO.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    # Root logger for seedsync
    root_logger = logging.getLogger("seedsync")
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Calling twice must not duplicate output
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is None:
        return

    # File handler
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(uvicorn_name)
        uvicorn_logger.addHandler(file_handler)


def create_app(orchestrator: SyncOrchestrator) -> FastAPI:
    """Create FastAPI application around an orchestrator.

    Args:
        orchestrator: The sync orchestrator served by the API.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        # Startup
        config = orchestrator.config
        logger.info("=" * 60)
        logger.info("SeedSync Starting")
        logger.info("=" * 60)
        logger.info("  Remote root:  %s", config.sync_root)
        logger.info("  Mount:        %s", config.remote_mount or "None")
        logger.info("  Local root:   %s", config.local_sync_root)
        logger.info("  Mappings:     %d", len(config.path_mappings))
        logger.info("  Poll every:   %.0fs", config.polling_interval)
        logger.info("=" * 60)

        orchestrator.start()

        yield

        # Shutdown
        logger.info("SeedSync shutting down")
        await orchestrator.stop()

    application = FastAPI(
        title="SeedSync",
        description="Seedbox to home library sync service",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.orchestrator = orchestrator

    application.include_router(api_router)

    return application
