"""Sync trigger and status API routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from seedsync.server.api.deps import get_orchestrator
from seedsync.server.schemas import (
    DownloadResponse,
    StatusResponse,
    SyncResponse,
    status_to_response,
)
from seedsync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sync"])


@router.post("/sync", response_model=SyncResponse)
async def trigger_sync(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> SyncResponse:
    """Request a sync. Does nothing while a scan is running."""
    logger.info("Sync triggered over HTTP")
    started = orchestrator.trigger_sync()
    return SyncResponse(started=started, scanning=orchestrator.is_scanning)


@router.get("/downloads", response_model=list[DownloadResponse])
async def list_downloads(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> list[DownloadResponse]:
    """List queued and in-flight downloads."""
    return [DownloadResponse(**item) for item in orchestrator.downloads_status()]


@router.get("/status", response_model=StatusResponse)
async def get_status(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> StatusResponse:
    """Get sync engine status."""
    return status_to_response(orchestrator.status())
