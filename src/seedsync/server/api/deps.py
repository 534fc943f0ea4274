"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import Request

from seedsync.sync.orchestrator import SyncOrchestrator


def get_orchestrator(request: Request) -> SyncOrchestrator:
    """Get the sync orchestrator from app state."""
    orchestrator: SyncOrchestrator = request.app.state.orchestrator
    return orchestrator
