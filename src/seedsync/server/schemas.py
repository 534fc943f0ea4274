"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Sync schemas ===


class SyncResponse(BaseModel):
    """Response for a sync trigger."""

    started: bool
    scanning: bool


class DownloadResponse(BaseModel):
    """Queued file in responses."""

    path: str
    name: str
    relative_directory: str
    size: int | None
    modified_at: float | None
    downloading: bool


# === Status schemas ===


class QueueStatsResponse(BaseModel):
    """Download queue counters."""

    total: int
    downloading: int
    pending: int
    max_concurrent: int


class RemoteDeletesResponse(BaseModel):
    """Remote delete queue counters."""

    paused: bool
    pending: int
    deleted: int
    failed: int


class SyncStatsResponse(BaseModel):
    """Orchestrator counters."""

    scans_started: int
    scans_failed: int
    files_discovered: int
    already_synced: int
    downloads_completed: int
    downloads_failed: int
    files_skipped: int = 0


class NotificationResponse(BaseModel):
    """Notification in responses."""

    title: str
    message: str
    type: str
    created_at: float


class StatusResponse(BaseModel):
    """Snapshot of the sync engine."""

    scanning: bool
    scan_started_at: float | None
    last_scan_error: str | None
    queue: QueueStatsResponse
    remote_deletes: RemoteDeletesResponse
    stats: SyncStatsResponse
    notifications: list[NotificationResponse]


# === Converters ===


def status_to_response(status: dict[str, Any]) -> StatusResponse:
    """Convert an orchestrator status snapshot to a response."""
    return StatusResponse.model_validate(status)
