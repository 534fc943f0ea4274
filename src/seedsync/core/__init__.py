"""Core module - Shared configuration and enums."""

from seedsync.core.config import (
    DEFAULT_MAX_CONCURRENT_DOWNLOADS,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_SCAN_DEPTH,
    DEFAULT_SCAN_TIMEOUT,
    PathMapping,
    SyncConfig,
)
from seedsync.core.types import ErrorKind, ScanState

__all__ = [
    # Config
    "DEFAULT_MAX_CONCURRENT_DOWNLOADS",
    "DEFAULT_POLLING_INTERVAL",
    "DEFAULT_SCAN_DEPTH",
    "DEFAULT_SCAN_TIMEOUT",
    "PathMapping",
    "SyncConfig",
    # Types
    "ErrorKind",
    "ScanState",
]
