"""Scan-and-sync engine.

Architecture:
    Scanner → SyncOrchestrator → DownloadQueue → FileDownloader
                                              ↘ RemoteDeleteQueue

Components:
- **Scanner**: Single-use scan session; flattens the remote tree, resolves
  symlink targets one at a time, guarded by a watchdog
- **SyncOrchestrator**: Dedups discovered files, caps concurrent downloads,
  maps remote paths to local ones, hands landed files to remote deletion
- **DownloadQueue**: Ordered, identity-deduplicated download queue
- **FileDownloader**: One transfer through a dedicated listing client
- **RemoteDeleteQueue**: Pausable queue of remote deletions with retry
"""

from seedsync.sync.delete_queue import RemoteDeleteQueue
from seedsync.sync.downloader import FileDownloader
from seedsync.sync.flatten import flatten_tree
from seedsync.sync.orchestrator import SyncOrchestrator
from seedsync.sync.paths import (
    append_slash,
    get_destination_directory,
    get_destination_path,
    local_file_name,
    normalize_prefix,
    sanitize_path,
    sanitize_segment,
)
from seedsync.sync.queue import DownloadQueue
from seedsync.sync.retry import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
    NETWORK_EXCEPTIONS,
    RetryAbortedError,
    retry_with_backoff,
)
from seedsync.sync.scanner import Scanner
from seedsync.sync.types import (
    DiscoveredFile,
    DownloadError,
    DownloadResult,
    FileFoundCallback,
    MalformedResolutionError,
    ScanCancelledError,
    ScanCompleteCallback,
    ScanError,
    ScanInProgressError,
    ScanTimeoutError,
    SyncStats,
    TargetData,
    classify_error,
    describe_error,
)

__all__ = [
    # Engine
    "Scanner",
    "SyncOrchestrator",
    "DownloadQueue",
    "FileDownloader",
    "RemoteDeleteQueue",
    "flatten_tree",
    # Paths
    "append_slash",
    "normalize_prefix",
    "sanitize_segment",
    "sanitize_path",
    "get_destination_directory",
    "get_destination_path",
    "local_file_name",
    # Retry
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_BACKOFF",
    "DEFAULT_MAX_RETRIES",
    "NETWORK_EXCEPTIONS",
    "RetryAbortedError",
    "retry_with_backoff",
    # Types
    "DiscoveredFile",
    "TargetData",
    "DownloadResult",
    "SyncStats",
    "FileFoundCallback",
    "ScanCompleteCallback",
    "classify_error",
    "describe_error",
    # Errors
    "ScanError",
    "ScanCancelledError",
    "ScanTimeoutError",
    "ScanInProgressError",
    "MalformedResolutionError",
    "DownloadError",
]
