"""Shared types and dataclasses for sync operations.

This module provides:
- ScanError, ScanCancelledError, ScanTimeoutError, MalformedResolutionError:
  Scan failure exceptions
- ScanInProgressError: Raised when a scan session is started twice
- DownloadError: Exception class for failed transfers
- TargetData: Resolved metadata of a symlink target
- DiscoveredFile: The unit of work flowing through scan, queue and transfer
- DownloadResult: Result of one transfer
- SyncStats: Orchestrator counters
- classify_error, describe_error: Map scan failures to user-facing kinds
- Type aliases for callbacks
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from seedsync.core.types import ErrorKind
from seedsync.remote.client import AuthenticationError, EntryType, RemoteEntry
from seedsync.sync.paths import append_slash


class ScanError(Exception):
    """Base exception for scan errors."""


class ScanCancelledError(ScanError):
    """The scan was cancelled before it completed."""


class ScanTimeoutError(ScanCancelledError):
    """The scan watchdog expired."""


class MalformedResolutionError(ScanError):
    """A symlink did not resolve to exactly one target."""

    def __init__(self, path: str, count: int) -> None:
        self.path = path
        self.count = count
        super().__init__(f"Error getting data for {path}: expected 1 entry, got {count}")


class ScanInProgressError(RuntimeError):
    """start_scan() was called while the session is already scanning."""


class DownloadError(Exception):
    """Failed to download a file."""


@dataclass
class TargetData:
    """Metadata of a resolved symlink target."""

    name: str
    size: int | None = None
    modified_at: float | None = None

    @classmethod
    def from_entry(cls, entry: RemoteEntry) -> TargetData:
        """Create from a single-item stat listing."""
        return cls(name=entry.name, size=entry.size, modified_at=entry.modified_at)


@dataclass(eq=False)
class DiscoveredFile:
    """A remote file that is ready to transfer.

    Identity is the full remote path: two instances are equal (and hash
    alike) iff base_path + relative_directory + name match, whatever their
    target_data or downloading state.

    Attributes:
        base_path: The scan root.
        relative_directory: Path from the root to the parent directory,
            always starting and ending with "/".
        name: Leaf name.
        is_symlink: True when the target still needs resolving.
        size: Size reported by the listing (the link size for symlinks).
        modified_at: Modification time reported by the listing.
        target_data: Resolved target metadata, None until resolved.
        downloading: True exactly while a transfer is in flight. Only the
            orchestrator sets it.
        discovered_at: When the scanner created this entry.
    """

    base_path: str
    relative_directory: str
    name: str
    is_symlink: bool = False
    size: int | None = None
    modified_at: float | None = None
    target_data: TargetData | None = None
    downloading: bool = False
    discovered_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.base_path = self.base_path.rstrip("/")
        self.relative_directory = append_slash("/" + self.relative_directory.strip("/"))

    @classmethod
    def from_entry(
        cls,
        base_path: str,
        relative_directory: str,
        entry: RemoteEntry,
    ) -> DiscoveredFile:
        """Create from a raw listing entry."""
        return cls(
            base_path=base_path,
            relative_directory=relative_directory,
            name=entry.name.strip("/"),
            is_symlink=entry.type == EntryType.SYMLINK,
            size=entry.size,
            modified_at=entry.modified_at,
        )

    @property
    def full_path(self) -> str:
        """Absolute remote path of the file."""
        return self.base_path + self.relative_directory + self.name

    @property
    def resolved_size(self) -> int | None:
        """Size of the data to transfer: the target's for symlinks."""
        if self.target_data is not None:
            return self.target_data.size
        if self.is_symlink:
            return None
        return self.size

    @staticmethod
    def newest_first(file: DiscoveredFile) -> tuple[float, float]:
        """Sort key putting the most recently modified files first.

        Usage:
            files.sort(key=DiscoveredFile.newest_first)
        """
        modified = file.modified_at if file.modified_at is not None else 0.0
        return (-modified, -file.discovered_at)

    def to_status(self) -> dict[str, Any]:
        """Convert to a JSON-ready status dictionary."""
        return {
            "path": self.full_path,
            "name": self.name,
            "relative_directory": self.relative_directory,
            "size": self.resolved_size,
            "modified_at": self.modified_at,
            "downloading": self.downloading,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DiscoveredFile):
            return NotImplemented
        return self.full_path == other.full_path

    def __hash__(self) -> int:
        return hash(self.full_path)

    def __repr__(self) -> str:
        """Human-readable representation."""
        state = "downloading" if self.downloading else "queued"
        return f"DiscoveredFile({self.full_path!r}, {state})"


@dataclass
class DownloadResult:
    """Result of a file download operation."""

    file: DiscoveredFile
    local_path: Path
    size: int


@dataclass
class SyncStats:
    """Statistics for the orchestrator."""

    scans_started: int = 0
    scans_failed: int = 0
    files_discovered: int = 0
    already_synced: int = 0
    downloads_completed: int = 0
    downloads_failed: int = 0
    files_skipped: int = 0


def classify_error(error: BaseException) -> ErrorKind:
    """Classify a scan failure once, where it is received.

    Watchdog timeouts count as transport failures: the remote side stopped
    answering. An explicit cancel is its own kind.
    """
    if isinstance(error, AuthenticationError):
        return ErrorKind.AUTHENTICATION
    if isinstance(error, ScanTimeoutError):
        return ErrorKind.TRANSPORT
    if isinstance(error, ScanCancelledError):
        return ErrorKind.CANCELLED
    if isinstance(error, MalformedResolutionError):
        return ErrorKind.MALFORMED
    return ErrorKind.TRANSPORT


def describe_error(error: BaseException) -> str:
    """Get a user-facing message for a scan failure."""
    if classify_error(error) == ErrorKind.AUTHENTICATION:
        return "Invalid remote user or password"
    return str(error) or type(error).__name__


# Type aliases for scanner callbacks
FileFoundCallback = Callable[[DiscoveredFile], None]
ScanCompleteCallback = Callable[[Exception | None, list[DiscoveredFile] | None], None]
