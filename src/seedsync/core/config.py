"""Configuration classes for seedsync.

This module defines the immutable configuration passed explicitly into the
scanner, the orchestrator and the transfer helpers. Nothing reads settings
from a global object: build a SyncConfig once and hand it down.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

DEFAULT_POLLING_INTERVAL = 600.0  # seconds
DEFAULT_SCAN_DEPTH = 20
DEFAULT_SCAN_TIMEOUT = 5 * 60.0  # seconds
DEFAULT_MAX_CONCURRENT_DOWNLOADS = 2


@dataclass(frozen=True)
class PathMapping:
    """Maps a remote directory prefix to a local destination prefix.

    Attributes:
        remote_path: Directory relative to the sync root (e.g. "/tv").
        local_path: Local directory files under remote_path land in.
    """

    remote_path: str
    local_path: str

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> PathMapping:
        """Create from a config dictionary.

        Accepts both ``remote_path``/``local_path`` and the camelCase
        ``remotePath``/``localPath`` keys used by older config files.
        """
        remote = data.get("remote_path", data.get("remotePath"))
        local = data.get("local_path", data.get("localPath"))
        if not remote or not local:
            raise ValueError(f"Invalid path mapping: {data!r}")
        return cls(remote_path=remote, local_path=local)


@dataclass(frozen=True)
class SyncConfig:
    """Settings for one seedsync run.

    Treated as immutable for the lifetime of the process.

    Attributes:
        sync_root: Remote directory that is scanned for markers.
        local_sync_root: Local fallback root for unmapped files.
        path_mappings: Ordered remote-to-local prefix mappings.
        polling_interval: Seconds between automatic syncs.
        scan_depth: Maximum directory depth followed by the scanner.
        scan_timeout: Watchdog timeout for one scan, in seconds.
        max_concurrent_downloads: Hard cap on simultaneous transfers.
        delete_remote_files: Remove remote markers once files have landed.
        transfer_plain_files: Also transfer plain files, not only symlinks.
        skip_malformed_symlinks: Skip a symlink that does not resolve to
            exactly one target instead of aborting the whole scan.
        remote_mount: Local mount point of the remote tree, used by
            LocalListingClient.
        desktop_notifications: Forward notifications to the desktop.
        log_path: Optional log file.
    """

    sync_root: str
    local_sync_root: str
    path_mappings: tuple[PathMapping, ...] = ()
    polling_interval: float = DEFAULT_POLLING_INTERVAL
    scan_depth: int = DEFAULT_SCAN_DEPTH
    scan_timeout: float = DEFAULT_SCAN_TIMEOUT
    max_concurrent_downloads: int = DEFAULT_MAX_CONCURRENT_DOWNLOADS
    delete_remote_files: bool = True
    transfer_plain_files: bool = False
    skip_malformed_symlinks: bool = False
    remote_mount: str | None = None
    desktop_notifications: bool = False
    log_path: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Validate settings and normalize the mapping container."""
        if not self.sync_root:
            raise ValueError("sync_root is required")
        if not self.local_sync_root:
            raise ValueError("local_sync_root is required")
        if self.polling_interval <= 0:
            raise ValueError("polling_interval must be positive")
        if self.scan_depth < 1:
            raise ValueError("scan_depth must be at least 1")
        if self.scan_timeout <= 0:
            raise ValueError("scan_timeout must be positive")
        if self.max_concurrent_downloads < 1:
            raise ValueError("max_concurrent_downloads must be at least 1")
        # Frozen dataclass: lists from callers become tuples
        object.__setattr__(self, "path_mappings", tuple(self.path_mappings))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        """Create from a parsed JSON config.

        Unknown keys are ignored so newer config files keep loading.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        kwargs["path_mappings"] = tuple(
            PathMapping.from_dict(m) for m in data.get("path_mappings", [])
        )
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data: dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        data["path_mappings"] = [
            {"remote_path": m.remote_path, "local_path": m.local_path}
            for m in self.path_mappings
        ]
        return data

    @property
    def mount_path(self) -> Path | None:
        """Get the remote mount point as a Path, if configured."""
        return Path(self.remote_mount).expanduser() if self.remote_mount else None
