"""Sync orchestrator: the long-lived owner of the download queue.

This module provides:
- SyncOrchestrator: Schedules scans, deduplicates discovered files, starts
  bounded-concurrency downloads and hands landed files to remote deletion

Flow:
    poll timer / HTTP trigger ─► request_sync() ─► Scanner
                                                     │ on_file_found()
                                                     ▼
    RemoteDeleteQueue ◄── on_download_complete() ◄── DownloadQueue ─► FileDownloader

Everything here runs on one event loop. Queue and flag mutations happen
synchronously between suspension points; downloads only report outcomes
through on_download_complete() and never touch the queue themselves.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from seedsync.core.types import ErrorKind
from seedsync.notifications import NotificationCenter, NotificationType
from seedsync.sync.delete_queue import RemoteDeleteQueue
from seedsync.sync.downloader import FileDownloader
from seedsync.sync.paths import get_destination_directory, get_destination_path
from seedsync.sync.queue import DownloadQueue
from seedsync.sync.scanner import Scanner
from seedsync.sync.types import (
    DiscoveredFile,
    SyncStats,
    classify_error,
    describe_error,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from seedsync.core.config import SyncConfig
    from seedsync.remote.client import BaseListingClient

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Central orchestrator for scan-and-sync cycles.

    Usage:
        orchestrator = SyncOrchestrator(config, client_factory)
        orchestrator.start()           # initial sync + polling
        ...
        await orchestrator.stop()

    Or for a single cycle:
        error = await orchestrator.sync_once()
    """

    def __init__(
        self,
        config: SyncConfig,
        client_factory: Callable[[], BaseListingClient],
        delete_queue: RemoteDeleteQueue | None = None,
        notifier: NotificationCenter | None = None,
        downloader: FileDownloader | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Immutable sync configuration.
            client_factory: Creates listing clients for scans and transfers.
            delete_queue: Remote delete queue (created if omitted).
            notifier: Notification sink (created if omitted).
            downloader: File downloader (created if omitted).
        """
        self._config = config
        self._client_factory = client_factory
        self._queue = DownloadQueue(config.max_concurrent_downloads)
        self._delete_queue = delete_queue or RemoteDeleteQueue(client_factory)
        self._notifier = notifier or NotificationCenter(desktop=config.desktop_notifications)
        self._downloader = downloader or FileDownloader(client_factory)

        self._scanner: Scanner | None = None
        self._poll_handle: asyncio.TimerHandle | None = None
        self._transfers: set[asyncio.Task[None]] = set()
        self._running = False

        # Local destination -> remote path that claimed it in this process
        self._destinations: dict[Path, str] = {}

        self._settled = asyncio.Event()
        self._settled.set()

        self._stats = SyncStats()
        self._last_scan_error: Exception | None = None

    @property
    def config(self) -> SyncConfig:
        """Get the sync configuration."""
        return self._config

    @property
    def queue(self) -> DownloadQueue:
        """Get the download queue (read-only use)."""
        return self._queue

    @property
    def delete_queue(self) -> RemoteDeleteQueue:
        """Get the remote delete queue."""
        return self._delete_queue

    @property
    def notifier(self) -> NotificationCenter:
        """Get the notification sink."""
        return self._notifier

    @property
    def stats(self) -> SyncStats:
        """Get orchestrator statistics."""
        return self._stats

    @property
    def scanner(self) -> Scanner | None:
        """Get the most recent scan session."""
        return self._scanner

    @property
    def is_scanning(self) -> bool:
        """Check if a scan is in progress."""
        return self._scanner is not None and self._scanner.is_scanning

    @property
    def last_scan_error(self) -> Exception | None:
        """Get the error of the last finished scan, if it failed."""
        return self._last_scan_error

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    def start(self) -> None:
        """Start polling and trigger the first sync.

        Must be called from the running event loop.
        """
        if self._running:
            logger.warning("Orchestrator already running")
            return

        self._running = True
        logger.info(
            "Orchestrator started (poll every %.0fs, %d concurrent downloads)",
            self._config.polling_interval,
            self._config.max_concurrent_downloads,
        )
        self.request_sync()

    async def stop(self) -> None:
        """Stop polling, cancel the active scan and abandon transfers."""
        self._running = False

        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None

        if self._scanner is not None:
            self._scanner.cancel()

        await self._delete_queue.close()

        transfers = list(self._transfers)
        for task in transfers:
            task.cancel()
        if transfers:
            logger.info("Abandoning %d in-flight downloads", len(transfers))
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(*transfers, return_exceptions=True)

        logger.info("Orchestrator stopped")

    async def sync_once(self) -> Exception | None:
        """Run one full cycle: scan, download, delete.

        Returns:
            The scan error, or None if the scan succeeded.
        """
        self.request_sync()
        await self.wait_until_settled()
        if self._last_scan_error is None:
            await self._delete_queue.join()
        return self._last_scan_error

    async def wait_until_settled(self) -> None:
        """Wait until no scan runs and the download queue is empty."""
        await self._settled.wait()

    def _update_settled(self) -> None:
        if self.is_scanning or self._queue:
            self._settled.clear()
        else:
            self._settled.set()

    # -------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------

    def request_sync(self) -> bool:
        """Start a scan unless one is already running.

        Returns:
            True if a new scan started.
        """
        logger.info("Sync requested")

        if self._scanner is not None and self._scanner.is_scanning:
            started_at = self._scanner.started_at or time.time()
            logger.info(
                "Scan requested while scanning. Started %.0fs ago",
                time.time() - started_at,
            )
            return False

        # Don't go hogging remote connections to do deletes
        self._delete_queue.pause()

        self._scanner = Scanner(
            self._config,
            self._client_factory,
            on_file_found=self.on_file_found,
            on_complete=self.on_scan_complete,
        )
        self._stats.scans_started += 1
        self._scanner.start_scan()

        self._reset_sync_timer()
        self._update_settled()
        return True

    def trigger_sync(self) -> bool:
        """Handle an external sync request (HTTP trigger).

        Returns:
            True if a new scan started.
        """
        self._notifier.post("Sync Request received")
        return self.request_sync()

    def _reset_sync_timer(self) -> None:
        """Schedule the next automatic sync one interval from now."""
        if self._poll_handle is not None:
            self._poll_handle.cancel()
            self._poll_handle = None

        if not self._running:
            return

        loop = asyncio.get_running_loop()
        self._poll_handle = loop.call_later(self._config.polling_interval, self._on_poll_timer)

    def _on_poll_timer(self) -> None:
        self._poll_handle = None
        self.request_sync()
        # request_sync() is a no-op while scanning; keep polling anyway
        if self._poll_handle is None:
            self._reset_sync_timer()

    def on_file_found(self, file: DiscoveredFile) -> None:
        """Handle one discovered file.

        A file that cannot be routed is logged and skipped; it stays on the
        remote side and the rest of the scan carries on.
        """
        self._stats.files_discovered += 1

        try:
            self._route_file(file)
        except (OSError, ValueError) as e:
            self._stats.files_skipped += 1
            logger.error("Skipping %s: %s", file.full_path, e)
        except Exception:
            self._stats.files_skipped += 1
            logger.exception("Skipping %s", file.full_path)

        self._update_settled()

    def _route_file(self, file: DiscoveredFile) -> None:
        destination = get_destination_path(file, self._config)
        owner = self._destinations.get(destination)
        if owner is not None and owner != file.full_path:
            raise ValueError(f"local path {destination} is already used by {owner}")

        already_downloaded = self.file_already_downloaded(file)
        self._destinations[destination] = file.full_path

        if already_downloaded:
            logger.info("Already synced, deleting remote: %s", file.full_path)
            self._stats.already_synced += 1
            self._add_to_remote_delete_queue(file)
            return

        if self._queue.add(file):
            logger.info("Adding %s to download queue", file.full_path)
            # Trigger the downloads to start, if not already started
            self.download_next_in_queue()

    def on_scan_complete(
        self,
        err: Exception | None,
        files: list[DiscoveredFile] | None,
    ) -> None:
        """Handle the end of a scan."""
        self._last_scan_error = err

        if err is not None:
            self._stats.scans_failed += 1
            kind = classify_error(err)
            message = describe_error(err)
            if kind == ErrorKind.CANCELLED:
                logger.info("Scan cancelled: %s", message)
            else:
                logger.error("Scan failed (%s): %s", kind.value, message)

            if kind in (ErrorKind.AUTHENTICATION, ErrorKind.TRANSPORT):
                self._notifier.post(message, NotificationType.ERROR)

            # Remote deletes stay paused after an uncertain scan outcome
            self._update_settled()
            return

        logger.info("Scan found %d files", len(files or []))
        self._delete_queue.start()
        self._update_settled()

    # -------------------------------------------------------------------
    # Downloads
    # -------------------------------------------------------------------

    def get_destination_directory(self, file: DiscoveredFile) -> str:
        """Get the local directory a file lands in."""
        return get_destination_directory(file, self._config)

    def file_already_downloaded(self, file: DiscoveredFile) -> bool:
        """Check if a file already exists at its destination.

        In-flight downloads use a temporary name, so a regular file at the
        final name means a completed transfer. A directory there does not.
        """
        return get_destination_path(file, self._config).is_file()

    def get_next_file_to_download(self) -> DiscoveredFile | None:
        """Get the next file to download, if a download slot is free."""
        return self._queue.next_eligible()

    def download_next_in_queue(self) -> int:
        """Start downloads until the queue or the free slots run out.

        Returns:
            Number of downloads started.
        """
        started = 0
        while (file := self.get_next_file_to_download()) is not None:
            file.downloading = True
            local_directory = self.get_destination_directory(file)

            task = asyncio.get_running_loop().create_task(
                self._transfer(file, local_directory),
                name=f"seedsync-download-{file.name}",
            )
            self._transfers.add(task)
            task.add_done_callback(self._transfers.discard)
            started += 1
        return started

    async def _transfer(self, file: DiscoveredFile, local_directory: str) -> None:
        error: Exception | None = None
        try:
            await self._downloader.download(file, local_directory)
        except Exception as e:
            error = e
        self.on_download_complete(error, file)

    def on_download_complete(self, err: Exception | None, file: DiscoveredFile) -> None:
        """Handle the end of a transfer and schedule the next one."""
        file.downloading = False

        if err is None:
            self._stats.downloads_completed += 1
            self._add_to_remote_delete_queue(file)
            self._notifier.post(f"Download completed {file.name}")
        else:
            # No retry in this run: the next scan rediscovers the file
            self._stats.downloads_failed += 1
            logger.error("Download failed for %s: %s", file.full_path, err)

        self._queue.remove(file)
        self.download_next_in_queue()
        self._update_settled()

    def _add_to_remote_delete_queue(self, file: DiscoveredFile) -> None:
        if not self._config.delete_remote_files:
            logger.warning("delete_remote_files is turned off, keeping %s", file.full_path)
            return

        self._delete_queue.add(file)

    # -------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------

    def downloads_status(self) -> list[dict[str, Any]]:
        """Get the download queue as status dictionaries."""
        return [file.to_status() for file in self._queue]

    def status(self, notifications: int = 20) -> dict[str, Any]:
        """Get a snapshot of the orchestrator state."""
        scanner = self._scanner
        return {
            "scanning": self.is_scanning,
            "scan_started_at": scanner.started_at if scanner else None,
            "last_scan_error": (
                describe_error(self._last_scan_error) if self._last_scan_error else None
            ),
            "queue": self._queue.stats(),
            "remote_deletes": {
                "paused": self._delete_queue.paused,
                "pending": self._delete_queue.pending_count,
                "deleted": self._delete_queue.deleted_count,
                "failed": self._delete_queue.failed_count,
            },
            "stats": asdict(self._stats),
            "notifications": [n.to_dict() for n in self._notifier.recent(notifications)],
        }
