"""Remote scanner: one instance is one single-use scan session.

This module provides:
- Scanner: Lists the sync root, flattens the tree, resolves symlink
  targets one at a time and reports discovered files incrementally

Lifecycle:
    IDLE ──start_scan()──► SCANNING ──► COMPLETED
                               │
                               └──cancel() / watchdog──► CANCELLED

The completion callback runs exactly once per session. Teardown disarms
the watchdog, destroys the listing client and swaps both callbacks for
no-ops, so nothing from a finished session can reach its consumer again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from seedsync.core.types import ScanState
from seedsync.remote.client import AuthenticationError, SignalKind
from seedsync.sync.flatten import flatten_tree
from seedsync.sync.types import (
    DiscoveredFile,
    MalformedResolutionError,
    ScanCancelledError,
    ScanInProgressError,
    ScanTimeoutError,
    TargetData,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from seedsync.core.config import SyncConfig
    from seedsync.remote.client import BaseListingClient
    from seedsync.sync.types import FileFoundCallback, ScanCompleteCallback

logger = logging.getLogger(__name__)


def _ignore_file_found(file: DiscoveredFile) -> None:
    pass


def _ignore_complete(
    err: Exception | None,
    files: list[DiscoveredFile] | None,
) -> None:
    pass


class Scanner:
    """Scans the remote sync root for files that are ready to transfer.

    Usage:
        scanner = Scanner(config, client_factory, on_file_found, on_complete)
        scanner.start_scan()
        # on_file_found(file) per discovered file, newest first
        # on_complete(err, files) exactly once
    """

    def __init__(
        self,
        config: SyncConfig,
        client_factory: Callable[[], BaseListingClient],
        on_file_found: FileFoundCallback,
        on_complete: ScanCompleteCallback,
    ) -> None:
        """Initialize the scan session.

        Args:
            config: Sync configuration (root, depth, timeout, filters).
            client_factory: Creates the listing client this scan owns.
            on_file_found: Called once per discovered file.
            on_complete: Called once with (error, None) or (None, files).
        """
        self._config = config
        self._client_factory = client_factory
        self._on_file_found = on_file_found
        self._on_complete = on_complete

        self._state = ScanState.IDLE
        self._cancelled = False
        self._client: BaseListingClient | None = None
        self._watchdog: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

        self.started_at: float | None = None

    @property
    def state(self) -> ScanState:
        """Get current session state."""
        return self._state

    @property
    def is_scanning(self) -> bool:
        """Check if the scan is in progress."""
        return self._state == ScanState.SCANNING

    @property
    def cancelled(self) -> bool:
        """Check if the session was cancelled. Never reset once set."""
        return self._cancelled

    def start_scan(self) -> asyncio.Task[None]:
        """Start scanning on the running event loop.

        Returns:
            The scan task.

        Raises:
            ScanInProgressError: If this session is already scanning.
            RuntimeError: If this session already finished or was cancelled.
        """
        if self._state == ScanState.SCANNING:
            raise ScanInProgressError("start_scan called while scanning")
        if self._state != ScanState.IDLE or self._cancelled:
            raise RuntimeError("Scanner sessions are single-use, create a new Scanner")

        loop = asyncio.get_running_loop()

        self._state = ScanState.SCANNING
        self.started_at = time.time()

        self._client = self._client_factory()
        # Transport failures outside any pending call still end the scan
        self._client.add_signal_handler(SignalKind.ERROR, self._fail)
        self._client.add_signal_handler(SignalKind.TIMEOUT, self._fail)

        self._watchdog = loop.call_later(self._config.scan_timeout, self._on_watchdog)
        self._task = loop.create_task(self._run(), name="seedsync-scan")

        logger.info("Scanning %s", self._config.sync_root)
        return self._task

    def cancel(self) -> None:
        """Cancel the scan. Idempotent.

        Reports ScanCancelledError through the completion callback if the
        scan was still running.
        """
        self._cancel(ScanCancelledError("Scan cancelled"))

    def _cancel(self, error: ScanCancelledError) -> None:
        if self._cancelled:
            return
        self._cancelled = True

        if self._state == ScanState.SCANNING:
            self._complete(error, None)
        elif self._state == ScanState.IDLE:
            self._state = ScanState.CANCELLED

    def _on_watchdog(self) -> None:
        self._watchdog = None
        if self._state != ScanState.SCANNING or self._cancelled:
            return

        logger.warning("Scan timed out after %.0fs", self._config.scan_timeout)
        self._cancel(ScanTimeoutError(
            f"Scan timed out after {self._config.scan_timeout:.0f}s"
        ))

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise ScanCancelledError("Scan cancelled")

    async def _run(self) -> None:
        assert self._client is not None
        client = self._client
        sync_root = self._config.sync_root

        try:
            listing = await client.list_tree(sync_root)
            self._check_cancelled()

            files = flatten_tree(
                listing,
                sync_root,
                depth=self._config.scan_depth,
                include_plain_files=self._config.transfer_plain_files,
            )
            files.sort(key=DiscoveredFile.newest_first)
            logger.info("Found %d candidate files, resolving targets", len(files))

            resolved: list[DiscoveredFile] = []
            # Sequential on purpose: one stat in flight per scan
            for file in files:
                self._check_cancelled()
                if await self._resolve(client, file):
                    resolved.append(file)

        except asyncio.CancelledError:
            # Teardown cancels the task; anything else propagates
            if self._cancelled or self._state != ScanState.SCANNING:
                return
            raise
        except Exception as e:
            self._fail(e)
            return

        self._complete(None, resolved)

    async def _resolve(self, client: BaseListingClient, file: DiscoveredFile) -> bool:
        """Resolve one file's target and report it.

        Returns:
            True if the file was reported, False if it was skipped.
        """
        if not file.is_symlink:
            self._on_file_found(file)
            return True

        entries = await client.stat_one(file.full_path)
        self._check_cancelled()

        if len(entries) != 1:
            error = MalformedResolutionError(file.full_path, len(entries))
            if not self._config.skip_malformed_symlinks:
                raise error
            logger.warning("Skipping %s", error)
            return False

        file.target_data = TargetData.from_entry(entries[0])
        logger.debug("Got target data for %s: %s", file.full_path, file.target_data)

        self._on_file_found(file)
        return True

    def _fail(self, error: Exception) -> None:
        """Single handler for listing errors and client signals."""
        if self._state != ScanState.SCANNING:
            return

        if isinstance(error, AuthenticationError):
            logger.error("Remote scan refused: %s", error)
        elif isinstance(error, ScanCancelledError):
            logger.info("Remote scan stopped: %s", error)
        else:
            # Only output the full error for unrecognized errors
            logger.error("Error trying to scan remote", exc_info=error)

        self._complete(error, None)

    def _complete(
        self,
        error: Exception | None,
        files: list[DiscoveredFile] | None,
    ) -> None:
        if self._state != ScanState.SCANNING:
            return

        logger.info("Remote scan completed%s", " with errors" if error else "")
        callback = self._on_complete
        self._teardown()
        callback(error, files)

    def _teardown(self) -> None:
        self._state = ScanState.CANCELLED if self._cancelled else ScanState.COMPLETED

        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

        self._on_file_found = _ignore_file_found
        self._on_complete = _ignore_complete

        if self._client is not None:
            self._client.destroy()
            self._client = None

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
