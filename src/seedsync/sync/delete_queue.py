"""Deferred removal of remote files that have landed locally.

This module provides:
- RemoteDeleteQueue: Pausable queue deleting remote markers one at a time

The orchestrator pauses the queue while a scan runs so scanning and
deleting never compete for remote connections, and resumes it only after a
scan succeeded. Deletions that keep failing are dropped: the file is still
on the remote side, so the next scan rediscovers it, finds it already
present locally and routes it back here.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import logging
from collections import deque
from typing import TYPE_CHECKING

from seedsync.remote.client import AuthenticationError
from seedsync.sync.retry import (
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
    RetryAbortedError,
    retry_with_backoff,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from seedsync.remote.client import BaseListingClient
    from seedsync.sync.types import DiscoveredFile

logger = logging.getLogger(__name__)


class RemoteDeleteQueue:
    """Pausable queue of remote deletions.

    Usage:
        queue = RemoteDeleteQueue(client_factory)
        queue.pause()        # scan starts
        queue.add(file)      # held while paused
        queue.start()        # scan succeeded, deletions resume
        await queue.join()
        await queue.close()
    """

    def __init__(
        self,
        client_factory: Callable[[], BaseListingClient],
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
    ) -> None:
        """Initialize the delete queue.

        Args:
            client_factory: Creates the listing client used for deletes.
            max_retries: Retry attempts per file for transient errors.
            initial_backoff: Initial backoff time in seconds.
            max_backoff: Maximum backoff time in seconds.
        """
        self._client_factory = client_factory
        self._max_retries = max_retries
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff

        self._pending: deque[DiscoveredFile] = deque()
        self._current: DiscoveredFile | None = None
        self._paused = False
        self._closed = False
        self._task: asyncio.Task[None] | None = None

        # Statistics
        self._deleted_count = 0
        self._failed_count = 0

    @property
    def paused(self) -> bool:
        """Check if the queue is paused."""
        return self._paused

    @property
    def pending_count(self) -> int:
        """Get number of files waiting for deletion."""
        return len(self._pending)

    @property
    def deleted_count(self) -> int:
        """Get number of remote files deleted."""
        return self._deleted_count

    @property
    def failed_count(self) -> int:
        """Get number of deletions given up on."""
        return self._failed_count

    def add(self, file: DiscoveredFile) -> bool:
        """Queue a file for remote deletion.

        Returns:
            True if queued, False if already pending or the queue is closed.
        """
        if self._closed:
            logger.warning("Delete queue closed, not deleting %s", file.full_path)
            return False
        if file in self._pending or file == self._current:
            return False

        self._pending.append(file)
        logger.debug("Queued remote delete: %s", file.full_path)
        self._pump()
        return True

    def pause(self) -> None:
        """Stop starting new deletions.

        An in-flight attempt finishes; a deletion waiting to retry goes back
        to the front of the queue instead.
        """
        if not self._paused:
            logger.debug("Remote delete queue paused")
        self._paused = True

    def start(self) -> None:
        """Resume deleting."""
        if self._paused:
            logger.debug("Remote delete queue resumed (%d pending)", len(self._pending))
        self._paused = False
        self._pump()

    async def join(self) -> None:
        """Wait for the current drain to finish."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def close(self) -> None:
        """Stop the queue, abandoning pending deletions."""
        self._closed = True
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if self._pending:
            logger.info("Dropped %d pending remote deletes", len(self._pending))
            self._pending.clear()

    def _pump(self) -> None:
        if self._paused or self._closed or not self._pending:
            return
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(
            self._drain(), name="seedsync-remote-delete"
        )

    async def _drain(self) -> None:
        while self._pending and not self._paused and not self._closed:
            file = self._pending.popleft()
            self._current = file
            try:
                await retry_with_backoff(
                    functools.partial(self._delete, file),
                    max_retries=self._max_retries,
                    initial_backoff=self._initial_backoff,
                    max_backoff=self._max_backoff,
                    fatal_exceptions=(AuthenticationError,),
                    should_abort=self._stopping,
                )
                self._deleted_count += 1
                logger.info("Deleted remote file %s", file.full_path)
            except RetryAbortedError:
                # Paused between attempts: resume this file first
                self._pending.appendleft(file)
                logger.debug("Remote delete of %s deferred", file.full_path)
            except AuthenticationError as e:
                self._failed_count += 1
                logger.error("Remote delete refused for %s: %s", file.full_path, e)
            except Exception:
                self._failed_count += 1
                logger.exception("Giving up deleting %s", file.full_path)
            finally:
                self._current = None

    def _stopping(self) -> bool:
        return self._paused or self._closed

    async def _delete(self, file: DiscoveredFile) -> None:
        client = self._client_factory()
        try:
            await client.delete(file.full_path)
        finally:
            client.destroy()
