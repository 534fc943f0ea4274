"""Download queue for discovered files.

This module provides:
- DownloadQueue: Insertion-ordered queue with identity deduplication

The queue is owned by the orchestrator and only mutated from its control
flow on the event loop thread, between suspension points, so it needs no
locking. Files are deduplicated by identity (full remote path): a file that
is rediscovered while queued or downloading is not added twice.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from seedsync.sync.types import DiscoveredFile

logger = logging.getLogger(__name__)


class DownloadQueue:
    """Ordered download queue with no duplicate identities.

    Attributes:
        max_concurrent: Cap on entries marked as downloading.
    """

    def __init__(self, max_concurrent: int) -> None:
        """Initialize the queue.

        Args:
            max_concurrent: Maximum number of entries that may be
                downloading at the same time.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._files: list[DiscoveredFile] = []

    def add(self, file: DiscoveredFile) -> bool:
        """Append a file unless an equal file is already queued.

        Returns:
            True if the file was added, False if it was a duplicate.
        """
        if file in self._files:
            logger.debug("Already queued: %s", file.full_path)
            return False

        self._files.append(file)
        logger.debug("Queued %s (queue size: %d)", file.full_path, len(self._files))
        return True

    def remove(self, file: DiscoveredFile) -> bool:
        """Remove a file by identity.

        Returns:
            True if the file was found and removed.
        """
        for index, queued in enumerate(self._files):
            if queued == file:
                del self._files[index]
                logger.debug("Dequeued %s (queue size: %d)", file.full_path, len(self._files))
                return True
        return False

    @property
    def downloading_count(self) -> int:
        """Get number of entries currently downloading."""
        return sum(1 for f in self._files if f.downloading)

    @property
    def has_free_slot(self) -> bool:
        """Check if another transfer may start."""
        return self.downloading_count < self.max_concurrent

    def next_eligible(self) -> DiscoveredFile | None:
        """Get the first idle entry, if a download slot is free.

        Returns:
            The next file to download, or None when the cap is reached or
            every queued file is already downloading.
        """
        downloading = 0
        next_file: DiscoveredFile | None = None

        for file in self._files:
            if file.downloading:
                downloading += 1
            elif next_file is None:
                next_file = file

        if downloading < self.max_concurrent:
            return next_file
        return None

    def __contains__(self, file: object) -> bool:
        return file in self._files

    def __len__(self) -> int:
        """Get number of queued files, downloading ones included."""
        return len(self._files)

    def __iter__(self) -> Iterator[DiscoveredFile]:
        """Iterate over a snapshot in queue order."""
        return iter(list(self._files))

    def __bool__(self) -> bool:
        """Check if queue has files."""
        return bool(self._files)

    def stats(self) -> dict[str, int]:
        """Get queue statistics."""
        downloading = self.downloading_count
        return {
            "total": len(self._files),
            "downloading": downloading,
            "pending": len(self._files) - downloading,
            "max_concurrent": self.max_concurrent,
        }
