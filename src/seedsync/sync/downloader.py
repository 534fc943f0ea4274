"""File downloader for discovered files.

This module provides:
- FileDownloader: Copies one remote file to its local destination

Data is written to "<name><temp_suffix>" next to the destination and only
renamed into place once complete, so a file at the final name always means
a finished transfer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from seedsync.sync.paths import local_file_name
from seedsync.sync.types import DownloadError, DownloadResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from seedsync.remote.client import BaseListingClient
    from seedsync.sync.types import DiscoveredFile

logger = logging.getLogger(__name__)

DEFAULT_TEMP_SUFFIX = ".seedsync-part"


class FileDownloader:
    """Downloads files through a dedicated listing client per transfer.

    Usage:
        downloader = FileDownloader(client_factory)
        result = await downloader.download(file, "/library/tv/Show/")
    """

    def __init__(
        self,
        client_factory: Callable[[], BaseListingClient],
        temp_suffix: str = DEFAULT_TEMP_SUFFIX,
    ) -> None:
        """Initialize the downloader.

        Args:
            client_factory: Creates one listing client per transfer.
            temp_suffix: Suffix of in-flight partial files.
        """
        self._client_factory = client_factory
        self._temp_suffix = temp_suffix

    def temp_path(self, destination: Path) -> Path:
        """Get the partial-file path used while downloading to destination."""
        return destination.with_name(destination.name + self._temp_suffix)

    async def download(self, file: DiscoveredFile, local_directory: str) -> DownloadResult:
        """Download a file into local_directory.

        Args:
            file: The file to transfer.
            local_directory: Destination directory (from path mapping).

        Returns:
            DownloadResult with the final local path and size.

        Raises:
            DownloadError: If the transfer fails or the size does not match.
        """
        try:
            name = local_file_name(file.name)
        except ValueError as e:
            raise DownloadError(str(e)) from e

        directory = Path(local_directory)
        destination = directory / name
        partial = self.temp_path(destination)

        logger.info("Downloading %s to %s", file.full_path, destination)

        client = self._client_factory()
        try:
            directory.mkdir(parents=True, exist_ok=True)
            size = await client.fetch(file.full_path, partial)

            expected = file.resolved_size
            if expected is not None and size != expected:
                raise DownloadError(
                    f"Size mismatch for {file.full_path}: expected {expected}, got {size}"
                )

            os.replace(partial, destination)
        except (DownloadError, asyncio.CancelledError):
            self._discard(partial)
            raise
        except Exception as e:
            self._discard(partial)
            raise DownloadError(f"Failed to download {file.full_path}: {e}") from e
        finally:
            client.destroy()

        logger.info("Downloaded %s (%d bytes)", destination, size)
        return DownloadResult(file=file, local_path=destination, size=size)

    def _discard(self, partial: Path) -> None:
        with contextlib.suppress(FileNotFoundError):
            partial.unlink()
