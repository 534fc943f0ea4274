"""Listing client for a remote tree mounted into the local filesystem.

This module provides:
- LocalListingClient: BaseListingClient over a mount point (sshfs, rclone
  mount, NFS). Remote paths such as "/seedbox-sync/tv" resolve to
  "<mount>/seedbox-sync/tv".

Blocking filesystem calls run in a worker thread so the event loop keeps
serving the orchestrator while a slow mount answers.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any

from seedsync.remote.client import (
    AuthenticationError,
    BaseListingClient,
    EntryType,
    RemoteEntry,
    RemoteError,
    RemoteTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEFAULT_OPERATION_TIMEOUT = 60.0  # seconds


class LocalListingClient(BaseListingClient):
    """Listing client backed by a locally mounted remote tree.

    Error mapping:
    - PermissionError -> AuthenticationError (access refused)
    - operation slower than ``timeout`` -> RemoteTimeoutError
    - any other OSError -> RemoteError
    """

    def __init__(
        self,
        mount: Path,
        timeout: float = DEFAULT_OPERATION_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            mount: Local directory where the remote root is mounted.
            timeout: Maximum seconds for a single operation.
        """
        super().__init__()
        self._mount = mount
        self._timeout = timeout

    @property
    def mount(self) -> Path:
        """Get the mount point."""
        return self._mount

    def resolve(self, path: str) -> Path:
        """Map a remote path onto the mount point.

        Raises:
            RemoteError: If the path tries to leave the mount.
        """
        parts = [p for p in path.replace("\\", "/").split("/") if p]
        if ".." in parts:
            raise RemoteError(f"Refusing path outside the remote root: {path}")
        return self._mount.joinpath(*parts)

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking call in a thread with timeout and error mapping."""
        self._ensure_open()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args),
                timeout=self._timeout,
            )
        except TimeoutError as e:
            raise RemoteTimeoutError(
                f"Remote operation timed out after {self._timeout:.0f}s"
            ) from e
        except PermissionError as e:
            raise AuthenticationError(f"Access denied: {e}", code=e.errno) from e
        except OSError as e:
            raise RemoteError(str(e), code=e.errno) from e

    async def list_tree(self, path: str) -> list[RemoteEntry]:
        """List a directory recursively without following symlinks."""
        return await self._run(self._scan_directory, self.resolve(path))

    async def stat_one(self, path: str) -> list[RemoteEntry]:
        """Describe the target of a path, following symlinks."""
        return await self._run(self._stat_target, self.resolve(path))

    async def fetch(self, path: str, destination: Path) -> int:
        """Copy the target of a remote path to a local file."""
        return await self._run(self._copy, self.resolve(path), destination)

    async def delete(self, path: str) -> None:
        """Remove a remote file or symlink marker."""
        await self._run(self._unlink, self.resolve(path))

    def _close(self) -> None:
        logger.debug("Closed listing client for %s", self._mount)

    def _scan_directory(self, directory: Path) -> list[RemoteEntry]:
        entries: list[RemoteEntry] = []
        with os.scandir(directory) as it:
            for item in sorted(it, key=lambda e: e.name):
                if item.is_symlink():
                    st = item.stat(follow_symlinks=False)
                    entries.append(RemoteEntry(
                        name=item.name,
                        type=EntryType.SYMLINK,
                        size=st.st_size,
                        modified_at=st.st_mtime,
                    ))
                elif item.is_dir(follow_symlinks=False):
                    st = item.stat(follow_symlinks=False)
                    entries.append(RemoteEntry(
                        name=item.name,
                        type=EntryType.DIRECTORY,
                        modified_at=st.st_mtime,
                        children=self._scan_directory(Path(item.path)),
                    ))
                elif item.is_file(follow_symlinks=False):
                    st = item.stat(follow_symlinks=False)
                    entries.append(RemoteEntry(
                        name=item.name,
                        type=EntryType.FILE,
                        size=st.st_size,
                        modified_at=st.st_mtime,
                    ))
                else:
                    entries.append(RemoteEntry(name=item.name, type=EntryType.OTHER))
        return entries

    def _stat_target(self, path: Path) -> list[RemoteEntry]:
        # Broken symlinks and missing paths resolve to nothing
        if not path.exists():
            return []

        if path.is_dir():
            # Like a server-side ls on a directory: one entry per child
            return [
                RemoteEntry(name=child.name, type=EntryType.OTHER)
                for child in sorted(path.iterdir())
            ]

        st = path.stat()
        return [RemoteEntry(
            name=path.resolve().name,
            type=EntryType.FILE,
            size=st.st_size,
            modified_at=st.st_mtime,
        )]

    def _copy(self, source: Path, destination: Path) -> int:
        shutil.copyfile(source, destination)
        return destination.stat().st_size

    def _unlink(self, path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            raise IsADirectoryError(f"Not deleting directory: {path}")
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Remote path already gone: %s", path)
