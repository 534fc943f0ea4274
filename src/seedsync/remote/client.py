"""Listing client interface for the remote file server.

This module provides:
- RemoteError, AuthenticationError, RemoteTimeoutError: Exception classes
- EntryType, RemoteEntry: Raw listing entries
- SignalKind: Out-of-band connection signals
- BaseListingClient: Abstract base class for listing clients

A listing client is one connection to the remote server. Besides the
call/response operations, the transport may report connection-level failures
outside any pending call; those arrive through signal handlers registered
with add_signal_handler().
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Base exception for remote server errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class AuthenticationError(RemoteError):
    """Login to the remote server was refused."""


class RemoteTimeoutError(RemoteError):
    """The remote server stopped responding."""


class EntryType(str, Enum):
    """Type of a remote listing entry."""

    FILE = "file"
    SYMLINK = "symlink"
    DIRECTORY = "directory"
    OTHER = "other"


@dataclass
class RemoteEntry:
    """One node of a remote listing.

    Attributes:
        name: Leaf name.
        type: Entry type.
        size: Size in bytes, if reported.
        modified_at: Modification time (POSIX seconds), if reported.
        children: Nested entries for directories listed recursively.
    """

    name: str
    type: EntryType
    size: int | None = None
    modified_at: float | None = None
    children: list[RemoteEntry] | None = None


class SignalKind(str, Enum):
    """Out-of-band signals a listing client can emit."""

    ERROR = "error"
    TIMEOUT = "timeout"


# Type alias for signal handlers
SignalHandler = Callable[[Exception], None]


class BaseListingClient(ABC):
    """Abstract base class for listing clients.

    Subclasses must implement:
    - list_tree(): Recursive listing of a directory
    - stat_one(): Listing of a single path (follows symlinks)
    - fetch(): Copy a remote file to a local path
    - delete(): Remove a remote path
    - _close(): Release the underlying connection

    Usage:
        client = MyClient(...)
        client.add_signal_handler(SignalKind.ERROR, on_error)
        entries = await client.list_tree("/sync")
        client.destroy()
    """

    def __init__(self) -> None:
        self._handlers: dict[SignalKind, list[SignalHandler]] = {
            kind: [] for kind in SignalKind
        }
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        """Check if the client has been destroyed."""
        return self._destroyed

    def add_signal_handler(
        self,
        kind: SignalKind,
        handler: SignalHandler,
    ) -> None:
        """Register a handler for an out-of-band signal.

        Args:
            kind: Signal to listen for.
            handler: Called with the exception describing the failure.
        """
        self._handlers[kind].append(handler)

    def emit_signal(self, kind: SignalKind, error: Exception) -> None:
        """Deliver a signal to every registered handler.

        Signals emitted after destroy() are dropped.
        """
        if self._destroyed:
            logger.debug("Dropping %s signal on destroyed client: %s", kind.value, error)
            return
        for handler in list(self._handlers[kind]):
            handler(error)

    def destroy(self) -> None:
        """Close the connection and drop all signal handlers. Idempotent."""
        if self._destroyed:
            return
        self._destroyed = True
        for handlers in self._handlers.values():
            handlers.clear()
        self._close()

    def _ensure_open(self) -> None:
        """Raise if the client was already destroyed."""
        if self._destroyed:
            raise RemoteError("Connection already closed")

    @abstractmethod
    async def list_tree(self, path: str) -> list[RemoteEntry]:
        """List a directory recursively.

        Args:
            path: Absolute remote directory path.

        Returns:
            Entries of the directory; directories carry their children.
        """
        ...

    @abstractmethod
    async def stat_one(self, path: str) -> list[RemoteEntry]:
        """List a single path, following a symlink to its target.

        Returns:
            Matching entries; a well-formed symlink yields exactly one.
        """
        ...

    @abstractmethod
    async def fetch(self, path: str, destination: Path) -> int:
        """Copy a remote file to a local path.

        Returns:
            Number of bytes written.
        """
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove a remote path."""
        ...

    @abstractmethod
    def _close(self) -> None:
        """Release the underlying connection."""
        ...
