"""Remote server access.

- BaseListingClient: interface the sync engine talks to
- LocalListingClient: implementation over a locally mounted remote tree
"""

from seedsync.remote.client import (
    AuthenticationError,
    BaseListingClient,
    EntryType,
    RemoteEntry,
    RemoteError,
    RemoteTimeoutError,
    SignalHandler,
    SignalKind,
)
from seedsync.remote.local import DEFAULT_OPERATION_TIMEOUT, LocalListingClient

__all__ = [
    # Interface
    "BaseListingClient",
    "EntryType",
    "RemoteEntry",
    "SignalHandler",
    "SignalKind",
    # Errors
    "AuthenticationError",
    "RemoteError",
    "RemoteTimeoutError",
    # Implementations
    "DEFAULT_OPERATION_TIMEOUT",
    "LocalListingClient",
]
