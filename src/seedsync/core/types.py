"""Shared enums for seedsync."""

from __future__ import annotations

from enum import Enum


class ScanState(str, Enum):
    """Lifecycle of one scan session.

    A session moves IDLE -> SCANNING -> COMPLETED or CANCELLED and never
    goes back: a new scan always constructs a new session.
    """

    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ErrorKind(str, Enum):
    """How a scan failure is reported to the user."""

    AUTHENTICATION = "authentication"
    TRANSPORT = "transport"
    MALFORMED = "malformed"
    CANCELLED = "cancelled"
