"""Shared fixtures: an in-memory remote server and config builders."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from seedsync.core.config import PathMapping, SyncConfig
from seedsync.remote.client import BaseListingClient, EntryType, RemoteEntry


class FakeRemote:
    """In-memory remote tree shared by every client a factory creates.

    Attributes:
        tree: Entries returned by list_tree().
        targets: Per-path stat_one() result, or an exception to raise.
        contents: Per-path file data served by fetch().
        list_error: Raised by list_tree() when set.
        delete_errors: Per-path exceptions raised by successive delete() calls.
        stat_gate: When set, stat_one() waits on this event first.
        fetch_gate: When set, fetch() waits on this event first.
    """

    def __init__(self) -> None:
        self.tree: list[RemoteEntry] = []
        self.targets: dict[str, list[RemoteEntry] | Exception] = {}
        self.contents: dict[str, bytes] = {}
        self.list_error: Exception | None = None
        self.delete_errors: dict[str, list[Exception]] = {}
        self.stat_gate: asyncio.Event | None = None
        self.fetch_gate: asyncio.Event | None = None

        self.calls: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.clients: list[FakeListingClient] = []
        self.active_fetches = 0
        self.max_active_fetches = 0

    def factory(self) -> FakeListingClient:
        """Create a new client bound to this remote."""
        client = FakeListingClient(self)
        self.clients.append(client)
        return client

    def add_link(
        self,
        path: str,
        data: bytes = b"data",
        modified_at: float = 1000.0,
    ) -> None:
        """Register a well-formed symlink target and its contents."""
        name = path.rsplit("/", 1)[-1]
        self.targets[path] = [
            RemoteEntry(name=name, type=EntryType.FILE, size=len(data), modified_at=modified_at)
        ]
        self.contents[path] = data

    @staticmethod
    def link(name: str, modified_at: float = 1000.0) -> RemoteEntry:
        return RemoteEntry(name=name, type=EntryType.SYMLINK, size=40, modified_at=modified_at)

    @staticmethod
    def plain(name: str, size: int = 4, modified_at: float = 1000.0) -> RemoteEntry:
        return RemoteEntry(name=name, type=EntryType.FILE, size=size, modified_at=modified_at)

    @staticmethod
    def folder(name: str, children: list[RemoteEntry]) -> RemoteEntry:
        return RemoteEntry(name=name, type=EntryType.DIRECTORY, children=children)


class FakeListingClient(BaseListingClient):
    """Listing client serving a FakeRemote."""

    def __init__(self, remote: FakeRemote) -> None:
        super().__init__()
        self.remote = remote
        self.closed = False

    async def list_tree(self, path: str) -> list[RemoteEntry]:
        self._ensure_open()
        self.remote.calls.append(("list_tree", path))
        await asyncio.sleep(0)
        if self.remote.list_error is not None:
            raise self.remote.list_error
        return self.remote.tree

    async def stat_one(self, path: str) -> list[RemoteEntry]:
        self._ensure_open()
        self.remote.calls.append(("stat_one", path))
        if self.remote.stat_gate is not None:
            await self.remote.stat_gate.wait()
        await asyncio.sleep(0)
        result = self.remote.targets.get(path, [])
        if isinstance(result, Exception):
            raise result
        return result

    async def fetch(self, path: str, destination: Path) -> int:
        self._ensure_open()
        self.remote.calls.append(("fetch", path))
        self.remote.active_fetches += 1
        self.remote.max_active_fetches = max(
            self.remote.max_active_fetches, self.remote.active_fetches
        )
        try:
            if self.remote.fetch_gate is not None:
                await self.remote.fetch_gate.wait()
            await asyncio.sleep(0)
            data = self.remote.contents[path]
            destination.write_bytes(data)
            return len(data)
        finally:
            self.remote.active_fetches -= 1

    async def delete(self, path: str) -> None:
        self._ensure_open()
        self.remote.calls.append(("delete", path))
        await asyncio.sleep(0)
        errors = self.remote.delete_errors.get(path)
        if errors:
            raise errors.pop(0)
        self.remote.deleted.append(path)

    def _close(self) -> None:
        self.closed = True


@pytest.fixture
def remote() -> FakeRemote:
    """Empty in-memory remote."""
    return FakeRemote()


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., SyncConfig]:
    """Build a SyncConfig rooted in tmp_path."""

    def _make(**overrides: Any) -> SyncConfig:
        values: dict[str, Any] = {
            "sync_root": "/seedbox-sync",
            "local_sync_root": str(tmp_path / "library" / "default"),
            "path_mappings": (
                PathMapping(remote_path="/tv", local_path=str(tmp_path / "library" / "tv")),
            ),
            "scan_timeout": 5.0,
        }
        values.update(overrides)
        return SyncConfig(**values)

    return _make
