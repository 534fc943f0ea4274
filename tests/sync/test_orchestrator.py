"""Tests for the sync orchestrator."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from seedsync.core.config import SyncConfig
from seedsync.notifications import NotificationCenter, NotificationType
from seedsync.remote.client import AuthenticationError, RemoteError
from seedsync.sync.delete_queue import RemoteDeleteQueue
from seedsync.sync.orchestrator import SyncOrchestrator
from seedsync.sync.types import DiscoveredFile


def _orchestrator(config: SyncConfig, remote: Any) -> SyncOrchestrator:
    return SyncOrchestrator(
        config,
        remote.factory,
        delete_queue=RemoteDeleteQueue(remote.factory, initial_backoff=0, max_backoff=0),
        notifier=NotificationCenter(),
    )


def _show(remote: Any, count: int) -> None:
    """tv/Show/ep0..epN as symlinks."""
    remote.tree = [
        remote.folder("tv", [
            remote.folder("Show", [
                remote.link(f"ep{i}.mkv", modified_at=float(i)) for i in range(count)
            ]),
        ]),
    ]
    for i in range(count):
        remote.add_link(f"/seedbox-sync/tv/Show/ep{i}.mkv", data=f"episode {i}".encode())


class TestSyncOnce:
    """Full scan-download-delete cycles."""

    @pytest.mark.asyncio
    async def test_downloads_and_deletes(
        self, remote: Any, make_config: Callable[..., SyncConfig], tmp_path: Path
    ) -> None:
        _show(remote, 3)
        remote.tree.append(remote.folder("movies", [remote.link("film.mkv")]))
        remote.add_link("/seedbox-sync/movies/film.mkv", data=b"film")

        orchestrator = _orchestrator(make_config(), remote)
        error = await orchestrator.sync_once()
        await orchestrator.stop()

        assert error is None
        show = tmp_path / "library" / "tv" / "Show"
        assert (show / "ep0.mkv").read_bytes() == b"episode 0"
        assert (show / "ep2.mkv").exists()
        assert (tmp_path / "library" / "default" / "movies" / "film.mkv").read_bytes() == b"film"

        assert sorted(remote.deleted) == sorted([
            "/seedbox-sync/tv/Show/ep0.mkv",
            "/seedbox-sync/tv/Show/ep1.mkv",
            "/seedbox-sync/tv/Show/ep2.mkv",
            "/seedbox-sync/movies/film.mkv",
        ])
        assert orchestrator.stats.downloads_completed == 4
        assert len(orchestrator.queue) == 0
        messages = [n.message for n in orchestrator.notifier.recent()]
        assert "Download completed film.mkv" in messages

    @pytest.mark.asyncio
    async def test_already_downloaded_not_enqueued(
        self, remote: Any, make_config: Callable[..., SyncConfig], tmp_path: Path
    ) -> None:
        """A file present at its destination goes straight to remote deletion."""
        _show(remote, 1)
        destination = tmp_path / "library" / "tv" / "Show" / "ep0.mkv"
        destination.parent.mkdir(parents=True)
        destination.write_bytes(b"local copy")

        orchestrator = _orchestrator(make_config(), remote)
        enqueued: list[DiscoveredFile] = []
        add = orchestrator.queue.add
        orchestrator.queue.add = lambda f: enqueued.append(f) or add(f)  # type: ignore[method-assign]

        await orchestrator.sync_once()
        await orchestrator.stop()

        assert enqueued == []
        assert not any(call == "fetch" for call, _ in remote.calls)
        assert remote.deleted == ["/seedbox-sync/tv/Show/ep0.mkv"]
        assert destination.read_bytes() == b"local copy"
        assert orchestrator.stats.already_synced == 1

    @pytest.mark.asyncio
    async def test_second_run_enqueues_nothing(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        """Rerunning over an unchanged remote downloads nothing new."""
        _show(remote, 4)
        orchestrator = _orchestrator(make_config(delete_remote_files=False), remote)

        await orchestrator.sync_once()
        assert orchestrator.stats.downloads_completed == 4

        await orchestrator.sync_once()
        await orchestrator.stop()

        assert orchestrator.stats.downloads_completed == 4
        assert orchestrator.stats.already_synced == 4
        assert sum(1 for call, _ in remote.calls if call == "fetch") == 4

    @pytest.mark.asyncio
    async def test_delete_disabled(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 2)
        orchestrator = _orchestrator(make_config(delete_remote_files=False), remote)
        await orchestrator.sync_once()
        await orchestrator.stop()

        assert remote.deleted == []
        assert orchestrator.stats.downloads_completed == 2

    @pytest.mark.asyncio
    async def test_download_failure_dropped(
        self, remote: Any, make_config: Callable[..., SyncConfig], tmp_path: Path
    ) -> None:
        """A failed transfer is logged, dequeued and its remote kept."""
        _show(remote, 2)
        del remote.contents["/seedbox-sync/tv/Show/ep1.mkv"]

        orchestrator = _orchestrator(make_config(), remote)
        error = await orchestrator.sync_once()
        await orchestrator.stop()

        assert error is None
        assert orchestrator.stats.downloads_failed == 1
        assert orchestrator.stats.downloads_completed == 1
        assert remote.deleted == ["/seedbox-sync/tv/Show/ep0.mkv"]
        assert len(orchestrator.queue) == 0
        show = tmp_path / "library" / "tv" / "Show"
        assert sorted(p.name for p in show.iterdir()) == ["ep0.mkv"]


class TestUnroutableFiles:
    """Files that cannot be given a local path of their own."""

    @pytest.mark.asyncio
    async def test_unusable_name_never_deleted(
        self, remote: Any, make_config: Callable[..., SyncConfig], tmp_path: Path
    ) -> None:
        """A name that sanitizes to nothing is skipped and kept remotely."""
        (tmp_path / "library" / "default").mkdir(parents=True)
        remote.tree = [remote.link("???"), remote.link("film.mkv")]
        remote.add_link("/seedbox-sync/???", data=b"precious")
        remote.add_link("/seedbox-sync/film.mkv", data=b"film")

        orchestrator = _orchestrator(make_config(), remote)
        error = await orchestrator.sync_once()
        await orchestrator.stop()

        assert error is None
        assert remote.deleted == ["/seedbox-sync/film.mkv"]
        assert ("fetch", "/seedbox-sync/???") not in remote.calls
        assert orchestrator.stats.files_skipped == 1
        assert orchestrator.stats.already_synced == 0
        assert sorted(p.name for p in (tmp_path / "library").iterdir()) == ["default"]

    @pytest.mark.asyncio
    async def test_colliding_names_keep_one_remote(
        self, remote: Any, make_config: Callable[..., SyncConfig], tmp_path: Path
    ) -> None:
        """Two remote names sharing a local path: only one is synced and deleted."""
        data = {
            "/seedbox-sync/tv/Show/a:b.mkv": b"first",
            "/seedbox-sync/tv/Show/ab.mkv": b"second",
        }
        remote.tree = [
            remote.folder("tv", [
                remote.folder("Show", [
                    remote.link("a:b.mkv", modified_at=2.0),
                    remote.link("ab.mkv", modified_at=1.0),
                ]),
            ]),
        ]
        for path, contents in data.items():
            remote.add_link(path, data=contents)

        orchestrator = _orchestrator(make_config(), remote)
        await orchestrator.sync_once()
        assert len(remote.deleted) == 1
        synced = remote.deleted[0]
        kept = next(path for path in data if path != synced)

        # The landed copy now exists; the other name still must not match it
        await orchestrator.sync_once()
        await orchestrator.stop()

        landed = tmp_path / "library" / "tv" / "Show" / "ab.mkv"
        assert landed.read_bytes() == data[synced]
        assert kept not in remote.deleted
        assert ("fetch", kept) not in remote.calls
        assert orchestrator.stats.files_skipped == 2

    @pytest.mark.asyncio
    async def test_directory_at_destination_not_synced(
        self, remote: Any, make_config: Callable[..., SyncConfig], tmp_path: Path
    ) -> None:
        """Only a regular file at the destination counts as downloaded."""
        _show(remote, 1)
        (tmp_path / "library" / "tv" / "Show" / "ep0.mkv").mkdir(parents=True)

        orchestrator = _orchestrator(make_config(), remote)
        await orchestrator.sync_once()
        await orchestrator.stop()

        assert orchestrator.stats.already_synced == 0
        assert orchestrator.stats.downloads_failed == 1
        assert remote.deleted == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [PermissionError("denied"), RuntimeError("boom")])
    async def test_per_file_error_skips_only_that_file(
        self, remote: Any, make_config: Callable[..., SyncConfig], failure: Exception
    ) -> None:
        """One file failing to route does not fail the scan."""
        _show(remote, 3)
        orchestrator = _orchestrator(make_config(), remote)
        already_downloaded = orchestrator.file_already_downloaded

        def flaky(file: DiscoveredFile) -> bool:
            if file.name == "ep1.mkv":
                raise failure
            return already_downloaded(file)

        orchestrator.file_already_downloaded = flaky  # type: ignore[method-assign]

        error = await orchestrator.sync_once()
        await orchestrator.stop()

        assert error is None
        assert orchestrator.stats.scans_failed == 0
        assert orchestrator.stats.files_skipped == 1
        assert orchestrator.stats.downloads_completed == 2
        assert sorted(remote.deleted) == [
            "/seedbox-sync/tv/Show/ep0.mkv",
            "/seedbox-sync/tv/Show/ep2.mkv",
        ]
        assert len(orchestrator.notifier.recent()) == 2


class TestConcurrency:
    """Download slot handling."""

    @pytest.mark.asyncio
    async def test_cap_never_exceeded(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 6)
        remote.fetch_gate = asyncio.Event()

        orchestrator = _orchestrator(make_config(max_concurrent_downloads=2), remote)
        observed: list[int] = []
        complete = orchestrator.on_download_complete

        def checked(err: Exception | None, file: DiscoveredFile) -> None:
            complete(err, file)
            observed.append(orchestrator.queue.downloading_count)

        orchestrator.on_download_complete = checked  # type: ignore[method-assign]

        orchestrator.request_sync()
        for _ in range(50):
            await asyncio.sleep(0)

        assert len(orchestrator.queue) == 6
        assert orchestrator.queue.downloading_count == 2
        assert remote.active_fetches == 2

        remote.fetch_gate.set()
        await orchestrator.wait_until_settled()
        await orchestrator.stop()

        assert remote.max_active_fetches == 2
        assert len(observed) == 6
        assert all(count <= 2 for count in observed)
        assert orchestrator.stats.downloads_completed == 6

    @pytest.mark.asyncio
    async def test_newest_downloaded_first(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 3)
        orchestrator = _orchestrator(make_config(max_concurrent_downloads=1), remote)
        await orchestrator.sync_once()
        await orchestrator.stop()

        fetched = [path for call, path in remote.calls if call == "fetch"]
        assert fetched == [f"/seedbox-sync/tv/Show/ep{i}.mkv" for i in (2, 1, 0)]

    @pytest.mark.asyncio
    async def test_rediscovered_file_not_queued_twice(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 1)
        remote.fetch_gate = asyncio.Event()
        orchestrator = _orchestrator(make_config(), remote)

        orchestrator.request_sync()
        for _ in range(30):
            await asyncio.sleep(0)
        assert not orchestrator.is_scanning

        assert orchestrator.request_sync()
        for _ in range(30):
            await asyncio.sleep(0)

        assert len(orchestrator.queue) == 1
        assert orchestrator.stats.files_discovered == 2

        remote.fetch_gate.set()
        await orchestrator.wait_until_settled()
        await orchestrator.stop()
        assert sum(1 for call, _ in remote.calls if call == "fetch") == 1


class TestScanHandling:
    """Scan scheduling and failures."""

    @pytest.mark.asyncio
    async def test_request_while_scanning(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 2)
        remote.stat_gate = asyncio.Event()
        orchestrator = _orchestrator(make_config(), remote)

        assert orchestrator.request_sync()
        first = orchestrator.scanner
        assert not orchestrator.request_sync()
        assert orchestrator.scanner is first
        assert orchestrator.stats.scans_started == 1

        remote.stat_gate.set()
        await orchestrator.wait_until_settled()
        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_delete_queue_paused_during_scan(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 1)
        remote.stat_gate = asyncio.Event()
        orchestrator = _orchestrator(make_config(), remote)

        orchestrator.request_sync()
        assert orchestrator.delete_queue.paused

        remote.stat_gate.set()
        await orchestrator.wait_until_settled()
        assert not orchestrator.delete_queue.paused
        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_auth_failure_notifies(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        remote.list_error = AuthenticationError("530 Login incorrect")
        orchestrator = _orchestrator(make_config(), remote)

        error = await orchestrator.sync_once()
        await orchestrator.stop()

        assert isinstance(error, AuthenticationError)
        assert orchestrator.delete_queue.paused
        assert orchestrator.stats.scans_failed == 1
        notifications = orchestrator.notifier.recent()
        assert len(notifications) == 1
        assert notifications[0].message == "Invalid remote user or password"
        assert notifications[0].type == NotificationType.ERROR
        assert orchestrator.status()["last_scan_error"] == "Invalid remote user or password"

    @pytest.mark.asyncio
    async def test_transport_failure_notifies(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        remote.list_error = RemoteError("Connection reset")
        orchestrator = _orchestrator(make_config(), remote)
        await orchestrator.sync_once()
        await orchestrator.stop()

        assert [n.message for n in orchestrator.notifier.recent()] == ["Connection reset"]

    @pytest.mark.asyncio
    async def test_malformed_failure_not_notified(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        remote.tree = [remote.link("broken.mkv")]
        orchestrator = _orchestrator(make_config(), remote)

        error = await orchestrator.sync_once()
        await orchestrator.stop()

        assert error is not None
        assert len(orchestrator.notifier) == 0
        assert orchestrator.delete_queue.paused

    @pytest.mark.asyncio
    async def test_watchdog_timeout_notifies(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 1)
        remote.stat_gate = asyncio.Event()
        orchestrator = _orchestrator(make_config(scan_timeout=0.05), remote)

        await asyncio.wait_for(orchestrator.sync_once(), timeout=2)
        await orchestrator.stop()

        notifications = orchestrator.notifier.recent()
        assert len(notifications) == 1
        assert "timed out" in notifications[0].message

    @pytest.mark.asyncio
    async def test_stop_cancels_scan_quietly(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 1)
        remote.stat_gate = asyncio.Event()
        orchestrator = _orchestrator(make_config(), remote)

        orchestrator.request_sync()
        await asyncio.sleep(0)
        await orchestrator.stop()

        assert not orchestrator.is_scanning
        assert len(orchestrator.notifier) == 0
        assert remote.clients[0].destroyed

    @pytest.mark.asyncio
    async def test_polling(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        """start() syncs immediately and then every polling_interval."""
        orchestrator = _orchestrator(make_config(polling_interval=0.05), remote)
        orchestrator.start()
        assert orchestrator.stats.scans_started == 1

        await asyncio.sleep(0.18)
        await orchestrator.stop()
        started = orchestrator.stats.scans_started
        assert started >= 3

        await asyncio.sleep(0.1)
        assert orchestrator.stats.scans_started == started

    @pytest.mark.asyncio
    async def test_trigger_sync_notifies(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        orchestrator = _orchestrator(make_config(), remote)

        assert orchestrator.trigger_sync()
        await orchestrator.wait_until_settled()
        await orchestrator.stop()

        notifications = orchestrator.notifier.recent()
        assert [n.message for n in notifications] == ["Sync Request received"]
        assert notifications[0].type == NotificationType.INFO


class TestStatus:
    """Read-only snapshots."""

    @pytest.mark.asyncio
    async def test_downloads_status(
        self, remote: Any, make_config: Callable[..., SyncConfig]
    ) -> None:
        _show(remote, 3)
        remote.fetch_gate = asyncio.Event()
        orchestrator = _orchestrator(make_config(max_concurrent_downloads=1), remote)

        orchestrator.request_sync()
        for _ in range(30):
            await asyncio.sleep(0)

        downloads = orchestrator.downloads_status()
        assert [d["name"] for d in downloads] == ["ep2.mkv", "ep1.mkv", "ep0.mkv"]
        assert [d["downloading"] for d in downloads] == [True, False, False]

        status = orchestrator.status()
        assert status["scanning"] is False
        assert status["queue"]["downloading"] == 1
        assert status["stats"]["files_discovered"] == 3

        remote.fetch_gate.set()
        await orchestrator.wait_until_settled()
        await orchestrator.stop()

    @pytest.mark.asyncio
    async def test_destination_directory(
        self, remote: Any, make_config: Callable[..., SyncConfig], tmp_path: Path
    ) -> None:
        orchestrator = _orchestrator(make_config(), remote)
        file = DiscoveredFile("/seedbox-sync", "/tv/Show/", "ep1.mkv")
        assert orchestrator.get_destination_directory(file) == (
            str(tmp_path / "library" / "tv") + "/Show/"
        )
        assert not orchestrator.file_already_downloaded(file)
