"""
Tests for LibraryWatcher event conversion and the watchdog bridge.
"""

import asyncio
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent
)

from core.sync.events import EventType
from core.sync.watcher import LibraryWatcher, convert_watchdog_event


class TestConvertWatchdogEvent:
    """Test convert_watchdog_event()"""

    def test_created(self):
        event = convert_watchdog_event(FileCreatedEvent("/music/a.mp3"))
        assert event.event_type == EventType.CREATED
        assert event.file_path == Path("/music/a.mp3")
        assert event.should_ingest

    def test_modified(self):
        event = convert_watchdog_event(FileModifiedEvent("/music/a.mp3"))
        assert event.event_type == EventType.MODIFIED
        assert event.should_ingest

    def test_moved_uses_destination(self):
        event = convert_watchdog_event(FileMovedEvent("/music/tmp.part", "/music/a.mp3"))
        assert event.event_type == EventType.MOVED
        assert event.file_path == Path("/music/a.mp3")
        assert event.old_path == Path("/music/tmp.part")
        assert event.should_ingest

    def test_deleted_not_ingested(self):
        event = convert_watchdog_event(FileDeletedEvent("/music/a.mp3"))
        assert event.event_type == EventType.DELETED
        assert not event.should_ingest

    def test_directory_not_ingested(self):
        event = convert_watchdog_event(DirCreatedEvent("/music/album"))
        assert event.is_directory
        assert not event.should_ingest

    def test_untracked_type(self):
        assert convert_watchdog_event(FileClosedEvent("/music/a.mp3")) is None


class TestLibraryWatcher:
    """Test LibraryWatcher against the real file system"""

    @pytest.mark.asyncio
    async def test_file_write_reaches_queue(self, tmp_path):
        queue = asyncio.Queue()
        watcher = LibraryWatcher(tmp_path, queue)
        watcher.start()
        try:
            assert watcher.is_monitoring
            target = tmp_path / "new.mp3"
            target.write_bytes(b"data")

            event = None
            deadline = asyncio.get_running_loop().time() + 5.0
            while asyncio.get_running_loop().time() < deadline:
                candidate = await asyncio.wait_for(queue.get(), timeout=5.0)
                if candidate.should_ingest and candidate.file_path == target.absolute():
                    event = candidate
                    break
            assert event is not None
        finally:
            watcher.stop()

        assert not watcher.is_monitoring

    @pytest.mark.asyncio
    async def test_missing_root(self, tmp_path):
        watcher = LibraryWatcher(tmp_path / "missing", asyncio.Queue())
        with pytest.raises(FileNotFoundError):
            watcher.start()

    @pytest.mark.asyncio
    async def test_root_must_be_directory(self, tmp_path):
        path = tmp_path / "file"
        path.write_text("x")
        with pytest.raises(NotADirectoryError):
            LibraryWatcher(path, asyncio.Queue()).start()

    def test_stop_without_start(self, tmp_path):
        watcher = LibraryWatcher(tmp_path, asyncio.Queue())
        watcher.stop()
        assert not watcher.is_monitoring
