"""
Library Synchronization Engine.

Central coordinator for keeping the piece store in step with the library
tree: watchdog events feed the debouncer, settled paths feed a single
synchronizer worker, and an optional upload worker drains the upload queue.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..errors import ConfigurationError
from ..models.config import BentenConfig
from ..storage.base import BlobStore, TransactionalStore
from ..tags.extractor import TagReader
from .debouncer import IngestionDebouncer
from .events import FileSystemEvent, SettledEvent
from .synchronizer import MetadataSynchronizer, SyncStatus
from .uploader import Subscription, UploadWorker
from .watcher import LibraryWatcher

logger = logging.getLogger(__name__)


@dataclass
class SyncEngineMetrics:
    """Counters for the synchronization engine."""

    events_received: int = 0
    events_ignored: int = 0
    paths_settled: int = 0
    pieces_stored: int = 0
    paths_skipped: int = 0
    paths_failed: int = 0
    files_scanned: int = 0

    start_time: Optional[datetime] = None
    last_error_time: Optional[datetime] = None
    last_error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events_received": self.events_received,
            "events_ignored": self.events_ignored,
            "paths_settled": self.paths_settled,
            "pieces_stored": self.pieces_stored,
            "paths_skipped": self.paths_skipped,
            "paths_failed": self.paths_failed,
            "files_scanned": self.files_scanned,
            "uptime_seconds": (datetime.now() - self.start_time).total_seconds() if self.start_time else 0.0,
            "last_error_message": self.last_error_message
        }


def walk_library(root: Path) -> List[Path]:
    """All regular files under ``root``, in a stable order"""
    found: List[Path] = []

    def on_error(error: OSError) -> None:
        logger.warning(f"Error during library walk: {error}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_file() and not path.is_symlink():
                logger.debug(f"Found: {path}")
                found.append(path)
    return found


class LibrarySyncEngine:
    """
    Wires watcher, debouncer, synchronizer and upload worker together.

    All components share the running event loop. Settled paths are processed
    strictly one at a time by a single worker.
    """

    def __init__(
        self,
        config: BentenConfig,
        store: TransactionalStore,
        blobs: BlobStore,
        tag_reader: TagReader,
        subscription: Optional[Subscription] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the synchronization engine.

        Args:
            config: Loaded configuration
            store: Document store for pieces and the index
            blobs: Object store for album art and uploaded contents
            tag_reader: Reader for tags and content hashes
            subscription: Source of upload messages, or None to disable uploads
            clock: Time source for the debouncer
        """
        self.config = config
        self.store = store
        self.blobs = blobs
        self.clock = clock

        self.raw_events: "asyncio.Queue[FileSystemEvent]" = asyncio.Queue()
        self.settled_events: "asyncio.Queue[SettledEvent]" = asyncio.Queue()

        self.watcher = LibraryWatcher(config.target, self.raw_events)
        self.synchronizer = MetadataSynchronizer(
            store=store,
            blobs=blobs,
            tag_reader=tag_reader,
            art_bucket=config.album_art_bucket,
            root=config.target,
            operation_timeout=config.operation_timeout_s
        )
        self.upload_worker: Optional[UploadWorker] = None
        if subscription is not None:
            self.upload_worker = UploadWorker(
                blobs=blobs,
                bucket=config.piece_bucket,
                subscription=subscription,
                operation_timeout=config.operation_timeout_s
            )

        self.debouncer: Optional[IngestionDebouncer] = None
        self.workers: List[asyncio.Task] = []
        self.is_running = False
        self.metrics = SyncEngineMetrics()

        logger.info(f"Initialized LibrarySyncEngine for {config.target}")

    async def start(self, full: bool = False) -> None:
        """
        Start watching and processing.

        Args:
            full: Also walk the whole tree and sync every file

        Raises:
            ConfigurationError: If the library root cannot be watched
        """
        if self.is_running:
            logger.warning("Synchronization engine is already running")
            return

        self.debouncer = IngestionDebouncer(
            self.settled_events.put_nowait,
            window=self.config.settle_window_s,
            clock=self.clock,
            loop=asyncio.get_running_loop()
        )

        try:
            self.watcher.start()
        except OSError as e:
            raise ConfigurationError(f"Cannot watch {self.config.target}: {e}") from e

        self.workers = [
            asyncio.create_task(self._raw_event_worker(), name="raw-events"),
            asyncio.create_task(self._sync_worker(), name="synchronizer")
        ]
        if self.upload_worker is not None:
            self.workers.append(asyncio.create_task(self.upload_worker.run(), name="uploader"))
        for worker in self.workers:
            worker.add_done_callback(self._on_worker_done)

        self.is_running = True
        self.metrics.start_time = datetime.now()
        logger.info(f"Started synchronization engine with {len(self.workers)} workers")

        if full:
            await self.full_scan()

    async def stop(self) -> None:
        """Stop the watcher, cancel workers and discard unsettled paths."""
        if not self.is_running:
            return

        logger.info("Stopping LibrarySyncEngine")
        self.is_running = False
        self.watcher.stop()

        for worker in self.workers:
            worker.cancel()
        if self.workers:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*self.workers, return_exceptions=True),
                    timeout=5.0
                )
            except asyncio.TimeoutError:
                logger.warning("Timeout waiting for workers to stop - forcing shutdown")
        self.workers = []

        if self.debouncer is not None:
            self.debouncer.close()

        logger.info(f"Stopped LibrarySyncEngine: {self.metrics.to_dict()}")

    async def run(self, full: bool = False) -> None:
        """Start and keep running until cancelled"""
        await self.start(full=full)
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def full_scan(self) -> int:
        """
        Touch every regular file under the library root.

        Returns:
            Number of files found
        """
        paths = await asyncio.to_thread(walk_library, self.watcher.root)
        for path in paths:
            self.debouncer.touch(path)
        self.metrics.files_scanned += len(paths)
        logger.info(f"Full scan found {len(paths)} files under {self.watcher.root}")
        return len(paths)

    def handle_raw_event(self, event: FileSystemEvent) -> bool:
        """
        Forward an ingest-worthy raw event to the debouncer.

        Returns:
            True if the event touched the debouncer
        """
        self.metrics.events_received += 1
        if not event.should_ingest:
            self.metrics.events_ignored += 1
            return False
        self.debouncer.touch(event.file_path)
        return True

    def _on_worker_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Worker {task.get_name()} stopped: {error!r}")
            self.metrics.last_error_message = str(error)
            self.metrics.last_error_time = datetime.now()

    async def _raw_event_worker(self) -> None:
        while True:
            event = await self.raw_events.get()
            try:
                self.handle_raw_event(event)
            finally:
                self.raw_events.task_done()

    async def _sync_worker(self) -> None:
        while True:
            event = await self.settled_events.get()
            try:
                self.metrics.paths_settled += 1
                result = await self.synchronizer.sync(event.file_path)
                if result.status == SyncStatus.STORED:
                    self.metrics.pieces_stored += 1
                elif result.status == SyncStatus.SKIPPED:
                    self.metrics.paths_skipped += 1
                else:
                    self.metrics.paths_failed += 1
                    self.metrics.last_error_message = result.error
                    self.metrics.last_error_time = datetime.now()
            except Exception as e:
                # One bad file must not stop the worker
                logger.error(f"Unexpected error syncing {event.file_path}: {e}")
                self.metrics.paths_failed += 1
                self.metrics.last_error_message = str(e)
                self.metrics.last_error_time = datetime.now()
            finally:
                self.settled_events.task_done()
