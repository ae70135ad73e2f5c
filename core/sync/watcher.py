"""
Library File System Watcher.

Bridges watchdog's observer thread into the asyncio event loop: every
watchdog notification is converted to a FileSystemEvent and put on an
asyncio queue from the loop thread.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent as WatchdogEvent
from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileDeletedEvent, FileMovedEvent

from .events import FileSystemEvent

logger = logging.getLogger(__name__)


def convert_watchdog_event(event: WatchdogEvent) -> Optional[FileSystemEvent]:
    """
    Convert a watchdog event to our FileSystemEvent format.

    Args:
        event: Watchdog file system event

    Returns:
        FileSystemEvent or None if the event type is not tracked
    """
    src_path = Path(event.src_path).absolute()
    is_directory = event.is_directory

    if event.event_type == "moved":
        dest_path = Path(event.dest_path).absolute()
        return FileSystemEvent.create_file_moved(src_path, dest_path, is_directory=is_directory)
    if event.event_type == "created":
        return FileSystemEvent.create_file_created(src_path, is_directory=is_directory)
    if event.event_type == "modified":
        return FileSystemEvent.create_file_modified(src_path, is_directory=is_directory)
    if event.event_type == "deleted":
        return FileSystemEvent.create_file_deleted(src_path, is_directory=is_directory)
    return None


class LibraryWatcher:
    """
    Recursive watchdog observer over the library root.

    Raw events land on ``event_queue``; filtering and debouncing happen in
    the consumer.
    """

    def __init__(self, root: Path, event_queue: "asyncio.Queue[FileSystemEvent]", recursive: bool = True):
        """
        Initialize the watcher.

        Args:
            root: Directory to monitor
            event_queue: Queue receiving raw events on the event loop thread
            recursive: Whether to monitor subdirectories
        """
        self.root = Path(root).expanduser().absolute()
        self.event_queue = event_queue
        self.recursive = recursive
        self.observer: Optional[Observer] = None
        self.event_handler: Optional['LibraryEventHandler'] = None

    @property
    def is_monitoring(self) -> bool:
        return self.observer is not None

    def start(self) -> None:
        """
        Start the observer. Must be called from the event loop thread.

        Raises:
            FileNotFoundError: If the root does not exist
            NotADirectoryError: If the root is not a directory
        """
        if self.observer is not None:
            logger.warning("File system monitoring is already active")
            return

        if not self.root.exists():
            raise FileNotFoundError(f"Library root does not exist: {self.root}")
        if not self.root.is_dir():
            raise NotADirectoryError(f"Library root is not a directory: {self.root}")

        self.event_handler = LibraryEventHandler(self, asyncio.get_running_loop())
        self.observer = Observer()
        self.observer.schedule(self.event_handler, str(self.root), recursive=self.recursive)
        self.observer.start()

        logger.info(f"Started monitoring {self.root} (recursive={self.recursive})")

    def stop(self) -> None:
        """Stop the observer and wait for its thread"""
        if self.event_handler:
            self.event_handler.set_event_loop(None)
            self.event_handler = None

        if self.observer:
            try:
                self.observer.stop()
                self.observer.join(timeout=5.0)
            except RuntimeError as e:
                logger.warning(f"Error stopping observer: {e}")
            finally:
                self.observer = None
            logger.info(f"Stopped monitoring {self.root}")

    def enqueue(self, event: WatchdogEvent) -> None:
        """Convert and queue a watchdog event. Runs on the event loop thread."""
        fs_event = convert_watchdog_event(event)
        if fs_event is None:
            return
        self.event_queue.put_nowait(fs_event)


class LibraryEventHandler(FileSystemEventHandler):
    """
    Watchdog event handler that forwards events to a LibraryWatcher.

    This class bridges the synchronous watchdog API with our asynchronous
    event processing system.
    """

    def __init__(self, watcher: LibraryWatcher, loop: Optional[asyncio.AbstractEventLoop]):
        super().__init__()
        self.watcher = watcher
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._event_loop = loop

    def set_event_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """
        Set the event loop to use for scheduling, or None to drop events.

        Args:
            loop: The asyncio event loop to use, or None to clear
        """
        self._event_loop = loop

    def dispatch_to_loop(self, event: WatchdogEvent) -> None:
        """
        Hand an event to the event loop thread.

        Args:
            event: Watchdog file system event
        """
        loop = self._event_loop
        if loop is None or loop.is_closed():
            self.logger.debug(f"No event loop available, dropping event: {event}")
            return
        try:
            # Watchdog runs in its own thread
            loop.call_soon_threadsafe(self.watcher.enqueue, event)
        except RuntimeError as e:
            # Event loop might be closing or closed
            if "closed" not in str(e).lower():
                self.logger.error(f"Failed to schedule event on loop: {e}")

    def on_created(self, event: FileCreatedEvent) -> None:
        """Handle file creation events."""
        self.dispatch_to_loop(event)

    def on_modified(self, event: FileModifiedEvent) -> None:
        """Handle file modification events."""
        self.dispatch_to_loop(event)

    def on_deleted(self, event: FileDeletedEvent) -> None:
        """Handle file deletion events."""
        self.dispatch_to_loop(event)

    def on_moved(self, event: FileMovedEvent) -> None:
        """Handle file move/rename events."""
        self.dispatch_to_loop(event)


__all__ = ["LibraryWatcher", "LibraryEventHandler", "convert_watchdog_event"]
