"""
Library synchronization package.

Watches the library tree, debounces change bursts, and keeps pieces, the
gram index and uploaded objects consistent with the files.
"""

from .events import FileSystemEvent, EventType, SettledEvent
from .debouncer import IngestionDebouncer
from .watcher import LibraryWatcher
from .synchronizer import MetadataSynchronizer, SyncResult, SyncStatus
from .uploader import (
    QueueMessage,
    SpoolSubscription,
    Subscription,
    UploadNotification,
    UploadWorker
)
from .engine import LibrarySyncEngine, SyncEngineMetrics

__all__ = [
    # Events
    "FileSystemEvent",
    "EventType",
    "SettledEvent",

    # Components
    "IngestionDebouncer",
    "LibraryWatcher",
    "MetadataSynchronizer",
    "SyncResult",
    "SyncStatus",

    # Uploads
    "QueueMessage",
    "Subscription",
    "SpoolSubscription",
    "UploadNotification",
    "UploadWorker",

    # Engine
    "LibrarySyncEngine",
    "SyncEngineMetrics"
]
