"""
File System Event Models.

Defines the raw change notifications produced by the watcher and the
settled events the debouncer hands to the metadata synchronizer.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class EventType(Enum):
    """Types of file system events observed under the library root"""
    CREATED = "created"     # New file created
    MODIFIED = "modified"   # Existing file modified
    DELETED = "deleted"     # File deleted
    MOVED = "moved"         # File moved/renamed


# Event types that can make a file worth re-reading
INGEST_EVENT_TYPES = frozenset({EventType.CREATED, EventType.MODIFIED, EventType.MOVED})


class FileSystemEvent(BaseModel):
    """
    A raw change notification for one path.

    For moves, ``file_path`` is the destination and ``old_path`` the source.
    """

    event_type: EventType
    file_path: Path
    old_path: Optional[Path] = None
    is_directory: bool = False
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator('file_path')
    @classmethod
    def validate_file_path(cls, v: Path) -> Path:
        """Ensure file path is absolute"""
        if not v.is_absolute():
            raise ValueError('File path must be absolute')
        return v

    @classmethod
    def create_file_created(cls, file_path: Path, **kwargs) -> 'FileSystemEvent':
        """Create a file creation event"""
        return cls(event_type=EventType.CREATED, file_path=file_path, **kwargs)

    @classmethod
    def create_file_modified(cls, file_path: Path, **kwargs) -> 'FileSystemEvent':
        """Create a file modification event"""
        return cls(event_type=EventType.MODIFIED, file_path=file_path, **kwargs)

    @classmethod
    def create_file_deleted(cls, file_path: Path, **kwargs) -> 'FileSystemEvent':
        """Create a file deletion event"""
        return cls(event_type=EventType.DELETED, file_path=file_path, **kwargs)

    @classmethod
    def create_file_moved(cls, old_path: Path, new_path: Path, **kwargs) -> 'FileSystemEvent':
        """Create a file move/rename event"""
        return cls(event_type=EventType.MOVED, file_path=new_path, old_path=old_path, **kwargs)

    @property
    def should_ingest(self) -> bool:
        """Whether this event should touch the debouncer"""
        return not self.is_directory and self.event_type in INGEST_EVENT_TYPES

    def __str__(self) -> str:
        """String representation for logging"""
        old_part = f" (from {self.old_path})" if self.old_path else ""
        return f"{self.event_type.value.upper()}: {self.file_path}{old_part}"


class SettledEvent(BaseModel):
    """A path that has seen no new touches for at least the settle window"""
    model_config = ConfigDict(frozen=True)

    file_path: Path
    last_touched_at: float
    settled_at: float

    @property
    def quiet_for(self) -> float:
        """Seconds between the last touch and the settle pass"""
        return self.settled_at - self.last_touched_at

    def __str__(self) -> str:
        return f"SETTLED: {self.file_path} (quiet {self.quiet_for:.2f}s)"
