"""
Upload worker for audio contents.

Clients publish a JSON list of ``{"path": ..., "key": ...}`` entries asking
for local files to be copied into the piece bucket. Messages are delivered
at least once; a message is acknowledged only after every entry of it has
been uploaded, and re-uploading an entry overwrites the same key.
"""

import asyncio
import logging
import mimetypes
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Set, Union

import aiofiles
import aiofiles.os
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ..errors import BentenError
from ..storage.base import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class UploadNotification(BaseModel):
    """One file to upload: local ``path`` stored under ``key``"""
    model_config = ConfigDict(frozen=True)

    path: str = Field(validation_alias=AliasChoices("path", "Path"))
    key: str = Field(validation_alias=AliasChoices("key", "Key"), min_length=1)


_NOTIFICATIONS = TypeAdapter(List[UploadNotification])


def parse_notifications(data: Union[bytes, str]) -> List[UploadNotification]:
    """
    Parse the body of an upload message.

    Raises:
        ValidationError: If the body is not a JSON list of notifications
    """
    return _NOTIFICATIONS.validate_json(data)


class QueueMessage:
    """A delivered message; unacknowledged messages are delivered again"""

    def __init__(self, message_id: str, data: bytes, ack: Callable[[], Awaitable[None]]):
        self.message_id = message_id
        self.data = data
        self._ack = ack
        self.acked = False

    async def ack(self) -> None:
        if self.acked:
            return
        await self._ack()
        self.acked = True

    def __repr__(self) -> str:
        return f"QueueMessage({self.message_id!r}, {len(self.data)} bytes)"


MessageHandler = Callable[[QueueMessage], Awaitable[Any]]


class Subscription(ABC):
    """At-least-once source of QueueMessages"""

    @abstractmethod
    async def receive(self, callback: MessageHandler) -> None:
        """Deliver messages to ``callback`` until cancelled"""


class SpoolSubscription(Subscription):
    """
    Subscription over a spool directory.

    Every ``*.json`` file is one message; acknowledging deletes the file.
    Files still present on a later poll are delivered again.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        max_outstanding: int = 4,
        poll_interval_s: float = 1.0
    ):
        """
        Initialize the subscription.

        Args:
            directory: Spool directory to watch
            max_outstanding: Maximum messages handled concurrently
            poll_interval_s: Seconds between directory scans
        """
        if max_outstanding < 1:
            raise ValueError("max_outstanding must be at least 1")

        self.directory = Path(directory).expanduser()
        self.max_outstanding = max_outstanding
        self.poll_interval_s = poll_interval_s
        self._semaphore = asyncio.Semaphore(max_outstanding)
        self._in_flight: Set[str] = set()

        self.directory.mkdir(parents=True, exist_ok=True)

    async def receive(self, callback: MessageHandler) -> None:
        logger.info(f"Receiving upload messages from {self.directory}")
        while True:
            await self.poll_once(callback)
            await asyncio.sleep(self.poll_interval_s)

    async def poll_once(self, callback: MessageHandler) -> int:
        """
        Deliver every message currently in the spool and wait for the handlers.

        Returns:
            Number of messages delivered
        """
        names = await asyncio.to_thread(self._list_messages)
        tasks = [
            asyncio.create_task(self._deliver(name, callback))
            for name in names
            if name not in self._in_flight
        ]
        if tasks:
            await asyncio.gather(*tasks)
        return len(tasks)

    def _list_messages(self) -> List[str]:
        return sorted(p.name for p in self.directory.glob("*.json") if p.is_file())

    async def _deliver(self, name: str, callback: MessageHandler) -> None:
        path = self.directory / name
        self._in_flight.add(name)
        try:
            async with self._semaphore:
                try:
                    async with aiofiles.open(path, 'rb') as f:
                        data = await f.read()
                except FileNotFoundError:
                    return
                except OSError as e:
                    logger.warning(f"Failed to read message {path}: {e}")
                    return

                async def ack() -> None:
                    try:
                        await aiofiles.os.remove(path)
                    except FileNotFoundError:
                        pass

                try:
                    await callback(QueueMessage(name, data, ack))
                except Exception as e:
                    logger.error(f"Handler failed for message {name}: {e}")
        finally:
            self._in_flight.discard(name)


class UploadWorker:
    """Copies notified files into the piece bucket"""

    def __init__(
        self,
        blobs: BlobStore,
        bucket: str,
        subscription: Subscription,
        operation_timeout: float = 10.0
    ):
        self.blobs = blobs
        self.bucket = bucket
        self.subscription = subscription
        self.operation_timeout = operation_timeout

    async def run(self) -> None:
        """Handle messages until cancelled"""
        await self.subscription.receive(self.handle)

    async def handle(self, message: QueueMessage) -> bool:
        """
        Upload every entry of ``message`` and acknowledge it if all succeed.

        Returns:
            True if the message was acknowledged
        """
        try:
            entries = parse_notifications(message.data)
        except ValidationError as e:
            logger.warning(f"Failed to parse the notification message {message.message_id}: {e}")
            return False

        for entry in entries:
            if not await self.upload(entry):
                return False

        await message.ack()
        return True

    async def upload(self, entry: UploadNotification) -> bool:
        """Upload one file; failures are logged and reported as False"""
        content_type, _ = mimetypes.guess_type(entry.path)
        try:
            async with aiofiles.open(entry.path, 'rb') as f:
                data = await f.read()
            await asyncio.wait_for(
                self.blobs.put(self.bucket, entry.key, data, content_type or DEFAULT_CONTENT_TYPE),
                timeout=self.operation_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timed out uploading {entry.key} from {entry.path}")
            return False
        except OSError as e:
            logger.warning(f"Failed to open {entry.path}: {e}")
            return False
        except BentenError as e:
            logger.warning(f"Failed to upload {entry.key} from {entry.path}: {e}")
            return False

        logger.info(f"Uploaded {entry.key} from {entry.path}")
        return True
