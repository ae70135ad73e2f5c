"""
Filesystem-backed object store.

Each bucket is a directory; an object's bytes and its content type are
stored in sibling ``objects/`` and ``meta/`` directories under a
percent-encoded file name, so keys may contain ``/`` and ``+`` (as base64
digests do).
"""

import logging
import uuid
from pathlib import Path
from typing import Tuple, Union
from urllib.parse import quote

import aiofiles
import aiofiles.os

from ..errors import BlobNotFoundError, BlobStoreError
from .base import BlobStore

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class FileSystemBlobStore(BlobStore):
    """BlobStore rooted at a local directory"""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized FileSystemBlobStore at {self.root}")

    def _paths(self, bucket: str, key: str) -> Tuple[Path, Path]:
        if not bucket or '/' in bucket or bucket in ('.', '..'):
            raise BlobStoreError(f"Invalid bucket name: {bucket!r}")
        if not key:
            raise BlobStoreError("Object key cannot be empty")
        name = quote(key, safe='')
        bucket_dir = self.root / bucket
        return bucket_dir / "objects" / name, bucket_dir / "meta" / name

    async def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        object_path, meta_path = self._paths(bucket, key)
        try:
            await aiofiles.os.makedirs(object_path.parent, exist_ok=True)
            await aiofiles.os.makedirs(meta_path.parent, exist_ok=True)

            # Write to temp files then replace, so readers never see partial objects
            suffix = uuid.uuid4().hex
            temp_object = object_path.with_name(f".{object_path.name}.{suffix}.tmp")
            async with aiofiles.open(temp_object, 'wb') as f:
                await f.write(data)
            temp_meta = meta_path.with_name(f".{meta_path.name}.{suffix}.tmp")
            async with aiofiles.open(temp_meta, 'w', encoding='utf-8') as f:
                await f.write(content_type or DEFAULT_CONTENT_TYPE)

            await aiofiles.os.replace(temp_object, object_path)
            await aiofiles.os.replace(temp_meta, meta_path)
        except OSError as e:
            raise BlobStoreError(f"Failed to store {bucket}/{key}: {e}") from e

        logger.debug(f"Stored {len(data)} bytes at {bucket}/{key} ({content_type})")

    async def get(self, bucket: str, key: str) -> Tuple[bytes, str]:
        object_path, meta_path = self._paths(bucket, key)
        try:
            async with aiofiles.open(object_path, 'rb') as f:
                data = await f.read()
        except FileNotFoundError as e:
            raise BlobNotFoundError(f"Not found: {bucket}/{key}") from e
        except OSError as e:
            raise BlobStoreError(f"Failed to read {bucket}/{key}: {e}") from e

        try:
            async with aiofiles.open(meta_path, 'r', encoding='utf-8') as f:
                content_type = (await f.read()).strip()
        except FileNotFoundError:
            content_type = DEFAULT_CONTENT_TYPE
        except OSError as e:
            raise BlobStoreError(f"Failed to read attributes of {bucket}/{key}: {e}") from e

        return data, content_type or DEFAULT_CONTENT_TYPE
