"""
Metadata Synchronizer.

Turns a settled file into a stored Piece: reads its tags and content hash,
resolves and uploads its album art, then replaces any previous Piece for the
same content or the same path together with its index entries in a single
transaction.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from ..errors import BentenError
from ..models.piece import IndexEntry, Piece
from ..search.tokenizer import index_grams
from ..storage.base import BlobStore, DocumentTransaction, TransactionalStore
from ..tags.album_art import AlbumArtCache, art_key, find_directory_art
from ..tags.extractor import AudioTags, TagReader

logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """Outcome of syncing one path"""
    STORED = "stored"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Result of syncing one path"""

    file_path: str
    status: SyncStatus
    piece_id: Optional[int] = None
    retired: List[int] = field(default_factory=list)
    grams: int = 0
    picture: str = ""
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.STORED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "status": self.status.value,
            "piece_id": self.piece_id,
            "retired": list(self.retired),
            "grams": self.grams,
            "picture": self.picture,
            "error": self.error,
            "duration_ms": self.duration_ms
        }


def retire_matching(tx: DocumentTransaction, piece: Piece) -> List[int]:
    """
    Delete every piece sharing the content hash or the path of ``piece``.

    Returns:
        Identities of the retired pieces, without duplicates
    """
    retired: List[int] = []
    seen: Set[int] = set()
    for lookup_field, value in (("hash", piece.hash), ("path", piece.path)):
        for piece_id in tx.find_pieces(lookup_field, value):
            if piece_id in seen:
                continue
            tx.delete_piece(piece_id)
            seen.add(piece_id)
            retired.append(piece_id)
    return retired


def replace_piece(store: TransactionalStore, piece: Piece) -> SyncResult:
    """
    Store ``piece`` and its index entries, retiring whatever it supersedes.

    Runs as one transaction: on any error nothing is changed.
    """
    grams = index_grams(piece.indexed_text().values())

    with store.transaction() as tx:
        retired = retire_matching(tx, piece)
        for piece_id in retired:
            for entry_id in tx.find_index_entries(piece_id):
                tx.delete_index_entry(entry_id)

        new_id = tx.put_piece(piece)
        for gram in sorted(grams):
            tx.put_index_entry(IndexEntry(key=gram, value=new_id))

    return SyncResult(
        file_path=piece.path,
        status=SyncStatus.STORED,
        piece_id=new_id,
        retired=retired,
        grams=len(grams),
        picture=piece.picture
    )


class MetadataSynchronizer:
    """
    Synchronizes one settled path at a time into the document store.

    The art cache is owned by the single worker that calls ``sync``; calls
    must not overlap.
    """

    def __init__(
        self,
        store: TransactionalStore,
        blobs: BlobStore,
        tag_reader: TagReader,
        art_bucket: str = "album-arts",
        root: Optional[Path] = None,
        operation_timeout: float = 10.0,
        art_cache: Optional[AlbumArtCache] = None
    ):
        """
        Initialize the synchronizer.

        Args:
            store: Document store for pieces and index entries
            blobs: Object store receiving album art
            tag_reader: Reader for tags and content hashes
            art_bucket: Bucket album art is uploaded to
            root: Library root; stored paths are relative to it
            operation_timeout: Seconds allowed for each upload
            art_cache: Dedup cache, shared across calls
        """
        self.store = store
        self.blobs = blobs
        self.tag_reader = tag_reader
        self.art_bucket = art_bucket
        self.root = Path(root).expanduser().absolute() if root else None
        self.operation_timeout = operation_timeout
        self.art_cache = art_cache if art_cache is not None else AlbumArtCache()

    def piece_path(self, path: Path) -> str:
        """Identity of ``path`` in the source tree"""
        path = Path(path).absolute()
        if self.root is not None:
            try:
                return path.relative_to(self.root).as_posix()
            except ValueError:
                pass
        return path.as_posix()

    async def sync(self, path: Union[str, Path]) -> SyncResult:
        """
        Bring the stored state of ``path`` up to date.

        Errors are logged and reported in the result; this never raises for
        a bad file.

        Args:
            path: File that has settled

        Returns:
            SyncResult describing what happened
        """
        start_time = time.perf_counter()
        path = Path(path)

        def finish(result: SyncResult) -> SyncResult:
            result.duration_ms = (time.perf_counter() - start_time) * 1000
            return result

        if not path.exists():
            logger.info(f"Skipping {path}: no longer exists")
            return finish(SyncResult(file_path=str(path), status=SyncStatus.SKIPPED))
        if path.is_dir():
            return finish(SyncResult(file_path=str(path), status=SyncStatus.SKIPPED))

        logger.info(f"Processing {path}...")

        try:
            tags = await asyncio.to_thread(self.tag_reader.read, path)
            content_hash = await asyncio.to_thread(self.tag_reader.content_hash, path)
        except BentenError as e:
            logger.warning(f"Failed to read tags from {path}: {e}")
            return finish(SyncResult(file_path=str(path), status=SyncStatus.FAILED, error=str(e)))

        picture = await self.resolve_album_art(path, tags)

        piece = Piece(
            **tags.model_dump(exclude={"picture"}),
            picture=picture,
            hash=content_hash,
            path=self.piece_path(path)
        )

        try:
            result = await asyncio.to_thread(replace_piece, self.store, piece)
        except BentenError as e:
            logger.error(f"Failed to update metadata for {path}: {e}")
            return finish(SyncResult(
                file_path=piece.path, status=SyncStatus.FAILED, picture=picture, error=str(e)
            ))

        if result.retired:
            logger.debug(f"Retired pieces {result.retired} superseded by {piece.path}")
        logger.info(f"Successfully updated data for {path} (piece {result.piece_id}, {result.grams} grams)")
        return finish(result)

    async def resolve_album_art(self, path: Path, tags: AudioTags) -> str:
        """
        Find, upload and return the key of the album art for ``path``.

        Returns:
            Object key of the art, or "" if there is none or it could not be uploaded
        """
        if tags.picture is not None:
            key = art_key(tags.picture.data)
            if self.art_cache.contains(key):
                return key
            if await self._upload_art(key, tags.picture.data, tags.picture.mime_type):
                self.art_cache.remember(key)
                return key
            return ""

        directory = path.parent
        key = self.art_cache.lookup_directory(directory)
        if key is not None:
            return key

        found = await asyncio.to_thread(find_directory_art, directory)
        if found is None:
            return ""

        data, content_type = found
        key = art_key(data)
        if not self.art_cache.contains(key):
            if not await self._upload_art(key, data, content_type):
                return ""
        self.art_cache.remember(key, directory)
        return key

    async def _upload_art(self, key: str, data: bytes, content_type: str) -> bool:
        try:
            await asyncio.wait_for(
                self.blobs.put(self.art_bucket, key, data, content_type),
                timeout=self.operation_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timed out uploading album art {key}")
            return False
        except BentenError as e:
            logger.warning(f"Failed to upload album art {key}: {e}")
            return False
        logger.info(f"Uploaded album art {key} ({content_type}, {len(data)} bytes)")
        return True
