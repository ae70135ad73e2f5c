"""
Storage interfaces for pieces, index entries and binary objects.

The synchronizer and the query resolver only talk to these interfaces, so
any backend with multi-record transactions (for documents) and keyed
put/get (for objects) can be plugged in.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional, Tuple

from ..models.piece import IndexEntry, Piece, StoredPiece


class DocumentTransaction(ABC):
    """
    A unit of work against the document store.

    Reads inside the transaction observe its own earlier writes. Nothing is
    visible to other readers until the owning context manager commits.
    """

    @abstractmethod
    def find_pieces(self, field: str, value: str) -> List[int]:
        """Identities of pieces whose ``field`` (``hash`` or ``path``) equals ``value``"""

    @abstractmethod
    def delete_piece(self, piece_id: int) -> None:
        """Delete a piece by identity"""

    @abstractmethod
    def put_piece(self, piece: Piece) -> int:
        """Insert a piece and return its new identity"""

    @abstractmethod
    def find_index_entries(self, piece_id: int) -> List[int]:
        """Identities of index entries pointing at ``piece_id``"""

    @abstractmethod
    def delete_index_entry(self, entry_id: int) -> None:
        """Delete an index entry by identity"""

    @abstractmethod
    def put_index_entry(self, entry: IndexEntry) -> int:
        """Insert an index entry and return its identity"""


class TransactionalStore(ABC):
    """Document store holding pieces and their gram index"""

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """
        Open a transaction.

        The returned context manager yields a DocumentTransaction, commits
        when the block exits normally and rolls back when it raises.
        """

    @abstractmethod
    def get_piece(self, piece_id: int) -> Optional[Piece]:
        """Fetch a piece by identity"""

    @abstractmethod
    def query_index(self, key: bytes, limit: int) -> List[IndexEntry]:
        """Index entries with the given key, ordered by piece identity"""

    @abstractmethod
    def list_pieces(self, path: Optional[str] = None) -> List[StoredPiece]:
        """All pieces, or those stored for ``path``"""

    @abstractmethod
    def index_keys(self, piece_id: int) -> List[bytes]:
        """Grams currently indexed for a piece"""

    @abstractmethod
    def count_pieces(self) -> int:
        """Number of stored pieces"""

    @abstractmethod
    def count_index_entries(self, piece_id: Optional[int] = None) -> int:
        """Number of index entries, optionally only those of one piece"""

    @abstractmethod
    def clear_index(self) -> int:
        """Delete every index entry and return how many were removed"""


class BlobStore(ABC):
    """Object store addressed by bucket and key"""

    @abstractmethod
    async def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``key``, replacing any existing object"""

    @abstractmethod
    async def get(self, bucket: str, key: str) -> Tuple[bytes, str]:
        """
        Fetch an object.

        Returns:
            Tuple of object bytes and content type

        Raises:
            BlobNotFoundError: If the object does not exist
        """
