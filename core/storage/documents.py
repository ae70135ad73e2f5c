"""
SQLite document store for pieces and the gram index.

Every unit of work opens its own connection; writes run inside
``BEGIN IMMEDIATE`` so that a piece and its index entries are replaced
all-or-nothing, and concurrent writers queue on the database lock for at
most the configured timeout.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from pydantic import ValidationError

from ..errors import DocumentStoreError
from ..models.piece import IndexEntry, Piece, StoredPiece
from .base import DocumentTransaction, TransactionalStore

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS piece (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    hash TEXT NOT NULL,
    path TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS piece_hash ON piece(hash);
CREATE INDEX IF NOT EXISTS piece_path ON piece(path);

CREATE TABLE IF NOT EXISTS piece_index (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key BLOB NOT NULL,
    value INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS piece_index_key ON piece_index(key, value);
CREATE INDEX IF NOT EXISTS piece_index_value ON piece_index(value);
"""

# Columns a piece can be looked up by inside a transaction
LOOKUP_FIELDS = {"hash", "path"}


def _decode_piece(data: str) -> Piece:
    try:
        return Piece.model_validate_json(data)
    except ValidationError as e:
        raise DocumentStoreError(f"Corrupt piece record: {e}") from e


class SQLiteTransaction(DocumentTransaction):
    """DocumentTransaction bound to one open SQLite connection"""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def find_pieces(self, field: str, value: str) -> List[int]:
        if field not in LOOKUP_FIELDS:
            raise ValueError(f"Pieces cannot be looked up by {field!r}")
        rows = self._conn.execute(
            f"SELECT id FROM piece WHERE {field} = ? ORDER BY id", (value,)
        ).fetchall()
        return [row[0] for row in rows]

    def delete_piece(self, piece_id: int) -> None:
        self._conn.execute("DELETE FROM piece WHERE id = ?", (piece_id,))

    def put_piece(self, piece: Piece) -> int:
        cursor = self._conn.execute(
            "INSERT INTO piece (hash, path, data) VALUES (?, ?, ?)",
            (piece.hash, piece.path, piece.model_dump_json())
        )
        return cursor.lastrowid

    def find_index_entries(self, piece_id: int) -> List[int]:
        rows = self._conn.execute(
            "SELECT id FROM piece_index WHERE value = ?", (piece_id,)
        ).fetchall()
        return [row[0] for row in rows]

    def delete_index_entry(self, entry_id: int) -> None:
        self._conn.execute("DELETE FROM piece_index WHERE id = ?", (entry_id,))

    def put_index_entry(self, entry: IndexEntry) -> int:
        cursor = self._conn.execute(
            "INSERT INTO piece_index (key, value) VALUES (?, ?)",
            (entry.key, entry.value)
        )
        return cursor.lastrowid

    def delete_all_index_entries(self) -> int:
        """Drop the whole index; used before a full reindex"""
        return self._conn.execute("DELETE FROM piece_index").rowcount


class SQLiteDocumentStore(TransactionalStore):
    """
    TransactionalStore backed by a SQLite database file.

    Features:
    - Piece records stored as JSON with indexed hash/path columns
    - One row per (gram, piece) index entry, ordered lookups by gram
    - Immediate write transactions with rollback on any error
    - Busy timeout as the per-operation deadline
    """

    def __init__(self, database_path: Union[str, Path], timeout: float = 10.0):
        """
        Initialize the store and create the schema if needed.

        Args:
            database_path: SQLite database file
            timeout: Seconds to wait for the database lock
        """
        self.database_path = Path(database_path)
        self.timeout = timeout
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

        with self._connect() as conn:
            conn.executescript(SCHEMA)

        logger.info(f"Initialized SQLiteDocumentStore at {self.database_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(
                str(self.database_path),
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False
            )
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to open {self.database_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise DocumentStoreError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[SQLiteTransaction]:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield SQLiteTransaction(conn)
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def get_piece(self, piece_id: int) -> Optional[Piece]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM piece WHERE id = ?", (piece_id,)
            ).fetchone()
        if row is None:
            return None
        return _decode_piece(row[0])

    def query_index(self, key: bytes, limit: int) -> List[IndexEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, key, value FROM piece_index WHERE key = ? ORDER BY value LIMIT ?",
                (key, limit)
            ).fetchall()
        return [IndexEntry(id=row[0], key=bytes(row[1]), value=row[2]) for row in rows]

    def list_pieces(self, path: Optional[str] = None) -> List[StoredPiece]:
        with self._connect() as conn:
            if path is None:
                rows = conn.execute("SELECT id, data FROM piece ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    "SELECT id, data FROM piece WHERE path = ? ORDER BY id", (path,)
                ).fetchall()
        return [StoredPiece(id=row[0], piece=_decode_piece(row[1])) for row in rows]

    def index_keys(self, piece_id: int) -> List[bytes]:
        """Grams currently indexed for a piece"""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key FROM piece_index WHERE value = ? ORDER BY key", (piece_id,)
            ).fetchall()
        return [bytes(row[0]) for row in rows]

    def count_pieces(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM piece").fetchone()[0]

    def count_index_entries(self, piece_id: Optional[int] = None) -> int:
        with self._connect() as conn:
            if piece_id is None:
                return conn.execute("SELECT COUNT(*) FROM piece_index").fetchone()[0]
            return conn.execute(
                "SELECT COUNT(*) FROM piece_index WHERE value = ?", (piece_id,)
            ).fetchone()[0]

    def clear_index(self) -> int:
        with self.transaction() as tx:
            removed = tx.delete_all_index_entries()
        logger.info(f"Cleared {removed} index entries")
        return removed
