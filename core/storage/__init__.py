"""
Storage package for benten.

Provides the document-store and object-store interfaces with their
SQLite and filesystem implementations.
"""

from .base import BlobStore, DocumentTransaction, TransactionalStore
from .documents import SQLiteDocumentStore
from .blobs import FileSystemBlobStore

__all__ = [
    "BlobStore",
    "DocumentTransaction",
    "TransactionalStore",
    "SQLiteDocumentStore",
    "FileSystemBlobStore"
]
