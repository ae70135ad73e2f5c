"""
Core data models for benten

Pydantic models for pieces, index entries and configuration.
"""

from .piece import Piece, StoredPiece, IndexEntry, SEARCHABLE_FIELDS, INDEXED_FIELDS
from .config import BentenConfig, GlobalSettings

__all__ = [
    # Pieces
    "Piece",
    "StoredPiece",
    "IndexEntry",
    "SEARCHABLE_FIELDS",
    "INDEXED_FIELDS",

    # Configuration
    "BentenConfig",
    "GlobalSettings"
]
