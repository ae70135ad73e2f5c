"""
benten core package

Text index and ingestion pipeline for a searchable audio library.
"""

__version__ = "1.0.0"

from .models import Piece, IndexEntry, BentenConfig

__all__ = [
    "Piece",
    "IndexEntry",
    "BentenConfig"
]
