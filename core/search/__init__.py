"""
Search package for benten.

Provides text normalization, gram tokenization and query resolution.
"""

from .normalizer import normalize
from .tokenizer import (
    ASCII_GRAM_SIZE,
    NON_ASCII_GRAM_SIZE,
    first_gram,
    index_grams,
    tokenize
)
from .resolver import QueryResolver, MAX_LIMIT

__all__ = [
    "normalize",
    "tokenize",
    "index_grams",
    "first_gram",
    "ASCII_GRAM_SIZE",
    "NON_ASCII_GRAM_SIZE",
    "QueryResolver",
    "MAX_LIMIT"
]
