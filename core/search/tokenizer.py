"""
Gram tokenizer for the piece index.

Grams are byte slices of the UTF-8 encoded, normalized text. A run of
single-byte characters yields 4-byte grams; anything else yields 6-byte
grams, which is two characters for 3-byte scripts such as CJK. The slices
are not aligned to character boundaries.

The widths are part of the stored index format: changing them requires
clearing and rebuilding the index.
"""

from typing import Iterable, Optional, Set

from ..errors import QueryTooShortError
from .normalizer import normalize

ASCII_GRAM_SIZE = 4
NON_ASCII_GRAM_SIZE = 6


def _gram_at(data: bytes, start: int) -> Optional[bytes]:
    """Return the gram starting at ``start``, or None if the text ends first"""
    window = data[start:start + NON_ASCII_GRAM_SIZE]
    if len(window) >= ASCII_GRAM_SIZE and window[:ASCII_GRAM_SIZE].isascii():
        return window[:ASCII_GRAM_SIZE]
    if len(window) == NON_ASCII_GRAM_SIZE:
        return window
    return None


def tokenize(text: str) -> Set[bytes]:
    """
    Compute the set of grams of already-normalized text.

    Args:
        text: Normalized text

    Returns:
        Set of 4- and 6-byte grams; empty if the text is shorter than 4 bytes
    """
    data = text.encode("utf-8")
    grams: Set[bytes] = set()
    for start in range(len(data) - ASCII_GRAM_SIZE + 1):
        gram = _gram_at(data, start)
        if gram is not None:
            grams.add(gram)
    return grams


def index_grams(fields: Iterable[str]) -> Set[bytes]:
    """Union of the grams of every field, after lower-casing and normalization"""
    grams: Set[bytes] = set()
    for value in fields:
        if value:
            grams |= tokenize(normalize(value.lower()))
    return grams


def first_gram(text: str) -> bytes:
    """
    Compute the leading gram of already-normalized query text.

    Raises:
        QueryTooShortError: If the text is too short for its leading script
    """
    gram = _gram_at(text.encode("utf-8"), 0)
    if gram is None:
        raise QueryTooShortError(f"The query is too short: {text!r}")
    return gram
