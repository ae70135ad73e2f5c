"""
Query resolution against the gram index.

A phrase is narrowed to candidates sharing its leading gram, then each
candidate is verified by substring containment. A shared leading gram does
not imply the whole phrase is present, so the verification step is what
makes the result exact.
"""

import logging
from typing import List, Optional

from ..errors import InvalidQueryError
from ..models.piece import StoredPiece
from ..storage.base import TransactionalStore
from .normalizer import normalize
from .tokenizer import first_gram

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 1000 * 1000


class QueryResolver:
    """Resolves free-text phrases to stored pieces"""

    def __init__(self, store: TransactionalStore, default_limit: int = DEFAULT_LIMIT):
        self.store = store
        self.default_limit = default_limit

    def search(self, phrase: str, limit: Optional[int] = None) -> List[StoredPiece]:
        """
        Find pieces whose title, album, artist or album artist contains ``phrase``.

        Args:
            phrase: Free-text query
            limit: Maximum number of index entries examined

        Returns:
            Matching pieces ordered by identity

        Raises:
            InvalidQueryError: If ``limit`` is out of range
            QueryTooShortError: If the phrase has no leading gram
        """
        if limit is None:
            limit = self.default_limit
        if limit < 0 or limit > MAX_LIMIT:
            raise InvalidQueryError(f"limit ({limit}) is out of range")

        search = normalize(phrase)
        gram = first_gram(search)

        matches: List[StoredPiece] = []
        last_id: Optional[int] = None
        for entry in self.store.query_index(gram, limit):
            # Entries arrive ordered by piece identity
            if entry.value == last_id:
                continue
            last_id = entry.value

            piece = self.store.get_piece(entry.value)
            if piece is None:
                logger.warning(f"Index entry {entry.id} points at missing piece {entry.value}")
                continue

            if any(search in normalize(text) for text in piece.searchable_text().values()):
                matches.append(StoredPiece(id=entry.value, piece=piece))

        logger.debug(f"Query {phrase!r} (gram {gram!r}) matched {len(matches)} pieces")
        return matches
