"""
Unit tests for QueryResolver.
"""

import pytest

from core.errors import InvalidQueryError, QueryTooShortError
from core.models.piece import IndexEntry, Piece
from core.search.resolver import MAX_LIMIT, QueryResolver
from core.sync.synchronizer import replace_piece


def add(store, **fields) -> int:
    fields.setdefault("hash", f"hash-{fields.get('path', fields.get('title'))}")
    fields.setdefault("path", f"{fields.get('title', 'x')}.mp3")
    return replace_piece(store, Piece(**fields)).piece_id


class TestQueryResolver:
    """Test QueryResolver.search()"""

    @pytest.fixture(autouse=True)
    def _resolver(self, store):
        self.store = store
        self.resolver = QueryResolver(store)

    def test_matches_any_searchable_field(self):
        by_title = add(self.store, title="Beat It", artist="Michael Jackson")
        by_artist = add(self.store, title="Help!", artist="The Beatles")
        by_album_artist = add(self.store, title="Other", album_artist="Beat Happening")
        add(self.store, title="Thriller", artist="Michael Jackson")

        ids = [p.id for p in self.resolver.search("beat")]

        assert ids == sorted([by_title, by_artist, by_album_artist])

    def test_query_is_normalized(self):
        piece_id = add(self.store, title="Café Tacvba", artist="Café Tacvba")

        assert [p.id for p in self.resolver.search("CAFE")] == [piece_id]
        assert [p.id for p in self.resolver.search("café tac")] == [piece_id]

    def test_accented_query_matches_plain_text(self):
        piece_id = add(self.store, title="Resume")
        assert [p.id for p in self.resolver.search("RÉSUMÉ")] == [piece_id]

    def test_full_phrase_must_be_contained(self):
        add(self.store, title="Help Me Rhonda")

        assert self.resolver.search("help!") == []
        assert len(self.resolver.search("help me")) == 1

    def test_composer_indexed_but_not_matched(self):
        add(self.store, title="Symphony No. 5", composer="Beethoven")

        assert self.resolver.search("beethoven") == []

    def test_wide_script(self):
        piece_id = add(self.store, title="日本語版")

        assert [p.id for p in self.resolver.search("本語")] == [piece_id]
        assert [p.id for p in self.resolver.search("語版")] == [piece_id]

    def test_limit_applies_to_index_entries(self):
        for i in range(5):
            add(self.store, title=f"Song {i}", artist="Band", hash=f"h{i}", path=f"{i}.mp3")

        assert len(self.resolver.search("band", limit=2)) == 2
        assert len(self.resolver.search("band", limit=0)) == 0
        assert len(self.resolver.search("band")) == 5

    def test_default_limit(self, store):
        for i in range(3):
            add(store, title=f"Song {i}", hash=f"h{i}", path=f"{i}.mp3")

        assert len(QueryResolver(store, default_limit=1).search("song")) == 1

    def test_results_are_unique_per_piece(self):
        # "abab" appears once per piece in the index even if repeated in the text
        piece_id = add(self.store, title="abab abab", album="abab")
        assert [p.id for p in self.resolver.search("abab")] == [piece_id]

    def test_dangling_entry_skipped(self):
        piece_id = add(self.store, title="Real Song")
        with self.store.transaction() as tx:
            tx.put_index_entry(IndexEntry(key=b"real", value=piece_id + 1000))

        assert [p.id for p in self.resolver.search("real")] == [piece_id]

    @pytest.mark.parametrize("query", ["", "abc", "本", "  "])
    def test_too_short(self, query):
        with pytest.raises(QueryTooShortError):
            self.resolver.search(query)

    @pytest.mark.parametrize("limit", [-1, MAX_LIMIT + 1])
    def test_limit_out_of_range(self, limit):
        with pytest.raises(InvalidQueryError):
            self.resolver.search("beatles", limit=limit)

    def test_max_limit_accepted(self):
        assert self.resolver.search("beatles", limit=MAX_LIMIT) == []

    def test_result_carries_piece(self):
        add(self.store, title="Let It Be", artist="The Beatles", year=1970)

        result = self.resolver.search("let it")[0]

        assert result.piece.year == 1970
        assert result.to_dict()["title"] == "Let It Be"
        assert result.to_dict()["id"] == result.id
