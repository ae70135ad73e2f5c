"""
Unit tests for the gram tokenizer.
"""

import pytest

from core.errors import QueryTooShortError
from core.search.normalizer import normalize
from core.search.tokenizer import (
    ASCII_GRAM_SIZE,
    NON_ASCII_GRAM_SIZE,
    first_gram,
    index_grams,
    tokenize
)


def aligned(grams):
    """Grams that decode as whole characters"""
    result = set()
    for gram in grams:
        try:
            result.add(gram.decode("utf-8"))
        except UnicodeDecodeError:
            continue
    return result


class TestTokenize:
    """Test tokenize()"""

    @pytest.mark.parametrize("text", ["", "a", "ab", "abc"])
    def test_short_ascii_has_no_grams(self, text):
        assert tokenize(text) == set()

    def test_ascii_sliding_grams(self):
        grams = tokenize("abcdehdiaba")

        expected = {b"abcd", b"bcde", b"cdeh", b"dehd", b"ehdi", b"hdia", b"diab", b"iaba"}
        assert grams == expected
        for absent in (b"abc", b"abcde", b"aba", b"ba", b"a"):
            assert absent not in grams

    def test_all_ascii_grams_are_four_bytes(self):
        assert all(len(g) == ASCII_GRAM_SIZE for g in tokenize("the quick brown fox"))

    def test_three_byte_script_yields_two_character_grams(self):
        grams = tokenize("日本語版")

        assert all(len(g) == NON_ASCII_GRAM_SIZE for g in grams)
        assert aligned(grams) == {"日本", "本語", "語版"}
        # Byte-level slicing also yields the unaligned windows in between
        assert len(grams) == 7

    def test_single_wide_character_has_no_grams(self):
        assert tokenize("日") == set()

    def test_normalized_accents(self):
        grams = tokenize(normalize("ÁÅÇÈñöûÆĲŒß"))

        assert b"aace" in grams
        assert b"oess" in grams

    def test_duplicates_collapse(self):
        assert tokenize("aaaaaaaa") == {b"aaaa"}


class TestIndexGrams:
    """Test index_grams()"""

    def test_union_over_fields(self):
        grams = index_grams(["Help!", "The Beatles", ""])

        assert b"help" in grams
        assert b"beat" in grams
        assert b"the " in grams

    def test_fields_are_folded(self):
        assert index_grams(["CAFÉ"]) == index_grams(["cafe"]) == {b"cafe"}

    def test_empty(self):
        assert index_grams([]) == set()
        assert index_grams(["", "abc"]) == set()


class TestFirstGram:
    """Test first_gram()"""

    def test_ascii_query(self):
        assert first_gram("beatles") == b"beat"

    def test_four_character_ascii_query_accepted(self):
        assert first_gram("help") == b"help"

    def test_three_character_query_rejected(self):
        with pytest.raises(QueryTooShortError):
            first_gram("abc")

    def test_two_character_wide_query_accepted(self):
        assert first_gram("本語") == "本語".encode("utf-8")

    def test_one_character_wide_query_rejected(self):
        with pytest.raises(QueryTooShortError):
            first_gram("本")

    def test_matches_a_gram_of_containing_text(self):
        title = normalize("Live at the Budokan")
        query = normalize("BUDOKAN")
        assert first_gram(query) in tokenize(title)
