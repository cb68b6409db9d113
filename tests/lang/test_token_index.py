"""Tests for the Token Index range lookups."""

import pytest

from kfmt.errors import StructuralError
from kfmt.lang.lexer import Tok, TokenType
from kfmt.lang.token_index import TokenIndex


# Tokens: val(0) ' '(1) x(2) ' '(3) =(4) ' '(5) 1(6)
SOURCE = "val x = 1"


class TestLookups:
    def test_token_at_offsets(self):
        index = TokenIndex(SOURCE)
        assert index.token_at(0).text == "val"
        assert index.token_at(2).text == "val"
        assert index.token_at(3).text == " "
        assert index.token_at(8).text == "1"
        assert index.token_at(9) is None
        assert index.token_at(-1) is None

    def test_code_tokens_skip_whitespace(self):
        index = TokenIndex(SOURCE)
        assert [tok.text for tok in index.code_toks] == ["val", "x", "=", "1"]

    def test_contains_checks_ownership(self):
        index = TokenIndex(SOURCE)
        assert index.contains(index[2])
        stranger = Tok(index=0, start=0, end=2, text="va", type=TokenType.IDENTIFIER)
        assert not index.contains(stranger)

    def test_neighbourhood_queries(self):
        index = TokenIndex("a // c\n\n\nb")
        first, last = index.code_toks
        assert [tok.text for tok in index.comments_between(first, last)] == ["// c"]
        assert index.newlines_between(first, last) == 3
        assert index.next_code(first) is last
        assert index.next_code(last) is None

    def test_line_column(self):
        index = TokenIndex("a\nbc")
        assert index.line_column(3) == (2, 2)


class TestCharacterRanges:
    def test_single_token(self):
        assert TokenIndex(SOURCE).character_ranges_to_token_ranges([(4, 5)]) == [(2, 3)]

    def test_range_widened_to_whole_tokens(self):
        assert TokenIndex(SOURCE).character_ranges_to_token_ranges([(1, 5)]) == [(0, 3)]

    def test_overlapping_ranges_merge(self):
        index = TokenIndex(SOURCE)
        assert index.character_ranges_to_token_ranges([(0, 1), (0, 5)]) == [(0, 3)]

    def test_disjoint_ranges_stay_apart(self):
        index = TokenIndex(SOURCE)
        assert index.character_ranges_to_token_ranges([(8, 9), (0, 3)]) == [(0, 1), (6, 7)]

    def test_out_of_bounds_ranges_are_clamped(self):
        index = TokenIndex(SOURCE)
        assert index.character_ranges_to_token_ranges([(100, 200)]) == []
        assert index.character_ranges_to_token_ranges([(-5, 2)]) == [(0, 1)]


class TestPartitionCheck:
    def test_gap_in_tokens_is_rejected(self):
        tokens = [Tok(index=0, start=0, end=2, text="ab", type=TokenType.IDENTIFIER)]
        with pytest.raises(StructuralError):
            TokenIndex("abc", toks=tokens)
