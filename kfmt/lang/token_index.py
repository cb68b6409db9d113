"""Token Index: original source ranges mapped to lexical tokens."""

from __future__ import annotations

import bisect
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from kfmt.errors import StructuralError, offset_to_line_column

from .lexer import Tok, tokenize


class TokenIndex:
    """Lossless token list for one source text with range lookups.

    The tokens partition the text: every character belongs to exactly one
    token and tokens are stored in source order.
    """

    def __init__(self, text: str, toks: Optional[List[Tok]] = None):
        self.text = text
        self.toks: List[Tok] = toks if toks is not None else tokenize(text)
        self._starts = [tok.start for tok in self.toks]
        self.code_toks: List[Tok] = [tok for tok in self.toks if tok.is_code]
        self._check_partition()

    def _check_partition(self) -> None:
        position = 0
        for tok in self.toks:
            if tok.start != position or tok.end <= tok.start:
                raise StructuralError(
                    f"Token {tok!r} does not continue the partition at offset {position}"
                )
            position = tok.end
        if position != len(self.text):
            raise StructuralError("Tokens do not cover the end of the source text")

    def __len__(self) -> int:
        return len(self.toks)

    def __iter__(self) -> Iterator[Tok]:
        return iter(self.toks)

    def __getitem__(self, index: int) -> Tok:
        return self.toks[index]

    def contains(self, tok: Tok) -> bool:
        """True when `tok` is this index's token for its range."""
        if not 0 <= tok.index < len(self.toks):
            return False
        own = self.toks[tok.index]
        return own.start == tok.start and own.end == tok.end

    def token_at(self, offset: int) -> Optional[Tok]:
        """Reverse lookup: the token covering a character offset."""
        if not 0 <= offset < len(self.text):
            return None
        position = bisect.bisect_right(self._starts, offset) - 1
        return self.toks[position]

    def character_ranges_to_token_ranges(
        self, ranges: Iterable[Tuple[int, int]]
    ) -> List[Tuple[int, int]]:
        """Map half-open character ranges onto half-open token index ranges.

        A range is widened to whole tokens; empty or out-of-bounds ranges are
        clamped. Overlapping results are merged.
        """
        result: List[Tuple[int, int]] = []
        for start, end in sorted(ranges):
            start = max(0, start)
            end = min(len(self.text), end)
            if not self.toks or start >= len(self.text):
                continue
            first = self.token_at(start)
            last = self.token_at(max(start, end - 1))
            token_range = (first.index, last.index + 1)
            if result and token_range[0] <= result[-1][1]:
                result[-1] = (result[-1][0], max(result[-1][1], token_range[1]))
            else:
                result.append(token_range)
        return result

    def between(self, first: Optional[Tok], last: Optional[Tok]) -> Sequence[Tok]:
        """Tokens strictly between two tokens (either end may be open)."""
        start = first.index + 1 if first is not None else 0
        stop = last.index if last is not None else len(self.toks)
        return self.toks[start:stop]

    def comments_between(self, first: Optional[Tok], last: Optional[Tok]) -> List[Tok]:
        return [tok for tok in self.between(first, last) if tok.is_comment]

    def newlines_between(self, first: Optional[Tok], last: Optional[Tok]) -> int:
        return sum(tok.newline_count() for tok in self.between(first, last))

    def next_code(self, tok: Tok) -> Optional[Tok]:
        for candidate in self.toks[tok.index + 1:]:
            if candidate.is_code:
                return candidate
        return None

    def line_column(self, offset: int) -> Tuple[int, int]:
        return offset_to_line_column(self.text, offset)


__all__ = ["TokenIndex"]
