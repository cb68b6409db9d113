"""Instruction stream: the flat op sequence produced by the node formatter.

Node rules append ops to an `OpStream`. Comments are not emitted by the
rules; `OpStream.build()` places every comment token of the source next to
the code token it belongs to and resolves preserved blank lines, so that
the final op tuple covers every code and comment token exactly once.
"""

from __future__ import annotations

import contextlib
import dataclasses
import itertools
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, Iterator, List, Optional, Tuple, Union

from kfmt.errors import StructuralError
from kfmt.lang.lexer import Tok, TokenType
from kfmt.lang.token_index import TokenIndex


class BreakKind(Enum):
    SPACE = auto()
    LINE = auto()
    FORCED_LINE = auto()


@dataclass(frozen=True)
class Literal:
    """Text of one source token. Verbatim text is never re-laid out."""

    text: str
    verbatim: bool = False
    comment: bool = False


@dataclass(frozen=True)
class OpenGroup:
    id: int
    fill: bool = False
    breakable: bool = True


@dataclass(frozen=True)
class CloseGroup:
    id: int


@dataclass(frozen=True)
class Break:
    """A potential line break.

    SPACE always renders as a single space. LINE renders as `flat` when its
    group is flat and as a newline otherwise. FORCED_LINE always breaks.
    """

    kind: BreakKind
    flexible: bool = False
    flat: str = " "
    preserve_blank: bool = False
    blank_lines: int = 0


@dataclass(frozen=True)
class Indent:
    """Raise the indent of breaks inside by `amount`.

    A conditional indent starts with a break and applies only when that
    break renders as a newline.
    """

    amount: int
    conditional: bool = False


@dataclass(frozen=True)
class Unindent:
    pass


@dataclass(frozen=True)
class TokenAnchor:
    """Binds the next `Literal` to the original range [start, end)."""

    start: int
    end: int


@dataclass(frozen=True)
class CommentSlot:
    """Where leading comments of the token at `token_index` go."""

    token_index: int


Op = Union[Literal, OpenGroup, CloseGroup, Break, Indent, Unindent, TokenAnchor, CommentSlot]


def space() -> Break:
    return Break(BreakKind.SPACE)


def line(flat: str = " ", *, flexible: bool = False) -> Break:
    return Break(BreakKind.LINE, flexible=flexible, flat=flat)


def forced_line(*, preserve_blank: bool = False, blank_lines: int = 0) -> Break:
    return Break(BreakKind.FORCED_LINE, flat="", preserve_blank=preserve_blank, blank_lines=blank_lines)


def _blank(whitespace: List[Tok]) -> int:
    return 1 if sum(tok.newline_count() for tok in whitespace) >= 2 else 0


def _comment_text(tok: Tok) -> str:
    if tok.type is TokenType.LINE_COMMENT:
        return tok.text.rstrip()
    return tok.text


@dataclass
class _Gap:
    """Comments and whitespace between two consecutive code tokens."""

    previous: Optional[Tok]
    following: Optional[Tok]
    trailing: List[Tok]
    leading: List[Tuple[Tok, int, bool]]  # (comment, blank lines before, newline before)
    blank_after_trailing: int
    blank_before_following: int
    newline_before_following: bool


class OpStream:
    """Accumulator the node formatter appends ops to."""

    def __init__(self, index: TokenIndex):
        self.index = index
        self.ops: List[Op] = []
        self._group_ids = itertools.count()

    # ------------------------------------------------------------------
    # Appending
    # ------------------------------------------------------------------

    def append(self, op: Op) -> None:
        self.ops.append(op)

    def token(self, tok: Tok) -> None:
        if not self.index.contains(tok) or not tok.is_code:
            raise StructuralError(f"Token {tok!r} is not a code token of the source")
        self.ops.append(TokenAnchor(tok.start, tok.end))
        self.ops.append(Literal(tok.text, verbatim="\n" in tok.text))

    def tokens(self, toks: List[Tok]) -> None:
        for tok in toks:
            self.token(tok)

    def space(self) -> None:
        self.ops.append(space())

    def line(self, flat: str = " ", *, flexible: bool = False) -> None:
        self.ops.append(line(flat, flexible=flexible))

    def forced_line(self, *, preserve_blank: bool = False, blank_lines: int = 0) -> None:
        self.ops.append(forced_line(preserve_blank=preserve_blank, blank_lines=blank_lines))

    def comment_slot(self, tok: Tok) -> None:
        self.ops.append(CommentSlot(tok.index))

    def open_group(self, *, fill: bool = False, breakable: bool = True) -> int:
        group_id = next(self._group_ids)
        self.ops.append(OpenGroup(group_id, fill=fill, breakable=breakable))
        return group_id

    def close_group(self, group_id: int) -> None:
        self.ops.append(CloseGroup(group_id))

    @contextlib.contextmanager
    def group(self, *, fill: bool = False, breakable: bool = True) -> Iterator[int]:
        group_id = self.open_group(fill=fill, breakable=breakable)
        yield group_id
        self.close_group(group_id)

    @contextlib.contextmanager
    def indented(self, amount: int, *, conditional: bool = False) -> Iterator[None]:
        self.ops.append(Indent(amount, conditional=conditional))
        yield
        self.ops.append(Unindent())

    # ------------------------------------------------------------------
    # Finishing
    # ------------------------------------------------------------------

    def build(self) -> Tuple[Op, ...]:
        """Place comments, resolve blank lines and return the final op tuple."""
        ops = list(self.ops)
        literal_positions = self._literal_positions(ops)
        slots = {
            op.token_index: position
            for position, op in enumerate(ops)
            if isinstance(op, CommentSlot)
        }

        code_toks = self.index.code_toks
        gaps: List[_Gap] = []
        for previous, following in zip([None] + code_toks, code_toks + [None]):
            gaps.append(self._gap(previous, following))

        insertions: Dict[int, List[Op]] = {}
        blank_after: Dict[Optional[int], int] = {}
        for gap in gaps:
            previous_index = gap.previous.index if gap.previous is not None else None
            blank_after[previous_index] = gap.blank_after_trailing
            if gap.trailing:
                position = literal_positions[gap.previous.index] + 1
                while position < len(ops) and isinstance(ops[position], (CloseGroup, Unindent)):
                    position += 1
                insertions.setdefault(position, []).extend(self._trailing_ops(gap))
            if gap.leading:
                if gap.following is None:
                    position = len(ops)
                elif gap.following.index in slots:
                    position = slots[gap.following.index]
                else:
                    position = literal_positions[gap.following.index] - 1
                    while position > 0 and isinstance(
                        ops[position - 1], (OpenGroup, Indent, TokenAnchor)
                    ):
                        position -= 1
                insertions.setdefault(position, []).extend(self._leading_ops(gap))

        result: List[Op] = []
        for position in range(len(ops) + 1):
            result.extend(insertions.get(position, ()))
            if position < len(ops) and not isinstance(ops[position], CommentSlot):
                result.append(ops[position])

        return tuple(self._resolve_blank_lines(result, blank_after))

    def _literal_positions(self, ops: List[Op]) -> Dict[int, int]:
        """Map code token indexes to the position of their `Literal`."""
        positions: Dict[int, int] = {}
        emitted: List[Tok] = []
        for position, op in enumerate(ops):
            if isinstance(op, TokenAnchor):
                tok = self.index.token_at(op.start)
                if tok is None or (tok.start, tok.end) != (op.start, op.end):
                    raise StructuralError(f"Anchor {op.start}:{op.end} does not match a token")
                if position + 1 >= len(ops) or not isinstance(ops[position + 1], Literal):
                    raise StructuralError(f"Anchor for {tok!r} is not followed by a literal")
                if tok.index in positions:
                    raise StructuralError(f"Token {tok!r} emitted twice")
                positions[tok.index] = position + 1
                emitted.append(tok)

        expected = self.index.code_toks
        for position, tok in enumerate(expected):
            if position >= len(emitted):
                raise StructuralError(f"Token {tok!r} was never emitted")
            if emitted[position].index != tok.index:
                raise StructuralError(
                    f"Token {emitted[position]!r} emitted out of order (expected {tok!r})"
                )
        if len(emitted) != len(expected):
            raise StructuralError(f"Unexpected token {emitted[len(expected)]!r} emitted")
        return positions

    def _gap(self, previous: Optional[Tok], following: Optional[Tok]) -> _Gap:
        between = self.index.between(previous, following)
        trailing: List[Tok] = []
        rest = list(between)
        has_newline = any(tok.newline_count() for tok in between)
        if previous is not None and (has_newline or following is None):
            # Comments on the same line as `previous` trail it
            while rest and not rest[0].newline_count():
                tok = rest.pop(0)
                if tok.is_comment:
                    trailing.append(tok)

        leading: List[Tuple[Tok, int, bool]] = []
        whitespace: List[Tok] = []
        blank_after_trailing: Optional[int] = None
        newline_seen = previous is None
        for tok in rest:
            if tok.is_comment:
                blank = _blank(whitespace)
                newline = newline_seen or any(ws.newline_count() for ws in whitespace)
                if blank_after_trailing is None:
                    blank_after_trailing = blank
                leading.append((tok, blank, newline))
                whitespace = []
                newline_seen = False
            else:
                whitespace.append(tok)
        blank = _blank(whitespace)
        if blank_after_trailing is None:
            blank_after_trailing = blank
        return _Gap(
            previous=previous,
            following=following,
            trailing=trailing,
            leading=leading,
            blank_after_trailing=blank_after_trailing,
            blank_before_following=blank,
            newline_before_following=any(ws.newline_count() for ws in whitespace),
        )

    def _comment(self, tok: Tok) -> List[Op]:
        return [TokenAnchor(tok.start, tok.end), Literal(_comment_text(tok), verbatim=True, comment=True)]

    def _trailing_ops(self, gap: _Gap) -> List[Op]:
        result: List[Op] = []
        for tok in gap.trailing:
            result.append(space())
            result.extend(self._comment(tok))
        result.append(forced_line())
        return result

    def _leading_ops(self, gap: _Gap) -> List[Op]:
        result: List[Op] = []
        for position, (tok, blank, newline) in enumerate(gap.leading):
            if newline:
                result.append(forced_line(blank_lines=blank))
            result.extend(self._comment(tok))
            if position + 1 < len(gap.leading):
                next_newline = gap.leading[position + 1][2]
            else:
                next_newline = gap.newline_before_following or gap.following is None
            if tok.type is TokenType.LINE_COMMENT or next_newline:
                blank_next = (
                    gap.leading[position + 1][1]
                    if position + 1 < len(gap.leading)
                    else gap.blank_before_following
                )
                result.append(forced_line(blank_lines=blank_next))
            else:
                result.append(space())
        return result

    def _resolve_blank_lines(
        self, ops: List[Op], blank_after: Dict[Optional[int], int]
    ) -> List[Op]:
        resolved: List[Op] = []
        previous_code: Optional[int] = None
        anchored: Optional[Tuple[int, int]] = None
        for op in ops:
            if isinstance(op, TokenAnchor):
                anchored = (op.start, op.end)
            elif isinstance(op, Literal):
                if anchored is not None and not op.comment:
                    tok = self.index.token_at(anchored[0])
                    previous_code = tok.index
                anchored = None
            elif isinstance(op, Break) and op.preserve_blank and previous_code is not None:
                op = dataclasses.replace(op, blank_lines=blank_after.get(previous_code, 0))
            resolved.append(op)
        return resolved


def render_ops(ops) -> str:
    """Human readable dump of an op sequence, one op per line."""
    lines = []
    depth = 0
    for op in ops:
        if isinstance(op, (CloseGroup, Unindent)):
            depth -= 1
        if isinstance(op, Literal):
            text = f"Literal({op.text!r}{', verbatim' if op.verbatim else ''})"
        elif isinstance(op, Break):
            text = f"Break({op.kind.name}"
            if op.kind is BreakKind.LINE:
                text += f", flat={op.flat!r}"
            if op.flexible:
                text += ", flexible"
            if op.blank_lines:
                text += f", blank_lines={op.blank_lines}"
            text += ")"
        else:
            text = repr(op)
        lines.append("  " * max(depth, 0) + text)
        if isinstance(op, (OpenGroup, Indent)):
            depth += 1
    return "\n".join(lines)


__all__ = [
    "BreakKind",
    "Literal",
    "OpenGroup",
    "CloseGroup",
    "Break",
    "Indent",
    "Unindent",
    "TokenAnchor",
    "CommentSlot",
    "Op",
    "OpStream",
    "space",
    "line",
    "forced_line",
    "render_ops",
]
