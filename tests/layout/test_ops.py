"""Tests for the instruction stream and comment placement."""

import pytest

from kfmt.errors import StructuralError
from kfmt.lang.token_index import TokenIndex
from kfmt.layout.ops import (
    Break,
    BreakKind,
    Indent,
    Literal,
    OpStream,
    TokenAnchor,
    render_ops,
)


def _stream(source):
    index = TokenIndex(source)
    return OpStream(index), index.code_toks


def _literals(ops):
    return [op for op in ops if isinstance(op, Literal)]


class TestEmission:
    def test_token_emits_anchor_and_literal(self):
        stream, (tok,) = _stream("hello")
        stream.token(tok)
        assert stream.build() == (TokenAnchor(0, 5), Literal("hello"))

    def test_multiline_token_is_verbatim(self):
        stream, (tok,) = _stream('"""a\nb"""')
        stream.token(tok)
        assert _literals(stream.build())[0].verbatim

    def test_whitespace_token_is_rejected(self):
        index = TokenIndex("a b")
        stream = OpStream(index)
        with pytest.raises(StructuralError):
            stream.token(index[1])

    def test_missing_token_is_rejected(self):
        stream, (first, _second) = _stream("a b")
        stream.token(first)
        with pytest.raises(StructuralError, match="never emitted"):
            stream.build()

    def test_duplicate_token_is_rejected(self):
        stream, (tok,) = _stream("a")
        stream.token(tok)
        stream.token(tok)
        with pytest.raises(StructuralError, match="emitted twice"):
            stream.build()

    def test_out_of_order_tokens_are_rejected(self):
        stream, (first, second) = _stream("a b")
        stream.token(second)
        stream.token(first)
        with pytest.raises(StructuralError, match="out of order"):
            stream.build()

    def test_indented_context_manager(self):
        stream, (tok,) = _stream("a")
        with stream.indented(4, conditional=True):
            stream.token(tok)
        ops = stream.build()
        assert ops[0] == Indent(4, conditional=True)


class TestCommentPlacement:
    """Comments are placed by `build()`, never by the node rules."""

    def test_trailing_comment_follows_its_token(self):
        stream, (first, second) = _stream("a // c\nb")
        stream.token(first)
        stream.forced_line()
        stream.token(second)
        literals = _literals(stream.build())
        assert [literal.text for literal in literals] == ["a", "// c", "b"]
        assert literals[1].comment and literals[1].verbatim

    def test_leading_comment_precedes_its_token(self):
        stream, (first, second) = _stream("a\n/* c */\nb")
        stream.token(first)
        stream.forced_line()
        stream.token(second)
        ops = stream.build()
        texts = [literal.text for literal in _literals(ops)]
        assert texts == ["a", "/* c */", "b"]
        comment_position = ops.index(Literal("/* c */", verbatim=True, comment=True))
        assert ops[comment_position + 1].kind is BreakKind.FORCED_LINE

    def test_comment_at_end_of_file(self):
        stream, (tok,) = _stream("a\n// last\n")
        stream.token(tok)
        texts = [literal.text for literal in _literals(stream.build())]
        assert texts == ["a", "// last"]

    def test_line_comment_loses_trailing_spaces(self):
        stream, (tok,) = _stream("a // c   \n")
        stream.token(tok)
        assert _literals(stream.build())[1].text == "// c"

    def test_comment_slot_receives_leading_comments(self):
        stream, (first, second) = _stream("a\n// inner\nb")
        stream.token(first)
        with stream.indented(2):
            stream.comment_slot(second)
        stream.token(second)
        ops = stream.build()
        comment_position = [op.text for op in _literals(ops)].index("// inner")
        literal_ops = [position for position, op in enumerate(ops) if isinstance(op, Literal)]
        indent_position = ops.index(Indent(2))
        assert indent_position < literal_ops[comment_position]


class TestBlankLines:
    def test_blank_run_collapses_to_one(self):
        stream, (first, second) = _stream("a\n\n\n\nb")
        stream.token(first)
        stream.forced_line(preserve_blank=True)
        stream.token(second)
        breaks = [op for op in stream.build() if isinstance(op, Break)]
        assert breaks == [Break(BreakKind.FORCED_LINE, flat="", preserve_blank=True, blank_lines=1)]

    def test_single_newline_keeps_no_blank(self):
        stream, (first, second) = _stream("a\nb")
        stream.token(first)
        stream.forced_line(preserve_blank=True)
        stream.token(second)
        breaks = [op for op in stream.build() if isinstance(op, Break)]
        assert breaks[0].blank_lines == 0


def test_render_ops_nests_groups():
    stream, (first, second) = _stream("a b")
    with stream.group():
        stream.token(first)
        stream.line()
        stream.token(second)
    dump = render_ops(stream.build())
    assert "OpenGroup(id=0" in dump
    assert "  Literal('a')" in dump
    assert "Break(LINE, flat=' ')" in dump
