"""Tests for the document model and the break engine."""

import math

import pytest

from kfmt.errors import StructuralError
from kfmt.layout import ops
from kfmt.layout.doc import Break, DocBuilder, Group, Indent, Text, render_flat
from kfmt.layout.engine import compute_breaks
from kfmt.layout.ops import BreakKind


def _build(*op_list):
    return DocBuilder().build(list(op_list))


def _leaves(node):
    if isinstance(node, (Text, Break)):
        yield node
    else:
        for child in node.children:
            yield from _leaves(child)


def _render(doc, max_width):
    """Render a document using the plan, without any source anchoring."""
    plan = compute_breaks(doc, max_width)
    pieces = []
    for leaf in _leaves(doc):
        if isinstance(leaf, Text):
            pieces.append(leaf.text)
            continue
        decision = plan.breaks[leaf]
        if decision.newline:
            pieces.append("\n" + " " * decision.indent)
        else:
            pieces.append(leaf.flat_text)
    return "".join(pieces)


def _pair(**group_options):
    return _build(
        ops.OpenGroup(0, **group_options),
        ops.Literal("aaa"),
        ops.line(),
        ops.Literal("bbb"),
        ops.CloseGroup(0),
    )


class TestDocBuilder:
    def test_nesting(self):
        doc = _build(
            ops.OpenGroup(0),
            ops.TokenAnchor(0, 1),
            ops.Literal("a"),
            ops.Indent(2),
            ops.line(),
            ops.Unindent(),
            ops.CloseGroup(0),
        )
        (group,) = doc.children
        assert isinstance(group, Group)
        text, indent = group.children
        assert text.anchor == (0, 1)
        assert isinstance(indent, Indent)
        assert indent.amount == 2

    def test_widths(self):
        doc = _pair()
        assert doc.width == 7
        assert Text("abc\nd").width == 3
        assert Text("/* a\nb */", comment=True).width == math.inf
        assert Break(BreakKind.FORCED_LINE).width == math.inf

    def test_render_flat(self):
        assert render_flat(_pair()) == "aaa bbb"

    @pytest.mark.parametrize(
        "op_list",
        [
            [ops.CloseGroup(0)],
            [ops.OpenGroup(0), ops.CloseGroup(1)],
            [ops.Unindent()],
            [ops.OpenGroup(0)],
            [ops.TokenAnchor(0, 1)],
        ],
    )
    def test_unbalanced_ops_are_rejected(self, op_list):
        with pytest.raises(StructuralError):
            DocBuilder().build(op_list)


class TestGroups:
    def test_group_that_fits_stays_flat(self):
        assert _render(_pair(), 10) == "aaa bbb"

    def test_group_that_does_not_fit_breaks(self):
        assert _render(_pair(), 5) == "aaa\nbbb"

    def test_unbreakable_group_never_breaks(self):
        assert _render(_pair(breakable=False), 3) == "aaa bbb"

    def test_forced_line_breaks_enclosing_group(self):
        doc = _build(
            ops.OpenGroup(0),
            ops.Literal("a"),
            ops.line(),
            ops.Literal("b"),
            ops.forced_line(),
            ops.CloseGroup(0),
        )
        assert _render(doc, 80) == "a\nb\n"

    def test_indent_applies_to_breaks_inside(self):
        doc = _build(
            ops.OpenGroup(0),
            ops.Literal("f("),
            ops.Indent(4),
            ops.line(""),
            ops.Literal("x"),
            ops.Unindent(),
            ops.CloseGroup(0),
        )
        assert _render(doc, 2) == "f(\n    x"
        assert _render(doc, 80) == "f(x"

    def test_material_after_group_counts(self):
        # "aaa bbb" fits in 8 columns, but not with the ";;" that follows
        doc = _build(
            ops.OpenGroup(0),
            ops.Literal("aaa"),
            ops.line(),
            ops.Literal("bbb"),
            ops.CloseGroup(0),
            ops.Literal(";;"),
        )
        assert _render(doc, 8) == "aaa\nbbb;;"

    def test_fill_breaks_only_where_needed(self):
        doc = _build(
            ops.OpenGroup(0, fill=True),
            ops.Literal("aa"),
            ops.line(),
            ops.Literal("bb"),
            ops.line(),
            ops.Literal("cc"),
            ops.CloseGroup(0),
        )
        assert _render(doc, 5) == "aa bb\ncc"


class TestConditionalIndent:
    def _assignment(self, conditional):
        return _build(
            ops.OpenGroup(0),
            ops.Literal("x ="),
            ops.Indent(4, conditional=conditional),
            ops.line(" ", flexible=True),
            ops.Literal("run {"),
            ops.Indent(2),
            ops.forced_line(),
            ops.Literal("a"),
            ops.Unindent(),
            ops.forced_line(),
            ops.Literal("}"),
            ops.Unindent(),
            ops.CloseGroup(0),
        )

    def test_flat_leading_break_keeps_base_indent(self):
        assert _render(self._assignment(True), 20) == "x = run {\n  a\n}"

    def test_plain_indent_always_applies(self):
        assert _render(self._assignment(False), 20) == "x = run {\n      a\n    }"

    def test_broken_leading_break_indents(self):
        assert _render(self._assignment(True), 6) == "x =\n    run {\n      a\n    }"

    def test_flexible_break_before_own_line_comment(self):
        doc = _build(
            ops.OpenGroup(0),
            ops.Literal("x ="),
            ops.Indent(4, conditional=True),
            ops.line(" ", flexible=True),
            ops.forced_line(),
            ops.Literal("1"),
            ops.Unindent(),
            ops.CloseGroup(0),
        )
        plan = compute_breaks(doc, 80)
        group = doc.children[0]
        flexible = group.children[1].children[0]
        decision = plan.breaks[flexible]
        assert decision.newline
        assert decision.indent == 4
