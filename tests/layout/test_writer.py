"""Tests for the output writer and the patch applier."""

import pytest

from kfmt.errors import StructuralError
from kfmt.formatting import FormattingOptions, format_tree
from kfmt.lang.parser import parse
from kfmt.layout.doc import DocBuilder
from kfmt.layout.engine import compute_breaks
from kfmt.layout.patch import FormatReplacement, apply_replacements, diff_replacements
from kfmt.layout.writer import Writer, write


def _writer(source, max_width=100):
    parsed = parse(source)
    ops = format_tree(parsed.tree, parsed.index, FormattingOptions(max_width=max_width))
    doc = DocBuilder().build(ops)
    writer = Writer(parsed.index, compute_breaks(doc, max_width))
    return writer, doc


class TestWriter:
    def test_replacements_cover_only_changed_whitespace(self):
        writer, doc = _writer("fun f(){ }")
        assert writer.write(doc) == "fun f() {}\n"
        assert writer.replacements() == [
            FormatReplacement(7, 7, " "),
            FormatReplacement(8, 9, ""),
            FormatReplacement(10, 10, "\n"),
        ]

    def test_formatted_input_has_no_replacements(self):
        source = "fun f() {}\n"
        parsed = parse(source)
        ops = format_tree(parsed.tree, parsed.index)
        doc = DocBuilder().build(ops)
        text, replacements = write(parsed.index, doc, compute_breaks(doc, 100))
        assert text == source
        assert replacements == []

    def test_replacements_restricted_to_token_ranges(self):
        writer, doc = _writer("fun f(){ }")
        writer.write(doc)
        # Token 0 is `fun`, which is already followed by a single space
        assert writer.replacements([(0, 1)]) == []
        closing = len(writer.index) - 1
        assert writer.replacements([(closing, closing + 1)]) == [
            FormatReplacement(8, 9, ""),
            FormatReplacement(10, 10, "\n"),
        ]

    def test_applying_replacements_reproduces_output(self):
        source = "class A{\nfun f( x:Int ){ }\n}"
        writer, doc = _writer(source)
        text = writer.write(doc)
        assert apply_replacements(source, writer.replacements()) == text


class TestPatch:
    def test_apply(self):
        replacements = [FormatReplacement(0, 1, "A"), FormatReplacement(3, 3, "!")]
        assert apply_replacements("abc", replacements) == "Abc!"

    def test_no_replacements_returns_same_object(self):
        text = "unchanged"
        assert apply_replacements(text, []) is text

    def test_overlap_is_rejected(self):
        replacements = [FormatReplacement(0, 2, "x"), FormatReplacement(1, 3, "y")]
        with pytest.raises(StructuralError):
            apply_replacements("abcd", replacements)

    def test_past_end_is_rejected(self):
        with pytest.raises(StructuralError):
            apply_replacements("ab", [FormatReplacement(1, 5, "")])

    def test_invalid_range_is_rejected(self):
        with pytest.raises(StructuralError):
            FormatReplacement(3, 1, "")

    def test_diff_replacements_are_line_granular(self):
        old = "a\nb\nc\n"
        new = "a\nB\nc\n"
        assert diff_replacements(old, new) == [FormatReplacement(2, 4, "B\n")]
        assert apply_replacements(old, diff_replacements(old, new)) == new

    def test_diff_of_equal_texts_is_empty(self):
        assert diff_replacements("same\n", "same\n") == []
