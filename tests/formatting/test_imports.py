"""Tests for import sorting and deduplication."""

import pytest

from kfmt.errors import StructuralError
from kfmt.formatting import ImportRecord, canonicalize_imports
from kfmt.formatting.imports import sorted_unique
from kfmt.lang.parser import parse


def _record(name, alias="", wildcard=False):
    text = f"import {name}" + (".*" if wildcard else "") + (f" as {alias}" if alias else "")
    return ImportRecord(name, alias, wildcard, text, (0, len(text)))


class TestImportRecord:
    def test_key_includes_alias_and_wildcard(self):
        assert _record("a.B").key == "a.B null "
        assert _record("a.B", alias="C").key == "a.B C "
        assert _record("a", wildcard=True).key == "a null *"

    def test_from_directive_strips_backticks(self):
        source = "import a.B as `C`\n"
        directive = parse(source).tree.imports[0]
        record = ImportRecord.from_directive(source, directive)
        assert record.alias == "C"
        assert record.original_text == "import a.B as `C`"
        assert record.original_range == (0, len("import a.B as `C`"))

    def test_sorted_unique_keeps_first(self):
        records = [_record("b.X"), _record("a.Y"), _record("a.Y")]
        assert [record.qualified_name for record in sorted_unique(records)] == ["a.Y", "b.X"]

    def test_aliased_import_sorts_before_plain_import(self):
        records = [_record("a.B", alias="C"), _record("a.B")]
        assert [record.alias for record in sorted_unique(records)] == ["C", ""]


class TestCanonicalizeImports:
    def test_sorts_and_deduplicates(self):
        source = "import b.X\nimport a.Y\nimport a.Y\nfun f(){ }"
        assert canonicalize_imports(source) == "import a.Y\nimport b.X\nfun f(){ }"

    def test_sorted_input_is_returned_unchanged(self):
        source = "package p\n\nimport a.A\nimport b.B\n\nclass C\n"
        assert canonicalize_imports(source) is source

    def test_without_imports(self):
        source = "fun f() {}\n"
        assert canonicalize_imports(source) is source

    def test_text_around_imports_is_untouched(self):
        source = "package p\n\nimport z.Z\nimport a.A  \n\n// tail\nfun f() {}\n"
        result = canonicalize_imports(source)
        assert result == "package p\n\nimport a.A\nimport z.Z  \n\n// tail\nfun f() {}\n"

    def test_wildcard_sorts_before_members_of_its_package(self):
        source = "import a.B\nimport a.*\n"
        assert canonicalize_imports(source) == "import a.*\nimport a.B\n"

    def test_comment_between_imports_is_rejected(self):
        source = "import a.B\n// x\nimport c.D\n"
        with pytest.raises(StructuralError) as excinfo:
            canonicalize_imports(source)
        assert excinfo.value.message.endswith(": // x")
        assert "import c.D" not in excinfo.value.message
        assert excinfo.value.line == 2
