"""Tests for the document formatter facade, options and node rules."""

import pytest

from kfmt.formatting import (
    STYLE_NAMES,
    Formatter,
    FormattingOptions,
    NodeFormatter,
    pretty_print,
)
from kfmt.lang.ast import NodeKind
from kfmt.lang.token_index import TokenIndex


class TestFormatter:
    """Test the Formatter facade used by the CLI."""

    def test_basic_formatting(self):
        result = Formatter().format_document("fun main() {\nprintln( 1 )\n}")
        assert result.success()
        assert result.is_changed
        assert result.formatted_text == "fun main() {\n  println(1)\n}\n"
        assert result.warnings == []

    def test_unchanged_document(self, canonical_source):
        result = Formatter().format_document(canonical_source)
        assert result.success()
        assert not result.is_changed
        assert result.formatted_text == canonical_source

    def test_syntax_error_reported_with_path(self):
        source = "fun main( {\n"
        result = Formatter().format_document(source, "src/Main.kt")
        assert not result.success()
        assert not result.is_changed
        assert result.formatted_text == source
        assert "src/Main.kt:1:11" in result.errors[0]
        assert "KFMT_SYNTAX" in result.errors[0]

    def test_structural_error_reported(self):
        result = Formatter().format_document("import a.B\n// x\nimport c.D\n", "A.kt")
        assert not result.success()
        assert "Imports not contiguous" in result.errors[0]

    def test_long_lines_produce_warnings(self):
        source = 'val s = "aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"\n'
        result = Formatter(FormattingOptions(max_width=20)).format_document(source, "S.kt")
        assert result.success()
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("S.kt:2: line is")


class TestFormattingOptions:
    def test_defaults(self):
        options = FormattingOptions()
        assert options.max_width == 100
        assert options.block_indent == 2
        assert options.continuation_indent == 4
        assert options.remove_unused_imports
        assert not options.debug_layout_trace

    @pytest.mark.parametrize("name", ["dropbox", "google"])
    def test_house_styles(self, name):
        options = FormattingOptions.for_style(name)
        assert (options.block_indent, options.continuation_indent) == (4, 4)
        assert options.max_width == 100

    def test_style_names(self):
        assert STYLE_NAMES == ("default", "dropbox", "google")

    def test_unknown_style(self):
        with pytest.raises(ValueError, match="Unknown style"):
            FormattingOptions.for_style("kotlinlang")

    def test_overrides_return_new_options(self):
        options = FormattingOptions()
        wider = options.with_overrides(max_width=120)
        assert wider.max_width == 120
        assert options.max_width == 100

    def test_field_types(self):
        types = FormattingOptions.field_types()
        assert types["max_width"] is int
        assert types["remove_unused_imports"] is bool


class TestNodeRules:
    def test_every_node_kind_has_a_rule(self):
        rules = NodeFormatter(TokenIndex("")).rules
        assert set(rules) == set(NodeKind)

    @pytest.mark.parametrize(
        "source, expected",
        [
            ("enum class Color{RED,GREEN}", "enum class Color {\n  RED,\n  GREEN\n}\n"),
            ("typealias Names=List<String>", "typealias Names = List<String>\n"),
            ("val r=1..10", "val r = 1..10\n"),
            ("val n=x?:0", "val n = x ?: 0\n"),
            ("val t=a as String", "val t = a as String\n"),
            ("val y=-x", "val y = -x\n"),
            ("val z=- -x", "val z = - -x\n"),
            ("fun f(vararg xs:Int)=xs[0]", "fun f(vararg xs: Int) = xs[0]\n"),
            ("val m=map[\"a\",1]", "val m = map[\"a\", 1]\n"),
            ("val f=::run", "val f = ::run\n"),
            ("fun <T> id(x:T):T=x", "fun <T> id(x: T): T = x\n"),
            ("class A:B(),C", "class A : B(), C\n"),
        ],
    )
    def test_construct_layout(self, source, expected):
        assert pretty_print(source, FormattingOptions()) == expected

    @pytest.mark.parametrize(
        "source",
        [
            "fun f() {\n  while (x) {\n    x = next()\n  }\n}\n",
            "fun f() {\n  do {\n    x++\n  } while (x < 10)\n}\n",
            "fun f() {\n  for ((a, b) in pairs) {\n    println(a)\n  }\n}\n",
            "fun f() {\n  try {\n    g()\n  } catch (e: Exception) {\n    h()\n  } finally {\n    i()\n  }\n}\n",
            "fun f(x: Int) = when (x) {\n  1, 2 -> \"low\"\n  else -> \"high\"\n}\n",
            "@Suppress(\"unused\")\nclass A {\n  init {\n    println()\n  }\n}\n",
            "object Registry {\n  val items = mutableListOf<String>()\n}\n",
            "fun f() {\n  if (a) {\n    b()\n  } else if (c) {\n    d()\n  } else {\n    e()\n  }\n}\n",
        ],
    )
    def test_formatted_constructs_are_stable(self, source):
        assert pretty_print(source, FormattingOptions()) == source
