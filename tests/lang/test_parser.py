"""Tests for the recursive descent parser."""

import pytest

from kfmt.errors import ParseError
from kfmt.lang.ast import (
    CallExpression,
    ClassDecl,
    FunctionDecl,
    IfExpression,
    LambdaExpression,
    NameExpression,
    NodeKind,
    PropertyDecl,
    WhenExpression,
    walk,
)
from kfmt.lang.parser import parse


class TestFileStructure:
    def test_package_and_imports(self):
        tree = parse("package a.b\n\nimport x.y.Z as W\nimport x.y.*\n").tree
        assert "".join(tok.text for tok in tree.package.name) == "a.b"
        aliased, wildcard = tree.imports
        assert aliased.qualified_name == "x.y.Z"
        assert aliased.simple_name == "W"
        assert not aliased.is_wildcard
        assert wildcard.is_wildcard
        assert wildcard.qualified_name == "x.y"
        assert wildcard.simple_name is None

    def test_declarations(self):
        source = (
            "class Greeter(private val name: String) {\n"
            "  fun greet(): String = name\n"
            "}\n"
            "val answer = 42\n"
        )
        tree = parse(source).tree
        greeter, answer = tree.declarations
        assert isinstance(greeter, ClassDecl)
        assert greeter.name.text == "Greeter"
        assert len(greeter.primary_constructor.parameters) == 1
        assert isinstance(greeter.body.members[0], FunctionDecl)
        assert isinstance(answer, PropertyDecl)

    def test_file_annotation(self):
        tree = parse('@file:JvmName("Utils")\npackage a\n').tree
        assert len(tree.file_annotations) == 1
        assert tree.package is not None


class TestStatements:
    def test_semicolons_attach_to_statements(self):
        tree = parse("fun f() { a(); b() }").tree
        statements = tree.declarations[0].body.statements
        assert len(statements) == 2
        assert [tok.text for tok in statements[0].semicolons] == [";"]
        assert statements[1].semicolons == []

    def test_trailing_lambda(self):
        tree = parse("val x = run { 1 }").tree
        call = tree.declarations[0].initializer
        assert isinstance(call, CallExpression)
        assert isinstance(call.trailing_lambda, LambdaExpression)

    def test_if_else_expression(self):
        tree = parse("val x = if (a) b else c").tree
        expression = tree.declarations[0].initializer
        assert isinstance(expression, IfExpression)
        assert expression.else_branch is not None

    def test_when_entries(self):
        source = "fun f(x: Int) = when (x) {\n  1, 2 -> a()\n  in 3..4 -> b()\n  else -> c()\n}\n"
        when = parse(source).tree.declarations[0].expression_body
        assert isinstance(when, WhenExpression)
        assert len(when.entries) == 3
        assert when.entries[2].else_keyword is not None

    def test_member_chain_continues_after_newline(self):
        tree = parse("val r = items\n  .map { it }\n  .first()\n").tree
        assert len(tree.declarations) == 1


class TestErrors:
    def test_missing_statement_separator(self):
        with pytest.raises(ParseError, match="Expected newline or ';'"):
            parse("fun f() { val x = 1 val y = 2 }")

    def test_unexpected_end_of_file(self):
        with pytest.raises(ParseError) as excinfo:
            parse("fun f() {")
        assert excinfo.value.found == "end of file"
        assert excinfo.value.line == 1

    def test_error_location(self):
        with pytest.raises(ParseError) as excinfo:
            parse("fun f() {\n  val = 1\n}\n")
        assert excinfo.value.line == 2
        assert excinfo.value.column == 7


class TestWalk:
    def test_walk_visits_every_node(self):
        tree = parse("fun f() { g(x, y) }").tree
        names = [node.token.text for node in walk(tree) if isinstance(node, NameExpression)]
        assert names == ["g", "x", "y"]

    def test_walk_starts_with_root(self):
        tree = parse("val x = 1").tree
        nodes = list(walk(tree))
        assert nodes[0] is tree
        assert nodes[0].kind is NodeKind.FILE
