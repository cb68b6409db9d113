"""Kotlin keyword tables shared by the parser and the formatting passes."""

from __future__ import annotations

from typing import FrozenSet

# Keywords that can never be identifiers.
HARD_KEYWORDS: FrozenSet[str] = frozenset({
    "as", "break", "class", "continue", "do", "else", "false", "for", "fun",
    "if", "in", "interface", "is", "null", "object", "package", "return",
    "super", "this", "throw", "true", "try", "typealias", "val", "var",
    "when", "while",
})

# Soft keywords accepted in a declaration's modifier list.
MODIFIER_WORDS: FrozenSet[str] = frozenset({
    "public", "private", "protected", "internal",
    "open", "final", "abstract", "sealed", "data", "enum", "annotation",
    "inner", "companion", "value",
    "override", "lateinit", "const",
    "suspend", "inline", "noinline", "crossinline", "reified", "tailrec",
    "operator", "infix", "external", "vararg", "expect", "actual",
})

DECLARATION_KEYWORDS: FrozenSet[str] = frozenset({
    "fun", "val", "var", "class", "interface", "object", "typealias",
})

ASSIGNMENT_OPERATORS: FrozenSet[str] = frozenset({"=", "+=", "-=", "*=", "/=", "%="})

# Identifiers that end an expression instead of starting an infix call.
INFIX_STOP_WORDS: FrozenSet[str] = frozenset({
    "else", "catch", "finally", "by", "where", "get", "set", "constructor", "init",
}) | MODIFIER_WORDS

# Words that keep a space after them inside a type.
TYPE_PREFIX_WORDS: FrozenSet[str] = frozenset({"suspend", "in", "out", "reified"})

# Functions invoked through operator syntax; importing them is never "unused".
OPERATOR_CONVENTION_NAMES: FrozenSet[str] = frozenset({
    "unaryPlus", "unaryMinus", "not", "inc", "dec",
    "plus", "minus", "times", "div", "rem", "rangeTo", "rangeUntil",
    "contains", "get", "set", "invoke",
    "plusAssign", "minusAssign", "timesAssign", "divAssign", "remAssign",
    "equals", "compareTo", "iterator", "next", "hasNext",
    "getValue", "setValue", "provideDelegate",
})


def is_component_function(name: str) -> bool:
    """`component1`, `component2`, ... back destructuring declarations."""
    return name.startswith("component") and name[len("component"):].isdigit()


__all__ = [
    "HARD_KEYWORDS",
    "MODIFIER_WORDS",
    "DECLARATION_KEYWORDS",
    "ASSIGNMENT_OPERATORS",
    "INFIX_STOP_WORDS",
    "TYPE_PREFIX_WORDS",
    "OPERATOR_CONVENTION_NAMES",
    "is_component_function",
]
