"""Syntax tree for the Kotlin subset understood by kfmt.

Nodes keep references to the `Tok`s they were parsed from; the node
formatter re-emits exactly those tokens, so no text is ever synthesized.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum, auto
from typing import ClassVar, Iterator, List, Optional, Union

from .lexer import Tok


class NodeKind(Enum):
    """Closed set of node kinds; the node formatter has one rule per kind."""

    FILE = auto()
    PACKAGE = auto()
    IMPORT = auto()
    MODIFIERS = auto()
    ANNOTATION = auto()
    TYPE = auto()
    FUNCTION = auto()
    PARAMETER_LIST = auto()
    PARAMETER = auto()
    PROPERTY = auto()
    CLASS = auto()
    SUPERTYPE = auto()
    CLASS_BODY = auto()
    ENUM_ENTRY = auto()
    INIT = auto()
    TYPEALIAS = auto()
    BLOCK = auto()
    EMPTY = auto()
    FOR = auto()
    WHILE = auto()
    DO_WHILE = auto()
    ASSIGNMENT = auto()
    BINARY = auto()
    PREFIX = auto()
    POSTFIX = auto()
    CALL = auto()
    VALUE_ARGUMENTS = auto()
    VALUE_ARGUMENT = auto()
    INDEX = auto()
    MEMBER = auto()
    PARENTHESIZED = auto()
    LAMBDA = auto()
    IF = auto()
    WHEN = auto()
    WHEN_ENTRY = auto()
    WHEN_CONDITION = auto()
    TRY = auto()
    CATCH = auto()
    JUMP = auto()
    LITERAL = auto()
    NAME = auto()


@dataclass
class Node:
    kind: ClassVar[NodeKind]

    # Statement terminators attached to statement-level nodes
    semicolons: List[Tok] = field(default_factory=list, kw_only=True)

    def first_token(self) -> Tok:
        raise NotImplementedError

    def last_token(self) -> Tok:
        if self.semicolons:
            return self.semicolons[-1]
        return self._last()

    def _last(self) -> Tok:
        raise NotImplementedError


# ----------------------------------------------------------------------
# Shared pieces
# ----------------------------------------------------------------------


@dataclass
class TypeRef(Node):
    """A type (or type parameter list) kept as its token sequence."""

    kind = NodeKind.TYPE

    tokens: List[Tok]
    spaced_colons: bool = False

    def first_token(self) -> Tok:
        return self.tokens[0]

    def _last(self) -> Tok:
        return self.tokens[-1]

    @property
    def text(self) -> str:
        return "".join(tok.text for tok in self.tokens)


@dataclass
class ValueArgument(Node):
    kind = NodeKind.VALUE_ARGUMENT

    expression: "Node"
    name: Optional[Tok] = None
    eq: Optional[Tok] = None
    spread: Optional[Tok] = None

    def first_token(self) -> Tok:
        if self.name is not None:
            return self.name
        if self.spread is not None:
            return self.spread
        return self.expression.first_token()

    def _last(self) -> Tok:
        return self.expression.last_token()


@dataclass
class ValueArguments(Node):
    kind = NodeKind.VALUE_ARGUMENTS

    lparen: Tok
    arguments: List[ValueArgument]
    commas: List[Tok]
    rparen: Tok

    def first_token(self) -> Tok:
        return self.lparen

    def _last(self) -> Tok:
        return self.rparen


@dataclass
class Annotation(Node):
    kind = NodeKind.ANNOTATION

    at: Tok
    name: List[Tok]
    arguments: Optional[ValueArguments] = None

    def first_token(self) -> Tok:
        return self.at

    def _last(self) -> Tok:
        if self.arguments is not None:
            return self.arguments.last_token()
        return self.name[-1]


@dataclass
class Modifiers(Node):
    """Annotations and modifier keywords in source order."""

    kind = NodeKind.MODIFIERS

    items: List[Union[Annotation, Tok]]

    def first_token(self) -> Tok:
        item = self.items[0]
        return item.first_token() if isinstance(item, Annotation) else item

    def _last(self) -> Tok:
        item = self.items[-1]
        return item.last_token() if isinstance(item, Annotation) else item


# ----------------------------------------------------------------------
# File structure
# ----------------------------------------------------------------------


@dataclass
class PackageHeader(Node):
    kind = NodeKind.PACKAGE

    keyword: Tok
    name: List[Tok]

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        return self.name[-1]


@dataclass
class ImportDirective(Node):
    kind = NodeKind.IMPORT

    keyword: Tok
    name: List[Tok]
    as_keyword: Optional[Tok] = None
    alias: Optional[Tok] = None

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        if self.alias is not None:
            return self.alias
        return self.name[-1]

    @property
    def is_wildcard(self) -> bool:
        return self.name[-1].text == "*"

    @property
    def qualified_name(self) -> str:
        parts = self.name[:-2] if self.is_wildcard else self.name
        return "".join(tok.text for tok in parts)

    @property
    def simple_name(self) -> Optional[str]:
        if self.is_wildcard:
            return None
        source = self.alias if self.alias is not None else self.name[-1]
        return source.text.strip("`")


@dataclass
class KotlinFile(Node):
    kind = NodeKind.FILE

    package: Optional[PackageHeader]
    imports: List[ImportDirective]
    declarations: List[Node]
    file_annotations: List[Annotation] = field(default_factory=list)

    def first_token(self) -> Tok:
        raise ValueError("a file has no single first token")

    def _last(self) -> Tok:
        raise ValueError("a file has no single last token")


# ----------------------------------------------------------------------
# Declarations
# ----------------------------------------------------------------------


@dataclass
class Parameter(Node):
    kind = NodeKind.PARAMETER

    name: Tok
    modifiers: Optional[Modifiers] = None
    val_var: Optional[Tok] = None
    colon: Optional[Tok] = None
    type: Optional[TypeRef] = None
    eq: Optional[Tok] = None
    default: Optional[Node] = None

    def first_token(self) -> Tok:
        if self.modifiers is not None:
            return self.modifiers.first_token()
        if self.val_var is not None:
            return self.val_var
        return self.name

    def _last(self) -> Tok:
        if self.default is not None:
            return self.default.last_token()
        if self.type is not None:
            return self.type.last_token()
        return self.name


@dataclass
class ParameterList(Node):
    kind = NodeKind.PARAMETER_LIST

    lparen: Tok
    parameters: List[Parameter]
    commas: List[Tok]
    rparen: Tok

    def first_token(self) -> Tok:
        return self.lparen

    def _last(self) -> Tok:
        return self.rparen


@dataclass
class Block(Node):
    kind = NodeKind.BLOCK

    lbrace: Tok
    statements: List[Node]
    rbrace: Tok

    def first_token(self) -> Tok:
        return self.lbrace

    def _last(self) -> Tok:
        return self.rbrace


@dataclass
class FunctionDecl(Node):
    kind = NodeKind.FUNCTION

    keyword: Tok
    name: List[Tok]
    parameters: ParameterList
    modifiers: Optional[Modifiers] = None
    type_parameters: Optional[TypeRef] = None
    colon: Optional[Tok] = None
    return_type: Optional[TypeRef] = None
    body: Optional[Block] = None
    eq: Optional[Tok] = None
    expression_body: Optional[Node] = None

    def first_token(self) -> Tok:
        return self.modifiers.first_token() if self.modifiers is not None else self.keyword

    def _last(self) -> Tok:
        if self.body is not None:
            return self.body.last_token()
        if self.expression_body is not None:
            return self.expression_body.last_token()
        if self.return_type is not None:
            return self.return_type.last_token()
        return self.parameters.last_token()


@dataclass
class PropertyDecl(Node):
    kind = NodeKind.PROPERTY

    keyword: Tok
    name: List[Tok]
    modifiers: Optional[Modifiers] = None
    type_parameters: Optional[TypeRef] = None
    colon: Optional[Tok] = None
    type: Optional[TypeRef] = None
    eq: Optional[Tok] = None
    initializer: Optional[Node] = None
    by_keyword: Optional[Tok] = None
    delegate: Optional[Node] = None

    def first_token(self) -> Tok:
        return self.modifiers.first_token() if self.modifiers is not None else self.keyword

    def _last(self) -> Tok:
        if self.initializer is not None:
            return self.initializer.last_token()
        if self.delegate is not None:
            return self.delegate.last_token()
        if self.type is not None:
            return self.type.last_token()
        return self.name[-1]


@dataclass
class SuperTypeEntry(Node):
    kind = NodeKind.SUPERTYPE

    type: TypeRef
    arguments: Optional[ValueArguments] = None

    def first_token(self) -> Tok:
        return self.type.first_token()

    def _last(self) -> Tok:
        if self.arguments is not None:
            return self.arguments.last_token()
        return self.type.last_token()


@dataclass
class EnumEntry(Node):
    kind = NodeKind.ENUM_ENTRY

    name: Tok
    modifiers: Optional[Modifiers] = None
    arguments: Optional[ValueArguments] = None
    body: Optional["ClassBody"] = None

    def first_token(self) -> Tok:
        return self.modifiers.first_token() if self.modifiers is not None else self.name

    def _last(self) -> Tok:
        if self.body is not None:
            return self.body.last_token()
        if self.arguments is not None:
            return self.arguments.last_token()
        return self.name


@dataclass
class ClassBody(Node):
    kind = NodeKind.CLASS_BODY

    lbrace: Tok
    members: List[Node]
    rbrace: Tok
    enum_entries: List[EnumEntry] = field(default_factory=list)
    enum_commas: List[Tok] = field(default_factory=list)
    enum_semicolon: Optional[Tok] = None

    def first_token(self) -> Tok:
        return self.lbrace

    def _last(self) -> Tok:
        return self.rbrace


@dataclass
class ClassDecl(Node):
    kind = NodeKind.CLASS

    keyword: Tok
    name: Optional[Tok] = None
    modifiers: Optional[Modifiers] = None
    type_parameters: Optional[TypeRef] = None
    constructor_modifiers: Optional[Modifiers] = None
    constructor_keyword: Optional[Tok] = None
    primary_constructor: Optional[ParameterList] = None
    colon: Optional[Tok] = None
    supertypes: List[SuperTypeEntry] = field(default_factory=list)
    supertype_commas: List[Tok] = field(default_factory=list)
    body: Optional[ClassBody] = None

    def first_token(self) -> Tok:
        return self.modifiers.first_token() if self.modifiers is not None else self.keyword

    def _last(self) -> Tok:
        if self.body is not None:
            return self.body.last_token()
        if self.supertypes:
            return self.supertypes[-1].last_token()
        if self.primary_constructor is not None:
            return self.primary_constructor.last_token()
        if self.type_parameters is not None:
            return self.type_parameters.last_token()
        return self.name if self.name is not None else self.keyword


@dataclass
class InitBlock(Node):
    kind = NodeKind.INIT

    keyword: Tok
    block: Block

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        return self.block.last_token()


@dataclass
class TypeAlias(Node):
    kind = NodeKind.TYPEALIAS

    keyword: Tok
    name: Tok
    eq: Tok
    type: TypeRef
    modifiers: Optional[Modifiers] = None
    type_parameters: Optional[TypeRef] = None

    def first_token(self) -> Tok:
        return self.modifiers.first_token() if self.modifiers is not None else self.keyword

    def _last(self) -> Tok:
        return self.type.last_token()


# ----------------------------------------------------------------------
# Statements
# ----------------------------------------------------------------------


@dataclass
class EmptyStatement(Node):
    """One or more semicolons with no statement before them."""

    kind = NodeKind.EMPTY

    def first_token(self) -> Tok:
        return self.semicolons[0]

    def _last(self) -> Tok:
        return self.semicolons[-1]


@dataclass
class ForStatement(Node):
    kind = NodeKind.FOR

    keyword: Tok
    lparen: Tok
    variable: List[Tok]
    in_keyword: Tok
    iterable: Node
    rparen: Tok
    body: Node
    colon: Optional[Tok] = None
    type: Optional[TypeRef] = None

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        return self.body.last_token()


@dataclass
class WhileStatement(Node):
    kind = NodeKind.WHILE

    keyword: Tok
    lparen: Tok
    condition: Node
    rparen: Tok
    body: Node

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        return self.body.last_token()


@dataclass
class DoWhileStatement(Node):
    kind = NodeKind.DO_WHILE

    do_keyword: Tok
    body: Node
    while_keyword: Tok
    lparen: Tok
    condition: Node
    rparen: Tok

    def first_token(self) -> Tok:
        return self.do_keyword

    def _last(self) -> Tok:
        return self.rparen


@dataclass
class Assignment(Node):
    kind = NodeKind.ASSIGNMENT

    target: Node
    operator: Tok
    value: Node

    def first_token(self) -> Tok:
        return self.target.first_token()

    def _last(self) -> Tok:
        return self.value.last_token()


# ----------------------------------------------------------------------
# Expressions
# ----------------------------------------------------------------------


@dataclass
class BinaryExpression(Node):
    kind = NodeKind.BINARY

    left: Node
    operator: List[Tok]
    right: Node

    def first_token(self) -> Tok:
        return self.left.first_token()

    def _last(self) -> Tok:
        return self.right.last_token()

    @property
    def operator_text(self) -> str:
        return "".join(tok.text for tok in self.operator)


@dataclass
class PrefixExpression(Node):
    kind = NodeKind.PREFIX

    operator: Tok
    operand: Node

    def first_token(self) -> Tok:
        return self.operator

    def _last(self) -> Tok:
        return self.operand.last_token()


@dataclass
class PostfixExpression(Node):
    kind = NodeKind.POSTFIX

    operand: Node
    operator: Tok

    def first_token(self) -> Tok:
        return self.operand.first_token()

    def _last(self) -> Tok:
        return self.operator


@dataclass
class LambdaExpression(Node):
    kind = NodeKind.LAMBDA

    lbrace: Tok
    statements: List[Node]
    rbrace: Tok
    parameters: Optional[TypeRef] = None
    arrow: Optional[Tok] = None

    def first_token(self) -> Tok:
        return self.lbrace

    def _last(self) -> Tok:
        return self.rbrace


@dataclass
class CallExpression(Node):
    kind = NodeKind.CALL

    callee: Node
    type_arguments: Optional[TypeRef] = None
    arguments: Optional[ValueArguments] = None
    trailing_lambda: Optional[LambdaExpression] = None

    def first_token(self) -> Tok:
        return self.callee.first_token()

    def _last(self) -> Tok:
        if self.trailing_lambda is not None:
            return self.trailing_lambda.last_token()
        if self.arguments is not None:
            return self.arguments.last_token()
        return self.type_arguments.last_token()


@dataclass
class IndexExpression(Node):
    kind = NodeKind.INDEX

    receiver: Node
    lbracket: Tok
    indices: List[Node]
    commas: List[Tok]
    rbracket: Tok

    def first_token(self) -> Tok:
        return self.receiver.first_token()

    def _last(self) -> Tok:
        return self.rbracket


@dataclass
class MemberAccess(Node):
    kind = NodeKind.MEMBER

    receiver: Optional[Node]
    operator: Tok
    name: Tok

    def first_token(self) -> Tok:
        return self.receiver.first_token() if self.receiver is not None else self.operator

    def _last(self) -> Tok:
        return self.name


@dataclass
class Parenthesized(Node):
    kind = NodeKind.PARENTHESIZED

    lparen: Tok
    expression: Node
    rparen: Tok

    def first_token(self) -> Tok:
        return self.lparen

    def _last(self) -> Tok:
        return self.rparen


@dataclass
class IfExpression(Node):
    kind = NodeKind.IF

    keyword: Tok
    lparen: Tok
    condition: Node
    rparen: Tok
    then_branch: Optional[Node]
    else_keyword: Optional[Tok] = None
    else_branch: Optional[Node] = None

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        if self.else_branch is not None:
            return self.else_branch.last_token()
        if self.else_keyword is not None:
            return self.else_keyword
        if self.then_branch is not None:
            return self.then_branch.last_token()
        return self.rparen


@dataclass
class WhenCondition(Node):
    """An `in`/`!in`/`is`/`!is` condition inside a `when` entry."""

    kind = NodeKind.WHEN_CONDITION

    operator: Tok
    operand: Node

    def first_token(self) -> Tok:
        return self.operator

    def _last(self) -> Tok:
        return self.operand.last_token()


@dataclass
class WhenEntry(Node):
    kind = NodeKind.WHEN_ENTRY

    conditions: List[Node]
    commas: List[Tok]
    arrow: Tok
    body: Node
    else_keyword: Optional[Tok] = None

    def first_token(self) -> Tok:
        if self.else_keyword is not None:
            return self.else_keyword
        return self.conditions[0].first_token()

    def _last(self) -> Tok:
        return self.body.last_token()


@dataclass
class WhenExpression(Node):
    kind = NodeKind.WHEN

    keyword: Tok
    lbrace: Tok
    entries: List[WhenEntry]
    rbrace: Tok
    lparen: Optional[Tok] = None
    subject: Optional[Node] = None
    rparen: Optional[Tok] = None

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        return self.rbrace


@dataclass
class CatchClause(Node):
    kind = NodeKind.CATCH

    keyword: Tok
    lparen: Tok
    name: Tok
    colon: Tok
    type: TypeRef
    rparen: Tok
    block: Block

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        return self.block.last_token()


@dataclass
class TryExpression(Node):
    kind = NodeKind.TRY

    keyword: Tok
    block: Block
    catches: List[CatchClause] = field(default_factory=list)
    finally_keyword: Optional[Tok] = None
    finally_block: Optional[Block] = None

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        if self.finally_block is not None:
            return self.finally_block.last_token()
        return self.catches[-1].last_token()


@dataclass
class JumpExpression(Node):
    """`return`, `throw`, `break` or `continue`, with optional label and value."""

    kind = NodeKind.JUMP

    keyword: Tok
    label: List[Tok] = field(default_factory=list)
    value: Optional[Node] = None

    def first_token(self) -> Tok:
        return self.keyword

    def _last(self) -> Tok:
        if self.value is not None:
            return self.value.last_token()
        if self.label:
            return self.label[-1]
        return self.keyword


@dataclass
class Literal(Node):
    kind = NodeKind.LITERAL

    token: Tok

    def first_token(self) -> Tok:
        return self.token

    def _last(self) -> Tok:
        return self.token


@dataclass
class NameExpression(Node):
    kind = NodeKind.NAME

    token: Tok

    def first_token(self) -> Tok:
        return self.token

    def _last(self) -> Tok:
        return self.token


def walk(node: Node) -> Iterator[Node]:
    """Yield `node` and every node below it, depth first."""
    yield node
    for item in fields(node):
        value = getattr(node, item.name)
        if isinstance(value, Node):
            yield from walk(value)
        elif isinstance(value, list):
            for child in value:
                if isinstance(child, Node):
                    yield from walk(child)


__all__ = [
    "walk", "NodeKind", "Node", "TypeRef", "ValueArgument", "ValueArguments", "Annotation",
    "Modifiers", "PackageHeader", "ImportDirective", "KotlinFile", "Parameter",
    "ParameterList", "Block", "FunctionDecl", "PropertyDecl", "SuperTypeEntry",
    "EnumEntry", "ClassBody", "ClassDecl", "InitBlock", "TypeAlias", "EmptyStatement",
    "ForStatement", "WhileStatement", "DoWhileStatement", "Assignment",
    "BinaryExpression", "PrefixExpression", "PostfixExpression", "LambdaExpression",
    "CallExpression", "IndexExpression", "MemberAccess", "Parenthesized",
    "IfExpression", "WhenCondition", "WhenEntry", "WhenExpression", "CatchClause",
    "TryExpression", "JumpExpression", "Literal", "NameExpression",
]
