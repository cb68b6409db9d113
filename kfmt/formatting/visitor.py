"""Node formatter: turns a syntax tree into an instruction stream.

Each `NodeKind` has exactly one rule. Rules append ops to an `OpStream`;
they emit every code token of their node once, in source order, and never
emit comments (the stream places those).
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Tuple

from kfmt.errors import StructuralError
from kfmt.lang.ast import (
    Annotation,
    Assignment,
    BinaryExpression,
    Block,
    CallExpression,
    CatchClause,
    ClassBody,
    ClassDecl,
    DoWhileStatement,
    EnumEntry,
    ForStatement,
    FunctionDecl,
    IfExpression,
    ImportDirective,
    IndexExpression,
    InitBlock,
    JumpExpression,
    KotlinFile,
    LambdaExpression,
    MemberAccess,
    Modifiers,
    Node,
    NodeKind,
    PackageHeader,
    Parameter,
    ParameterList,
    Parenthesized,
    PostfixExpression,
    PrefixExpression,
    PropertyDecl,
    SuperTypeEntry,
    TryExpression,
    TypeAlias,
    TypeRef,
    ValueArgument,
    ValueArguments,
    WhenCondition,
    WhenEntry,
    WhenExpression,
    WhileStatement,
)
from kfmt.lang.keywords import TYPE_PREFIX_WORDS
from kfmt.lang.lexer import Tok, TokenType
from kfmt.lang.parser.expressions import BINARY_LEVELS
from kfmt.lang.token_index import TokenIndex
from kfmt.layout.ops import Op, OpStream

from .options import FormattingOptions

# Operators printed without surrounding spaces
ATTACHED_OPERATORS = frozenset({"..", "..<"})

# Operators that keep their right operand on the same line
UNBREAKABLE_OPERATORS = frozenset({"as", "as?", "is", "!is"})

# Operators that move to the next line when the expression breaks
LEADING_OPERATORS = frozenset({"?:"})


def _operator_level(operator: str) -> int:
    for level, operators in enumerate(BINARY_LEVELS):
        if operators is not None and operator in operators:
            return level
    if operator == "as?":
        return len(BINARY_LEVELS) - 1
    return BINARY_LEVELS.index(None)


def _type_space(previous: Tok, tok: Tok, spaced_colons: bool) -> bool:
    """Whether a space separates two adjacent tokens of a type."""
    if previous.text == "," or previous.text == ":":
        return True
    if tok.text == "->" or previous.text == "->":
        return True
    if tok.text == ":":
        return spaced_colons
    if previous.type is TokenType.IDENTIFIER and tok.type is TokenType.IDENTIFIER:
        return True
    return previous.text in TYPE_PREFIX_WORDS and tok.text == "("


class NodeFormatter:
    """Appends the ops for a syntax tree to an `OpStream`."""

    def __init__(self, index: TokenIndex, options: Optional[FormattingOptions] = None):
        self.index = index
        self.options = options or FormattingOptions()
        self.out = OpStream(index)
        self.block_indent = self.options.block_indent
        self.continuation_indent = self.options.continuation_indent
        self._rules: Dict[NodeKind, Callable[[Node], None]] = {
            NodeKind.FILE: self._format_file,
            NodeKind.PACKAGE: self._format_package,
            NodeKind.IMPORT: self._format_import,
            NodeKind.MODIFIERS: self._format_modifiers,
            NodeKind.ANNOTATION: self._format_annotation,
            NodeKind.TYPE: self._format_type,
            NodeKind.FUNCTION: self._format_function,
            NodeKind.PARAMETER_LIST: self._format_parameter_list,
            NodeKind.PARAMETER: self._format_parameter,
            NodeKind.PROPERTY: self._format_property,
            NodeKind.CLASS: self._format_class,
            NodeKind.SUPERTYPE: self._format_supertype,
            NodeKind.CLASS_BODY: self._format_class_body,
            NodeKind.ENUM_ENTRY: self._format_enum_entry,
            NodeKind.INIT: self._format_init,
            NodeKind.TYPEALIAS: self._format_typealias,
            NodeKind.BLOCK: self._format_block,
            NodeKind.EMPTY: self._format_empty,
            NodeKind.FOR: self._format_for,
            NodeKind.WHILE: self._format_while,
            NodeKind.DO_WHILE: self._format_do_while,
            NodeKind.ASSIGNMENT: self._format_assignment,
            NodeKind.BINARY: self._format_binary,
            NodeKind.PREFIX: self._format_prefix,
            NodeKind.POSTFIX: self._format_postfix_chain,
            NodeKind.CALL: self._format_postfix_chain,
            NodeKind.VALUE_ARGUMENTS: self._format_value_arguments,
            NodeKind.VALUE_ARGUMENT: self._format_value_argument,
            NodeKind.INDEX: self._format_postfix_chain,
            NodeKind.MEMBER: self._format_postfix_chain,
            NodeKind.PARENTHESIZED: self._format_parenthesized,
            NodeKind.LAMBDA: self._format_lambda,
            NodeKind.IF: self._format_if,
            NodeKind.WHEN: self._format_when,
            NodeKind.WHEN_ENTRY: self._format_when_entry,
            NodeKind.WHEN_CONDITION: self._format_when_condition,
            NodeKind.TRY: self._format_try,
            NodeKind.CATCH: self._format_catch,
            NodeKind.JUMP: self._format_jump,
            NodeKind.LITERAL: self._format_leaf,
            NodeKind.NAME: self._format_leaf,
        }

    @property
    def rules(self) -> Dict[NodeKind, Callable[[Node], None]]:
        return dict(self._rules)

    def format(self, tree: KotlinFile) -> Tuple[Op, ...]:
        self.visit(tree)
        return self.out.build()

    def visit(self, node: Node) -> None:
        rule = self._rules.get(node.kind)
        if rule is None:
            raise StructuralError(f"No formatting rule for {node.kind.name}")
        rule(node)
        self.out.tokens(node.semicolons)

    # ====================================================================
    # Shared helpers
    # ====================================================================

    def _spaced_tokens(self, toks: Sequence[Tok], spaced_colons: bool = False) -> None:
        previous = None
        for tok in toks:
            if previous is not None and _type_space(previous, tok, spaced_colons):
                self.out.space()
            self.out.token(tok)
            previous = tok

    def _comma_list(
        self,
        open_tok: Tok,
        items: Sequence[Node],
        commas: Sequence[Tok],
        close_tok: Tok,
        *,
        closing_break: bool,
    ) -> None:
        """`(a, b, c)` laid out on one line or one item per line."""
        self.out.token(open_tok)
        if not items and not commas:
            self._empty_pair_inner(open_tok, close_tok)
            return
        with self.out.group():
            with self.out.indented(self.continuation_indent):
                self.out.line("")
                for position, item in enumerate(items):
                    self.visit(item)
                    if position < len(commas):
                        self.out.token(commas[position])
                    if position + 1 < len(items):
                        self.out.line(" ")
                self.out.comment_slot(close_tok)
            if closing_break:
                self.out.line("")
        self.out.token(close_tok)

    def _empty_pair_inner(self, open_tok: Tok, close_tok: Tok) -> None:
        if self.index.comments_between(open_tok, close_tok):
            with self.out.group():
                with self.out.indented(self.block_indent):
                    self.out.line(" ")
                    self.out.comment_slot(close_tok)
                self.out.line(" ")
        self.out.token(close_tok)

    def _statements(self, statements: Sequence[Node], close_tok: Tok) -> None:
        """Statements of a braced body, one per line, inside a block indent."""
        with self.out.indented(self.block_indent):
            for position, statement in enumerate(statements):
                self.out.forced_line(preserve_blank=position > 0)
                self.visit(statement)
            self.out.comment_slot(close_tok)
        self.out.forced_line()

    def _control_body(self, body: Node) -> None:
        if isinstance(body, Block):
            self.out.space()
            self.visit(body)
            return
        with self.out.group():
            with self.out.indented(self.block_indent, conditional=True):
                self.out.line(" ")
                self.visit(body)

    def _initializer(self, value: Node) -> None:
        """The right-hand side of `=`: same line while its first line fits."""
        with self.out.group():
            with self.out.indented(self.continuation_indent, conditional=True):
                self.out.line(" ", flexible=True)
                self.visit(value)

    def _modifiers(self, modifiers: Optional[Modifiers]) -> None:
        if modifiers is not None:
            self.visit(modifiers)

    # ====================================================================
    # File structure
    # ====================================================================

    def _format_file(self, node: KotlinFile) -> None:
        sections = 0
        for annotation in node.file_annotations:
            self.visit(annotation)
            self.out.forced_line()
        if node.file_annotations:
            sections += 1

        if node.package is not None:
            if sections:
                self.out.forced_line(blank_lines=1)
            with self.out.group(breakable=False):
                self.visit(node.package)
            sections += 1

        if node.imports:
            if sections:
                self.out.forced_line(blank_lines=1)
            for position, directive in enumerate(node.imports):
                if position:
                    self.out.forced_line()
                with self.out.group(breakable=False):
                    self.visit(directive)
            sections += 1

        for position, declaration in enumerate(node.declarations):
            if position == 0 and sections:
                self.out.forced_line(blank_lines=1)
            elif position:
                self.out.forced_line(preserve_blank=True)
            self.visit(declaration)
        self.out.forced_line()

    def _format_package(self, node: PackageHeader) -> None:
        self.out.token(node.keyword)
        self.out.space()
        self.out.tokens(node.name)

    def _format_import(self, node: ImportDirective) -> None:
        self.out.token(node.keyword)
        self.out.space()
        self.out.tokens(node.name)
        if node.as_keyword is not None:
            self.out.space()
            self.out.token(node.as_keyword)
            self.out.space()
            self.out.token(node.alias)

    def _format_modifiers(self, node: Modifiers) -> None:
        for item in node.items:
            if not isinstance(item, Annotation):
                self.out.token(item)
                self.out.space()
                continue
            self.visit(item)
            last = item.last_token()
            following = self.index.next_code(last)
            # Annotations on their own line stay there
            if following is not None and self.index.newlines_between(last, following):
                self.out.forced_line()
            else:
                self.out.space()

    def _format_annotation(self, node: Annotation) -> None:
        self.out.token(node.at)
        self.out.tokens(node.name)
        if node.arguments is not None:
            self.visit(node.arguments)

    def _format_type(self, node: TypeRef) -> None:
        self._spaced_tokens(node.tokens, node.spaced_colons)

    # ====================================================================
    # Declarations
    # ====================================================================

    def _format_function(self, node: FunctionDecl) -> None:
        self._modifiers(node.modifiers)
        self.out.token(node.keyword)
        self.out.space()
        if node.type_parameters is not None:
            self.visit(node.type_parameters)
            self.out.space()
        self._spaced_tokens(node.name)
        self.visit(node.parameters)
        if node.colon is not None:
            self.out.token(node.colon)
            self.out.space()
            self.visit(node.return_type)
        if node.body is not None:
            self.out.space()
            self.visit(node.body)
        elif node.eq is not None:
            self.out.space()
            self.out.token(node.eq)
            self._initializer(node.expression_body)

    def _format_parameter_list(self, node: ParameterList) -> None:
        self._comma_list(node.lparen, node.parameters, node.commas, node.rparen, closing_break=True)

    def _format_parameter(self, node: Parameter) -> None:
        self._modifiers(node.modifiers)
        if node.val_var is not None:
            self.out.token(node.val_var)
            self.out.space()
        self.out.token(node.name)
        if node.colon is not None:
            self.out.token(node.colon)
            self.out.space()
            self.visit(node.type)
        if node.eq is not None:
            self.out.space()
            self.out.token(node.eq)
            self.out.space()
            self.visit(node.default)

    def _format_property(self, node: PropertyDecl) -> None:
        self._modifiers(node.modifiers)
        self.out.token(node.keyword)
        self.out.space()
        if node.type_parameters is not None:
            self.visit(node.type_parameters)
            self.out.space()
        self._spaced_tokens(node.name)
        if node.colon is not None:
            self.out.token(node.colon)
            self.out.space()
            self.visit(node.type)
        if node.eq is not None:
            self.out.space()
            self.out.token(node.eq)
            self._initializer(node.initializer)
        elif node.by_keyword is not None:
            self.out.space()
            self.out.token(node.by_keyword)
            self.out.space()
            self.visit(node.delegate)

    def _format_class(self, node: ClassDecl) -> None:
        self._modifiers(node.modifiers)
        self.out.token(node.keyword)
        if node.name is not None:
            self.out.space()
            self.out.token(node.name)
        if node.type_parameters is not None:
            self.visit(node.type_parameters)
        if node.constructor_modifiers is not None or node.constructor_keyword is not None:
            self.out.space()
            self._modifiers(node.constructor_modifiers)
            if node.constructor_keyword is not None:
                self.out.token(node.constructor_keyword)
        if node.primary_constructor is not None:
            self.visit(node.primary_constructor)
        if node.colon is not None:
            self.out.space()
            self.out.token(node.colon)
            for position, supertype in enumerate(node.supertypes):
                self.out.space()
                self.visit(supertype)
                if position < len(node.supertype_commas):
                    self.out.token(node.supertype_commas[position])
        if node.body is not None:
            self.out.space()
            self.visit(node.body)

    def _format_supertype(self, node: SuperTypeEntry) -> None:
        self.visit(node.type)
        if node.arguments is not None:
            self.visit(node.arguments)

    def _format_class_body(self, node: ClassBody) -> None:
        self.out.token(node.lbrace)
        if not node.members and not node.enum_entries and node.enum_semicolon is None:
            self._empty_pair_inner(node.lbrace, node.rbrace)
            return
        with self.out.indented(self.block_indent):
            for position, entry in enumerate(node.enum_entries):
                self.out.forced_line(preserve_blank=position > 0)
                self.visit(entry)
                if position < len(node.enum_commas):
                    self.out.token(node.enum_commas[position])
            if node.enum_semicolon is not None:
                if not node.enum_entries:
                    self.out.forced_line()
                self.out.token(node.enum_semicolon)
            has_entries = bool(node.enum_entries) or node.enum_semicolon is not None
            for position, member in enumerate(node.members):
                self.out.forced_line(preserve_blank=position > 0 or has_entries)
                self.visit(member)
            self.out.comment_slot(node.rbrace)
        self.out.forced_line()
        self.out.token(node.rbrace)

    def _format_enum_entry(self, node: EnumEntry) -> None:
        self._modifiers(node.modifiers)
        self.out.token(node.name)
        if node.arguments is not None:
            self.visit(node.arguments)
        if node.body is not None:
            self.out.space()
            self.visit(node.body)

    def _format_init(self, node: InitBlock) -> None:
        self.out.token(node.keyword)
        self.out.space()
        self.visit(node.block)

    def _format_typealias(self, node: TypeAlias) -> None:
        self._modifiers(node.modifiers)
        self.out.token(node.keyword)
        self.out.space()
        self.out.token(node.name)
        if node.type_parameters is not None:
            self.visit(node.type_parameters)
        self.out.space()
        self.out.token(node.eq)
        self.out.space()
        self.visit(node.type)

    # ====================================================================
    # Statements
    # ====================================================================

    def _format_block(self, node: Block) -> None:
        self.out.token(node.lbrace)
        if not node.statements:
            self._empty_pair_inner(node.lbrace, node.rbrace)
            return
        self._statements(node.statements, node.rbrace)
        self.out.token(node.rbrace)

    def _format_empty(self, node: Node) -> None:
        """Nothing to emit: the semicolons are the statement."""

    def _format_for(self, node: ForStatement) -> None:
        self.out.token(node.keyword)
        self.out.space()
        self.out.token(node.lparen)
        self._spaced_tokens(node.variable)
        if node.colon is not None:
            self.out.token(node.colon)
            self.out.space()
            self.visit(node.type)
        self.out.space()
        self.out.token(node.in_keyword)
        self.out.space()
        self.visit(node.iterable)
        self.out.token(node.rparen)
        self._control_body(node.body)

    def _format_while(self, node: WhileStatement) -> None:
        self.out.token(node.keyword)
        self.out.space()
        self.out.token(node.lparen)
        self.visit(node.condition)
        self.out.token(node.rparen)
        self._control_body(node.body)

    def _format_do_while(self, node: DoWhileStatement) -> None:
        self.out.token(node.do_keyword)
        self._control_body(node.body)
        self.out.space()
        self.out.token(node.while_keyword)
        self.out.space()
        self.out.token(node.lparen)
        self.visit(node.condition)
        self.out.token(node.rparen)

    def _format_assignment(self, node: Assignment) -> None:
        self.visit(node.target)
        self.out.space()
        self.out.token(node.operator)
        self._initializer(node.value)

    # ====================================================================
    # Expressions
    # ====================================================================

    def _format_binary(self, node: BinaryExpression) -> None:
        level = _operator_level(node.operator_text)
        operands: List[Node] = [node.right]
        operators: List[List[Tok]] = [node.operator]
        left = node.left
        while isinstance(left, BinaryExpression) and _operator_level(left.operator_text) == level:
            operands.append(left.right)
            operators.append(left.operator)
            left = left.left
        operands.reverse()
        operators.reverse()

        with self.out.group():
            self.visit(left)
            with self.out.indented(self.continuation_indent):
                for operator, operand in zip(operators, operands):
                    text = "".join(tok.text for tok in operator)
                    if text in ATTACHED_OPERATORS:
                        self.out.tokens(operator)
                    elif text in UNBREAKABLE_OPERATORS:
                        self.out.space()
                        self.out.tokens(operator)
                        self.out.space()
                    elif text in LEADING_OPERATORS:
                        self.out.line(" ")
                        self.out.tokens(operator)
                        self.out.space()
                    else:
                        self.out.space()
                        self.out.tokens(operator)
                        self.out.line(" ")
                    self.visit(operand)

    def _format_prefix(self, node: PrefixExpression) -> None:
        self.out.token(node.operator)
        first = node.operand.first_token()
        # `- -x` must not become the `--` operator
        if node.operator.text[-1] in "+-!" and first.text[:1] == node.operator.text[-1]:
            self.out.space()
        self.visit(node.operand)

    def _postfix_steps(self, node: Node) -> Tuple[Node, List[Node]]:
        steps: List[Node] = []
        current = node
        while True:
            if isinstance(current, CallExpression):
                steps.append(current)
                current = current.callee
            elif isinstance(current, MemberAccess) and current.receiver is not None:
                steps.append(current)
                current = current.receiver
            elif isinstance(current, IndexExpression):
                steps.append(current)
                current = current.receiver
            elif isinstance(current, PostfixExpression):
                steps.append(current)
                current = current.operand
            else:
                break
        steps.reverse()
        return current, steps

    def _format_postfix_chain(self, node: Node) -> None:
        root, steps = self._postfix_steps(node)
        method_calls = [
            position for position, step in enumerate(steps)
            if isinstance(step, MemberAccess)
            and step.operator.text in (".", "?.")
            and position + 1 < len(steps)
            and isinstance(steps[position + 1], CallExpression)
        ]
        if isinstance(root, MemberAccess):
            self._format_member_root(root)
        else:
            self.visit(root)
        if len(method_calls) < 2:
            for step in steps:
                self._format_step(step)
            return

        breaks = set(method_calls)
        with self.out.group():
            with self.out.indented(self.continuation_indent):
                for position, step in enumerate(steps):
                    if position in breaks:
                        self.out.line("")
                    self._format_step(step)

    def _format_member_root(self, node: MemberAccess) -> None:
        # `::name` with no receiver
        self.out.token(node.operator)
        self.out.token(node.name)

    def _format_step(self, step: Node) -> None:
        if isinstance(step, MemberAccess):
            self.out.token(step.operator)
            self.out.token(step.name)
        elif isinstance(step, CallExpression):
            if step.type_arguments is not None:
                self.visit(step.type_arguments)
            if step.arguments is not None:
                self.visit(step.arguments)
            if step.trailing_lambda is not None:
                self.out.space()
                self.visit(step.trailing_lambda)
        elif isinstance(step, IndexExpression):
            self.out.token(step.lbracket)
            for position, index in enumerate(step.indices):
                self.visit(index)
                if position < len(step.commas):
                    self.out.token(step.commas[position])
                    self.out.space()
            self.out.token(step.rbracket)
        elif isinstance(step, PostfixExpression):
            self.out.token(step.operator)

    def _format_value_arguments(self, node: ValueArguments) -> None:
        self._comma_list(node.lparen, node.arguments, node.commas, node.rparen, closing_break=False)

    def _format_value_argument(self, node: ValueArgument) -> None:
        if node.name is not None:
            self.out.token(node.name)
            self.out.space()
            self.out.token(node.eq)
            self.out.space()
        if node.spread is not None:
            self.out.token(node.spread)
        self.visit(node.expression)

    def _format_parenthesized(self, node: Parenthesized) -> None:
        self.out.token(node.lparen)
        self.visit(node.expression)
        self.out.token(node.rparen)

    def _format_lambda(self, node: LambdaExpression) -> None:
        self.out.token(node.lbrace)
        if node.arrow is not None:
            self.out.space()
            if node.parameters is not None:
                self.visit(node.parameters)
                self.out.space()
            self.out.token(node.arrow)
        if not node.statements:
            if node.arrow is not None:
                self.out.space()
            self._empty_pair_inner(node.lbrace, node.rbrace)
            return
        with self.out.group():
            with self.out.indented(self.block_indent):
                for position, statement in enumerate(node.statements):
                    if position:
                        self.out.forced_line(preserve_blank=True)
                    else:
                        self.out.line(" ")
                    self.visit(statement)
                self.out.comment_slot(node.rbrace)
            self.out.line(" ")
        self.out.token(node.rbrace)

    def _format_if(self, node: IfExpression) -> None:
        with self.out.group():
            self.out.token(node.keyword)
            self.out.space()
            self.out.token(node.lparen)
            self.visit(node.condition)
            self.out.token(node.rparen)
            if node.then_branch is not None:
                self._control_body(node.then_branch)
            if node.else_keyword is None:
                return
            if isinstance(node.then_branch, Block):
                self.out.space()
            else:
                self.out.line(" ")
            self.out.token(node.else_keyword)
            if node.else_branch is None:
                return
            if isinstance(node.else_branch, IfExpression):
                self.out.space()
                self.visit(node.else_branch)
            else:
                self._control_body(node.else_branch)

    def _format_when(self, node: WhenExpression) -> None:
        self.out.token(node.keyword)
        if node.lparen is not None:
            self.out.space()
            self.out.token(node.lparen)
            self.visit(node.subject)
            self.out.token(node.rparen)
        self.out.space()
        self.out.token(node.lbrace)
        if not node.entries:
            self._empty_pair_inner(node.lbrace, node.rbrace)
            return
        self._statements(node.entries, node.rbrace)
        self.out.token(node.rbrace)

    def _format_when_entry(self, node: WhenEntry) -> None:
        if node.else_keyword is not None:
            self.out.token(node.else_keyword)
        for position, condition in enumerate(node.conditions):
            self.visit(condition)
            if position < len(node.commas):
                self.out.token(node.commas[position])
                if position + 1 < len(node.conditions):
                    self.out.space()
        self.out.space()
        self.out.token(node.arrow)
        self._control_body(node.body)

    def _format_when_condition(self, node: WhenCondition) -> None:
        self.out.token(node.operator)
        self.out.space()
        self.visit(node.operand)

    def _format_try(self, node: TryExpression) -> None:
        self.out.token(node.keyword)
        self.out.space()
        self.visit(node.block)
        for clause in node.catches:
            self.out.space()
            self.visit(clause)
        if node.finally_keyword is not None:
            self.out.space()
            self.out.token(node.finally_keyword)
            self.out.space()
            self.visit(node.finally_block)

    def _format_catch(self, node: CatchClause) -> None:
        self.out.token(node.keyword)
        self.out.space()
        self.out.token(node.lparen)
        self.out.token(node.name)
        self.out.token(node.colon)
        self.out.space()
        self.visit(node.type)
        self.out.token(node.rparen)
        self.out.space()
        self.visit(node.block)

    def _format_jump(self, node: JumpExpression) -> None:
        self.out.token(node.keyword)
        self.out.tokens(node.label)
        if node.value is not None:
            self.out.space()
            self.visit(node.value)

    def _format_leaf(self, node: Node) -> None:
        self.out.token(node.token)


def format_tree(tree: KotlinFile, index: TokenIndex, options: Optional[FormattingOptions] = None) -> Tuple[Op, ...]:
    """Build the instruction stream for a parsed file."""
    return NodeFormatter(index, options).format(tree)


__all__ = ["NodeFormatter", "format_tree"]
