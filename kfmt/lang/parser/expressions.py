from __future__ import annotations

from typing import List, Optional, Tuple

from kfmt.errors import ParseError
from kfmt.lang.ast import (
    Assignment,
    BinaryExpression,
    CallExpression,
    CatchClause,
    DoWhileStatement,
    ForStatement,
    IfExpression,
    IndexExpression,
    JumpExpression,
    LambdaExpression,
    Literal,
    MemberAccess,
    NameExpression,
    Node,
    Parenthesized,
    PostfixExpression,
    PrefixExpression,
    TryExpression,
    TypeRef,
    ValueArgument,
    ValueArguments,
    WhenCondition,
    WhenEntry,
    WhenExpression,
    WhileStatement,
)
from kfmt.lang.keywords import ASSIGNMENT_OPERATORS, HARD_KEYWORDS, INFIX_STOP_WORDS
from kfmt.lang.lexer import Tok, TokenType

# Lowest precedence first. `None` marks the infix function call level.
BINARY_LEVELS: Tuple[Optional[Tuple[str, ...]], ...] = (
    ("||",),
    ("&&",),
    ("==", "!=", "===", "!=="),
    ("<", ">", "<=", ">="),
    ("in", "!in", "is", "!is"),
    ("?:",),
    None,
    ("..", "..<"),
    ("+", "-"),
    ("*", "/", "%"),
    ("as",),
)

# Operators that may start a continuation line.
LINE_LEADING_OPERATORS = frozenset({"||", "&&", "?:", "as"})

TYPE_OPERATORS = frozenset({"is", "!is", "as"})

PREFIX_OPERATORS = ("-", "+", "!", "++", "--")
POSTFIX_OPERATORS = ("++", "--", "!!")

# Tokens after which a `return` or `throw` has no value.
JUMP_VALUE_STOPS = frozenset({"}", ")", "]", ";", ",", "else", "->", ":"})


class ExpressionParsingMixin:
    """Parsing of statements and expressions.

    Binary operators are parsed by precedence climbing over
    `BINARY_LEVELS`; newlines end an expression except before the
    operators in `LINE_LEADING_OPERATORS` and member access.
    """

    # ====================================================================
    # Statements
    # ====================================================================

    def parse_statement(self) -> Node:
        if self.is_declaration_start():
            return self.parse_declaration()
        if self.check("for"):
            return self.parse_for()
        if self.check("while"):
            return self.parse_while()
        if self.check("do"):
            return self.parse_do_while()
        expression = self.parse_expression()
        if self.check(*ASSIGNMENT_OPERATORS) and not self.newline_before():
            operator = self.advance()
            return Assignment(target=expression, operator=operator, value=self.parse_expression())
        return expression

    def parse_for(self) -> ForStatement:
        keyword = self.expect("for")
        lparen = self.expect("(")
        if self.check("("):
            variable = self.parse_declaration_name()
        else:
            variable = [self.expect_identifier()]
        colon = type_ref = None
        if self.check(":"):
            colon = self.advance()
            type_ref = self.parse_type()
        in_keyword = self.expect("in")
        iterable = self.parse_expression()
        rparen = self.expect(")")
        return ForStatement(
            keyword=keyword,
            lparen=lparen,
            variable=variable,
            in_keyword=in_keyword,
            iterable=iterable,
            rparen=rparen,
            body=self.parse_control_body(),
            colon=colon,
            type=type_ref,
        )

    def parse_while(self) -> WhileStatement:
        keyword = self.expect("while")
        lparen = self.expect("(")
        condition = self.parse_expression()
        rparen = self.expect(")")
        return WhileStatement(
            keyword=keyword,
            lparen=lparen,
            condition=condition,
            rparen=rparen,
            body=self.parse_control_body(),
        )

    def parse_do_while(self) -> DoWhileStatement:
        do_keyword = self.expect("do")
        body = self.parse_control_body()
        while_keyword = self.expect("while")
        lparen = self.expect("(")
        condition = self.parse_expression()
        rparen = self.expect(")")
        return DoWhileStatement(
            do_keyword=do_keyword,
            body=body,
            while_keyword=while_keyword,
            lparen=lparen,
            condition=condition,
            rparen=rparen,
        )

    # ====================================================================
    # Binary Expressions
    # ====================================================================

    def parse_expression(self) -> Node:
        return self.parse_binary(0)

    def parse_binary(self, level: int) -> Node:
        if level == len(BINARY_LEVELS):
            return self.parse_prefix()
        left = self.parse_binary(level + 1)
        while True:
            operator = self._match_binary_operator(level)
            if operator is None:
                return left
            if operator[0].text in TYPE_OPERATORS:
                right: Node = self.parse_type(allow_function_arrow=False)
            else:
                right = self.parse_binary(level + 1)
            left = BinaryExpression(left=left, operator=operator, right=right)

    def _match_binary_operator(self, level: int) -> Optional[List[Tok]]:
        token = self.current()
        if token is None:
            return None
        operators = BINARY_LEVELS[level]
        if operators is None:
            if (
                self.check_identifier()
                and token.text not in INFIX_STOP_WORDS
                and not self.newline_before()
            ):
                return [self.advance()]
            return None
        if token.text not in operators:
            return None
        if self.newline_before() and token.text not in LINE_LEADING_OPERATORS:
            return None
        if token.text == "as" and self.check("?", offset=1) and self.adjacent(1):
            return [self.advance(), self.advance()]
        return [self.advance()]

    # ====================================================================
    # Unary and Postfix Expressions
    # ====================================================================

    def parse_prefix(self) -> Node:
        if self.check(*PREFIX_OPERATORS):
            operator = self.advance()
            return PrefixExpression(operator=operator, operand=self.parse_prefix())
        return self.parse_postfix(self.parse_primary())

    def parse_postfix(self, expression: Node) -> Node:
        while True:
            if self.check("(") and not self.newline_before():
                arguments = self.parse_value_arguments()
                expression = CallExpression(
                    callee=expression,
                    arguments=arguments,
                    trailing_lambda=self._parse_trailing_lambda(),
                )
            elif self.check("{") and not self.newline_before() and self._accepts_trailing_lambda(expression):
                expression = CallExpression(callee=expression, trailing_lambda=self.parse_lambda())
            elif self.check("[") and not self.newline_before():
                expression = self.parse_index(expression)
            elif self.check(".", "?."):
                operator = self.advance()
                name = self.expect_identifier(allow_keywords=HARD_KEYWORDS)
                expression = MemberAccess(receiver=expression, operator=operator, name=name)
            elif self.check("::") and not self.newline_before():
                operator = self.advance()
                name = self.expect_identifier(allow_keywords=("class",))
                expression = MemberAccess(receiver=expression, operator=operator, name=name)
            elif self.check(*POSTFIX_OPERATORS) and not self.newline_before():
                expression = PostfixExpression(operand=expression, operator=self.advance())
            elif self.check("<") and self.adjacent() and isinstance(expression, (NameExpression, MemberAccess)):
                call = self._try_parse_generic_call(expression)
                if call is None:
                    return expression
                expression = call
            else:
                return expression

    def _accepts_trailing_lambda(self, expression: Node) -> bool:
        if isinstance(expression, CallExpression):
            return expression.trailing_lambda is None
        if isinstance(expression, NameExpression):
            return expression.token.text not in ("this", "super")
        return isinstance(expression, MemberAccess) and expression.operator.text != "::"

    def _parse_trailing_lambda(self) -> Optional[LambdaExpression]:
        if self.check("{") and not self.newline_before():
            return self.parse_lambda()
        return None

    def _try_parse_generic_call(self, callee: Node) -> Optional[CallExpression]:
        """`name<T>(...)`: type arguments are only accepted before a call."""
        saved = self.pos
        try:
            type_arguments = self.parse_type_arguments()
        except ParseError:
            self.pos = saved
            return None
        if self.check("(") and not self.newline_before():
            arguments = self.parse_value_arguments()
            return CallExpression(
                callee=callee,
                type_arguments=type_arguments,
                arguments=arguments,
                trailing_lambda=self._parse_trailing_lambda(),
            )
        if self.check("{") and not self.newline_before():
            return CallExpression(
                callee=callee,
                type_arguments=type_arguments,
                trailing_lambda=self.parse_lambda(),
            )
        self.pos = saved
        return None

    def parse_index(self, receiver: Node) -> IndexExpression:
        lbracket = self.expect("[")
        indices: List[Node] = []
        commas: List[Tok] = []
        while not self.check("]"):
            indices.append(self.parse_expression())
            if not self.check(","):
                break
            commas.append(self.advance())
        rbracket = self.expect("]")
        return IndexExpression(
            receiver=receiver,
            lbracket=lbracket,
            indices=indices,
            commas=commas,
            rbracket=rbracket,
        )

    def parse_value_arguments(self) -> ValueArguments:
        lparen = self.expect("(")
        arguments: List[ValueArgument] = []
        commas: List[Tok] = []
        while not self.check(")"):
            arguments.append(self.parse_value_argument())
            if not self.check(","):
                break
            commas.append(self.advance())
        rparen = self.expect(")")
        return ValueArguments(lparen=lparen, arguments=arguments, commas=commas, rparen=rparen)

    def parse_value_argument(self) -> ValueArgument:
        name = eq = spread = None
        if self.check_identifier() and self.check("=", offset=1):
            name = self.advance()
            eq = self.advance()
        if self.check("*"):
            spread = self.advance()
        return ValueArgument(expression=self.parse_expression(), name=name, eq=eq, spread=spread)

    # ====================================================================
    # Primary Expressions
    # ====================================================================

    def parse_primary(self) -> Node:
        token = self.current()
        if token is None:
            raise self.error("Unexpected end of file", expected=["expression"])

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.CHAR):
            return Literal(token=self.advance())
        if token.text in ("true", "false", "null"):
            return Literal(token=self.advance())
        if token.text in ("this", "super"):
            expression: Node = NameExpression(token=self.advance())
            if self.check("@") and self.adjacent():
                operator = self.advance()
                expression = MemberAccess(
                    receiver=expression, operator=operator, name=self.expect_identifier()
                )
            return expression
        if token.text == "(":
            lparen = self.advance()
            inner = self.parse_expression()
            return Parenthesized(lparen=lparen, expression=inner, rparen=self.expect(")"))
        if token.text == "{":
            return self.parse_lambda()
        if token.text == "if":
            return self.parse_if()
        if token.text == "when":
            return self.parse_when()
        if token.text == "try":
            return self.parse_try()
        if token.text == "object":
            return self.parse_class(None)
        if token.text in ("return", "throw", "break", "continue"):
            return self.parse_jump()
        if token.text == "::":
            operator = self.advance()
            return MemberAccess(
                receiver=None, operator=operator, name=self.expect_identifier(allow_keywords=("class",))
            )
        if self.check_identifier():
            return NameExpression(token=self.advance())
        raise self.error("Unexpected token", expected=["expression"])

    def parse_lambda(self) -> LambdaExpression:
        lbrace = self.expect("{")
        parameters = None
        arrow = None
        arrow_offset = self._find_lambda_arrow()
        if arrow_offset is not None:
            tokens = [self.advance() for _ in range(arrow_offset)]
            if tokens:
                parameters = TypeRef(tokens=tokens)
            arrow = self.advance()
        statements = self.parse_statements_until("}")
        rbrace = self.expect("}")
        return LambdaExpression(
            lbrace=lbrace,
            statements=statements,
            rbrace=rbrace,
            parameters=parameters,
            arrow=arrow,
        )

    def _find_lambda_arrow(self) -> Optional[int]:
        """Offset of the `->` ending a lambda parameter list, if there is one."""
        offset = 0
        depth = 0
        while True:
            token = self.peek(offset)
            if token is None:
                return None
            if token.text == "->":
                if depth == 0:
                    return offset
            elif token.text in ("(", "<"):
                depth += 1
            elif token.text in (")", ">"):
                depth -= 1
                if depth < 0:
                    return None
            elif token.text not in (",", ":", "?", ".") and token.type is not TokenType.IDENTIFIER:
                return None
            elif token.type is TokenType.IDENTIFIER and token.text in HARD_KEYWORDS:
                return None
            offset += 1

    def parse_if(self) -> IfExpression:
        keyword = self.expect("if")
        lparen = self.expect("(")
        condition = self.parse_expression()
        rparen = self.expect(")")
        then_branch = None if self.check("else") else self.parse_control_body()
        expression = IfExpression(
            keyword=keyword,
            lparen=lparen,
            condition=condition,
            rparen=rparen,
            then_branch=then_branch,
        )
        if self.check("else"):
            expression.else_keyword = self.advance()
            if not self.check("}", ")", ";") and not self.at_end():
                expression.else_branch = self.parse_control_body()
        return expression

    def parse_when(self) -> WhenExpression:
        keyword = self.expect("when")
        lparen = subject = rparen = None
        if self.check("("):
            lparen = self.advance()
            subject = self.parse_statement() if self.check("val") else self.parse_expression()
            rparen = self.expect(")")
        lbrace = self.expect("{")
        entries: List[WhenEntry] = []
        while not self.check("}"):
            if self.at_end():
                raise self.error("Unexpected end of file", expected=["'}'"])
            entry = self.parse_when_entry()
            self.end_statement(entry)
            entries.append(entry)
        rbrace = self.expect("}")
        return WhenExpression(
            keyword=keyword,
            lbrace=lbrace,
            entries=entries,
            rbrace=rbrace,
            lparen=lparen,
            subject=subject,
            rparen=rparen,
        )

    def parse_when_entry(self) -> WhenEntry:
        conditions: List[Node] = []
        commas: List[Tok] = []
        else_keyword = None
        if self.check("else"):
            else_keyword = self.advance()
        else:
            while not self.check("->"):
                conditions.append(self.parse_when_condition())
                if not self.check(","):
                    break
                commas.append(self.advance())
        arrow = self.expect("->")
        return WhenEntry(
            conditions=conditions,
            commas=commas,
            arrow=arrow,
            body=self.parse_control_body(),
            else_keyword=else_keyword,
        )

    def parse_when_condition(self) -> Node:
        if self.check("is", "!is"):
            operator = self.advance()
            return WhenCondition(
                operator=operator, operand=self.parse_type(allow_function_arrow=False)
            )
        if self.check("in", "!in"):
            operator = self.advance()
            return WhenCondition(operator=operator, operand=self.parse_expression())
        return self.parse_expression()

    def parse_try(self) -> TryExpression:
        keyword = self.expect("try")
        expression = TryExpression(keyword=keyword, block=self.parse_block())
        while self.check("catch"):
            catch_keyword = self.advance()
            lparen = self.expect("(")
            name = self.expect_identifier()
            colon = self.expect(":")
            type_ref = self.parse_type()
            rparen = self.expect(")")
            expression.catches.append(CatchClause(
                keyword=catch_keyword,
                lparen=lparen,
                name=name,
                colon=colon,
                type=type_ref,
                rparen=rparen,
                block=self.parse_block(),
            ))
        if self.check("finally"):
            expression.finally_keyword = self.advance()
            expression.finally_block = self.parse_block()
        if not expression.catches and expression.finally_block is None:
            raise self.error("Unexpected token", expected=["'catch'", "'finally'"])
        return expression

    def parse_jump(self) -> JumpExpression:
        keyword = self.advance()
        jump = JumpExpression(keyword=keyword)
        if self.check("@") and self.adjacent():
            jump.label = [self.advance(), self.expect_identifier()]
        if keyword.text in ("return", "throw") and not self._at_jump_value_stop():
            jump.value = self.parse_expression()
        elif keyword.text == "throw":
            raise self.error("Unexpected token", expected=["expression"])
        return jump

    def _at_jump_value_stop(self) -> bool:
        token = self.current()
        return token is None or self.newline_before() or token.text in JUMP_VALUE_STOPS


__all__ = ["ExpressionParsingMixin", "BINARY_LEVELS"]
