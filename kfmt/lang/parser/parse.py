"""Recursive descent parser for the Kotlin subset formatted by kfmt.

The parser works on the code tokens of a `TokenIndex`; whitespace and
comments are consulted only to find statement-terminating newlines.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from kfmt.errors import ParseError
from kfmt.lang.ast import (
    Block,
    EmptyStatement,
    ImportDirective,
    KotlinFile,
    Node,
    PackageHeader,
)
from kfmt.lang.keywords import HARD_KEYWORDS
from kfmt.lang.lexer import Tok, TokenType
from kfmt.lang.token_index import TokenIndex

from .declarations import DeclarationParsingMixin
from .expressions import ExpressionParsingMixin


@dataclass
class ParsedSource:
    """A syntax tree together with the token index it was built from."""

    tree: KotlinFile
    index: TokenIndex


class Parser(DeclarationParsingMixin, ExpressionParsingMixin):
    """Recursive descent parser producing a `KotlinFile`."""

    def __init__(self, source: str, *, index: Optional[TokenIndex] = None):
        self.source = source
        self.index = index if index is not None else TokenIndex(source)
        self.tokens: List[Tok] = self.index.code_toks
        self.pos = 0
        self._newline_before = self._compute_newlines()

    def _compute_newlines(self) -> List[bool]:
        flags: List[bool] = []
        pending = False
        for tok in self.index.toks:
            if tok.is_code:
                flags.append(pending)
                pending = False
            elif tok.newline_count():
                pending = True
        return flags

    # ====================================================================
    # Token Management
    # ====================================================================

    def peek(self, offset: int = 0) -> Optional[Tok]:
        pos = self.pos + offset
        if 0 <= pos < len(self.tokens):
            return self.tokens[pos]
        return None

    def current(self) -> Optional[Tok]:
        return self.peek(0)

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def advance(self) -> Tok:
        token = self.current()
        if token is None:
            raise self.error("Unexpected end of file")
        self.pos += 1
        return token

    def check(self, *texts: str, offset: int = 0) -> bool:
        token = self.peek(offset)
        return token is not None and token.text in texts

    def accept(self, *texts: str) -> Optional[Tok]:
        if self.check(*texts):
            return self.advance()
        return None

    def expect(self, *texts: str) -> Tok:
        if self.check(*texts):
            return self.advance()
        raise self.error("Unexpected token", expected=[f"'{text}'" for text in texts])

    def check_identifier(self, offset: int = 0) -> bool:
        token = self.peek(offset)
        return (
            token is not None
            and token.type is TokenType.IDENTIFIER
            and token.text not in HARD_KEYWORDS
        )

    def expect_identifier(self, *, allow_keywords: Sequence[str] = ()) -> Tok:
        token = self.current()
        if token is not None and token.type is TokenType.IDENTIFIER and (
            token.text not in HARD_KEYWORDS or token.text in allow_keywords
        ):
            return self.advance()
        raise self.error("Unexpected token", expected=["identifier"])

    def newline_before(self, offset: int = 0) -> bool:
        pos = self.pos + offset
        if 0 <= pos < len(self._newline_before):
            return self._newline_before[pos]
        return True

    def adjacent(self, offset: int = 0) -> bool:
        """True when the token at `offset` directly touches the one before it."""
        token = self.peek(offset)
        previous = self.peek(offset - 1)
        return token is not None and previous is not None and previous.end == token.start

    def error(
        self,
        message: str,
        token: Optional[Tok] = None,
        *,
        expected: Optional[List[str]] = None,
    ) -> ParseError:
        token = token if token is not None else self.current()
        if token is None:
            offset = len(self.source)
            found = "end of file"
        else:
            offset = token.start
            found = repr(token.text)
        line, column = self.index.line_column(offset)
        return ParseError(message, line=line, column=column, expected=expected, found=found)

    # ====================================================================
    # File Structure
    # ====================================================================

    def parse(self) -> KotlinFile:
        file_annotations = []
        while self.check("@") and self.check("file", offset=1) and self.check(":", offset=2):
            file_annotations.append(self.parse_annotation())

        package = None
        if self.check("package"):
            keyword = self.advance()
            package = PackageHeader(keyword=keyword, name=self.parse_dotted_name())
            self.end_statement(package)

        imports: List[ImportDirective] = []
        while self.check("import"):
            directive = self.parse_import()
            self.end_statement(directive)
            imports.append(directive)

        declarations: List[Node] = []
        while not self.at_end():
            if self.check(";"):
                self.attach_stray_semicolons(declarations)
                continue
            statement = self.parse_statement()
            self.end_statement(statement)
            declarations.append(statement)

        return KotlinFile(
            package=package,
            imports=imports,
            declarations=declarations,
            file_annotations=file_annotations,
        )

    def parse_dotted_name(self, *, allow_wildcard: bool = False) -> List[Tok]:
        name = [self.expect_identifier()]
        while self.check(".") and not self.newline_before():
            name.append(self.advance())
            if allow_wildcard and self.check("*"):
                name.append(self.advance())
                break
            name.append(self.expect_identifier(allow_keywords=HARD_KEYWORDS))
        return name

    def parse_import(self) -> ImportDirective:
        keyword = self.expect("import")
        name = self.parse_dotted_name(allow_wildcard=True)
        directive = ImportDirective(keyword=keyword, name=name)
        if self.check("as") and not directive.is_wildcard and not self.newline_before():
            directive.as_keyword = self.advance()
            directive.alias = self.expect_identifier()
        return directive

    def end_statement(self, node: Node) -> Node:
        """Consume the terminator of a statement: semicolons, a newline, `}` or EOF."""
        while self.check(";"):
            node.semicolons.append(self.advance())
        if node.semicolons or self.at_end() or self.check("}") or self.newline_before():
            return node
        raise self.error("Expected newline or ';' after statement")

    def attach_stray_semicolons(self, statements: List[Node]) -> None:
        semicolons = []
        while self.check(";"):
            semicolons.append(self.advance())
        if statements:
            statements[-1].semicolons.extend(semicolons)
        else:
            statements.append(EmptyStatement(semicolons=semicolons))

    # ====================================================================
    # Blocks and Statements
    # ====================================================================

    def parse_block(self) -> Block:
        lbrace = self.expect("{")
        statements = self.parse_statements_until("}")
        rbrace = self.expect("}")
        return Block(lbrace=lbrace, statements=statements, rbrace=rbrace)

    def parse_statements_until(self, closer: str) -> List[Node]:
        statements: List[Node] = []
        while not self.check(closer):
            if self.at_end():
                raise self.error("Unexpected end of file", expected=[f"'{closer}'"])
            if self.check(";"):
                self.attach_stray_semicolons(statements)
                continue
            statement = self.parse_statement()
            self.end_statement(statement)
            statements.append(statement)
        return statements

    def parse_control_body(self) -> Node:
        """Body of `if`/`for`/`while`/`when` entries: a block or a single statement."""
        if self.check("{"):
            return self.parse_block()
        return self.parse_statement()


def parse(source: str) -> ParsedSource:
    """Parse Kotlin source into a tree and its token index."""
    parser = Parser(source)
    tree = parser.parse()
    return ParsedSource(tree=tree, index=parser.index)


__all__ = ["Parser", "ParsedSource", "parse"]
