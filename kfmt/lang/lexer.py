"""Lexical analyzer for Kotlin source.

Unlike a compiler lexer this one keeps everything: whitespace and comments
are tokens too, so that the token list partitions the source text exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from kfmt.errors import ParseError, offset_to_line_column


class TokenKind(Enum):
    """Coarse classification used by the layout pipeline."""

    CODE = auto()
    WHITESPACE = auto()
    COMMENT = auto()


class TokenType(Enum):
    """Token types for Kotlin source."""

    IDENTIFIER = auto()
    NUMBER = auto()
    STRING = auto()
    CHAR = auto()
    SYMBOL = auto()

    WHITESPACE = auto()
    LINE_COMMENT = auto()
    BLOCK_COMMENT = auto()


_KIND_BY_TYPE = {
    TokenType.WHITESPACE: TokenKind.WHITESPACE,
    TokenType.LINE_COMMENT: TokenKind.COMMENT,
    TokenType.BLOCK_COMMENT: TokenKind.COMMENT,
}


@dataclass(frozen=True)
class Tok:
    """A lexical token with its exact position in the source."""

    index: int
    start: int
    end: int
    text: str
    type: TokenType

    @property
    def kind(self) -> TokenKind:
        return _KIND_BY_TYPE.get(self.type, TokenKind.CODE)

    @property
    def is_code(self) -> bool:
        return self.kind is TokenKind.CODE

    @property
    def is_comment(self) -> bool:
        return self.kind is TokenKind.COMMENT

    @property
    def is_whitespace(self) -> bool:
        return self.kind is TokenKind.WHITESPACE

    @property
    def range(self):
        return (self.start, self.end)

    def newline_count(self) -> int:
        if not self.is_whitespace:
            return 0
        return self.text.count("\n") + self.text.replace("\r\n", "\n").count("\r")

    def __repr__(self) -> str:
        return f"Tok({self.type.name}, {self.text!r}, {self.start}:{self.end})"


# Longest match first.
SYMBOLS = (
    "===", "!==", "..<", "?.", "?:", "!!", "::", "..", "->", "==", "!=",
    "<=", ">=", "&&", "||", "++", "--", "+=", "-=", "*=", "/=", "%=",
    "+", "-", "*", "/", "%", "<", ">", "=", "!", "?", ".", ",", ";", ":",
    "(", ")", "{", "}", "[", "]", "@", "&", "|", "#",
)

_WHITESPACE_CHARS = " \t\r\n\f"


def _is_identifier_start(char: Optional[str]) -> bool:
    return char is not None and (char.isalpha() or char == "_")


def _is_identifier_part(char: Optional[str]) -> bool:
    return char is not None and (char.isalnum() or char == "_")


class Lexer:
    """Tokenizer producing a lossless token list for Kotlin source."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.tokens: List[Tok] = []

    def error(self, message: str, offset: Optional[int] = None) -> ParseError:
        line, column = offset_to_line_column(self.source, self.pos if offset is None else offset)
        return ParseError(message, line=line, column=column)

    def peek(self, offset: int = 0) -> Optional[str]:
        pos = self.pos + offset
        if pos < len(self.source):
            return self.source[pos]
        return None

    def startswith(self, text: str) -> bool:
        return self.source.startswith(text, self.pos)

    def add_token(self, token_type: TokenType, start: int) -> None:
        self.tokens.append(Tok(
            index=len(self.tokens),
            start=start,
            end=self.pos,
            text=self.source[start:self.pos],
            type=token_type,
        ))

    def tokenize(self) -> List[Tok]:
        """Tokenize the entire source."""
        while self.pos < len(self.source):
            start = self.pos
            char = self.peek()

            if char in _WHITESPACE_CHARS:
                while self.peek() is not None and self.peek() in _WHITESPACE_CHARS:
                    self.pos += 1
                self.add_token(TokenType.WHITESPACE, start)
                continue

            if self.startswith("//"):
                while self.peek() is not None and self.peek() not in "\r\n":
                    self.pos += 1
                self.add_token(TokenType.LINE_COMMENT, start)
                continue

            if self.startswith("/*"):
                self.read_block_comment()
                self.add_token(TokenType.BLOCK_COMMENT, start)
                continue

            if self.startswith('"'):
                self.read_string()
                self.add_token(TokenType.STRING, start)
                continue

            if char == "'":
                self.read_char()
                self.add_token(TokenType.CHAR, start)
                continue

            if char.isdigit() or (char == "." and self.peek(1) is not None and self.peek(1).isdigit()
                                  and not self.tokens_end_with_dot()):
                self.read_number()
                self.add_token(TokenType.NUMBER, start)
                continue

            if _is_identifier_start(char):
                while _is_identifier_part(self.peek()):
                    self.pos += 1
                self.add_token(TokenType.IDENTIFIER, start)
                continue

            if char == "`":
                end = self.source.find("`", self.pos + 1)
                if end == -1 or "\n" in self.source[self.pos:end]:
                    raise self.error("Unterminated backtick identifier")
                self.pos = end + 1
                self.add_token(TokenType.IDENTIFIER, start)
                continue

            # `!in` and `!is` are single operators when not followed by an identifier character
            for word in ("!in", "!is"):
                if self.startswith(word) and not _is_identifier_part(self.peek(3)):
                    self.pos += 3
                    self.add_token(TokenType.SYMBOL, start)
                    break
            else:
                for symbol in SYMBOLS:
                    if self.startswith(symbol):
                        self.pos += len(symbol)
                        self.add_token(TokenType.SYMBOL, start)
                        break
                else:
                    raise self.error(f"Unexpected character {char!r}")

        return self.tokens

    def tokens_end_with_dot(self) -> bool:
        return bool(self.tokens) and self.tokens[-1].text in (".", "..")

    def read_block_comment(self) -> None:
        start = self.pos
        depth = 0
        while self.pos < len(self.source):
            if self.startswith("/*"):
                depth += 1
                self.pos += 2
            elif self.startswith("*/"):
                depth -= 1
                self.pos += 2
                if depth == 0:
                    return
            else:
                self.pos += 1
        raise self.error("Unterminated comment", offset=start)

    def read_string(self) -> None:
        start = self.pos
        if self.startswith('"""'):
            self.pos += 3
            while True:
                if self.pos >= len(self.source):
                    raise self.error("Unterminated raw string literal", offset=start)
                if self.startswith('"""'):
                    self.pos += 3
                    # Kotlin lets the closing delimiter absorb extra quotes
                    while self.peek() == '"':
                        self.pos += 1
                    return
                if self.startswith("${"):
                    self.read_template_expression()
                    continue
                self.pos += 1

        self.pos += 1
        while True:
            char = self.peek()
            if char is None or char == "\n":
                raise self.error("Unterminated string literal", offset=start)
            if char == '"':
                self.pos += 1
                return
            if char == "\\":
                self.pos += 2
                continue
            if self.startswith("${"):
                self.read_template_expression()
                continue
            self.pos += 1

    def read_template_expression(self) -> None:
        """Skip a `${...}` template entry, which may itself contain strings."""
        start = self.pos
        self.pos += 2
        depth = 1
        while depth:
            char = self.peek()
            if char is None:
                raise self.error("Unterminated string template", offset=start)
            if char == '"':
                self.read_string()
                continue
            if char == "'":
                self.read_char()
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
            self.pos += 1

    def read_char(self) -> None:
        start = self.pos
        self.pos += 1
        if self.peek() == "\\":
            self.pos += 2
            while self.peek() is not None and self.peek() not in "'\n":
                self.pos += 1
        else:
            self.pos += 1
        if self.peek() != "'":
            raise self.error("Unterminated character literal", offset=start)
        self.pos += 1

    def read_number(self) -> None:
        if self.startswith("0x") or self.startswith("0X") or self.startswith("0b") or self.startswith("0B"):
            self.pos += 2
            while self.peek() is not None and (self.peek().isalnum() or self.peek() == "_"):
                self.pos += 1
            return
        while self.peek() is not None and (self.peek().isdigit() or self.peek() == "_"):
            self.pos += 1
        # A single dot followed by a digit is a fraction; `1..2` is a range
        if self.peek() == "." and self.peek(1) is not None and self.peek(1).isdigit():
            self.pos += 1
            while self.peek() is not None and (self.peek().isdigit() or self.peek() == "_"):
                self.pos += 1
        if self.peek() in ("e", "E"):
            self.pos += 1
            if self.peek() in ("+", "-"):
                self.pos += 1
            while self.peek() is not None and self.peek().isdigit():
                self.pos += 1
        while self.peek() is not None and self.peek() in "fFlLuU":
            self.pos += 1


def tokenize(source: str) -> List[Tok]:
    """Convenience function to tokenize source code."""
    return Lexer(source).tokenize()


__all__ = ["Lexer", "Tok", "TokenKind", "TokenType", "SYMBOLS", "tokenize"]
