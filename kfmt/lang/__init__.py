"""Kotlin language front end: lexer, token index, syntax tree and parser."""

from .keywords import HARD_KEYWORDS, MODIFIER_WORDS
from .lexer import Lexer, Tok, TokenKind, TokenType, tokenize
from .token_index import TokenIndex
from .parser import ParsedSource, Parser, parse

__all__ = [
    # Lexical layer
    "Lexer",
    "Tok",
    "TokenKind",
    "TokenType",
    "tokenize",
    "TokenIndex",
    # Keyword sets
    "HARD_KEYWORDS",
    "MODIFIER_WORDS",
    # Parsing
    "Parser",
    "ParsedSource",
    "parse",
]
