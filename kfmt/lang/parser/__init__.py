"""Recursive descent parser for Kotlin source."""

from .parse import ParsedSource, Parser, parse

__all__ = ["Parser", "ParsedSource", "parse"]
