"""Unified error model for kfmt."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass
class ErrorLocation:
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def describe(self) -> str:
        if self.path and self.line is not None and self.column is not None:
            return f"{self.path}:{self.line}:{self.column}"
        if self.line is not None and self.column is not None:
            return f"{self.line}:{self.column}"
        if self.path and self.line is not None:
            return f"{self.path}:{self.line}"
        if self.path:
            return self.path
        return "unknown location"


class FormatterError(Exception):
    """Base class for all errors surfaced to callers of the formatter."""

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = ErrorLocation(path=path, line=line, column=column)
        self.path = path
        self.line = line
        self.column = column
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def with_path(self, path: Optional[str]) -> "FormatterError":
        """Attach a file path after the fact (the core never sees paths)."""
        self.path = path
        self.location.path = path
        return self

    def format(self) -> str:
        components = [self.message]
        meta_parts = []
        location_desc = self.location.describe()
        if location_desc != "unknown location":
            meta_parts.append(location_desc)
        if self.code:
            meta_parts.append(self.code)
        if meta_parts:
            components[-1] = f"{components[-1]} ({'; '.join(meta_parts)})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)

    def __str__(self) -> str:
        return self.format()


class ParseError(FormatterError):
    """Raised when the input cannot be parsed into a syntax tree."""

    code = "KFMT_SYNTAX"

    def __init__(
        self,
        message: str,
        *,
        expected: Optional[List[str]] = None,
        found: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expected = list(expected or [])
        self.found = found

    def format(self) -> str:
        base = super().format()
        details = []
        if self.expected:
            if len(self.expected) == 1:
                details.append(f"Expected: {self.expected[0]}")
            else:
                details.append(f"Expected one of: {', '.join(self.expected)}")
        if self.found:
            details.append(f"Found: {self.found}")
        if details:
            return base + "\n  " + "\n  ".join(details)
        return base


class StructuralError(FormatterError):
    """Raised when a structural precondition of a transform is violated."""

    code = "KFMT_STRUCTURE"


class UnsupportedInputError(FormatterError):
    """Raised when the input contains the reserved whitespace tombstone."""

    code = "KFMT_UNSUPPORTED"


class ConfigError(FormatterError):
    """Raised when a configuration file holds unknown or invalid settings."""

    code = "KFMT_CONFIG"


def offset_to_line_column(text: str, offset: int) -> Tuple[int, int]:
    """Convert a character offset into a 1-based (line, column) pair."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


__all__ = [
    "FormatterError",
    "ParseError",
    "StructuralError",
    "UnsupportedInputError",
    "ConfigError",
    "ErrorLocation",
    "offset_to_line_column",
]
