"""
Formatting pipeline for Kotlin source.

The pipeline runs in a fixed order:

1. reject input containing the whitespace tombstone (U+0003)
2. normalize line separators to "\\n"
3. sort and deduplicate imports
4. pretty print (first pass)
5. drop redundant semicolons, unused imports and template braces
6. pretty print again, since the removals change the layout
7. restore the input's line separator

Pretty printing never rebuilds the file from scratch: the layout engine
decides where lines break, and the writer turns that into span
replacements against the original text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from kfmt.errors import FormatterError, UnsupportedInputError, offset_to_line_column
from kfmt.lang.parser import parse
from kfmt.lang.token_index import TokenIndex
from kfmt.layout.doc import DocBuilder
from kfmt.layout.engine import compute_breaks
from kfmt.layout.ops import render_ops
from kfmt.layout.patch import apply_replacements
from kfmt.layout.writer import Writer

from .imports import canonicalize_imports
from .options import FormattingOptions
from .redundant import drop_redundant_elements
from .visitor import format_tree

logger = logging.getLogger(__name__)
trace_logger = logging.getLogger("kfmt.trace")

WHITESPACE_TOMBSTONE = "\u0003"

_LINE_SEPARATOR = re.compile(r"\r\n|\r|\n")


# ======================================================================
# Line separators and the tombstone
# ======================================================================


def check_whitespace_tombstones(code: str) -> None:
    position = code.find(WHITESPACE_TOMBSTONE)
    if position == -1:
        return
    line, column = offset_to_line_column(code, position)
    raise UnsupportedInputError(
        "kfmt does not support code which contains a \\u0003 character; escape it",
        line=line,
        column=column,
    )


def guess_line_separator(code: str) -> str:
    """The first line separator used in `code`, or "\\n" if there is none."""
    match = _LINE_SEPARATOR.search(code)
    return match.group(0) if match else "\n"


def convert_line_separators(code: str, separator: str = "\n") -> str:
    if separator == "\n" and "\r" not in code:
        return code
    return _LINE_SEPARATOR.sub(separator, code)


def _normalized_offset(code: str, offset: int) -> int:
    # Every "\r\n" before the offset shrinks to one character
    return offset - code.count("\r\n", 0, offset)


# ======================================================================
# Pretty printing
# ======================================================================


def pretty_print(
    code: str,
    options: FormattingOptions,
    token_ranges: Optional[Iterable[Tuple[int, int]]] = None,
) -> str:
    """One layout pass over `code`, which must use "\\n" line separators."""
    parsed = parse(code)
    ops = format_tree(parsed.tree, parsed.index, options)
    if options.debug_layout_trace:
        trace_logger.info("Instruction stream:\n%s", render_ops(ops))

    doc = DocBuilder().build(ops)
    plan = compute_breaks(doc, options.max_width)
    writer = Writer(parsed.index, plan)
    writer.write(doc)
    replacements = writer.replacements(token_ranges)
    logger.debug("Layout pass produced %d replacement(s)", len(replacements))
    return apply_replacements(code, replacements)


def format_source(code: str, options: Optional[FormattingOptions] = None) -> str:
    """Format a complete Kotlin file.

    Raises:
        UnsupportedInputError: the input contains U+0003
        ParseError: the input is not valid Kotlin
        StructuralError: the imports are interleaved with comments, or a
            layout invariant failed
    """
    options = options or FormattingOptions()
    check_whitespace_tombstones(code)
    separator = guess_line_separator(code)
    normalized = convert_line_separators(code)

    result = canonicalize_imports(normalized)
    result = pretty_print(result, options)
    result = drop_redundant_elements(result, options)
    result = pretty_print(result, options)

    if separator != "\n":
        result = convert_line_separators(result, separator)
    return result


def format_ranges(
    code: str,
    ranges: Iterable[Tuple[int, int]],
    options: Optional[FormattingOptions] = None,
) -> str:
    """Format only the tokens touched by half-open character `ranges`.

    Import canonicalization and redundant element removal are whole-file
    transforms and do not run here.
    """
    options = options or FormattingOptions()
    check_whitespace_tombstones(code)
    separator = guess_line_separator(code)
    normalized = convert_line_separators(code)
    ranges = [
        (_normalized_offset(code, start), _normalized_offset(code, end))
        for start, end in ranges
    ]

    token_ranges = TokenIndex(normalized).character_ranges_to_token_ranges(ranges)
    if not token_ranges:
        return code

    result = pretty_print(normalized, options, token_ranges)
    if result is normalized:
        return code
    if separator != "\n":
        result = convert_line_separators(result, separator)
    return result


# ======================================================================
# Document facade
# ======================================================================


@dataclass
class FormattedResult:
    """Result of formatting one document."""

    formatted_text: str
    is_changed: bool
    errors: List[str]
    warnings: List[str]

    def success(self) -> bool:
        """Check if formatting was successful."""
        return len(self.errors) == 0


class Formatter:
    """
    Formats whole Kotlin documents and reports problems instead of raising.

    Only `FormatterError`s are turned into result errors; anything else is
    a bug and propagates.
    """

    def __init__(self, options: Optional[FormattingOptions] = None):
        self.options = options or FormattingOptions()

    def format_document(self, source_text: str, file_path: str = "<stdin>") -> FormattedResult:
        """
        Format a complete document.

        Args:
            source_text: The source code to format
            file_path: Path for error reporting

        Returns:
            FormattedResult with formatted text and status
        """
        try:
            formatted_text = format_source(source_text, self.options)
        except FormatterError as exc:
            exc.with_path(file_path)
            logger.debug("Formatting %s failed: %s", file_path, exc)
            return FormattedResult(
                formatted_text=source_text,
                is_changed=False,
                errors=[exc.format()],
                warnings=[],
            )

        return FormattedResult(
            formatted_text=formatted_text,
            is_changed=formatted_text != source_text,
            errors=[],
            warnings=self._width_warnings(formatted_text, file_path),
        )

    def _width_warnings(self, text: str, file_path: str) -> List[str]:
        warnings = []
        for number, line in enumerate(text.splitlines(), start=1):
            if len(line) > self.options.max_width:
                warnings.append(
                    f"{file_path}:{number}: line is {len(line)} characters long "
                    f"(max {self.options.max_width})"
                )
        return warnings


__all__ = [
    "WHITESPACE_TOMBSTONE",
    "FormattedResult",
    "Formatter",
    "check_whitespace_tombstones",
    "convert_line_separators",
    "format_ranges",
    "format_source",
    "guess_line_separator",
    "pretty_print",
]
