"""Kotlin formatting: node rules, import handling and the two-pass pipeline."""

from .core import (
    FormattedResult,
    Formatter,
    format_ranges,
    format_source,
    pretty_print,
)
from .imports import ImportRecord, canonicalize_imports
from .options import STYLE_NAMES, STYLES, FormattingOptions
from .redundant import drop_redundant_elements
from .visitor import NodeFormatter, format_tree

__all__ = [
    # Core formatter
    "Formatter",
    "FormattedResult",
    "FormattingOptions",
    "STYLES",
    "STYLE_NAMES",
    # Pipeline stages
    "format_source",
    "format_ranges",
    "pretty_print",
    "canonicalize_imports",
    "ImportRecord",
    "drop_redundant_elements",
    # Node rules
    "NodeFormatter",
    "format_tree",
]
