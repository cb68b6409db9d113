"""Formatting options and the built-in style presets."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class FormattingOptions:
    """Configuration options for formatting."""

    # Line settings
    max_width: int = 100

    # Indentation settings
    block_indent: int = 2
    continuation_indent: int = 4

    # Import handling
    remove_unused_imports: bool = True

    # Dump the instruction stream to the `kfmt.trace` logger
    debug_layout_trace: bool = False

    @classmethod
    def default_style(cls) -> "FormattingOptions":
        return cls()

    @classmethod
    def dropbox_style(cls) -> "FormattingOptions":
        return cls(block_indent=4, continuation_indent=4)

    @classmethod
    def google_style(cls) -> "FormattingOptions":
        return cls(block_indent=4, continuation_indent=4)

    @classmethod
    def for_style(cls, name: str) -> "FormattingOptions":
        try:
            factory = STYLES[name]
        except KeyError:
            raise ValueError(
                f"Unknown style '{name}' (expected one of: {', '.join(sorted(STYLES))})"
            ) from None
        return factory()

    def with_overrides(self, **overrides: Any) -> "FormattingOptions":
        return replace(self, **overrides)

    @classmethod
    def field_types(cls) -> Dict[str, type]:
        return {item.name: type(item.default) for item in fields(cls)}


STYLES = {
    "default": FormattingOptions.default_style,
    "dropbox": FormattingOptions.dropbox_style,
    "google": FormattingOptions.google_style,
}

STYLE_NAMES: Tuple[str, ...] = tuple(sorted(STYLES))


__all__ = ["FormattingOptions", "STYLES", "STYLE_NAMES"]
