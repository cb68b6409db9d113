"""Document level state tracking for the kfmt language server."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from lsprotocol.types import Diagnostic, DiagnosticSeverity, Position, Range
from pygls.uris import to_fs_path

from kfmt.errors import FormatterError
from kfmt.formatting.core import check_whitespace_tombstones
from kfmt.lang.parser import parse


@dataclass
class DocumentState:
    """Tracks the text and syntax diagnostics of an open text document."""

    uri: str
    text: str
    version: int
    path: Path = field(init=False)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    _line_offsets: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.path = self._resolve_path()
        self.set_text(self.text)
        self.rebuild()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def update(self, text: str, version: int) -> List[Diagnostic]:
        self.set_text(text)
        self.version = version
        self.rebuild()
        return self.diagnostics

    def rebuild(self) -> None:
        try:
            check_whitespace_tombstones(self.text)
            parse(self.text)
        except FormatterError as exc:
            self.diagnostics = [self._diagnostic_from_error(exc)]
            return
        self.diagnostics = []

    def diagnostics_for_publish(self) -> List[Diagnostic]:
        return list(self.diagnostics)

    def offset_at(self, position: Position) -> int:
        """Character offset of an LSP position (columns count UTF-16 code units)."""
        line_index = min(max(position.line, 0), len(self._line_offsets) - 1)
        start = self._line_offsets[line_index]
        if line_index + 1 < len(self._line_offsets):
            line_end = self._line_offsets[line_index + 1]
        else:
            line_end = len(self.text)
        line_text = self.text[start:line_end].rstrip("\r\n")
        units = 0
        for column, char in enumerate(line_text):
            if units >= position.character:
                return start + column
            units += 2 if ord(char) > 0xFFFF else 1
        return start + len(line_text)

    def position_at(self, offset: int) -> Position:
        offset = min(max(offset, 0), len(self.text))
        line = bisect.bisect_right(self._line_offsets, offset) - 1
        prefix = self.text[self._line_offsets[line]:offset]
        return Position(line=line, character=len(prefix.encode("utf-16-le")) // 2)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _resolve_path(self) -> Path:
        try:
            return Path(to_fs_path(self.uri))
        except (TypeError, ValueError):
            return Path(self.uri)

    def set_text(self, text: str) -> None:
        self.text = text
        self._recompute_line_offsets()

    def _recompute_line_offsets(self) -> None:
        offsets: List[int] = [0]
        text = self.text
        idx = 0
        length = len(text)
        while idx < length:
            char = text[idx]
            if char == "\r":
                if idx + 1 < length and text[idx + 1] == "\n":
                    idx += 1
                offsets.append(idx + 1)
            elif char == "\n":
                offsets.append(idx + 1)
            idx += 1
        self._line_offsets = offsets

    def _diagnostic_from_error(self, error: FormatterError) -> Diagnostic:
        line = min(max((error.line or 1) - 1, 0), len(self._line_offsets) - 1)
        offset = self._line_offsets[line] + max((error.column or 1) - 1, 0)
        start = self.position_at(offset)
        end = self.position_at(offset + 1)
        return Diagnostic(
            range=Range(start=start, end=end),
            message=error.message,
            severity=DiagnosticSeverity.Error,
            source="kfmt",
            code=error.code,
        )


__all__ = ["DocumentState"]
