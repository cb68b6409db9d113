"""Output writer: renders a laid out document and records replacements.

The writer never rewrites text between anchored literals wholesale. It
compares the whitespace it emits between two consecutive anchored
literals with the original text between the same two tokens and records
a `FormatReplacement` only where they differ.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from kfmt.errors import StructuralError
from kfmt.lang.token_index import TokenIndex

from .doc import Break, Doc, Group, Indent, Text
from .engine import LayoutPlan
from .patch import FormatReplacement


class Writer:
    def __init__(self, index: TokenIndex, plan: LayoutPlan):
        self.index = index
        self.plan = plan
        self._output: List[str] = []
        self._length = 0
        self._replacements: List[FormatReplacement] = []

        self._pending_space = False
        self._pending_newline = False
        self._pending_blank = 0
        self._pending_indent = 0

        # Original end offset of the last anchored literal and the output since
        self._last_anchor_end = 0
        self._since_anchor: List[str] = []

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def write(self, doc: Doc) -> str:
        for leaf in self._leaves(doc):
            if isinstance(leaf, Text):
                self._write_text(leaf)
            else:
                self._write_break(leaf)
        if self._length:
            self._emit("\n")
        self._record_gap(len(self.index.text))
        return self.text

    @property
    def text(self) -> str:
        return "".join(self._output)

    def _leaves(self, node: Doc) -> Iterator[Doc]:
        if isinstance(node, (Text, Break)):
            yield node
        elif isinstance(node, (Group, Indent)):
            for child in node.children:
                yield from self._leaves(child)

    def _emit(self, text: str) -> None:
        self._output.append(text)
        self._since_anchor.append(text)
        self._length += len(text)

    def _flush_whitespace(self) -> None:
        if self._pending_newline and self._length:
            self._emit("\n" * (1 + min(self._pending_blank, 1)) + " " * self._pending_indent)
        elif self._pending_space and self._length:
            self._emit(" ")
        self._pending_space = False
        self._pending_newline = False
        self._pending_blank = 0

    def _write_text(self, text: Text) -> None:
        self._flush_whitespace()
        if text.anchor is not None:
            start, end = text.anchor
            self._record_gap(start)
            if self.index.text[start:end] != text.text:
                self._replacements.append(FormatReplacement(start, end, text.text))
        self._emit(text.text)
        if text.anchor is not None:
            self._last_anchor_end = text.anchor[1]
            self._since_anchor = []

    def _write_break(self, brk: Break) -> None:
        decision = self.plan.breaks.get(brk)
        if decision is None:
            raise StructuralError("Break has no layout decision")
        if decision.newline:
            self._pending_newline = True
            self._pending_space = False
            self._pending_blank = max(self._pending_blank, brk.blank_lines)
            self._pending_indent = decision.indent
        elif brk.flat_text and not self._pending_newline:
            self._pending_space = True

    def _record_gap(self, original_start: int) -> None:
        emitted = "".join(self._since_anchor)
        original = self.index.text[self._last_anchor_end:original_start]
        if emitted != original:
            self._replacements.append(
                FormatReplacement(self._last_anchor_end, original_start, emitted)
            )

    # ------------------------------------------------------------------
    # Replacements
    # ------------------------------------------------------------------

    def replacements(
        self, token_ranges: Optional[Iterable[Tuple[int, int]]] = None
    ) -> List[FormatReplacement]:
        """Recorded replacements, optionally restricted to token ranges."""
        records = sorted(self._replacements, key=lambda r: (r.start, r.end))
        if token_ranges is None:
            return records
        spans = self._character_spans(token_ranges)
        return [
            record for record in records
            if any(record.start <= end and record.end >= start for start, end in spans)
        ]

    def _character_spans(self, token_ranges: Iterable[Tuple[int, int]]) -> Sequence[Tuple[int, int]]:
        spans = []
        for first, last in token_ranges:
            if first >= last:
                continue
            spans.append((self.index[first].start, self.index[last - 1].end))
        return spans


def write(index: TokenIndex, doc: Doc, plan: LayoutPlan) -> Tuple[str, List[FormatReplacement]]:
    """Render `doc` and return the text plus the replacements against `index.text`."""
    writer = Writer(index, plan)
    text = writer.write(doc)
    return text, writer.replacements()


__all__ = ["Writer", "write"]
