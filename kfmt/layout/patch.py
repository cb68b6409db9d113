"""Patch applier: span replacements against an original text."""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import List, Sequence

from kfmt.errors import StructuralError


@dataclass(frozen=True)
class FormatReplacement:
    start: int  # inclusive offset into the original text
    end: int  # exclusive
    text: str

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise StructuralError(f"Invalid replacement range {self.start}:{self.end}")


def apply_replacements(text: str, replacements: Sequence[FormatReplacement]) -> str:
    """Apply sorted, non-overlapping replacements to `text`.

    With no replacements the original string object is returned, so callers
    can detect "nothing changed" by identity.
    """
    if not replacements:
        return text
    pieces: List[str] = []
    position = 0
    for replacement in replacements:
        if replacement.start < position:
            raise StructuralError(
                f"Replacement {replacement.start}:{replacement.end} overlaps or is out of order"
            )
        if replacement.end > len(text):
            raise StructuralError(
                f"Replacement {replacement.start}:{replacement.end} is past the end of the text"
            )
        pieces.append(text[position:replacement.start])
        pieces.append(replacement.text)
        position = replacement.end
    pieces.append(text[position:])
    return "".join(pieces)


def diff_replacements(old: str, new: str) -> List[FormatReplacement]:
    """Line-granular replacements turning `old` into `new`."""
    if old == new:
        return []
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    offsets = [0]
    for text_line in old_lines:
        offsets.append(offsets[-1] + len(text_line))

    result: List[FormatReplacement] = []
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        result.append(FormatReplacement(offsets[i1], offsets[i2], "".join(new_lines[j1:j2])))
    return result


__all__ = ["FormatReplacement", "apply_replacements", "diff_replacements"]
