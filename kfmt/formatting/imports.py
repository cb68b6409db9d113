"""Import canonicalizer: sort and deduplicate the import list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from kfmt.errors import StructuralError
from kfmt.lang.ast import ImportDirective
from kfmt.lang.parser import parse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportRecord:
    """One import directive and where it came from."""

    qualified_name: str
    alias: str
    is_wildcard: bool
    original_text: str
    original_range: Tuple[int, int]

    @property
    def key(self) -> str:
        """Sort key; a missing alias is spelled `null`, so aliased imports
        usually sort before the plain import of the same name."""
        wildcard = "*" if self.is_wildcard else ""
        return f"{self.qualified_name} {self.alias or 'null'} {wildcard}"

    @classmethod
    def from_directive(cls, code: str, directive: ImportDirective) -> "ImportRecord":
        start = directive.first_token().start
        end = directive.last_token().end
        alias = directive.alias.text.strip("`") if directive.alias is not None else ""
        return cls(
            qualified_name=directive.qualified_name,
            alias=alias,
            is_wildcard=directive.is_wildcard,
            original_text=code[start:end],
            original_range=(start, end),
        )


def sorted_unique(records: List[ImportRecord]) -> List[ImportRecord]:
    """Sort records by key; the first record with a given key wins."""
    seen = set()
    result = []
    for record in sorted(records, key=lambda item: item.key):
        if record.key in seen:
            continue
        seen.add(record.key)
        result.append(record)
    return result


def canonicalize_imports(code: str) -> str:
    """Rewrite the import list of `code` sorted and without duplicates.

    Only the span from the first import to the end of the last one is
    touched. Comments inside that span cannot be attributed to a single
    import, so they make the rewrite fail with a `StructuralError`.
    """
    parsed = parse(code)
    directives = parsed.tree.imports
    if not directives:
        return code

    index = parsed.index
    first = directives[0].first_token()
    last = directives[-1].last_token()
    for tok in index.between(first, last):
        if tok.is_comment:
            line, column = index.line_column(tok.start)
            raise StructuralError(
                "Imports not contiguous (perhaps a comment separates them?): "
                + tok.text,
                line=line,
                column=column,
            )

    records = [ImportRecord.from_directive(code, directive) for directive in directives]
    canonical = sorted_unique(records)
    if len(canonical) != len(records):
        logger.debug("Dropped %d duplicate import(s)", len(records) - len(canonical))

    rewritten = "\n".join(record.original_text for record in canonical)
    if code[first.start:last.end] == rewritten:
        return code
    return code[:first.start] + rewritten + code[last.end:]


__all__ = ["ImportRecord", "canonicalize_imports", "sorted_unique"]
