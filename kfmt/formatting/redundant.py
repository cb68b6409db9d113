"""Removal of redundant elements between the two formatting passes.

Three kinds of elements are dropped:

* statement semicolons that end a line, a block or the file
* imports whose simple name is never referenced
* braces around a plain name in a string template (`${name}` -> `$name`)

Every removal is expressed as a `FormatReplacement` against the text that
was passed in, so the rest of the text stays byte for byte identical.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Set

from kfmt.lang.ast import ImportDirective, walk
from kfmt.lang.keywords import HARD_KEYWORDS, OPERATOR_CONVENTION_NAMES, is_component_function
from kfmt.lang.lexer import TokenType
from kfmt.lang.parser import ParsedSource, parse
from kfmt.layout.patch import FormatReplacement, apply_replacements

from .options import FormattingOptions

logger = logging.getLogger(__name__)

_KDOC_LINK = re.compile(r"\[([A-Za-z_`][\w`]*)")
_KDOC_TAG = re.compile(r"@(?:see|throws|exception|sample)\s+([A-Za-z_`][\w`]*)")
_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_TEMPLATE_BRACES = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def drop_redundant_elements(code: str, options: FormattingOptions) -> str:
    parsed = parse(code)
    replacements: List[FormatReplacement] = []
    replacements.extend(redundant_semicolons(parsed))
    if options.remove_unused_imports:
        replacements.extend(unused_imports(parsed))
    replacements.extend(redundant_template_braces(parsed))
    return apply_replacements(code, _disjoint(replacements))


def _disjoint(replacements: Iterable[FormatReplacement]) -> List[FormatReplacement]:
    """Sort replacements, dropping any that overlap an earlier one."""
    result: List[FormatReplacement] = []
    for replacement in sorted(replacements, key=lambda r: (r.start, -r.end)):
        if result and replacement.start < result[-1].end:
            continue
        result.append(replacement)
    return result


# ----------------------------------------------------------------------
# Semicolons
# ----------------------------------------------------------------------


def redundant_semicolons(parsed: ParsedSource) -> List[FormatReplacement]:
    index = parsed.index
    result = []
    for node in walk(parsed.tree):
        if not node.semicolons:
            continue
        following = index.next_code(node.semicolons[-1])
        if following is not None:
            if following.text == "{":
                # Without the semicolon the block would bind as a trailing lambda
                continue
            ends_line = index.newlines_between(node.semicolons[-1], following) > 0
            if not ends_line and following.text != "}":
                continue
        for semicolon in node.semicolons:
            result.append(FormatReplacement(semicolon.start, semicolon.end, ""))
    if result:
        logger.debug("Dropping %d redundant semicolon(s)", len(result))
    return result


# ----------------------------------------------------------------------
# Unused imports
# ----------------------------------------------------------------------


def referenced_names(parsed: ParsedSource) -> Set[str]:
    """Names used outside the package header and import list."""
    tree = parsed.tree
    skipped: Set[int] = set()
    headers = list(tree.imports)
    if tree.package is not None:
        headers.append(tree.package)
    for header in headers:
        skipped.update(range(header.first_token().index, header.last_token().index + 1))

    names: Set[str] = set()
    for tok in parsed.index:
        if tok.index in skipped:
            continue
        if tok.type is TokenType.IDENTIFIER:
            names.add(tok.text.strip("`"))
        elif tok.type is TokenType.STRING and "$" in tok.text:
            names.update(_WORD.findall(tok.text))
        elif tok.is_comment:
            for pattern in (_KDOC_LINK, _KDOC_TAG):
                names.update(match.strip("`") for match in pattern.findall(tok.text))
    return names


def is_import_used(directive: ImportDirective, names: Set[str]) -> bool:
    if directive.is_wildcard:
        return True
    name = directive.simple_name
    if name in OPERATOR_CONVENTION_NAMES or is_component_function(name):
        return True
    return name in names


def unused_imports(parsed: ParsedSource) -> List[FormatReplacement]:
    names = referenced_names(parsed)
    result = []
    for directive in parsed.tree.imports:
        if is_import_used(directive, names):
            continue
        logger.debug("Removing unused import %s", directive.qualified_name)
        result.append(_import_line_span(parsed, directive))
    return result


def _import_line_span(parsed: ParsedSource, directive: ImportDirective) -> FormatReplacement:
    """The text to delete for an import; comments on its line are kept."""
    index = parsed.index
    text = index.text
    first = directive.first_token()
    last = directive.last_token()

    line_start = text.rfind("\n", 0, first.start) + 1
    start = line_start
    for tok in reversed(index.toks[:first.index]):
        if tok.newline_count():
            break
        if tok.is_comment:
            start = first.start
            break

    end = text.find("\n", last.end)
    if end == -1:
        end = len(text)
    elif start == line_start:
        end += 1
    for tok in index.toks[last.index + 1:]:
        if tok.newline_count() or (tok.is_code and tok.text != ";"):
            break
        if tok.is_comment:
            # The comment moves to the start of its own line
            end = tok.start
            break
    return FormatReplacement(start, end, "")


# ----------------------------------------------------------------------
# String templates
# ----------------------------------------------------------------------


def redundant_template_braces(parsed: ParsedSource) -> List[FormatReplacement]:
    result = []
    for tok in parsed.index:
        if tok.type is not TokenType.STRING or "${" not in tok.text:
            continue
        raw = tok.text.startswith('"""')
        for match in _TEMPLATE_BRACES.finditer(tok.text):
            name = match.group(1)
            if name in HARD_KEYWORDS and name != "this":
                continue
            following = tok.text[match.end():match.end() + 1]
            if following and (following.isalnum() or following == "_"):
                continue
            if not raw and _escaped(tok.text, match.start()):
                continue
            result.append(FormatReplacement(
                tok.start + match.start(), tok.start + match.end(), "$" + name
            ))
    return result


def _escaped(text: str, position: int) -> bool:
    backslashes = 0
    while position - backslashes - 1 >= 0 and text[position - backslashes - 1] == "\\":
        backslashes += 1
    return backslashes % 2 == 1


__all__ = [
    "drop_redundant_elements",
    "redundant_semicolons",
    "redundant_template_braces",
    "referenced_names",
    "unused_imports",
]
