"""Document model: a tree of groups, texts, breaks and indents built from ops."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import List, Optional, Sequence, Tuple, Union

from kfmt.errors import StructuralError

from . import ops as op_types
from .ops import BreakKind, Op

INFINITY = math.inf


class Doc:
    """Base class of document nodes. Nodes hash by identity."""

    @cached_property
    def width(self) -> float:
        """Width of the node rendered flat on one line."""
        raise NotImplementedError


@dataclass(eq=False)
class Text(Doc):
    text: str
    anchor: Optional[Tuple[int, int]] = None
    verbatim: bool = False
    comment: bool = False

    @cached_property
    def width(self) -> float:
        if "\n" not in self.text:
            return len(self.text)
        # Multi-line literals only need their first line to fit
        return INFINITY if self.comment else self.text.index("\n")


@dataclass(eq=False)
class Break(Doc):
    kind: BreakKind
    flat: str = " "
    flexible: bool = False
    blank_lines: int = 0

    @cached_property
    def width(self) -> float:
        if self.kind is BreakKind.FORCED_LINE:
            return INFINITY
        if self.kind is BreakKind.SPACE:
            return 1
        return len(self.flat)

    @property
    def flat_text(self) -> str:
        return " " if self.kind is BreakKind.SPACE else self.flat


@dataclass(eq=False)
class Group(Doc):
    children: List[Doc] = field(default_factory=list)
    breakable: bool = True
    fill: bool = False
    id: Optional[int] = None

    @cached_property
    def width(self) -> float:
        return sum(child.width for child in self.children)


@dataclass(eq=False)
class Indent(Doc):
    amount: int
    children: List[Doc] = field(default_factory=list)
    conditional: bool = False

    @cached_property
    def width(self) -> float:
        return sum(child.width for child in self.children)


Container = Union[Group, Indent]


class DocBuilder:
    """Turns an op sequence into a `Doc` tree wrapped in a root group."""

    def build(self, ops: Sequence[Op]) -> Group:
        root = Group(children=[])
        stack: List[Container] = [root]
        pending_anchor: Optional[Tuple[int, int]] = None

        for op in ops:
            parent = stack[-1]
            if isinstance(op, op_types.TokenAnchor):
                if pending_anchor is not None:
                    raise StructuralError(f"Anchor {pending_anchor} has no literal")
                pending_anchor = (op.start, op.end)
            elif isinstance(op, op_types.Literal):
                parent.children.append(Text(
                    op.text, anchor=pending_anchor, verbatim=op.verbatim, comment=op.comment
                ))
                pending_anchor = None
            elif isinstance(op, op_types.Break):
                parent.children.append(Break(
                    op.kind, flat=op.flat, flexible=op.flexible, blank_lines=op.blank_lines
                ))
            elif isinstance(op, op_types.OpenGroup):
                group = Group(children=[], breakable=op.breakable, fill=op.fill, id=op.id)
                parent.children.append(group)
                stack.append(group)
            elif isinstance(op, op_types.CloseGroup):
                if not isinstance(parent, Group) or parent is root or parent.id != op.id:
                    raise StructuralError(f"CloseGroup({op.id}) does not match the open group")
                stack.pop()
            elif isinstance(op, op_types.Indent):
                indent = Indent(op.amount, children=[], conditional=op.conditional)
                parent.children.append(indent)
                stack.append(indent)
            elif isinstance(op, op_types.Unindent):
                if not isinstance(parent, Indent):
                    raise StructuralError("Unindent without a matching Indent")
                stack.pop()
            elif isinstance(op, op_types.CommentSlot):
                continue
            else:
                raise StructuralError(f"Unknown op {op!r}")

        if len(stack) != 1:
            raise StructuralError(f"{len(stack) - 1} group(s) or indent(s) left open")
        if pending_anchor is not None:
            raise StructuralError(f"Anchor {pending_anchor} has no literal")
        return root


def render_flat(doc: Doc) -> str:
    """Render a document with every break in its flat form."""
    if isinstance(doc, Text):
        return doc.text
    if isinstance(doc, Break):
        return "\n" if doc.kind is BreakKind.FORCED_LINE else doc.flat_text
    return "".join(render_flat(child) for child in doc.children)


__all__ = ["Doc", "Text", "Break", "Group", "Indent", "DocBuilder", "render_flat", "INFINITY"]
