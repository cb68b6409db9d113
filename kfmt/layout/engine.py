"""Break engine: decides which groups break and how each break renders.

A group renders flat when it fits on the current line together with the
material that follows it up to the next possible line break. Otherwise
it is broken: its LINE breaks become newlines (or, for fill groups and
flexible breaks, only the ones needed to keep the next item in width),
and its child groups are decided independently against the running
state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Tuple

from .doc import INFINITY, Break, Doc, Group, Indent, Text
from .ops import BreakKind

logger = logging.getLogger(__name__)


class State(NamedTuple):
    column: int
    indent: int


@dataclass(frozen=True)
class BreakDecision:
    newline: bool
    indent: int


@dataclass
class LayoutPlan:
    groups: Dict[Group, bool] = field(default_factory=dict)
    breaks: Dict[Break, BreakDecision] = field(default_factory=dict)

    def is_broken(self, group: Group) -> bool:
        return self.groups.get(group, False)


class _Engine:
    def __init__(self, doc: Group, max_width: int):
        self.max_width = max_width
        self.leaves: List[Doc] = []
        self.positions: Dict[Doc, int] = {}
        self.spans: Dict[Group, Tuple[int, int]] = {}
        self._collect(doc)
        self.rest = self._rest_widths()
        self.plan = LayoutPlan()

    def _collect(self, node: Doc) -> None:
        if isinstance(node, (Text, Break)):
            self.positions[node] = len(self.leaves)
            self.leaves.append(node)
            return
        start = len(self.leaves)
        for child in node.children:
            self._collect(child)
        if isinstance(node, Group):
            self.spans[node] = (start, len(self.leaves))

    def _rest_widths(self) -> List[float]:
        """rest[i]: width from leaf i up to the next LINE or forced break."""
        rest = [0.0] * (len(self.leaves) + 1)
        for position in range(len(self.leaves) - 1, -1, -1):
            leaf = self.leaves[position]
            if isinstance(leaf, Break):
                if leaf.kind is BreakKind.SPACE:
                    rest[position] = 1 + rest[position + 1]
                else:
                    rest[position] = 0
            elif leaf.comment:
                rest[position] = 0
            elif "\n" in leaf.text:
                rest[position] = leaf.width
            else:
                rest[position] = leaf.width + rest[position + 1]
        return rest

    def fits(self, group: Group, state: State) -> bool:
        if not group.breakable:
            return True
        _, end = self.spans[group]
        return state.column + group.width + self.rest[end] <= self.max_width

    def layout_group(self, group: Group, state: State, flat: bool) -> State:
        if not flat:
            flat = self.fits(group, state)
        self.plan.groups[group] = not flat
        return self.layout_children(group.children, state, group, flat)

    def layout_children(
        self, children: List[Doc], state: State, group: Group, flat: bool
    ) -> State:
        for child in children:
            if isinstance(child, Text):
                state = self.layout_text(child, state)
            elif isinstance(child, Break):
                state = self.layout_break(child, state, group, flat)
            elif isinstance(child, Group):
                state = self.layout_group(child, state, flat)
            elif isinstance(child, Indent):
                state = self.layout_indent(child, state, group, flat)
        return state

    def layout_indent(self, indent: Indent, state: State, group: Group, flat: bool) -> State:
        inner = State(state.column, state.indent + indent.amount)
        children = indent.children
        if indent.conditional and children and isinstance(children[0], Break):
            inner = self.layout_break(children[0], inner, group, flat)
            if not self.plan.breaks[children[0]].newline:
                inner = State(inner.column, state.indent)
            children = children[1:]
        inner = self.layout_children(children, inner, group, flat)
        return State(inner.column, state.indent)

    def layout_text(self, text: Text, state: State) -> State:
        if "\n" in text.text:
            return State(len(text.text) - text.text.rfind("\n") - 1, state.indent)
        return State(state.column + len(text.text), state.indent)

    def layout_break(self, brk: Break, state: State, group: Group, flat: bool) -> State:
        if brk.kind is BreakKind.FORCED_LINE:
            newline = True
        elif brk.kind is BreakKind.SPACE or flat:
            newline = False
        elif group.fill or brk.flexible:
            position = self.positions[brk] + 1
            upcoming = self.leaves[position] if position < len(self.leaves) else None
            if isinstance(upcoming, Break) and upcoming.kind is BreakKind.FORCED_LINE:
                # An own-line comment follows; keep it at the continuation indent
                newline = True
            else:
                newline = state.column + len(brk.flat) + self.rest[position] > self.max_width
        else:
            newline = True

        self.plan.breaks[brk] = BreakDecision(newline=newline, indent=state.indent)
        if newline:
            return State(state.indent, state.indent)
        return State(state.column + int(brk.width), state.indent)


def compute_breaks(doc: Group, max_width: int, state: State = State(0, 0)) -> LayoutPlan:
    """Compute a layout plan for `doc` under the column limit `max_width`."""
    engine = _Engine(doc, max_width)
    engine.layout_group(doc, state, flat=False)
    logger.debug(
        "Layout plan: %d of %d groups broken",
        sum(engine.plan.groups.values()),
        len(engine.plan.groups),
    )
    return engine.plan


__all__ = ["State", "BreakDecision", "LayoutPlan", "compute_breaks", "INFINITY"]
