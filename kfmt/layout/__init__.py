"""Layout core: ops, document model, break engine, writer and patch applier."""

from .doc import Doc, DocBuilder, Group, Text, render_flat
from .engine import BreakDecision, LayoutPlan, State, compute_breaks
from .ops import BreakKind, OpStream, render_ops
from .patch import FormatReplacement, apply_replacements, diff_replacements
from .writer import Writer, write

__all__ = [
    # Instruction stream
    "BreakKind",
    "OpStream",
    "render_ops",
    # Document model
    "Doc",
    "DocBuilder",
    "Group",
    "Text",
    "render_flat",
    # Break engine
    "State",
    "BreakDecision",
    "LayoutPlan",
    "compute_breaks",
    # Output
    "Writer",
    "write",
    "FormatReplacement",
    "apply_replacements",
    "diff_replacements",
]
