"""Handler registration helpers."""

from __future__ import annotations

from . import diagnostics, formatting


def register_all(server) -> None:
    diagnostics.register(server)
    formatting.register(server)


__all__ = ["register_all"]
