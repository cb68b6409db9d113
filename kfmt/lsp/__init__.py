"""Language Server Protocol implementation for kfmt."""

from .server import KfmtLanguageServer, create_server, main

__all__ = [
    "KfmtLanguageServer",
    "create_server",
    "main",
]
