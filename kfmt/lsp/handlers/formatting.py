"""Formatting handlers."""

from __future__ import annotations

from lsprotocol.types import DocumentFormattingParams, DocumentRangeFormattingParams


def register(server) -> None:
    workspace = server.document_store

    @server.feature("textDocument/formatting")
    async def _format(ls, params: DocumentFormattingParams):
        return workspace.format_document(params)

    @server.feature("textDocument/rangeFormatting")
    async def _format_range(ls, params: DocumentRangeFormattingParams):
        return workspace.format_range(params)
