"""Open document tracking and formatting edits for the kfmt language server."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from lsprotocol.types import (
    Diagnostic,
    DocumentFormattingParams,
    DocumentRangeFormattingParams,
    Range,
    TextDocumentContentChangeEvent,
    TextDocumentItem,
    TextEdit,
)
from pygls.uris import to_fs_path

from kfmt.config import load_options
from kfmt.errors import FormatterError
from kfmt.formatting import FormattingOptions, format_ranges, format_source
from kfmt.layout.patch import diff_replacements

from .state import DocumentState


class DocumentStore:
    """Keeps the text of every open Kotlin document and formats it on request."""

    def __init__(self, root_uri: Optional[str] = None) -> None:
        self.logger = logging.getLogger("kfmt.lsp.workspace")
        self.root_uri = root_uri
        self.root_path = self._resolve_root(root_uri)
        self._open_documents: Dict[str, DocumentState] = {}
        self._options: Optional[FormattingOptions] = None

    def set_root(self, root_uri: Optional[str]) -> None:
        self.root_uri = root_uri
        self.root_path = self._resolve_root(root_uri)
        self._options = None

    @property
    def options(self) -> FormattingOptions:
        if self._options is None:
            try:
                self._options = load_options(self.root_path)
            except FormatterError as exc:
                self.logger.warning("Ignoring kfmt configuration: %s", exc)
                self._options = FormattingOptions()
        return self._options

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------
    def did_open(self, item: TextDocumentItem) -> List[Diagnostic]:
        document = DocumentState(uri=item.uri, text=item.text, version=item.version)
        self._open_documents[item.uri] = document
        return document.diagnostics_for_publish()

    def did_change(
        self,
        uri: str,
        version: int,
        changes: Sequence[TextDocumentContentChangeEvent],
    ) -> List[Diagnostic]:
        document = self._open_documents.get(uri)
        if document is None:
            document = DocumentState(uri=uri, text=self._read_document_from_fs(uri), version=version)
            self._open_documents[uri] = document
        next_text = self._apply_content_changes(document, changes)
        return document.update(next_text, version)

    def did_close(self, uri: str) -> None:
        self._open_documents.pop(uri, None)

    def document(self, uri: str) -> Optional[DocumentState]:
        return self._open_documents.get(uri)

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------
    def format_document(self, params: DocumentFormattingParams) -> List[TextEdit]:
        document = self.document(params.text_document.uri)
        if document is None:
            return []
        try:
            formatted = format_source(document.text, self.options)
        except FormatterError as exc:
            self.logger.info("Not formatting %s: %s", document.uri, exc)
            return []
        return self._edits(document, formatted)

    def format_range(self, params: DocumentRangeFormattingParams) -> List[TextEdit]:
        document = self.document(params.text_document.uri)
        if document is None:
            return []
        start = document.offset_at(params.range.start)
        end = document.offset_at(params.range.end)
        try:
            formatted = format_ranges(document.text, [(start, end)], self.options)
        except FormatterError as exc:
            self.logger.info("Not formatting %s: %s", document.uri, exc)
            return []
        return self._edits(document, formatted)

    def _edits(self, document: DocumentState, formatted: str) -> List[TextEdit]:
        edits = []
        for replacement in diff_replacements(document.text, formatted):
            edit_range = Range(
                start=document.position_at(replacement.start),
                end=document.position_at(replacement.end),
            )
            edits.append(TextEdit(range=edit_range, new_text=replacement.text))
        return edits

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _apply_content_changes(
        self,
        document: DocumentState,
        changes: Sequence[TextDocumentContentChangeEvent],
    ) -> str:
        text = document.text
        for change in changes:
            change_range = getattr(change, "range", None)
            if change_range is None:
                text = change.text
            else:
                start = document.offset_at(change_range.start)
                end = document.offset_at(change_range.end)
                text = text[:start] + change.text + text[end:]
            # Later changes are relative to the updated text
            document.set_text(text)
        return text

    def _read_document_from_fs(self, uri: str) -> str:
        try:
            path = Path(to_fs_path(uri))
        except (TypeError, ValueError):
            return ""
        try:
            return path.read_text(encoding="utf-8")
        except OSError:
            return ""

    def _resolve_root(self, root_uri: Optional[str]) -> Path:
        if root_uri:
            try:
                return Path(to_fs_path(root_uri))
            except (TypeError, ValueError):
                return Path(root_uri)
        return Path.cwd()


__all__ = ["DocumentStore"]
