from __future__ import annotations

from lsprotocol.types import (
    DocumentFormattingParams,
    DocumentRangeFormattingParams,
    FormattingOptions as EditorFormattingOptions,
    Position,
    Range,
    TextDocumentContentChangeEvent_Type1,
    TextDocumentContentChangeEvent_Type2,
    TextDocumentIdentifier,
    TextDocumentItem,
    TextEdit,
)

from kfmt.lsp import create_server
from kfmt.lsp.state import DocumentState
from kfmt.lsp.workspace import DocumentStore

EDITOR_OPTIONS = EditorFormattingOptions(tab_size=2, insert_spaces=True)


def open_document(store: DocumentStore, uri: str, text: str, *, version: int = 1):
    item = TextDocumentItem(uri=uri, language_id="kotlin", version=version, text=text)
    return store.did_open(item)


def _range(start_line: int, start_char: int, end_line: int, end_char: int) -> Range:
    return Range(
        start=Position(line=start_line, character=start_char),
        end=Position(line=end_line, character=end_char),
    )


def test_valid_document_has_no_diagnostics(store: DocumentStore, document_uri: str) -> None:
    assert open_document(store, document_uri, "fun main() {}\n") == []


def test_syntax_error_diagnostic(store: DocumentStore, document_uri: str) -> None:
    diagnostics = open_document(store, document_uri, "fun main( {\n")
    assert len(diagnostics) == 1
    diagnostic = diagnostics[0]
    assert diagnostic.code == "KFMT_SYNTAX"
    assert diagnostic.source == "kfmt"
    assert diagnostic.range.start == Position(line=0, character=10)


def test_tombstone_diagnostic(store: DocumentStore, document_uri: str) -> None:
    diagnostics = open_document(store, document_uri, "val x = 1\u0003\n")
    assert [diagnostic.code for diagnostic in diagnostics] == ["KFMT_UNSUPPORTED"]
    assert diagnostics[0].range.start == Position(line=0, character=9)


def test_full_change_replaces_text(store: DocumentStore, document_uri: str) -> None:
    open_document(store, document_uri, "fun main( {\n")
    change = TextDocumentContentChangeEvent_Type2(text="fun main() {}\n")
    assert store.did_change(document_uri, 2, [change]) == []
    document = store.document(document_uri)
    assert document.text == "fun main() {}\n"
    assert document.version == 2


def test_ranged_changes_apply_in_order(store: DocumentStore, document_uri: str) -> None:
    open_document(store, document_uri, "fun a() {}\nfun c() {}\n")
    changes = [
        TextDocumentContentChangeEvent_Type1(range=_range(0, 4, 0, 5), text="b"),
        TextDocumentContentChangeEvent_Type1(range=_range(1, 0, 1, 0), text="fun x() {}\n"),
    ]
    store.did_change(document_uri, 2, changes)
    assert store.document(document_uri).text == "fun b() {}\nfun x() {}\nfun c() {}\n"


def test_format_document_edits(store: DocumentStore, document_uri: str) -> None:
    open_document(store, document_uri, "fun a() {}\nfun b(){ }\n")
    params = DocumentFormattingParams(
        text_document=TextDocumentIdentifier(uri=document_uri),
        options=EDITOR_OPTIONS,
    )
    assert store.format_document(params) == [
        TextEdit(range=_range(1, 0, 2, 0), new_text="fun b() {}\n"),
    ]


def test_format_range_edits(store: DocumentStore, document_uri: str) -> None:
    open_document(store, document_uri, "fun a(){ }\nfun b(){ }\n")
    params = DocumentRangeFormattingParams(
        text_document=TextDocumentIdentifier(uri=document_uri),
        range=_range(1, 0, 1, 10),
        options=EDITOR_OPTIONS,
    )
    assert store.format_range(params) == [
        TextEdit(range=_range(1, 0, 2, 0), new_text="fun b() {}\n"),
    ]


def test_broken_document_is_not_formatted(store: DocumentStore, document_uri: str) -> None:
    open_document(store, document_uri, "fun main( {\n")
    params = DocumentFormattingParams(
        text_document=TextDocumentIdentifier(uri=document_uri),
        options=EDITOR_OPTIONS,
    )
    assert store.format_document(params) == []


def test_unknown_document_is_not_formatted(store: DocumentStore, document_uri: str) -> None:
    params = DocumentFormattingParams(
        text_document=TextDocumentIdentifier(uri=document_uri),
        options=EDITOR_OPTIONS,
    )
    assert store.format_document(params) == []


def test_closed_document_is_forgotten(store: DocumentStore, document_uri: str) -> None:
    open_document(store, document_uri, "fun main() {}\n")
    store.did_close(document_uri)
    assert store.document(document_uri) is None


def test_settings_come_from_workspace_root(tmp_path, store: DocumentStore) -> None:
    (tmp_path / "kfmt.toml").write_text('style = "google"\n')
    assert store.options.block_indent == 4


def test_server_registers_document_store() -> None:
    server = create_server()
    assert isinstance(server.document_store, DocumentStore)
    assert server.name == "kfmt-lsp"


def test_positions_count_utf16_code_units() -> None:
    document = DocumentState(uri="file:///tmp/Emoji.kt", text='val s = "\U0001F600"\nval t = 1\n', version=1)
    closing_quote = document.text.index('"', 9)
    assert document.position_at(closing_quote) == Position(line=0, character=11)
    assert document.offset_at(Position(line=0, character=11)) == closing_quote
    assert document.position_at(len(document.text)) == Position(line=2, character=0)


def test_ranged_change_after_astral_character(store: DocumentStore, document_uri: str) -> None:
    open_document(store, document_uri, 'val s = "\U0001F600" + a\n')
    change = TextDocumentContentChangeEvent_Type1(range=_range(0, 15, 0, 16), text="b")
    store.did_change(document_uri, 2, [change])
    assert store.document(document_uri).text == 'val s = "\U0001F600" + b\n'
