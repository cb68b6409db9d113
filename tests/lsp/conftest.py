from __future__ import annotations

from pathlib import Path

import pytest

from kfmt.lsp.workspace import DocumentStore


def _make_uri(path: Path) -> str:
    return path.resolve().as_uri()


@pytest.fixture()
def store(tmp_path: Path) -> DocumentStore:
    return DocumentStore(_make_uri(tmp_path))


@pytest.fixture()
def document_uri(tmp_path: Path) -> str:
    return _make_uri(tmp_path / "Main.kt")
