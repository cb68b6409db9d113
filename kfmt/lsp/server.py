"""pygls based Language Server entrypoint."""

from __future__ import annotations

import logging
import os

from lsprotocol.types import InitializedParams
from pygls.server import LanguageServer

from kfmt import __version__

from .handlers import register_all
from .workspace import DocumentStore

logger = logging.getLogger(__name__)


class KfmtLanguageServer(LanguageServer):
    """LanguageServer that formats Kotlin documents with kfmt."""

    def __init__(self) -> None:
        super().__init__(name="kfmt-lsp", version=__version__)
        self.document_store = DocumentStore()
        register_all(self)
        self._register_lifecycle_handlers()

    def _register_lifecycle_handlers(self) -> None:
        store = self.document_store

        @self.feature("initialized")
        async def _on_initialized(ls: "KfmtLanguageServer", params: InitializedParams) -> None:  # noqa: ARG001
            store.set_root(ls.workspace.root_uri)
            logger.info("kfmt settings resolved from %s", store.root_path)


def create_server() -> KfmtLanguageServer:
    return KfmtLanguageServer()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    server = create_server()
    logger.info("Starting kfmt LSP (pid=%s)", os.getpid())
    server.start_io()


if __name__ == "__main__":
    main()
