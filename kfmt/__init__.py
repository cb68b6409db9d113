"""
kfmt: a source-to-source formatter for Kotlin.

The package is organised into several modules:

* ``lang`` – lexer, token index, syntax tree and parser.  The parser keeps
  a reference to every token so nothing is ever re-synthesized from the
  tree.
* ``layout`` – the instruction stream, the document model built from it,
  the break engine that decides where lines end, and the writer that
  turns the decisions into span replacements against the original text.
* ``formatting`` – one rule per syntax node kind, import sorting,
  redundant element removal and the two-pass pipeline.
* ``cli`` and ``lsp`` – the command line tool and the language server.
"""

from importlib import metadata as _metadata

from kfmt.errors import (
    ConfigError,
    FormatterError,
    ParseError,
    StructuralError,
    UnsupportedInputError,
)
from kfmt.formatting import (
    FormattedResult,
    Formatter,
    FormattingOptions,
    canonicalize_imports,
    format_ranges,
    format_source,
)

try:  # pragma: no cover - metadata lookup for installed copies
    __version__ = _metadata.version("kfmt")
except _metadata.PackageNotFoundError:  # pragma: no cover - source tree
    __version__ = "0.1.0"

__all__ = [
    "__version__",
    "format_source",
    "format_ranges",
    "canonicalize_imports",
    "Formatter",
    "FormattedResult",
    "FormattingOptions",
    "FormatterError",
    "ParseError",
    "StructuralError",
    "UnsupportedInputError",
    "ConfigError",
]
