"""
kfmt command line interface.

Formats Kotlin files in place, or reports what would change::

    kfmt src/                 # rewrite every .kt/.kts file below src/
    kfmt --check Main.kt      # exit 1 if Main.kt is not formatted
    kfmt --diff Main.kt       # print a unified diff instead of writing
    cat Main.kt | kfmt -      # format stdin to stdout
"""

from __future__ import annotations

import argparse
import difflib
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from kfmt import __version__
from kfmt.config import load_options
from kfmt.errors import ConfigError
from kfmt.formatting import STYLE_NAMES, Formatter, FormattingOptions

logger = logging.getLogger(__name__)

KOTLIN_SUFFIXES = (".kt", ".kts")
STDIN_PATH = "-"


@dataclass
class FileOutcome:
    path: str
    changed: bool = False
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    diff: str = ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kfmt",
        description="Format Kotlin source files",
    )
    parser.add_argument(
        "files",
        nargs="*",
        default=["."],
        help="Files or directories to format, or '-' for stdin (default: current directory)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check",
        action="store_true",
        help="Check if files need formatting without making changes",
    )
    mode.add_argument(
        "--diff",
        action="store_true",
        help="Show a unified diff of formatting changes without making changes",
    )
    parser.add_argument(
        "--style",
        choices=STYLE_NAMES,
        help="Style preset (overrides the configuration file)",
    )
    parser.add_argument(
        "--max-width",
        type=int,
        help="Maximum line width (overrides the configuration file)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Read settings from this file instead of searching for kfmt.toml/pyproject.toml",
    )
    parser.add_argument(
        "--jobs", "-j",
        type=int,
        default=1,
        help="Number of files to format in parallel (default: 1)",
    )
    parser.add_argument(
        "--debug-ops",
        action="store_true",
        help="Log the layout instruction stream of every pass",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v for info, -vv for debug)",
    )
    parser.add_argument("--version", action="version", version=f"kfmt {__version__}")
    return parser


def configure_logging(verbosity: int, debug_ops: bool) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    if debug_ops:
        logging.getLogger("kfmt.trace").setLevel(logging.INFO)


def collect_files(paths: Sequence[str]) -> List[Path]:
    files: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_file() and path.suffix in KOTLIN_SUFFIXES:
            files.append(path)
        elif path.is_dir():
            for suffix in KOTLIN_SUFFIXES:
                files.extend(sorted(path.rglob(f"*{suffix}")))
        else:
            logger.warning("Skipping %s (not a .kt/.kts file or directory)", raw)
    return files


def resolve_options(args: argparse.Namespace) -> FormattingOptions:
    start = Path(args.files[0]) if args.files and args.files[0] != STDIN_PATH else Path.cwd()
    options = load_options(start, args.config)
    if args.style:
        # An explicit preset replaces the configured indents but keeps the rest
        preset = FormattingOptions.for_style(args.style)
        options = options.with_overrides(
            block_indent=preset.block_indent,
            continuation_indent=preset.continuation_indent,
        )
    if args.max_width is not None:
        if args.max_width <= 0:
            raise ConfigError("--max-width must be positive")
        options = options.with_overrides(max_width=args.max_width)
    if args.debug_ops:
        options = options.with_overrides(debug_layout_trace=True)
    return options


def unified_diff(path: str, original: str, formatted: str) -> str:
    return "".join(difflib.unified_diff(
        original.splitlines(keepends=True),
        formatted.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    ))


def format_file(path: Path, formatter: Formatter, args: argparse.Namespace) -> FileOutcome:
    try:
        # newline="" keeps CRLF separators visible to the formatter
        with path.open(encoding="utf-8", newline="") as handle:
            content = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        return FileOutcome(path=str(path), errors=[f"Cannot read {path}: {exc}"])

    result = formatter.format_document(content, str(path))
    outcome = FileOutcome(
        path=str(path),
        changed=result.is_changed,
        errors=list(result.errors),
        warnings=list(result.warnings),
    )
    if not result.success() or not result.is_changed:
        return outcome

    if args.diff:
        outcome.diff = unified_diff(str(path), content, result.formatted_text)
    elif not args.check:
        with path.open("w", encoding="utf-8", newline="") as handle:
            handle.write(result.formatted_text)
        logger.info("Formatted %s", path)
    return outcome


def format_stdin(formatter: Formatter, args: argparse.Namespace) -> FileOutcome:
    content = sys.stdin.read()
    result = formatter.format_document(content, "<stdin>")
    outcome = FileOutcome(
        path="<stdin>",
        changed=result.is_changed,
        errors=list(result.errors),
        warnings=list(result.warnings),
    )
    if args.diff and result.is_changed:
        outcome.diff = unified_diff("<stdin>", content, result.formatted_text)
    elif not args.check:
        sys.stdout.write(result.formatted_text)
    return outcome


def report(outcomes: Sequence[FileOutcome], args: argparse.Namespace) -> int:
    exit_code = 0
    for outcome in outcomes:
        for warning in outcome.warnings:
            logger.warning("%s", warning)
        if outcome.errors:
            exit_code = 1
            print(f"Error formatting {outcome.path}:", file=sys.stderr)
            for error in outcome.errors:
                print(f"  {error}", file=sys.stderr)
            continue
        if outcome.diff:
            sys.stdout.write(outcome.diff)
        if outcome.changed and args.check:
            print(f"Would reformat {outcome.path}", file=sys.stderr)
            exit_code = 1
    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entrypoint.

    Args:
        argv: Command-line arguments (None uses sys.argv[1:])

    Returns:
        0 on success; 1 if a file failed to format, or if `--check` found
        a file that would change.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.debug_ops)

    try:
        options = resolve_options(args)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    formatter = Formatter(options)

    if STDIN_PATH in args.files:
        if len(args.files) > 1:
            parser.error("'-' cannot be combined with other paths")
        return report([format_stdin(formatter, args)], args)

    files = collect_files(args.files)
    if not files:
        print("No files to format", file=sys.stderr)
        return 0

    with ThreadPoolExecutor(max_workers=max(1, args.jobs)) as executor:
        outcomes = list(executor.map(lambda path: format_file(path, formatter, args), files))
    return report(outcomes, args)


__all__ = ["build_parser", "collect_files", "format_file", "main"]
