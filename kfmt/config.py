"""Project configuration support for kfmt.

Options are read from the first `kfmt.toml` or `pyproject.toml` (with a
`[tool.kfmt]` table) found in the starting directory or one of its
parents::

    [tool.kfmt]
    style = "google"
    max_width = 120
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from kfmt.errors import ConfigError
from kfmt.formatting.options import STYLE_NAMES, FormattingOptions

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("kfmt.toml", "pyproject.toml")


def _read_toml_config(path: Path) -> Dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML: {exc}", path=str(path)) from exc


def _section(path: Path, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if path.name == "pyproject.toml":
        section = data.get("tool", {}).get("kfmt")
    else:
        section = data.get("tool", {}).get("kfmt", data)
    if section is not None and not isinstance(section, dict):
        raise ConfigError("[tool.kfmt] must be a table", path=str(path))
    return section


def locate_config_file(start: Path, explicit: Optional[Path] = None) -> Optional[Path]:
    """The nearest configuration file at or above `start`."""
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError("Configuration file does not exist", path=str(explicit))
        return explicit
    start = start.resolve()
    directory = start if start.is_dir() else start.parent
    for candidate_dir in (directory, *directory.parents):
        for name in CONFIG_FILE_NAMES:
            path = candidate_dir / name
            if not path.is_file():
                continue
            if name == "pyproject.toml" and _section(path, _read_toml_config(path)) is None:
                continue
            return path
    return None


def options_from_mapping(
    settings: Dict[str, Any], *, path: Optional[str] = None
) -> FormattingOptions:
    """Build options from a `style` preset plus per-field overrides."""
    settings = dict(settings)
    style = settings.pop("style", "default")
    if style not in STYLE_NAMES:
        raise ConfigError(
            f"Unknown style '{style}'",
            path=path,
            hint=f"Use one of: {', '.join(STYLE_NAMES)}",
        )
    options = FormattingOptions.for_style(style)

    field_types = options.field_types()
    overrides: Dict[str, Any] = {}
    for key, value in settings.items():
        name = key.replace("-", "_")
        expected = field_types.get(name)
        if expected is None:
            raise ConfigError(f"Unknown setting '{key}'", path=path)
        # bool is a subclass of int, so check it explicitly
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigError(
                f"Setting '{key}' must be of type {expected.__name__}, got {type(value).__name__}",
                path=path,
            )
        overrides[name] = value

    if overrides.get("max_width", options.max_width) <= 0:
        raise ConfigError("Setting 'max_width' must be positive", path=path)
    return options.with_overrides(**overrides)


def load_options(start: Path, explicit: Optional[Path] = None) -> FormattingOptions:
    config_path = locate_config_file(start, explicit)
    if config_path is None:
        return FormattingOptions()

    section = _section(config_path, _read_toml_config(config_path)) or {}
    logger.debug("Loaded kfmt settings from %s", config_path)
    return options_from_mapping(section, path=str(config_path))


__all__ = ["CONFIG_FILE_NAMES", "load_options", "locate_config_file", "options_from_mapping"]
