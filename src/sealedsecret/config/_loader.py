# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Raw configuration sources: TOML files and environment variables.

Everything here works on plain dictionaries. Validation happens afterwards
in the Config model.
"""

from __future__ import annotations

import copy
import os
import tomllib
from typing import TYPE_CHECKING, Any, Final

from sealedsecret.exceptions import ConfigLoadError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

ENV_PREFIX: Final = "SEALEDSECRET_"
_SECTION_SEPARATOR: Final = "__"


def read_toml_file(path: Path) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse a TOML configuration file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigLoadError: If the file is not valid TOML. The error carries the
            line and column reported by the parser.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Failed to parse TOML file {path}: {e}"
        raise ConfigLoadError(msg, path=path, line=e.lineno, column=e.colno) from e


def deep_merge(
    base: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
    override: Mapping[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Return a new dictionary with override layered over base.

    Nested tables merge key by key; any other value in override replaces the
    base value outright. Neither argument is modified and the result shares
    no mutable values with them.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def parse_env_vars(
    prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Collect configuration overrides from environment variables.

    SEALEDSECRET_GIT__SOURCE_BRANCH=sealed becomes
    {"git": {"source_branch": "sealed"}}. Variables without a section
    separator, such as SEALEDSECRET_DEBUG, are logging switches and are
    skipped. Values stay strings; the Config model coerces them.

    Args:
        prefix: Variable name prefix.
        environ: Mapping to read instead of os.environ.

    Returns:
        Nested dictionary of overrides.
    """
    source = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]

    for name, value in source.items():
        if not name.startswith(prefix):
            continue
        key = name.removeprefix(prefix)
        if _SECTION_SEPARATOR not in key:
            continue
        set_nested_key(overrides, key.lower().replace(_SECTION_SEPARATOR, "."), value)

    return overrides


def set_nested_key(
    d: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    key_path: str,
    value: Any,  # pyright: ignore[reportExplicitAny]
) -> None:
    """Set d[a][b][c] = value for key_path "a.b.c", creating tables as needed.

    A non-table value in the way is replaced by a table.
    """
    *tables, leaf = key_path.split(".")
    current = d
    for table in tables:
        if not isinstance(current.get(table), dict):
            current[table] = {}
        current = current[table]
    current[leaf] = value
