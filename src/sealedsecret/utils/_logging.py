"""Structured logging for sealedsecret.

Components take an optional structlog logger. When none is given they use
default_logger(), which follows the global structlog configuration. A
process that wants its own output builds one with create_logger(), which
writes JSON lines or console text to stderr or a file and never touches the
global configuration.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Final, Literal, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

LogFormatType = Literal["json", "text"]

DEBUG_ENV: Final = "SEALEDSECRET_DEBUG"
LOG_LEVEL_ENV: Final = "SEALEDSECRET_LOG_LEVEL"


def resolve_level(level: str | None = None) -> int:
    """Work out the effective log level.

    SEALEDSECRET_DEBUG forces DEBUG. Otherwise the given level wins over
    SEALEDSECRET_LOG_LEVEL, and unknown names fall back to INFO.

    Args:
        level: Level name (debug, info, warning, error), or None.

    Returns:
        The stdlib logging level.
    """
    if getenv(DEBUG_ENV):
        return logging.DEBUG
    name = level if level is not None else getenv(LOG_LEVEL_ENV, "info")
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _processors(log_format: LogFormatType) -> "list[Processor]":  # noqa: UP037
    chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        chain += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=False))
    return chain


def _same_rotation(
    handler: logging.Handler, max_bytes: int | None, backup_count: int | None
) -> bool:
    if isinstance(handler, RotatingFileHandler):
        return (handler.maxBytes, handler.backupCount) == (max_bytes, backup_count)
    return max_bytes is None or backup_count is None


def _file_logger(
    path: Path, max_bytes: int | None, backup_count: int | None
) -> logging.Logger:
    """Return the private stdlib logger writing rendered lines to path.

    There is one logger per resolved path, so repeated calls share a single
    open file. The handler is replaced only when the rotation settings
    change. Level filtering happens in structlog; the stdlib logger passes
    everything through.
    """
    resolved = path.resolve()
    stdlib_logger = logging.getLogger(f"sealedsecret.file.{resolved}")
    stdlib_logger.propagate = False
    stdlib_logger.setLevel(logging.DEBUG)

    if stdlib_logger.handlers and _same_rotation(
        stdlib_logger.handlers[0], max_bytes, backup_count
    ):
        return stdlib_logger

    for old in list(stdlib_logger.handlers):
        stdlib_logger.removeHandler(old)
        old.close()

    handler: logging.Handler
    if max_bytes is not None and backup_count is not None:
        handler = RotatingFileHandler(
            resolved, maxBytes=max_bytes, backupCount=backup_count
        )
    else:
        handler = logging.FileHandler(resolved)
    handler.setFormatter(logging.Formatter("%(message)s"))
    stdlib_logger.addHandler(handler)
    return stdlib_logger


def _sink(log_file: str, max_bytes: int | None, backup_count: int | None) -> object:
    """Return the object structlog hands rendered lines to."""
    if not log_file:
        return structlog.PrintLogger(file=sys.stderr)

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return _file_logger(path, max_bytes, backup_count)


def create_logger(
    *,
    level: str | None = None,
    log_format: LogFormatType = "json",
    log_file: str = "",
    component: str = "",
    max_bytes: int | None = None,
    backup_count: int | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone logger.

    Args:
        level: Level name; see resolve_level() for precedence.
        log_format: "json" for one JSON object per line, "text" for console
            rendering without colors.
        log_file: File to append to. Logs go to stderr when empty.
        component: Component name bound to every entry when given.
        max_bytes: Rotate the file at this size. Needs backup_count.
        backup_count: Number of rotated files to keep. Needs max_bytes.

    Returns:
        A FilteringBoundLogger.
    """
    effective_level = resolve_level(level)
    logger = cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            _sink(log_file, max_bytes, backup_count),
            processors=_processors(log_format),
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )
    return logger.bind(component=component) if component else logger


def default_logger(component: str) -> "FilteringBoundLogger":  # noqa: UP037
    """Return the structlog logger used when a component is given none."""
    return cast("FilteringBoundLogger", structlog.get_logger().bind(component=component))
