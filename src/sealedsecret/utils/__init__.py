"""Shared utilities for sealedsecret."""

from ._cancel import acquire, raise_if_cancelled
from ._logging import LogFormatType, create_logger, default_logger, resolve_level

__all__ = [
    "LogFormatType",
    "acquire",
    "create_logger",
    "default_logger",
    "raise_if_cancelled",
    "resolve_level",
]
