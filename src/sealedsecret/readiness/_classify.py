"""Error classification for readiness polling."""

from collections.abc import Callable
from typing import Final

import httpx

from sealedsecret.exceptions import (
    KeyResolverNotFoundError,
    KeyResolverUnavailableError,
)

type Classifier = Callable[[BaseException], bool]

RETRYABLE_STATUS_CODES: Final = frozenset({404, 503})


def is_retryable(exc: BaseException) -> bool:
    """Decide whether a key resolver failure is transient.

    The controller is considered "not ready yet" when its service does not
    exist or cannot serve requests. Everything else is fatal.

    Args:
        exc: The exception raised by the resolver.

    Returns:
        True if polling should continue.
    """
    if isinstance(exc, KeyResolverNotFoundError | KeyResolverUnavailableError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return False
