"""Readiness polling for external dependencies."""

from sealedsecret.readiness._classify import (
    RETRYABLE_STATUS_CODES,
    Classifier,
    is_retryable,
)
from sealedsecret.readiness._poller import (
    APPLY_DEADLINE,
    REFRESH_DEADLINE,
    ReadinessPoller,
)

__all__ = [
    "APPLY_DEADLINE",
    "REFRESH_DEADLINE",
    "RETRYABLE_STATUS_CODES",
    "Classifier",
    "ReadinessPoller",
    "is_retryable",
]
