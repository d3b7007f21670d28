"""Sealing and publishing secrets."""

from sealedsecret.publisher._models import AppliedSecret, SecretState
from sealedsecret.publisher._publisher import (
    DEFAULT_TARGET_BRANCH,
    KeyResolver,
    ReviewSubmitter,
    Sealer,
    SecretPublisher,
)

__all__ = [
    "DEFAULT_TARGET_BRANCH",
    "AppliedSecret",
    "KeyResolver",
    "ReviewSubmitter",
    "Sealer",
    "SecretPublisher",
    "SecretState",
]
