"""Publish sealed secret manifests into a shared git repository."""

from sealedsecret.publisher import AppliedSecret, SecretPublisher, SecretState
from sealedsecret.readiness import ReadinessPoller
from sealedsecret.repository import (
    BasicAuth,
    ConflictPolicy,
    RemoteEndpoint,
    RepositorySession,
)
from sealedsecret.review import GitLabReviewSubmitter

__version__ = "0.1.0"

__all__ = [
    "AppliedSecret",
    "BasicAuth",
    "ConflictPolicy",
    "GitLabReviewSubmitter",
    "ReadinessPoller",
    "RemoteEndpoint",
    "RepositorySession",
    "SecretPublisher",
    "SecretState",
    "__version__",
]
