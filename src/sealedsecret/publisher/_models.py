# ruff: noqa: TC001  # model types needed at runtime for dataclass fields
"""Secret publisher result models."""

from dataclasses import dataclass

from sealedsecret.manifest import SealedSecretManifest
from sealedsecret.repository import CommitResult
from sealedsecret.review import ReviewRequestResult


@dataclass(frozen=True, slots=True)
class AppliedSecret:
    """Result of applying a secret.

    Attributes:
        path: Repository-relative path of the manifest.
        commit: The commit that published it.
        key_hash: Hash of the public key the payload was sealed with.
        review: Merge request outcome, or None when reviews are disabled.
    """

    path: str
    commit: CommitResult
    key_hash: str
    review: ReviewRequestResult | None = None


@dataclass(frozen=True, slots=True)
class SecretState:
    """Current state of a published secret.

    Attributes:
        path: Repository-relative path of the manifest.
        manifest: The parsed manifest.
        key_hash: Hash of the controller's current public key.
        needs_recreate: True if the manifest was sealed with a different key
            and must be applied again.
    """

    path: str
    manifest: SealedSecretManifest
    key_hash: str
    needs_recreate: bool = False
