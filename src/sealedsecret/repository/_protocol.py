"""Secret store protocol for type-safe dependency injection.

This module defines a runtime-checkable Protocol that RepositorySession and
FakeSecretStore both satisfy, so the publisher can be tested without a git
remote.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import threading

    from sealedsecret.repository._models import CommitInfo, CommitResult


@runtime_checkable
class SecretStoreProtocol(Protocol):
    """Protocol for a branch-scoped file store with commit history.

    Example:
        >>> def store_manifest(store: SecretStoreProtocol, data: bytes) -> str:
        ...     return store.publish("secrets/db.yaml", data).sha
    """

    @property
    def branch(self) -> str:
        """The branch written by this store."""
        ...

    def publish(
        self,
        path: str,
        content: bytes,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Create or overwrite a file and publish the change.

        Args:
            path: Repository-relative path.
            content: Exact bytes to store.
            cancel: Optional cancellation event.

        Returns:
            CommitResult for the new commit.
        """
        ...

    def read(self, path: str) -> bytes:
        """Return the content of a file.

        Raises:
            TrackedFileNotFoundError: If the path is not present.
        """
        ...

    def delete(
        self,
        path: str,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Remove a file and publish the change.

        Raises:
            TrackedFileNotFoundError: If the path is not present.
        """
        ...

    def exists(self, path: str) -> bool:
        """Check whether a file is present."""
        ...

    def history(self, limit: int = 10) -> list[CommitInfo]:
        """Get recent commits, newest first."""
        ...

    def close(self) -> None:
        """Release the store."""
        ...
