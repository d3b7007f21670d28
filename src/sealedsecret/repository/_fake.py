"""Fake secret store for testing.

This module provides a FakeSecretStore class that implements
SecretStoreProtocol for use in tests without a git remote.
"""

import hashlib
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import TracebackType
from typing import Self

from sealedsecret.exceptions import PathConflictError, TrackedFileNotFoundError
from sealedsecret.repository._models import CommitAction, CommitInfo, CommitResult
from sealedsecret.repository._paths import normalize_path
from sealedsecret.repository._session import (
    COMMIT_EMAIL,
    COMMIT_NAME,
    commit_message,
)
from sealedsecret.utils import raise_if_cancelled


@dataclass(slots=True)
class FakeSecretStore:
    """In-memory secret store for testing.

    Implements SecretStoreProtocol with a dict of files and a list of
    commits. Paths are normalized the same way as RepositorySession.

    Example:
        >>> store = FakeSecretStore()
        >>> _ = store.publish("a.yaml", b"data")
        >>> store.read("./a.yaml")
        b'data'
    """

    branch: str = "sealed-secrets"
    files: dict[str, bytes] = field(default_factory=dict)
    commits: list[CommitInfo] = field(default_factory=list)
    closed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        self.close()

    def close(self) -> None:
        """Mark the store closed."""
        self.closed = True

    def publish(
        self,
        path: str,
        content: bytes,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Store content at path and record a commit.

        Raises:
            PathConflictError: If path is a directory or below a file.
        """
        normalized = normalize_path(path)
        raise_if_cancelled(cancel, "publish")
        with self._lock:
            self._check_conflict(normalized)
            self.files[normalized] = bytes(content)
            return self._record(CommitAction.CREATED, normalized)

    def read(self, path: str) -> bytes:
        """Return stored content.

        Raises:
            TrackedFileNotFoundError: If nothing is stored at path.
        """
        normalized = normalize_path(path)
        try:
            return self.files[normalized]
        except KeyError as e:
            msg = f"File not found in {self.branch}: {normalized}"
            raise TrackedFileNotFoundError(msg, path=normalized) from e

    def delete(
        self,
        path: str,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Remove stored content and record a commit.

        Raises:
            TrackedFileNotFoundError: If nothing is stored at path.
        """
        normalized = normalize_path(path)
        raise_if_cancelled(cancel, "delete")
        with self._lock:
            if normalized not in self.files:
                msg = f"File not found in {self.branch}: {normalized}"
                raise TrackedFileNotFoundError(msg, path=normalized)
            del self.files[normalized]
            return self._record(CommitAction.DELETED, normalized)

    def exists(self, path: str) -> bool:
        """Check whether content is stored at path."""
        return normalize_path(path) in self.files

    def history(self, limit: int = 10) -> list[CommitInfo]:
        """Get recent commits, newest first."""
        return self.commits[:limit]

    def _check_conflict(self, path: str) -> None:
        parts = path.split("/")
        for depth in range(1, len(parts)):
            parent = "/".join(parts[:depth])
            if parent in self.files:
                msg = f"Cannot publish {path}: {parent} is in the way"
                raise PathConflictError(msg, path=path, conflict=parent)
        if any(name.startswith(f"{path}/") for name in self.files):
            msg = f"Cannot publish {path}: {path} is in the way"
            raise PathConflictError(msg, path=path, conflict=path)

    def _record(self, action: CommitAction, path: str) -> CommitResult:
        message = commit_message(action, path)
        parent = (self.commits[0].sha,) if self.commits else ()
        sha = hashlib.sha1(  # noqa: S324 - fake commit id, not security relevant
            f"{len(self.commits)}:{message}".encode()
        ).hexdigest()
        self.commits.insert(
            0,
            CommitInfo(
                sha=sha,
                message=message,
                author_name=COMMIT_NAME,
                author_email=COMMIT_EMAIL,
                timestamp=datetime.now(UTC),
                parent_shas=parent,
            ),
        )
        return CommitResult(sha=sha, path=path, action=action)
