"""Sealedsecret exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path


class SealedSecretError(Exception):
    """Base exception for sealedsecret errors."""


class OperationCancelledError(SealedSecretError):
    """Raised when the caller cancelled a remote-facing operation.

    Attributes:
        operation: Name of the operation that was cancelled.
    """

    def __init__(self, message: str, *, operation: str) -> None:
        """Initialize with error message and operation context.

        Args:
            message: Human-readable error message.
            operation: Name of the operation that was cancelled.
        """
        super().__init__(message)
        self.operation: str = operation


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(SealedSecretError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportAny,reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source


# =============================================================================
# Repository Exceptions
# =============================================================================


class RepositoryError(SealedSecretError):
    """Base exception for repository session errors."""


class RepositoryOpenError(RepositoryError):
    """Raised when a repository session cannot be opened.

    Covers clone failures (authentication, network, missing remote) and
    branch materialization failures other than "already exists".

    Attributes:
        url: The remote URL that could not be opened.
    """

    def __init__(self, message: str, *, url: str) -> None:
        """Initialize with error message and remote context.

        Args:
            message: Human-readable error message.
            url: The remote URL that could not be opened.
        """
        super().__init__(message)
        self.url: str = url


class BranchExistsError(RepositoryError):
    """Raised when creating a branch that already exists.

    Attributes:
        branch: The branch name.
    """

    def __init__(self, message: str, *, branch: str) -> None:
        """Initialize with error message and branch context.

        Args:
            message: Human-readable error message.
            branch: The branch name.
        """
        super().__init__(message)
        self.branch: str = branch


class TrackedFileNotFoundError(RepositoryError, FileNotFoundError):
    """Raised when a path is not present in the working tree.

    Callers use this to detect "already absent" and continue.

    Attributes:
        path: The repository-relative path that was not found.
    """

    def __init__(self, message: str, *, path: str) -> None:
        """Initialize with error message and path context.

        Args:
            message: Human-readable error message.
            path: The repository-relative path that was not found.
        """
        super().__init__(message)
        self.path: str = path


class InvalidPathError(RepositoryError, ValueError):
    """Raised when a caller-supplied path cannot be used in the repository.

    Attributes:
        path: The rejected path.
    """

    def __init__(self, message: str, *, path: str) -> None:
        """Initialize with error message and path context."""
        super().__init__(message)
        self.path: str = path


class PathConflictError(InvalidPathError):
    """Raised when a publish would replace a directory with a file or the reverse.

    Attributes:
        path: The rejected path.
        conflict: The existing path that is in the way.
    """

    def __init__(self, message: str, *, path: str, conflict: str) -> None:
        """Initialize with error message and both paths."""
        super().__init__(message, path=path)
        self.conflict: str = conflict


class RemoteSyncError(RepositoryError):
    """Raised when fetching from or pushing to the remote fails.

    Attributes:
        operation: The failing operation ("fetch" or "push").
        branch: The branch being synchronized, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        branch: str | None = None,
    ) -> None:
        """Initialize with error message and synchronization context.

        Args:
            message: Human-readable error message.
            operation: The failing operation ("fetch" or "push").
            branch: The branch being synchronized, if known.
        """
        super().__init__(message)
        self.operation: str = operation
        self.branch: str | None = branch


class RemoteDivergedError(RemoteSyncError):
    """Raised when a non-forced push finds the remote branch has diverged.

    Attributes:
        local_sha: Local branch tip (hex).
        remote_sha: Remote branch tip (hex).
    """

    def __init__(
        self,
        message: str,
        *,
        branch: str,
        local_sha: str,
        remote_sha: str,
    ) -> None:
        """Initialize with error message and divergence context."""
        super().__init__(message, operation="push", branch=branch)
        self.local_sha: str = local_sha
        self.remote_sha: str = remote_sha


# =============================================================================
# Review Request Exceptions
# =============================================================================


class ReviewRequestError(SealedSecretError):
    """Raised when a merge request cannot be submitted.

    Attributes:
        status_code: HTTP status returned by the hosting platform, if any.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialize with error message and HTTP context.

        Args:
            message: Human-readable error message.
            status_code: HTTP status returned by the hosting platform, if any.
        """
        super().__init__(message)
        self.status_code: int | None = status_code


class ProjectNotFoundError(ReviewRequestError):
    """Raised when no visible project matches the remote URL.

    Attributes:
        url: The web URL that was searched for.
    """

    def __init__(self, message: str, *, url: str) -> None:
        """Initialize with error message and URL context."""
        super().__init__(message)
        self.url: str = url


# =============================================================================
# Readiness Exceptions
# =============================================================================


class ReadinessError(SealedSecretError):
    """Base exception for dependency readiness errors."""


class KeyResolverNotFoundError(ReadinessError):
    """Raised by key resolvers when the controller service does not exist yet."""


class KeyResolverUnavailableError(ReadinessError):
    """Raised by key resolvers when the controller cannot serve requests yet."""


class ReadinessTimeoutError(ReadinessError):
    """Raised when a dependency did not become ready before the deadline.

    Attributes:
        deadline: The deadline in seconds.
        attempts: Number of resolver calls made.
    """

    def __init__(self, message: str, *, deadline: float, attempts: int) -> None:
        """Initialize with error message and polling context.

        Args:
            message: Human-readable error message.
            deadline: The deadline in seconds.
            attempts: Number of resolver calls made.
        """
        super().__init__(message)
        self.deadline: float = deadline
        self.attempts: int = attempts


# =============================================================================
# Manifest Exceptions
# =============================================================================


class ManifestError(SealedSecretError):
    """Base exception for sealed secret manifest errors."""


class ManifestParseError(ManifestError):
    """Raised when published content is not a valid sealed secret manifest.

    Attributes:
        cause: The underlying exception that caused this error.
    """

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        """Initialize with error message and cause."""
        super().__init__(message)
        self.cause: Exception | None = cause
