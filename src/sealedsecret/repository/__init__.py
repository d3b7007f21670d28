"""Repository sessions for publishing files into a shared git repository.

This package provides an in-memory clone of a remote repository bound to
one source branch, and the synchronizer that reconciles it with the remote.

Classes:
    RepositorySession: Serialized publish/delete and lock-free read.
    RemoteSynchronizer: Fetch/push under an explicit ConflictPolicy.
    SecretStoreProtocol: Runtime-checkable protocol for dependency injection.
    FakeSecretStore: In-memory SecretStoreProtocol for tests.

Models:
    BasicAuth: HTTP basic-auth credentials.
    RemoteEndpoint: Remote URL plus source and target branches.
    ConflictPolicy: How pushes treat a diverged remote branch.
    CommitAction: Action verb recorded in commit messages.
    CommitResult: Result of publish and delete.
    CommitInfo: Metadata about a single commit.
    FetchResult: Result of a fetch.

Example:
    >>> from sealedsecret.repository import RemoteEndpoint, RepositorySession
    >>> endpoint = RemoteEndpoint(url="/srv/git/secrets.git", source_branch="sealed")
    >>> with RepositorySession.open(endpoint) as session:
    ...     result = session.publish("prod/db.yaml", b"...")
"""

from sealedsecret.repository._fake import FakeSecretStore
from sealedsecret.repository._models import (
    REMOTE_NAME,
    BasicAuth,
    CommitAction,
    CommitInfo,
    CommitResult,
    ConflictPolicy,
    FetchResult,
    RemoteEndpoint,
)
from sealedsecret.repository._paths import normalize_path
from sealedsecret.repository._protocol import SecretStoreProtocol
from sealedsecret.repository._session import (
    COMMIT_EMAIL,
    COMMIT_NAME,
    RepositorySession,
    commit_message,
    is_branch_exists_error,
)
from sealedsecret.repository._sync import RemoteSynchronizer

__all__ = [
    "COMMIT_EMAIL",
    "COMMIT_NAME",
    "REMOTE_NAME",
    "BasicAuth",
    "CommitAction",
    "CommitInfo",
    "CommitResult",
    "ConflictPolicy",
    "FakeSecretStore",
    "FetchResult",
    "RemoteEndpoint",
    "RemoteSynchronizer",
    "RepositorySession",
    "SecretStoreProtocol",
    "commit_message",
    "is_branch_exists_error",
    "normalize_path",
]
