# ruff: noqa: TC003  # datetime needed at runtime for dataclass fields
"""Repository session models.

This module defines the credential and endpoint descriptors for a remote
repository and the records returned by session operations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Final
from urllib.parse import urlsplit

REMOTE_NAME: Final = "origin"


class ConflictPolicy(StrEnum):
    """How a push reconciles the local branch with the remote branch.

    FORCE_OVERWRITE is last-writer-wins: the remote branch pointer is
    replaced unconditionally. It offers no protection against writers
    outside this process.

    REJECT_ON_DIVERGENCE refuses the push when the remote branch tip is
    not an ancestor of the local tip.
    """

    FORCE_OVERWRITE = "force-overwrite"
    REJECT_ON_DIVERGENCE = "reject-on-divergence"


class CommitAction(StrEnum):
    """Action verb recorded in commit messages."""

    CREATED = "created"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class BasicAuth:
    """HTTP basic-auth credentials for the remote.

    Attributes:
        username: Account name.
        token: Password or access token.
    """

    username: str
    token: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class RemoteEndpoint:
    """Remote repository location and the branches a session works with.

    Attributes:
        url: Remote URL (http/https URL or local path).
        source_branch: Branch the session writes to.
        target_branch: Branch review requests merge into. Never written.
        auth: Credentials, or None for transports that need none.
    """

    url: str
    source_branch: str
    target_branch: str = "main"
    auth: BasicAuth | None = None

    @property
    def is_http(self) -> bool:
        """Whether the URL uses an HTTP(S) transport."""
        return urlsplit(self.url).scheme in {"http", "https"}


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Result of a publish or delete.

    Attributes:
        sha: Commit SHA hex string.
        path: Repository-relative path that was mutated.
        action: The recorded action.
    """

    sha: str
    path: str
    action: CommitAction


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """Information about a single commit.

    Attributes:
        sha: Full 40-character commit SHA hex string.
        message: Complete commit message.
        author_name: Name of the commit author.
        author_email: Email of the commit author.
        timestamp: Commit timestamp as UTC datetime.
        parent_shas: SHA hex strings of parent commits.
    """

    sha: str
    message: str
    author_name: str
    author_email: str
    timestamp: datetime
    parent_shas: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Result of a fetch.

    Attributes:
        refs: Remote branch heads after the fetch, name -> SHA hex.
        up_to_date: True if no remote-tracking ref changed.
        head: Branch the remote HEAD points to, or None if unknown.
    """

    refs: dict[str, str]
    up_to_date: bool
    head: str | None = None
