"""In-memory repository session.

This module provides RepositorySession, an authenticated in-memory clone of
a remote repository bound to one source branch. Publishes and deletes are
serialized by a lock held for the whole write-commit-synchronize sequence.
Reads take no lock: the working tree is an immutable tree id that is
replaced by a single attribute assignment after each commit.
"""

from __future__ import annotations

import stat
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final, Self, cast

from dulwich.errors import NotTreeError
from dulwich.object_store import tree_lookup_path
from dulwich.objects import Blob, Commit, Tree
from dulwich.repo import MemoryRepo

from sealedsecret.exceptions import (
    BranchExistsError,
    OperationCancelledError,
    PathConflictError,
    RepositoryError,
    RepositoryOpenError,
    TrackedFileNotFoundError,
)
from sealedsecret.repository._models import (
    CommitAction,
    CommitInfo,
    CommitResult,
    ConflictPolicy,
    RemoteEndpoint,
)
from sealedsecret.repository._paths import (
    branch_ref,
    normalize_path,
    tracking_ref,
)
from sealedsecret.repository._sync import RemoteSynchronizer
from sealedsecret.utils import acquire, default_logger, raise_if_cancelled

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from dulwich.object_store import BaseObjectStore
    from structlog.typing import FilteringBoundLogger

COMMIT_NAME: Final = "SEALEDSECRET-PROVIDER"
COMMIT_EMAIL: Final = "sealedsecret-provider@localhost"
COMMIT_IDENTITY: Final = f"{COMMIT_NAME} <{COMMIT_EMAIL}>".encode()

_FILE_MODE: Final = 0o100644


def commit_message(action: CommitAction, path: str) -> str:
    """Format the commit message recorded for a mutation."""
    return f"[{COMMIT_NAME}] {action} --> {path}"


def is_branch_exists_error(exc: BaseException) -> bool:
    """Check whether a branch creation failure means the branch already exists.

    This is the only branch-creation failure that opening a session masks.
    """
    return isinstance(exc, BranchExistsError)


def _conflict(path: bytes, existing: bytes) -> PathConflictError:
    conflict = existing.decode()
    msg = f"Cannot publish {path.decode()}: {conflict} is in the way"
    return PathConflictError(msg, path=path.decode(), conflict=conflict)


def _rebuild_tree(
    store: BaseObjectStore,
    tree_id: bytes | None,
    parts: list[bytes],
    entry: tuple[int, bytes] | None,
    prefix: bytes = b"",
) -> Tree:
    """Build a new tree with one path set or removed.

    Stored trees are never modified; every tree along the path is copied.
    Subtrees left empty by a removal are dropped. Setting a path never
    replaces a directory with a file or a file with a directory.

    Args:
        store: Object store receiving the new trees.
        tree_id: Tree to start from, or None for an empty tree.
        parts: Path components below this tree.
        entry: (mode, blob id) to set, or None to remove the path.
        prefix: Path of this tree from the root, for error messages.

    Returns:
        The new tree, already added to the store.

    Raises:
        PathConflictError: If setting the path collides with an existing
            file or directory. Nothing is added to the store.
    """
    tree = Tree()
    if tree_id is not None:
        for item in cast("Tree", store[tree_id]).iteritems():
            tree.add(item.path, item.mode, item.sha)

    name, rest = parts[0], parts[1:]
    current = prefix + name
    if rest:
        subtree_id = None
        if name in tree:
            mode, sha = tree[name]
            if stat.S_ISDIR(mode):
                subtree_id = sha
            elif entry is not None:
                raise _conflict(b"/".join([current, *rest]), current)
        subtree = _rebuild_tree(store, subtree_id, rest, entry, current + b"/")
        if len(subtree) == 0:
            if name in tree:
                del tree[name]
        else:
            tree[name] = (stat.S_IFDIR, subtree.id)
    elif entry is None:
        if name in tree:
            del tree[name]
    else:
        if name in tree and stat.S_ISDIR(tree[name][0]):
            raise _conflict(current, current)
        tree[name] = entry

    store.add_object(tree)
    return tree


class RepositorySession:
    """Authenticated in-memory working copy of a remote repository.

    Exactly one session should exist per remote and source branch. The
    session is created with open(), which clones the remote and
    materializes the source branch; it then accepts publish(), delete() and
    read() calls from any number of threads.

    Attributes:
        endpoint: The remote endpoint this session is bound to.
    """

    __slots__: Final = (
        "_closed",
        "_clock",
        "_lock",
        "_logger",
        "_repo",
        "_sync",
        "_tree_id",
        "endpoint",
    )

    def __init__(
        self,
        endpoint: RemoteEndpoint,
        repo: MemoryRepo,
        synchronizer: RemoteSynchronizer,
        *,
        logger: FilteringBoundLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize a session over an already materialized repository.

        Use open() instead of calling this directly.

        Args:
            endpoint: The remote endpoint.
            repo: The in-memory repository with the source branch checked out.
            synchronizer: Synchronizer used after every commit.
            logger: Optional logger.
            clock: Returns the commit time; defaults to the current UTC time.
        """
        self.endpoint = endpoint
        self._repo = repo
        self._sync = synchronizer
        self._logger = logger if logger is not None else default_logger("session")
        self._clock = clock if clock is not None else (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._closed = False
        self._tree_id = self._tip_tree_id()

    @classmethod
    def open(
        cls,
        endpoint: RemoteEndpoint,
        *,
        policy: ConflictPolicy = ConflictPolicy.FORCE_OVERWRITE,
        cancel: threading.Event | None = None,
        logger: FilteringBoundLogger | None = None,
        synchronizer: RemoteSynchronizer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> Self:
        """Clone the remote into memory and materialize the source branch.

        The source branch is created from the remote default branch. If it
        already exists, locally or on the remote, it is checked out instead.
        An empty remote is accepted; the branch is then born on first publish.

        Args:
            endpoint: The remote endpoint and branches.
            policy: Conflict policy for pushes.
            cancel: Optional cancellation event.
            logger: Optional logger.
            synchronizer: Optional synchronizer; built from the endpoint if None.
            clock: Optional commit clock.

        Returns:
            A ready session.

        Raises:
            OperationCancelledError: If cancelled before the clone.
            RepositoryOpenError: If the clone or branch materialization fails.
        """
        log = logger if logger is not None else default_logger("session")
        raise_if_cancelled(cancel, "open")
        branch = endpoint.source_branch

        log.info("cloning_repository", url=endpoint.url, branch=branch)
        try:
            sync = (
                synchronizer
                if synchronizer is not None
                else RemoteSynchronizer.for_endpoint(endpoint, policy=policy, logger=log)
            )
            repo = MemoryRepo()
            fetched = sync.fetch(repo, branch=branch, cancel=cancel)
        except OperationCancelledError:
            raise
        except Exception as e:  # noqa: BLE001 - any clone failure is fatal
            msg = f"Unable to clone {endpoint.url}: {e}"
            raise RepositoryOpenError(msg, url=endpoint.url) from e

        # An empty remote may still advertise HEAD -> refs/heads/main
        default_branch = fetched.head if fetched.head in fetched.refs else None
        if default_branch is None and fetched.refs:
            default_branch = min(fetched.refs)

        try:
            if default_branch is not None:
                _checkout_branch(repo, default_branch, sync.remote)
            try:
                _create_branch(repo, branch, default_branch, sync.remote)
                log.info("branch_created", branch=branch, start=default_branch)
            except Exception as e:
                if not is_branch_exists_error(e):
                    raise
                _checkout_branch(repo, branch, sync.remote)
                log.info("branch_reused", branch=branch)
        except Exception as e:  # noqa: BLE001 - materialization failures are fatal
            msg = f"Unable to check out branch {branch} of {endpoint.url}: {e}"
            raise RepositoryOpenError(msg, url=endpoint.url) from e

        return cls(endpoint, repo, sync, logger=log, clock=clock)

    # =========================================================================
    # Context Manager Protocol
    # =========================================================================

    def __enter__(self) -> Self:
        """Enter the context manager.

        Returns:
            The session.
        """
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager and close the session."""
        self.close()

    def close(self) -> None:
        """Close the session. Closing twice is a no-op."""
        if not self._closed:
            self._closed = True
            self._logger.debug("session_closed", branch=self.branch)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def branch(self) -> str:
        """The source branch written by this session."""
        return self.endpoint.source_branch

    @property
    def policy(self) -> ConflictPolicy:
        """The conflict policy applied on push."""
        return self._sync.policy

    @property
    def head_sha(self) -> str | None:
        """SHA of the source branch tip, or None before the first commit."""
        ref = branch_ref(self.branch)
        if ref not in self._repo.refs:
            return None
        return self._repo.refs[ref].decode()

    # =========================================================================
    # Mutations
    # =========================================================================

    def publish(
        self,
        path: str,
        content: bytes,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Create or overwrite a file, commit, and synchronize with the remote.

        Re-publishing an existing path is recorded as "created" too.

        Args:
            path: Repository-relative path.
            content: Exact bytes to store.
            cancel: Optional cancellation event.

        Returns:
            CommitResult for the new commit.

        Raises:
            InvalidPathError: If the path is not usable.
            PathConflictError: If the path is a directory, or a parent of it
                is a file. Nothing is committed.
            OperationCancelledError: If cancelled before the push completed.
            RemoteSyncError: If fetch or push fails. The commit stays local and
                is included in the next successful push.
        """
        normalized = normalize_path(path)
        self._ensure_open()

        with acquire(self._lock, cancel, "publish"):
            blob = Blob.from_string(content)
            tree = _rebuild_tree(
                self._repo.object_store,
                self._tree_id,
                normalized.encode().split(b"/"),
                (_FILE_MODE, blob.id),
            )
            self._repo.object_store.add_object(blob)
            result = self._commit(tree.id, CommitAction.CREATED, normalized)
            self._sync.synchronize(self._repo, self.branch, cancel=cancel)

        self._logger.info(
            "file_published", path=normalized, sha=result.sha, size=len(content)
        )
        return result

    def delete(
        self,
        path: str,
        *,
        cancel: threading.Event | None = None,
    ) -> CommitResult:
        """Remove a file, commit, and synchronize with the remote.

        Args:
            path: Repository-relative path.
            cancel: Optional cancellation event.

        Returns:
            CommitResult for the new commit.

        Raises:
            InvalidPathError: If the path is not usable.
            TrackedFileNotFoundError: If the path is not in the working tree.
            OperationCancelledError: If cancelled before the push completed.
            RemoteSyncError: If fetch or push fails.
        """
        normalized = normalize_path(path)
        self._ensure_open()

        with acquire(self._lock, cancel, "delete"):
            _ = self._lookup(self._tree_id, normalized)
            tree = _rebuild_tree(
                self._repo.object_store,
                self._tree_id,
                normalized.encode().split(b"/"),
                None,
            )
            result = self._commit(tree.id, CommitAction.DELETED, normalized)
            self._sync.synchronize(self._repo, self.branch, cancel=cancel)

        self._logger.info("file_deleted", path=normalized, sha=result.sha)
        return result

    # =========================================================================
    # Reads
    # =========================================================================

    def read(self, path: str) -> bytes:
        """Return the content of a file in the current working tree.

        Args:
            path: Repository-relative path.

        Returns:
            The file content.

        Raises:
            InvalidPathError: If the path is not usable.
            TrackedFileNotFoundError: If the path is not in the working tree.
        """
        normalized = normalize_path(path)
        blob_id = self._lookup(self._tree_id, normalized)
        return cast("Blob", self._repo.object_store[blob_id]).data

    def exists(self, path: str) -> bool:
        """Check whether a file is present in the current working tree."""
        try:
            _ = self._lookup(self._tree_id, normalize_path(path))
        except TrackedFileNotFoundError:
            return False
        return True

    def history(self, limit: int = 10) -> list[CommitInfo]:
        """Get the most recent commits on the source branch.

        Args:
            limit: Maximum number of commits to return.

        Returns:
            List of CommitInfo, newest first. Empty before the first commit.
        """
        head = self.head_sha
        if head is None:
            return []
        walker = self._repo.get_walker(include=[head.encode()], max_entries=limit)
        return [_to_commit_info(entry.commit) for entry in walker]

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_open(self) -> None:
        if self._closed:
            msg = f"Session for {self.endpoint.url} ({self.branch}) is closed"
            raise RepositoryError(msg)

    def _tip_tree_id(self) -> bytes | None:
        ref = branch_ref(self.branch)
        if ref not in self._repo.refs:
            return None
        return cast("Commit", self._repo[self._repo.refs[ref]]).tree

    def _lookup(self, tree_id: bytes | None, path: str) -> bytes:
        """Resolve a file path in a tree to its blob id."""
        if tree_id is None:
            msg = f"File not found in {self.branch}: {path}"
            raise TrackedFileNotFoundError(msg, path=path)
        try:
            mode, sha = tree_lookup_path(
                self._repo.object_store.__getitem__, tree_id, path.encode()
            )
        except (KeyError, NotTreeError) as e:
            msg = f"File not found in {self.branch}: {path}"
            raise TrackedFileNotFoundError(msg, path=path) from e
        if stat.S_ISDIR(mode):
            msg = f"Path is a directory in {self.branch}: {path}"
            raise TrackedFileNotFoundError(msg, path=path)
        return sha

    def _commit(self, tree_id: bytes, action: CommitAction, path: str) -> CommitResult:
        """Record a commit on the source branch and advance the working tree.

        Must be called with the session lock held.
        """
        ref = branch_ref(self.branch)
        timestamp = int(self._clock().timestamp())

        commit = Commit()
        commit.tree = tree_id
        commit.parents = [self._repo.refs[ref]] if ref in self._repo.refs else []
        commit.author = commit.committer = COMMIT_IDENTITY
        commit.author_time = commit.commit_time = timestamp
        commit.author_timezone = commit.commit_timezone = 0
        commit.encoding = b"UTF-8"
        commit.message = commit_message(action, path).encode()

        self._repo.object_store.add_object(commit)
        self._repo.refs[ref] = commit.id
        self._tree_id = tree_id

        return CommitResult(sha=commit.id.decode(), path=path, action=action)


def _create_branch(
    repo: MemoryRepo, branch: str, start: str | None, remote: str
) -> None:
    """Create a local branch from the tip of another and check it out.

    Raises:
        BranchExistsError: If the branch exists locally or on the remote.
    """
    ref = branch_ref(branch)
    if ref in repo.refs or tracking_ref(remote, branch) in repo.refs:
        msg = f"Branch already exists: {branch}"
        raise BranchExistsError(msg, branch=branch)
    if start is not None:
        repo.refs[ref] = repo.refs[branch_ref(start)]
    repo.refs.set_symbolic_ref(b"HEAD", ref)


def _checkout_branch(repo: MemoryRepo, branch: str, remote: str) -> None:
    """Check out a branch, creating it from its remote-tracking ref if needed."""
    ref = branch_ref(branch)
    if ref not in repo.refs:
        repo.refs[ref] = repo.refs[tracking_ref(remote, branch)]
    repo.refs.set_symbolic_ref(b"HEAD", ref)


def _to_commit_info(commit: Commit) -> CommitInfo:
    author = commit.author.decode("utf-8", errors="replace")
    if "<" in author and author.endswith(">"):
        name, email = author.rsplit("<", 1)
        author_name, author_email = name.strip(), email.rstrip(">")
    else:
        author_name, author_email = author, ""
    return CommitInfo(
        sha=commit.id.decode(),
        message=commit.message.decode("utf-8", errors="replace"),
        author_name=author_name,
        author_email=author_email,
        timestamp=datetime.fromtimestamp(commit.author_time, tz=UTC),
        parent_shas=tuple(parent.decode() for parent in commit.parents),
    )
