"""Remote synchronization for repository sessions.

This module provides the RemoteSynchronizer class, which reconciles the
local branch of an in-memory repository with its remote through a dulwich
transport client. The conflict policy is an explicit constructor parameter.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Self

from dulwich.client import get_transport_and_path

from sealedsecret.exceptions import RemoteDivergedError, RemoteSyncError
from sealedsecret.repository._models import (
    REMOTE_NAME,
    ConflictPolicy,
    FetchResult,
    RemoteEndpoint,
)
from sealedsecret.repository._paths import branch_ref, strip_refs_heads, tracking_ref
from sealedsecret.utils import default_logger, raise_if_cancelled

if TYPE_CHECKING:
    import threading

    from dulwich.client import GitClient
    from dulwich.repo import BaseRepo
    from structlog.typing import FilteringBoundLogger


def _is_ancestor(repo: BaseRepo, ancestor: bytes, descendant: bytes) -> bool:
    """Check whether a commit is reachable from another.

    Args:
        repo: Repository holding both commits.
        ancestor: Candidate ancestor commit SHA (hex bytes).
        descendant: Commit SHA to walk back from (hex bytes).

    Returns:
        True if ancestor is descendant or one of its ancestors.
    """
    if ancestor == descendant:
        return True
    if ancestor not in repo.object_store:
        return False
    walker = repo.get_walker(include=[descendant])
    return any(entry.commit.id == ancestor for entry in walker)


class RemoteSynchronizer:
    """Fetch/push protocol between an in-memory repository and its remote.

    Fetch updates the remote-tracking refs (refs/remotes/origin/*) and treats
    an unchanged remote as success. Push publishes one local branch according
    to the configured ConflictPolicy. Failures raise RemoteSyncError and are
    never retried here.

    Attributes:
        policy: The conflict policy applied on push.
        remote: The remote name used for tracking refs.
    """

    __slots__ = ("_client", "_logger", "_path", "policy", "remote")

    def __init__(
        self,
        client: GitClient,
        path: str,
        *,
        policy: ConflictPolicy = ConflictPolicy.FORCE_OVERWRITE,
        remote: str = REMOTE_NAME,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            client: The dulwich transport client for the remote.
            path: The remote path as understood by the client.
            policy: The conflict policy applied on push.
            remote: The remote name used for tracking refs.
            logger: Optional logger; defaults to the structlog logger.
        """
        self._client = client
        self._path = path
        self._logger = logger if logger is not None else default_logger("sync")
        self.policy = policy
        self.remote = remote

    @classmethod
    def for_endpoint(
        cls,
        endpoint: RemoteEndpoint,
        *,
        policy: ConflictPolicy = ConflictPolicy.FORCE_OVERWRITE,
        logger: FilteringBoundLogger | None = None,
    ) -> Self:
        """Create a synchronizer for a remote endpoint.

        Basic-auth credentials are only passed to HTTP(S) transports.

        Args:
            endpoint: The remote endpoint.
            policy: The conflict policy applied on push.
            logger: Optional logger.

        Returns:
            A synchronizer bound to the endpoint's transport.
        """
        if endpoint.is_http and endpoint.auth is not None:
            client, path = get_transport_and_path(
                endpoint.url,
                username=endpoint.auth.username,
                password=endpoint.auth.token,
            )
        else:
            client, path = get_transport_and_path(endpoint.url)
        return cls(client, path, policy=policy, logger=logger)

    # =========================================================================
    # Fetch
    # =========================================================================

    def fetch(
        self,
        repo: BaseRepo,
        *,
        branch: str | None = None,
        cancel: threading.Event | None = None,
    ) -> FetchResult:
        """Fetch remote objects and update remote-tracking refs.

        Args:
            repo: The local repository.
            branch: Branch being synchronized, for error context only.
            cancel: Optional cancellation event.

        Returns:
            FetchResult with the remote branch heads and the branch the
            remote HEAD points to.

        Raises:
            OperationCancelledError: If cancelled before fetching.
            RemoteSyncError: If the fetch fails.
        """
        raise_if_cancelled(cancel, "fetch")
        try:
            result = self._client.fetch(self._path, repo)
        except Exception as e:  # noqa: BLE001 - transport errors vary by protocol
            msg = f"Unable to fetch from {self.remote}: {e}"
            raise RemoteSyncError(msg, operation="fetch", branch=branch) from e

        fetched = self._update_tracking_refs(repo, result.refs)
        head_target = (result.symrefs or {}).get(b"HEAD")
        if head_target is not None:
            fetched = replace(fetched, head=strip_refs_heads(head_target))
        if fetched.up_to_date:
            self._logger.debug("remote_fetch_up_to_date", remote=self.remote)
        else:
            self._logger.debug(
                "remote_fetched", remote=self.remote, branches=sorted(fetched.refs)
            )
        return fetched

    def _update_tracking_refs(
        self, repo: BaseRepo, remote_refs: dict[bytes, bytes]
    ) -> FetchResult:
        """Mirror remote branch heads into refs/remotes/<remote>/*.

        Tracking refs of branches that no longer exist on the remote are
        removed.

        Args:
            repo: The local repository.
            remote_refs: Refs advertised by the remote.

        Returns:
            FetchResult describing the remote heads and whether anything changed.
        """
        heads: dict[str, str] = {}
        changed = False

        for ref, sha in remote_refs.items():
            name = strip_refs_heads(ref)
            if name is None:
                continue
            heads[name] = sha.decode()
            local_ref = tracking_ref(self.remote, name)
            if local_ref not in repo.refs or repo.refs[local_ref] != sha:
                repo.refs[local_ref] = sha
                changed = True

        prefix = f"refs/remotes/{self.remote}/".encode()
        for ref in list(repo.refs.keys()):
            if ref.startswith(prefix) and ref[len(prefix) :].decode() not in heads:
                del repo.refs[ref]
                changed = True

        return FetchResult(refs=heads, up_to_date=not changed)

    # =========================================================================
    # Push
    # =========================================================================

    def push(
        self,
        repo: BaseRepo,
        branch: str,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Push a local branch to the remote.

        A branch without commits has nothing to push and is skipped.

        Args:
            repo: The local repository.
            branch: The local branch to push to the same name on the remote.
            cancel: Optional cancellation event.

        Raises:
            OperationCancelledError: If cancelled before pushing.
            RemoteDivergedError: If the policy rejects a diverged remote.
            RemoteSyncError: If the push fails or a ref update is refused.
        """
        raise_if_cancelled(cancel, "push")
        ref = branch_ref(branch)
        if ref not in repo.refs:
            self._logger.debug("push_skipped_empty_branch", branch=branch)
            return
        local_sha = repo.refs[ref]

        def update_refs(remote_refs: dict[bytes, bytes]) -> dict[bytes, bytes]:
            remote_sha = remote_refs.get(ref)
            if (
                remote_sha is not None
                and self.policy is ConflictPolicy.REJECT_ON_DIVERGENCE
                and not _is_ancestor(repo, remote_sha, local_sha)
            ):
                msg = (
                    f"Remote branch {branch} has diverged: "
                    f"remote={remote_sha.decode()} local={local_sha.decode()}"
                )
                raise RemoteDivergedError(
                    msg,
                    branch=branch,
                    local_sha=local_sha.decode(),
                    remote_sha=remote_sha.decode(),
                )
            return {ref: local_sha}

        try:
            result = self._client.send_pack(
                self._path, update_refs, repo.generate_pack_data
            )
        except RemoteSyncError:
            raise
        except Exception as e:  # noqa: BLE001 - transport errors vary by protocol
            msg = f"Unable to push {branch} to {self.remote}: {e}"
            raise RemoteSyncError(msg, operation="push", branch=branch) from e

        rejected = {
            name.decode(): status
            for name, status in (result.ref_status or {}).items()
            if status is not None
        }
        if rejected:
            msg = f"Remote refused update of {branch}: {rejected}"
            raise RemoteSyncError(msg, operation="push", branch=branch)

        repo.refs[tracking_ref(self.remote, branch)] = local_sha
        self._logger.debug(
            "remote_pushed",
            remote=self.remote,
            branch=branch,
            sha=local_sha.decode(),
            policy=str(self.policy),
        )

    def synchronize(
        self,
        repo: BaseRepo,
        branch: str,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Fetch, then push the branch.

        Args:
            repo: The local repository.
            branch: The local branch to publish.
            cancel: Optional cancellation event.

        Raises:
            OperationCancelledError: If cancelled before fetch or push.
            RemoteSyncError: If fetch or push fails.
        """
        _ = self.fetch(repo, branch=branch, cancel=cancel)
        self.push(repo, branch, cancel=cancel)
