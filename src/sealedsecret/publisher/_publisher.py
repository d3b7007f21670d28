"""Publishing sealed secrets into a secret store.

SecretPublisher ties the pieces together: wait for the controller's public
key, seal, record the key hash, publish, and optionally open a merge request.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Final, Protocol, Self

from sealedsecret.exceptions import TrackedFileNotFoundError
from sealedsecret.manifest import (
    PublicKey,
    annotate_manifest,
    hash_public_key,
    parse_manifest,
)
from sealedsecret.publisher._models import AppliedSecret, SecretState
from sealedsecret.readiness import APPLY_DEADLINE, REFRESH_DEADLINE, ReadinessPoller
from sealedsecret.repository import RepositorySession
from sealedsecret.review import GitLabReviewSubmitter
from sealedsecret.utils import default_logger

if TYPE_CHECKING:
    import threading
    from types import TracebackType

    import httpx
    from structlog.typing import FilteringBoundLogger

    from sealedsecret.config import Config
    from sealedsecret.repository import SecretStoreProtocol
    from sealedsecret.review import ReviewRequestResult

type Sealer[SecretT] = Callable[[SecretT, PublicKey], bytes]
type KeyResolver = Callable[[], PublicKey]

DEFAULT_TARGET_BRANCH: Final = "main"


class ReviewSubmitter(Protocol):
    """Anything that can open a review request between two branches."""

    def submit(self, source_branch: str, target_branch: str) -> ReviewRequestResult:
        """Open a review request, succeeding if one is already open."""
        ...


class SecretPublisher[SecretT]:
    """Seal secrets with the controller key and publish them to a store.

    Example:
        >>> publisher = SecretPublisher(session, kubeseal, fetch_key)
        >>> applied = publisher.apply("prod/db.yaml", secret)
        >>> state = publisher.read("prod/db.yaml")
    """

    __slots__: Final = (
        "_key_resolver",
        "_logger",
        "_owned",
        "_poller",
        "_review",
        "_sealer",
        "_store",
        "apply_timeout",
        "refresh_timeout",
        "target_branch",
    )

    def __init__(
        self,
        store: SecretStoreProtocol,
        sealer: Sealer[SecretT],
        key_resolver: KeyResolver,
        *,
        review: ReviewSubmitter | None = None,
        target_branch: str | None = None,
        poller: ReadinessPoller | None = None,
        apply_timeout: float = APPLY_DEADLINE,
        refresh_timeout: float = REFRESH_DEADLINE,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the publisher.

        Args:
            store: Where manifests are published.
            sealer: Encrypts a secret with a public key into manifest YAML.
            key_resolver: Fetches the controller's current public key.
            review: Optional merge request submitter, called after each change.
            target_branch: Branch review requests merge into. Defaults to the
                endpoint's target branch when store is a RepositorySession,
                else to "main".
            poller: Readiness poller used around key_resolver.
            apply_timeout: Key wait deadline for apply, in seconds.
            refresh_timeout: Key wait deadline for read, in seconds.
            logger: Optional logger.
        """
        if target_branch is None:
            target_branch = (
                store.endpoint.target_branch
                if isinstance(store, RepositorySession)
                else DEFAULT_TARGET_BRANCH
            )
        self._store = store
        self._sealer = sealer
        self._key_resolver = key_resolver
        self._review = review
        self._owned: list[Callable[[], None]] = []
        self._logger = logger if logger is not None else default_logger("publisher")
        self._poller = (
            poller if poller is not None else ReadinessPoller(logger=self._logger)
        )
        self.target_branch = target_branch
        self.apply_timeout = apply_timeout
        self.refresh_timeout = refresh_timeout

    @classmethod
    def from_config(
        cls,
        config: Config,
        sealer: Sealer[SecretT],
        key_resolver: KeyResolver,
        *,
        cancel: threading.Event | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> Self:
        """Open a repository session and build a publisher from configuration.

        The session uses the configured conflict policy. A GitLab submitter
        is created only when git.review_requests is set, and review requests
        target git.target_branch. The publisher owns both; close it when done.

        Args:
            config: Loaded configuration.
            sealer: Encrypts a secret with a public key into manifest YAML.
            key_resolver: Fetches the controller's current public key.
            cancel: Optional cancellation event for opening the session.
            transport: Optional httpx transport for the GitLab API.

        Returns:
            A publisher over a freshly opened session.

        Raises:
            ConfigValidationError: If git.url or git.source_branch is missing.
            RepositoryOpenError: If the remote cannot be cloned.
        """
        endpoint = config.endpoint()
        session = RepositorySession.open(
            endpoint,
            policy=config.git.conflict_policy,
            cancel=cancel,
            logger=config.logger("session"),
        )

        review = None
        if config.git.review_requests:
            review = GitLabReviewSubmitter(
                endpoint.url,
                config.git.token.get_secret_value(),
                transport=transport,
                logger=config.logger("review"),
            )

        publisher = cls(
            session,
            sealer,
            key_resolver,
            review=review,
            target_branch=endpoint.target_branch,
            apply_timeout=config.controller.apply_timeout,
            refresh_timeout=config.controller.refresh_timeout,
            logger=config.logger("publisher"),
        )
        publisher._owned.append(session.close)
        if review is not None:
            publisher._owned.append(review.close)
        return publisher

    def __enter__(self) -> Self:
        """Enter the context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager and close what from_config opened."""
        self.close()

    def close(self) -> None:
        """Close the session and submitter opened by from_config, if any."""
        while self._owned:
            self._owned.pop()()

    @property
    def review(self) -> ReviewSubmitter | None:
        """The review submitter, or None when review requests are off."""
        return self._review

    @property
    def store(self) -> SecretStoreProtocol:
        """The store manifests are published to."""
        return self._store

    def apply(
        self,
        path: str,
        secret: SecretT,
        *,
        cancel: threading.Event | None = None,
    ) -> AppliedSecret:
        """Seal a secret and publish it, creating or replacing the manifest.

        Args:
            path: Repository-relative path of the manifest.
            secret: The secret to seal.
            cancel: Optional cancellation event.

        Returns:
            AppliedSecret describing the commit and review outcome.

        Raises:
            ReadinessTimeoutError: If the key did not become available in time.
            RemoteSyncError: If publishing to the remote failed.
            ReviewRequestError: If the merge request could not be submitted.
        """
        key = self._poller.poll(
            self._key_resolver, deadline=self.apply_timeout, cancel=cancel
        )
        key_hash = hash_public_key(key)
        content = annotate_manifest(self._sealer(secret, key), key_hash)

        commit = self._store.publish(path, content, cancel=cancel)
        self._logger.info("secret_applied", path=commit.path, sha=commit.sha)

        review = self._submit_review()
        return AppliedSecret(
            path=commit.path, commit=commit, key_hash=key_hash, review=review
        )

    def read(
        self,
        path: str,
        *,
        cancel: threading.Event | None = None,
    ) -> SecretState | None:
        """Read a published secret and check it against the current key.

        Args:
            path: Repository-relative path of the manifest.
            cancel: Optional cancellation event.

        Returns:
            SecretState, or None if the manifest no longer exists and the
            secret must be created again.

        Raises:
            ManifestParseError: If the stored content is not a manifest.
            ReadinessTimeoutError: If the key did not become available in time.
        """
        try:
            content = self._store.read(path)
        except TrackedFileNotFoundError:
            self._logger.info("secret_missing", path=path)
            return None

        manifest = parse_manifest(content)
        key = self._poller.poll(
            self._key_resolver, deadline=self.refresh_timeout, cancel=cancel
        )
        key_hash = hash_public_key(key)
        needs_recreate = manifest.key_hash is not None and manifest.key_hash != key_hash
        if needs_recreate:
            self._logger.info(
                "public_key_changed",
                path=path,
                stored_key_hash=manifest.key_hash,
                key_hash=key_hash,
            )
        return SecretState(
            path=path,
            manifest=manifest,
            key_hash=key_hash,
            needs_recreate=needs_recreate,
        )

    def delete(
        self,
        path: str,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Remove a published secret. A missing manifest counts as removed.

        Args:
            path: Repository-relative path of the manifest.
            cancel: Optional cancellation event.

        Raises:
            RemoteSyncError: If publishing to the remote failed.
            ReviewRequestError: If the merge request could not be submitted.
        """
        try:
            commit = self._store.delete(path, cancel=cancel)
        except TrackedFileNotFoundError:
            self._logger.info("secret_already_absent", path=path)
        else:
            self._logger.info("secret_deleted", path=commit.path, sha=commit.sha)

        _ = self._submit_review()

    def _submit_review(self) -> ReviewRequestResult | None:
        if self._review is None:
            return None
        return self._review.submit(self._store.branch, self.target_branch)
