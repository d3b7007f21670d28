# pyright: reportAny=false
"""GitLab merge request submission.

This module provides GitLabReviewSubmitter, which finds the GitLab project
behind a repository URL and opens a merge request for the source branch.
Submission is idempotent: an existing open merge request for the same
source branch counts as success.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, Self, cast
from urllib.parse import urlsplit

import httpx

from sealedsecret.exceptions import ProjectNotFoundError, ReviewRequestError
from sealedsecret.review._models import MergeRequest, ReviewRequestResult
from sealedsecret.utils import default_logger

if TYPE_CHECKING:
    from types import TracebackType

    from structlog.typing import FilteringBoundLogger

DEFAULT_API_URL: Final = "https://gitlab.com/api/v4"
DUPLICATE_MERGE_REQUEST_MESSAGE: Final = (
    "Another open merge request already exists for this source branch"
)

_PAGE_SIZE: Final = 100


def api_url_for(repository_url: str) -> str:
    """Derive the GitLab API base URL from a repository URL.

    Non-HTTP URLs fall back to gitlab.com.

    Args:
        repository_url: The repository web or clone URL.

    Returns:
        The API v4 base URL on the same host.
    """
    parts = urlsplit(repository_url)
    if parts.scheme not in {"http", "https"} or not parts.hostname:
        return DEFAULT_API_URL
    host = parts.hostname if parts.port is None else f"{parts.hostname}:{parts.port}"
    return f"{parts.scheme}://{host}/api/v4"


def search_term(repository_url: str) -> str:
    """Return the project search hint for a repository URL.

    The hint is the last path segment with any ".git" suffix removed.
    """
    last = repository_url.rstrip("/").rsplit("/", 1)[-1]
    return last.removesuffix(".git")


def is_duplicate_merge_request(response: httpx.Response) -> bool:
    """Check whether GitLab refused a merge request because one is already open.

    This is the only merge request failure that submission masks.

    Args:
        response: Response to the create-merge-request call.

    Returns:
        True if the response reports an existing open merge request for the
        source branch.
    """
    return response.is_error and DUPLICATE_MERGE_REQUEST_MESSAGE in response.text


def _error_message(response: httpx.Response) -> str:
    """Extract GitLab's error message from a response, falling back to the body."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        for key in ("message", "error"):
            if key in body:
                return str(body[key])
    return response.text


class GitLabReviewSubmitter:
    """Submit merge requests to the GitLab project behind a repository URL.

    The project is located by listing projects the token is a member of,
    filtered by the repository name, and picking the one whose web URL
    equals the repository URL exactly.

    Attributes:
        repository_url: The repository web URL.
    """

    __slots__: Final = ("_client", "_logger", "repository_url")

    def __init__(
        self,
        repository_url: str,
        token: str,
        *,
        api_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        """Initialize the submitter.

        Args:
            repository_url: The repository web URL.
            token: GitLab access token. Never logged.
            api_url: API base URL; derived from repository_url if None.
            timeout: HTTP timeout in seconds.
            transport: Optional httpx transport (used by tests).
            logger: Optional logger.
        """
        self.repository_url = repository_url
        self._logger = logger if logger is not None else default_logger("review")
        self._client = httpx.Client(
            base_url=api_url if api_url is not None else api_url_for(repository_url),
            headers={"PRIVATE-TOKEN": token},
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> Self:
        """Enter the context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager and close the HTTP client."""
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def find_project(self) -> int:
        """Find the id of the project whose web URL equals the repository URL.

        Follows GitLab's X-Next-Page pagination.

        Returns:
            The project id.

        Raises:
            ProjectNotFoundError: If no visible project matches.
            ReviewRequestError: If listing projects fails.
        """
        params = {
            "membership": "true",
            "search": search_term(self.repository_url),
            "per_page": str(_PAGE_SIZE),
        }
        page = "1"
        while page:
            response = self._send("GET", "/projects", params={**params, "page": page})
            if response.is_error:
                msg = f"Unable to list projects: {_error_message(response)}"
                raise ReviewRequestError(msg, status_code=response.status_code)

            projects = cast("list[dict[str, object]]", response.json())
            for project in projects:
                if project.get("web_url") == self.repository_url:
                    return int(cast("int", project["id"]))
            page = response.headers.get("X-Next-Page", "")

        msg = f"Unable to find any project for url {self.repository_url}"
        raise ProjectNotFoundError(msg, url=self.repository_url)

    def submit(self, source_branch: str, target_branch: str) -> ReviewRequestResult:
        """Open a merge request from source_branch into target_branch.

        Args:
            source_branch: Branch holding the changes.
            target_branch: Branch to merge into.

        Returns:
            ReviewRequestResult; already_exists is True if an open merge
            request for the source branch was already there.

        Raises:
            ProjectNotFoundError: If no visible project matches the URL.
            ReviewRequestError: For any other failure, with the HTTP status.
        """
        project_id = self.find_project()
        request = MergeRequest(source_branch=source_branch, target_branch=target_branch)
        response = self._send(
            "POST",
            f"/projects/{project_id}/merge_requests",
            json=request.to_payload(),
        )

        if is_duplicate_merge_request(response):
            self._logger.info(
                "merge_request_exists",
                project_id=project_id,
                source_branch=source_branch,
                target_branch=target_branch,
            )
            return ReviewRequestResult(
                project_id=project_id,
                source_branch=source_branch,
                target_branch=target_branch,
                already_exists=True,
            )
        if response.is_error:
            msg = f"Unable to create merge request: {_error_message(response)}"
            raise ReviewRequestError(msg, status_code=response.status_code)

        body = cast("dict[str, object]", response.json())
        result = ReviewRequestResult(
            project_id=project_id,
            source_branch=source_branch,
            target_branch=target_branch,
            iid=cast("int | None", body.get("iid")),
            web_url=cast("str | None", body.get("web_url")),
        )
        self._logger.info(
            "merge_request_created",
            project_id=project_id,
            iid=result.iid,
            source_branch=source_branch,
            target_branch=target_branch,
        )
        return result

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, str | bool] | None = None,
    ) -> httpx.Response:
        """Send a request, wrapping transport failures in ReviewRequestError."""
        try:
            return self._client.request(method, url, params=params, json=json)
        except httpx.HTTPError as e:
            msg = f"GitLab request failed: {method} {url}: {e}"
            raise ReviewRequestError(msg) from e
