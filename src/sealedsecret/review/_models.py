"""Review request models."""

from dataclasses import dataclass
from typing import Final

MERGE_REQUEST_TITLE: Final = "SealedSecrets update"
MERGE_REQUEST_DESCRIPTION: Final = (
    "This MR was automatically created by the sealedsecret publisher."
)


@dataclass(frozen=True, slots=True)
class MergeRequest:
    """A merge request to submit.

    Attributes:
        source_branch: Branch holding the changes.
        target_branch: Branch to merge into.
        title: Merge request title.
        description: Merge request description.
        remove_source_branch: Whether GitLab deletes the source branch on merge.
    """

    source_branch: str
    target_branch: str
    title: str = MERGE_REQUEST_TITLE
    description: str = MERGE_REQUEST_DESCRIPTION
    remove_source_branch: bool = True

    def to_payload(self) -> dict[str, str | bool]:
        """Return the GitLab API request body."""
        return {
            "source_branch": self.source_branch,
            "target_branch": self.target_branch,
            "title": self.title,
            "description": self.description,
            "remove_source_branch": self.remove_source_branch,
        }


@dataclass(frozen=True, slots=True)
class ReviewRequestResult:
    """Outcome of a merge request submission.

    Attributes:
        project_id: GitLab project id.
        source_branch: Branch holding the changes.
        target_branch: Branch to merge into.
        already_exists: True if an open merge request for the source branch
            already existed and nothing was created.
        iid: Project-scoped merge request number, if one was created.
        web_url: Merge request URL, if one was created.
    """

    project_id: int
    source_branch: str
    target_branch: str
    already_exists: bool = False
    iid: int | None = None
    web_url: str | None = None
