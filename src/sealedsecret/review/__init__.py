"""Merge request submission for published changes."""

from sealedsecret.review._gitlab import (
    DUPLICATE_MERGE_REQUEST_MESSAGE,
    GitLabReviewSubmitter,
    api_url_for,
    is_duplicate_merge_request,
    search_term,
)
from sealedsecret.review._models import (
    MERGE_REQUEST_DESCRIPTION,
    MERGE_REQUEST_TITLE,
    MergeRequest,
    ReviewRequestResult,
)

__all__ = [
    "DUPLICATE_MERGE_REQUEST_MESSAGE",
    "MERGE_REQUEST_DESCRIPTION",
    "MERGE_REQUEST_TITLE",
    "GitLabReviewSubmitter",
    "MergeRequest",
    "ReviewRequestResult",
    "api_url_for",
    "is_duplicate_merge_request",
    "search_term",
]
