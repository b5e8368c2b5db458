"""Python client for the LaterStack API, with optimistic submission tracking."""

from laterstack.client.api import LaterStackClient
from laterstack.client.submissions import (
    OptimisticArticle,
    SubmissionCoordinator,
    SubmissionStatus,
    merge_articles,
)

__all__ = [
    "LaterStackClient",
    "OptimisticArticle",
    "SubmissionCoordinator",
    "SubmissionStatus",
    "merge_articles",
]
