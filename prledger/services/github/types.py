"""Data types for GitHub API responses."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class MergedPullRequest:
    """A merged pull request found by the author search."""

    node_id: str
    number: int
    title: str
    url: str
    repo_url: str  # canonical https://github.com/<owner>/<repo>
    author_login: str | None
    created_at: datetime | None
    merged_at: datetime


@dataclass(frozen=True)
class CachedPullRequests:
    """Cached search result for one username."""

    items: tuple[MergedPullRequest, ...]
    fetched_at: float  # Unix timestamp of the fetch
