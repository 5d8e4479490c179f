"""
GitHub client package.

Module structure:
- pull_requests.py: PullRequestFetcher (merged PR search with retry/backoff)
- cache.py: Injectable TTL cache for search results
- helpers.py: Rate limit handling and error utilities
- http_client.py: Shared httpx client
- types.py: Data types
- exceptions.py: Custom exceptions
- constants.py: API constants and the GraphQL query
"""

from prledger.services.github.cache import (
    NullPullRequestCache,
    PullRequestCache,
    TTLPullRequestCache,
    pull_request_cache_key,
)
from prledger.services.github.exceptions import GitHubAPIError, GitHubRateLimitError
from prledger.services.github.helpers import RateLimitInfo, handle_error_response
from prledger.services.github.http_client import close_github_client, get_github_client
from prledger.services.github.pull_requests import (
    PullRequestFetcher,
    default_pull_request_cache,
    parse_pull_request_node,
)
from prledger.services.github.types import CachedPullRequests, MergedPullRequest

__all__ = [
    # Fetcher (main entry point)
    "PullRequestFetcher",
    "parse_pull_request_node",
    # HTTP client lifecycle
    "close_github_client",
    "get_github_client",
    # Cache
    "PullRequestCache",
    "TTLPullRequestCache",
    "NullPullRequestCache",
    "default_pull_request_cache",
    "pull_request_cache_key",
    # Utilities
    "RateLimitInfo",
    "handle_error_response",
    # Exceptions
    "GitHubAPIError",
    "GitHubRateLimitError",
    # Types
    "CachedPullRequests",
    "MergedPullRequest",
]
