"""
GitHub API helper utilities.

Rate limit header parsing and error response processing for GitHub REST
and GraphQL calls.
"""

import logging
import time
from typing import Any

import httpx

from prledger.services.github.exceptions import GitHubAPIError, GitHubRateLimitError

logger = logging.getLogger(__name__)


class RateLimitInfo:
    """Rate limit information from GitHub API response."""

    def __init__(self, response: httpx.Response) -> None:
        self.remaining = response.headers.get("X-RateLimit-Remaining")
        self.reset = response.headers.get("X-RateLimit-Reset")
        self.retry_after = response.headers.get("Retry-After")

    @property
    def reset_timestamp(self) -> int | None:
        """
        Get reset timestamp as integer, or None if not available.

        Secondary rate limits only send Retry-After (seconds); it is turned
        into an absolute timestamp so callers handle both the same way.
        """
        if self.reset:
            return int(self.reset)
        if self.retry_after and self.retry_after.isdigit():
            return int(time.time()) + int(self.retry_after)
        return None

    @property
    def is_exhausted(self) -> bool:
        """Check if rate limit is exhausted."""
        return self.remaining is not None and int(self.remaining) == 0


def _is_rate_limit_message(response: httpx.Response) -> bool:
    try:
        body = response.json()
    except ValueError:
        return False
    message = body.get("message", "") if isinstance(body, dict) else ""
    return "rate limit" in message.lower()


def handle_error_response(response: httpx.Response, context: str) -> None:
    """
    Handle common error responses from GitHub API.

    Args:
        response: The HTTP response from GitHub API
        context: What was being requested, for error messages

    Raises:
        GitHubRateLimitError: If a primary or secondary rate limit was hit
        GitHubAPIError: For authentication, authorization, or other API errors
    """
    rate_info = RateLimitInfo(response)

    if response.status_code == 401:
        raise GitHubAPIError("Invalid or expired GitHub token", 401)
    elif response.status_code in (403, 429):
        if (
            response.status_code == 429
            or rate_info.is_exhausted
            or rate_info.retry_after
            or _is_rate_limit_message(response)
        ):
            raise GitHubRateLimitError(
                status_code=response.status_code,
                rate_limit_reset=rate_info.reset_timestamp,
            )
        raise GitHubAPIError(f"GitHub API forbidden: {context}", 403)
    elif response.status_code != 200:
        raise GitHubAPIError(
            f"GitHub API error for {context}: {response.status_code}", response.status_code
        )


def handle_graphql_errors(response: httpx.Response, payload: dict[str, Any], context: str) -> None:
    """
    Raise for errors GitHub reports inside a 200 GraphQL response.

    Raises:
        GitHubRateLimitError: If any error has type RATE_LIMITED
        GitHubAPIError: For any other GraphQL error
    """
    errors = payload.get("errors") or []
    if not errors:
        return

    if any(error.get("type") == "RATE_LIMITED" for error in errors):
        raise GitHubRateLimitError(
            status_code=response.status_code,
            rate_limit_reset=RateLimitInfo(response).reset_timestamp,
        )

    messages = "; ".join(str(error.get("message", "unknown error")) for error in errors)
    raise GitHubAPIError(f"GraphQL error for {context}: {messages}", response.status_code)
