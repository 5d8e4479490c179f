"""Exceptions for the GitHub client."""


class GitHubAPIError(Exception):
    """Error from GitHub API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        rate_limit_reset: int | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp when rate limit resets
        super().__init__(message)


class GitHubRateLimitError(GitHubAPIError):
    """GitHub refused the request because a rate limit is exhausted.

    `rate_limit_reset` carries the reset hint when GitHub provided one.
    """

    def __init__(self, message: str = "GitHub API rate limit exceeded", **kwargs):
        kwargs.setdefault("status_code", 403)
        super().__init__(message, **kwargs)
