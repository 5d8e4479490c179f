"""
Merged pull request search with caching and rate limit handling.

This is called once per user inside batch loops (PR scan), so it never
raises: after retries are exhausted, or on any other failure, the result
is an empty list and the failure is logged.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from prledger.config import settings
from prledger.core.repo_urls import canonical_repo_url
from prledger.services.github.cache import (
    PullRequestCache,
    TTLPullRequestCache,
    pull_request_cache_key,
)
from prledger.services.github.constants import (
    GITHUB_API_VERSION,
    GITHUB_GRAPHQL_URL,
    MERGED_PULL_REQUESTS_QUERY,
    RATE_LIMIT_RESET_BUFFER_SECONDS,
)
from prledger.services.github.exceptions import GitHubRateLimitError
from prledger.services.github.helpers import handle_error_response, handle_graphql_errors
from prledger.services.github.http_client import get_github_client
from prledger.services.github.types import CachedPullRequests, MergedPullRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_pull_request_node(node: dict[str, Any]) -> MergedPullRequest:
    """Convert a GraphQL PullRequest node to MergedPullRequest."""
    repository = node["repository"]
    merged_at = _parse_datetime(node.get("mergedAt"))
    if merged_at is None:
        raise ValueError(f"Pull request {node.get('url')} has no mergedAt")

    return MergedPullRequest(
        node_id=node["id"],
        number=node["number"],
        title=node.get("title") or "",
        url=node.get("url") or "",
        repo_url=canonical_repo_url(
            repository.get("url")
            or f"https://github.com/{repository['owner']['login']}/{repository['name']}"
        ),
        author_login=(node.get("author") or {}).get("login"),
        created_at=_parse_datetime(node.get("createdAt")),
        merged_at=merged_at,
    )


class PullRequestFetcher:
    """
    Fetches a user's merged pull requests since the program start date.

    Rate limits are handled in two ways:
    - With a reset hint less than `max_reset_wait` away, sleep until the
      reset (plus a buffer) and retry without using up a retry, at most
      `max_reset_waits` times per fetch.
    - Otherwise back off exponentially (`backoff_base * 2**attempt`) for up
      to `max_retries` attempts.
    """

    def __init__(
        self,
        token: str,
        cache: PullRequestCache | None = None,
        *,
        program_start_date: str | None = None,
        page_size: int | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        max_reset_wait: float | None = None,
        max_reset_waits: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.token = token
        self.cache = cache if cache is not None else default_pull_request_cache
        self.program_start_date = program_start_date or settings.program_start_date
        self.page_size = min(page_size or settings.pr_search_page_size, 100)
        self.max_retries = max_retries if max_retries is not None else settings.github_max_retries
        self.backoff_base = (
            backoff_base if backoff_base is not None else settings.github_backoff_base_seconds
        )
        self.max_reset_wait = (
            max_reset_wait
            if max_reset_wait is not None
            else settings.github_max_reset_wait_seconds
        )
        self.max_reset_waits = (
            max_reset_waits
            if max_reset_waits is not None
            else settings.github_max_reset_waits
        )
        self._sleep = sleep
        self._clock = clock
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def fetch_merged_pull_requests(self, username: str) -> list[MergedPullRequest]:
        """
        Return merged PRs authored by `username`, newest search page only.

        Cached results are returned as-is. Never raises.
        """
        key = pull_request_cache_key(username)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"[pr-fetch] Using cached PR data for {username}")
            return list(cached.items)

        try:
            items = await self._with_backoff(lambda: self._search(username))
        except Exception as e:
            logger.warning(f"[pr-fetch] Giving up on {username}: {e}")
            return []

        self.cache.set(key, CachedPullRequests(items=tuple(items), fetched_at=self._clock()))
        return items

    def build_search_query(self, username: str) -> str:
        return f"type:pr author:{username} is:merged created:>={self.program_start_date}"

    async def _search(self, username: str) -> list[MergedPullRequest]:
        client = get_github_client()
        response = await client.post(
            GITHUB_GRAPHQL_URL,
            headers=self._headers,
            json={
                "query": MERGED_PULL_REQUESTS_QUERY,
                "variables": {
                    "searchQuery": self.build_search_query(username),
                    "first": self.page_size,
                },
            },
        )

        context = f"merged PRs of {username}"
        handle_error_response(response, context)
        payload = response.json()
        handle_graphql_errors(response, payload, context)

        nodes = payload["data"]["search"]["nodes"] or []
        return [
            parse_pull_request_node(node)
            for node in nodes
            if node and node.get("state") == "MERGED"
        ]

    async def _with_backoff(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run `operation`, retrying on rate limits. Re-raises when retries run out."""
        retries = 0
        reset_waits = 0
        while True:
            try:
                return await operation()
            except GitHubRateLimitError as e:
                if e.rate_limit_reset is not None:
                    wait = e.rate_limit_reset - self._clock()
                    if 0 < wait < self.max_reset_wait:
                        if reset_waits >= self.max_reset_waits:
                            raise
                        reset_waits += 1
                        logger.info(
                            f"[pr-fetch] Rate limit hit. Waiting {wait:.0f}s until reset"
                        )
                        await self._sleep(wait + RATE_LIMIT_RESET_BUFFER_SECONDS)
                        continue

                retries += 1
                if retries >= self.max_retries:
                    raise

                delay = self.backoff_base * (2**retries)
                logger.info(
                    f"[pr-fetch] Rate limit hit. Retrying in {delay:.1f}s "
                    f"(attempt {retries} of {self.max_retries})"
                )
                await self._sleep(delay)


default_pull_request_cache = TTLPullRequestCache(
    ttl=settings.pr_cache_ttl_seconds,
    maxsize=settings.pr_cache_maxsize,
)
