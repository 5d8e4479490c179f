"""
TTL caching for merged pull request searches.

The fetcher receives its cache as a dependency, so tests can pass
NullPullRequestCache (or a TTL cache with a fake timer) and a deployment
can swap in a shared cache without touching the fetcher.
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol

from cachetools import TTLCache  # type: ignore[import-untyped]

from prledger.services.github.types import CachedPullRequests

logger = logging.getLogger(__name__)


def pull_request_cache_key(username: str) -> str:
    return f"prs:{username.lower()}"


class PullRequestCache(Protocol):
    """Cache interface used by PullRequestFetcher."""

    def get(self, key: str) -> CachedPullRequests | None: ...

    def set(self, key: str, value: CachedPullRequests) -> None: ...

    def clear(self) -> None: ...


class TTLPullRequestCache:
    """In-process cache; entries expire `ttl` seconds after they are written."""

    def __init__(
        self,
        ttl: float,
        maxsize: int = 1000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache[str, CachedPullRequests] = TTLCache(
            maxsize=maxsize, ttl=ttl, timer=timer
        )

    def get(self, key: str) -> CachedPullRequests | None:
        entry = self._cache.get(key)
        logger.debug(f"Cache {'HIT' if entry is not None else 'MISS'}: {key}")
        return entry

    def set(self, key: str, value: CachedPullRequests) -> None:
        self._cache[key] = value

    def clear(self) -> None:
        self._cache.clear()

    def stats(self) -> dict[str, int]:
        """Current cache size for monitoring."""
        return {"size": len(self._cache), "maxsize": int(self._cache.maxsize)}


class NullPullRequestCache:
    """Cache that never stores anything."""

    def get(self, key: str) -> CachedPullRequests | None:
        return None

    def set(self, key: str, value: CachedPullRequests) -> None:
        return None

    def clear(self) -> None:
        return None
