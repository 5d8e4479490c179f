"""PR scan - discovers merged pull requests and queues them for review.

For every user: fetch merged PRs, keep those against accepted repositories,
submit each through the gateway, then refresh the user's ledger. Fetches run
a few users at a time with a pause between batches to stay well inside the
GitHub search rate limit; database writes stay sequential on one session.
"""

import asyncio
import logging
import time
import uuid as uuid_pkg
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from prledger.config import settings
from prledger.domain.repository_operations import RepositoryOperations, repository_ops
from prledger.domain.user_operations import UserOperations, user_ops
from prledger.services.contributions.reconciliation import (
    ReconciliationEngine,
    reconciliation_engine,
)
from prledger.services.contributions.submission import (
    PullRequestClaim,
    SubmissionGateway,
    submission_gateway,
)
from prledger.services.github import MergedPullRequest, PullRequestFetcher

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    """Summary of a PR scan run (for logging/monitoring)."""

    users_scanned: int = 0
    pull_requests_found: int = 0
    submissions_created: int = 0
    duplicates_skipped: int = 0
    unregistered_skipped: int = 0
    ledgers_updated: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class _ScanTarget:
    id: uuid_pkg.UUID
    github_id: str
    username: str


class PullRequestScanner:
    def __init__(
        self,
        fetcher: PullRequestFetcher,
        gateway: SubmissionGateway = submission_gateway,
        engine: ReconciliationEngine = reconciliation_engine,
        users: UserOperations = user_ops,
        repositories: RepositoryOperations = repository_ops,
        batch_size: int | None = None,
        batch_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.gateway = gateway
        self.engine = engine
        self.users = users
        self.repositories = repositories
        self.batch_size = max(1, batch_size or settings.scan_batch_size)
        self.batch_delay = (
            batch_delay if batch_delay is not None else settings.scan_batch_delay_seconds
        )
        self._sleep = sleep

    async def scan_all(self, db: AsyncSession) -> ScanReport:
        start = time.monotonic()
        report = ScanReport()

        targets = [
            _ScanTarget(id=user.id, github_id=user.github_id, username=user.username)
            for user in await self.users.get_all(db)
        ]
        accepted_urls = await self.repositories.get_accepted_urls(db)
        logger.info(
            f"[pr-scan] Scanning {len(targets)} users against "
            f"{len(accepted_urls)} registered repositories"
        )

        for index in range(0, len(targets), self.batch_size):
            batch = targets[index : index + self.batch_size]
            if index > 0 and self.batch_delay > 0:
                await self._sleep(self.batch_delay)

            results = await asyncio.gather(
                *(self.fetcher.fetch_merged_pull_requests(t.username) for t in batch)
            )

            for target, pull_requests in zip(batch, results, strict=True):
                await self._process_user(db, target, pull_requests, accepted_urls, report)

        report.duration_seconds = round(time.monotonic() - start, 2)
        logger.info(
            f"[pr-scan] Completed: {report.users_scanned} users, "
            f"{report.pull_requests_found} PRs found, "
            f"{report.submissions_created} new, "
            f"{report.duplicates_skipped} duplicates, "
            f"{len(report.errors)} errors "
            f"({report.duration_seconds}s)"
        )
        return report

    async def _process_user(
        self,
        db: AsyncSession,
        target: _ScanTarget,
        pull_requests: list[MergedPullRequest],
        accepted_urls: set[str],
        report: ScanReport,
    ) -> None:
        try:
            report.pull_requests_found += len(pull_requests)
            for pr in pull_requests:
                if pr.repo_url not in accepted_urls:
                    report.unregistered_skipped += 1
                    continue

                result = await self.gateway.submit(
                    db,
                    target.github_id,
                    target.username,
                    pr.repo_url,
                    PullRequestClaim(
                        number=pr.number,
                        title=pr.title,
                        merged_at=pr.merged_at,
                        url=pr.url,
                    ),
                )
                if result.created:
                    report.submissions_created += 1
                else:
                    report.duplicates_skipped += 1

            user = await self.users.get(db, target.id)
            if user is not None:
                update = await self.engine.reconcile_user(db, user)
                if update.changed:
                    report.ledgers_updated += 1

            await db.commit()
            report.users_scanned += 1

        except Exception as e:
            error_msg = f"User {target.username} ({target.id}): {e}"
            logger.error(f"[pr-scan] {error_msg}")
            report.errors.append(error_msg)
            await db.rollback()
