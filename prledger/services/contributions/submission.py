"""
Submission gateway - the only way a contribution claim enters the review queue.

A merged PR can be observed many times (every scan, manual intake, retries)
and under two identity keys, so submission is idempotent: an existing
claim for the same PR is returned instead of a new row.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from prledger.config import settings
from prledger.core.repo_urls import canonical_repo_url
from prledger.domain.pending_contribution_operations import (
    PendingContributionOperations,
    pending_contribution_ops,
)
from prledger.domain.repository_operations import RepositoryOperations, repository_ops
from prledger.models.pending_contribution import PendingContribution, ReviewStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PullRequestClaim:
    """The pull request being claimed."""

    number: int
    title: str
    merged_at: datetime
    url: str | None = None


@dataclass
class SubmissionResult:
    contribution: PendingContribution
    created: bool


class SubmissionGateway:
    """Deduplicating intake for contribution claims."""

    def __init__(
        self,
        contributions: PendingContributionOperations = pending_contribution_ops,
        repositories: RepositoryOperations = repository_ops,
        default_points: int | None = None,
    ):
        self.contributions = contributions
        self.repositories = repositories
        self.default_points = (
            default_points if default_points is not None else settings.default_success_points
        )

    async def resolve_points(self, db: AsyncSession, repo_url: str) -> int:
        """Point value of a merged PR to `repo_url` under the current repository policy."""
        repo = await self.repositories.get_by_url(db, repo_url)
        if repo is not None and repo.success_points is not None:
            return repo.success_points
        return self.default_points

    async def submit(
        self,
        db: AsyncSession,
        user_identity: str,
        username: str,
        repo_url: str,
        pr: PullRequestClaim,
    ) -> SubmissionResult:
        """
        Queue a claim, or return the claim already on file for this PR.

        Never touches a user's ledger.

        Raises:
            InvalidRepositoryUrl: If repo_url is not a GitHub repository URL
        """
        repo_url = canonical_repo_url(repo_url)

        existing = await self.contributions.find_existing(
            db, user_identity, username, repo_url, pr.number
        )
        if existing is not None:
            logger.debug(f"Duplicate claim for {repo_url}#{pr.number} by {username}")
            return SubmissionResult(contribution=existing, created=False)

        points = await self.resolve_points(db, repo_url)

        try:
            async with db.begin_nested():
                contribution = await self.contributions.create(
                    db,
                    {
                        "user_identity": user_identity,
                        "username": username,
                        "repo_url": repo_url,
                        "pr_number": pr.number,
                        "title": pr.title,
                        "pr_url": pr.url,
                        "merged_at": pr.merged_at,
                        "suggested_points": points,
                        "status": ReviewStatus.PENDING.value,
                    },
                )
        except IntegrityError:
            # Lost a race with a concurrent submission of the same PR
            existing = await self.contributions.find_existing(
                db, user_identity, username, repo_url, pr.number
            )
            if existing is None:
                raise
            logger.info(f"Concurrent claim for {repo_url}#{pr.number} resolved to existing row")
            return SubmissionResult(contribution=existing, created=False)

        logger.info(
            f"Queued claim {repo_url}#{pr.number} by {username} ({points} points)"
        )
        return SubmissionResult(contribution=contribution, created=True)


submission_gateway = SubmissionGateway()
