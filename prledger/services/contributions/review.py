"""
Review state machine for contribution claims.

    pending --approve--> approved
    pending --reject---> rejected

Both targets are terminal. Ledgers are not touched here; the reconciliation
engine picks resolved claims up.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from prledger.domain.pending_contribution_operations import (
    PendingContributionOperations,
    pending_contribution_ops,
)
from prledger.models.pending_contribution import PendingContribution, ReviewStatus
from prledger.services.contributions.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReviewService:
    def __init__(
        self,
        contributions: PendingContributionOperations = pending_contribution_ops,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.contributions = contributions
        self._clock = clock

    def _require_pending(self, contribution: PendingContribution, action: str) -> None:
        if contribution.status != ReviewStatus.PENDING.value:
            raise InvalidTransitionError(contribution.status, action)

    async def approve(
        self,
        db: AsyncSession,
        contribution: PendingContribution,
        reviewer: str,
    ) -> PendingContribution:
        """Mark a pending claim approved."""
        self._require_pending(contribution, "approve")
        if not reviewer:
            raise ValueError("Reviewer is required")

        updated = await self.contributions.update(
            db,
            contribution,
            {
                "status": ReviewStatus.APPROVED.value,
                "reviewed_by": reviewer,
                "reviewed_at": self._clock(),
            },
        )
        logger.info(
            f"Contribution {updated.repo_url}#{updated.pr_number} approved by {reviewer}"
        )
        return updated

    async def reject(
        self,
        db: AsyncSession,
        contribution: PendingContribution,
        reviewer: str,
        reason: str,
    ) -> PendingContribution:
        """Mark a pending claim rejected. A non-empty reason is mandatory."""
        self._require_pending(contribution, "reject")
        if not reviewer:
            raise ValueError("Reviewer is required")
        reason = (reason or "").strip()
        if not reason:
            raise ValueError("Rejection reason is required")

        updated = await self.contributions.update(
            db,
            contribution,
            {
                "status": ReviewStatus.REJECTED.value,
                "reviewed_by": reviewer,
                "reviewed_at": self._clock(),
                "rejection_reason": reason,
            },
        )
        logger.info(
            f"Contribution {updated.repo_url}#{updated.pr_number} rejected by {reviewer}: {reason}"
        )
        return updated

    async def adjust_points(
        self,
        db: AsyncSession,
        contribution: PendingContribution,
        points: int,
    ) -> PendingContribution:
        """
        Override the point value of a single claim.

        Allowed while pending or approved; an approved claim's new value is
        picked up by the next reconciliation.
        """
        if contribution.status == ReviewStatus.REJECTED.value:
            raise InvalidTransitionError(contribution.status, "re-price")
        if points < 0:
            raise ValueError("Points must be zero or greater")

        previous = contribution.suggested_points
        updated = await self.contributions.update(db, contribution, {"suggested_points": points})
        logger.info(
            f"Contribution {updated.repo_url}#{updated.pr_number} re-priced "
            f"{previous} -> {points}"
        )
        return updated

    async def purge_rejected(self, db: AsyncSession, contribution: PendingContribution) -> None:
        """Delete a claim. Only rejected claims may be deleted."""
        if contribution.status != ReviewStatus.REJECTED.value:
            raise InvalidTransitionError(
                contribution.status,
                "delete",
                f"Only rejected contributions can be deleted (this one is {contribution.status})",
            )
        await self.contributions.delete(db, contribution.id)
        logger.info(f"Purged rejected contribution {contribution.repo_url}#{contribution.pr_number}")


review_service = ReviewService()
