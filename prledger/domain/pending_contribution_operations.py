"""Domain operations for pending contributions (the review queue)."""

from collections.abc import Iterable

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prledger.domain.base_operations import BaseOperations
from prledger.models.pending_contribution import PendingContribution, ReviewStatus


class PendingContributionOperations(BaseOperations[PendingContribution]):
    """Operations for PendingContribution model."""

    def __init__(self) -> None:
        super().__init__(PendingContribution)

    def _owner_filter(self, identities: Iterable[str], username: str | None):
        """Rows submitted under any of the user's identity keys or their username."""
        conditions = [PendingContribution.user_identity.in_(list(identities))]  # type: ignore[attr-defined]
        if username:
            conditions.append(PendingContribution.username == username)
        return or_(*conditions)

    async def find_existing(
        self,
        db: AsyncSession,
        user_identity: str,
        username: str,
        repo_url: str,
        pr_number: int,
    ) -> PendingContribution | None:
        """
        Find a claim for the same PR under either key.

        Matches (user_identity, repo_url, pr_number) OR
        (username, repo_url, pr_number).
        """
        statement = (
            select(PendingContribution)
            .where(
                or_(
                    and_(
                        PendingContribution.user_identity == user_identity,
                        PendingContribution.repo_url == repo_url,
                        PendingContribution.pr_number == pr_number,
                    ),
                    and_(
                        PendingContribution.username == username,
                        PendingContribution.repo_url == repo_url,
                        PendingContribution.pr_number == pr_number,
                    ),
                )
            )
            .limit(1)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_status(
        self,
        db: AsyncSession,
        status: ReviewStatus,
    ) -> list[PendingContribution]:
        """Bulk-load every contribution in a review state (oldest first)."""
        statement = (
            select(PendingContribution)
            .where(PendingContribution.status == status.value)
            .order_by(PendingContribution.submitted_at.asc())  # type: ignore[attr-defined]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_for_owner(
        self,
        db: AsyncSession,
        identities: Iterable[str],
        username: str | None,
        status: ReviewStatus,
    ) -> list[PendingContribution]:
        """Contributions in a review state owned by the user (oldest first)."""
        statement = (
            select(PendingContribution)
            .where(
                PendingContribution.status == status.value,
                self._owner_filter(identities, username),
            )
            .order_by(PendingContribution.submitted_at.asc())  # type: ignore[attr-defined]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def list_by_status(
        self,
        db: AsyncSession,
        status: ReviewStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[PendingContribution]:
        """List contributions for the admin queue (newest first)."""
        statement = select(PendingContribution)
        if status is not None:
            statement = statement.where(PendingContribution.status == status.value)
        statement = (
            statement.order_by(PendingContribution.submitted_at.desc())  # type: ignore[attr-defined]
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def sum_approved_points(
        self,
        db: AsyncSession,
        identities: Iterable[str],
        username: str | None,
    ) -> int:
        """Sum suggested_points over every currently-approved row owned by the user."""
        statement = select(
            func.coalesce(func.sum(PendingContribution.suggested_points), 0)
        ).where(
            PendingContribution.status == ReviewStatus.APPROVED.value,
            self._owner_filter(identities, username),
        )
        result = await db.execute(statement)
        return int(result.scalar_one())

    async def count_by_status(self, db: AsyncSession, status: ReviewStatus) -> int:
        """Count contributions in a review state."""
        statement = select(func.count(PendingContribution.id)).where(
            PendingContribution.status == status.value
        )
        result = await db.execute(statement)
        return int(result.scalar_one())

    async def get_identity_keys(
        self,
        db: AsyncSession,
        statuses: Iterable[ReviewStatus],
    ) -> list[str]:
        """Return the user_identity of every row in the given states (one per row)."""
        statement = select(PendingContribution.user_identity).where(
            PendingContribution.status.in_([s.value for s in statuses])  # type: ignore[attr-defined]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def reprice_repository(
        self,
        db: AsyncSession,
        repo_url: str,
        points: int,
    ) -> int:
        """Set suggested_points on every contribution to a repository.

        Returns the number of rows changed.
        """
        statement = (
            update(PendingContribution)
            .where(
                PendingContribution.repo_url == repo_url,
                PendingContribution.suggested_points != points,
            )
            .values(suggested_points=points)
        )
        result = await db.execute(statement)
        await db.flush()
        return int(result.rowcount or 0)


pending_contribution_ops = PendingContributionOperations()
