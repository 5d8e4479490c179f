"""Operations for the registered repository catalog."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prledger.core.repo_urls import canonical_repo_url
from prledger.domain.base_operations import BaseOperations
from prledger.domain.pending_contribution_operations import pending_contribution_ops
from prledger.models.registered_repository import RegisteredRepository, RepositoryReviewStatus

logger = logging.getLogger(__name__)


class RepositoryOperations(BaseOperations[RegisteredRepository]):
    """Operations for RegisteredRepository model."""

    def __init__(self) -> None:
        super().__init__(RegisteredRepository)

    async def get_by_url(self, db: AsyncSession, repo_url: str) -> RegisteredRepository | None:
        """Get a repository by its canonical URL."""
        statement = select(RegisteredRepository).where(
            RegisteredRepository.repo_url == canonical_repo_url(repo_url)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_accepted_urls(self, db: AsyncSession) -> set[str]:
        """Canonical URLs of all accepted repositories."""
        statement = select(RegisteredRepository.repo_url).where(
            RegisteredRepository.review_status == RepositoryReviewStatus.ACCEPTED.value
        )
        result = await db.execute(statement)
        return set(result.scalars().all())

    async def set_success_points(
        self,
        db: AsyncSession,
        repo: RegisteredRepository,
        points: int | None,
        default_points: int,
    ) -> int:
        """
        Change a repository's point value and re-price its contributions.

        Every existing contribution to the repository (pending and already
        approved) takes the new value, so the next reconciliation re-derives
        user totals from it. None restores the global default.

        Returns:
            Number of contributions re-priced.
        """
        await self.update(db, repo, {"success_points": points})
        effective = points if points is not None else default_points
        repriced = await pending_contribution_ops.reprice_repository(db, repo.repo_url, effective)
        logger.info(
            f"Repository {repo.repo_url} now worth {effective} points "
            f"({repriced} contributions re-priced)"
        )
        return repriced


repository_ops = RepositoryOperations()
