import logging
import uuid as uuid_pkg
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prledger.domain.base_operations import BaseOperations
from prledger.models.user import User

logger = logging.getLogger(__name__)


@dataclass
class LedgerRow:
    """The ledger columns of one user, loaded without the full ORM object."""

    id: uuid_pkg.UUID
    username: str
    merged_count: int
    cancelled_count: int
    points: int


class UserOperations(BaseOperations[User]):
    """Operations for User model."""

    def __init__(self) -> None:
        super().__init__(User)

    async def get_by_github_id(self, db: AsyncSession, github_id: str) -> User | None:
        """Get a user by external GitHub id."""
        statement = select(User).where(User.github_id == github_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_by_username(self, db: AsyncSession, username: str) -> User | None:
        """
        Get a user by GitHub username.

        Usernames are not unique in storage (renames happen); the earliest
        account wins.
        """
        statement = (
            select(User)
            .where(User.username == username)
            .order_by(User.joined_at.asc())  # type: ignore[attr-defined]
            .limit(1)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_all(self, db: AsyncSession) -> list[User]:
        """All users, oldest first."""
        statement = select(User).order_by(User.joined_at.asc())  # type: ignore[attr-defined]
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_ledger_rows(self, db: AsyncSession) -> list[LedgerRow]:
        """Ledger sizes and points for every user (read-only audit input)."""
        statement = select(
            User.id,
            User.username,
            User.merged_entries,
            User.cancelled_entries,
            User.points,
        )
        result = await db.execute(statement)
        return [
            LedgerRow(
                id=row.id,
                username=row.username,
                merged_count=len(row.merged_entries or []),
                cancelled_count=len(row.cancelled_entries or []),
                points=row.points or 0,
            )
            for row in result.all()
        ]

    async def save_ledger(
        self,
        db: AsyncSession,
        user: User,
        merged_entries: list[dict[str, Any]],
        cancelled_entries: list[dict[str, Any]],
        points: int,
        badges: list[str],
    ) -> User:
        """
        Write the ledger columns.

        Lists are replaced rather than mutated in place so the JSONB columns
        are always flagged dirty.
        """
        return await self.update(
            db,
            user,
            {
                "merged_entries": list(merged_entries),
                "cancelled_entries": list(cancelled_entries),
                "points": points,
                "badges": list(badges),
            },
        )


user_ops = UserOperations()
