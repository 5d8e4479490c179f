"""
Resolve the owner of a contribution identity key.

Contributions are keyed by the submitter's GitHub id, but older rows carry
an internal user id, and some can only be matched by username. Strategies
are tried in order and the first match wins.
"""

import logging
import uuid as uuid_pkg
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from prledger.domain.user_operations import UserOperations, user_ops
from prledger.models.user import User

logger = logging.getLogger(__name__)


def parse_uuid(value: str) -> uuid_pkg.UUID | None:
    try:
        return uuid_pkg.UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


class IdentityStrategy(Protocol):
    name: str

    async def lookup(self, db: AsyncSession, key: str, username: str | None) -> User | None: ...


class ByExternalIdentity:
    """Match the key against the user's GitHub id."""

    name = "external_id"

    def __init__(self, users: UserOperations = user_ops):
        self.users = users

    async def lookup(self, db: AsyncSession, key: str, username: str | None) -> User | None:
        return await self.users.get_by_github_id(db, key)


class ByInternalId:
    """Match a UUID-shaped key against the user's primary key."""

    name = "internal_id"

    def __init__(self, users: UserOperations = user_ops):
        self.users = users

    async def lookup(self, db: AsyncSession, key: str, username: str | None) -> User | None:
        user_id = parse_uuid(key)
        if user_id is None:
            return None
        return await self.users.get(db, user_id)


class ByUsername:
    """Fall back to the username recorded on the contribution."""

    name = "username"

    def __init__(self, users: UserOperations = user_ops):
        self.users = users

    async def lookup(self, db: AsyncSession, key: str, username: str | None) -> User | None:
        if not username:
            return None
        return await self.users.get_by_username(db, username)


@dataclass
class Resolved:
    user: User
    strategy: str


@dataclass
class Unresolved:
    key: str
    tried: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return f"No user found for identity {self.key} (tried {', '.join(self.tried)})"


class IdentityResolver:
    """Ordered list of lookup strategies."""

    def __init__(self, strategies: list[IdentityStrategy] | None = None):
        self.strategies: list[IdentityStrategy] = (
            strategies
            if strategies is not None
            else [ByExternalIdentity(), ByInternalId(), ByUsername()]
        )

    async def resolve(
        self,
        db: AsyncSession,
        key: str,
        username: str | None = None,
    ) -> Resolved | Unresolved:
        tried: list[str] = []
        for strategy in self.strategies:
            tried.append(strategy.name)
            user = await strategy.lookup(db, key, username)
            if user is not None:
                if strategy.name != "external_id":
                    logger.debug(f"Identity {key} resolved by {strategy.name}")
                return Resolved(user=user, strategy=strategy.name)
        return Unresolved(key=key, tried=tried)


def identity_keys_for(user: User) -> list[str]:
    """Every identity key a contribution owned by `user` may carry."""
    return [user.github_id, str(user.id)]
