"""Registered repository model - the catalog of repositories that earn points."""

from enum import Enum

from sqlalchemy import Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from prledger.models.base import TimestampMixin, UUIDMixin


class RepositoryReviewStatus(str, Enum):
    """Catalog review state. Only accepted repositories are eligible for points."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RegisteredRepository(UUIDMixin, TimestampMixin, SQLModel, table=True):
    """A repository in the program catalog."""

    __tablename__ = "registered_repositories"

    repo_url: str = Field(max_length=500, nullable=False, unique=True, index=True)
    owner_name: str = Field(max_length=255, nullable=False)
    description: str | None = Field(default=None, max_length=2000)
    technology: list[str] = Field(default=[], sa_column=Column(JSONB, server_default="[]"))
    submitted_by: str | None = Field(default=None, max_length=255)

    # Points for a merged PR. None means the global default applies.
    success_points: int | None = Field(default=None)
    review_status: str = Field(default=RepositoryReviewStatus.PENDING.value, max_length=20)


class RepositoryPointsUpdate(SQLModel):
    """Schema for changing a repository's point value."""

    success_points: int | None = Field(default=None, ge=0)
