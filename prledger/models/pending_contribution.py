"""Pending contribution model - a claimed merged pull request and its review state."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime, Index, text
from sqlmodel import Field, SQLModel

from prledger.models.base import UUIDMixin


class ReviewStatus(str, Enum):
    """Review state of a contribution claim."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PendingContribution(UUIDMixin, SQLModel, table=True):
    """
    A merged pull request submitted for review.

    The same contribution can arrive keyed by GitHub id (API scan) or by
    username (manual intake), so both (user_identity, repo_url, pr_number)
    and (username, repo_url, pr_number) are unique at the database level.
    """

    __tablename__ = "pending_contributions"
    __table_args__ = (
        Index(
            "ix_pending_contributions_identity_repo_pr",
            "user_identity",
            "repo_url",
            "pr_number",
            unique=True,
        ),
        Index(
            "ix_pending_contributions_username_repo_pr",
            "username",
            "repo_url",
            "pr_number",
            unique=True,
        ),
        Index("ix_pending_contributions_status", "status"),
    )

    # Submitter
    user_identity: str = Field(
        max_length=255,
        nullable=False,
        description="External (GitHub) user id, or a legacy internal id",
    )
    username: str = Field(max_length=255, nullable=False)

    # Pull request
    repo_url: str = Field(max_length=500, nullable=False)
    pr_number: int = Field(nullable=False)
    title: str = Field(max_length=1000, nullable=False)
    pr_url: str | None = Field(default=None, max_length=500)
    merged_at: datetime = Field(  # type: ignore[call-overload]
        nullable=False,
        sa_type=DateTime(timezone=True),
    )

    # Captured from the repository policy at submission time
    suggested_points: int = Field(default=50, nullable=False, ge=0)

    # Review
    status: str = Field(default=ReviewStatus.PENDING.value, max_length=20)
    reviewed_by: str | None = Field(default=None, max_length=255)
    reviewed_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )
    rejection_reason: str | None = Field(default=None, max_length=2000)

    submitted_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )


class PendingContributionCreate(SQLModel):
    """Schema for the admin submission intake."""

    user_identity: str = Field(min_length=1)
    username: str = Field(min_length=1)
    repo_url: str = Field(min_length=1)
    pr_number: int = Field(gt=0)
    title: str
    merged_at: datetime
    pr_url: str | None = None


class PendingContributionRead(SQLModel):
    """Response schema for a contribution claim."""

    id: uuid_pkg.UUID
    user_identity: str
    username: str
    repo_url: str
    pr_number: int
    title: str
    pr_url: str | None
    merged_at: datetime
    suggested_points: int
    status: str
    reviewed_by: str | None
    reviewed_at: datetime | None
    rejection_reason: str | None
    submitted_at: datetime
