import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column, DateTime, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """
    Program participant and their contribution ledger.

    The ledger columns (merged_entries, cancelled_entries, points, badges) are
    written only by the reconciliation engine. Entries are plain JSON dicts
    shaped like MergedEntry / CancelledEntry.
    """

    __tablename__ = "users"

    id: uuid_pkg.UUID = Field(
        default_factory=uuid_pkg.uuid4,
        primary_key=True,
        index=True,
        nullable=False,
        sa_column_kwargs={"server_default": text("gen_random_uuid()")},
    )
    github_id: str = Field(max_length=255, nullable=False, unique=True, index=True)
    username: str = Field(max_length=255, nullable=False, index=True)
    display_name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=500)

    # Ledger
    merged_entries: list[dict[str, Any]] = Field(
        default=[], sa_column=Column(JSONB, nullable=False, server_default="[]")
    )
    cancelled_entries: list[dict[str, Any]] = Field(
        default=[], sa_column=Column(JSONB, nullable=False, server_default="[]")
    )
    points: int = Field(default=0, nullable=False, sa_column_kwargs={"server_default": text("0")})
    badges: list[str] = Field(
        default=["Newcomer"],
        sa_column=Column(JSONB, nullable=False, server_default='["Newcomer"]'),
    )

    joined_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )
    updated_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": text("now()")},
    )


class MergedEntry(SQLModel):
    """A merged-contribution entry in a user's ledger."""

    repo_url: str
    pr_number: int
    title: str
    merged_at: datetime


class CancelledEntry(SQLModel):
    """A rejected-contribution entry in a user's ledger."""

    repo_url: str
    pr_number: int
    title: str
    cancelled_at: datetime | None
    rejection_reason: str | None
