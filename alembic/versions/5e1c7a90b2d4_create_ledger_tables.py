"""create_ledger_tables

Revision ID: 5e1c7a90b2d4
Revises:
Create Date: 2026-10-19 09:12:31.418203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "5e1c7a90b2d4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. Users and their ledger columns
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("github_id", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column(
            "merged_entries",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default="[]",
            nullable=False,
        ),
        sa.Column(
            "cancelled_entries",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default="[]",
            nullable=False,
        ),
        sa.Column("points", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column(
            "badges",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default='["Newcomer"]',
            nullable=False,
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_github_id"), "users", ["github_id"], unique=True)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=False)

    # 2. Repository catalog
    op.create_table(
        "registered_repositories",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("repo_url", sa.String(length=500), nullable=False),
        sa.Column("owner_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column(
            "technology",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default="[]",
            nullable=True,
        ),
        sa.Column("submitted_by", sa.String(length=255), nullable=True),
        sa.Column(
            "success_points",
            sa.Integer(),
            nullable=True,
            comment="Points per merged PR; NULL uses the global default",
        ),
        sa.Column("review_status", sa.String(length=20), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_registered_repositories_id"), "registered_repositories", ["id"], unique=False
    )
    op.create_index(
        op.f("ix_registered_repositories_repo_url"),
        "registered_repositories",
        ["repo_url"],
        unique=True,
    )

    # 3. Review queue
    op.create_table(
        "pending_contributions",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("user_identity", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("repo_url", sa.String(length=500), nullable=False),
        sa.Column("pr_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=1000), nullable=False),
        sa.Column("pr_url", sa.String(length=500), nullable=True),
        sa.Column("merged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "suggested_points",
            sa.Integer(),
            nullable=False,
            comment="Resolved from the repository policy at submission time",
        ),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("reviewed_by", sa.String(length=255), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=2000), nullable=True),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_pending_contributions_id"), "pending_contributions", ["id"], unique=False
    )
    op.create_index(
        "ix_pending_contributions_identity_repo_pr",
        "pending_contributions",
        ["user_identity", "repo_url", "pr_number"],
        unique=True,
    )
    op.create_index(
        "ix_pending_contributions_username_repo_pr",
        "pending_contributions",
        ["username", "repo_url", "pr_number"],
        unique=True,
    )
    op.create_index(
        "ix_pending_contributions_status", "pending_contributions", ["status"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_pending_contributions_status", table_name="pending_contributions")
    op.drop_index("ix_pending_contributions_username_repo_pr", table_name="pending_contributions")
    op.drop_index("ix_pending_contributions_identity_repo_pr", table_name="pending_contributions")
    op.drop_index(op.f("ix_pending_contributions_id"), table_name="pending_contributions")
    op.drop_table("pending_contributions")

    op.drop_index(
        op.f("ix_registered_repositories_repo_url"), table_name="registered_repositories"
    )
    op.drop_index(op.f("ix_registered_repositories_id"), table_name="registered_repositories")
    op.drop_table("registered_repositories")

    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_index(op.f("ix_users_github_id"), table_name="users")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")
