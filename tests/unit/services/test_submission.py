"""Unit tests for SubmissionGateway - idempotent, deduplicated intake."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy.exc import IntegrityError

from prledger.core.repo_urls import InvalidRepositoryUrl
from prledger.models.pending_contribution import ReviewStatus
from prledger.services.contributions.submission import PullRequestClaim, SubmissionGateway

from tests.helpers.fakes import (
    FakeContributionOps,
    FakeRepositoryOps,
    make_contribution,
    make_db,
    make_repository,
)

REPO = "https://github.com/acme/widgets"


def _claim(number: int = 7) -> PullRequestClaim:
    return PullRequestClaim(
        number=number,
        title="Add retry support",
        merged_at=datetime(2025, 4, 2, tzinfo=UTC),
        url=f"{REPO}/pull/{number}",
    )


class TestSubmit:
    def setup_method(self):
        self.db = make_db()
        self.contributions = FakeContributionOps()
        self.repositories = FakeRepositoryOps([make_repository(REPO, success_points=None)])
        self.gateway = SubmissionGateway(
            contributions=self.contributions,
            repositories=self.repositories,
            default_points=50,
        )

    @pytest.mark.asyncio
    async def test_creates_pending_record_with_default_points(self):
        result = await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

        assert result.created is True
        assert result.contribution.status == ReviewStatus.PENDING.value
        assert result.contribution.suggested_points == 50
        assert len(self.contributions.rows) == 1

    @pytest.mark.asyncio
    async def test_points_come_from_repository_policy(self):
        self.repositories.repos[0].success_points = 120

        result = await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

        assert result.contribution.suggested_points == 120

    @pytest.mark.asyncio
    async def test_repeat_submission_is_idempotent(self):
        first = await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())
        second = await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

        assert second.created is False
        assert second.contribution is first.contribution
        assert len(self.contributions.rows) == 1

    @pytest.mark.asyncio
    async def test_same_pr_under_other_identity_key_is_a_duplicate(self):
        """Username match is enough, even if the identity key differs (legacy internal id)."""
        await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

        result = await self.gateway.submit(
            self.db, "5b0f2a8e-8d4b-4b8e-9a55-7c0ad3f1e001", "octocat", REPO, _claim()
        )

        assert result.created is False
        assert len(self.contributions.rows) == 1

    @pytest.mark.asyncio
    async def test_url_variants_are_the_same_repository(self):
        await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

        result = await self.gateway.submit(
            self.db, "1001", "octocat", "https://github.com/Acme/Widgets.git", _claim()
        )

        assert result.created is False

    @pytest.mark.asyncio
    async def test_existing_record_returned_unchanged(self):
        existing = make_contribution(
            repo_url=REPO,
            pr_number=7,
            user_identity="1001",
            username="octocat",
            status=ReviewStatus.APPROVED,
            suggested_points=80,
        )
        self.contributions.rows.append(existing)

        result = await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

        assert result.created is False
        assert result.contribution.status == ReviewStatus.APPROVED.value
        assert result.contribution.suggested_points == 80

    @pytest.mark.asyncio
    async def test_integrity_error_race_returns_existing_row(self):
        winner = make_contribution(repo_url=REPO, pr_number=7, user_identity="1001")

        async def racing_create(db, obj_in):
            self.contributions.rows.append(winner)
            raise IntegrityError("INSERT", {}, Exception("duplicate key"))

        self.contributions.create = racing_create

        result = await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

        assert result.created is False
        assert result.contribution is winner
        self.db.begin_nested.assert_called_once()

    @pytest.mark.asyncio
    async def test_integrity_error_without_existing_row_propagates(self):
        async def failing_create(db, obj_in):
            raise IntegrityError("INSERT", {}, Exception("check violation"))

        self.contributions.create = failing_create

        with pytest.raises(IntegrityError):
            await self.gateway.submit(self.db, "1001", "octocat", REPO, _claim())

    @pytest.mark.asyncio
    async def test_invalid_repository_url(self):
        with pytest.raises(InvalidRepositoryUrl):
            await self.gateway.submit(self.db, "1001", "octocat", "https://example.com/x", _claim())
