"""Unit tests for RepositoryOperations."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from prledger.domain.repository_operations import RepositoryOperations

from tests.helpers.fakes import make_repository
from tests.helpers.mock_factories import mock_scalar_result, mock_scalars_result


class TestGetByUrl:
    def setup_method(self):
        self.ops = RepositoryOperations()
        self.db = AsyncMock()

    @pytest.mark.asyncio
    async def test_looks_up_canonical_url(self):
        repo = make_repository()
        self.db.execute = AsyncMock(return_value=mock_scalar_result(repo))

        result = await self.ops.get_by_url(self.db, "https://github.com/Acme/Widgets.git")

        assert result is repo
        params = self.db.execute.call_args[0][0].compile().params
        assert "https://github.com/acme/widgets" in params.values()


class TestGetAcceptedUrls:
    @pytest.mark.asyncio
    async def test_returns_set(self):
        ops = RepositoryOperations()
        db = AsyncMock()
        db.execute = AsyncMock(
            return_value=mock_scalars_result(
                ["https://github.com/acme/widgets", "https://github.com/acme/gadgets"]
            )
        )

        urls = await ops.get_accepted_urls(db)
        assert urls == {"https://github.com/acme/widgets", "https://github.com/acme/gadgets"}


class TestSetSuccessPoints:
    def setup_method(self):
        self.ops = RepositoryOperations()
        self.db = AsyncMock()
        self.db.add = MagicMock()

    @pytest.mark.asyncio
    async def test_updates_policy_and_reprices_contributions(self):
        repo = make_repository(success_points=50)

        with patch(
            "prledger.domain.repository_operations.pending_contribution_ops.reprice_repository",
            new_callable=AsyncMock,
            return_value=2,
        ) as mock_reprice:
            repriced = await self.ops.set_success_points(self.db, repo, 80, default_points=50)

        assert repriced == 2
        assert repo.success_points == 80
        mock_reprice.assert_awaited_once_with(self.db, repo.repo_url, 80)

    @pytest.mark.asyncio
    async def test_none_restores_default(self):
        repo = make_repository(success_points=80)

        with patch(
            "prledger.domain.repository_operations.pending_contribution_ops.reprice_repository",
            new_callable=AsyncMock,
            return_value=1,
        ) as mock_reprice:
            await self.ops.set_success_points(self.db, repo, None, default_points=50)

        assert repo.success_points is None
        mock_reprice.assert_awaited_once_with(self.db, repo.repo_url, 50)
