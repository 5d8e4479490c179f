"""Root conftest - test infrastructure for all prledger tests.

Provides:
- Mocked AsyncSession fixture (no test touches a real database)
- In-memory domain operation fakes for service tests
- Admin API client with dependency overrides
- Autouse guard against real GitHub calls
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from prledger.config.settings import settings
from tests.helpers.fakes import (
    FakeContributionOps,
    FakeRepositoryOps,
    FakeUserOps,
    make_db,
)

TEST_ADMIN_KEY = "test-admin-key"

# ─────────────────────────────────────────────────────────────────────────────
# Database
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def db():
    """AsyncSession double. commit/rollback are AsyncMocks tests can assert on."""
    return make_db()


@pytest.fixture
def contribution_ops() -> FakeContributionOps:
    return FakeContributionOps()


@pytest.fixture
def user_ops() -> FakeUserOps:
    return FakeUserOps()


@pytest.fixture
def repository_ops() -> FakeRepositoryOps:
    return FakeRepositoryOps()


# ─────────────────────────────────────────────────────────────────────────────
# API Client
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Key": TEST_ADMIN_KEY, "X-Admin-User": "staff-reviewer"}


@pytest.fixture
async def api_client(db, monkeypatch):
    """HTTP client with the admin key configured and get_db overridden.

    The scheduler is disabled so the app lifespan never starts background jobs.
    """
    from prledger.core.database import get_db, get_direct_db
    from prledger.main import app

    monkeypatch.setattr(settings, "admin_api_key", TEST_ADMIN_KEY)
    monkeypatch.setattr(settings, "scheduler_enabled", False)

    async def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_direct_db] = override_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ─────────────────────────────────────────────────────────────────────────────
# External Service Mocks
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def block_github_network():
    """SAFETY: no test may reach api.github.com.

    Tests that exercise the fetcher patch get_github_client themselves.
    """
    with patch(
        "prledger.services.github.pull_requests.get_github_client",
        side_effect=RuntimeError("GitHub access is disabled in tests"),
    ) as mock_client:
        yield mock_client


@pytest.fixture(autouse=True)
def clear_pull_request_cache():
    from prledger.services.github import default_pull_request_cache

    default_pull_request_cache.clear()
    yield
    default_pull_request_cache.clear()

