"""Admin operations endpoint tests: reconcile, integrity, scan, repository points."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from prledger.models.pending_contribution import ReviewStatus
from prledger.services.contributions.exceptions import ReconciliationFatalError

from tests.helpers.fakes import make_contribution, make_user

WIDGETS = "https://github.com/acme/widgets"


@pytest.mark.anyio
async def test_reconcile_returns_summary(api_client: AsyncClient, admin_headers, world):
    """POST /api/v1/admin/reconcile folds resolved claims into ledgers."""
    user = make_user("octocat")
    world.users.users.append(user)
    world.contributions.rows.extend(
        [
            make_contribution(user, WIDGETS, 1, ReviewStatus.APPROVED, 50),
            make_contribution(user, WIDGETS, 2, ReviewStatus.REJECTED),
        ]
    )

    resp = await api_client.post(
        "/api/v1/admin/reconcile", json={"create_backup": False}, headers=admin_headers
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["results"]["users_processed"] == 1
    assert data["results"]["merged_entries_added"] == 1
    assert data["results"]["cancelled_entries_added"] == 1
    assert data["results"]["errors"] == []
    assert data["validation"]["is_consistent"] is True
    assert data["backup"] is None
    assert "duration" in data


@pytest.mark.anyio
async def test_reconcile_is_idempotent_over_http(api_client: AsyncClient, admin_headers, world):
    user = make_user("octocat")
    world.users.users.append(user)
    world.contributions.rows.append(make_contribution(user, WIDGETS, 1, ReviewStatus.APPROVED))

    await api_client.post("/api/v1/admin/reconcile", json={}, headers=admin_headers)
    writes = world.users.ledger_writes
    resp = await api_client.post("/api/v1/admin/reconcile", json={}, headers=admin_headers)

    assert resp.json()["results"]["users_updated"] == 0
    assert world.users.ledger_writes == writes


@pytest.mark.anyio
async def test_reconcile_already_running_409(api_client: AsyncClient, admin_headers, world):
    world.lock_available = False

    resp = await api_client.post("/api/v1/admin/reconcile", json={}, headers=admin_headers)

    assert resp.status_code == 409


@pytest.mark.anyio
async def test_reconcile_fatal_error_500(api_client: AsyncClient, admin_headers, world):
    with patch(
        "prledger.api.v1.admin.run_reconciliation",
        new_callable=AsyncMock,
        side_effect=ReconciliationFatalError("Failed to load contributions: db down"),
    ):
        resp = await api_client.post("/api/v1/admin/reconcile", json={}, headers=admin_headers)

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": "Failed to load contributions: db down",
    }


@pytest.mark.anyio
async def test_integrity_report(api_client: AsyncClient, admin_headers, world):
    user = make_user("octocat")
    world.users.users.append(user)
    world.contributions.rows.append(make_contribution(user, WIDGETS, 1, ReviewStatus.APPROVED))

    resp = await api_client.get("/api/v1/admin/integrity", headers=admin_headers)

    assert resp.status_code == 200
    data = resp.json()
    assert data["approved_contributions"] == 1
    assert data["merged_delta"] == -1
    assert data["is_consistent"] is False


@pytest.mark.anyio
async def test_scan_requires_github_token(
    api_client: AsyncClient, admin_headers, world, monkeypatch
):
    from prledger.config import settings

    monkeypatch.setattr(settings, "github_token", "")

    resp = await api_client.post("/api/v1/admin/scan", headers=admin_headers)

    assert resp.status_code == 503


@pytest.mark.anyio
async def test_repository_repricing(api_client: AsyncClient, admin_headers, world):
    """Re-pricing a repository updates every claim; the next reconcile yields the new total."""
    user = make_user("octocat")
    world.users.users.append(user)
    world.contributions.rows.append(
        make_contribution(user, WIDGETS, 1, ReviewStatus.APPROVED, 50)
    )
    await api_client.post("/api/v1/admin/reconcile", json={}, headers=admin_headers)
    assert user.points == 50
    repo = world.repositories.repos[0]

    resp = await api_client.patch(
        f"/api/v1/admin/repositories/{repo.id}/points",
        json={"success_points": 80},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["repriced_contributions"] == 1

    resp = await api_client.post("/api/v1/admin/reconcile", json={}, headers=admin_headers)
    assert resp.json()["results"]["merged_entries_added"] == 0
    assert user.points == 80


@pytest.mark.anyio
async def test_repository_points_missing_repo(api_client: AsyncClient, admin_headers, world):
    resp = await api_client.patch(
        "/api/v1/admin/repositories/00000000-0000-0000-0000-000000000000/points",
        json={"success_points": 80},
        headers=admin_headers,
    )
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_reconcile_commits_on_direct_session(
    api_client: AsyncClient, admin_headers, world, db
):
    """Per-user commits go through the direct session, not the pooled one."""
    from prledger.core.database import get_direct_db
    from prledger.main import app

    from tests.helpers.fakes import make_db

    direct_db = make_db()

    async def override_direct_db():
        yield direct_db

    app.dependency_overrides[get_direct_db] = override_direct_db
    user = make_user("octocat")
    world.users.users.append(user)
    world.contributions.rows.append(make_contribution(user, WIDGETS, 1, ReviewStatus.APPROVED))

    resp = await api_client.post("/api/v1/admin/reconcile", json={}, headers=admin_headers)

    assert resp.status_code == 200
    direct_db.commit.assert_awaited()
    db.commit.assert_not_awaited()
