"""Contribution review queue endpoint tests."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from prledger.models.pending_contribution import ReviewStatus

from tests.helpers.fakes import make_contribution, make_user

WIDGETS = "https://github.com/acme/widgets"


def _payload(**overrides) -> dict:
    payload = {
        "user_identity": "583231",
        "username": "octocat",
        "repo_url": WIDGETS,
        "pr_number": 42,
        "title": "Add retry support",
        "merged_at": "2025-04-02T10:00:00Z",
    }
    payload.update(overrides)
    return payload


@pytest.mark.anyio
async def test_submit_creates_pending_claim(api_client: AsyncClient, admin_headers, world):
    """POST /api/v1/admin/contributions returns 201 with the new claim."""
    resp = await api_client.post(
        "/api/v1/admin/contributions", json=_payload(), headers=admin_headers
    )

    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["suggested_points"] == 50
    assert data["repo_url"] == WIDGETS


@pytest.mark.anyio
async def test_duplicate_submit_returns_409_with_existing(
    api_client: AsyncClient, admin_headers, world
):
    first = await api_client.post(
        "/api/v1/admin/contributions", json=_payload(), headers=admin_headers
    )

    resp = await api_client.post(
        "/api/v1/admin/contributions",
        json=_payload(user_identity="other-key", repo_url="https://github.com/Acme/Widgets.git"),
        headers=admin_headers,
    )

    assert resp.status_code == 409
    data = resp.json()
    assert data["detail"] == "Contribution already submitted"
    assert data["contribution"]["id"] == first.json()["id"]
    assert len(world.contributions.rows) == 1


@pytest.mark.anyio
async def test_submit_rejects_non_github_url(api_client: AsyncClient, admin_headers, world):
    resp = await api_client.post(
        "/api/v1/admin/contributions",
        json=_payload(repo_url="https://gitlab.com/acme/widgets"),
        headers=admin_headers,
    )
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_submit_validates_pr_number(api_client: AsyncClient, admin_headers, world):
    resp = await api_client.post(
        "/api/v1/admin/contributions", json=_payload(pr_number=0), headers=admin_headers
    )
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_list_filters_by_status(api_client: AsyncClient, admin_headers, world):
    world.contributions.rows.extend(
        [
            make_contribution(pr_number=1, status=ReviewStatus.PENDING),
            make_contribution(pr_number=2, status=ReviewStatus.APPROVED),
        ]
    )

    resp = await api_client.get(
        "/api/v1/admin/contributions", params={"status": "approved"}, headers=admin_headers
    )

    assert resp.status_code == 200
    assert [c["pr_number"] for c in resp.json()] == [2]


@pytest.mark.anyio
async def test_get_missing_contribution_404(api_client: AsyncClient, admin_headers, world):
    resp = await api_client.get(
        "/api/v1/admin/contributions/00000000-0000-0000-0000-000000000000",
        headers=admin_headers,
    )
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_approve_records_reviewer_and_refreshes_ledger(
    api_client: AsyncClient, admin_headers, world
):
    user = make_user("octocat", github_id="583231")
    world.users.users.append(user)
    claim = make_contribution(user, WIDGETS, 42, ReviewStatus.PENDING, 50)
    world.contributions.rows.append(claim)

    resp = await api_client.post(
        f"/api/v1/admin/contributions/{claim.id}/approve", headers=admin_headers
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["contribution"]["status"] == "approved"
    assert data["contribution"]["reviewed_by"] == "staff-reviewer"
    assert data["contribution"]["id"] == str(claim.id)
    assert data["contribution"]["merged_at"].startswith("2025-04-01T12:00:00")
    assert data["ledger"]["merged_added"] == 1
    assert data["ledger"]["points"] == 50
    assert data["ledger"]["tier"] == "Cursed Newbie | Just awakened....."
    assert user.points == 50


@pytest.mark.anyio
async def test_approve_twice_is_409(api_client: AsyncClient, admin_headers, world):
    claim = make_contribution(status=ReviewStatus.APPROVED)
    world.contributions.rows.append(claim)

    resp = await api_client.post(
        f"/api/v1/admin/contributions/{claim.id}/approve", headers=admin_headers
    )
    assert resp.status_code == 409


@pytest.mark.anyio
async def test_approve_for_unknown_owner_still_succeeds(
    api_client: AsyncClient, admin_headers, world
):
    claim = make_contribution(user_identity="31337", username="nobody")
    world.contributions.rows.append(claim)

    resp = await api_client.post(
        f"/api/v1/admin/contributions/{claim.id}/approve", headers=admin_headers
    )

    assert resp.status_code == 200
    assert resp.json()["ledger"] is None


@pytest.mark.anyio
async def test_reject_requires_reason(api_client: AsyncClient, admin_headers, world):
    claim = make_contribution()
    world.contributions.rows.append(claim)

    resp = await api_client.post(
        f"/api/v1/admin/contributions/{claim.id}/reject",
        json={"reason": ""},
        headers=admin_headers,
    )
    assert resp.status_code == 422

    resp = await api_client.post(
        f"/api/v1/admin/contributions/{claim.id}/reject",
        json={"reason": "   "},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert claim.status == "pending"


@pytest.mark.anyio
async def test_reject_with_reason(api_client: AsyncClient, admin_headers, world):
    user = make_user("octocat", github_id="583231")
    world.users.users.append(user)
    claim = make_contribution(user)
    world.contributions.rows.append(claim)

    resp = await api_client.post(
        f"/api/v1/admin/contributions/{claim.id}/reject",
        json={"reason": "Docs-only change"},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["contribution"]["rejection_reason"] == "Docs-only change"
    assert user.cancelled_entries[0]["rejection_reason"] == "Docs-only change"


@pytest.mark.anyio
async def test_adjust_points(api_client: AsyncClient, admin_headers, world):
    claim = make_contribution(status=ReviewStatus.APPROVED, suggested_points=50)
    world.contributions.rows.append(claim)

    resp = await api_client.patch(
        f"/api/v1/admin/contributions/{claim.id}/points",
        json={"points": 75},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["suggested_points"] == 75


@pytest.mark.anyio
async def test_delete_only_rejected(api_client: AsyncClient, admin_headers, world):
    pending = make_contribution(pr_number=1)
    rejected = make_contribution(pr_number=2, status=ReviewStatus.REJECTED)
    world.contributions.rows.extend([pending, rejected])

    resp = await api_client.delete(
        f"/api/v1/admin/contributions/{pending.id}", headers=admin_headers
    )
    assert resp.status_code == 409

    resp = await api_client.delete(
        f"/api/v1/admin/contributions/{rejected.id}", headers=admin_headers
    )
    assert resp.status_code == 204
    assert world.contributions.rows == [pending]
