"""API test fixtures - route singletons swapped for in-memory fakes.

Builds on root conftest fixtures (db, api_client, admin_headers). The
services behind each router are real; only the domain operations under
them are fakes, so routes exercise the same validation as production.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from unittest.mock import patch

import pytest

from prledger.services.contributions.identity import (
    ByExternalIdentity,
    ByInternalId,
    ByUsername,
    IdentityResolver,
)
from prledger.services.contributions.integrity import IntegrityValidator
from prledger.services.contributions.reconciliation import ReconciliationEngine
from prledger.services.contributions.review import ReviewService
from prledger.services.contributions.submission import SubmissionGateway

from tests.helpers.fakes import (
    FakeContributionOps,
    FakeRepositoryOps,
    FakeUserOps,
    make_repository,
)

WIDGETS = "https://github.com/acme/widgets"


@dataclass
class LedgerWorld:
    contributions: FakeContributionOps
    users: FakeUserOps
    repositories: FakeRepositoryOps
    engine: ReconciliationEngine
    lock_available: bool = True


# ─────────────────────────────────────────────────────────────────────────────
# Domain Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def world():
    """Patch every router's service singletons with fake-backed instances."""
    contributions = FakeContributionOps()
    users = FakeUserOps()
    repositories = FakeRepositoryOps(
        [make_repository(WIDGETS, success_points=None)], contributions=contributions
    )
    engine = ReconciliationEngine(
        contributions=contributions,
        users=users,
        repositories=repositories,
        resolver=IdentityResolver(
            [ByExternalIdentity(users), ByInternalId(users), ByUsername(users)]
        ),
    )
    validator = IntegrityValidator(contributions, users)
    state = LedgerWorld(contributions, users, repositories, engine)

    @asynccontextmanager
    async def fake_lock(_lock_id):
        yield state.lock_available

    with (
        patch("prledger.api.v1.contributions.pending_contribution_ops", contributions),
        patch(
            "prledger.api.v1.contributions.submission_gateway",
            SubmissionGateway(contributions, repositories, default_points=50),
        ),
        patch("prledger.api.v1.contributions.review_service", ReviewService(contributions)),
        patch("prledger.api.v1.contributions.reconciliation_engine", engine),
        patch("prledger.api.v1.admin.repository_ops", repositories),
        patch("prledger.api.v1.admin.integrity_validator", validator),
        patch("prledger.services.contributions.integrity.integrity_validator", validator),
        patch("prledger.services.contributions.reconciliation.reconciliation_engine", engine),
        patch("prledger.api.v1.admin.advisory_lock", fake_lock),
    ):
        yield state
