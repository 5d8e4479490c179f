"""Admin operations: reconciliation, integrity audit, PR scan, repository pricing."""

import logging
import uuid as uuid_pkg
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from prledger.api.deps import AdminContext, require_admin
from prledger.config import settings
from prledger.core.database import get_db, get_direct_db
from prledger.core.exceptions import ConflictError, NotFoundError
from prledger.domain import repository_ops
from prledger.models.registered_repository import RepositoryPointsUpdate
from prledger.services.contributions import (
    ReconciliationFatalError,
    integrity_validator,
    run_reconciliation,
)
from prledger.services.scheduler import PR_SCAN_LOCK_ID, RECONCILE_LOCK_ID, advisory_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class ReconcileRequest(BaseModel):
    create_backup: bool = False


@router.post("/reconcile")
async def reconcile_ledgers(
    data: ReconcileRequest | None = None,
    admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_direct_db),
):
    """
    Reconcile every ledger with the resolved review queue.

    Only one reconciliation runs at a time; a second request gets 409.
    Per-user failures are listed in results.errors. A failure to load the
    queue aborts the run with 500 and success=false.
    """
    create_backup = data.create_backup if data else False

    async with advisory_lock(RECONCILE_LOCK_ID) as acquired:
        if not acquired:
            raise ConflictError("A reconciliation is already running")

        logger.info(f"[reconcile] Triggered by {admin.username} (backup={create_backup})")
        try:
            return await run_reconciliation(db, create_backup=create_backup)
        except ReconciliationFatalError as e:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"success": False, "error": str(e)},
            )


@router.get("/integrity")
async def validate_integrity(
    _admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Read-only comparison of the review queue against stored ledgers."""
    report = await integrity_validator.validate(db)
    return asdict(report)


@router.post("/scan")
async def scan_pull_requests(
    admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_direct_db),
) -> dict[str, Any]:
    """Scan GitHub for merged PRs of every user and queue new claims."""
    if not settings.github_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="GitHub token not configured",
        )

    from prledger.services.contributions.scanner import PullRequestScanner
    from prledger.services.github import PullRequestFetcher

    async with advisory_lock(PR_SCAN_LOCK_ID) as acquired:
        if not acquired:
            raise ConflictError("A PR scan is already running")

        logger.info(f"[pr-scan] Triggered by {admin.username}")
        scanner = PullRequestScanner(PullRequestFetcher(settings.github_token))
        report = await scanner.scan_all(db)
        return asdict(report)


@router.patch("/repositories/{repository_id}/points")
async def update_repository_points(
    repository_id: uuid_pkg.UUID,
    data: RepositoryPointsUpdate,
    _admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Change what a merged PR to this repository is worth.

    Existing claims are re-priced; user totals follow on the next
    reconciliation. Null restores the default.
    """
    repo = await repository_ops.get(db, repository_id)
    if not repo:
        raise NotFoundError("Repository")

    repriced = await repository_ops.set_success_points(
        db, repo, data.success_points, settings.default_success_points
    )
    return {
        "id": str(repo.id),
        "repo_url": repo.repo_url,
        "success_points": repo.success_points,
        "repriced_contributions": repriced,
    }
