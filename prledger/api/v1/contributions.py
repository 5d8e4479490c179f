"""Contribution review queue endpoints (admin only).

Staff submit claims manually, list the queue, and approve or reject
claims. Approvals and rejections refresh the owner's ledger immediately;
the nightly reconciliation catches anything missed.
"""

import logging
import uuid as uuid_pkg
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from prledger.api.deps import AdminContext, require_admin
from prledger.config import get_point_tier
from prledger.core.database import get_db
from prledger.core.exceptions import ConflictError, NotFoundError, ValidationError
from prledger.core.repo_urls import InvalidRepositoryUrl
from prledger.domain import pending_contribution_ops
from prledger.models.pending_contribution import (
    PendingContribution,
    PendingContributionCreate,
    PendingContributionRead,
    ReviewStatus,
)
from prledger.services.contributions import (
    InvalidTransitionError,
    PullRequestClaim,
    reconciliation_engine,
    review_service,
    submission_gateway,
)
from prledger.services.contributions.reconciliation import LedgerUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/contributions", tags=["contributions"])


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1)


class PointsRequest(BaseModel):
    points: int = Field(ge=0)


def _serialize_contribution(c: PendingContribution) -> dict[str, Any]:
    """Serialize a contribution to a dict response."""
    return PendingContributionRead.model_validate(c).model_dump(mode="json")


def _serialize_ledger_update(update: LedgerUpdate | None) -> dict[str, Any] | None:
    if update is None:
        return None
    tier = get_point_tier(update.points_after)
    return {
        "user_id": str(update.user_id),
        "username": update.username,
        "merged_added": update.merged_added,
        "cancelled_added": update.cancelled_added,
        "points": update.points_after,
        "tier": tier.label if tier else None,
        "changed": update.changed,
    }


async def _get_contribution(db: AsyncSession, contribution_id: uuid_pkg.UUID) -> PendingContribution:
    contribution = await pending_contribution_ops.get(db, contribution_id)
    if not contribution:
        raise NotFoundError("Contribution")
    return contribution


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_contribution(
    data: PendingContributionCreate,
    _admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Queue a merged pull request for review.

    Returns 409 with the existing claim if this PR was already submitted
    under the same GitHub id or the same username.
    """
    try:
        result = await submission_gateway.submit(
            db,
            data.user_identity,
            data.username,
            data.repo_url,
            PullRequestClaim(
                number=data.pr_number,
                title=data.title,
                merged_at=data.merged_at,
                url=data.pr_url,
            ),
        )
    except InvalidRepositoryUrl as e:
        raise ValidationError(str(e)) from e

    if not result.created:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": "Contribution already submitted",
                "contribution": _serialize_contribution(result.contribution),
            },
        )

    return _serialize_contribution(result.contribution)


@router.get("")
async def list_contributions(
    status_filter: ReviewStatus | None = Query(None, alias="status"),
    skip: int = 0,
    limit: int = Query(100, le=500),
    _admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """List claims, newest first, optionally filtered by status."""
    contributions = await pending_contribution_ops.list_by_status(
        db, status=status_filter, skip=skip, limit=limit
    )
    return [_serialize_contribution(c) for c in contributions]


@router.get("/{contribution_id}")
async def get_contribution(
    contribution_id: uuid_pkg.UUID,
    _admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    contribution = await _get_contribution(db, contribution_id)
    return _serialize_contribution(contribution)


@router.post("/{contribution_id}/approve")
async def approve_contribution(
    contribution_id: uuid_pkg.UUID,
    admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Approve a pending claim and refresh the owner's ledger."""
    contribution = await _get_contribution(db, contribution_id)

    try:
        contribution = await review_service.approve(db, contribution, admin.username)
    except InvalidTransitionError as e:
        raise ConflictError(str(e)) from e

    ledger = await reconciliation_engine.refresh_owner(
        db, contribution.user_identity, contribution.username
    )
    return {
        "contribution": _serialize_contribution(contribution),
        "ledger": _serialize_ledger_update(ledger),
    }


@router.post("/{contribution_id}/reject")
async def reject_contribution(
    contribution_id: uuid_pkg.UUID,
    data: RejectRequest,
    admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Reject a pending claim with a reason and refresh the owner's ledger."""
    contribution = await _get_contribution(db, contribution_id)

    try:
        contribution = await review_service.reject(db, contribution, admin.username, data.reason)
    except InvalidTransitionError as e:
        raise ConflictError(str(e)) from e
    except ValueError as e:
        raise ValidationError(str(e)) from e

    ledger = await reconciliation_engine.refresh_owner(
        db, contribution.user_identity, contribution.username
    )
    return {
        "contribution": _serialize_contribution(contribution),
        "ledger": _serialize_ledger_update(ledger),
    }


@router.patch("/{contribution_id}/points")
async def adjust_contribution_points(
    contribution_id: uuid_pkg.UUID,
    data: PointsRequest,
    _admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Override the point value of one claim."""
    contribution = await _get_contribution(db, contribution_id)

    try:
        contribution = await review_service.adjust_points(db, contribution, data.points)
    except InvalidTransitionError as e:
        raise ConflictError(str(e)) from e

    return _serialize_contribution(contribution)


@router.delete("/{contribution_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contribution(
    contribution_id: uuid_pkg.UUID,
    _admin: AdminContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a rejected claim. Pending and approved claims cannot be deleted."""
    contribution = await _get_contribution(db, contribution_id)

    try:
        await review_service.purge_rejected(db, contribution)
    except InvalidTransitionError as e:
        raise ConflictError(str(e)) from e
