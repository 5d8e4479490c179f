"""Read-only audit comparing the review queue with the stored ledgers."""

import logging
from collections import Counter
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from prledger.domain.pending_contribution_operations import (
    PendingContributionOperations,
    pending_contribution_ops,
)
from prledger.domain.user_operations import UserOperations, user_ops
from prledger.models.pending_contribution import ReviewStatus
from prledger.services.contributions.identity import parse_uuid

logger = logging.getLogger(__name__)

IDENTITY_SHAPES = ("external", "internal", "other")


def classify_identity_key(key: str) -> str:
    """external = numeric GitHub id, internal = UUID-shaped user id, other = anything else."""
    if key and key.isdigit():
        return "external"
    if parse_uuid(key) is not None:
        return "internal"
    return "other"


@dataclass
class IntegrityReport:
    approved_contributions: int = 0
    rejected_contributions: int = 0
    merged_entries_total: int = 0
    cancelled_entries_total: int = 0
    identity_key_shapes: dict[str, int] = field(
        default_factory=lambda: dict.fromkeys(IDENTITY_SHAPES, 0)
    )
    total_users: int = 0
    users_with_contributions: int = 0
    users_with_points: int = 0
    # Ledger entries minus resolved claims; 0 means the ledgers are caught up
    merged_delta: int = 0
    cancelled_delta: int = 0
    is_consistent: bool = True
    is_valid: bool = True
    error: str | None = None


class IntegrityValidator:
    def __init__(
        self,
        contributions: PendingContributionOperations = pending_contribution_ops,
        users: UserOperations = user_ops,
    ):
        self.contributions = contributions
        self.users = users

    async def validate(self, db: AsyncSession) -> IntegrityReport:
        """Run the audit. Storage failures are reported, not raised."""
        try:
            return await self._validate(db)
        except Exception as e:
            logger.error(f"[integrity] Validation failed: {e}")
            return IntegrityReport(is_valid=False, is_consistent=False, error=str(e))

    async def _validate(self, db: AsyncSession) -> IntegrityReport:
        report = IntegrityReport()

        report.approved_contributions = await self.contributions.count_by_status(
            db, ReviewStatus.APPROVED
        )
        report.rejected_contributions = await self.contributions.count_by_status(
            db, ReviewStatus.REJECTED
        )

        keys = await self.contributions.get_identity_keys(
            db, [ReviewStatus.APPROVED, ReviewStatus.REJECTED]
        )
        shapes = Counter(classify_identity_key(key) for key in keys)
        report.identity_key_shapes = {shape: shapes.get(shape, 0) for shape in IDENTITY_SHAPES}

        rows = await self.users.get_ledger_rows(db)
        report.total_users = len(rows)
        for row in rows:
            report.merged_entries_total += row.merged_count
            report.cancelled_entries_total += row.cancelled_count
            if row.merged_count or row.cancelled_count:
                report.users_with_contributions += 1
            if row.points > 0:
                report.users_with_points += 1

        report.merged_delta = report.merged_entries_total - report.approved_contributions
        report.cancelled_delta = report.cancelled_entries_total - report.rejected_contributions
        report.is_consistent = report.merged_delta == 0 and report.cancelled_delta == 0

        if not report.is_consistent:
            logger.warning(
                f"[integrity] Ledger drift: merged {report.merged_delta:+d}, "
                f"cancelled {report.cancelled_delta:+d}"
            )
        return report


integrity_validator = IntegrityValidator()
