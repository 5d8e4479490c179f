"""
Ledger reconciliation.

Folds resolved contribution claims into each user's ledger:

1. Bulk-load approved and rejected claims (fatal if this fails)
2. Resolve each identity key to a user (external id, internal id, username)
3. Append claims missing from merged_entries / cancelled_entries
4. Re-derive points from every currently-approved claim of the user
5. Recompute badges
6. Write and commit only when something changed

Users are committed one at a time, so an interrupted run leaves every ledger
either fully updated or untouched. A second run with no new reviews writes
nothing.
"""

import logging
import time
import uuid as uuid_pkg
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from prledger.domain.pending_contribution_operations import (
    PendingContributionOperations,
    pending_contribution_ops,
)
from prledger.domain.repository_operations import RepositoryOperations, repository_ops
from prledger.domain.user_operations import UserOperations, user_ops
from prledger.models.pending_contribution import PendingContribution, ReviewStatus
from prledger.models.user import CancelledEntry, MergedEntry, User
from prledger.services.contributions.exceptions import ReconciliationFatalError
from prledger.services.contributions.identity import (
    IdentityResolver,
    Resolved,
    identity_keys_for,
)
from prledger.services.contributions.scoring import compute_badges

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContributionSnapshot:
    """Plain copy of a claim, safe to use after a session rollback."""

    user_identity: str
    username: str
    repo_url: str
    pr_number: int
    title: str
    merged_at: datetime
    suggested_points: int
    reviewed_at: datetime | None
    rejection_reason: str | None

    @classmethod
    def from_row(cls, row: PendingContribution) -> "ContributionSnapshot":
        return cls(
            user_identity=row.user_identity,
            username=row.username,
            repo_url=row.repo_url,
            pr_number=row.pr_number,
            title=row.title,
            merged_at=row.merged_at,
            suggested_points=row.suggested_points,
            reviewed_at=row.reviewed_at,
            rejection_reason=row.rejection_reason,
        )

    @property
    def entry_key(self) -> tuple[str, int]:
        return (self.repo_url.lower(), self.pr_number)

    def to_merged_entry(self) -> dict[str, Any]:
        return MergedEntry(
            repo_url=self.repo_url,
            pr_number=self.pr_number,
            title=self.title,
            merged_at=self.merged_at,
        ).model_dump(mode="json")

    def to_cancelled_entry(self) -> dict[str, Any]:
        return CancelledEntry(
            repo_url=self.repo_url,
            pr_number=self.pr_number,
            title=self.title,
            cancelled_at=self.reviewed_at,
            rejection_reason=self.rejection_reason,
        ).model_dump(mode="json")


def _entry_key(entry: dict[str, Any]) -> tuple[str, int]:
    return (str(entry.get("repo_url", "")).lower(), int(entry.get("pr_number", 0)))


@dataclass
class LedgerUpdate:
    """Outcome of reconciling one user."""

    user_id: uuid_pkg.UUID
    username: str
    merged_added: int = 0
    cancelled_added: int = 0
    points_before: int = 0
    points_after: int = 0
    badges_changed: bool = False

    @property
    def changed(self) -> bool:
        return (
            self.merged_added > 0
            or self.cancelled_added > 0
            or self.points_before != self.points_after
            or self.badges_changed
        )


@dataclass
class ReconciliationFailure:
    """A user (or unresolvable identity key) that could not be reconciled."""

    key: str
    message: str

    def __str__(self) -> str:
        return f"{self.key}: {self.message}"


@dataclass
class ReconcileReport:
    """Summary of a reconciliation run."""

    users_processed: int = 0
    users_updated: int = 0
    pending_approved_seen: int = 0
    pending_rejected_seen: int = 0
    merged_entries_added: int = 0
    cancelled_entries_added: int = 0
    errors: list[str] = field(default_factory=list)

    def fold(self, result: "LedgerUpdate | ReconciliationFailure") -> None:
        if isinstance(result, ReconciliationFailure):
            self.errors.append(str(result))
            return
        self.users_processed += 1
        if result.changed:
            self.users_updated += 1
        self.merged_entries_added += result.merged_added
        self.cancelled_entries_added += result.cancelled_added


@dataclass
class _KeyGroup:
    approved: list[ContributionSnapshot] = field(default_factory=list)
    rejected: list[ContributionSnapshot] = field(default_factory=list)

    @property
    def username(self) -> str | None:
        rows = self.approved or self.rejected
        return rows[0].username if rows else None


@dataclass
class _UserBatch:
    user_id: uuid_pkg.UUID
    username: str
    keys: set[str] = field(default_factory=set)
    approved: list[ContributionSnapshot] = field(default_factory=list)
    rejected: list[ContributionSnapshot] = field(default_factory=list)


class ReconciliationEngine:
    """The only writer of ledger fields."""

    def __init__(
        self,
        contributions: PendingContributionOperations = pending_contribution_ops,
        users: UserOperations = user_ops,
        repositories: RepositoryOperations = repository_ops,
        resolver: IdentityResolver | None = None,
    ):
        self.contributions = contributions
        self.users = users
        self.repositories = repositories
        self.resolver = resolver or IdentityResolver()

    async def reconcile(self, db: AsyncSession) -> ReconcileReport:
        """
        Reconcile every user that has resolved claims.

        Raises:
            ReconciliationFatalError: If the claims or the registered
                repository catalog cannot be loaded
        """
        report = ReconcileReport()

        try:
            approved_rows = await self.contributions.get_by_status(db, ReviewStatus.APPROVED)
            rejected_rows = await self.contributions.get_by_status(db, ReviewStatus.REJECTED)
            registered_urls = await self.repositories.get_accepted_urls(db)
        except Exception as e:
            logger.error(f"[reconcile] Failed to load contributions: {e}")
            raise ReconciliationFatalError(f"Failed to load contributions: {e}") from e

        approved = [ContributionSnapshot.from_row(row) for row in approved_rows]
        rejected = [ContributionSnapshot.from_row(row) for row in rejected_rows]
        report.pending_approved_seen = len(approved)
        report.pending_rejected_seen = len(rejected)

        logger.info(
            f"[reconcile] Loaded {len(approved)} approved and {len(rejected)} rejected claims"
        )

        batches = await self._group_by_user(db, approved, rejected, report)

        for batch in batches:
            result = await self._reconcile_batch(db, batch, registered_urls)
            report.fold(result)

        logger.info(
            f"[reconcile] Completed: {report.users_processed} users, "
            f"{report.users_updated} updated, "
            f"+{report.merged_entries_added} merged, "
            f"+{report.cancelled_entries_added} cancelled, "
            f"{len(report.errors)} errors"
        )
        return report

    async def reconcile_user(
        self,
        db: AsyncSession,
        user: User,
        resolved_keys: set[str] | None = None,
    ) -> LedgerUpdate:
        """
        Refresh one user's ledger from their current claims.

        `resolved_keys` are extra identity keys known to belong to the user.
        Flushes but does not commit; the caller owns the transaction.
        """
        resolved_keys = resolved_keys or set()
        keys = sorted(set(identity_keys_for(user)) | resolved_keys)
        approved_rows = await self.contributions.get_for_owner(
            db, keys, user.username, ReviewStatus.APPROVED
        )
        rejected_rows = await self.contributions.get_for_owner(
            db, keys, user.username, ReviewStatus.REJECTED
        )
        registered_urls = await self.repositories.get_accepted_urls(db)

        return await self._apply(
            db,
            user,
            [ContributionSnapshot.from_row(row) for row in approved_rows],
            [ContributionSnapshot.from_row(row) for row in rejected_rows],
            registered_urls,
            resolved_keys,
        )

    async def refresh_owner(
        self,
        db: AsyncSession,
        user_identity: str,
        username: str | None,
    ) -> LedgerUpdate | None:
        """Live refresh of the ledger owning a claim. None if the owner is unknown."""
        resolution = await self.resolver.resolve(db, user_identity, username)
        if not isinstance(resolution, Resolved):
            logger.info(f"Ledger refresh skipped: {resolution.message}")
            return None
        return await self.reconcile_user(db, resolution.user, {user_identity})

    async def _group_by_user(
        self,
        db: AsyncSession,
        approved: list[ContributionSnapshot],
        rejected: list[ContributionSnapshot],
        report: ReconcileReport,
    ) -> list[_UserBatch]:
        """Group claims by identity key, then merge keys that resolve to the same user."""
        by_key: dict[str, _KeyGroup] = {}
        for snapshot in approved:
            by_key.setdefault(snapshot.user_identity, _KeyGroup()).approved.append(snapshot)
        for snapshot in rejected:
            by_key.setdefault(snapshot.user_identity, _KeyGroup()).rejected.append(snapshot)

        batches: dict[uuid_pkg.UUID, _UserBatch] = {}
        for key, group in by_key.items():
            try:
                resolution = await self.resolver.resolve(db, key, group.username)
            except Exception as e:
                logger.error(f"[reconcile] Identity lookup failed for {key}: {e}")
                await db.rollback()
                report.fold(ReconciliationFailure(key=key, message=f"Identity lookup failed: {e}"))
                continue

            if not isinstance(resolution, Resolved):
                logger.warning(f"[reconcile] {resolution.message}")
                report.fold(ReconciliationFailure(key=key, message=resolution.message))
                continue

            user = resolution.user
            batch = batches.setdefault(user.id, _UserBatch(user_id=user.id, username=user.username))
            batch.keys.add(key)
            batch.approved.extend(group.approved)
            batch.rejected.extend(group.rejected)

        return list(batches.values())

    async def _reconcile_batch(
        self,
        db: AsyncSession,
        batch: _UserBatch,
        registered_urls: set[str],
    ) -> LedgerUpdate | ReconciliationFailure:
        user_id = batch.user_id
        username = batch.username
        try:
            # Earlier rollbacks expire loaded users; start from the stored row.
            user = await self.users.get(db, user_id)
            if user is None:
                return ReconciliationFailure(key=str(user_id), message="User no longer exists")

            update = await self._apply(
                db, user, batch.approved, batch.rejected, registered_urls, batch.keys
            )
            if update.changed:
                await db.commit()
            return update
        except Exception as e:
            logger.error(f"[reconcile] User {username} ({user_id}): {e}")
            await db.rollback()
            return ReconciliationFailure(key=f"{username} ({user_id})", message=str(e))

    async def _apply(
        self,
        db: AsyncSession,
        user: User,
        approved: list[ContributionSnapshot],
        rejected: list[ContributionSnapshot],
        registered_urls: set[str],
        resolved_keys: set[str] | None = None,
    ) -> LedgerUpdate:
        merged_entries = list(user.merged_entries or [])
        cancelled_entries = list(user.cancelled_entries or [])
        points_before = user.points or 0
        badges_before = list(user.badges or [])

        merged_keys = {_entry_key(entry) for entry in merged_entries}
        merged_added = 0
        for snapshot in approved:
            if snapshot.entry_key not in merged_keys:
                merged_entries.append(snapshot.to_merged_entry())
                merged_keys.add(snapshot.entry_key)
                merged_added += 1

        cancelled_keys = {_entry_key(entry) for entry in cancelled_entries}
        cancelled_added = 0
        for snapshot in rejected:
            if snapshot.entry_key not in cancelled_keys:
                cancelled_entries.append(snapshot.to_cancelled_entry())
                cancelled_keys.add(snapshot.entry_key)
                cancelled_added += 1

        # Keys resolved by a fallback strategy own their rows whatever username they carry
        keys = set(identity_keys_for(user)) | (resolved_keys or set())
        points = await self.contributions.sum_approved_points(db, sorted(keys), user.username)
        badges = compute_badges(merged_entries, points, registered_urls)

        update = LedgerUpdate(
            user_id=user.id,
            username=user.username,
            merged_added=merged_added,
            cancelled_added=cancelled_added,
            points_before=points_before,
            points_after=points,
            badges_changed=badges != badges_before,
        )

        if update.changed:
            await self.users.save_ledger(
                db, user, merged_entries, cancelled_entries, points, badges
            )
            logger.info(
                f"[reconcile] {user.username}: +{merged_added} merged, "
                f"+{cancelled_added} cancelled, points {points_before} -> {points}"
            )

        return update


reconciliation_engine = ReconciliationEngine()


async def run_reconciliation(
    db: AsyncSession,
    create_backup: bool = False,
    engine: ReconciliationEngine | None = None,
    backup_dir: str | None = None,
) -> dict[str, Any]:
    """
    Full reconciliation run: optional ledger backup, reconcile, then validate.

    `backup_dir` overrides settings.backup_dir for the backup file.

    Raises:
        ReconciliationFatalError: Propagated from the engine
    """
    from prledger.services.contributions.backup import snapshot_ledgers
    from prledger.services.contributions.integrity import integrity_validator

    start = time.monotonic()
    engine = engine or reconciliation_engine

    backup = None
    if create_backup:
        ledger_backup = await snapshot_ledgers(db, backup_dir=backup_dir)
        backup = ledger_backup.summary()

    report = await engine.reconcile(db)
    validation = await integrity_validator.validate(db)

    return {
        "success": True,
        "results": asdict(report),
        "validation": asdict(validation),
        "duration": round(time.monotonic() - start, 2),
        "backup": backup,
    }
