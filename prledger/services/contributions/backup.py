"""Ledger snapshots taken before a reconciliation run."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from prledger.config import settings
from prledger.domain.user_operations import UserOperations, user_ops

logger = logging.getLogger(__name__)


@dataclass
class LedgerBackup:
    taken_at: datetime
    users: list[dict[str, Any]] = field(default_factory=list)
    path: str | None = None

    def summary(self) -> dict[str, Any]:
        return {
            "taken_at": self.taken_at.isoformat(),
            "users": len(self.users),
            "path": self.path,
        }


def _ledger_of(user) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "github_id": user.github_id,
        "username": user.username,
        "merged_entries": list(user.merged_entries or []),
        "cancelled_entries": list(user.cancelled_entries or []),
        "points": user.points or 0,
        "badges": list(user.badges or []),
    }


async def snapshot_ledgers(
    db: AsyncSession,
    backup_dir: str | None = None,
    users: UserOperations = user_ops,
) -> LedgerBackup:
    """
    Copy every user's ledger fields.

    The snapshot is written as JSON to `backup_dir` (defaults to
    settings.backup_dir) when one is configured.
    """
    taken_at = datetime.now(UTC)
    backup = LedgerBackup(
        taken_at=taken_at,
        users=[_ledger_of(user) for user in await users.get_all(db)],
    )

    target_dir = backup_dir if backup_dir is not None else settings.backup_dir
    if target_dir:
        path = Path(target_dir) / f"ledger-backup-{taken_at.strftime('%Y%m%dT%H%M%SZ')}.json"
        payload = json.dumps(
            {"taken_at": taken_at.isoformat(), "users": backup.users}, indent=2
        )
        await asyncio.to_thread(_write, path, payload)
        backup.path = str(path)

    logger.info(
        f"[reconcile] Ledger backup of {len(backup.users)} users"
        + (f" written to {backup.path}" if backup.path else " kept in memory")
    )
    return backup


def _write(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")
