"""Internal task scheduler using APScheduler.

Runs the nightly PR scan and ledger reconciliation within the FastAPI
process. Uses PostgreSQL advisory locks so only one run of each job is
active at a time, across instances and against manual triggers.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import text

from prledger.config import settings
from prledger.core.database import direct_session_maker

logger = logging.getLogger(__name__)

# Advisory lock IDs (arbitrary unique integers - one per job)
RECONCILE_LOCK_ID = 731402
PR_SCAN_LOCK_ID = 731403


@asynccontextmanager
async def advisory_lock(lock_id: int) -> AsyncIterator[bool]:
    """
    Acquire a PostgreSQL advisory lock for the duration of the context.

    Advisory locks are session-level and automatically released when the
    session ends. We use pg_try_advisory_lock() which returns immediately
    (non-blocking); if the lock is held elsewhere the context yields False.
    """
    async with direct_session_maker() as session:
        result = await session.execute(
            text("SELECT pg_try_advisory_lock(:lock_id)"),
            {"lock_id": lock_id},
        )
        acquired = result.scalar()

        if not acquired:
            yield False
            return

        try:
            yield True
        finally:
            await session.execute(
                text("SELECT pg_advisory_unlock(:lock_id)"),
                {"lock_id": lock_id},
            )
            await session.commit()


async def run_reconciliation_job(create_backup: bool = True) -> dict[str, Any] | None:
    """
    Execute the reconciliation with advisory lock protection.

    Returns the run summary if executed, None if skipped or failed.
    """
    async with advisory_lock(RECONCILE_LOCK_ID) as acquired:
        if not acquired:
            logger.info("[scheduler] Reconcile: skipped (another run is in progress)")
            return None

        logger.info("[scheduler] Reconcile: starting")

        try:
            from prledger.services.contributions import run_reconciliation

            async with direct_session_maker() as db:
                summary = await run_reconciliation(db, create_backup=create_backup)
                await db.commit()

            results = summary["results"]
            logger.info(
                f"[scheduler] Reconcile: completed "
                f"({results['users_updated']} of {results['users_processed']} users updated, "
                f"{len(results['errors'])} errors, "
                f"{summary['duration']}s)"
            )
            return summary

        except Exception as e:
            logger.exception(f"[scheduler] Reconcile: failed with error: {e}")
            return None


async def run_pr_scan_job() -> dict[str, Any] | None:
    """
    Execute the PR scan with advisory lock protection.

    Returns the report dict if executed, None if skipped or failed.
    """
    if not settings.github_enabled:
        logger.warning("[scheduler] PR scan: skipped (GITHUB_TOKEN not configured)")
        return None

    async with advisory_lock(PR_SCAN_LOCK_ID) as acquired:
        if not acquired:
            logger.info("[scheduler] PR scan: skipped (another scan is in progress)")
            return None

        logger.info("[scheduler] PR scan: starting")

        try:
            from dataclasses import asdict

            from prledger.services.contributions.scanner import PullRequestScanner
            from prledger.services.github import PullRequestFetcher

            scanner = PullRequestScanner(PullRequestFetcher(settings.github_token))
            async with direct_session_maker() as db:
                report = await scanner.scan_all(db)
                await db.commit()

            logger.info(
                f"[scheduler] PR scan: completed "
                f"({report.submissions_created} new claims, "
                f"{report.users_scanned} users, "
                f"{report.duration_seconds}s)"
            )
            return asdict(report)

        except Exception as e:
            logger.exception(f"[scheduler] PR scan: failed with error: {e}")
            return None


class Scheduler:
    """Manages the APScheduler instance and job registration."""

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None

    def start(self) -> None:
        """Start the scheduler and register jobs."""
        if not settings.scheduler_enabled:
            logger.info("[scheduler] Disabled via SCHEDULER_ENABLED=false")
            return

        self._scheduler = AsyncIOScheduler()

        # PR scan: daily at configured hour (UTC)
        self._scheduler.add_job(
            run_pr_scan_job,
            trigger=CronTrigger(hour=settings.pr_scan_hour, minute=0),
            id="pr_scan",
            name="Merged PR Scan",
            replace_existing=True,
        )

        # Reconciliation: daily, after the scan has had time to finish
        self._scheduler.add_job(
            run_reconciliation_job,
            trigger=CronTrigger(hour=settings.reconcile_hour, minute=0),
            id="reconcile",
            name="Ledger Reconciliation",
            replace_existing=True,
        )

        self._scheduler.start()
        logger.info(
            f"[scheduler] Started with pr-scan at {settings.pr_scan_hour:02d}:00 UTC, "
            f"reconcile at {settings.reconcile_hour:02d}:00 UTC"
        )

    def stop(self) -> None:
        """Gracefully shut down the scheduler."""
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            logger.info("[scheduler] Stopped")

    async def trigger_now(self, job_id: str) -> dict[str, Any] | None:
        """
        Manually trigger a job immediately (for testing/debugging).

        Returns the job result or None if job not found.
        """
        if job_id == "pr_scan":
            return await run_pr_scan_job()
        if job_id == "reconcile":
            return await run_reconciliation_job()
        return None


scheduler = Scheduler()
