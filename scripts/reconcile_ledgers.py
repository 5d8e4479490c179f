"""Operator script - run a ledger reconciliation outside the API.

Usage:
    python -m scripts.reconcile_ledgers [--backup] [--backup-dir DIR] [--validate-only]

This script:
1. Takes the reconciliation advisory lock (exits if a run is in progress)
2. Optionally snapshots every ledger to a JSON file
3. Reconciles all ledgers with the review queue
4. Prints the run summary and the integrity report
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)


async def reconcile(create_backup: bool, backup_dir: str | None, validate_only: bool) -> int:
    """Run the reconciliation. Returns the process exit code."""
    from dataclasses import asdict

    from prledger.core.database import direct_engine, direct_session_maker
    from prledger.services.contributions import (
        ReconciliationFatalError,
        integrity_validator,
        run_reconciliation,
    )
    from prledger.services.scheduler import RECONCILE_LOCK_ID, advisory_lock

    try:
        async with direct_session_maker() as db:
            if validate_only:
                report = await integrity_validator.validate(db)
                print(json.dumps(asdict(report), indent=2))
                return 0 if report.is_valid else 1

            async with advisory_lock(RECONCILE_LOCK_ID) as acquired:
                if not acquired:
                    logger.error("Another reconciliation is running, try again later")
                    return 2

                try:
                    summary = await run_reconciliation(
                        db, create_backup=create_backup, backup_dir=backup_dir
                    )
                except ReconciliationFatalError as e:
                    logger.error(f"Reconciliation aborted: {e}")
                    return 1
                await db.commit()

        print(json.dumps(summary, indent=2, default=str))
        return 0
    finally:
        await direct_engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Reconcile contribution ledgers")
    parser.add_argument("--backup", action="store_true", help="Snapshot ledgers first")
    parser.add_argument("--backup-dir", default=None, help="Directory for the snapshot file")
    parser.add_argument(
        "--validate-only", action="store_true", help="Only run the integrity audit"
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(reconcile(args.backup, args.backup_dir, args.validate_only)))


if __name__ == "__main__":
    main()
