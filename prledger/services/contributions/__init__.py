"""
Contribution intake, review and ledger reconciliation.

Module structure:
- submission.py: SubmissionGateway (deduplicated intake)
- review.py: ReviewService (pending -> approved | rejected)
- reconciliation.py: ReconciliationEngine (the only ledger writer)
- scoring.py: Badge calculation
- identity.py: Identity key resolution strategies
- integrity.py: IntegrityValidator (read-only audit)
- scanner.py: PullRequestScanner (GitHub -> review queue)
- backup.py: Ledger snapshots
"""

from prledger.services.contributions.exceptions import (
    InvalidTransitionError,
    ReconciliationFatalError,
)
from prledger.services.contributions.integrity import (
    IntegrityReport,
    IntegrityValidator,
    integrity_validator,
)
from prledger.services.contributions.reconciliation import (
    LedgerUpdate,
    ReconcileReport,
    ReconciliationEngine,
    ReconciliationFailure,
    reconciliation_engine,
    run_reconciliation,
)
from prledger.services.contributions.review import ReviewService, review_service
from prledger.services.contributions.scoring import compute_badges
from prledger.services.contributions.submission import (
    PullRequestClaim,
    SubmissionGateway,
    SubmissionResult,
    submission_gateway,
)

__all__ = [
    "InvalidTransitionError",
    "IntegrityReport",
    "IntegrityValidator",
    "LedgerUpdate",
    "PullRequestClaim",
    "ReconcileReport",
    "ReconciliationEngine",
    "ReconciliationFailure",
    "ReconciliationFatalError",
    "ReviewService",
    "SubmissionGateway",
    "SubmissionResult",
    "compute_badges",
    "integrity_validator",
    "reconciliation_engine",
    "review_service",
    "run_reconciliation",
    "submission_gateway",
]
