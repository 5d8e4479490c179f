from prledger.models.pending_contribution import (
    PendingContribution,
    PendingContributionCreate,
    PendingContributionRead,
    ReviewStatus,
)
from prledger.models.registered_repository import (
    RegisteredRepository,
    RepositoryPointsUpdate,
    RepositoryReviewStatus,
)
from prledger.models.user import CancelledEntry, MergedEntry, User

__all__ = [
    "User",
    "MergedEntry",
    "CancelledEntry",
    "RegisteredRepository",
    "RepositoryPointsUpdate",
    "RepositoryReviewStatus",
    "PendingContribution",
    "PendingContributionCreate",
    "PendingContributionRead",
    "ReviewStatus",
]
