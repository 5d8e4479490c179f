from prledger.domain.pending_contribution_operations import pending_contribution_ops
from prledger.domain.repository_operations import repository_ops
from prledger.domain.user_operations import user_ops

__all__ = [
    "pending_contribution_ops",
    "repository_ops",
    "user_ops",
]
