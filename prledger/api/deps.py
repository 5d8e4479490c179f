from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from prledger.config import settings
from prledger.core.exceptions import ForbiddenError

DEFAULT_REVIEWER = "admin"


@dataclass
class AdminContext:
    """The staff member making an admin request."""

    username: str


def require_admin(
    x_admin_key: str | None = Header(default=None),
    x_admin_user: str | None = Header(default=None),
) -> AdminContext:
    """
    Validate the X-Admin-Key header against the configured shared secret.

    X-Admin-User names the reviewer recorded on approvals and rejections.
    """
    if not settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API key not configured",
        )
    if x_admin_key != settings.admin_api_key:
        raise ForbiddenError("Invalid admin key")

    return AdminContext(username=(x_admin_user or "").strip() or DEFAULT_REVIEWER)
