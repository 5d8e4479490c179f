"""Configuration package."""

from prledger.config.badges import (
    BASELINE_BADGE,
    CONTRIBUTION_TIERS,
    POINT_TIERS,
    BadgeTier,
    get_point_tier,
)
from prledger.config.settings import Settings, settings

__all__ = [
    "BASELINE_BADGE",
    "BadgeTier",
    "CONTRIBUTION_TIERS",
    "POINT_TIERS",
    "get_point_tier",
    "Settings",
    "settings",
]
