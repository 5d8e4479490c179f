"""Badge configuration - thresholds and labels for contribution and point tiers."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BadgeTier:
    """A badge unlocked once a counter reaches `threshold`."""

    threshold: int
    label: str


BASELINE_BADGE = "Newcomer"

# Unlocked by the number of merged contributions to registered repositories
CONTRIBUTION_TIERS: tuple[BadgeTier, ...] = (
    BadgeTier(threshold=1, label="First Contribution"),
    BadgeTier(threshold=5, label="Active Contributor"),
    BadgeTier(threshold=10, label="Super Contributor"),
)

# Unlocked by total points. Ascending; every tier reached is kept (cumulative).
POINT_TIERS: tuple[BadgeTier, ...] = (
    BadgeTier(threshold=0, label="Cursed Newbie | Just awakened....."),
    BadgeTier(threshold=100, label="Graveyard Shifter | Lost but curious"),
    BadgeTier(threshold=250, label="Night Stalker | Shadows are friends"),
    BadgeTier(threshold=500, label="Skeleton of Structure | Casts magic on code"),
    BadgeTier(threshold=1000, label="Phantom Architect | Builds from beyond"),
    BadgeTier(threshold=2000, label="Haunted Debugger | Haunting every broken line"),
    BadgeTier(threshold=3500, label="Lord of Shadows | Master of the unseen"),
    BadgeTier(threshold=5000, label="Dark Sorcerer | Controls the dark arts"),
    BadgeTier(threshold=7500, label="Demon Crafter | Shapes the cursed world"),
    BadgeTier(threshold=10000, label="Eternal Revenge | Undying ghost"),
)


def get_point_tier(points: int) -> BadgeTier | None:
    """Return the highest point tier reached, or None for negative totals."""
    reached = [tier for tier in POINT_TIERS if points >= tier.threshold]
    return reached[-1] if reached else None
