"""Points and badge calculation.

Used by both the live ledger refresh and the batch reconciliation, so the
two paths can never disagree about a user's badges.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from prledger.config.badges import BASELINE_BADGE, CONTRIBUTION_TIERS, POINT_TIERS


def count_registered_contributions(
    merged_entries: Iterable[Mapping[str, Any]],
    registered_repo_urls: set[str],
) -> int:
    """Number of merged entries whose repository is in the registered catalog."""
    return sum(
        1
        for entry in merged_entries
        if str(entry.get("repo_url", "")).lower() in registered_repo_urls
    )


def compute_badges(
    merged_entries: Iterable[Mapping[str, Any]],
    points: int,
    registered_repo_urls: set[str],
) -> list[str]:
    """
    Badges earned by a ledger.

    Order is stable: baseline, contribution badges, then every point tier
    reached in ascending order (tiers are cumulative, not just the highest).
    """
    badges = [BASELINE_BADGE]

    contributions = count_registered_contributions(merged_entries, registered_repo_urls)
    badges.extend(tier.label for tier in CONTRIBUTION_TIERS if contributions >= tier.threshold)
    badges.extend(tier.label for tier in POINT_TIERS if points >= tier.threshold)

    return badges
