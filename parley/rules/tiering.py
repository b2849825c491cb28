"""Roll total -> tier."""

from typing import Any

from ..profiles.schema import RulesProfile
from .common import finite_number


def compute_tier(rules: RulesProfile, roll_total: Any) -> int | None:
    """
    Tier for a roll total using the profile's total bands.

    The first band containing the total wins; a band without max_total is
    open-ended above. Returns None for non-finite totals, for tiering
    methods other than "totalBands", or when no band matches.
    """
    total = finite_number(roll_total)
    if total is None:
        return None

    tiering = rules.argument_resolution.tiering
    if tiering.method != "totalBands":
        return None

    for band in tiering.bands:
        if total < band.min_total:
            continue
        if band.max_total is None or total <= band.max_total:
            return band.tier
    return None
