"""Rules profiles for negotiations."""

from .schema import (
    ArgumentProfile,
    ArgumentProfileKey,
    ArgumentTypeId,
    Definition,
    DiscoveryTest,
    Offer,
    RulesProfile,
    StartingAttitude,
    TierBand,
    TierEffect,
)
from .registry import (
    DEFAULT_PROFILE_ID,
    get_default_profile,
    get_rules_profile,
    list_profile_ids,
    load_profile_file,
)

__all__ = [
    # Schema
    "ArgumentProfile",
    "ArgumentProfileKey",
    "ArgumentTypeId",
    "Definition",
    "DiscoveryTest",
    "Offer",
    "RulesProfile",
    "StartingAttitude",
    "TierBand",
    "TierEffect",
    # Registry
    "DEFAULT_PROFILE_ID",
    "get_default_profile",
    "get_rules_profile",
    "list_profile_ids",
    "load_profile_file",
]
