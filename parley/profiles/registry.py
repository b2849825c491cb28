"""
Rules profile registry.

Profiles ship as YAML files under profiles/data/ and are validated
into frozen RulesProfile models the first time they are requested.
"""

import logging
from functools import lru_cache
from pathlib import Path

import yaml

from .schema import RulesProfile

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_ID = "draw-steel-v1.01b"


def get_profiles_dir() -> Path:
    """Directory holding the bundled profile YAML files."""
    return Path(__file__).parent / "data"


def load_profile_file(path: Path | str) -> RulesProfile:
    """Load and validate a single profile YAML file."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return RulesProfile.model_validate(data)


@lru_cache(maxsize=1)
def load_profiles() -> dict[str, RulesProfile]:
    """Load every bundled profile, keyed by profile id."""
    profiles: dict[str, RulesProfile] = {}
    for path in sorted(get_profiles_dir().glob("*.yaml")):
        profile = load_profile_file(path)
        if profile.id in profiles:
            logger.warning(f"Duplicate rules profile id {profile.id!r} in {path.name}, keeping first")
            continue
        profiles[profile.id] = profile
    return profiles


def list_profile_ids() -> list[str]:
    return sorted(load_profiles())


def get_default_profile() -> RulesProfile:
    return load_profiles()[DEFAULT_PROFILE_ID]


def get_rules_profile(profile_id: str | None) -> RulesProfile:
    """
    Resolve a profile id to a RulesProfile.

    Unknown or empty ids fall back to the default profile.
    """
    profiles = load_profiles()
    if profile_id and profile_id in profiles:
        return profiles[profile_id]
    if profile_id:
        logger.debug(f"Unknown rules profile {profile_id!r}, using {DEFAULT_PROFILE_ID}")
    return profiles[DEFAULT_PROFILE_ID]
