"""
Pydantic models for negotiation rules profiles.

A profile is authored once (YAML under profiles/data/) and never mutated.
All models are frozen so a loaded profile can be shared between calls.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ProfileModel(BaseModel):
    """Base for all profile data: immutable once validated."""
    model_config = ConfigDict(frozen=True)


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class ArgumentProfileKey(str, Enum):
    """Effect table chosen for an argument, by circumstance."""
    APPEAL_NEW_MOTIVATION = "appealNewMotivation"    # First successful appeal to this motivation
    APPEAL_USED_MOTIVATION = "appealUsedMotivation"  # Motivation already moved interest
    NO_MOTIVATION = "noMotivationOrPitfall"          # Plain argument, no lever
    PITFALL_USED = "pitfallUsed"                     # Argument touched a pitfall
    CUSTOM = "custom"                                # No table, zero deltas


class ArgumentTypeId(str, Enum):
    """Argument types a player can declare."""
    APPEAL_MOTIVATION = "appealMotivation"
    NO_MOTIVATION = "noMotivation"
    PITFALL_USED = "pitfallUsed"
    CUSTOM = "custom"


# -----------------------------------------------------------------------------
# Building blocks
# -----------------------------------------------------------------------------

class TrackDefaults(ProfileModel):
    """Range and starting value of an NPC track."""
    min: int = 0
    max: int = 5
    start: int = 0


class NpcDefaults(ProfileModel):
    interest: TrackDefaults = Field(default_factory=lambda: TrackDefaults(min=0, max=5, start=2))
    patience: TrackDefaults = Field(default_factory=lambda: TrackDefaults(min=0, max=5, start=3))


class StartingAttitude(ProfileModel):
    """Named opening stance that sets both tracks at once."""
    id: str
    label: str
    interest_start: int
    patience_start: int


class Definition(ProfileModel):
    """Canonical id/label pair (motivation, pitfall, argument type)."""
    id: str
    label: str


class StageDefinition(ProfileModel):
    id: str
    label: str = ""


class StructureDefaults(ProfileModel):
    kind: Literal["freeform", "rounds", "stages"] = "freeform"
    max_rounds: int | None = None
    stages: list[StageDefinition] | None = None


class TierBand(ProfileModel):
    """Roll totals from min_total to max_total (inclusive) map to tier."""
    tier: int
    min_total: int
    max_total: int | None = None  # None = open-ended above


class Tiering(ProfileModel):
    method: str = "totalBands"
    bands: list[TierBand] = Field(default_factory=list)


class TierEffect(ProfileModel):
    interest_delta: int = 0
    patience_delta: int = 0


class ArgumentProfile(ProfileModel):
    """Per-tier effect table plus optional riders."""
    by_tier: dict[int, TierEffect] = Field(default_factory=dict)
    automatic_tier: int | None = None
    natural19or20_patience_no_loss: bool = False
    repeat_same_argument_forces_tier1: bool = False


class CaughtInLie(ProfileModel):
    extra_interest_penalty: int = -1


class ArgumentResolution(ProfileModel):
    tiering: Tiering = Field(default_factory=Tiering)
    profiles: dict[ArgumentProfileKey, ArgumentProfile] = Field(default_factory=dict)
    caught_in_lie: CaughtInLie = Field(default_factory=CaughtInLie)


class DiscoveryTierEffect(ProfileModel):
    patience_delta: int = 0
    learns: Literal["none", "one"] = "none"


class DiscoveryTest(ProfileModel):
    id: str = "discover"
    label: str = ""
    by_tier: dict[int, DiscoveryTierEffect] = Field(default_factory=dict)


class Offer(ProfileModel):
    id: str
    label: str


# -----------------------------------------------------------------------------
# Root
# -----------------------------------------------------------------------------

class RulesProfile(ProfileModel):
    """
    Complete rules profile.

    Selected per negotiation by `setup.rules_profile_id`.
    """
    id: str
    label: str = ""
    structure: StructureDefaults = Field(default_factory=StructureDefaults)
    npc_defaults: NpcDefaults = Field(default_factory=NpcDefaults)
    starting_attitudes: list[StartingAttitude] = Field(default_factory=list)
    motivations: list[Definition] = Field(default_factory=list)
    pitfalls: list[Definition] = Field(default_factory=list)
    argument_types: list[Definition] = Field(default_factory=list)
    argument_resolution: ArgumentResolution = Field(default_factory=ArgumentResolution)
    discovery_test: DiscoveryTest = Field(default_factory=DiscoveryTest)
    offers_by_interest: dict[int, Offer] = Field(default_factory=dict)

    def get_profile(self, key: ArgumentProfileKey) -> ArgumentProfile | None:
        """Argument profile for key, or None (CUSTOM never has one)."""
        return self.argument_resolution.profiles.get(key)

    def get_attitude(self, attitude_id: str) -> StartingAttitude | None:
        for attitude in self.starting_attitudes:
            if attitude.id == attitude_id:
                return attitude
        return None

    def get_definition(self, kind: str, detail_id: str) -> Definition | None:
        """Look up a canonical motivation or pitfall by id."""
        pool = self.motivations if kind == "motivation" else self.pitfalls if kind == "pitfall" else []
        for definition in pool:
            if definition.id == detail_id:
                return definition
        return None

    def get_offer(self, interest: int) -> Offer | None:
        """Offer for an interest value, clamped into the table's key range."""
        if not self.offers_by_interest:
            return None
        keys = sorted(self.offers_by_interest)
        clamped = max(keys[0], min(keys[-1], int(interest)))
        return self.offers_by_interest.get(clamped)
