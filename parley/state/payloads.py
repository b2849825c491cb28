"""
Payload schemas for negotiation transitions.

A payload is what the host builds from user input before calling a
rule function. Payloads are read-only inputs: they never end up in
state as-is, the rules copy the parts they accept into new records.

Keys may be given in snake_case or in the document's camelCase.
"""

from pydantic import Field

from .schema import DocumentModel, ParticipantKind, RollMode


class ParticipantPayload(DocumentModel):
    id: str | None = None  # Generated when missing
    actor_uuid: str = ""
    display_name: str | None = None  # Defaults to "NPC"/"PC"
    kind: ParticipantKind = "npc"
    role: str = ""
    is_active: bool = True
    notes_gm: str = ""


class RollInput(DocumentModel):
    """Roll as reported by the host. mode "none" means no total applies."""
    mode: RollMode = "none"
    formula: str = ""
    total: int | float | None = None
    tier: int | None = None
    visible_to_players: bool = False


class EntryPayload(DocumentModel):
    actor_participant_id: str = ""
    target_npc_participant_id: str = ""
    summary: str = ""
    details_gm: str = ""
    is_revealed_to_players: bool = False


class ArgumentPayload(EntryPayload):
    argument_type_id: str = "custom"
    claimed_motivation_id: str | None = None
    triggered_pitfall_id: str | None = None
    tier: int | float | None = None  # Explicit tier, wins over the roll
    roll: RollInput = Field(default_factory=RollInput)
    caught_in_lie: bool = False
    natural19or20: bool = False


class TestPayload(EntryPayload):
    """GM-declared test outcome with manual deltas."""
    __test__ = False  # Not a pytest class

    interest_delta: int | float | None = 0
    patience_delta: int | float | None = 0
    roll_total: int | float | None = None
    roll_visible_to_players: bool = False


class NotePayload(EntryPayload):
    pass


class AdjustmentPayload(EntryPayload):
    interest_delta: int | float | None = 0
    patience_delta: int | float | None = 0


class DiscoveryPayload(EntryPayload):
    """
    Attempt to uncover a motivation or pitfall.

    kind/detail_id name a specific detail; leave them empty to let the
    discovery roll pick one.
    """
    roll_total: int | float | None = None
    tier: int | None = None  # Used only when no roll total is given
    kind: str = ""
    detail_id: str = ""
    label: str = ""
    reveal_to_players: bool = False
