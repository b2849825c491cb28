"""
Pydantic models for negotiation state.

All state is versioned for migration support.
Serializes to the camelCase JSON document the host persists
(schemaVersion, npcStateByParticipantId, ...), while Python code
uses snake_case attributes.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Iterator, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


CURRENT_SCHEMA_VERSION = 1


def _document_alias(name: str) -> str:
    """snake_case -> document key. GM-only fields keep the 'GM' suffix."""
    alias = to_camel(name)
    if alias.endswith("Gm"):
        alias = alias[:-2] + "GM"
    return alias


class DocumentModel(BaseModel):
    """Base for everything stored inside a negotiation document."""
    model_config = ConfigDict(
        alias_generator=_document_alias,
        populate_by_name=True,
    )

    def to_document(self) -> dict:
        """JSON-ready dict using document keys."""
        return self.model_dump(mode="json", by_alias=True)


# -----------------------------------------------------------------------------
# Type aliases
# -----------------------------------------------------------------------------

ParticipantKind = Literal["pc", "npc"]
StructureKind = Literal["freeform", "rounds", "stages"]
TrackVisibility = Literal["hidden", "value", "range"]
StatName = Literal["interest", "patience"]
DetailKind = Literal["motivation", "pitfall"]
RollMode = Literal["none", "manualTotal", "rolled"]
ResolutionStatus = Literal["notStarted", "inProgress", "success", "failure", "ended"]


def generate_id() -> str:
    return str(uuid4())[:8]


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# -----------------------------------------------------------------------------
# Setup
# -----------------------------------------------------------------------------

class OutcomeTexts(DocumentModel):
    """GM-authored narrative for each way the negotiation can end."""
    success: str = ""
    partial_success: str = ""
    failure: str = ""


class Stage(DocumentModel):
    id: str
    label: str = ""


class Structure(DocumentModel):
    kind: StructureKind = "freeform"
    max_rounds: int | None = None
    stages: list[Stage] | None = None


class Visibility(DocumentModel):
    """What non-GM viewers get to see."""
    show_npc_names: bool = True
    show_interest: TrackVisibility = "value"
    show_patience: TrackVisibility = "value"
    show_argument_details: bool = True
    show_roll_totals: bool = True


class Setup(DocumentModel):
    overview: str = ""
    outcomes: OutcomeTexts = Field(default_factory=OutcomeTexts)
    rules_profile_id: str = "draw-steel-v1.01b"
    structure: Structure = Field(default_factory=Structure)
    visibility: Visibility = Field(default_factory=Visibility)
    context_gm: str = ""  # GM-only free text
    allow_editing_previous_entries: bool = False


# -----------------------------------------------------------------------------
# Participants and NPC tracks
# -----------------------------------------------------------------------------

class Participant(DocumentModel):
    id: str = Field(min_length=1)
    actor_uuid: str = ""  # External actor reference, optional
    display_name: str = ""
    kind: ParticipantKind = "npc"
    role: str = ""
    is_active: bool = True
    notes_gm: str = ""


class StatTrack(DocumentModel):
    """
    Bounded numeric track. value always sits within [min, max].

    Redacted views may replace value with a coarse display label.
    """
    value: int | None
    min: int = 0
    max: int = 5
    display: str | None = None  # Coarse label, only set on redacted views

    @model_validator(mode="after")
    def _clamp_value(self) -> "StatTrack":
        if self.min > self.max:
            raise ValueError(f"track min {self.min} exceeds max {self.max}")
        if self.value is None:
            if self.display is None:
                raise ValueError("track value missing")
            return self
        self.value = max(self.min, min(self.max, self.value))
        return self


class NpcDetail(DocumentModel):
    """A motivation or pitfall attached to one NPC."""
    id: str
    label: str = ""
    is_revealed: bool = False


class Discovered(DocumentModel):
    """Ids ever attached to the NPC through discovery."""
    motivations: list[str] = Field(default_factory=list)
    pitfalls: list[str] = Field(default_factory=list)


class NpcState(DocumentModel):
    interest: StatTrack | None = None
    patience: StatTrack | None = None
    motivations: list[NpcDetail] = Field(default_factory=list)
    pitfalls: list[NpcDetail] = Field(default_factory=list)
    discovered: Discovered = Field(default_factory=Discovered)

    def get_track(self, stat: StatName) -> StatTrack | None:
        return self.interest if stat == "interest" else self.patience

    def get_details(self, kind: DetailKind) -> list[NpcDetail]:
        return self.motivations if kind == "motivation" else self.pitfalls

    def find_detail(self, kind: DetailKind, detail_id: str) -> NpcDetail | None:
        for detail in self.get_details(kind):
            if detail.id == detail_id:
                return detail
        return None


# -----------------------------------------------------------------------------
# Timeline
# -----------------------------------------------------------------------------

class Roll(DocumentModel):
    mode: RollMode = "none"
    formula: str = ""
    total: int | float | None = None
    tier: int | None = None
    visible_to_players: bool = False


class Effect(DocumentModel):
    """One stat delta applied to one NPC."""
    stat: StatName
    delta: int
    applied_to_npc_participant_id: str
    reason: str = ""
    visible_to_players: bool = False


class ArgumentDetail(DocumentModel):
    argument_type_id: str = "custom"
    summary: str = ""
    details_gm: str = ""
    claimed_motivation_id: str | None = None
    triggered_pitfall_id: str | None = None


class TextDetail(DocumentModel):
    """Payload shared by test, note and adjustment entries."""
    summary: str = ""
    details_gm: str = ""


class RevealDetail(DocumentModel):
    kind: str = ""  # "motivation" | "pitfall" | "" when nothing was learned
    id: str = ""
    label: str = ""
    details_gm: str = ""


class EntryBase(DocumentModel):
    id: str
    timestamp_iso: str = ""
    actor_participant_id: str = ""
    target_npc_participant_id: str = ""
    roll: Roll | None = None
    effects: list[Effect] = Field(default_factory=list)
    is_revealed_to_players: bool = False

    @property
    def detail(self) -> ArgumentDetail | TextDetail | RevealDetail:
        """The variant payload (argument, test, note, adjustment or reveal)."""
        return getattr(self, self.entry_type)


class ArgumentEntry(EntryBase):
    entry_type: Literal["argument"] = "argument"
    argument: ArgumentDetail = Field(default_factory=ArgumentDetail)


class TestEntry(EntryBase):
    __test__ = False  # Not a pytest class

    entry_type: Literal["test"] = "test"
    test: TextDetail = Field(default_factory=TextDetail)


class NoteEntry(EntryBase):
    entry_type: Literal["note"] = "note"
    note: TextDetail = Field(default_factory=TextDetail)


class AdjustmentEntry(EntryBase):
    entry_type: Literal["adjustment"] = "adjustment"
    adjustment: TextDetail = Field(default_factory=TextDetail)


class RevealEntry(EntryBase):
    entry_type: Literal["reveal"] = "reveal"
    reveal: RevealDetail = Field(default_factory=RevealDetail)


Entry = Annotated[
    Union[ArgumentEntry, TestEntry, NoteEntry, AdjustmentEntry, RevealEntry],
    Field(discriminator="entry_type"),
]


class Segment(DocumentModel):
    """One round, stage or freeform block of the timeline."""
    id: str
    index: int = Field(default=1, ge=1)
    label: str = ""
    entries: list[Entry] = Field(default_factory=list)


class Resolution(DocumentModel):
    status: ResolutionStatus = "notStarted"
    outcome_id: str = ""
    summary_public: str = ""
    summary_gm: str = ""
    resolved_at_iso: str = ""


# -----------------------------------------------------------------------------
# Root
# -----------------------------------------------------------------------------

class NegotiationState(DocumentModel):
    """
    Complete negotiation state.

    This is the root document the host persists. Engine functions
    never mutate it; they return a replacement.
    """
    schema_version: int = CURRENT_SCHEMA_VERSION
    title: str = ""
    created_at_iso: str = ""  # Empty = not yet seeded
    created_by_user_id: str = ""

    setup: Setup = Field(default_factory=Setup)
    participants: list[Participant] = Field(default_factory=list)
    npc_state_by_participant_id: dict[str, NpcState] = Field(default_factory=dict)
    timeline: list[Segment] = Field(default_factory=list)
    resolution: Resolution = Field(default_factory=Resolution)

    @model_validator(mode="after")
    def _check_participant_ids(self) -> "NegotiationState":
        seen: set[str] = set()
        for participant in self.participants:
            if participant.id in seen:
                raise ValueError(f"duplicate participant id: {participant.id}")
            seen.add(participant.id)
        return self

    @property
    def is_seeded(self) -> bool:
        return bool(self.created_at_iso)

    @property
    def current_segment(self) -> Segment | None:
        return self.timeline[-1] if self.timeline else None

    def get_participant(self, participant_id: str | None) -> Participant | None:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def get_npc_state(self, participant_id: str | None) -> NpcState | None:
        if not participant_id:
            return None
        return self.npc_state_by_participant_id.get(participant_id)

    def npc_participants(self) -> list[Participant]:
        return [p for p in self.participants if p.kind == "npc"]

    def iter_entries(self) -> Iterator[ArgumentEntry | TestEntry | NoteEntry | AdjustmentEntry | RevealEntry]:
        for segment in self.timeline:
            yield from segment.entries


class Viewer(BaseModel):
    """Who is looking at the negotiation. Passed in, never read from globals."""
    is_gm: bool = False
    user_id: str = ""


# -----------------------------------------------------------------------------
# Migration
# -----------------------------------------------------------------------------

def migrate_state(raw: Any) -> dict:
    """
    Bring a raw stored document up to the current schema version.

    Non-dict input becomes an empty document. Version 1 documents are
    returned unchanged; later schema changes belong here and only here.
    """
    state = dict(raw) if isinstance(raw, dict) else {}
    version = state.get("schemaVersion")
    if version is None:
        state["schemaVersion"] = CURRENT_SCHEMA_VERSION
        return state

    try:
        version = int(version)
    except (TypeError, ValueError):
        version = CURRENT_SCHEMA_VERSION

    if version == CURRENT_SCHEMA_VERSION:
        state["schemaVersion"] = version
        return state

    # No migrations exist past v1 yet; stamp the current version.
    state["schemaVersion"] = CURRENT_SCHEMA_VERSION
    return state
