"""
Negotiation setup as pure functions.

Creating the default state, managing participants and the
motivations/pitfalls attached to an NPC. Each function returns a new
state and leaves its input untouched.
"""

from __future__ import annotations

from ..profiles.schema import RulesProfile
from ..state.payloads import ParticipantPayload
from ..state.schema import (
    DetailKind,
    NegotiationState,
    NpcDetail,
    NpcState,
    Participant,
    Resolution,
    Setup,
    Stage,
    StatTrack,
    Structure,
)
from .common import DEFAULT_CONTEXT, EngineContext, clamp


def create_default_negotiation_state(
    rules: RulesProfile,
    title: str = "",
    created_by_user_id: str = "",
    ctx: EngineContext | None = None,
) -> NegotiationState:
    """Fresh, seeded state for a new negotiation under rules."""
    ctx = ctx or DEFAULT_CONTEXT
    structure = rules.structure
    stages = None
    if structure.stages is not None:
        stages = [Stage(id=s.id, label=s.label) for s in structure.stages]

    return NegotiationState(
        title=title,
        created_at_iso=ctx.now(),
        created_by_user_id=created_by_user_id,
        setup=Setup(
            rules_profile_id=rules.id,
            structure=Structure(
                kind=structure.kind,
                max_rounds=structure.max_rounds,
                stages=stages,
            ),
        ),
        resolution=Resolution(status="notStarted"),
    )


def new_npc_state(rules: RulesProfile, starting_attitude_id: str | None = None) -> NpcState:
    """
    NpcState seeded from the profile's defaults.

    A known starting attitude overrides both start values.
    """
    interest = rules.npc_defaults.interest
    patience = rules.npc_defaults.patience
    interest_start, patience_start = interest.start, patience.start

    attitude = rules.get_attitude(starting_attitude_id) if starting_attitude_id else None
    if attitude is not None:
        interest_start = attitude.interest_start
        patience_start = attitude.patience_start

    return NpcState(
        interest=StatTrack(
            value=clamp(interest_start, interest.min, interest.max),
            min=interest.min,
            max=interest.max,
        ),
        patience=StatTrack(
            value=clamp(patience_start, patience.min, patience.max),
            min=patience.min,
            max=patience.max,
        ),
    )


def add_participant(
    state: NegotiationState,
    rules: RulesProfile,
    participant: ParticipantPayload | dict,
    starting_attitude_id: str | None = None,
    ctx: EngineContext | None = None,
) -> NegotiationState:
    """
    Append a participant; NPCs also get tracked stats.

    The engine allows any number of NPCs. Limiting a negotiation to a
    single NPC is the integration layer's policy.
    """
    ctx = ctx or DEFAULT_CONTEXT
    if isinstance(participant, dict):
        participant = ParticipantPayload.model_validate(participant)

    next_state = state.model_copy(deep=True)
    participant_id = participant.id or ctx.new_id()
    kind = participant.kind
    display_name = participant.display_name
    if display_name is None:
        display_name = "NPC" if kind == "npc" else "PC"

    next_state.participants.append(Participant(
        id=participant_id,
        actor_uuid=participant.actor_uuid,
        display_name=display_name,
        kind=kind,
        role=participant.role,
        is_active=participant.is_active,
        notes_gm=participant.notes_gm,
    ))

    if kind == "npc" and participant_id not in next_state.npc_state_by_participant_id:
        next_state.npc_state_by_participant_id[participant_id] = new_npc_state(rules, starting_attitude_id)

    return next_state


def remove_participant(state: NegotiationState, participant_id: str) -> NegotiationState:
    """Drop a participant and its NPC state. Timeline entries are kept."""
    next_state = state.model_copy(deep=True)
    next_state.participants = [p for p in next_state.participants if p.id != participant_id]
    next_state.npc_state_by_participant_id.pop(participant_id, None)
    return next_state


def ensure_npc_states(state: NegotiationState, rules: RulesProfile) -> NegotiationState:
    """Back-fill NpcState for any NPC participant that lacks one."""
    next_state = state.model_copy(deep=True)
    for participant in next_state.npc_participants():
        if participant.id not in next_state.npc_state_by_participant_id:
            next_state.npc_state_by_participant_id[participant.id] = new_npc_state(rules)
    return next_state


def add_npc_detail(
    state: NegotiationState,
    rules: RulesProfile,
    npc_participant_id: str,
    kind: DetailKind,
    detail_id: str,
) -> NegotiationState:
    """
    Attach a canonical motivation or pitfall (unrevealed) to an NPC.

    Unknown definitions, unknown NPCs and duplicates leave the state as is.
    """
    next_state = state.model_copy(deep=True)
    npc = next_state.get_npc_state(npc_participant_id)
    definition = rules.get_definition(kind, detail_id)
    if npc is None or definition is None:
        return next_state
    if npc.find_detail(kind, detail_id) is not None:
        return next_state

    npc.get_details(kind).append(NpcDetail(id=definition.id, label=definition.label, is_revealed=False))
    return next_state


def remove_npc_detail(
    state: NegotiationState,
    npc_participant_id: str,
    kind: DetailKind,
    detail_id: str,
) -> NegotiationState:
    next_state = state.model_copy(deep=True)
    npc = next_state.get_npc_state(npc_participant_id)
    if npc is None:
        return next_state
    remaining = [d for d in npc.get_details(kind) if d.id != detail_id]
    if kind == "motivation":
        npc.motivations = remaining
    else:
        npc.pitfalls = remaining
    return next_state


def set_detail_revealed(
    state: NegotiationState,
    npc_participant_id: str,
    kind: DetailKind,
    detail_id: str,
    revealed: bool = True,
) -> NegotiationState:
    """Show or hide one attached motivation/pitfall from players."""
    next_state = state.model_copy(deep=True)
    npc = next_state.get_npc_state(npc_participant_id)
    detail = npc.find_detail(kind, detail_id) if npc else None
    if detail is not None:
        detail.is_revealed = revealed
    return next_state
