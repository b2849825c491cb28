"""
Test, note, adjustment and discovery entries.

Tests and adjustments carry GM-declared deltas; notes carry none.
Discovery rolls against the profile's discovery test and can uncover
one motivation or pitfall.
"""

from __future__ import annotations

from ..profiles.schema import RulesProfile
from ..state.payloads import AdjustmentPayload, DiscoveryPayload, NotePayload, TestPayload
from ..state.schema import (
    AdjustmentEntry,
    DetailKind,
    NegotiationState,
    NoteEntry,
    NpcDetail,
    NpcState,
    RevealDetail,
    RevealEntry,
    Roll,
    TestEntry,
    TextDetail,
)
from .common import (
    DEFAULT_CONTEXT,
    EngineContext,
    EntryResult,
    as_delta,
    build_effects,
    ensure_segment,
    finite_number,
    validate_participants,
    validate_target,
)
from .effects import apply_effects_in_place
from .tiering import compute_tier


DISCOVERY_DEFAULT_TIER = 2


# -----------------------------------------------------------------------------
# Manual entries
# -----------------------------------------------------------------------------

def add_test_entry(
    state: NegotiationState,
    payload: TestPayload | dict,
    ctx: EngineContext | None = None,
) -> EntryResult:
    """
    Record a GM-declared test with explicit interest/patience deltas.

    A roll is attached only when a finite roll total was given.
    """
    ctx = ctx or DEFAULT_CONTEXT
    if isinstance(payload, dict):
        payload = TestPayload.model_validate(payload)

    next_state = state.model_copy(deep=True)
    target_id = payload.target_npc_participant_id
    reason = validate_target(next_state, target_id)
    if reason is not None:
        return EntryResult(next_state=next_state, reason=reason)

    effects = build_effects(
        next_state,
        target_id,
        [("interest", as_delta(payload.interest_delta)), ("patience", as_delta(payload.patience_delta))],
        reason="test",
        entry_visible=payload.is_revealed_to_players,
    )

    roll = None
    total = finite_number(payload.roll_total)
    if total is not None:
        roll = Roll(mode="manualTotal", total=payload.roll_total, visible_to_players=payload.roll_visible_to_players)

    entry = TestEntry(
        id=ctx.new_id(),
        timestamp_iso=ctx.now(),
        actor_participant_id=payload.actor_participant_id,
        target_npc_participant_id=target_id,
        test=TextDetail(summary=payload.summary, details_gm=payload.details_gm),
        roll=roll,
        effects=effects,
        is_revealed_to_players=payload.is_revealed_to_players,
    )

    ensure_segment(next_state, ctx).entries.append(entry)
    apply_effects_in_place(next_state, effects)
    return EntryResult(next_state=next_state, entry=entry, effects_applied=effects)


def add_note_entry(
    state: NegotiationState,
    payload: NotePayload | dict,
    ctx: EngineContext | None = None,
) -> EntryResult:
    """Narrative-only entry. The actor and target are optional."""
    ctx = ctx or DEFAULT_CONTEXT
    if isinstance(payload, dict):
        payload = NotePayload.model_validate(payload)

    next_state = state.model_copy(deep=True)
    entry = NoteEntry(
        id=ctx.new_id(),
        timestamp_iso=ctx.now(),
        actor_participant_id=payload.actor_participant_id,
        target_npc_participant_id=payload.target_npc_participant_id,
        note=TextDetail(summary=payload.summary, details_gm=payload.details_gm),
        is_revealed_to_players=payload.is_revealed_to_players,
    )
    ensure_segment(next_state, ctx).entries.append(entry)
    return EntryResult(next_state=next_state, entry=entry)


def add_adjustment_entry(
    state: NegotiationState,
    payload: AdjustmentPayload | dict,
    ctx: EngineContext | None = None,
) -> EntryResult:
    """GM correction of an NPC's tracks. Same shape as a test, never rolled."""
    ctx = ctx or DEFAULT_CONTEXT
    if isinstance(payload, dict):
        payload = AdjustmentPayload.model_validate(payload)

    next_state = state.model_copy(deep=True)
    target_id = payload.target_npc_participant_id
    reason = validate_target(next_state, target_id)
    if reason is not None:
        return EntryResult(next_state=next_state, reason=reason)

    effects = build_effects(
        next_state,
        target_id,
        [("interest", as_delta(payload.interest_delta)), ("patience", as_delta(payload.patience_delta))],
        reason="adjustment",
        entry_visible=payload.is_revealed_to_players,
    )

    entry = AdjustmentEntry(
        id=ctx.new_id(),
        timestamp_iso=ctx.now(),
        actor_participant_id=payload.actor_participant_id,
        target_npc_participant_id=target_id,
        adjustment=TextDetail(summary=payload.summary, details_gm=payload.details_gm),
        effects=effects,
        is_revealed_to_players=payload.is_revealed_to_players,
    )

    ensure_segment(next_state, ctx).entries.append(entry)
    apply_effects_in_place(next_state, effects)
    return EntryResult(next_state=next_state, entry=entry, effects_applied=effects)


# -----------------------------------------------------------------------------
# Discovery
# -----------------------------------------------------------------------------

def _pick_unrevealed(npc: NpcState) -> tuple[DetailKind, NpcDetail] | None:
    """First hidden motivation, else first hidden pitfall."""
    for detail in npc.motivations:
        if not detail.is_revealed:
            return "motivation", detail
    for detail in npc.pitfalls:
        if not detail.is_revealed:
            return "pitfall", detail
    return None


def _discovery_tier(rules: RulesProfile, payload: DiscoveryPayload) -> int | None:
    if finite_number(payload.roll_total) is not None:
        return compute_tier(rules, payload.roll_total) or DISCOVERY_DEFAULT_TIER
    return payload.tier


def add_discovery_entry(
    state: NegotiationState,
    rules: RulesProfile,
    payload: DiscoveryPayload | dict,
    ctx: EngineContext | None = None,
) -> EntryResult:
    """
    Resolve a discovery attempt against an NPC.

    The tier comes from the roll total (tier 2 if no band matches) or,
    without a total, from an explicit tier. The tier's patience delta is
    applied. If no detail was named and the tier learns "one", the first
    unrevealed motivation (else pitfall) is picked. A discovered detail is
    attached to the NPC when missing, revealed per reveal_to_players and
    recorded in the NPC's discovered ids.
    """
    ctx = ctx or DEFAULT_CONTEXT
    if isinstance(payload, dict):
        payload = DiscoveryPayload.model_validate(payload)

    next_state = state.model_copy(deep=True)
    target_id = payload.target_npc_participant_id
    reason = validate_participants(next_state, payload.actor_participant_id, target_id)
    if reason is not None:
        return EntryResult(next_state=next_state, reason=reason)

    npc = next_state.get_npc_state(target_id)
    discovery = rules.discovery_test
    tier = _discovery_tier(rules, payload)
    tier_effect = discovery.by_tier.get(tier) if tier is not None else None

    patience_delta = tier_effect.patience_delta if tier_effect else 0
    effects = build_effects(
        next_state,
        target_id,
        [("patience", patience_delta)],
        reason=discovery.id,
        entry_visible=payload.is_revealed_to_players,
    )

    kind: str = payload.kind if payload.kind in ("motivation", "pitfall") else ""
    detail_id = payload.detail_id if kind else ""
    label = payload.label
    if not (kind and detail_id) and tier_effect is not None and tier_effect.learns == "one":
        picked = _pick_unrevealed(npc)
        if picked is not None:
            kind, detail = picked
            detail_id = detail.id
            label = label or detail.label

    if kind and detail_id:
        detail = npc.find_detail(kind, detail_id)
        if detail is None:
            definition = rules.get_definition(kind, detail_id)
            detail = NpcDetail(
                id=detail_id,
                label=label or (definition.label if definition else detail_id),
            )
            npc.get_details(kind).append(detail)
        detail.is_revealed = payload.reveal_to_players
        label = label or detail.label

        discovered = npc.discovered.motivations if kind == "motivation" else npc.discovered.pitfalls
        if detail_id not in discovered:
            discovered.append(detail_id)
    else:
        kind, detail_id, label = "", "", ""

    roll = None
    if finite_number(payload.roll_total) is not None:
        roll = Roll(mode="manualTotal", total=payload.roll_total, tier=tier, visible_to_players=False)

    entry = RevealEntry(
        id=ctx.new_id(),
        timestamp_iso=ctx.now(),
        actor_participant_id=payload.actor_participant_id,
        target_npc_participant_id=target_id,
        reveal=RevealDetail(kind=kind, id=detail_id, label=label, details_gm=payload.details_gm),
        roll=roll,
        effects=effects,
        is_revealed_to_players=payload.is_revealed_to_players,
    )

    ensure_segment(next_state, ctx).entries.append(entry)
    apply_effects_in_place(next_state, effects)
    return EntryResult(next_state=next_state, entry=entry, effects_applied=effects)
