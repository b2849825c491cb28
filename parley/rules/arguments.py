"""
Argument resolution.

An argument is a PC trying to move the NPC. Which effect table applies
depends on what the argument leaned on (a fresh motivation, one that
already worked, nothing at all, or a pitfall); the roll tier picks the
row. A few riders then adjust the result:

- repeating the same plain argument forces tier 1
- a natural 19/20 on a plain argument costs no patience
- being caught in a lie that did not raise interest costs extra interest
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..profiles.schema import ArgumentProfile, ArgumentProfileKey, ArgumentTypeId, RulesProfile
from ..state.payloads import ArgumentPayload
from ..state.schema import (
    ArgumentDetail,
    ArgumentEntry,
    Effect,
    NegotiationState,
    NpcState,
    Roll,
)
from .common import (
    DEFAULT_CONTEXT,
    EngineContext,
    EntryResult,
    build_effects,
    ensure_segment,
    finite_number,
    normalize_text,
    validate_participants,
)
from .effects import apply_effects_in_place
from .tiering import compute_tier


DEFAULT_TIER = 2


@dataclass
class ArgumentPreview:
    """What an argument would do, without committing it."""
    tier: int | None
    profile_key: ArgumentProfileKey | None
    effects_applied: list[Effect] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Timeline history
# -----------------------------------------------------------------------------

def get_motivation_used_ids(state: NegotiationState, npc_id: str) -> set[str]:
    """Motivations that have already raised this NPC's interest."""
    used: set[str] = set()
    for entry in state.iter_entries():
        if entry.entry_type != "argument" or entry.target_npc_participant_id != npc_id:
            continue
        motivation_id = entry.argument.claimed_motivation_id
        if not motivation_id:
            continue
        for effect in entry.effects:
            if effect.stat == "interest" and effect.applied_to_npc_participant_id == npc_id:
                if effect.delta > 0:
                    used.add(motivation_id)
                break
    return used


def get_prior_no_motivation_summaries(state: NegotiationState, npc_id: str) -> set[str]:
    """Normalized summaries of earlier plain arguments against this NPC."""
    summaries: set[str] = set()
    for entry in state.iter_entries():
        if entry.entry_type != "argument" or entry.target_npc_participant_id != npc_id:
            continue
        if entry.argument.argument_type_id != ArgumentTypeId.NO_MOTIVATION.value:
            continue
        text = normalize_text(entry.argument.summary)
        if text:
            summaries.add(text)
    return summaries


# -----------------------------------------------------------------------------
# Decision steps
# -----------------------------------------------------------------------------

def select_profile_key(
    argument_type_id: str,
    claimed_motivation_id: str | None,
    triggered_pitfall_id: str | None,
    used_motivations: set[str],
) -> ArgumentProfileKey:
    """
    Effect table for an argument, by priority:

    1. a triggered pitfall (or an explicit pitfallUsed type)
    2. an appeal to a valid motivation: used or new
    3. an explicit no-motivation argument
    4. anything else is custom
    """
    if triggered_pitfall_id or argument_type_id == ArgumentTypeId.PITFALL_USED.value:
        return ArgumentProfileKey.PITFALL_USED
    if argument_type_id == ArgumentTypeId.APPEAL_MOTIVATION.value and claimed_motivation_id:
        if claimed_motivation_id in used_motivations:
            return ArgumentProfileKey.APPEAL_USED_MOTIVATION
        return ArgumentProfileKey.APPEAL_NEW_MOTIVATION
    if argument_type_id == ArgumentTypeId.NO_MOTIVATION.value:
        return ArgumentProfileKey.NO_MOTIVATION
    return ArgumentProfileKey.CUSTOM


def resolve_tier(
    rules: RulesProfile,
    profile: ArgumentProfile | None,
    explicit_tier: int | float | None,
    roll_total: int | float | None,
) -> int:
    """Automatic tier > explicit tier (>= 1) > tier from the roll > 2."""
    if profile is not None and profile.automatic_tier:
        return int(profile.automatic_tier)
    explicit = finite_number(explicit_tier)
    if explicit is not None and explicit >= 1:
        return int(explicit)
    computed = compute_tier(rules, roll_total)
    if computed:
        return computed
    return DEFAULT_TIER


def _normalize_references(npc: NpcState, payload: ArgumentPayload) -> tuple[str | None, str | None]:
    """Keep claimed motivation / triggered pitfall only if attached to the NPC."""
    motivation_ids = {m.id for m in npc.motivations if m.id}
    pitfall_ids = {p.id for p in npc.pitfalls if p.id}
    claimed = payload.claimed_motivation_id
    triggered = payload.triggered_pitfall_id
    return (
        claimed if claimed and claimed in motivation_ids else None,
        triggered if triggered and triggered in pitfall_ids else None,
    )


# -----------------------------------------------------------------------------
# Transition
# -----------------------------------------------------------------------------

@dataclass
class _Resolution:
    profile_key: ArgumentProfileKey
    tier: int
    interest_delta: int
    patience_delta: int
    claimed_motivation_id: str | None
    triggered_pitfall_id: str | None


def _resolve(
    state: NegotiationState,
    rules: RulesProfile,
    npc: NpcState,
    payload: ArgumentPayload,
    roll_total: int | float | None,
) -> _Resolution:
    target_id = payload.target_npc_participant_id
    claimed_motivation_id, triggered_pitfall_id = _normalize_references(npc, payload)

    profile_key = select_profile_key(
        payload.argument_type_id,
        claimed_motivation_id,
        triggered_pitfall_id,
        get_motivation_used_ids(state, target_id),
    )
    profile = rules.get_profile(profile_key)

    explicit_tier = payload.tier if payload.tier is not None else payload.roll.tier
    tier = resolve_tier(rules, profile, explicit_tier, roll_total)

    is_plain = profile_key == ArgumentProfileKey.NO_MOTIVATION and profile is not None
    if is_plain and profile.repeat_same_argument_forces_tier1:
        key = normalize_text(payload.summary)
        if key and key in get_prior_no_motivation_summaries(state, target_id):
            tier = 1

    interest_delta = 0
    patience_delta = 0
    if profile is not None and tier in profile.by_tier:
        interest_delta = profile.by_tier[tier].interest_delta
        patience_delta = profile.by_tier[tier].patience_delta

    if is_plain and profile.natural19or20_patience_no_loss and payload.natural19or20:
        patience_delta = 0

    if payload.caught_in_lie and interest_delta <= 0:
        interest_delta += rules.argument_resolution.caught_in_lie.extra_interest_penalty

    return _Resolution(
        profile_key=profile_key,
        tier=tier,
        interest_delta=interest_delta,
        patience_delta=patience_delta,
        claimed_motivation_id=claimed_motivation_id,
        triggered_pitfall_id=triggered_pitfall_id,
    )


def add_argument_entry(
    state: NegotiationState,
    rules: RulesProfile,
    payload: ArgumentPayload | dict,
    ctx: EngineContext | None = None,
) -> EntryResult:
    """
    Resolve an argument and append it to the current segment.

    Returns the new state, the entry and the effects applied. When the
    actor or target is invalid, the state comes back unchanged with
    entry=None and a rejection reason.
    """
    ctx = ctx or DEFAULT_CONTEXT
    if isinstance(payload, dict):
        payload = ArgumentPayload.model_validate(payload)

    next_state = state.model_copy(deep=True)
    actor_id = payload.actor_participant_id
    target_id = payload.target_npc_participant_id

    reason = validate_participants(next_state, actor_id, target_id)
    if reason is not None:
        return EntryResult(next_state=next_state, reason=reason)

    roll_mode = payload.roll.mode
    roll_total = None if roll_mode == "none" else payload.roll.total
    resolution = _resolve(next_state, rules, next_state.get_npc_state(target_id), payload, roll_total)

    entry_visible = payload.is_revealed_to_players
    effects = build_effects(
        next_state,
        target_id,
        [("interest", resolution.interest_delta), ("patience", resolution.patience_delta)],
        reason=resolution.profile_key.value,
        entry_visible=entry_visible,
    )

    entry = ArgumentEntry(
        id=ctx.new_id(),
        timestamp_iso=ctx.now(),
        actor_participant_id=actor_id,
        target_npc_participant_id=target_id,
        argument=ArgumentDetail(
            argument_type_id=payload.argument_type_id,
            summary=payload.summary,
            details_gm=payload.details_gm,
            claimed_motivation_id=resolution.claimed_motivation_id,
            triggered_pitfall_id=resolution.triggered_pitfall_id,
        ),
        roll=Roll(
            mode=roll_mode,
            formula=payload.roll.formula,
            total=roll_total,
            tier=resolution.tier,
            visible_to_players=payload.roll.visible_to_players,
        ),
        effects=effects,
        is_revealed_to_players=entry_visible,
    )

    ensure_segment(next_state, ctx).entries.append(entry)
    apply_effects_in_place(next_state, effects)
    return EntryResult(next_state=next_state, entry=entry, effects_applied=effects)


def preview_argument_entry(
    state: NegotiationState,
    rules: RulesProfile,
    payload: ArgumentPayload | dict,
) -> ArgumentPreview:
    """Tier, profile and effects an argument would produce. Nothing is recorded."""
    if isinstance(payload, dict):
        payload = ArgumentPayload.model_validate(payload)

    target_id = payload.target_npc_participant_id
    if validate_participants(state, payload.actor_participant_id, target_id) is not None:
        return ArgumentPreview(tier=None, profile_key=None)

    roll_total = None if payload.roll.mode == "none" else payload.roll.total
    resolution = _resolve(state, rules, state.get_npc_state(target_id), payload, roll_total)
    effects = build_effects(
        state,
        target_id,
        [("interest", resolution.interest_delta), ("patience", resolution.patience_delta)],
        reason=resolution.profile_key.value,
        entry_visible=payload.is_revealed_to_players,
    )
    return ArgumentPreview(tier=resolution.tier, profile_key=resolution.profile_key, effects_applied=effects)
