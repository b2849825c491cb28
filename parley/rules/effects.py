"""Applying stat effects to NPC tracks."""

from ..state.schema import Effect, NegotiationState
from .common import clamp


def apply_effects_in_place(state: NegotiationState, effects: list[Effect]) -> None:
    """
    Add each effect's delta to its NPC track, clamped to [min, max].

    Mutates state. Effects pointing at an NPC that no longer exists
    (e.g. a removed participant) are skipped.
    """
    for effect in effects:
        npc = state.get_npc_state(effect.applied_to_npc_participant_id)
        if npc is None:
            continue
        track = npc.get_track(effect.stat)
        if track is None:
            continue
        track.value = clamp(track.value + effect.delta, track.min, track.max)


def apply_effects(state: NegotiationState, effects: list[Effect]) -> NegotiationState:
    """Copy of state with effects applied."""
    next_state = state.model_copy(deep=True)
    apply_effects_in_place(next_state, effects)
    return next_state
