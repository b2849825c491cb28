"""
Viewer-specific views of a negotiation.

GMs see everything. Everyone else gets a copy with GM-only text removed,
unrevealed motivations/pitfalls and entries dropped, and tracks, rolls
and argument details hidden per the negotiation's visibility settings.
Presentation code renders these views and never redacts by itself.
"""

from __future__ import annotations

from ..state.schema import (
    ArgumentEntry,
    NegotiationState,
    RevealEntry,
    StatTrack,
    TrackVisibility,
    Viewer,
)


NPC_PLACEHOLDER_NAME = "NPC"


def range_label(value: int) -> str:
    """Coarse band for a track value."""
    if value <= 1:
        return "Low"
    if value <= 3:
        return "Mid"
    return "High"


def _redact_track(track: StatTrack | None, policy: TrackVisibility) -> StatTrack | None:
    if track is None or policy == "hidden":
        return None
    if policy == "range":
        track.display = range_label(track.value)
        track.value = None
    return track


def redact_for_viewer(state: NegotiationState, viewer: Viewer) -> NegotiationState:
    """View of state appropriate for viewer. The input is never modified."""
    redacted = state.model_copy(deep=True)
    if viewer.is_gm:
        return redacted

    visibility = redacted.setup.visibility
    redacted.setup.context_gm = ""

    for participant in redacted.participants:
        participant.notes_gm = ""
        if participant.kind != "npc":
            continue
        if not visibility.show_npc_names:
            participant.display_name = NPC_PLACEHOLDER_NAME

        npc = redacted.get_npc_state(participant.id)
        if npc is None:
            continue
        npc.motivations = [m for m in npc.motivations if m.is_revealed]
        npc.pitfalls = [p for p in npc.pitfalls if p.is_revealed]
        npc.interest = _redact_track(npc.interest, visibility.show_interest)
        npc.patience = _redact_track(npc.patience, visibility.show_patience)

    show_details = visibility.show_argument_details
    for segment in redacted.timeline:
        segment.entries = [e for e in segment.entries if e.is_revealed_to_players]
        for entry in segment.entries:
            detail = entry.detail
            detail.details_gm = ""
            if not show_details:
                if isinstance(entry, ArgumentEntry):
                    detail.summary = ""
                    detail.argument_type_id = ""
                    detail.claimed_motivation_id = None
                    detail.triggered_pitfall_id = None
                elif isinstance(entry, RevealEntry):
                    detail.kind = ""
                    detail.id = ""
                    detail.label = ""
                else:
                    detail.summary = ""

            roll = entry.roll
            if roll is not None and not (visibility.show_roll_totals and roll.visible_to_players):
                roll.formula = ""
                roll.total = None

            entry.effects = [e for e in entry.effects if e.visible_to_players]

    redacted.resolution.summary_gm = ""
    return redacted
