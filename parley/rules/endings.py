"""
End conditions and final resolution.

Checked in fixed priority against one NPC:

1. interest at its floor   -> failure, offer0
2. interest at its ceiling -> success, offer5
3. patience at its floor   -> ended, offer keyed by current interest

Floors and ceilings are the NPC track's own min/max.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..profiles.schema import RulesProfile
from ..state.schema import NegotiationState, ResolutionStatus, Viewer
from .common import DEFAULT_CONTEXT, EngineContext
from .redaction import redact_for_viewer
from .summary import render_gm_summary, render_public_summary


FAILURE_OUTCOME_ID = "offer0"
SUCCESS_OUTCOME_ID = "offer5"


@dataclass
class EndResult:
    status: ResolutionStatus
    outcome_id: str
    npc_participant_id: str


def default_npc_id(state: NegotiationState) -> str | None:
    """First active NPC, else the first NPC at all."""
    npcs = state.npc_participants()
    for participant in npcs:
        if participant.is_active:
            return participant.id
    return npcs[0].id if npcs else None


def evaluate_end_conditions(
    state: NegotiationState,
    rules: RulesProfile,
    npc_participant_id: str | None = None,
) -> EndResult | None:
    """None while the negotiation can continue, or when there is no NPC."""
    npc_id = npc_participant_id or default_npc_id(state)
    npc = state.get_npc_state(npc_id)
    if npc is None:
        return None

    interest, patience = npc.interest, npc.patience
    if interest is not None:
        if interest.value <= interest.min:
            return EndResult("failure", FAILURE_OUTCOME_ID, npc_id)
        if interest.value >= interest.max:
            return EndResult("success", SUCCESS_OUTCOME_ID, npc_id)

    if patience is not None and patience.value <= patience.min:
        offer = rules.get_offer(interest.value if interest is not None else 0)
        return EndResult("ended", offer.id if offer else "", npc_id)

    return None


def resolve_negotiation(
    state: NegotiationState,
    rules: RulesProfile,
    ctx: EngineContext | None = None,
) -> NegotiationState:
    """
    Close the negotiation.

    Status and outcome come from the end conditions; with nothing
    triggered the negotiation is simply "ended" with no outcome. Both
    summaries are rendered into the resolution.
    """
    ctx = ctx or DEFAULT_CONTEXT
    next_state = state.model_copy(deep=True)
    result = evaluate_end_conditions(next_state, rules)

    resolution = next_state.resolution
    resolution.status = result.status if result else "ended"
    resolution.outcome_id = result.outcome_id if result else ""
    resolution.resolved_at_iso = ctx.now()
    resolution.summary_public = render_public_summary(redact_for_viewer(next_state, Viewer(is_gm=False)), rules)
    resolution.summary_gm = render_gm_summary(next_state, rules)
    return next_state
