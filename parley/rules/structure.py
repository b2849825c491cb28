"""
Negotiation structure: starting, stopping and advancing segments.

Freeform negotiations live in a single segment. Rounds and stages
append a new segment each time the structure advances.
"""

from ..profiles.schema import RulesProfile
from ..state.schema import NegotiationState, Segment
from .common import DEFAULT_CONTEXT, EngineContext, ensure_segment


def start_negotiation(
    state: NegotiationState,
    rules: RulesProfile,
    ctx: EngineContext | None = None,
) -> NegotiationState:
    """Move notStarted -> inProgress and make sure a segment exists."""
    ctx = ctx or DEFAULT_CONTEXT
    next_state = state.model_copy(deep=True)
    if next_state.resolution.status == "notStarted":
        next_state.resolution.status = "inProgress"
    ensure_segment(next_state, ctx)
    return next_state


def stop_negotiation(state: NegotiationState) -> NegotiationState:
    """Put the negotiation back to notStarted. The timeline is kept."""
    next_state = state.model_copy(deep=True)
    next_state.resolution.status = "notStarted"
    return next_state


def advance_structure(
    state: NegotiationState,
    rules: RulesProfile,
    ctx: EngineContext | None = None,
) -> NegotiationState:
    """
    Open the next round or stage.

    - freeform: no change
    - rounds: appends "Round N"; refuses silently once max_rounds is reached
    - stages: appends the next configured stage label, or "Stage N"
    """
    ctx = ctx or DEFAULT_CONTEXT
    next_state = state.model_copy(deep=True)
    structure = next_state.setup.structure
    next_index = len(next_state.timeline) + 1

    if structure.kind == "rounds":
        max_rounds = structure.max_rounds
        if max_rounds is None:
            max_rounds = rules.structure.max_rounds or 0
        if max_rounds > 0 and next_index > max_rounds:
            return next_state
        label = f"Round {next_index}"
    elif structure.kind == "stages":
        stages = structure.stages
        if stages is None and rules.structure.stages is not None:
            stages = rules.structure.stages
        stages = stages or []
        label = f"Stage {next_index}"
        if next_index <= len(stages) and stages[next_index - 1].label:
            label = stages[next_index - 1].label
    else:
        return next_state

    next_state.timeline.append(Segment(id=ctx.new_id(), index=next_index, label=label))
    return next_state
