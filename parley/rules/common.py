"""
Shared plumbing for the negotiation rules.

Every transition takes a state snapshot and returns a replacement;
the helpers here build the pieces those transitions have in common.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..state.schema import (
    Effect,
    NegotiationState,
    Segment,
    StatName,
    generate_id,
    now_iso,
)


DEFAULT_SEGMENT_LABEL = "Negotiation"


@dataclass(frozen=True)
class EngineContext:
    """
    Sources of ids and timestamps.

    Hosts use the defaults; tests pass deterministic callables.
    """
    id_fn: Callable[[], str] = generate_id
    now_fn: Callable[[], str] = now_iso

    def new_id(self) -> str:
        return self.id_fn()

    def now(self) -> str:
        return self.now_fn()


DEFAULT_CONTEXT = EngineContext()


class RejectionReason(str, Enum):
    """Why a transition produced no entry."""
    UNKNOWN_ACTOR = "unknown_actor"
    UNKNOWN_TARGET = "unknown_target"
    TARGET_NOT_NPC = "target_not_npc"
    MISSING_NPC_STATE = "missing_npc_state"


@dataclass
class EntryResult:
    """
    Outcome of an entry transition.

    entry is None when the payload was rejected; next_state is then an
    unchanged copy of the input and reason says why.
    """
    next_state: NegotiationState
    entry: Any = None
    effects_applied: list[Effect] = field(default_factory=list)
    reason: RejectionReason | None = None

    @property
    def accepted(self) -> bool:
        return self.entry is not None


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def finite_number(value: Any) -> float | None:
    """value as a finite float, or None for blanks, junk, NaN and infinities."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def as_delta(value: Any) -> int:
    """Numeric delta from loose input; anything non-finite means no effect."""
    number = finite_number(value)
    return int(number) if number is not None else 0


def normalize_text(text: str | None) -> str:
    """Case-insensitive, whitespace-collapsed form used to spot repeats."""
    return " ".join(str(text or "").split()).lower()


def ensure_segment(state: NegotiationState, ctx: EngineContext) -> Segment:
    """
    Current segment, creating the initial one if the timeline is empty.

    Mutates state; only call on a working copy.
    """
    if not state.timeline:
        state.timeline.append(Segment(id=ctx.new_id(), index=1, label=DEFAULT_SEGMENT_LABEL))
    return state.timeline[-1]


def build_effects(
    state: NegotiationState,
    npc_id: str,
    deltas: list[tuple[StatName, int]],
    reason: str,
    entry_visible: bool,
) -> list[Effect]:
    """
    One Effect per non-zero delta.

    An effect is player-visible only when its entry is and the stat's
    visibility setting is not "hidden".
    """
    visibility = state.setup.visibility
    policy = {"interest": visibility.show_interest, "patience": visibility.show_patience}
    effects = []
    for stat, delta in deltas:
        if delta == 0:
            continue
        effects.append(Effect(
            stat=stat,
            delta=delta,
            applied_to_npc_participant_id=npc_id,
            reason=reason,
            visible_to_players=entry_visible and policy[stat] != "hidden",
        ))
    return effects


def validate_participants(state: NegotiationState, actor_id: str, target_id: str) -> RejectionReason | None:
    """None when actor exists and target is an NPC with tracked state."""
    if state.get_participant(actor_id) is None:
        return RejectionReason.UNKNOWN_ACTOR
    return validate_target(state, target_id)


def validate_target(state: NegotiationState, target_id: str) -> RejectionReason | None:
    """None when the target is an NPC with tracked state."""
    target = state.get_participant(target_id)
    if target is None:
        return RejectionReason.UNKNOWN_TARGET
    if target.kind != "npc":
        return RejectionReason.TARGET_NOT_NPC
    if state.get_npc_state(target_id) is None:
        return RejectionReason.MISSING_NPC_STATE
    return None
