"""Plain-text negotiation summaries for chat and logs."""

from __future__ import annotations

from ..profiles.schema import RulesProfile
from ..state.schema import NegotiationState


DEFAULT_TITLE = "Negotiation"


def render_public_summary(state: NegotiationState, rules: RulesProfile) -> str:
    """
    Title plus one "<NPC>: <offer>" line per NPC, or "<NPC>: <band>
    interest" when the view only carries a range label.

    Pass a redacted view; this function shows whatever it is given.
    """
    lines = [state.title or DEFAULT_TITLE]
    for participant in state.npc_participants():
        npc = state.get_npc_state(participant.id)
        if npc is None:
            continue
        if npc.interest is not None and npc.interest.value is None:
            lines.append(f"{participant.display_name}: {npc.interest.display} interest")
            continue
        interest = npc.interest.value if npc.interest is not None else 0
        offer = rules.get_offer(interest)
        lines.append(f"{participant.display_name}: {offer.label if offer else ''}")
    return "\n".join(lines)


def render_gm_summary(state: NegotiationState, rules: RulesProfile) -> str:
    """Public summary followed by GM context and still-hidden motivations/pitfalls."""
    base = render_public_summary(state, rules)
    gm_lines = []

    context = state.setup.context_gm.strip()
    if context:
        gm_lines.append(f"GM: {context}")

    for participant in state.npc_participants():
        npc = state.get_npc_state(participant.id)
        if npc is None:
            continue
        hidden_motivations = [m.label for m in npc.motivations if not m.is_revealed and m.label]
        hidden_pitfalls = [p.label for p in npc.pitfalls if not p.is_revealed and p.label]
        if hidden_motivations:
            gm_lines.append(f"{participant.display_name} hidden motivations: {', '.join(hidden_motivations)}")
        if hidden_pitfalls:
            gm_lines.append(f"{participant.display_name} hidden pitfalls: {', '.join(hidden_pitfalls)}")

    if not gm_lines:
        return base
    return base + "\n\n" + "\n".join(gm_lines)
