"""
Tests for viewer redaction and summary rendering.

Players must never see GM-only text, unrevealed details or hidden
numbers; GMs see everything.
"""

import pytest

from parley.rules import (
    add_argument_entry,
    add_discovery_entry,
    add_note_entry,
    add_npc_detail,
    redact_for_viewer,
    render_gm_summary,
    render_public_summary,
    set_detail_revealed,
)
from parley.rules.redaction import NPC_PLACEHOLDER_NAME, range_label
from parley.state import Viewer


PLAYER = Viewer(is_gm=False, user_id="p1")
GM = Viewer(is_gm=True, user_id="g1")


@pytest.fixture
def secret_state(seeded_state, rules):
    """GM context, GM notes, one revealed and one hidden motivation."""
    state = seeded_state
    state.setup.context_gm = "She is being blackmailed."
    state.participants[1].notes_gm = "Carries a poisoned ring."
    state = add_npc_detail(state, rules, "npc1", "motivation", "power")
    state = add_npc_detail(state, rules, "npc1", "motivation", "legacy")
    state = set_detail_revealed(state, "npc1", "motivation", "legacy")
    state.setup.visibility.show_patience = "hidden"
    state.setup.visibility.show_interest = "range"
    return state


def argue(state, rules, ctx, **fields):
    payload = {
        "actor_participant_id": "pc1",
        "target_npc_participant_id": "npc1",
        "argument_type_id": "noMotivation",
        "summary": "Think of your house",
        "details_gm": "She sees through it",
        "roll": {"mode": "rolled", "formula": "2d10+2", "total": 15, "visible_to_players": True},
        **fields,
    }
    return add_argument_entry(state, rules, payload, ctx).next_state


class TestRedactionCompleteness:
    """Non-GM views carry nothing the GM has not shared."""

    def test_gm_only_text_cleared(self, secret_state):
        view = redact_for_viewer(secret_state, PLAYER)

        assert view.setup.context_gm == ""
        assert all(p.notes_gm == "" for p in view.participants)

    def test_only_revealed_motivations(self, secret_state):
        view = redact_for_viewer(secret_state, PLAYER)

        assert [m.id for m in view.get_npc_state("npc1").motivations] == ["legacy"]

    def test_tracks_follow_visibility(self, secret_state):
        npc = redact_for_viewer(secret_state, PLAYER).get_npc_state("npc1")

        assert npc.patience is None
        assert npc.interest.display == "Mid"
        assert npc.interest.value is None

    def test_range_document_has_no_number(self, secret_state):
        document = redact_for_viewer(secret_state, PLAYER).to_document()

        interest = document["npcStateByParticipantId"]["npc1"]["interest"]
        assert interest["value"] is None
        assert interest["display"] == "Mid"

    def test_input_unchanged(self, secret_state):
        before = secret_state.model_dump()

        redact_for_viewer(secret_state, PLAYER)

        assert secret_state.model_dump() == before

    def test_gm_sees_everything(self, secret_state):
        view = redact_for_viewer(secret_state, GM)

        assert view.model_dump() == secret_state.model_dump()
        assert view is not secret_state

    def test_npc_name_placeholder(self, seeded_state):
        seeded_state.setup.visibility.show_npc_names = False

        view = redact_for_viewer(seeded_state, PLAYER)

        names = {p.id: p.display_name for p in view.participants}
        assert names == {"pc1": "Vex", "npc1": NPC_PLACEHOLDER_NAME}

    def test_gm_summary_cleared(self, seeded_state):
        seeded_state.resolution.summary_gm = "secret"
        seeded_state.resolution.summary_public = "public"

        view = redact_for_viewer(seeded_state, PLAYER)

        assert view.resolution.summary_gm == ""
        assert view.resolution.summary_public == "public"

    @pytest.mark.parametrize("value,label", [(0, "Low"), (1, "Low"), (2, "Mid"), (3, "Mid"), (4, "High"), (5, "High")])
    def test_range_labels(self, value, label):
        assert range_label(value) == label


class TestTimelineRedaction:
    """Entries and their contents."""

    def test_unrevealed_entries_dropped(self, seeded_state, rules, ctx):
        state = argue(seeded_state, rules, ctx)
        state = argue(state, rules, ctx, is_revealed_to_players=True, summary="Shown")

        entries = list(redact_for_viewer(state, PLAYER).iter_entries())

        assert [e.argument.summary for e in entries] == ["Shown"]

    def test_details_gm_cleared(self, seeded_state, rules, ctx):
        state = argue(seeded_state, rules, ctx, is_revealed_to_players=True)

        entry = next(redact_for_viewer(state, PLAYER).iter_entries())

        assert entry.argument.details_gm == ""
        assert entry.argument.summary == "Think of your house"

    def test_argument_details_stripped(self, seeded_state, rules, ctx):
        state = add_npc_detail(seeded_state, rules, "npc1", "motivation", "power")
        state.setup.visibility.show_argument_details = False
        state = argue(
            state, rules, ctx,
            is_revealed_to_players=True,
            argument_type_id="appealMotivation",
            claimed_motivation_id="power",
        )

        argument = next(redact_for_viewer(state, PLAYER).iter_entries()).argument

        assert argument.summary == ""
        assert argument.argument_type_id == ""
        assert argument.claimed_motivation_id is None

    def test_reveal_labels_stripped(self, seeded_state, rules, ctx):
        state = add_npc_detail(seeded_state, rules, "npc1", "motivation", "power")
        state.setup.visibility.show_argument_details = False
        state = add_discovery_entry(state, rules, {
            "actor_participant_id": "pc1",
            "target_npc_participant_id": "npc1",
            "roll_total": 18,
            "is_revealed_to_players": True,
        }, ctx).next_state

        reveal = next(redact_for_viewer(state, PLAYER).iter_entries()).reveal

        assert (reveal.kind, reveal.id, reveal.label) == ("", "", "")

    def test_note_summary_stripped(self, seeded_state, ctx):
        seeded_state.setup.visibility.show_argument_details = False
        state = add_note_entry(seeded_state, {"summary": "whisper", "is_revealed_to_players": True}, ctx).next_state

        note = next(redact_for_viewer(state, PLAYER).iter_entries()).note

        assert note.summary == ""

    def test_visible_roll_kept(self, seeded_state, rules, ctx):
        state = argue(seeded_state, rules, ctx, is_revealed_to_players=True)

        roll = next(redact_for_viewer(state, PLAYER).iter_entries()).roll

        assert (roll.formula, roll.total, roll.tier) == ("2d10+2", 15, 2)

    def test_private_roll_cleared(self, seeded_state, rules, ctx):
        state = argue(
            seeded_state, rules, ctx,
            is_revealed_to_players=True,
            roll={"mode": "rolled", "formula": "2d10", "total": 15, "visible_to_players": False},
        )

        roll = next(redact_for_viewer(state, PLAYER).iter_entries()).roll

        assert (roll.formula, roll.total) == ("", None)
        assert roll.tier == 2

    def test_roll_totals_switched_off(self, seeded_state, rules, ctx):
        seeded_state.setup.visibility.show_roll_totals = False
        state = argue(seeded_state, rules, ctx, is_revealed_to_players=True)

        roll = next(redact_for_viewer(state, PLAYER).iter_entries()).roll

        assert roll.total is None

    def test_hidden_effects_filtered(self, seeded_state, rules, ctx):
        seeded_state.setup.visibility.show_patience = "hidden"
        state = argue(seeded_state, rules, ctx, is_revealed_to_players=True, roll={"mode": "manualTotal", "total": 5})

        effects = next(redact_for_viewer(state, PLAYER).iter_entries()).effects

        assert [e.stat for e in effects] == ["interest"]


class TestSummaries:
    """Plain-text summaries."""

    def test_public_summary(self, seeded_state, rules):
        assert render_public_summary(seeded_state, rules) == "The Countess\nCountess: No, but…"

    def test_untitled_summary(self, seeded_state, rules):
        seeded_state.title = ""

        assert render_public_summary(seeded_state, rules).splitlines()[0] == "Negotiation"

    def test_gm_summary_lists_hidden_details(self, secret_state, rules):
        state = add_npc_detail(secret_state, rules, "npc1", "pitfall", "greed")

        text = render_gm_summary(state, rules)

        assert text.startswith("The Countess\nCountess: No, but…\n\n")
        assert "GM: She is being blackmailed." in text
        assert "Countess hidden motivations: Power" in text
        assert "Legacy" not in text
        assert "Countess hidden pitfalls: Greed" in text

    def test_gm_summary_without_secrets_matches_public(self, seeded_state, rules):
        assert render_gm_summary(seeded_state, rules) == render_public_summary(seeded_state, rules)

    def test_public_summary_from_redacted_view(self, secret_state, rules):
        text = render_public_summary(redact_for_viewer(secret_state, PLAYER), rules)

        assert "blackmail" not in text
        assert "Power" not in text
        assert text.splitlines()[1] == "Countess: Mid interest"
