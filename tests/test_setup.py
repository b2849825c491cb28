"""
Tests for negotiation setup and structure as pure functions.
"""

import pytest

from parley.profiles.schema import StructureDefaults
from parley.rules import (
    add_npc_detail,
    add_participant,
    advance_structure,
    create_default_negotiation_state,
    ensure_npc_states,
    remove_npc_detail,
    remove_participant,
    set_detail_revealed,
    start_negotiation,
    stop_negotiation,
)
from parley.state.schema import CURRENT_SCHEMA_VERSION, Stage, Structure


class TestDefaultState:
    """Test create_default_negotiation_state."""

    def test_seeded_defaults(self, rules, ctx):
        state = create_default_negotiation_state(rules, title="Parley", created_by_user_id="u1", ctx=ctx)

        assert state.schema_version == CURRENT_SCHEMA_VERSION
        assert state.is_seeded
        assert state.created_at_iso == "2025-01-01T00:00:00+00:00"
        assert state.created_by_user_id == "u1"
        assert state.setup.rules_profile_id == rules.id
        assert state.setup.structure.kind == "freeform"
        assert state.resolution.status == "notStarted"
        assert state.participants == []
        assert state.timeline == []

    def test_default_visibility_shows_everything(self, rules, ctx):
        visibility = create_default_negotiation_state(rules, ctx=ctx).setup.visibility

        assert visibility.show_npc_names
        assert visibility.show_interest == "value"
        assert visibility.show_patience == "value"
        assert visibility.show_argument_details
        assert visibility.show_roll_totals

    def test_document_keys(self, rules, ctx):
        document = create_default_negotiation_state(rules, ctx=ctx).to_document()

        assert document["schemaVersion"] == 1
        assert document["createdAtIso"]
        assert "contextGM" in document["setup"]
        assert "npcStateByParticipantId" in document


class TestParticipants:
    """Adding and removing participants."""

    def test_npc_gets_profile_defaults(self, seeded_state):
        npc = seeded_state.get_npc_state("npc1")

        assert (npc.interest.value, npc.interest.min, npc.interest.max) == (2, 0, 5)
        assert (npc.patience.value, npc.patience.min, npc.patience.max) == (3, 0, 5)

    def test_pc_gets_no_npc_state(self, seeded_state):
        assert seeded_state.get_npc_state("pc1") is None

    @pytest.mark.parametrize("attitude,interest,patience", [
        ("hostile", 1, 2),
        ("neutral", 2, 3),
        ("trusting", 3, 5),
    ])
    def test_starting_attitude(self, rules, ctx, attitude, interest, patience):
        state = create_default_negotiation_state(rules, ctx=ctx)
        state = add_participant(state, rules, {"id": "n", "kind": "npc"}, starting_attitude_id=attitude, ctx=ctx)

        npc = state.get_npc_state("n")
        assert (npc.interest.value, npc.patience.value) == (interest, patience)

    def test_unknown_attitude_uses_defaults(self, rules, ctx):
        state = create_default_negotiation_state(rules, ctx=ctx)
        state = add_participant(state, rules, {"id": "n", "kind": "npc"}, starting_attitude_id="smug", ctx=ctx)

        npc = state.get_npc_state("n")
        assert (npc.interest.value, npc.patience.value) == (2, 3)

    def test_generated_id_and_default_name(self, rules, ctx):
        state = create_default_negotiation_state(rules, ctx=ctx)
        state = add_participant(state, rules, {"kind": "npc"}, ctx=ctx)
        state = add_participant(state, rules, {"kind": "pc"}, ctx=ctx)

        npc, pc = state.participants
        assert npc.id == "id1"
        assert npc.display_name == "NPC"
        assert pc.display_name == "PC"

    def test_engine_allows_several_npcs(self, seeded_state, rules, ctx):
        state = add_participant(seeded_state, rules, {"id": "npc2", "kind": "npc"}, ctx=ctx)

        assert [p.id for p in state.npc_participants()] == ["npc1", "npc2"]

    def test_remove_participant_drops_npc_state(self, seeded_state):
        state = remove_participant(seeded_state, "npc1")

        assert state.get_participant("npc1") is None
        assert "npc1" not in state.npc_state_by_participant_id
        assert seeded_state.get_participant("npc1") is not None

    def test_ensure_npc_states_backfills(self, seeded_state, rules):
        del seeded_state.npc_state_by_participant_id["npc1"]

        state = ensure_npc_states(seeded_state, rules)

        assert state.get_npc_state("npc1").interest.value == 2
        assert "npc1" not in seeded_state.npc_state_by_participant_id


class TestNpcDetails:
    """Motivations and pitfalls attached to an NPC."""

    def test_add_detail_unrevealed(self, seeded_state, rules):
        state = add_npc_detail(seeded_state, rules, "npc1", "motivation", "higherAuthority")

        detail = state.get_npc_state("npc1").motivations[0]
        assert (detail.id, detail.label, detail.is_revealed) == ("higherAuthority", "Higher Authority", False)

    def test_add_detail_ignores_unknown_and_duplicates(self, seeded_state, rules):
        state = add_npc_detail(seeded_state, rules, "npc1", "pitfall", "greed")
        state = add_npc_detail(state, rules, "npc1", "pitfall", "greed")
        state = add_npc_detail(state, rules, "npc1", "pitfall", "cheese")
        state = add_npc_detail(state, rules, "ghost", "pitfall", "power")

        assert [p.id for p in state.get_npc_state("npc1").pitfalls] == ["greed"]

    def test_remove_detail(self, seeded_state, rules):
        state = add_npc_detail(seeded_state, rules, "npc1", "motivation", "peace")
        state = remove_npc_detail(state, "npc1", "motivation", "peace")

        assert state.get_npc_state("npc1").motivations == []

    def test_set_detail_revealed(self, seeded_state, rules):
        state = add_npc_detail(seeded_state, rules, "npc1", "motivation", "peace")

        shown = set_detail_revealed(state, "npc1", "motivation", "peace")
        hidden = set_detail_revealed(shown, "npc1", "motivation", "peace", revealed=False)

        assert shown.get_npc_state("npc1").motivations[0].is_revealed
        assert not hidden.get_npc_state("npc1").motivations[0].is_revealed
        assert not state.get_npc_state("npc1").motivations[0].is_revealed


class TestStartStop:
    """Starting and stopping a negotiation."""

    def test_start_seeds_segment(self, seeded_state, rules, ctx):
        state = start_negotiation(seeded_state, rules, ctx)

        assert state.resolution.status == "inProgress"
        assert len(state.timeline) == 1
        assert state.timeline[0].label == "Negotiation"

    def test_start_twice_keeps_one_segment(self, seeded_state, rules, ctx):
        state = start_negotiation(start_negotiation(seeded_state, rules, ctx), rules, ctx)

        assert len(state.timeline) == 1

    def test_stop_keeps_timeline(self, seeded_state, rules, ctx):
        state = stop_negotiation(start_negotiation(seeded_state, rules, ctx))

        assert state.resolution.status == "notStarted"
        assert len(state.timeline) == 1


class TestAdvanceStructure:
    """Rounds and stages."""

    def test_freeform_is_noop(self, seeded_state, rules, ctx):
        state = start_negotiation(seeded_state, rules, ctx)

        assert advance_structure(state, rules, ctx).model_dump() == state.model_dump()

    def test_rounds_append_until_cap(self, seeded_state, rules, ctx):
        seeded_state.setup.structure = Structure(kind="rounds", max_rounds=3)
        state = start_negotiation(seeded_state, rules, ctx)

        for _ in range(4):
            state = advance_structure(state, rules, ctx)

        assert [s.label for s in state.timeline] == ["Negotiation", "Round 2", "Round 3"]
        assert [s.index for s in state.timeline] == [1, 2, 3]

    def test_rounds_without_cap(self, seeded_state, rules, ctx):
        seeded_state.setup.structure = Structure(kind="rounds")

        state = advance_structure(advance_structure(seeded_state, rules, ctx), rules, ctx)

        assert [s.label for s in state.timeline] == ["Round 1", "Round 2"]

    def test_profile_cap_applies_when_unset(self, seeded_state, rules, ctx):
        capped = rules.model_copy(update={"structure": StructureDefaults(kind="rounds", max_rounds=1)})
        seeded_state.setup.structure = Structure(kind="rounds")

        state = advance_structure(advance_structure(seeded_state, capped, ctx), capped, ctx)

        assert [s.label for s in state.timeline] == ["Round 1"]

    def test_explicit_zero_means_no_cap(self, seeded_state, rules, ctx):
        capped = rules.model_copy(update={"structure": StructureDefaults(kind="rounds", max_rounds=1)})
        seeded_state.setup.structure = Structure(kind="rounds", max_rounds=0)

        state = advance_structure(advance_structure(seeded_state, capped, ctx), capped, ctx)

        assert [s.label for s in state.timeline] == ["Round 1", "Round 2"]

    def test_stages_use_labels_then_fallback(self, seeded_state, rules, ctx):
        seeded_state.setup.structure = Structure(
            kind="stages",
            stages=[Stage(id="open", label="Opening"), Stage(id="terms", label="Terms")],
        )

        state = seeded_state
        for _ in range(3):
            state = advance_structure(state, rules, ctx)

        assert [s.label for s in state.timeline] == ["Opening", "Terms", "Stage 3"]
