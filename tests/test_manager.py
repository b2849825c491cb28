"""
Tests for negotiation storage and the manager's persistence boundary.
"""

import json

import pytest

from parley.state import JsonNegotiationStore, NegotiationStore
from parley.state.manager import NegotiationManager


class TestMemoryStore:
    """In-memory store used by the test suite."""

    def test_get_set_delete(self, memory_store):
        memory_store.set("n1", {"title": "A"})

        assert memory_store.exists("n1")
        assert memory_store.get("n1") == {"title": "A"}
        assert memory_store.delete("n1")
        assert not memory_store.delete("n1")
        assert memory_store.get("n1") is None

    def test_documents_are_copied(self, memory_store):
        document = {"title": "A"}
        memory_store.set("n1", document)
        document["title"] = "B"

        fetched = memory_store.get("n1")
        fetched["title"] = "C"

        assert memory_store.get("n1") == {"title": "A"}

    def test_list_all_summaries(self, memory_store):
        memory_store.set("n1", {"title": "A", "participants": [{}, {}], "resolution": {"status": "inProgress"}})
        memory_store.set("n2", {})

        summaries = {s["id"]: s for s in memory_store.list_all()}

        assert summaries["n1"]["status"] == "inProgress"
        assert summaries["n1"]["participants"] == 2
        assert summaries["n2"]["title"] == "Negotiation"
        assert summaries["n2"]["status"] == "notStarted"

    def test_clear(self, memory_store):
        memory_store.set("n1", {})
        memory_store.clear()

        assert memory_store.list_all() == []

    def test_satisfies_protocol(self, memory_store, tmp_path):
        assert isinstance(memory_store, NegotiationStore)
        assert isinstance(JsonNegotiationStore(tmp_path), NegotiationStore)


class TestJsonStore:
    """File-based store."""

    def test_writes_one_file_per_negotiation(self, tmp_path):
        store = JsonNegotiationStore(tmp_path / "negotiations")
        store.set("n1", {"title": "A"})

        path = tmp_path / "negotiations" / "n1.json"
        assert json.loads(path.read_text(encoding="utf-8")) == {"title": "A"}

    def test_backup_on_overwrite(self, tmp_path):
        store = JsonNegotiationStore(tmp_path)
        store.set("n1", {"title": "A"})
        store.set("n1", {"title": "B"})

        assert store.get("n1") == {"title": "B"}
        assert json.loads((tmp_path / "n1.json.bak").read_text(encoding="utf-8")) == {"title": "A"}

    def test_unreadable_file_is_missing(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        store = JsonNegotiationStore(tmp_path)

        assert store.get("bad") is None
        assert store.list_all() == []

    def test_list_skips_dotfiles(self, tmp_path):
        store = JsonNegotiationStore(tmp_path)
        store.set("n1", {"title": "A"})
        (tmp_path / ".parley_config.json").write_text("{}", encoding="utf-8")

        assert [s["id"] for s in store.list_all()] == ["n1"]

    def test_delete(self, tmp_path):
        store = JsonNegotiationStore(tmp_path)
        store.set("n1", {})

        assert store.delete("n1")
        assert not store.exists("n1")
        assert not store.delete("n1")


class TestManagerLifecycle:
    """Create, save, list, delete."""

    def test_create_persists_seeded_state(self, manager, memory_store):
        negotiation_id, state = manager.create_negotiation(title="Parley", created_by_user_id="u1")

        assert negotiation_id == "id1"
        assert memory_store.get(negotiation_id)["title"] == "Parley"
        assert state.is_seeded
        assert state.setup.rules_profile_id == "draw-steel-v1.01b"

    def test_unknown_profile_falls_back(self, manager):
        _, state = manager.create_negotiation(rules_profile_id="homebrew")

        assert state.setup.rules_profile_id == "draw-steel-v1.01b"

    def test_load_round_trip(self, manager):
        negotiation_id, state = manager.create_negotiation(title="Parley")

        assert manager.load_negotiation(negotiation_id) == state

    def test_missing(self, manager):
        assert manager.load_negotiation("nope") is None
        assert not manager.exists("nope")

    def test_list_and_delete(self, manager):
        negotiation_id, _ = manager.create_negotiation(title="Parley")

        assert [n["id"] for n in manager.list_negotiations()] == [negotiation_id]
        assert manager.delete_negotiation(negotiation_id)
        assert manager.list_negotiations() == []

    def test_path_builds_json_store(self, tmp_path):
        manager = NegotiationManager(tmp_path / "negotiations")

        assert isinstance(manager.store, JsonNegotiationStore)


class TestLoadBoundary:
    """Migration, validation, seeding and back-fill on load."""

    def test_unseeded_document_is_seeded_once(self, manager, memory_store):
        memory_store.set("raw", {"title": "Old table"})

        first = manager.load_negotiation("raw")
        stored = memory_store.get("raw")
        second = manager.load_negotiation("raw")

        assert first.is_seeded
        assert first.title == "Old table"
        assert stored["createdAtIso"] == first.created_at_iso
        assert second == first

    def test_missing_npc_state_is_backfilled(self, manager, memory_store):
        negotiation_id, state = manager.create_negotiation()
        document = state.to_document()
        document["participants"].append({"id": "npc1", "kind": "npc", "displayName": "Countess"})
        memory_store.set(negotiation_id, document)

        loaded = manager.load_negotiation(negotiation_id)

        assert loaded.get_npc_state("npc1").interest.value == 2
        assert "npc1" in memory_store.get(negotiation_id)["npcStateByParticipantId"]

    def test_version_is_stamped_and_saved(self, manager, memory_store):
        _, state = manager.create_negotiation()
        document = state.to_document()
        del document["schemaVersion"]
        memory_store.set("old", document)

        manager.load_negotiation("old")

        assert memory_store.get("old")["schemaVersion"] == 1

    def test_invalid_document_returns_none(self, manager, memory_store):
        memory_store.set("bad", {"participants": [{"id": ""}]})

        assert manager.load_negotiation("bad") is None

    def test_clean_load_does_not_write(self, manager, memory_store):
        negotiation_id, _ = manager.create_negotiation()
        written = memory_store.updated[negotiation_id]

        manager.load_negotiation(negotiation_id)

        assert memory_store.updated[negotiation_id] is written

    @pytest.mark.parametrize("raw", [[], "text", 5])
    def test_non_dict_document_is_seeded(self, manager, memory_store, raw):
        memory_store.documents["odd"] = json.dumps(raw)

        state = manager.load_negotiation("odd")

        assert state.is_seeded
