"""
Pytest configuration and shared fixtures for parley tests.
"""

import itertools

import pytest

from parley.profiles import get_default_profile
from parley.rules import EngineContext, add_participant, create_default_negotiation_state
from parley.state import MemoryNegotiationStore, Viewer, reset_event_bus
from parley.state.manager import NegotiationManager
from parley.systems import NegotiationSystem


FIXED_NOW = "2025-01-01T00:00:00+00:00"


@pytest.fixture(autouse=True)
def fresh_event_bus():
    """Every test starts with an empty event bus."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def rules():
    """The bundled Draw Steel profile."""
    return get_default_profile()


@pytest.fixture
def ctx():
    """Deterministic ids (id1, id2, ...) and a fixed clock."""
    counter = itertools.count(1)
    return EngineContext(id_fn=lambda: f"id{next(counter)}", now_fn=lambda: FIXED_NOW)


@pytest.fixture
def seeded_state(rules, ctx):
    """Fresh negotiation with one PC (pc1) and one NPC (npc1) at defaults."""
    state = create_default_negotiation_state(rules, title="The Countess", ctx=ctx)
    state = add_participant(state, rules, {"id": "pc1", "kind": "pc", "display_name": "Vex"}, ctx=ctx)
    state = add_participant(state, rules, {"id": "npc1", "kind": "npc", "display_name": "Countess"}, ctx=ctx)
    return state


@pytest.fixture
def memory_store():
    """Create a fresh in-memory store."""
    return MemoryNegotiationStore()


@pytest.fixture
def manager(memory_store, ctx):
    """NegotiationManager over the in-memory store."""
    return NegotiationManager(memory_store, ctx=ctx)


@pytest.fixture
def system(manager):
    return NegotiationSystem(manager)


@pytest.fixture
def gm():
    return Viewer(is_gm=True, user_id="gm-user")


@pytest.fixture
def player():
    return Viewer(is_gm=False, user_id="player-user")


@pytest.fixture
def negotiation_id(system, gm):
    """A stored negotiation with pc1 and npc1, already started."""
    negotiation_id = system.create(gm, title="The Countess")
    system.add_participant(negotiation_id, gm, {"id": "pc1", "kind": "pc", "display_name": "Vex"})
    system.add_participant(negotiation_id, gm, {"id": "npc1", "kind": "npc", "display_name": "Countess"})
    system.start(negotiation_id, gm)
    return negotiation_id
