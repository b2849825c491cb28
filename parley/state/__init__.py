"""
State models and storage for negotiations.

NegotiationManager lives in parley.state.manager; it builds on the rules
package and is imported from there directly.
"""

from .schema import (
    CURRENT_SCHEMA_VERSION,
    NegotiationState,
    Participant,
    NpcState,
    NpcDetail,
    StatTrack,
    Setup,
    Visibility,
    Segment,
    Effect,
    Roll,
    Entry,
    ArgumentEntry,
    TestEntry,
    NoteEntry,
    AdjustmentEntry,
    RevealEntry,
    Resolution,
    Viewer,
    migrate_state,
)
from .payloads import (
    ParticipantPayload,
    RollInput,
    ArgumentPayload,
    TestPayload,
    NotePayload,
    AdjustmentPayload,
    DiscoveryPayload,
)
from .store import NegotiationStore, JsonNegotiationStore, MemoryNegotiationStore
from .event_bus import (
    EventBus,
    EventType,
    GameEvent,
    get_event_bus,
    reset_event_bus,
)

__all__ = [
    # Schema
    "CURRENT_SCHEMA_VERSION",
    "NegotiationState",
    "Participant",
    "NpcState",
    "NpcDetail",
    "StatTrack",
    "Setup",
    "Visibility",
    "Segment",
    "Effect",
    "Roll",
    "Entry",
    "ArgumentEntry",
    "TestEntry",
    "NoteEntry",
    "AdjustmentEntry",
    "RevealEntry",
    "Resolution",
    "Viewer",
    "migrate_state",
    # Payloads
    "ParticipantPayload",
    "RollInput",
    "ArgumentPayload",
    "TestPayload",
    "NotePayload",
    "AdjustmentPayload",
    "DiscoveryPayload",
    # Store
    "NegotiationStore",
    "JsonNegotiationStore",
    "MemoryNegotiationStore",
    # Events
    "EventBus",
    "EventType",
    "GameEvent",
    "get_event_bus",
    "reset_event_bus",
]
