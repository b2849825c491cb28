"""
Event bus for negotiation changes.

Lets hosts (CLI, headless runner, chat bridges) react to negotiation
changes without the system knowing who is listening.

Usage:
    from .event_bus import get_event_bus, EventType

    bus = get_event_bus()
    bus.on(EventType.ENTRY_ADDED, my_handler)

    # NegotiationSystem emits after every persisted change
    bus.emit(EventType.ENTRY_ADDED, negotiation_id="a1b2c3d4", entry_type="argument")

    def my_handler(event: GameEvent):
        print(f"{event.negotiation_id}: {event.data['entry_type']}")
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Negotiation events that can be published."""

    # Lifecycle
    NEGOTIATION_CREATED = "negotiation.created"
    NEGOTIATION_DELETED = "negotiation.deleted"
    NEGOTIATION_STARTED = "negotiation.started"
    NEGOTIATION_STOPPED = "negotiation.stopped"
    NEGOTIATION_RESOLVED = "negotiation.resolved"

    # Participants
    PARTICIPANT_ADDED = "participant.added"
    PARTICIPANT_REMOVED = "participant.removed"

    # Timeline
    ENTRY_ADDED = "entry.added"
    STRUCTURE_ADVANCED = "structure.advanced"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        negotiation_id: ID of the negotiation this event belongs to
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    negotiation_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(), in subscription order.
    A failing listener is logged and does not stop the others.
    """

    def __init__(self):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = 100

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to an event type."""
        handlers = self._listeners.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if handler in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(handler)

    def on_all(self, handler: EventHandler) -> None:
        """Subscribe to every event type."""
        for event_type in EventType:
            self.on(event_type, handler)

    def emit(self, event_type: EventType, negotiation_id: str = "", **data) -> GameEvent:
        """
        Emit an event to all subscribers.

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data, negotiation_id=negotiation_id)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit:]

        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in handler for {event_type.value}: {e}")

        return event

    def clear(self) -> None:
        """Clear all listeners. Useful for testing."""
        self._listeners.clear()

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]


# Global singleton instance
_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """
    Get the global event bus instance.

    Returns the same instance across all calls (singleton pattern).
    """
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus. Useful for testing."""
    global _event_bus
    _event_bus = None
