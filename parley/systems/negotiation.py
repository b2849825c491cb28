"""
Negotiation system.

The integration layer between hosts and the pure rules. Every change
follows the same cycle: load the stored snapshot, run one rules
function, persist the returned snapshot, emit an event.

Privilege is explicit: each call takes the Viewer acting on it.
Setup, tests, adjustments, discovery and resolution are GM-only;
players may record arguments and notes and may read redacted views.
A player reports only their roll and narration; the GM decides tiers
and visibility.

Usage:
    system = NegotiationSystem(NegotiationManager("negotiations"))
    gm = Viewer(is_gm=True)

    negotiation_id = system.create(gm, title="The Countess")
    system.add_participant(negotiation_id, gm, {"display_name": "Countess", "kind": "npc"})
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ..profiles import RulesProfile
from ..rules import (
    ArgumentPreview,
    EndResult,
    EntryResult,
    RejectionReason,
    add_adjustment_entry,
    add_argument_entry,
    add_discovery_entry,
    add_note_entry,
    add_npc_detail,
    add_participant,
    add_test_entry,
    advance_structure,
    evaluate_end_conditions,
    preview_argument_entry,
    redact_for_viewer,
    remove_npc_detail,
    remove_participant,
    render_gm_summary,
    render_public_summary,
    resolve_negotiation,
    set_detail_revealed,
    start_negotiation,
    stop_negotiation,
)
from ..state.event_bus import EventType, get_event_bus
from ..state.manager import NegotiationManager
from ..state.payloads import (
    AdjustmentPayload,
    ArgumentPayload,
    DiscoveryPayload,
    NotePayload,
    ParticipantPayload,
    TestPayload,
)
from ..state.schema import DetailKind, NegotiationState, Participant, Setup, Viewer

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class NegotiationError(Exception):
    """Error during negotiation handling."""
    pass


class NegotiationNotFoundError(NegotiationError):
    def __init__(self, negotiation_id: str):
        self.negotiation_id = negotiation_id
        super().__init__(f"Negotiation not found: {negotiation_id}")


class PermissionDeniedError(NegotiationError):
    """A non-GM viewer attempted a GM-only operation."""
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Only the GM can {action}.")


class ParticipantPolicyError(NegotiationError):
    """A negotiation already has its NPC."""
    def __init__(self, negotiation_id: str):
        super().__init__(f"Negotiation {negotiation_id} already has an NPC participant.")


class EntryRejectedError(NegotiationError):
    """The rules refused an entry; reason says why."""
    def __init__(self, reason: RejectionReason):
        self.reason = reason
        super().__init__(f"Entry rejected: {reason.value}")


Transition = Callable[[NegotiationState, RulesProfile], NegotiationState]


class NegotiationSystem:
    """
    Runs negotiation operations for hosts.

    Read-modify-write cycles are serialized per process. Separate
    processes sharing a store get last-write-wins.
    """

    def __init__(self, manager: NegotiationManager):
        self.manager = manager
        self._lock = threading.Lock()
        self._bus = get_event_bus()

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_gm(viewer: Viewer, action: str) -> None:
        if not viewer.is_gm:
            raise PermissionDeniedError(action)

    @staticmethod
    def _player_argument(payload: ArgumentPayload) -> ArgumentPayload:
        return payload.model_copy(update={
            "tier": None,
            "caught_in_lie": False,
            "details_gm": "",
            "is_revealed_to_players": True,
            "roll": payload.roll.model_copy(update={"tier": None, "visible_to_players": True}),
        })

    @staticmethod
    def _player_note(payload: NotePayload) -> NotePayload:
        return payload.model_copy(update={"details_gm": "", "is_revealed_to_players": True})

    def load(self, negotiation_id: str) -> NegotiationState:
        """Unredacted state. Raises NegotiationNotFoundError."""
        state = self.manager.load_negotiation(negotiation_id)
        if state is None:
            raise NegotiationNotFoundError(negotiation_id)
        return state

    def _apply(self, negotiation_id: str, transition: Transition) -> NegotiationState:
        with self._lock:
            state = self.load(negotiation_id)
            next_state = transition(state, self.manager.rules_for(state))
            self.manager.save_negotiation(negotiation_id, next_state)
        return next_state

    def _apply_entry(
        self,
        negotiation_id: str,
        step: Callable[[NegotiationState, RulesProfile], EntryResult],
    ) -> EntryResult:
        with self._lock:
            state = self.load(negotiation_id)
            result = step(state, self.manager.rules_for(state))
            if not result.accepted:
                logger.warning(f"Negotiation {negotiation_id}: entry rejected ({result.reason.value})")
                raise EntryRejectedError(result.reason)
            self.manager.save_negotiation(negotiation_id, result.next_state)

        self._bus.emit(
            EventType.ENTRY_ADDED,
            negotiation_id=negotiation_id,
            entry_id=result.entry.id,
            entry_type=result.entry.entry_type,
        )
        return result

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create(
        self,
        viewer: Viewer,
        title: str = "",
        rules_profile_id: str | None = None,
    ) -> str:
        """Create a negotiation. Returns its id."""
        self._require_gm(viewer, "create a negotiation")
        negotiation_id, _ = self.manager.create_negotiation(
            title=title,
            created_by_user_id=viewer.user_id,
            rules_profile_id=rules_profile_id,
        )
        self._bus.emit(EventType.NEGOTIATION_CREATED, negotiation_id=negotiation_id, title=title)
        return negotiation_id

    def delete(self, negotiation_id: str, viewer: Viewer) -> None:
        self._require_gm(viewer, "delete a negotiation")
        if not self.manager.delete_negotiation(negotiation_id):
            raise NegotiationNotFoundError(negotiation_id)
        self._bus.emit(EventType.NEGOTIATION_DELETED, negotiation_id=negotiation_id)

    def list_negotiations(self) -> list[dict]:
        return self.manager.list_negotiations()

    def update_setup(self, negotiation_id: str, viewer: Viewer, changes: dict) -> Setup:
        """
        Merge changes into the setup (overview, context, visibility, ...).

        Nested sections such as visibility are merged key by key.
        """
        self._require_gm(viewer, "change the negotiation setup")

        def merge(state: NegotiationState, rules: RulesProfile) -> NegotiationState:
            next_state = state.model_copy(deep=True)
            current = next_state.setup.model_dump(by_alias=False)
            for key, value in Setup.model_validate(changes).model_dump(exclude_unset=True).items():
                if isinstance(value, dict) and isinstance(current.get(key), dict):
                    current[key].update(value)
                else:
                    current[key] = value
            next_state.setup = Setup.model_validate(current)
            return next_state

        return self._apply(negotiation_id, merge).setup

    def start(self, negotiation_id: str, viewer: Viewer) -> NegotiationState:
        self._require_gm(viewer, "start a negotiation")
        state = self._apply(negotiation_id, start_negotiation)
        self._bus.emit(EventType.NEGOTIATION_STARTED, negotiation_id=negotiation_id)
        return state

    def stop(self, negotiation_id: str, viewer: Viewer) -> NegotiationState:
        self._require_gm(viewer, "stop a negotiation")
        state = self._apply(negotiation_id, lambda s, r: stop_negotiation(s))
        self._bus.emit(EventType.NEGOTIATION_STOPPED, negotiation_id=negotiation_id)
        return state

    def advance(self, negotiation_id: str, viewer: Viewer) -> NegotiationState:
        """Open the next round or stage."""
        self._require_gm(viewer, "advance the negotiation")
        state = self._apply(
            negotiation_id,
            lambda s, r: advance_structure(s, r, self.manager.ctx),
        )
        segment = state.current_segment
        self._bus.emit(
            EventType.STRUCTURE_ADVANCED,
            negotiation_id=negotiation_id,
            segments=len(state.timeline),
            label=segment.label if segment else "",
        )
        return state

    def resolve(self, negotiation_id: str, viewer: Viewer) -> NegotiationState:
        self._require_gm(viewer, "resolve a negotiation")
        state = self._apply(
            negotiation_id,
            lambda s, r: resolve_negotiation(s, r, self.manager.ctx),
        )
        logger.info(f"Negotiation {negotiation_id} resolved: {state.resolution.status}")
        self._bus.emit(
            EventType.NEGOTIATION_RESOLVED,
            negotiation_id=negotiation_id,
            status=state.resolution.status,
            outcome_id=state.resolution.outcome_id,
        )
        return state

    def evaluate(self, negotiation_id: str, npc_participant_id: str | None = None) -> EndResult | None:
        """Would the negotiation end now? Does not change anything."""
        state = self.load(negotiation_id)
        return evaluate_end_conditions(state, self.manager.rules_for(state), npc_participant_id)

    # -------------------------------------------------------------------------
    # Participants and NPC details
    # -------------------------------------------------------------------------

    def add_participant(
        self,
        negotiation_id: str,
        viewer: Viewer,
        participant: ParticipantPayload | dict,
        starting_attitude_id: str | None = None,
    ) -> Participant:
        """
        Add a PC or the NPC.

        A negotiation has at most one NPC; a second raises
        ParticipantPolicyError.
        """
        self._require_gm(viewer, "add participants")
        if isinstance(participant, dict):
            participant = ParticipantPayload.model_validate(participant)

        def add(state: NegotiationState, rules: RulesProfile) -> NegotiationState:
            if participant.kind == "npc" and state.npc_participants():
                raise ParticipantPolicyError(negotiation_id)
            if participant.id and state.get_participant(participant.id) is not None:
                raise NegotiationError(f"Participant id already in use: {participant.id}")
            return add_participant(state, rules, participant, starting_attitude_id, self.manager.ctx)

        state = self._apply(negotiation_id, add)
        added = state.participants[-1]
        self._bus.emit(
            EventType.PARTICIPANT_ADDED,
            negotiation_id=negotiation_id,
            participant_id=added.id,
            kind=added.kind,
        )
        return added

    def remove_participant(self, negotiation_id: str, viewer: Viewer, participant_id: str) -> None:
        self._require_gm(viewer, "remove participants")
        self._apply(negotiation_id, lambda s, r: remove_participant(s, participant_id))
        self._bus.emit(
            EventType.PARTICIPANT_REMOVED,
            negotiation_id=negotiation_id,
            participant_id=participant_id,
        )

    def add_npc_detail(
        self,
        negotiation_id: str,
        viewer: Viewer,
        npc_participant_id: str,
        kind: DetailKind,
        detail_id: str,
    ) -> NegotiationState:
        self._require_gm(viewer, "edit motivations and pitfalls")
        return self._apply(
            negotiation_id,
            lambda s, r: add_npc_detail(s, r, npc_participant_id, kind, detail_id),
        )

    def remove_npc_detail(
        self,
        negotiation_id: str,
        viewer: Viewer,
        npc_participant_id: str,
        kind: DetailKind,
        detail_id: str,
    ) -> NegotiationState:
        self._require_gm(viewer, "edit motivations and pitfalls")
        return self._apply(
            negotiation_id,
            lambda s, r: remove_npc_detail(s, npc_participant_id, kind, detail_id),
        )

    def set_detail_revealed(
        self,
        negotiation_id: str,
        viewer: Viewer,
        npc_participant_id: str,
        kind: DetailKind,
        detail_id: str,
        revealed: bool = True,
    ) -> NegotiationState:
        self._require_gm(viewer, "reveal motivations and pitfalls")
        return self._apply(
            negotiation_id,
            lambda s, r: set_detail_revealed(s, npc_participant_id, kind, detail_id, revealed),
        )

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def add_argument(
        self,
        negotiation_id: str,
        viewer: Viewer,
        payload: ArgumentPayload | dict,
    ) -> EntryResult:
        if isinstance(payload, dict):
            payload = ArgumentPayload.model_validate(payload)
        if not viewer.is_gm:
            payload = self._player_argument(payload)
        return self._apply_entry(
            negotiation_id,
            lambda s, r: add_argument_entry(s, r, payload, self.manager.ctx),
        )

    def preview_argument(
        self,
        negotiation_id: str,
        viewer: Viewer,
        payload: ArgumentPayload | dict,
    ) -> ArgumentPreview:
        """Tier and effects an argument would have. Nothing is saved."""
        self._require_gm(viewer, "preview arguments")
        state = self.load(negotiation_id)
        return preview_argument_entry(state, self.manager.rules_for(state), payload)

    def add_note(self, negotiation_id: str, viewer: Viewer, payload: NotePayload | dict) -> EntryResult:
        if isinstance(payload, dict):
            payload = NotePayload.model_validate(payload)
        if not viewer.is_gm:
            payload = self._player_note(payload)
        return self._apply_entry(
            negotiation_id,
            lambda s, r: add_note_entry(s, payload, self.manager.ctx),
        )

    def add_test(self, negotiation_id: str, viewer: Viewer, payload: TestPayload | dict) -> EntryResult:
        self._require_gm(viewer, "record tests")
        return self._apply_entry(
            negotiation_id,
            lambda s, r: add_test_entry(s, payload, self.manager.ctx),
        )

    def add_adjustment(
        self,
        negotiation_id: str,
        viewer: Viewer,
        payload: AdjustmentPayload | dict,
    ) -> EntryResult:
        self._require_gm(viewer, "adjust interest and patience")
        return self._apply_entry(
            negotiation_id,
            lambda s, r: add_adjustment_entry(s, payload, self.manager.ctx),
        )

    def add_discovery(
        self,
        negotiation_id: str,
        viewer: Viewer,
        payload: DiscoveryPayload | dict,
    ) -> EntryResult:
        self._require_gm(viewer, "resolve discovery tests")
        return self._apply_entry(
            negotiation_id,
            lambda s, r: add_discovery_entry(s, r, payload, self.manager.ctx),
        )

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def view(self, negotiation_id: str, viewer: Viewer) -> NegotiationState:
        """State as this viewer may see it."""
        return redact_for_viewer(self.load(negotiation_id), viewer)

    def summary(self, negotiation_id: str, viewer: Viewer) -> str:
        """GM summary for GMs, public summary from the redacted view otherwise."""
        state = self.load(negotiation_id)
        rules = self.manager.rules_for(state)
        if viewer.is_gm:
            return render_gm_summary(state, rules)
        return render_public_summary(redact_for_viewer(state, viewer), rules)
