"""
Negotiation lifecycle management.

Handles create, load, save, list and delete on top of a
NegotiationStore. Loading is the single persistence boundary: raw
documents are migrated, validated, seeded and back-filled here, so the
rules can assume well-formed state.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from ..profiles import RulesProfile, get_rules_profile
from ..rules.common import DEFAULT_CONTEXT, EngineContext
from ..rules.setup import create_default_negotiation_state, ensure_npc_states
from .schema import NegotiationState, migrate_state
from .store import JsonNegotiationStore, NegotiationStore

logger = logging.getLogger(__name__)


class NegotiationManager:
    """
    Manages negotiation documents.

    Storage is delegated to a NegotiationStore implementation:
    - JsonNegotiationStore for production (file-based)
    - MemoryNegotiationStore for testing (in-memory)
    """

    def __init__(
        self,
        store: NegotiationStore | Path | str = "negotiations",
        default_profile_id: str | None = None,
        ctx: EngineContext | None = None,
    ):
        """
        Initialize with a store.

        Args:
            store: NegotiationStore instance, or path for JsonNegotiationStore
            default_profile_id: Rules profile for new negotiations
            ctx: Id and clock sources, deterministic in tests
        """
        if isinstance(store, (Path, str)):
            store = JsonNegotiationStore(store)
        self.store = store
        self.default_profile_id = default_profile_id
        self.ctx = ctx or DEFAULT_CONTEXT

    def rules_for(self, state: NegotiationState) -> RulesProfile:
        """Rules profile a negotiation was set up with."""
        return get_rules_profile(state.setup.rules_profile_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create_negotiation(
        self,
        title: str = "",
        created_by_user_id: str = "",
        rules_profile_id: str | None = None,
    ) -> tuple[str, NegotiationState]:
        """Create and persist a new negotiation. Returns (id, state)."""
        rules = get_rules_profile(rules_profile_id or self.default_profile_id)
        negotiation_id = self.ctx.new_id()
        state = create_default_negotiation_state(
            rules,
            title=title,
            created_by_user_id=created_by_user_id,
            ctx=self.ctx,
        )
        self.save_negotiation(negotiation_id, state)
        logger.info(f"Created negotiation {negotiation_id} ({rules.id})")
        return negotiation_id, state

    def load_negotiation(self, negotiation_id: str) -> NegotiationState | None:
        """
        Load, migrate and validate a negotiation.

        An unseeded document (empty createdAtIso) is replaced by a fresh
        default state carrying its title; NPCs lacking tracked state get
        profile defaults. Either repair is persisted immediately so it
        happens once. Returns None if missing or invalid.
        """
        raw = self.store.get(negotiation_id)
        if raw is None:
            return None

        document = migrate_state(raw)
        try:
            state = NegotiationState.model_validate(document)
        except ValidationError as e:
            logger.error(f"Negotiation {negotiation_id} failed validation: {e}")
            return None

        repaired = document != raw
        rules = self.rules_for(state)
        if not state.is_seeded:
            logger.info(f"Seeding negotiation {negotiation_id} with {rules.id} defaults")
            state = create_default_negotiation_state(
                rules,
                title=state.title,
                created_by_user_id=state.created_by_user_id,
                ctx=self.ctx,
            )
            repaired = True

        filled = ensure_npc_states(state, rules)
        if filled.npc_state_by_participant_id.keys() != state.npc_state_by_participant_id.keys():
            logger.debug(f"Back-filled NPC state in negotiation {negotiation_id}")
            state = filled
            repaired = True

        if repaired:
            self.save_negotiation(negotiation_id, state)
        return state

    def save_negotiation(self, negotiation_id: str, state: NegotiationState) -> None:
        self.store.set(negotiation_id, state.to_document())

    def delete_negotiation(self, negotiation_id: str) -> bool:
        deleted = self.store.delete(negotiation_id)
        if deleted:
            logger.info(f"Deleted negotiation {negotiation_id}")
        return deleted

    def list_negotiations(self) -> list[dict]:
        """
        List all negotiations.

        Returns list of dicts with: id, title, status, participants, updated_at
        """
        return self.store.list_all()

    def exists(self, negotiation_id: str) -> bool:
        return self.store.exists(negotiation_id)
