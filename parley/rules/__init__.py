"""
Negotiation rules as pure functions.

Every transition takes a state and returns a new one; nothing here
performs I/O or keeps state between calls.
"""

from .common import (
    DEFAULT_CONTEXT,
    EngineContext,
    EntryResult,
    RejectionReason,
)
from .tiering import compute_tier
from .effects import apply_effects
from .setup import (
    create_default_negotiation_state,
    add_participant,
    remove_participant,
    ensure_npc_states,
    add_npc_detail,
    remove_npc_detail,
    set_detail_revealed,
)
from .structure import start_negotiation, stop_negotiation, advance_structure
from .arguments import ArgumentPreview, add_argument_entry, preview_argument_entry
from .entries import (
    add_test_entry,
    add_note_entry,
    add_adjustment_entry,
    add_discovery_entry,
)
from .redaction import redact_for_viewer
from .summary import render_public_summary, render_gm_summary
from .endings import EndResult, evaluate_end_conditions, resolve_negotiation

__all__ = [
    # Plumbing
    "DEFAULT_CONTEXT",
    "EngineContext",
    "EntryResult",
    "RejectionReason",
    # Tiers and effects
    "compute_tier",
    "apply_effects",
    # Setup
    "create_default_negotiation_state",
    "add_participant",
    "remove_participant",
    "ensure_npc_states",
    "add_npc_detail",
    "remove_npc_detail",
    "set_detail_revealed",
    # Structure
    "start_negotiation",
    "stop_negotiation",
    "advance_structure",
    # Entries
    "ArgumentPreview",
    "add_argument_entry",
    "preview_argument_entry",
    "add_test_entry",
    "add_note_entry",
    "add_adjustment_entry",
    "add_discovery_entry",
    # Presentation
    "redact_for_viewer",
    "render_public_summary",
    "render_gm_summary",
    # Endings
    "EndResult",
    "evaluate_end_conditions",
    "resolve_negotiation",
]
