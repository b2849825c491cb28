"""
Negotiation systems.

Connects the pure rules to storage, privilege checks and events.
"""

from .negotiation import (
    NegotiationSystem,
    NegotiationError,
    NegotiationNotFoundError,
    PermissionDeniedError,
    ParticipantPolicyError,
    EntryRejectedError,
)

__all__ = [
    "NegotiationSystem",
    "NegotiationError",
    "NegotiationNotFoundError",
    "PermissionDeniedError",
    "ParticipantPolicyError",
    "EntryRejectedError",
]
