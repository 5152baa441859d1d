"""Inbox item lifecycle domain logic."""

from .inbox_status import (
    InboxStatus,
    InboxTransitionError,
    can_transition,
    validate_transition,
    get_allowed_transitions,
)

__all__ = [
    "InboxStatus",
    "InboxTransitionError",
    "can_transition",
    "validate_transition",
    "get_allowed_transitions",
]
