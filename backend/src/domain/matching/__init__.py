"""Match suggestion domain: status state machine and match types."""

from .suggestion_status import (
    SuggestionStatus,
    MatchType,
    DECIDED_STATUSES,
    DISMISSED_STATUSES,
    StateTransitionError,
    InvariantViolation,
    validate_transition,
    can_transition,
)

__all__ = [
    "SuggestionStatus",
    "MatchType",
    "DECIDED_STATUSES",
    "DISMISSED_STATUSES",
    "StateTransitionError",
    "InvariantViolation",
    "validate_transition",
    "can_transition",
]
