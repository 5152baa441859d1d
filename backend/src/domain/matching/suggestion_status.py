"""MatchSuggestion status state machine.

State Flow:
    PENDING → CONFIRMED (user confirm or auto-match)
    PENDING → DECLINED (user decline)
    CONFIRMED → UNMATCHED (external negative feedback)

DECLINED and UNMATCHED are terminal. Decided statuses (confirmed, declined,
unmatched) are the history the merchant pattern analyzer learns from.
"""

from enum import Enum
from typing import List


class SuggestionStatus(str, Enum):
    """Match suggestion status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    UNMATCHED = "unmatched"


class MatchType(str, Enum):
    """How strongly a suggestion is asserted."""
    AUTO_MATCHED = "auto_matched"
    HIGH_CONFIDENCE = "high_confidence"
    SUGGESTED = "suggested"


DECIDED_STATUSES = (
    SuggestionStatus.CONFIRMED,
    SuggestionStatus.DECLINED,
    SuggestionStatus.UNMATCHED,
)

DISMISSED_STATUSES = (
    SuggestionStatus.DECLINED,
    SuggestionStatus.UNMATCHED,
)

ALLOWED_TRANSITIONS = {
    SuggestionStatus.PENDING: [
        SuggestionStatus.CONFIRMED,
        SuggestionStatus.DECLINED,
    ],
    SuggestionStatus.CONFIRMED: [SuggestionStatus.UNMATCHED],
    SuggestionStatus.DECLINED: [],  # Terminal state
    SuggestionStatus.UNMATCHED: [],  # Terminal state
}


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


class InvariantViolation(StateTransitionError):
    """A lifecycle write would break a suggestion/inbox invariant.

    Fatal for the current unit of work: the caller must roll back.
    """
    pass


def validate_transition(
    current_status: SuggestionStatus,
    new_status: SuggestionStatus
) -> None:
    """Validate that a state transition is allowed.

    Raises:
        InvariantViolation: If transition is not allowed
    """
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    if new_status not in allowed:
        raise InvariantViolation(
            f"Invalid suggestion transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: "
            f"{[s.value for s in allowed]}"
        )


def can_transition(
    current_status: SuggestionStatus,
    new_status: SuggestionStatus
) -> bool:
    """Check if a state transition is allowed without raising exception."""
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    return new_status in allowed


def get_allowed_transitions(status: SuggestionStatus) -> List[SuggestionStatus]:
    return ALLOWED_TRANSITIONS.get(status, [])
