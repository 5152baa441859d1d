"""InboxStatus state machine for the inbox item reconciliation lifecycle

State flow:
    NEW → PROCESSING → ANALYZING → PENDING → SUGGESTED_MATCH | NO_MATCH → DONE

ARCHIVED and DELETED are administrative states reachable from every
non-terminal state. DELETED is terminal; items are never physically removed.
"""

from enum import Enum
from typing import Optional, Dict, List


class InboxStatus(str, Enum):
    """Inbox item status enum"""
    NEW = "new"                          # Document received, nothing extracted yet
    PROCESSING = "processing"            # Extraction in progress
    ANALYZING = "analyzing"              # Embedding / enrichment in progress
    PENDING = "pending"                  # In the matching pool
    SUGGESTED_MATCH = "suggested_match"  # A suggestion awaits user review
    NO_MATCH = "no_match"                # Matching ran without a usable candidate
    DONE = "done"                        # Linked to a confirmed transaction
    ARCHIVED = "archived"
    DELETED = "deleted"                  # Soft delete (terminal)


_ADMINISTRATIVE = [InboxStatus.ARCHIVED, InboxStatus.DELETED]

ALLOWED_TRANSITIONS: Dict[Optional[InboxStatus], List[InboxStatus]] = {
    None: [InboxStatus.NEW],
    InboxStatus.NEW: [InboxStatus.PROCESSING, *_ADMINISTRATIVE],
    InboxStatus.PROCESSING: [InboxStatus.ANALYZING, InboxStatus.PENDING, *_ADMINISTRATIVE],
    InboxStatus.ANALYZING: [InboxStatus.PENDING, *_ADMINISTRATIVE],
    InboxStatus.PENDING: [
        InboxStatus.SUGGESTED_MATCH,
        InboxStatus.NO_MATCH,
        InboxStatus.DONE,  # auto-match
        *_ADMINISTRATIVE,
    ],
    InboxStatus.SUGGESTED_MATCH: [
        InboxStatus.DONE,     # confirm
        InboxStatus.PENDING,  # decline, back into the pool
        *_ADMINISTRATIVE,
    ],
    InboxStatus.NO_MATCH: [
        InboxStatus.PENDING,
        InboxStatus.SUGGESTED_MATCH,
        InboxStatus.DONE,
        *_ADMINISTRATIVE,
    ],
    # Negative feedback on a confirmed match puts the item back in the pool
    InboxStatus.DONE: [InboxStatus.PENDING, *_ADMINISTRATIVE],
    InboxStatus.ARCHIVED: [InboxStatus.PENDING, InboxStatus.DELETED],
    InboxStatus.DELETED: [],  # Terminal
}


class InboxTransitionError(Exception):
    """Raised when an invalid inbox status transition is attempted."""
    pass


def can_transition(from_status: Optional[InboxStatus], to_status: InboxStatus) -> bool:
    """Validate if status transition is allowed

    Staying in the same non-terminal status is always allowed so that
    re-running matching on an item is idempotent.

    Example:
        >>> can_transition(InboxStatus.SUGGESTED_MATCH, InboxStatus.DONE)
        True
        >>> can_transition(InboxStatus.DELETED, InboxStatus.PENDING)
        False
    """
    if from_status is not None and from_status == to_status:
        return from_status != InboxStatus.DELETED
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def validate_transition(from_status: Optional[InboxStatus], to_status: InboxStatus) -> None:
    """Raise InboxTransitionError if the transition is not allowed."""
    if not can_transition(from_status, to_status):
        current = from_status.value if from_status else None
        raise InboxTransitionError(
            f"Invalid inbox transition: {current} -> {to_status.value}. "
            f"Allowed: {[s.value for s in get_allowed_transitions(from_status)]}"
        )


def get_allowed_transitions(from_status: Optional[InboxStatus]) -> List[InboxStatus]:
    """Get list of allowed transitions from current status

    Example:
        >>> get_allowed_transitions(InboxStatus.ANALYZING)
        [<InboxStatus.PENDING: 'pending'>, <InboxStatus.ARCHIVED: 'archived'>, <InboxStatus.DELETED: 'deleted'>]
    """
    return ALLOWED_TRANSITIONS.get(from_status, [])
