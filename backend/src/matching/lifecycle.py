"""Match suggestion lifecycle: propose, confirm, decline, unmatch.

Every write path is one database transaction that changes the suggestion
and the linked inbox item together. The inbox row is locked with
SELECT ... FOR UPDATE (ignored by SQLite) so concurrent decisions on the
same item serialize. Any failure rolls the whole unit back; a confirmed
suggestion is never left next to an inbox item that is not done.

An inbox item may hold pending suggestions for several transactions, but
at most one of them is ever confirmed: confirming against an item that is
already done or linked is rejected.

Inbox item transitions driven here:
    confirm:        * -> done (transaction link set; item must be unlinked)
    decline:        * -> pending, unless the item is done or another
                    suggestion for it is still pending (then unchanged)
    mark_unmatched: done -> pending (link cleared)
    auto-match:     pending -> done (via MatchSuggestionService.record_match)
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Iterator, Set
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from domain.inbox.inbox_status import InboxStatus, InboxTransitionError, validate_transition as validate_inbox_transition
from domain.matching.suggestion_status import (
    SuggestionStatus,
    MatchType,
    InvariantViolation,
    DISMISSED_STATUSES,
    validate_transition,
)
from models.inbox_item import InboxItem
from models.match_suggestion import MatchSuggestion
from observability.metrics import match_decisions_total, match_suggestions_total, match_confidence_histogram
from .ports import MatchScores

logger = logging.getLogger(__name__)


class InboxItemNotFoundError(Exception):
    """Inbox item does not exist for the tenant."""
    pass


class SuggestionNotFoundError(Exception):
    """Match suggestion does not exist for the tenant."""
    pass


class TransactionNotFoundError(Exception):
    """Ledger transaction does not exist for the tenant."""
    pass


class MatchSuggestionService:
    """Writes match suggestions and the inbox status changes they imply.

    Usage:
        service = MatchSuggestionService(db)
        suggestion = service.propose_suggestion(tenant_id, inbox_id, tx_id, scores, 0.81, MatchType.HIGH_CONFIDENCE)
        service.confirm(tenant_id, suggestion.id, inbox_id, tx_id, user_id)
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def propose_suggestion(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        transaction_id: UUID,
        scores: MatchScores,
        confidence: float,
        match_type: MatchType,
        match_details: Optional[Dict[str, Any]] = None,
    ) -> MatchSuggestion:
        """Create or refresh the suggestion for (inbox_id, transaction_id).

        A pending suggestion gets the new scores and match type. A decided
        one gets the new scores but keeps its status; re-derivation never
        reopens a user decision.
        """
        with self._unit_of_work():
            suggestion = self._upsert(
                tenant_id, inbox_id, transaction_id, scores, confidence, match_type, match_details
            )
        return suggestion

    def record_match(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        transaction_id: UUID,
        scores: MatchScores,
        confidence: float,
        match_type: MatchType,
        match_details: Optional[Dict[str, Any]] = None,
    ) -> MatchSuggestion:
        """Propose a suggestion and move the inbox item accordingly.

        auto_matched suggestions are confirmed by the system in the same
        transaction (inbox -> done, link set); all others move the inbox
        item to suggested_match.

        Raises:
            InboxItemNotFoundError: Unknown inbox item for the tenant
            InvariantViolation: Inbox item already done or linked
        """
        with self._unit_of_work():
            inbox = self._lock_inbox(tenant_id, inbox_id)
            self._check_unlinked(inbox)
            suggestion = self._upsert(
                tenant_id, inbox_id, transaction_id, scores, confidence, match_type, match_details
            )

            if match_type == MatchType.AUTO_MATCHED and suggestion.status == SuggestionStatus.PENDING.value:
                self._set_suggestion_status(suggestion, SuggestionStatus.CONFIRMED, user_id=None)
                self._set_inbox_status(inbox, InboxStatus.DONE)
                inbox.transaction_id = transaction_id
                match_decisions_total.labels(decision="auto_confirmed").inc()
            else:
                self._set_inbox_status(inbox, InboxStatus.SUGGESTED_MATCH)

        logger.info(
            "Match recorded",
            extra={
                "tenant_id": tenant_id,
                "inbox_id": inbox_id,
                "transaction_id": transaction_id,
                "suggestion_id": suggestion.id,
                "match_type": match_type.value,
                "confidence": confidence,
            },
        )
        return suggestion

    def mark_no_match(self, tenant_id: UUID, inbox_id: UUID) -> InboxItem:
        """Move an inbox item to no_match after a matching run found nothing."""
        with self._unit_of_work():
            inbox = self._lock_inbox(tenant_id, inbox_id)
            self._set_inbox_status(inbox, InboxStatus.NO_MATCH)
        return inbox

    def confirm(
        self,
        tenant_id: UUID,
        suggestion_id: UUID,
        inbox_id: UUID,
        transaction_id: UUID,
        user_id: Optional[UUID],
    ) -> MatchSuggestion:
        """Confirm a pending suggestion and link the inbox item.

        Raises:
            SuggestionNotFoundError: Unknown suggestion for the tenant
            InboxItemNotFoundError: Unknown inbox item for the tenant
            InvariantViolation: Suggestion not pending or not for this pair,
                or the inbox item is already done or linked
        """
        with self._unit_of_work():
            inbox = self._lock_inbox(tenant_id, inbox_id)
            suggestion = self._get_suggestion(tenant_id, suggestion_id)
            self._check_pair(suggestion, inbox_id, transaction_id)
            self._check_unlinked(inbox)

            self._set_suggestion_status(suggestion, SuggestionStatus.CONFIRMED, user_id)
            self._set_inbox_status(inbox, InboxStatus.DONE)
            inbox.transaction_id = transaction_id

        match_decisions_total.labels(decision="confirmed").inc()
        logger.info(
            "Match suggestion confirmed",
            extra={"tenant_id": tenant_id, "suggestion_id": suggestion_id, "user_id": user_id},
        )
        return suggestion

    def decline(
        self,
        tenant_id: UUID,
        suggestion_id: UUID,
        inbox_id: UUID,
        user_id: Optional[UUID],
    ) -> MatchSuggestion:
        """Decline a pending suggestion and return the inbox item to the pool.

        A done inbox item (another suggestion confirmed) is left as is, and
        a suggested_match item keeps its status while another suggestion
        for it is still pending.

        Raises:
            SuggestionNotFoundError, InboxItemNotFoundError, InvariantViolation
        """
        with self._unit_of_work():
            inbox = self._lock_inbox(tenant_id, inbox_id)
            suggestion = self._get_suggestion(tenant_id, suggestion_id)
            self._check_pair(suggestion, inbox_id)

            self._set_suggestion_status(suggestion, SuggestionStatus.DECLINED, user_id)

            others = self._other_statuses(tenant_id, inbox_id, suggestion.id)
            linked = inbox.status == InboxStatus.DONE.value or SuggestionStatus.CONFIRMED.value in others
            still_suggested = (
                inbox.status == InboxStatus.SUGGESTED_MATCH.value
                and SuggestionStatus.PENDING.value in others
            )
            if not (linked or still_suggested):
                self._set_inbox_status(inbox, InboxStatus.PENDING)

        match_decisions_total.labels(decision="declined").inc()
        logger.info(
            "Match suggestion declined",
            extra={"tenant_id": tenant_id, "suggestion_id": suggestion_id, "user_id": user_id},
        )
        return suggestion

    def mark_unmatched(
        self,
        tenant_id: UUID,
        suggestion_id: UUID,
        inbox_id: UUID,
    ) -> MatchSuggestion:
        """Record negative feedback on a confirmed match.

        The suggestion becomes unmatched (a negative signal for merchant
        pattern analysis) and the inbox item goes back to pending with its
        transaction link cleared.
        """
        with self._unit_of_work():
            inbox = self._lock_inbox(tenant_id, inbox_id)
            suggestion = self._get_suggestion(tenant_id, suggestion_id)
            self._check_pair(suggestion, inbox_id)

            validate_transition(SuggestionStatus(suggestion.status), SuggestionStatus.UNMATCHED)
            suggestion.status = SuggestionStatus.UNMATCHED.value
            self._set_inbox_status(inbox, InboxStatus.PENDING)
            if inbox.transaction_id == suggestion.transaction_id:
                inbox.transaction_id = None

        match_decisions_total.labels(decision="unmatched").inc()
        logger.info(
            "Match suggestion unmatched",
            extra={"tenant_id": tenant_id, "suggestion_id": suggestion_id},
        )
        return suggestion

    def was_previously_dismissed(self, tenant_id: UUID, inbox_id: UUID, transaction_id: UUID) -> bool:
        """True if this exact pair was ever declined or unmatched."""
        query = select(func.count(MatchSuggestion.id)).where(
            and_(
                MatchSuggestion.tenant_id == tenant_id,
                MatchSuggestion.inbox_id == inbox_id,
                MatchSuggestion.transaction_id == transaction_id,
                MatchSuggestion.status.in_([s.value for s in DISMISSED_STATUSES]),
            )
        )
        return (self.db.execute(query).scalar() or 0) > 0

    def has_pending_suggestion(self, tenant_id: UUID, inbox_id: UUID) -> bool:
        """True if any suggestion for the inbox item awaits a decision."""
        return SuggestionStatus.PENDING.value in self._other_statuses(tenant_id, inbox_id)

    def get_inbox_stats(self, tenant_id: UUID) -> Dict[str, int]:
        """Inbox item counts per status (deleted items excluded from total)."""
        rows = self.db.execute(
            select(InboxItem.status, func.count(InboxItem.id))
            .where(InboxItem.tenant_id == tenant_id)
            .group_by(InboxItem.status)
        ).all()
        counts = {status: count for status, count in rows}

        return {
            "new_items": counts.get(InboxStatus.NEW.value, 0),
            "analyzing_items": counts.get(InboxStatus.ANALYZING.value, 0),
            "pending_items": counts.get(InboxStatus.PENDING.value, 0),
            "suggested_matches": counts.get(InboxStatus.SUGGESTED_MATCH.value, 0),
            "no_match_items": counts.get(InboxStatus.NO_MATCH.value, 0),
            "done_items": counts.get(InboxStatus.DONE.value, 0),
            "total_items": sum(
                count for status, count in counts.items() if status != InboxStatus.DELETED.value
            ),
        }

    def _upsert(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        transaction_id: UUID,
        scores: MatchScores,
        confidence: float,
        match_type: MatchType,
        match_details: Optional[Dict[str, Any]],
    ) -> MatchSuggestion:
        suggestion = self._find_pair(tenant_id, inbox_id, transaction_id)

        if suggestion is None:
            suggestion = MatchSuggestion(
                tenant_id=tenant_id,
                inbox_id=inbox_id,
                transaction_id=transaction_id,
                status=SuggestionStatus.PENDING.value,
            )
            self._apply_scores(suggestion, scores, confidence, match_type, match_details)
            self.db.add(suggestion)
        else:
            self._apply_scores(suggestion, scores, confidence, match_type, match_details)

        try:
            self.db.flush()
        except IntegrityError as e:
            # A concurrent proposal for the same pair won the insert; callers
            # serialize retries per inbox item
            raise InvariantViolation(
                f"Suggestion for inbox {inbox_id} / transaction {transaction_id} already exists"
            ) from e
        match_suggestions_total.labels(match_type=match_type.value).inc()
        match_confidence_histogram.observe(confidence)
        return suggestion

    def _find_pair(self, tenant_id: UUID, inbox_id: UUID, transaction_id: UUID) -> Optional[MatchSuggestion]:
        return self.db.execute(
            select(MatchSuggestion).where(
                and_(
                    MatchSuggestion.tenant_id == tenant_id,
                    MatchSuggestion.inbox_id == inbox_id,
                    MatchSuggestion.transaction_id == transaction_id,
                )
            ).with_for_update()
        ).scalar_one_or_none()

    @staticmethod
    def _apply_scores(
        suggestion: MatchSuggestion,
        scores: MatchScores,
        confidence: float,
        match_type: MatchType,
        match_details: Optional[Dict[str, Any]],
    ) -> None:
        suggestion.amount_score = scores.amount if scores.amount_comparable else None
        suggestion.currency_score = scores.currency
        suggestion.date_score = scores.date if scores.date_comparable else None
        suggestion.embedding_score = scores.embedding
        suggestion.confidence_score = confidence
        suggestion.match_details = match_details
        if suggestion.status == SuggestionStatus.PENDING.value:
            suggestion.match_type = match_type.value

    def _lock_inbox(self, tenant_id: UUID, inbox_id: UUID) -> InboxItem:
        inbox = self.db.execute(
            select(InboxItem)
            .where(and_(InboxItem.id == inbox_id, InboxItem.tenant_id == tenant_id))
            .with_for_update()
        ).scalar_one_or_none()
        if inbox is None:
            raise InboxItemNotFoundError(f"Inbox item {inbox_id} not found")
        return inbox

    def _get_suggestion(self, tenant_id: UUID, suggestion_id: UUID) -> MatchSuggestion:
        suggestion = self.db.execute(
            select(MatchSuggestion)
            .where(and_(MatchSuggestion.id == suggestion_id, MatchSuggestion.tenant_id == tenant_id))
            .with_for_update()
        ).scalar_one_or_none()
        if suggestion is None:
            raise SuggestionNotFoundError(f"Match suggestion {suggestion_id} not found")
        return suggestion

    def _other_statuses(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        exclude_id: Optional[UUID] = None,
    ) -> Set[str]:
        query = select(MatchSuggestion.status).where(
            and_(MatchSuggestion.tenant_id == tenant_id, MatchSuggestion.inbox_id == inbox_id)
        )
        if exclude_id is not None:
            query = query.where(MatchSuggestion.id != exclude_id)
        return set(self.db.execute(query).scalars().all())

    @staticmethod
    def _check_unlinked(inbox: InboxItem) -> None:
        if inbox.status == InboxStatus.DONE.value or inbox.transaction_id is not None:
            raise InvariantViolation(
                f"Inbox item {inbox.id} is already matched to transaction {inbox.transaction_id}"
            )

    @staticmethod
    def _check_pair(
        suggestion: MatchSuggestion,
        inbox_id: UUID,
        transaction_id: Optional[UUID] = None,
    ) -> None:
        if suggestion.inbox_id != inbox_id:
            raise InvariantViolation(
                f"Suggestion {suggestion.id} belongs to inbox item {suggestion.inbox_id}, not {inbox_id}"
            )
        if transaction_id is not None and suggestion.transaction_id != transaction_id:
            raise InvariantViolation(
                f"Suggestion {suggestion.id} pairs transaction {suggestion.transaction_id}, not {transaction_id}"
            )

    @staticmethod
    def _set_suggestion_status(
        suggestion: MatchSuggestion,
        new_status: SuggestionStatus,
        user_id: Optional[UUID],
    ) -> None:
        validate_transition(SuggestionStatus(suggestion.status), new_status)
        suggestion.status = new_status.value
        suggestion.user_id = user_id
        suggestion.user_action_at = datetime.now(timezone.utc)

    @staticmethod
    def _set_inbox_status(inbox: InboxItem, new_status: InboxStatus) -> None:
        try:
            validate_inbox_transition(InboxStatus(inbox.status), new_status)
        except InboxTransitionError as e:
            raise InvariantViolation(str(e)) from e
        inbox.status = new_status.value
