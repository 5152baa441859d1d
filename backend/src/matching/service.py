"""Inbox matching orchestration.

Given an inbox item and candidate transactions found by an upstream
nearest-neighbour search, score every candidate, pick the best one, check
merchant pattern eligibility and record the suggestion.

Pipeline:
    1. Drop candidates the user already dismissed for this inbox item
    2. Fill a missing embedding score or vectors from the stored embeddings
    3. Score amount / currency / date, combine with the embedding score
    4. Keep candidates with confidence >= suggested_threshold, best first
    5. Best candidate: merchant pattern check (needs both embeddings)
    6. Classify and record (auto_matched links the transaction immediately)
    7. No candidate left: inbox item -> no_match, unless an earlier
       suggestion for it is still pending

The reverse direction (process_inbox_candidates) scores inbox items
against a newly imported transaction through the same steps. It never
auto-matches and leaves inbox items untouched when nothing qualifies.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from config import MatchingSettings, get_matching_settings
from domain.inbox.inbox_status import InboxStatus
from domain.matching.suggestion_status import MatchType
from domain.similarity.ports import SimilarityStorePort
from models.inbox_item import InboxItem
from models.match_suggestion import MatchSuggestion
from models.transaction import Transaction
from .confidence import calculate_confidence, classify_match_type
from .lifecycle import MatchSuggestionService, InboxItemNotFoundError, TransactionNotFoundError
from .merchant_patterns import MerchantPatternAnalyzer, MerchantPatternResult
from .ports import MatchScores, CurrentMatchScores, TransactionCandidate, InboxCandidate, ScoredCandidate
from .scoring import (
    amount_score,
    currency_score,
    date_score,
    days_between,
    is_perfect_financial_match,
    amounts_comparable,
    dates_comparable,
)

logger = logging.getLogger(__name__)

# Inbox states in which a matching run may change the item
MATCHABLE_STATUSES = (
    InboxStatus.PENDING.value,
    InboxStatus.NO_MATCH.value,
    InboxStatus.SUGGESTED_MATCH.value,
)

Candidate = Union[TransactionCandidate, InboxCandidate]


@dataclass
class MatchOutcome:
    """Result of one matching run for an inbox item."""
    inbox_id: UUID
    inbox_status: str
    suggestion: Optional[MatchSuggestion] = None
    match_type: Optional[MatchType] = None
    confidence: float = 0.0
    pattern: Optional[MerchantPatternResult] = None
    ranked: List[ScoredCandidate] = field(default_factory=list)
    reason: str = ""


@dataclass
class TransactionMatchOutcome:
    """Result of one reverse matching run for a transaction."""
    transaction_id: UUID
    matched: bool
    inbox_id: Optional[UUID] = None
    inbox_status: Optional[str] = None
    suggestion: Optional[MatchSuggestion] = None
    match_type: Optional[MatchType] = None
    confidence: float = 0.0
    ranked: List[ScoredCandidate] = field(default_factory=list)
    reason: str = ""


def score_pair(inbox: InboxItem, transaction: Transaction, embedding: Optional[float]) -> MatchScores:
    """Component scores for an inbox item against a transaction."""
    return MatchScores(
        amount=amount_score(inbox.amount, transaction.amount),
        currency=currency_score(inbox.currency, transaction.currency),
        date=date_score(inbox.date, transaction.date),
        embedding=embedding,
        perfect_financial=is_perfect_financial_match(
            inbox.amount, transaction.amount, inbox.currency, transaction.currency
        ),
        amount_comparable=amounts_comparable(inbox.amount, transaction.amount),
        date_comparable=dates_comparable(inbox.date, transaction.date),
    )


def _has_vector(vector: Optional[Sequence[float]]) -> bool:
    # pgvector hands back numpy arrays, whose truth value is ambiguous
    return vector is not None and len(vector) > 0


class InboxMatchingService:
    """Runs matching for one inbox item (or one transaction) at a time.

    Callers may process different items concurrently (one session each)
    but must not run two matching passes for the same item at once.
    """

    def __init__(
        self,
        db: Session,
        store: SimilarityStorePort,
        analyzer: Optional[MerchantPatternAnalyzer] = None,
        settings: Optional[MatchingSettings] = None,
    ):
        self.db = db
        self.store = store
        self.settings = settings or get_matching_settings()
        self.analyzer = analyzer or MerchantPatternAnalyzer(store)
        self.lifecycle = MatchSuggestionService(db)

    def rank_candidates(
        self,
        tenant_id: UUID,
        inbox: InboxItem,
        candidates: Sequence[TransactionCandidate],
    ) -> List[ScoredCandidate]:
        """Score candidates and return those above the suggested threshold, best first."""
        by_id = {c.transaction_id: c for c in candidates}
        if not by_id:
            return []

        transactions = self.db.execute(
            select(Transaction).where(
                and_(Transaction.tenant_id == tenant_id, Transaction.id.in_(list(by_id)))
            )
        ).scalars().all()

        ranked = []
        for transaction in transactions:
            scored = self._score(tenant_id, inbox, transaction, by_id[transaction.id])
            if scored is not None:
                scored.details["direction"] = "inbox_to_transaction"
                ranked.append(scored)

        ranked.sort(key=lambda c: c.confidence, reverse=True)
        return ranked[: self.settings.max_candidates]

    def rank_inbox_candidates(
        self,
        tenant_id: UUID,
        transaction: Transaction,
        candidates: Sequence[InboxCandidate],
    ) -> List[ScoredCandidate]:
        """Score candidate inbox items against a transaction, best first.

        Only items still awaiting a match are considered.
        """
        by_id = {c.inbox_id: c for c in candidates}
        if not by_id:
            return []

        items = self.db.execute(
            select(InboxItem).where(
                and_(
                    InboxItem.tenant_id == tenant_id,
                    InboxItem.id.in_(list(by_id)),
                    InboxItem.status.in_(MATCHABLE_STATUSES),
                )
            )
        ).scalars().all()

        ranked = []
        for inbox in items:
            scored = self._score(tenant_id, inbox, transaction, by_id[inbox.id])
            if scored is not None:
                scored.details["direction"] = "transaction_to_inbox"
                ranked.append(scored)

        ranked.sort(key=lambda c: c.confidence, reverse=True)
        return ranked[: self.settings.max_candidates]

    def process_candidates(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        candidates: Sequence[TransactionCandidate],
    ) -> MatchOutcome:
        """Score candidates and record the best match for the inbox item.

        Raises:
            InboxItemNotFoundError: Unknown inbox item for the tenant
            InvariantViolation: Lifecycle write rejected (rolled back)
            StorageError: Stored embeddings could not be read
        """
        inbox = self.db.execute(
            select(InboxItem).where(and_(InboxItem.id == inbox_id, InboxItem.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if inbox is None:
            raise InboxItemNotFoundError(f"Inbox item {inbox_id} not found")

        if inbox.status not in MATCHABLE_STATUSES:
            return MatchOutcome(
                inbox_id=inbox_id,
                inbox_status=inbox.status,
                reason=f"Inbox item is {inbox.status}, not awaiting a match",
            )

        ranked = self.rank_candidates(tenant_id, inbox, candidates)

        if not ranked:
            if (
                inbox.status == InboxStatus.SUGGESTED_MATCH.value
                and self.lifecycle.has_pending_suggestion(tenant_id, inbox_id)
            ):
                logger.info(
                    "No new match candidate, earlier suggestion still pending",
                    extra={"tenant_id": tenant_id, "inbox_id": inbox_id},
                )
                return MatchOutcome(
                    inbox_id=inbox_id,
                    inbox_status=inbox.status,
                    reason="No new candidate; earlier suggestion still pending",
                )

            self.lifecycle.mark_no_match(tenant_id, inbox_id)
            logger.info("No match candidate", extra={"tenant_id": tenant_id, "inbox_id": inbox_id})
            return MatchOutcome(
                inbox_id=inbox_id,
                inbox_status=InboxStatus.NO_MATCH.value,
                reason="No candidate above suggested threshold",
            )

        best = ranked[0]
        pattern = self._check_pattern(tenant_id, best)
        pattern_eligible = pattern is not None and pattern.can_auto_match
        match_type = classify_match_type(
            best.confidence,
            pattern_eligible=pattern_eligible,
            comparable=best.scores.comparable,
            settings=self.settings,
        )

        details = dict(best.details)
        if pattern is not None:
            details["merchant_pattern"] = pattern.to_dict()

        suggestion = self.lifecycle.record_match(
            tenant_id=tenant_id,
            inbox_id=inbox_id,
            transaction_id=best.transaction_id,
            scores=best.scores,
            confidence=best.confidence,
            match_type=match_type,
            match_details=details,
        )

        return MatchOutcome(
            inbox_id=inbox_id,
            inbox_status=inbox.status,
            suggestion=suggestion,
            match_type=match_type,
            confidence=best.confidence,
            pattern=pattern,
            ranked=ranked,
            reason=pattern.reason if pattern is not None else "",
        )

    def process_inbox_candidates(
        self,
        tenant_id: UUID,
        transaction_id: UUID,
        inbox_candidates: Sequence[InboxCandidate],
    ) -> TransactionMatchOutcome:
        """Match a newly imported transaction against waiting inbox items.

        The best inbox item above the suggested threshold gets a suggestion
        and moves to suggested_match. Merchant patterns are not consulted in
        this direction, so the result is at most high_confidence.

        Raises:
            TransactionNotFoundError: Unknown transaction for the tenant
            InvariantViolation: Lifecycle write rejected (rolled back)
            StorageError: Stored embeddings could not be read
        """
        transaction = self.db.execute(
            select(Transaction).where(
                and_(Transaction.id == transaction_id, Transaction.tenant_id == tenant_id)
            )
        ).scalar_one_or_none()
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")

        ranked = self.rank_inbox_candidates(tenant_id, transaction, inbox_candidates)
        if not ranked:
            logger.info(
                "No inbox candidate for transaction",
                extra={"tenant_id": tenant_id, "transaction_id": transaction_id},
            )
            return TransactionMatchOutcome(
                transaction_id=transaction_id,
                matched=False,
                reason="No inbox item above suggested threshold",
            )

        best = ranked[0]
        match_type = classify_match_type(
            best.confidence,
            pattern_eligible=False,
            comparable=best.scores.comparable,
            settings=self.settings,
        )

        suggestion = self.lifecycle.record_match(
            tenant_id=tenant_id,
            inbox_id=best.inbox_id,
            transaction_id=transaction_id,
            scores=best.scores,
            confidence=best.confidence,
            match_type=match_type,
            match_details=dict(best.details),
        )
        inbox = self.db.get(InboxItem, best.inbox_id)

        return TransactionMatchOutcome(
            transaction_id=transaction_id,
            matched=True,
            inbox_id=best.inbox_id,
            inbox_status=inbox.status,
            suggestion=suggestion,
            match_type=match_type,
            confidence=best.confidence,
            ranked=ranked,
        )

    def _score(
        self,
        tenant_id: UUID,
        inbox: InboxItem,
        transaction: Transaction,
        candidate: Candidate,
    ) -> Optional[ScoredCandidate]:
        if self.lifecycle.was_previously_dismissed(tenant_id, inbox.id, transaction.id):
            return None

        candidate = self._with_stored_embeddings(tenant_id, inbox.id, transaction.id, candidate)
        scores = score_pair(inbox, transaction, candidate.embedding_score)
        confidence = calculate_confidence(scores)
        if confidence < self.settings.suggested_threshold:
            return None

        return ScoredCandidate(
            transaction_id=transaction.id,
            inbox_id=inbox.id,
            scores=scores,
            confidence=confidence,
            candidate=candidate,
            details={
                "days_apart": days_between(inbox.date, transaction.date),
                "perfect_financial_match": scores.perfect_financial,
                "transaction_name": transaction.name,
            },
        )

    def _with_stored_embeddings(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        transaction_id: UUID,
        candidate: Candidate,
    ) -> Candidate:
        """Fill what the caller left out from the stored pair embeddings."""
        if (
            candidate.embedding_score is not None
            and _has_vector(candidate.inbox_embedding)
            and _has_vector(candidate.transaction_embedding)
        ):
            return candidate

        stored = self.store.get_pair_embeddings(tenant_id, inbox_id, transaction_id)
        if stored is None:
            return candidate

        return replace(
            candidate,
            embedding_score=(
                candidate.embedding_score if candidate.embedding_score is not None else stored.similarity
            ),
            inbox_embedding=(
                candidate.inbox_embedding if _has_vector(candidate.inbox_embedding) else stored.inbox_embedding
            ),
            transaction_embedding=(
                candidate.transaction_embedding
                if _has_vector(candidate.transaction_embedding)
                else stored.transaction_embedding
            ),
        )

    def _check_pattern(self, tenant_id: UUID, best: ScoredCandidate) -> Optional[MerchantPatternResult]:
        candidate = best.candidate
        if not _has_vector(candidate.inbox_embedding) or not _has_vector(candidate.transaction_embedding):
            return None

        current = CurrentMatchScores(
            embedding_score=best.scores.embedding or 0.0,
            date_score=best.scores.date,
            amount_score=best.scores.amount,
            confidence_score=best.confidence,
            is_perfect_financial_match=best.scores.perfect_financial,
        )
        return self.analyzer.check_merchant_pattern_eligibility(
            tenant_id,
            candidate.inbox_embedding,
            candidate.transaction_embedding,
            current_match=current,
        )
