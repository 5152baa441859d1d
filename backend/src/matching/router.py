"""Inbox matching API endpoints.

Confirm and decline act on one suggestion of one inbox item; the inbox
status change is applied in the same transaction.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_tenant_id, get_user_id, get_similarity_store
from infrastructure.repositories.similarity_repository import SqlSimilarityStore
from .lifecycle import MatchSuggestionService
from .ports import TransactionCandidate, InboxCandidate
from .schemas import (
    ConfirmSuggestionRequest,
    MatchSuggestionSchema,
    ProcessCandidatesRequest,
    ProcessInboxCandidatesRequest,
    MatchOutcomeSchema,
    TransactionMatchOutcomeSchema,
    InboxStatsResponse,
)
from .service import InboxMatchingService


router = APIRouter(prefix="/inbox", tags=["matching"])
transactions_router = APIRouter(prefix="/transactions", tags=["matching"])


@router.get("/stats", response_model=InboxStatsResponse)
def get_inbox_stats(
    db: Session = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
):
    """Inbox item counts per status for the tenant."""
    return MatchSuggestionService(db).get_inbox_stats(tenant_id)


@router.post("/{inbox_id}/match", response_model=MatchOutcomeSchema)
def process_candidates(
    inbox_id: UUID,
    request: ProcessCandidatesRequest,
    db: Session = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    store: SqlSimilarityStore = Depends(get_similarity_store),
):
    """Score candidate transactions and record the best match.

    Raises:
        404: Inbox item not found
        409: Lifecycle invariant violated
    """
    candidates = [
        TransactionCandidate(
            transaction_id=c.transaction_id,
            embedding_score=c.embedding_score,
            inbox_embedding=c.inbox_embedding,
            transaction_embedding=c.transaction_embedding,
        )
        for c in request.candidates
    ]
    outcome = InboxMatchingService(db, store).process_candidates(tenant_id, inbox_id, candidates)

    return MatchOutcomeSchema(
        inbox_id=outcome.inbox_id,
        inbox_status=outcome.inbox_status,
        suggestion=MatchSuggestionSchema.model_validate(outcome.suggestion) if outcome.suggestion else None,
        match_type=outcome.match_type.value if outcome.match_type else None,
        confidence=outcome.confidence,
        reason=outcome.reason,
    )


@router.post("/{inbox_id}/suggestions/{suggestion_id}/confirm", response_model=MatchSuggestionSchema)
def confirm_suggestion(
    inbox_id: UUID,
    suggestion_id: UUID,
    request: ConfirmSuggestionRequest,
    db: Session = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    user_id: Optional[UUID] = Depends(get_user_id),
):
    """Confirm a pending suggestion; the inbox item becomes done and linked.

    Raises:
        404: Suggestion or inbox item not found
        409: Suggestion not pending or not for this inbox item / transaction
    """
    suggestion = MatchSuggestionService(db).confirm(
        tenant_id=tenant_id,
        suggestion_id=suggestion_id,
        inbox_id=inbox_id,
        transaction_id=request.transaction_id,
        user_id=user_id,
    )
    return MatchSuggestionSchema.model_validate(suggestion)


@router.post("/{inbox_id}/suggestions/{suggestion_id}/decline", response_model=MatchSuggestionSchema)
def decline_suggestion(
    inbox_id: UUID,
    suggestion_id: UUID,
    db: Session = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    user_id: Optional[UUID] = Depends(get_user_id),
):
    """Decline a pending suggestion; an unlinked inbox item returns to pending."""
    suggestion = MatchSuggestionService(db).decline(
        tenant_id=tenant_id,
        suggestion_id=suggestion_id,
        inbox_id=inbox_id,
        user_id=user_id,
    )
    return MatchSuggestionSchema.model_validate(suggestion)


@transactions_router.post("/{transaction_id}/match", response_model=TransactionMatchOutcomeSchema)
def process_inbox_candidates(
    transaction_id: UUID,
    request: ProcessInboxCandidatesRequest,
    db: Session = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    store: SqlSimilarityStore = Depends(get_similarity_store),
):
    """Score waiting inbox items against a new transaction and suggest the best.

    Raises:
        404: Transaction not found
        409: Lifecycle invariant violated
    """
    candidates = [
        InboxCandidate(
            inbox_id=c.inbox_id,
            embedding_score=c.embedding_score,
            inbox_embedding=c.inbox_embedding,
            transaction_embedding=c.transaction_embedding,
        )
        for c in request.candidates
    ]
    outcome = InboxMatchingService(db, store).process_inbox_candidates(tenant_id, transaction_id, candidates)

    return TransactionMatchOutcomeSchema(
        transaction_id=outcome.transaction_id,
        matched=outcome.matched,
        inbox_id=outcome.inbox_id,
        inbox_status=outcome.inbox_status,
        suggestion=MatchSuggestionSchema.model_validate(outcome.suggestion) if outcome.suggestion else None,
        match_type=outcome.match_type.value if outcome.match_type else None,
        confidence=outcome.confidence,
        reason=outcome.reason,
    )
