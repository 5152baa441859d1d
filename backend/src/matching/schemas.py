"""Pydantic schemas for inbox matching endpoints."""

from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ConfirmSuggestionRequest(BaseModel):
    """Request to confirm a match suggestion."""
    transaction_id: UUID


class MatchSuggestionSchema(BaseModel):
    """Match suggestion as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    inbox_id: UUID
    transaction_id: UUID
    amount_score: Optional[float] = None
    currency_score: Optional[float] = None
    date_score: Optional[float] = None
    embedding_score: Optional[float] = None
    confidence_score: float = Field(ge=0.0, le=1.0)
    match_type: str
    match_details: Optional[Dict[str, Any]] = None
    status: str
    user_id: Optional[UUID] = None
    user_action_at: Optional[datetime] = None


class MatchCandidateSchema(BaseModel):
    """Candidate transaction from an upstream nearest-neighbour search.

    Omitted scores and vectors are read from the stored embeddings.
    """
    transaction_id: UUID
    embedding_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    inbox_embedding: Optional[List[float]] = None
    transaction_embedding: Optional[List[float]] = None


class ProcessCandidatesRequest(BaseModel):
    candidates: List[MatchCandidateSchema] = Field(default_factory=list)


class InboxCandidateSchema(BaseModel):
    """Candidate inbox item for a newly imported transaction."""
    inbox_id: UUID
    embedding_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    inbox_embedding: Optional[List[float]] = None
    transaction_embedding: Optional[List[float]] = None


class ProcessInboxCandidatesRequest(BaseModel):
    candidates: List[InboxCandidateSchema] = Field(default_factory=list)


class TransactionMatchOutcomeSchema(BaseModel):
    """Result of a reverse matching run."""
    transaction_id: UUID
    matched: bool
    inbox_id: Optional[UUID] = None
    inbox_status: Optional[str] = None
    suggestion: Optional[MatchSuggestionSchema] = None
    match_type: Optional[str] = None
    confidence: float = 0.0
    reason: str = ""


class MatchOutcomeSchema(BaseModel):
    """Result of a matching run."""
    inbox_id: UUID
    inbox_status: str
    suggestion: Optional[MatchSuggestionSchema] = None
    match_type: Optional[str] = None
    confidence: float = 0.0
    reason: str = ""


class InboxStatsResponse(BaseModel):
    new_items: int
    analyzing_items: int
    pending_items: int
    suggested_matches: int
    no_match_items: int
    done_items: int
    total_items: int
