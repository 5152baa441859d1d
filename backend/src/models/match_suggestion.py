"""MatchSuggestion SQLAlchemy model.

A proposed pairing between an inbox item and a ledger transaction with the
component scores that produced it. At most one row exists per
(inbox_id, transaction_id); re-deriving a suggestion updates that row.
"""

from uuid import uuid4

from sqlalchemy import Column, Text, Float, ForeignKey, DateTime, Index, UniqueConstraint, Uuid

from .base import Base, PortableJSONB, utcnow
from domain.matching.suggestion_status import SuggestionStatus, MatchType


class MatchSuggestion(Base):
    """Match suggestion with component and overall confidence scores.

    Status values:
    - pending: Awaiting user action
    - confirmed: Accepted by a user or applied by auto-match
    - declined: Rejected by a user
    - unmatched: Confirmed match later flagged wrong by an external process
    """
    __tablename__ = "transaction_match_suggestion"
    __table_args__ = (
        UniqueConstraint("inbox_id", "transaction_id", name="uq_match_suggestion_pair"),
        Index("ix_match_suggestion_tenant_status_created", "tenant_id", "status", "created_at"),
        Index("ix_match_suggestion_dismissed", "tenant_id", "inbox_id", "transaction_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)
    inbox_id = Column(Uuid(as_uuid=True), ForeignKey("inbox.id", ondelete="CASCADE"), nullable=False)
    transaction_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_transaction.id", ondelete="CASCADE"),
        nullable=False
    )

    # Component scores, each 0.0-1.0 (NULL when undeterminable)
    amount_score = Column(Float, nullable=True)
    currency_score = Column(Float, nullable=True)
    date_score = Column(Float, nullable=True)
    embedding_score = Column(Float, nullable=True)
    confidence_score = Column(Float, nullable=False, default=0.0)

    match_type = Column(Text, nullable=False, default=MatchType.SUGGESTED.value)
    match_details = Column(PortableJSONB, nullable=True)
    status = Column(Text, nullable=False, default=SuggestionStatus.PENDING.value)

    # User action audit
    user_id = Column(Uuid(as_uuid=True), nullable=True)
    user_action_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        """Convert match suggestion to dictionary representation."""
        return {
            "id": str(self.id),
            "tenant_id": str(self.tenant_id),
            "inbox_id": str(self.inbox_id),
            "transaction_id": str(self.transaction_id),
            "amount_score": self.amount_score,
            "currency_score": self.currency_score,
            "date_score": self.date_score,
            "embedding_score": self.embedding_score,
            "confidence_score": self.confidence_score,
            "match_type": self.match_type,
            "match_details": self.match_details,
            "status": self.status,
            "user_id": str(self.user_id) if self.user_id else None,
            "user_action_at": self.user_action_at.isoformat() if self.user_action_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
