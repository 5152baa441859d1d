"""InboxItem SQLAlchemy model

An inbox item is an incoming financial document (invoice, receipt, expense)
awaiting reconciliation against a ledger transaction. Items are created by
document ingestion; the matching engine only changes status and the
transaction link.
"""

from uuid import uuid4

from sqlalchemy import Column, Text, ForeignKey, Numeric, Date, DateTime, Index, Uuid

from .base import Base, utcnow
from domain.inbox.inbox_status import InboxStatus


class InboxItem(Base):
    """Inbox item awaiting reconciliation.

    Status values follow domain.inbox.inbox_status.InboxStatus. Rows are
    never deleted; "deleted" is a soft status.
    """
    __tablename__ = "inbox"
    __table_args__ = (
        Index("ix_inbox_tenant_status", "tenant_id", "status"),
        Index("ix_inbox_tenant_created", "tenant_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)

    display_name = Column(Text, nullable=True)  # Merchant / sender name
    description = Column(Text, nullable=True)
    website = Column(Text, nullable=True)

    # Extracted financial data (all optional until extraction succeeds)
    amount = Column(Numeric(14, 2), nullable=True)
    currency = Column(Text, nullable=True)  # ISO 4217
    date = Column(Date, nullable=True)
    type = Column(Text, nullable=True)  # invoice, expense, receipt, other

    status = Column(Text, nullable=False, default=InboxStatus.NEW.value)
    transaction_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_transaction.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        """Convert inbox item to dictionary representation"""
        return {
            "id": str(self.id),
            "tenant_id": str(self.tenant_id),
            "display_name": self.display_name,
            "description": self.description,
            "website": self.website,
            "amount": float(self.amount) if self.amount is not None else None,
            "currency": self.currency,
            "date": self.date.isoformat() if self.date else None,
            "type": self.type,
            "status": self.status,
            "transaction_id": str(self.transaction_id) if self.transaction_id else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<InboxItem(id={self.id}, status={self.status}, amount={self.amount} {self.currency})>"
