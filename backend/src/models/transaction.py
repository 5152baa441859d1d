"""Ledger transaction SQLAlchemy model

Transactions are ledger entries of external origin (bank feeds, payments).
The matching engine only reads them.
"""

from uuid import uuid4

from sqlalchemy import Column, Text, Numeric, Date, DateTime, Index, Uuid

from .base import Base, utcnow


class Transaction(Base):
    """Existing ledger entry, read-only for the matching engine."""
    __tablename__ = "ledger_transaction"
    __table_args__ = (
        Index("ix_ledger_transaction_tenant_date", "tenant_id", "date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)

    name = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    merchant_name = Column(Text, nullable=True)

    amount = Column(Numeric(14, 2), nullable=True)
    currency = Column(Text, nullable=True)
    date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, amount={self.amount} {self.currency}, date={self.date})>"
