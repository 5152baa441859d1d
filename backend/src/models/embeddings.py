"""Inbox and transaction embedding models for semantic matching.

Vectors are produced by an external text-embedding provider from a
normalized textual representation (merchant name, description). The
matching engine treats them as opaque similarity keys.

Both tables get an HNSW index in the migration:
    CREATE INDEX ... USING hnsw (embedding vector_cosine_ops)
"""

from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, String, Text, ForeignKey, DateTime, Index, Uuid

from .base import Base, utcnow

# Dimension of inbox/transaction embeddings (text-embedding-004 output)
MATCHING_EMBEDDING_DIM = 768


class InboxEmbedding(Base):
    """One embedding per inbox item (regenerated in place)."""
    __tablename__ = "inbox_embedding"
    __table_args__ = (
        Index("idx_inbox_embedding_unique", "inbox_id", unique=True),
        Index("ix_inbox_embedding_tenant", "tenant_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)
    inbox_id = Column(Uuid(as_uuid=True), ForeignKey("inbox.id", ondelete="CASCADE"), nullable=False)

    embedding = Column(Vector(MATCHING_EMBEDDING_DIM), nullable=False)
    embedding_model = Column(String(100), nullable=False)
    source_text = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class TransactionEmbedding(Base):
    """One embedding per ledger transaction."""
    __tablename__ = "transaction_embedding"
    __table_args__ = (
        Index("idx_transaction_embedding_unique", "transaction_id", unique=True),
        Index("ix_transaction_embedding_tenant", "tenant_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)
    transaction_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_transaction.id", ondelete="CASCADE"),
        nullable=False
    )

    embedding = Column(Vector(MATCHING_EMBEDDING_DIM), nullable=False)
    embedding_model = Column(String(100), nullable=False)
    source_text = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
