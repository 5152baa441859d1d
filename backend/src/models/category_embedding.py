"""CategoryEmbedding Model - Vector embeddings for category recommendation.

One live embedding per (tenant, category). Regeneration overwrites the row.
"""

from uuid import uuid4

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, String, Integer, Text, ForeignKey, DateTime, Index, Uuid

from .base import Base, utcnow


class CategoryEmbedding(Base):
    """Category embedding vector.

    The embedding is generated from the category's name, description and a
    static keyword expansion for common slugs (see categories.keywords).

    Attributes:
        tenant_id: Tenant UUID (multi-tenant isolation)
        category_id: Reference to transaction_category
        embedding: Vector embedding (pgvector VECTOR type, dimension stored
            in embedding_dim and enforced at application level)
        embedding_text: Source text the vector was generated from
    """

    __tablename__ = "category_embedding"
    __table_args__ = (
        Index("idx_category_embedding_unique", "tenant_id", "category_id", unique=True),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)
    category_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("transaction_category.id", ondelete="CASCADE"),
        nullable=False,
    )

    embedding_model = Column(String(100), nullable=False)
    embedding_dim = Column(Integer, nullable=False)
    embedding = Column(Vector(), nullable=False)
    embedding_text = Column(Text, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return (
            f"<CategoryEmbedding(category_id={self.category_id}, "
            f"model={self.embedding_model}, dim={self.embedding_dim})>"
        )
