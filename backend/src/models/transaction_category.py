"""TransactionCategory SQLAlchemy model (tenant category catalog)."""

from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, Index, Uuid

from .base import Base, utcnow


class TransactionCategory(Base):
    """Tenant-scoped taxonomy category. Read-only for the recommender."""
    __tablename__ = "transaction_category"
    __table_args__ = (
        Index("idx_transaction_category_tenant_slug", "tenant_id", "slug", unique=True),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False)
    slug = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<TransactionCategory(slug={self.slug}, name={self.name})>"
