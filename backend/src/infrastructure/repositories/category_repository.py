"""Read access to the tenant category catalog."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from models.transaction_category import TransactionCategory


class CategoryRepository:
    """Repository for TransactionCategory lookups (read-only)."""

    def __init__(self, db: Session):
        self.db = db

    def get_category(self, tenant_id: UUID, category_id: UUID) -> Optional[TransactionCategory]:
        query = select(TransactionCategory).where(
            and_(
                TransactionCategory.tenant_id == tenant_id,
                TransactionCategory.id == category_id,
            )
        )
        return self.db.execute(query).scalar_one_or_none()

    def list_categories(self, tenant_id: UUID) -> List[TransactionCategory]:
        query = (
            select(TransactionCategory)
            .where(TransactionCategory.tenant_id == tenant_id)
            .order_by(TransactionCategory.slug)
        )
        return list(self.db.execute(query).scalars().all())
