"""SQLAlchemy/pgvector implementation of the similarity store port.

Merchant pattern lookups run in PostgreSQL with pgvector's cosine distance
operator (<=>) so the HNSW indexes on inbox_embedding and
transaction_embedding are used; the embedding score of a single pair is
computed with the same operator. Category embeddings are few per tenant and
are returned whole; callers compare them with
domain.similarity.vector_math.cosine_similarity.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func, and_, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.category_embedding import CategoryEmbedding
from models.embeddings import InboxEmbedding, TransactionEmbedding
from models.match_suggestion import MatchSuggestion
from models.transaction_category import TransactionCategory
from domain.matching.suggestion_status import DECIDED_STATUSES, SuggestionStatus
from domain.similarity.ports import (
    SimilarityStorePort,
    StorageError,
    PatternHistoryItem,
    PairEmbeddings,
    CategoryEmbeddingRecord,
    CategoryEmbeddingStats,
    PatternOutcomeTotals,
)

logger = logging.getLogger(__name__)

_DECIDED_VALUES = [s.value for s in DECIDED_STATUSES]


class SqlSimilarityStore(SimilarityStorePort):
    """Similarity store backed by the application database.

    Usage:
        store = SqlSimilarityStore(db)
        rows = store.find_near_merchant_patterns(
            tenant_id, inbox_vec, tx_vec,
            distance_threshold=0.15, lookback_cutoff=cutoff, limit=20
        )
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def find_near_merchant_patterns(
        self,
        tenant_id: UUID,
        inbox_embedding: Sequence[float],
        transaction_embedding: Sequence[float],
        distance_threshold: float,
        lookback_cutoff: datetime,
        limit: int,
    ) -> List[PatternHistoryItem]:
        inbox_distance = InboxEmbedding.embedding.cosine_distance(inbox_embedding)
        transaction_distance = TransactionEmbedding.embedding.cosine_distance(transaction_embedding)

        query = (
            select(
                MatchSuggestion.id,
                MatchSuggestion.status,
                MatchSuggestion.confidence_score,
                (1 - inbox_distance).label("inbox_similarity"),
                (1 - transaction_distance).label("transaction_similarity"),
                MatchSuggestion.created_at,
            )
            .join(InboxEmbedding, InboxEmbedding.inbox_id == MatchSuggestion.inbox_id)
            .join(
                TransactionEmbedding,
                TransactionEmbedding.transaction_id == MatchSuggestion.transaction_id,
            )
            .where(
                and_(
                    MatchSuggestion.tenant_id == tenant_id,
                    MatchSuggestion.status.in_(_DECIDED_VALUES),
                    MatchSuggestion.created_at > lookback_cutoff,
                    inbox_distance < distance_threshold,
                    transaction_distance < distance_threshold,
                )
            )
            .order_by(MatchSuggestion.created_at.desc())
            .limit(limit)
        )

        try:
            rows = self.db.execute(query).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Merchant pattern query failed: {e}") from e

        return [
            PatternHistoryItem(
                suggestion_id=row.id,
                status=row.status,
                confidence_score=float(row.confidence_score or 0.0),
                inbox_similarity=float(row.inbox_similarity),
                transaction_similarity=float(row.transaction_similarity),
                created_at=row.created_at,
            )
            for row in rows
        ]

    def get_pair_embeddings(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        transaction_id: UUID,
    ) -> Optional[PairEmbeddings]:
        distance = InboxEmbedding.embedding.cosine_distance(TransactionEmbedding.embedding)
        query = (
            select(
                InboxEmbedding.embedding.label("inbox_embedding"),
                TransactionEmbedding.embedding.label("transaction_embedding"),
                (1 - distance).label("similarity"),
            )
            .select_from(InboxEmbedding)
            .join(
                TransactionEmbedding,
                and_(
                    TransactionEmbedding.tenant_id == tenant_id,
                    TransactionEmbedding.transaction_id == transaction_id,
                ),
            )
            .where(
                and_(
                    InboxEmbedding.tenant_id == tenant_id,
                    InboxEmbedding.inbox_id == inbox_id,
                )
            )
        )

        try:
            row = self.db.execute(query).first()
        except SQLAlchemyError as e:
            raise StorageError(f"Pair embedding lookup failed: {e}") from e

        if row is None:
            return None
        return PairEmbeddings(
            inbox_embedding=row.inbox_embedding,
            transaction_embedding=row.transaction_embedding,
            similarity=float(row.similarity),
        )

    def find_similar_category_embeddings(
        self,
        tenant_id: UUID,
        exclude_category_id: Optional[UUID] = None,
    ) -> List[CategoryEmbeddingRecord]:
        query = (
            select(CategoryEmbedding, TransactionCategory)
            .join(TransactionCategory, TransactionCategory.id == CategoryEmbedding.category_id)
            .where(CategoryEmbedding.tenant_id == tenant_id)
        )
        if exclude_category_id is not None:
            query = query.where(CategoryEmbedding.category_id != exclude_category_id)

        try:
            rows = self.db.execute(query).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Category embedding query failed: {e}") from e

        return [self._to_record(embedding, category) for embedding, category in rows]

    def get_category_embedding(
        self,
        tenant_id: UUID,
        category_id: UUID,
    ) -> Optional[CategoryEmbeddingRecord]:
        query = (
            select(CategoryEmbedding, TransactionCategory)
            .join(TransactionCategory, TransactionCategory.id == CategoryEmbedding.category_id)
            .where(
                and_(
                    CategoryEmbedding.tenant_id == tenant_id,
                    CategoryEmbedding.category_id == category_id,
                )
            )
        )

        try:
            row = self.db.execute(query).first()
        except SQLAlchemyError as e:
            raise StorageError(f"Category embedding lookup failed: {e}") from e

        if row is None:
            return None
        return self._to_record(row[0], row[1])

    def upsert_category_embedding(
        self,
        tenant_id: UUID,
        category_id: UUID,
        embedding: Sequence[float],
        source_text: str,
        model: str,
    ) -> None:
        """Insert or replace the category's embedding and commit."""
        vector = [float(v) for v in embedding]
        try:
            existing = self.db.execute(
                select(CategoryEmbedding).where(
                    and_(
                        CategoryEmbedding.tenant_id == tenant_id,
                        CategoryEmbedding.category_id == category_id,
                    )
                )
            ).scalar_one_or_none()

            if existing is None:
                self.db.add(CategoryEmbedding(
                    tenant_id=tenant_id,
                    category_id=category_id,
                    embedding=vector,
                    embedding_dim=len(vector),
                    embedding_model=model,
                    embedding_text=source_text,
                ))
            else:
                existing.embedding = vector
                existing.embedding_dim = len(vector)
                existing.embedding_model = model
                existing.embedding_text = source_text

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Category embedding upsert failed: {e}") from e

    def get_category_embedding_stats(self, tenant_id: UUID) -> CategoryEmbeddingStats:
        try:
            row = self.db.execute(
                select(
                    func.count(CategoryEmbedding.id).label("count"),
                    func.max(CategoryEmbedding.updated_at).label("last_updated"),
                ).where(CategoryEmbedding.tenant_id == tenant_id)
            ).one()
        except SQLAlchemyError as e:
            raise StorageError(f"Category embedding stats failed: {e}") from e

        return CategoryEmbeddingStats(
            categories_with_embeddings=int(row.count or 0),
            last_updated=row.last_updated,
        )

    def get_pattern_outcome_totals(
        self,
        tenant_id: UUID,
        lookback_cutoff: datetime,
    ) -> PatternOutcomeTotals:
        confirmed = func.sum(
            case((MatchSuggestion.status == SuggestionStatus.CONFIRMED.value, 1), else_=0)
        )
        try:
            row = self.db.execute(
                select(
                    func.count(MatchSuggestion.id).label("total"),
                    confirmed.label("confirmed"),
                ).where(
                    and_(
                        MatchSuggestion.tenant_id == tenant_id,
                        MatchSuggestion.status.in_(_DECIDED_VALUES),
                        MatchSuggestion.created_at > lookback_cutoff,
                    )
                )
            ).one()
        except SQLAlchemyError as e:
            raise StorageError(f"Pattern outcome totals failed: {e}") from e

        return PatternOutcomeTotals(total=int(row.total or 0), confirmed=int(row.confirmed or 0))

    @staticmethod
    def _to_record(embedding: CategoryEmbedding, category: TransactionCategory) -> CategoryEmbeddingRecord:
        return CategoryEmbeddingRecord(
            category_id=category.id,
            embedding=embedding.embedding,
            slug=category.slug,
            name=category.name,
            description=category.description,
        )
