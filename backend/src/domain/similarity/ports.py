"""Similarity store port - vector-similarity access to stored embeddings.

Hexagonal Architecture: the merchant pattern analyzer and the category
recommender depend on this port; infrastructure.repositories provides the
SQLAlchemy/pgvector implementation. The port only retrieves rows and
similarities, it never interprets scores.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID


class StorageError(Exception):
    """Similarity store unavailable or query failed."""
    pass


@dataclass
class PatternHistoryItem:
    """A decided match suggestion for a merchant similar to the current pair.

    Attributes:
        suggestion_id: MatchSuggestion UUID
        status: confirmed, declined or unmatched
        confidence_score: Confidence the suggestion was created with
        inbox_similarity: 1 - cosine distance to the current inbox embedding
        transaction_similarity: 1 - cosine distance to the current transaction embedding
        created_at: When the suggestion was created
    """
    suggestion_id: UUID
    status: str
    confidence_score: float
    inbox_similarity: float
    transaction_similarity: float
    created_at: datetime


@dataclass
class PairEmbeddings:
    """Stored embeddings of an inbox item and a transaction.

    Attributes:
        inbox_embedding: Stored inbox item vector
        transaction_embedding: Stored transaction vector
        similarity: 1 - cosine distance between the two
    """
    inbox_embedding: Sequence[float]
    transaction_embedding: Sequence[float]
    similarity: float


@dataclass
class CategoryEmbeddingRecord:
    """Stored category embedding joined with its catalog entry."""
    category_id: UUID
    embedding: Sequence[float]
    slug: str
    name: str
    description: Optional[str] = None


@dataclass
class CategoryEmbeddingStats:
    categories_with_embeddings: int
    last_updated: Optional[datetime]


@dataclass
class PatternOutcomeTotals:
    """Decided suggestion counts for a tenant within a lookback window."""
    total: int
    confirmed: int

    @property
    def accuracy(self) -> float:
        return self.confirmed / self.total if self.total else 0.0


class SimilarityStorePort(ABC):
    """Port for vector-similarity queries over stored embeddings.

    All methods raise StorageError on infrastructure failure.
    """

    @abstractmethod
    def find_near_merchant_patterns(
        self,
        tenant_id: UUID,
        inbox_embedding: Sequence[float],
        transaction_embedding: Sequence[float],
        distance_threshold: float,
        lookback_cutoff: datetime,
        limit: int,
    ) -> List[PatternHistoryItem]:
        """Find decided suggestions whose embeddings are near the given pair.

        Both the stored inbox embedding and the stored transaction embedding
        must be strictly within distance_threshold cosine distance of the
        supplied vectors. Only confirmed, declined and unmatched suggestions
        created after lookback_cutoff qualify. Ordered newest first, capped
        at limit.
        """
        pass

    @abstractmethod
    def get_pair_embeddings(
        self,
        tenant_id: UUID,
        inbox_id: UUID,
        transaction_id: UUID,
    ) -> Optional[PairEmbeddings]:
        """Stored embeddings of the pair and their similarity.

        Returns None when either side has no embedding yet.
        """
        pass

    @abstractmethod
    def find_similar_category_embeddings(
        self,
        tenant_id: UUID,
        exclude_category_id: Optional[UUID] = None,
    ) -> List[CategoryEmbeddingRecord]:
        """Return every stored category embedding for the tenant."""
        pass

    @abstractmethod
    def get_category_embedding(
        self,
        tenant_id: UUID,
        category_id: UUID,
    ) -> Optional[CategoryEmbeddingRecord]:
        pass

    @abstractmethod
    def upsert_category_embedding(
        self,
        tenant_id: UUID,
        category_id: UUID,
        embedding: Sequence[float],
        source_text: str,
        model: str,
    ) -> None:
        """Insert or replace the single embedding of a category."""
        pass

    @abstractmethod
    def get_category_embedding_stats(self, tenant_id: UUID) -> CategoryEmbeddingStats:
        pass

    @abstractmethod
    def get_pattern_outcome_totals(
        self,
        tenant_id: UUID,
        lookback_cutoff: datetime,
    ) -> PatternOutcomeTotals:
        pass
