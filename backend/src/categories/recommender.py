"""Category recommendation by embedding similarity.

Each tenant category has one stored embedding generated from
"name. description. keywords" (see categories.keywords). A free-text query
is embedded with the same provider and compared against every stored
category vector with cosine similarity:

    similarity = (q . c) / (|q| * |c|)     (0 for zero or mismatched vectors)

Results below min_similarity are dropped (0.30 for lists, 0.40 for the
single best recommendation), the rest sorted descending and rounded to 3
decimals.

Reads never mutate state except relate_category, which generates a
missing embedding for the source category on first use.
"""

import logging
from dataclasses import dataclass, asdict
from typing import List, Optional, Sequence, Dict, Any
from uuid import UUID

from config import MatchingSettings, get_matching_settings, settings as app_settings
from domain.ai.ports import EmbeddingProviderPort, EmbeddingProviderError
from domain.similarity.ports import SimilarityStorePort, StorageError, CategoryEmbeddingRecord
from domain.similarity.vector_math import cosine_similarity
from infrastructure.repositories.category_repository import CategoryRepository
from observability.metrics import category_recommendations_total
from .keywords import build_category_embedding_text

logger = logging.getLogger(__name__)


@dataclass
class CategoryRecommendation:
    category_id: UUID
    slug: str
    name: str
    similarity: float
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GeneratedCategoryEmbedding:
    """Embedding written for a category by generate_category_embedding."""
    category_id: UUID
    slug: str
    name: str
    embedding: List[float]
    source_text: str
    model: str


def rank_categories(
    query_embedding: Sequence[float],
    records: Sequence[CategoryEmbeddingRecord],
    top_n: int,
    min_similarity: Optional[float] = None,
) -> List[CategoryRecommendation]:
    """Cosine-rank stored category embeddings against a query vector."""
    results = []
    for record in records:
        similarity = cosine_similarity(query_embedding, record.embedding)
        if min_similarity is not None and similarity < min_similarity:
            continue
        results.append(CategoryRecommendation(
            category_id=record.category_id,
            slug=record.slug,
            name=record.name,
            similarity=round(similarity, 3),
            description=record.description,
        ))

    results.sort(key=lambda r: r.similarity, reverse=True)
    return results[:top_n]


class CategoryRecommender:
    """Recommends tenant categories for free text or for another category.

    Args:
        store: Similarity store holding category embeddings
        provider: Embedding provider; its errors always propagate
        catalog: Category catalog (CategoryRepository)
        settings: Similarity cut-offs
        embedding_model: Model name passed to the provider
    """

    def __init__(
        self,
        store: SimilarityStorePort,
        provider: EmbeddingProviderPort,
        catalog: CategoryRepository,
        settings: Optional[MatchingSettings] = None,
        embedding_model: Optional[str] = None,
    ):
        self.store = store
        self.provider = provider
        self.catalog = catalog
        self.settings = settings or get_matching_settings()
        self.embedding_model = embedding_model or app_settings.EMBEDDING_MODEL

    def recommend(
        self,
        tenant_id: UUID,
        text: str,
        top_n: int = 5,
        min_similarity: Optional[float] = None,
    ) -> List[CategoryRecommendation]:
        """Most similar categories for text, best first.

        Raises:
            EmbeddingProviderError: Query embedding could not be generated
        """
        if not text or not text.strip():
            return []
        if min_similarity is None:
            min_similarity = self.settings.category_list_min_similarity

        query_embedding = self.provider.embed_text(text, model=self.embedding_model).embedding

        try:
            records = self.store.find_similar_category_embeddings(tenant_id)
        except StorageError:
            logger.error("Category embeddings unavailable", extra={"tenant_id": tenant_id}, exc_info=True)
            category_recommendations_total.labels(outcome="error").inc()
            return []

        if not records:
            category_recommendations_total.labels(outcome="no_embeddings").inc()
            return []

        results = rank_categories(query_embedding, records, top_n, min_similarity)
        category_recommendations_total.labels(
            outcome="recommended" if results else "no_match"
        ).inc()
        return results

    def recommend_for_transaction(self, tenant_id: UUID, text: str) -> Optional[CategoryRecommendation]:
        """Single best category for a transaction description, or None."""
        results = self.recommend(
            tenant_id,
            text,
            top_n=1,
            min_similarity=self.settings.category_best_min_similarity,
        )
        return results[0] if results else None

    def relate_category(
        self,
        tenant_id: UUID,
        category_id: UUID,
        top_n: int = 5,
        min_similarity: Optional[float] = None,
    ) -> List[CategoryRecommendation]:
        """Categories most similar to an existing category, itself excluded.

        Generates the source category's embedding if it has none yet. No
        similarity cut-off applies unless min_similarity is given.
        """
        try:
            source = self.store.get_category_embedding(tenant_id, category_id)
        except StorageError:
            logger.error("Category embedding lookup failed", extra={"category_id": category_id}, exc_info=True)
            return []

        if source is None:
            if self.generate_category_embedding(tenant_id, category_id) is None:
                return []
            source = self.store.get_category_embedding(tenant_id, category_id)
            if source is None:
                return []

        try:
            others = self.store.find_similar_category_embeddings(tenant_id, exclude_category_id=category_id)
        except StorageError:
            logger.error("Category embeddings unavailable", extra={"tenant_id": tenant_id}, exc_info=True)
            return []

        return rank_categories(source.embedding, others, top_n, min_similarity)

    def generate_category_embedding(
        self,
        tenant_id: UUID,
        category_id: UUID,
    ) -> Optional[GeneratedCategoryEmbedding]:
        """Embed a category and store it, replacing any previous embedding.

        Returns None for an unknown category. Provider and storage errors
        propagate.
        """
        category = self.catalog.get_category(tenant_id, category_id)
        if category is None:
            logger.warning("Category not found for embedding generation", extra={"category_id": category_id})
            return None

        source_text = build_category_embedding_text(category.name, category.description, category.slug)
        result = self.provider.embed_text(source_text, model=self.embedding_model)

        self.store.upsert_category_embedding(
            tenant_id=tenant_id,
            category_id=category_id,
            embedding=result.embedding,
            source_text=source_text,
            model=result.model,
        )

        logger.info(
            f"Category embedding generated for {category.slug}",
            extra={"tenant_id": tenant_id, "category_id": category_id},
        )
        return GeneratedCategoryEmbedding(
            category_id=category_id,
            slug=category.slug,
            name=category.name,
            embedding=list(result.embedding),
            source_text=source_text,
            model=result.model,
        )

    def generate_all_category_embeddings(self, tenant_id: UUID) -> Dict[str, int]:
        """(Re)generate embeddings for every category of the tenant.

        Per-category failures are logged and counted, not raised.
        """
        categories = self.catalog.list_categories(tenant_id)
        generated = 0
        failed = 0

        logger.info(
            f"Generating embeddings for {len(categories)} categories",
            extra={"tenant_id": tenant_id},
        )

        for category in categories:
            try:
                if self.generate_category_embedding(tenant_id, category.id) is not None:
                    generated += 1
                else:
                    failed += 1
            except (EmbeddingProviderError, StorageError):
                logger.error(
                    f"Failed to generate embedding for {category.slug}",
                    extra={"tenant_id": tenant_id, "category_id": category.id},
                    exc_info=True,
                )
                failed += 1

        logger.info(
            f"Category embedding generation complete: {generated} generated, {failed} failed",
            extra={"tenant_id": tenant_id},
        )
        return {"generated": generated, "failed": failed}

    def has_embeddings(self, tenant_id: UUID) -> bool:
        return self.store.get_category_embedding_stats(tenant_id).categories_with_embeddings > 0

    def get_embedding_stats(self, tenant_id: UUID) -> Dict[str, Any]:
        stats = self.store.get_category_embedding_stats(tenant_id)
        return {
            "total_categories": len(self.catalog.list_categories(tenant_id)),
            "categories_with_embeddings": stats.categories_with_embeddings,
            "last_updated": stats.last_updated.isoformat() if stats.last_updated else None,
        }
