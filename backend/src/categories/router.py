"""Category recommendation API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_tenant_id, get_similarity_store, get_embedding_provider
from domain.ai.ports import EmbeddingProviderPort
from infrastructure.repositories.category_repository import CategoryRepository
from infrastructure.repositories.similarity_repository import SqlSimilarityStore
from .recommender import CategoryRecommender
from .schemas import (
    RecommendRequest,
    RecommendResponse,
    CategoryRecommendationSchema,
    GenerateEmbeddingsResponse,
    EmbeddingStatsResponse,
)


router = APIRouter(prefix="/categories", tags=["categories"])


def get_recommender(
    db: Session = Depends(get_db),
    store: SqlSimilarityStore = Depends(get_similarity_store),
    provider: EmbeddingProviderPort = Depends(get_embedding_provider),
) -> CategoryRecommender:
    return CategoryRecommender(store, provider, CategoryRepository(db))


@router.post("/recommend", response_model=RecommendResponse)
def recommend_categories(
    request: RecommendRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    recommender: CategoryRecommender = Depends(get_recommender),
):
    """Categories most similar to the given text.

    Raises:
        502: Embedding provider failed
    """
    results = recommender.recommend(
        tenant_id,
        request.text,
        top_n=request.top_n,
        min_similarity=request.min_similarity,
    )
    return RecommendResponse(
        recommendations=[CategoryRecommendationSchema(**r.to_dict()) for r in results]
    )


@router.get("/embeddings/stats", response_model=EmbeddingStatsResponse)
def get_embedding_stats(
    tenant_id: UUID = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    store: SqlSimilarityStore = Depends(get_similarity_store),
):
    """Embedding coverage of the tenant's categories (no provider needed)."""
    stats = store.get_category_embedding_stats(tenant_id)
    return EmbeddingStatsResponse(
        total_categories=len(CategoryRepository(db).list_categories(tenant_id)),
        categories_with_embeddings=stats.categories_with_embeddings,
        last_updated=stats.last_updated,
    )


@router.post("/embeddings/generate", response_model=GenerateEmbeddingsResponse)
def generate_embeddings(
    tenant_id: UUID = Depends(get_tenant_id),
    recommender: CategoryRecommender = Depends(get_recommender),
):
    """(Re)generate embeddings for every category of the tenant."""
    return recommender.generate_all_category_embeddings(tenant_id)


@router.get("/{category_id}/related", response_model=RecommendResponse)
def related_categories(
    category_id: UUID,
    top_n: int = Query(default=5, ge=1, le=50),
    tenant_id: UUID = Depends(get_tenant_id),
    db: Session = Depends(get_db),
    recommender: CategoryRecommender = Depends(get_recommender),
):
    """Categories most similar to an existing category.

    Raises:
        404: Category not found
    """
    if CategoryRepository(db).get_category(tenant_id, category_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    results = recommender.relate_category(tenant_id, category_id, top_n=top_n)
    return RecommendResponse(
        recommendations=[CategoryRecommendationSchema(**r.to_dict()) for r in results]
    )
