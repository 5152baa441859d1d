"""Pydantic schemas for category recommendation endpoints."""

from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field


class RecommendRequest(BaseModel):
    """Free text to classify (transaction description, merchant name)."""
    text: str = Field(min_length=1, max_length=8000)
    top_n: int = Field(default=5, ge=1, le=50)
    min_similarity: Optional[float] = Field(default=None, ge=-1.0, le=1.0)


class CategoryRecommendationSchema(BaseModel):
    category_id: UUID
    slug: str
    name: str
    similarity: float
    description: Optional[str] = None


class RecommendResponse(BaseModel):
    recommendations: List[CategoryRecommendationSchema]


class GenerateEmbeddingsResponse(BaseModel):
    generated: int
    failed: int


class EmbeddingStatsResponse(BaseModel):
    total_categories: int
    categories_with_embeddings: int
    last_updated: Optional[datetime] = None
