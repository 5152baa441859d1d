"""Category recommendation by embedding similarity."""

from .keywords import CATEGORY_KEYWORDS, build_category_embedding_text
from .recommender import CategoryRecommender, CategoryRecommendation, rank_categories

__all__ = [
    "CATEGORY_KEYWORDS",
    "build_category_embedding_text",
    "CategoryRecommender",
    "CategoryRecommendation",
    "rank_categories",
]
