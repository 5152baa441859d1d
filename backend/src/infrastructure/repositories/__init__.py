"""Database repositories."""

from .similarity_repository import SqlSimilarityStore
from .category_repository import CategoryRepository

__all__ = ["SqlSimilarityStore", "CategoryRepository"]
