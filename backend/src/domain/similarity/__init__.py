"""Similarity store port and vector math."""

from .ports import (
    SimilarityStorePort,
    StorageError,
    PatternHistoryItem,
    PairEmbeddings,
    CategoryEmbeddingRecord,
    CategoryEmbeddingStats,
    PatternOutcomeTotals,
)
from .vector_math import cosine_similarity, cosine_distance

__all__ = [
    "SimilarityStorePort",
    "StorageError",
    "PatternHistoryItem",
    "PairEmbeddings",
    "CategoryEmbeddingRecord",
    "CategoryEmbeddingStats",
    "PatternOutcomeTotals",
    "cosine_similarity",
    "cosine_distance",
]
