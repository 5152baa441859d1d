"""Embedding Provider Port - Abstract interface for embedding providers.

Hexagonal Architecture: This is a domain port that infrastructure adapters implement.
The category recommender depends on this port, not on a concrete provider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class EmbeddingResult:
    """Result from embedding generation call.

    Attributes:
        embedding: Vector embedding (list of floats)
        model: Model name (e.g., 'text-embedding-3-small')
        dimension: Embedding dimension (e.g., 1536)
        tokens: Number of tokens used
    """
    embedding: list[float]
    model: str
    dimension: int
    tokens: int


class EmbeddingProviderPort(ABC):
    """Abstract interface for embedding providers.

    Implementations must:
    - apply a bounded request timeout and must not retry internally
      (callers own the retry policy)
    - raise an EmbeddingProviderError subclass on every failure; a degraded
      result such as a zero vector is never returned

    Example Usage:
        provider = OpenAIEmbeddingAdapter()
        result = provider.embed_text("Adobe Creative Cloud subscription")
        # result.embedding is list[float] of length 1536
    """

    @abstractmethod
    def embed_text(
        self,
        text: str,
        model: str = "text-embedding-3-small"
    ) -> EmbeddingResult:
        """Generate embedding vector for text.

        Args:
            text: Text to embed (category source text, transaction description)
            model: Embedding model name (default: text-embedding-3-small)

        Returns:
            EmbeddingResult with vector and metadata

        Raises:
            ValueError: Empty text
            EmbeddingTimeoutError: Request timed out
            EmbeddingRateLimitError: Rate limit exceeded
            EmbeddingAuthError: Authentication failed
            EmbeddingServiceError: Provider service unavailable
            EmbeddingInvalidResponseError: Provider returned invalid response
        """
        pass


# Custom exceptions for embedding operations
class EmbeddingProviderError(Exception):
    """Base exception for embedding provider failures"""
    pass


class EmbeddingTimeoutError(EmbeddingProviderError):
    """Embedding request timed out"""
    pass


class EmbeddingRateLimitError(EmbeddingProviderError):
    """Rate limit exceeded"""
    pass


class EmbeddingAuthError(EmbeddingProviderError):
    """Authentication failed"""
    pass


class EmbeddingServiceError(EmbeddingProviderError):
    """Provider service unavailable or returned error"""
    pass


class EmbeddingInvalidResponseError(EmbeddingProviderError):
    """Provider returned invalid/unexpected response"""
    pass
