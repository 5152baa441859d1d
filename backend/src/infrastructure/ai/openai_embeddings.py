"""OpenAI Embedding Adapter - Implementation of EmbeddingProviderPort using OpenAI API.

Used to embed category descriptions and transaction texts for category
recommendation. Inbox and transaction embeddings used by merchant pattern
analysis are produced upstream and only read here through the similarity
store.

Architecture: Hexagonal - Infrastructure adapter implementing domain port
"""

import logging
import time
from typing import Optional

from openai import OpenAI, APIError, APITimeoutError, RateLimitError, AuthenticationError

from config import settings
from domain.ai.ports import (
    EmbeddingProviderPort,
    EmbeddingResult,
    EmbeddingTimeoutError,
    EmbeddingRateLimitError,
    EmbeddingAuthError,
    EmbeddingServiceError,
    EmbeddingInvalidResponseError,
)
from observability.metrics import record_embedding_request

logger = logging.getLogger(__name__)


class OpenAIEmbeddingAdapter(EmbeddingProviderPort):
    """OpenAI implementation of EmbeddingProviderPort.

    Configuration (settings / environment variables):
        OPENAI_API_KEY: OpenAI API key (required)
        EMBEDDING_DIMENSIONS: Requested output dimension (default: 1536)
        EMBEDDING_TIMEOUT_SECONDS: Request timeout in seconds (default: 30)

    The client is created with max_retries=0; retry policy belongs to the
    caller so a failed category generation is reported, not hidden.

    Example Usage:
        adapter = OpenAIEmbeddingAdapter()
        result = adapter.embed_text("Software. SaaS tools. software subscription ...")
        # result.embedding is list[float] of length EMBEDDING_DIMENSIONS
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        dimensions: Optional[int] = None,
        client: Optional[OpenAI] = None,
    ):
        """Initialize OpenAI embedding adapter.

        Args:
            api_key: OpenAI API key (if None, reads settings.OPENAI_API_KEY)
            timeout: Request timeout in seconds
            dimensions: Output dimension passed to the embeddings endpoint
            client: Preconfigured OpenAI client (tests)

        Raises:
            EmbeddingAuthError: If no API key is configured and no client is given
        """
        self.timeout = timeout or settings.EMBEDDING_TIMEOUT_SECONDS
        self.dimensions = dimensions or settings.EMBEDDING_DIMENSIONS

        if client is not None:
            self.client = client
            return

        api_key = api_key or settings.OPENAI_API_KEY
        if not api_key:
            raise EmbeddingAuthError("OPENAI_API_KEY not configured")

        self.client = OpenAI(api_key=api_key, timeout=self.timeout, max_retries=0)

    def embed_text(
        self,
        text: str,
        model: str = "text-embedding-3-small"
    ) -> EmbeddingResult:
        """Generate embedding vector for text using OpenAI API.

        Raises:
            ValueError: If text is empty
            EmbeddingTimeoutError: Request timed out
            EmbeddingRateLimitError: Rate limit exceeded
            EmbeddingAuthError: Authentication failed
            EmbeddingServiceError: OpenAI service error
            EmbeddingInvalidResponseError: Invalid response from API
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        start_time = time.time()
        outcome = "error"

        try:
            response = self.client.embeddings.create(
                model=model,
                input=text,
                dimensions=self.dimensions,
            )

            if not response.data:
                raise EmbeddingInvalidResponseError("No embedding returned from API")

            embedding = list(response.data[0].embedding)
            tokens = response.usage.total_tokens if response.usage else 0
            outcome = "success"

            return EmbeddingResult(
                embedding=embedding,
                model=model,
                dimension=len(embedding),
                tokens=tokens,
            )

        except AuthenticationError as e:
            raise EmbeddingAuthError(f"OpenAI authentication failed: {e}") from e
        except RateLimitError as e:
            raise EmbeddingRateLimitError(f"OpenAI rate limit exceeded: {e}") from e
        except APITimeoutError as e:
            raise EmbeddingTimeoutError(f"OpenAI request timed out: {e}") from e
        except APIError as e:
            raise EmbeddingServiceError(f"OpenAI API error: {e}") from e
        except EmbeddingInvalidResponseError:
            raise
        except (AttributeError, IndexError, TypeError) as e:
            raise EmbeddingInvalidResponseError(f"Unexpected response from OpenAI: {e}") from e
        finally:
            duration = time.time() - start_time
            record_embedding_request(model=model, outcome=outcome, duration_seconds=duration)
            logger.debug(
                "Embedding request finished",
                extra={"model": model, "outcome": outcome, "latency_ms": int(duration * 1000)},
            )
