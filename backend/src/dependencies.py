"""Global FastAPI dependencies for tenant context and service wiring.

Authentication happens upstream; the gateway forwards the authenticated
tenant and user as X-Tenant-ID and X-User-ID headers. Every endpoint that
reads or writes tenant data must depend on get_tenant_id.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from domain.ai.ports import EmbeddingProviderPort, EmbeddingAuthError
from infrastructure.ai.openai_embeddings import OpenAIEmbeddingAdapter
from infrastructure.repositories.similarity_repository import SqlSimilarityStore


def _parse_uuid(value: str, header: str) -> UUID:
    try:
        return UUID(value)
    except (ValueError, AttributeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{header} must be a UUID",
        )


def get_tenant_id(x_tenant_id: Optional[str] = Header(default=None)) -> UUID:
    """Tenant of the current request.

    Raises:
        HTTPException 401: Header missing
        HTTPException 400: Header is not a UUID
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Tenant-ID header required",
        )
    return _parse_uuid(x_tenant_id, "X-Tenant-ID")


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[UUID]:
    """Acting user, if the caller identified one."""
    if not x_user_id:
        return None
    return _parse_uuid(x_user_id, "X-User-ID")


def get_similarity_store(db: Session = Depends(get_db)) -> SqlSimilarityStore:
    return SqlSimilarityStore(db)


def get_embedding_provider() -> EmbeddingProviderPort:
    """OpenAI embedding adapter.

    Raises:
        HTTPException 503: OPENAI_API_KEY not configured
    """
    try:
        return OpenAIEmbeddingAdapter()
    except EmbeddingAuthError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
