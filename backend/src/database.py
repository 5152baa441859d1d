"""Database session factory and configuration.

Provides database connectivity and session management for the matching
engine. Includes a tenant scoped session factory for background callers.
"""

from contextlib import contextmanager
from typing import Generator
from uuid import UUID

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from config import settings

DATABASE_URL = settings.DATABASE_URL

# Pool settings only apply to PostgreSQL (not SQLite)
_engine_kwargs = {
    "pool_pre_ping": True,  # Verify connections before using
    "echo": False,  # Set to True for SQL query logging
}

if not DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["pool_size"] = 5
    _engine_kwargs["max_overflow"] = 10

engine = create_engine(DATABASE_URL, **_engine_kwargs)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.query(InboxItem).all()

    Automatically commits on success, rolls back on exception.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI endpoints.

    Usage:
        @router.get("/inbox/stats")
        def stats(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def tenant_scoped_session(tenant_id: UUID) -> Session:
    """Create a database session scoped to a specific tenant.

    The tenant_id is stored in session.info["tenant_id"] and is used by the
    before_flush listener below to populate tenant_id on new rows. Intended
    for batch callers that process many inbox items of one tenant.

    Args:
        tenant_id: Tenant UUID to scope this session to

    Returns:
        Session: SQLAlchemy session with tenant context
    """
    session = SessionLocal()
    session.info["tenant_id"] = tenant_id
    return session


@event.listens_for(Session, "before_flush")
def auto_populate_tenant_id(session, flush_context, instances):
    """Populate tenant_id on INSERT when the session carries a tenant context.

    Only applies to models with a tenant_id attribute that is still unset.
    """
    tenant_id = session.info.get("tenant_id")
    if not tenant_id:
        return

    for instance in session.new:
        if hasattr(instance, "tenant_id") and instance.tenant_id is None:
            instance.tenant_id = tenant_id
