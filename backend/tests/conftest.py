"""Pytest fixtures for the matching engine.

Provides reusable test fixtures for:
- Database session on an in-memory SQLite engine (tables created per test)
- Tenant ids and factories for inbox items, transactions and categories
- A deterministic fake embedding provider
- An in-memory similarity store for merchant pattern tests
- A FastAPI test client wired to the test session and fake provider

Usage:
    def test_confirm(db_session, make_inbox, make_transaction):
        inbox = make_inbox(amount=Decimal("100.00"))
        ...
"""

import sys
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Generator, List, Optional, Sequence
from uuid import UUID, uuid4

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("ENVIRONMENT", "test")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from models import Base, InboxItem, Transaction, TransactionCategory
from domain.ai.ports import EmbeddingProviderPort, EmbeddingResult
from domain.similarity.ports import (
    SimilarityStorePort,
    PatternHistoryItem,
    PairEmbeddings,
    CategoryEmbeddingRecord,
    CategoryEmbeddingStats,
    PatternOutcomeTotals,
)
from domain.similarity.vector_math import cosine_similarity
from domain.inbox.inbox_status import InboxStatus

# One shared connection so every session sees the same in-memory database
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_inbox(db_session: Session, tenant_id: UUID):
    """Factory for inbox items (default: 100.00 USD on 2024-01-10, pending)."""

    def _make(
        amount: Optional[Decimal] = Decimal("100.00"),
        currency: Optional[str] = "USD",
        on: Optional[date] = date(2024, 1, 10),
        status: InboxStatus = InboxStatus.PENDING,
        tenant: Optional[UUID] = None,
        display_name: str = "Acme Cloud",
    ) -> InboxItem:
        item = InboxItem(
            tenant_id=tenant or tenant_id,
            display_name=display_name,
            amount=amount,
            currency=currency,
            date=on,
            type="invoice",
            status=status.value,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture
def make_transaction(db_session: Session, tenant_id: UUID):
    """Factory for ledger transactions (default: 100.00 USD on 2024-01-10)."""

    def _make(
        amount: Optional[Decimal] = Decimal("100.00"),
        currency: Optional[str] = "USD",
        on: Optional[date] = date(2024, 1, 10),
        tenant: Optional[UUID] = None,
        name: str = "ACME CLOUD INC",
    ) -> Transaction:
        transaction = Transaction(
            tenant_id=tenant or tenant_id,
            name=name,
            amount=amount,
            currency=currency,
            date=on,
        )
        db_session.add(transaction)
        db_session.commit()
        return transaction

    return _make


@pytest.fixture
def make_category(db_session: Session, tenant_id: UUID):
    def _make(slug: str, name: str, description: Optional[str] = None, tenant: Optional[UUID] = None):
        category = TransactionCategory(
            tenant_id=tenant or tenant_id,
            slug=slug,
            name=name,
            description=description,
        )
        db_session.add(category)
        db_session.commit()
        return category

    return _make


# Vocabulary of the fake provider: one vector axis per topic
_TOPICS = (
    ("software", "saas", "subscription", "cloud", "hosting", "license"),
    ("travel", "flight", "hotel", "taxi", "uber", "transportation"),
    ("food", "restaurant", "lunch", "dinner", "meals", "cafe"),
    ("rent", "lease", "premises", "building", "office space"),
    ("bank", "fees", "commission", "wire", "charges"),
)


class FakeEmbeddingProvider(EmbeddingProviderPort):
    """Deterministic bag-of-topics embeddings.

    Each dimension counts keyword hits of one topic, so texts about the
    same topic get cosine similarity close to 1 and unrelated texts 0.
    A text without any known keyword embeds to a small constant vector.
    """

    def __init__(self):
        self.calls: List[str] = []

    def embed_text(self, text: str, model: str = "text-embedding-3-small") -> EmbeddingResult:
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")
        self.calls.append(text)
        lowered = text.lower()
        vector = [float(sum(lowered.count(word) for word in topic)) for topic in _TOPICS]
        if not any(vector):
            vector = [0.01] * len(_TOPICS)
        return EmbeddingResult(embedding=vector, model=model, dimension=len(vector), tokens=len(text.split()))


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


class InMemorySimilarityStore(SimilarityStorePort):
    """Similarity store double holding pattern history in a list.

    find_near_merchant_patterns applies the lookback and limit but not the
    distance filter; tests load it with the rows the query would return.
    Stored inbox/transaction vectors live in dicts keyed by row id.
    """

    def __init__(self, patterns: Optional[Sequence[PatternHistoryItem]] = None):
        self.patterns = list(patterns or [])
        self.category_embeddings = {}
        self.inbox_embeddings = {}
        self.transaction_embeddings = {}
        self.calls = []
        self.pair_lookups = []

    def find_near_merchant_patterns(
        self, tenant_id, inbox_embedding, transaction_embedding,
        distance_threshold, lookback_cutoff, limit,
    ):
        self.calls.append({
            "tenant_id": tenant_id,
            "distance_threshold": distance_threshold,
            "lookback_cutoff": lookback_cutoff,
            "limit": limit,
        })
        rows = [p for p in self.patterns if p.created_at > lookback_cutoff]
        rows.sort(key=lambda p: p.created_at, reverse=True)
        return rows[:limit]

    def get_pair_embeddings(self, tenant_id, inbox_id, transaction_id):
        self.pair_lookups.append((inbox_id, transaction_id))
        inbox_vec = self.inbox_embeddings.get(inbox_id)
        tx_vec = self.transaction_embeddings.get(transaction_id)
        if inbox_vec is None or tx_vec is None:
            return None
        return PairEmbeddings(
            inbox_embedding=inbox_vec,
            transaction_embedding=tx_vec,
            similarity=cosine_similarity(inbox_vec, tx_vec),
        )

    def find_similar_category_embeddings(self, tenant_id, exclude_category_id=None):
        return [
            record for (tenant, category_id), record in self.category_embeddings.items()
            if tenant == tenant_id and category_id != exclude_category_id
        ]

    def get_category_embedding(self, tenant_id, category_id):
        return self.category_embeddings.get((tenant_id, category_id))

    def upsert_category_embedding(self, tenant_id, category_id, embedding, source_text, model):
        self.category_embeddings[(tenant_id, category_id)] = CategoryEmbeddingRecord(
            category_id=category_id, embedding=list(embedding), slug="", name=""
        )

    def get_category_embedding_stats(self, tenant_id):
        count = sum(1 for tenant, _ in self.category_embeddings if tenant == tenant_id)
        return CategoryEmbeddingStats(categories_with_embeddings=count, last_updated=None)

    def get_pattern_outcome_totals(self, tenant_id, lookback_cutoff):
        rows = [p for p in self.patterns if p.created_at > lookback_cutoff]
        return PatternOutcomeTotals(
            total=len(rows),
            confirmed=sum(1 for p in rows if p.status == "confirmed"),
        )


def make_history(
    confirmed: int = 0,
    declined: int = 0,
    unmatched: int = 0,
    confidence: float = 0.95,
    created_at: Optional[datetime] = None,
) -> List[PatternHistoryItem]:
    """Build pattern history rows with the given outcome counts."""
    created_at = created_at or datetime.now(timezone.utc)
    rows = []
    for status, count in (("confirmed", confirmed), ("declined", declined), ("unmatched", unmatched)):
        for _ in range(count):
            rows.append(PatternHistoryItem(
                suggestion_id=uuid4(),
                status=status,
                confidence_score=confidence,
                inbox_similarity=0.95,
                transaction_similarity=0.94,
                created_at=created_at,
            ))
    return rows


@pytest.fixture
def history():
    """Factory fixture for pattern history rows (see make_history)."""
    return make_history


@pytest.fixture
def memory_store():
    """Factory fixture: memory_store(patterns) -> InMemorySimilarityStore."""
    return InMemorySimilarityStore


@pytest.fixture
def client(db_session: Session, fake_provider: FakeEmbeddingProvider):
    """FastAPI TestClient using the test session and the fake provider."""
    from main import app
    from database import get_db
    from dependencies import get_embedding_provider

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_embedding_provider] = lambda: fake_provider

    yield TestClient(app)

    app.dependency_overrides.clear()
