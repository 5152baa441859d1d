"""Value objects exchanged between the matching components.

These are plain dataclasses so scoring and eligibility stay free of
ORM and HTTP types.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Sequence, Union
from uuid import UUID


@dataclass
class MatchScores:
    """Component scores for one inbox item / transaction pair.

    Attributes:
        amount: amount_score result (0.0 when an amount is unknown)
        currency: currency_score result (0.5 when a currency is unknown)
        date: date_score result (0.5 when a date is unknown)
        embedding: 1 - cosine distance of the two embeddings, None if unavailable
        perfect_financial: Same absolute amount and same currency
        amount_comparable: Both amounts known
        date_comparable: Both dates known
    """
    amount: float
    currency: float
    date: float
    embedding: Optional[float] = None
    perfect_financial: bool = False
    amount_comparable: bool = True
    date_comparable: bool = True

    @property
    def comparable(self) -> bool:
        """Confidence may only count as positive evidence when both hold."""
        return self.amount_comparable and self.date_comparable


@dataclass
class CurrentMatchScores:
    """Scores of the candidate being considered for pattern-based auto-match."""
    embedding_score: float
    date_score: float
    amount_score: float
    confidence_score: float
    is_perfect_financial_match: bool = False


@dataclass
class TransactionCandidate:
    """Candidate transaction supplied by the caller of the matching service.

    The embedding score comes from the caller's nearest-neighbour search.
    Anything left out is read from the stored embeddings of the pair; the
    two vectors are only needed for merchant pattern checks.
    """
    transaction_id: UUID
    embedding_score: Optional[float] = None
    inbox_embedding: Optional[Sequence[float]] = None
    transaction_embedding: Optional[Sequence[float]] = None


@dataclass
class InboxCandidate:
    """Candidate inbox item for a newly imported transaction."""
    inbox_id: UUID
    embedding_score: Optional[float] = None
    inbox_embedding: Optional[Sequence[float]] = None
    transaction_embedding: Optional[Sequence[float]] = None


@dataclass
class ScoredCandidate:
    transaction_id: UUID
    scores: MatchScores
    confidence: float
    candidate: Union[TransactionCandidate, InboxCandidate]
    details: Dict[str, Any] = field(default_factory=dict)
    inbox_id: Optional[UUID] = None
