"""Matching module for LedgerFlow.

Matches inbox items (invoices, receipts, expenses) to ledger transactions:
- Per-dimension scoring (amount, currency, date) plus embedding similarity
- Weighted confidence and match type classification
- Merchant pattern eligibility for auto-matching
- Suggestion lifecycle (propose, confirm, decline, unmatch)
- Reverse matching of a new transaction against waiting inbox items
"""

from .scoring import (
    amount_score,
    currency_score,
    date_score,
    is_perfect_financial_match,
    amounts_comparable,
    dates_comparable,
)
from .confidence import calculate_confidence, classify_match_type
from .ports import MatchScores, CurrentMatchScores, TransactionCandidate, InboxCandidate
from .merchant_patterns import MerchantPatternAnalyzer, MerchantPatternResult
from .lifecycle import (
    MatchSuggestionService,
    InboxItemNotFoundError,
    SuggestionNotFoundError,
    TransactionNotFoundError,
)
from .service import InboxMatchingService, MatchOutcome, TransactionMatchOutcome

__all__ = [
    "amount_score",
    "currency_score",
    "date_score",
    "is_perfect_financial_match",
    "amounts_comparable",
    "dates_comparable",
    "calculate_confidence",
    "classify_match_type",
    "MatchScores",
    "CurrentMatchScores",
    "TransactionCandidate",
    "InboxCandidate",
    "MerchantPatternAnalyzer",
    "MerchantPatternResult",
    "MatchSuggestionService",
    "InboxItemNotFoundError",
    "SuggestionNotFoundError",
    "TransactionNotFoundError",
    "InboxMatchingService",
    "MatchOutcome",
    "TransactionMatchOutcome",
]
