"""SQLAlchemy Models for LedgerFlow matching"""

from .base import Base
from .transaction import Transaction
from .inbox_item import InboxItem
from .embeddings import InboxEmbedding, TransactionEmbedding, MATCHING_EMBEDDING_DIM
from .match_suggestion import MatchSuggestion
from .transaction_category import TransactionCategory
from .category_embedding import CategoryEmbedding

__all__ = [
    "Base",
    "Transaction",
    "InboxItem",
    "InboxEmbedding",
    "TransactionEmbedding",
    "MATCHING_EMBEDDING_DIM",
    "MatchSuggestion",
    "TransactionCategory",
    "CategoryEmbedding",
]
