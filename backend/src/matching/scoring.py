"""Per-dimension similarity scores for an inbox item / transaction pair.

Pure functions, no I/O. Each returns a score in [0, 1]:

- amount_score: step function on relative difference of absolute amounts
- currency_score: equal / different / unknown
- date_score: step function on whole days between the two dates

The embedding score is not computed here; it is 1 - cosine distance
obtained from the similarity store.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Union

AmountLike = Union[int, float, Decimal, str]
DateLike = Union[date, datetime, str]

# Tolerance for "the same amount" in is_perfect_financial_match (one cent)
PERFECT_AMOUNT_TOLERANCE = 0.01

NEUTRAL_SCORE = 0.5


def _to_float(value: Optional[AmountLike]) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def _to_datetime(value: Optional[DateLike]) -> Optional[datetime]:
    """Normalize a date, datetime or ISO string to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return None


def amounts_comparable(a: Optional[AmountLike], b: Optional[AmountLike]) -> bool:
    return _to_float(a) is not None and _to_float(b) is not None


def dates_comparable(d1: Optional[DateLike], d2: Optional[DateLike]) -> bool:
    return _to_datetime(d1) is not None and _to_datetime(d2) is not None


def amount_score(a: Optional[AmountLike], b: Optional[AmountLike]) -> float:
    """Score two amounts by relative difference of their absolute values.

    Signs are ignored: an expense of -100 matches a receipt of 100.

    Example:
        >>> amount_score(100, -100)
        1.0
        >>> amount_score(100, 104)
        0.9
        >>> amount_score(None, 100)
        0.0
    """
    x = _to_float(a)
    y = _to_float(b)
    if x is None or y is None:
        return 0.0

    abs_x = abs(x)
    abs_y = abs(y)
    if abs_x == abs_y:
        return 1.0

    relative_diff = abs(abs_x - abs_y) / max(abs_x, abs_y)
    if relative_diff <= 0.05:
        return 0.9
    if relative_diff <= 0.15:
        return 0.7
    return 0.3


def currency_score(a: Optional[str], b: Optional[str]) -> float:
    """Score two currency codes (case-insensitive).

    Example:
        >>> currency_score("EUR", "eur")
        1.0
        >>> currency_score("EUR", "USD")
        0.3
        >>> currency_score(None, "USD")
        0.5
    """
    if not a or not b:
        return NEUTRAL_SCORE
    if a.strip().upper() == b.strip().upper():
        return 1.0
    return 0.3


def days_between(d1: Optional[DateLike], d2: Optional[DateLike]) -> Optional[int]:
    """Whole days between two dates, partial days rounded up."""
    t1 = _to_datetime(d1)
    t2 = _to_datetime(d2)
    if t1 is None or t2 is None:
        return None
    seconds = abs((t1 - t2).total_seconds())
    return math.ceil(seconds / 86400)


def date_score(d1: Optional[DateLike], d2: Optional[DateLike]) -> float:
    """Score two dates by day distance.

    Example:
        >>> date_score(date(2024, 1, 10), date(2024, 1, 10))
        1.0
        >>> date_score(date(2024, 1, 10), date(2024, 1, 13))
        0.8
        >>> date_score(None, date(2024, 1, 10))
        0.5
    """
    days = days_between(d1, d2)
    if days is None:
        return NEUTRAL_SCORE

    if days == 0:
        return 1.0
    if days == 1:
        return 0.9
    if days <= 3:
        return 0.8
    if days <= 7:
        return 0.7
    if days <= 14:
        return 0.6
    return 0.5


def is_perfect_financial_match(
    amount_a: Optional[AmountLike],
    amount_b: Optional[AmountLike],
    currency_a: Optional[str],
    currency_b: Optional[str],
) -> bool:
    """Same absolute amount (within a cent) and same currency."""
    x = _to_float(amount_a)
    y = _to_float(amount_b)
    if x is None or y is None or not currency_a or not currency_b:
        return False
    return (
        abs(abs(x) - abs(y)) < PERFECT_AMOUNT_TOLERANCE
        and currency_a.strip().upper() == currency_b.strip().upper()
    )
