"""Overall match confidence and match type classification.

Confidence formula:
    base = w_emb * S_emb + w_amt * S_amt + w_cur * S_cur + w_date * S_date

Default weights favour the embedding (0.50 / 0.35 / 0.10 / 0.05). When the
amounts and currencies agree exactly the financial evidence is already
decisive, so the weights shift towards amount, currency and date
(0.25 / 0.45 / 0.15 / 0.15).

The base score is then adjusted:
    - floors for perfect financial matches backed by embedding and date
    - +0.08 / +0.05 for very strong embeddings
    - floor 0.82 for strong amount plus strong embedding
    - x0.95 for a currency mismatch with a weak embedding
    - x0.85 for dates more than two weeks apart (x0.95 with a very strong embedding)

No adjustment applies when the amount or the date is not comparable; the
neutral fallbacks must never push a pair over a threshold.
"""

from dataclasses import dataclass
from typing import Optional

from config import MatchingSettings, get_matching_settings
from domain.matching.suggestion_status import MatchType
from .ports import MatchScores


@dataclass(frozen=True)
class ScoringWeights:
    embedding: float
    amount: float
    currency: float
    date: float


DEFAULT_WEIGHTS = ScoringWeights(embedding=0.50, amount=0.35, currency=0.10, date=0.05)
PERFECT_FINANCIAL_WEIGHTS = ScoringWeights(embedding=0.25, amount=0.45, currency=0.15, date=0.15)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def calculate_confidence(scores: MatchScores, weights: Optional[ScoringWeights] = None) -> float:
    """Combine component scores into one confidence in [0, 1].

    Args:
        scores: Component scores of the pair
        weights: Override weights; by default chosen from perfect_financial

    Returns:
        Confidence rounded to 4 decimals
    """
    if weights is None:
        weights = PERFECT_FINANCIAL_WEIGHTS if scores.perfect_financial else DEFAULT_WEIGHTS

    embedding = scores.embedding if scores.embedding is not None else 0.0

    confidence = (
        weights.embedding * embedding
        + weights.amount * scores.amount
        + weights.currency * scores.currency
        + weights.date * scores.date
    )

    if scores.comparable:
        confidence = _apply_adjustments(confidence, scores, embedding)

    return round(_clamp(confidence), 4)


def _apply_adjustments(confidence: float, scores: MatchScores, embedding: float) -> float:
    has_embedding = scores.embedding is not None
    date = scores.date

    if scores.perfect_financial:
        if has_embedding and embedding > 0.85 and date > 0.7:
            confidence = max(confidence, 0.96)
        elif has_embedding and embedding > 0.75 and date > 0.7:
            confidence = max(confidence, 0.94)
        elif has_embedding and embedding > 0.65 and date > 0.6:
            confidence = max(confidence, 0.88)
        elif has_embedding and embedding > 0.6 and date > 0.5:
            confidence = max(confidence, 0.90)
        elif date > 0.5:
            confidence = max(confidence, 0.88)

    if has_embedding:
        if embedding > 0.85:
            confidence = min(1.0, confidence + 0.08)
        elif embedding > 0.75:
            confidence = min(1.0, confidence + 0.05)

        if scores.amount > 0.85 and embedding > 0.75:
            confidence = max(confidence, 0.82)

        if scores.currency < 0.5 and embedding < 0.7:
            confidence *= 0.95

    # date_score floors at 0.5, so only the >14 day band lands here
    if date <= 0.5 and scores.date_comparable:
        confidence *= 0.95 if embedding >= 0.85 else 0.85

    return confidence


def classify_match_type(
    confidence: float,
    pattern_eligible: bool = False,
    comparable: bool = True,
    settings: Optional[MatchingSettings] = None,
) -> MatchType:
    """Map a confidence to a match type.

    auto_matched requires merchant pattern eligibility on top of a high
    confidence. Pairs without comparable amount and date are never more
    than suggested.

    Example:
        >>> classify_match_type(0.95, pattern_eligible=True)
        <MatchType.AUTO_MATCHED: 'auto_matched'>
        >>> classify_match_type(0.95)
        <MatchType.HIGH_CONFIDENCE: 'high_confidence'>
    """
    settings = settings or get_matching_settings()

    if not comparable:
        return MatchType.SUGGESTED
    if confidence >= settings.high_confidence_threshold:
        if pattern_eligible:
            return MatchType.AUTO_MATCHED
        return MatchType.HIGH_CONFIDENCE
    return MatchType.SUGGESTED
