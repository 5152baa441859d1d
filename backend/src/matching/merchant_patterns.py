"""Merchant pattern analysis for auto-match eligibility.

A candidate match may be applied without human review only when matches
between *similar merchants* have been reliable in the past. "Similar
merchant" means: a decided suggestion whose stored inbox embedding and
stored transaction embedding are both within a tight cosine distance of the
current pair.

Eligibility gate (evaluated in order, first failure is reported):
    1. confirmed_count >= min_confirmed_matches (3)
    2. accuracy >= min_accuracy (0.90)
    3. negative_count <= max_negative_signals (1)
    4. avg_confidence_confirmed >= min_avg_confidence (0.85)
    5. for the current candidate, if given:
       embedding >= 0.85, date >= 0.70,
       perfect financial match or amount >= 0.95,
       confidence >= min(0.90, avg_confidence_confirmed - 0.05)

The analyzer is read-only. Any failure of the similarity store yields the
conservative "not eligible" result; an exception must never be mistaken
for an approval.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from config import MerchantPatternSettings, get_merchant_pattern_settings
from domain.matching.suggestion_status import SuggestionStatus
from domain.similarity.ports import SimilarityStorePort, PatternHistoryItem
from observability.metrics import merchant_pattern_checks_total, merchant_pattern_history_size
from .ports import CurrentMatchScores

logger = logging.getLogger(__name__)

ERROR_REASON = "Error checking patterns"


@dataclass
class PatternAnalysis:
    """Aggregate statistics over the historical suggestions of similar merchants."""
    total_matches: int = 0
    confirmed_count: int = 0
    declined_count: int = 0
    unmatched_count: int = 0
    negative_count: int = 0
    accuracy: float = 0.0
    avg_confidence: float = 0.0
    avg_confidence_confirmed: float = 0.0
    recent_activity: bool = False


@dataclass
class MerchantPatternResult:
    """Eligibility decision.

    Attributes:
        can_auto_match: True only if every gate passed
        confidence: avg_confidence_confirmed on success, 0.0 otherwise
        historical_accuracy: confirmed / total over the history
        match_count: Number of historical suggestions found
        confirmed_count: Confirmed suggestions among them
        negative_count: Declined plus unmatched suggestions
        avg_confidence: Mean confidence of the confirmed suggestions
        reason: Human-readable justification or first failed gate
    """
    can_auto_match: bool
    confidence: float
    historical_accuracy: float
    match_count: int
    confirmed_count: int
    negative_count: int
    avg_confidence: float
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def conservative(cls, reason: str = ERROR_REASON) -> "MerchantPatternResult":
        return cls(
            can_auto_match=False,
            confidence=0.0,
            historical_accuracy=0.0,
            match_count=0,
            confirmed_count=0,
            negative_count=0,
            avg_confidence=0.0,
            reason=reason,
        )


def months_before(moment: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the month's last day."""
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    next_month_start = datetime(year + (month // 12), month % 12 + 1, 1)
    last_day = (next_month_start - timedelta(days=1)).day
    return moment.replace(year=year, month=month, day=min(moment.day, last_day))


def analyze_patterns(
    patterns: Sequence[PatternHistoryItem],
    now: Optional[datetime] = None,
) -> PatternAnalysis:
    """Partition history by outcome and compute accuracy and mean confidences."""
    if not patterns:
        return PatternAnalysis()

    now = now or datetime.now(timezone.utc)

    confirmed = [p for p in patterns if p.status == SuggestionStatus.CONFIRMED.value]
    declined_count = sum(1 for p in patterns if p.status == SuggestionStatus.DECLINED.value)
    unmatched_count = sum(1 for p in patterns if p.status == SuggestionStatus.UNMATCHED.value)

    total = len(patterns)
    confirmed_count = len(confirmed)

    one_month_ago = months_before(now, 1)
    recent_activity = any(_aware(p.created_at) > one_month_ago for p in patterns if p.created_at)

    return PatternAnalysis(
        total_matches=total,
        confirmed_count=confirmed_count,
        declined_count=declined_count,
        unmatched_count=unmatched_count,
        negative_count=declined_count + unmatched_count,
        accuracy=confirmed_count / total,
        avg_confidence=sum(p.confidence_score for p in patterns) / total,
        avg_confidence_confirmed=(
            sum(p.confidence_score for p in confirmed) / confirmed_count if confirmed_count else 0.0
        ),
        recent_activity=recent_activity,
    )


def check_eligibility(
    analysis: PatternAnalysis,
    current_match: Optional[CurrentMatchScores] = None,
    settings: Optional[MerchantPatternSettings] = None,
) -> MerchantPatternResult:
    """Apply the eligibility gate to an analysis. Pure function."""
    settings = settings or get_merchant_pattern_settings()

    result = MerchantPatternResult(
        can_auto_match=False,
        confidence=0.0,
        historical_accuracy=analysis.accuracy,
        match_count=analysis.total_matches,
        confirmed_count=analysis.confirmed_count,
        negative_count=analysis.negative_count,
        avg_confidence=analysis.avg_confidence_confirmed,
        reason="",
    )

    if analysis.confirmed_count < settings.min_confirmed_matches:
        result.reason = (
            f"Insufficient confirmed matches "
            f"({analysis.confirmed_count}/{settings.min_confirmed_matches})"
        )
        return result

    if analysis.accuracy < settings.min_accuracy:
        result.reason = (
            f"Accuracy too low ({analysis.accuracy * 100:.1f}% < {settings.min_accuracy * 100:g}%)"
        )
        return result

    if analysis.negative_count > settings.max_negative_signals:
        result.reason = (
            f"Too many negative signals "
            f"({analysis.negative_count} > {settings.max_negative_signals})"
        )
        return result

    if analysis.avg_confidence_confirmed < settings.min_avg_confidence:
        result.reason = f"Average confidence too low ({analysis.avg_confidence_confirmed * 100:.1f}%)"
        return result

    if current_match is not None:
        if current_match.embedding_score < settings.current_min_embedding:
            result.reason = f"Current embedding score too low ({current_match.embedding_score * 100:.1f}%)"
            return result

        if current_match.date_score < settings.current_min_date_score:
            result.reason = f"Current date score too low ({current_match.date_score * 100:.1f}%)"
            return result

        if (
            not current_match.is_perfect_financial_match
            and current_match.amount_score < settings.current_min_amount_score
        ):
            result.reason = "Financial match not strong enough for pattern-based auto-match"
            return result

        min_confidence = min(
            settings.current_max_required_confidence,
            analysis.avg_confidence_confirmed - settings.current_confidence_margin,
        )
        if current_match.confidence_score < min_confidence:
            result.reason = (
                f"Current confidence below threshold "
                f"({current_match.confidence_score * 100:.1f}% < {min_confidence * 100:.1f}%)"
            )
            return result

    result.can_auto_match = True
    result.confidence = analysis.avg_confidence_confirmed
    result.reason = (
        f"Proven merchant pattern "
        f"({analysis.confirmed_count} matches, {analysis.accuracy * 100:.0f}% accuracy)"
    )
    return result


class MerchantPatternAnalyzer:
    """Decides pattern-based auto-match eligibility for a candidate pair.

    Usage:
        analyzer = MerchantPatternAnalyzer(SqlSimilarityStore(db))
        result = analyzer.check_merchant_pattern_eligibility(
            tenant_id, inbox_vec, tx_vec, current_match=scores
        )
        if result.can_auto_match:
            ...
    """

    def __init__(
        self,
        store: SimilarityStorePort,
        settings: Optional[MerchantPatternSettings] = None,
    ):
        self.store = store
        self.settings = settings or get_merchant_pattern_settings()

    def find_similar_merchant_patterns(
        self,
        tenant_id: UUID,
        inbox_embedding: Sequence[float],
        transaction_embedding: Sequence[float],
        now: Optional[datetime] = None,
    ) -> List[PatternHistoryItem]:
        """Fetch decided suggestions of similar merchants. Raises StorageError."""
        now = now or datetime.now(timezone.utc)
        return self.store.find_near_merchant_patterns(
            tenant_id=tenant_id,
            inbox_embedding=inbox_embedding,
            transaction_embedding=transaction_embedding,
            distance_threshold=self.settings.similarity_threshold,
            lookback_cutoff=months_before(now, self.settings.lookback_months),
            limit=self.settings.history_limit,
        )

    def check_merchant_pattern_eligibility(
        self,
        tenant_id: UUID,
        inbox_embedding: Sequence[float],
        transaction_embedding: Sequence[float],
        current_match: Optional[CurrentMatchScores] = None,
    ) -> MerchantPatternResult:
        """Never raises; store failures return the conservative result."""
        try:
            patterns = self.find_similar_merchant_patterns(
                tenant_id, inbox_embedding, transaction_embedding
            )
            analysis = analyze_patterns(patterns)
            result = check_eligibility(analysis, current_match, self.settings)
        except Exception:
            logger.error(
                "Error checking merchant pattern",
                extra={"tenant_id": tenant_id},
                exc_info=True,
            )
            merchant_pattern_checks_total.labels(outcome="error").inc()
            return MerchantPatternResult.conservative()

        merchant_pattern_history_size.observe(analysis.total_matches)
        merchant_pattern_checks_total.labels(
            outcome="eligible" if result.can_auto_match else "ineligible"
        ).inc()
        logger.debug(
            f"Merchant pattern check completed: {result.reason}",
            extra={
                "tenant_id": tenant_id,
                "outcome": "eligible" if result.can_auto_match else "ineligible",
                "confidence": result.confidence,
            },
        )
        return result

    def get_merchant_pattern_stats(self, tenant_id: UUID) -> dict:
        """Decided suggestion totals and accuracy over the lookback window.

        Returns zeros when the store fails.
        """
        cutoff = months_before(datetime.now(timezone.utc), self.settings.lookback_months)
        try:
            totals = self.store.get_pattern_outcome_totals(tenant_id, cutoff)
        except Exception:
            logger.error("Error getting pattern stats", extra={"tenant_id": tenant_id}, exc_info=True)
            return {"total_patterns": 0, "avg_accuracy": 0.0}

        return {"total_patterns": totals.total, "avg_accuracy": totals.accuracy}


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
