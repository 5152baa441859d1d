"""Unit tests for match confidence and match type classification

Tests cover:
- Weighted base formula for default and perfect-financial weights
- Floors and boosts applied on top of the base score
- Penalties for currency mismatch and distant dates
- No positive adjustment when amount or date is not comparable
- Classification thresholds and merchant pattern gating
"""

import pytest

from config import MatchingSettings
from domain.matching.suggestion_status import MatchType
from matching.confidence import (
    calculate_confidence,
    classify_match_type,
    DEFAULT_WEIGHTS,
    PERFECT_FINANCIAL_WEIGHTS,
    ScoringWeights,
)
from matching.ports import MatchScores


class TestWeights:

    def test_weights_sum_to_one(self):
        for weights in (DEFAULT_WEIGHTS, PERFECT_FINANCIAL_WEIGHTS):
            total = weights.embedding + weights.amount + weights.currency + weights.date
            assert total == pytest.approx(1.0)


class TestCalculateConfidence:
    """Test calculate_confidence"""

    def test_weighted_base_without_adjustments(self):
        """Test plain weighted sum when no rule fires"""
        scores = MatchScores(amount=0.7, currency=1.0, date=0.8, embedding=0.6)
        # 0.5*0.6 + 0.35*0.7 + 0.1*1.0 + 0.05*0.8 = 0.685
        assert calculate_confidence(scores) == pytest.approx(0.685)

    def test_perfect_financial_with_strong_embedding(self):
        """Test perfect match floor 0.96 then +0.08 boost, capped at 1.0"""
        scores = MatchScores(
            amount=1.0, currency=1.0, date=1.0, embedding=0.9, perfect_financial=True
        )
        assert calculate_confidence(scores) == 1.0

    def test_perfect_financial_without_embedding(self):
        """Test date-only floor for a perfect financial match"""
        scores = MatchScores(amount=1.0, currency=1.0, date=0.6, perfect_financial=True)
        # base 0.45 + 0.15 + 0.09 = 0.69 -> floor 0.88
        assert calculate_confidence(scores) == pytest.approx(0.88)

    def test_strong_embedding_boost(self):
        scores = MatchScores(amount=0.3, currency=1.0, date=0.7, embedding=0.8)
        # 0.4 + 0.105 + 0.1 + 0.035 = 0.64, +0.05
        assert calculate_confidence(scores) == pytest.approx(0.69)

    def test_amount_and_embedding_floor(self):
        scores = MatchScores(amount=0.9, currency=0.3, date=0.6, embedding=0.78)
        # base 0.39 + 0.315 + 0.03 + 0.03 = 0.765, +0.05 = 0.815, floor 0.82
        assert calculate_confidence(scores) == pytest.approx(0.82)

    def test_currency_mismatch_penalty(self):
        scores = MatchScores(amount=1.0, currency=0.3, date=1.0, embedding=0.5)
        # 0.25 + 0.35 + 0.03 + 0.05 = 0.68, x0.95
        assert calculate_confidence(scores) == pytest.approx(0.646)

    def test_distant_date_penalty(self):
        scores = MatchScores(amount=1.0, currency=1.0, date=0.5, embedding=0.7)
        # 0.35 + 0.35 + 0.1 + 0.025 = 0.825, x0.85
        assert calculate_confidence(scores) == pytest.approx(0.7013, abs=1e-4)

    def test_distant_date_penalty_softened_by_strong_embedding(self):
        scores = MatchScores(amount=0.3, currency=1.0, date=0.5, embedding=0.9)
        # 0.45 + 0.105 + 0.1 + 0.025 = 0.68, +0.08 = 0.76, x0.95
        assert calculate_confidence(scores) == pytest.approx(0.722)

    def test_no_adjustments_when_amount_unknown(self):
        """Test neutral fallbacks never earn boosts or floors"""
        scores = MatchScores(
            amount=0.0, currency=0.5, date=1.0, embedding=0.95, amount_comparable=False
        )
        # 0.475 + 0 + 0.05 + 0.05 = 0.575
        assert calculate_confidence(scores) == pytest.approx(0.575)

    def test_missing_date_not_penalized_as_distant(self):
        scores = MatchScores(
            amount=1.0, currency=1.0, date=0.5, embedding=0.7, date_comparable=False
        )
        assert calculate_confidence(scores) == pytest.approx(0.825)

    def test_missing_embedding_counts_as_zero(self):
        scores = MatchScores(amount=0.9, currency=1.0, date=1.0, embedding=None)
        # 0.315 + 0.1 + 0.05
        assert calculate_confidence(scores) == pytest.approx(0.465)

    def test_custom_weights(self):
        weights = ScoringWeights(embedding=0.0, amount=1.0, currency=0.0, date=0.0)
        scores = MatchScores(amount=0.7, currency=0.3, date=0.6, embedding=0.1)
        assert calculate_confidence(scores, weights=weights) == pytest.approx(0.665)

    def test_result_in_unit_interval_and_rounded(self):
        scores = MatchScores(amount=0.3, currency=0.3, date=0.5, embedding=0.123456)
        confidence = calculate_confidence(scores)
        assert 0.0 <= confidence <= 1.0
        assert confidence == round(confidence, 4)


class TestClassifyMatchType:
    """Test classify_match_type"""

    @pytest.fixture
    def settings(self):
        return MatchingSettings()

    def test_high_confidence_without_pattern(self, settings):
        assert classify_match_type(0.95, settings=settings) == MatchType.HIGH_CONFIDENCE

    def test_auto_match_requires_pattern(self, settings):
        assert classify_match_type(0.95, pattern_eligible=True, settings=settings) == MatchType.AUTO_MATCHED

    def test_threshold_is_inclusive(self, settings):
        assert classify_match_type(0.72, settings=settings) == MatchType.HIGH_CONFIDENCE
        assert classify_match_type(0.7199, settings=settings) == MatchType.SUGGESTED

    def test_pattern_does_not_lift_low_confidence(self, settings):
        assert classify_match_type(0.65, pattern_eligible=True, settings=settings) == MatchType.SUGGESTED

    def test_not_comparable_is_always_suggested(self, settings):
        result = classify_match_type(0.99, pattern_eligible=True, comparable=False, settings=settings)
        assert result == MatchType.SUGGESTED
