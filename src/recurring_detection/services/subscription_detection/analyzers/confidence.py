"""
Confidence score calculator for recurring charge detection.

Combines amount stability, timing regularity, occurrence count and pattern
clarity into an auditable 0-100 score.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from recurring_detection.models.subscription import ConfidenceLevel, ConfidenceScoreBreakdown
from recurring_detection.services.subscription_detection.analyzers.amount import AmountAnalysis
from recurring_detection.services.subscription_detection.analyzers.frequency import FrequencyAnalysis
from recurring_detection.services.subscription_detection.config import ConfidenceThresholds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfidenceResult:
    """Total score plus the sub-scores it is made of."""
    score: int
    breakdown: ConfidenceScoreBreakdown


class ConfidenceScoreCalculator:
    """
    Calculates multi-factor confidence scores for recurring charges.

    Considers:
    - Amount stability (0-30, by amount variance)
    - Timing regularity (0-30, by gap consistency)
    - Occurrence count (0-20)
    - Pattern clarity (0-20, frequency match plus gap and amount agreement)

    Every sub-score is a step function of its driving metric.
    """

    def __init__(self, thresholds: Optional[ConfidenceThresholds] = None):
        """
        Initialize the confidence score calculator.

        Args:
            thresholds: Optional custom breakpoints. If None, uses the defaults.
        """
        self.thresholds = thresholds or ConfidenceThresholds()

    def calculate(
        self,
        amount_analysis: AmountAnalysis,
        frequency_analysis: FrequencyAnalysis,
        occurrence_count: int,
        total_transactions: int
    ) -> ConfidenceResult:
        """
        Calculate the confidence score (0-100).

        Args:
            amount_analysis: Result of the amount analyzer
            frequency_analysis: Result of the frequency analyzer
            occurrence_count: Number of charges in the group
            total_transactions: Denominator for the amount match ratio

        Returns:
            ConfidenceResult with total score and breakdown
        """
        breakdown = ConfidenceScoreBreakdown(
            amountScore=self.amount_score(amount_analysis.variance),
            timingScore=self.timing_score(frequency_analysis.gap_consistency),
            occurrenceScore=self.occurrence_score(occurrence_count),
            clarityScore=self.clarity_score(
                frequency_analysis, amount_analysis.matching_count, total_transactions
            ),
        )
        return ConfidenceResult(score=breakdown.total, breakdown=breakdown)

    def amount_score(self, variance: float) -> int:
        """Points for amount stability; lower variance scores higher."""
        for max_variance, points in self.thresholds.amount_bands:
            if variance <= max_variance:
                return points
        return self.thresholds.amount_floor

    def timing_score(self, gap_consistency: float) -> int:
        """Points for timing regularity; higher consistency scores higher."""
        for min_consistency, points in self.thresholds.timing_bands:
            if gap_consistency >= min_consistency:
                return points
        return self.thresholds.timing_floor

    def occurrence_score(self, occurrence_count: int) -> int:
        """Points for the number of observed charges."""
        for min_count, points in self.thresholds.occurrence_bands:
            if occurrence_count >= min_count:
                return points
        return self.thresholds.occurrence_floor

    def clarity_score(
        self,
        frequency_analysis: FrequencyAnalysis,
        matching_count: int,
        total_transactions: int
    ) -> int:
        """
        Points for how clearly the group follows one pattern.

        Requires a matched frequency to score above the floor.
        """
        if not frequency_analysis.matched:
            return self.thresholds.clarity_floor

        gap_consistency = frequency_analysis.gap_consistency
        amount_match_ratio = matching_count / total_transactions if total_transactions else 0.0

        strong_ratio, strong_points = self.thresholds.clarity_strong
        if gap_consistency >= strong_ratio and amount_match_ratio >= strong_ratio:
            return strong_points

        moderate_ratio, moderate_points = self.thresholds.clarity_moderate
        if gap_consistency >= moderate_ratio and amount_match_ratio >= moderate_ratio:
            return moderate_points

        return self.thresholds.clarity_matched

    def confidence_level(self, score: int) -> ConfidenceLevel:
        """Map a score to its confidence level."""
        return get_confidence_level(score, self.thresholds)


def get_confidence_level(score: int, thresholds: Optional[ConfidenceThresholds] = None) -> ConfidenceLevel:
    """
    Get confidence level from score.

    Args:
        score: Confidence score (0-100)
        thresholds: Optional custom level boundaries

    Returns:
        HIGH at or above the high boundary, MEDIUM at or above the medium
        boundary, LOW otherwise
    """
    thresholds = thresholds or ConfidenceThresholds()
    if score >= thresholds.high_level:
        return ConfidenceLevel.HIGH
    if score >= thresholds.medium_level:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW
