"""
Frequency analyzer for recurring charge detection.

Computes the day gaps between consecutive charges and matches their median
to a billing cadence.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from recurring_detection.models.subscription import BillingFrequency
from recurring_detection.models.transaction import Transaction
from recurring_detection.services.subscription_detection.config import FrequencyProfile
from recurring_detection.utils.date_utils import days_between

logger = logging.getLogger(__name__)


def calculate_gaps(transactions: Sequence[Transaction]) -> List[int]:
    """
    Calculate day gaps between consecutive transactions.

    Args:
        transactions: Date-sorted list of transactions

    Returns:
        List of n-1 gaps in whole days (empty for fewer than 2 transactions)
    """
    return [
        days_between(transactions[i - 1].date, transactions[i].date)
        for i in range(1, len(transactions))
    ]


@dataclass(frozen=True)
class FrequencyAnalysis:
    """Best-fit cadence for a gap sequence."""
    profile: Optional[FrequencyProfile]
    gap_consistency: float
    median_gap: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.profile is not None

    @property
    def frequency(self) -> Optional[BillingFrequency]:
        return self.profile.frequency if self.profile else None


class FrequencyAnalyzer:
    """
    Matches a gap distribution against a table of billing cadences.

    The median gap selects the closest profile whose expected gap lies within
    twice its tolerance; gap consistency is the share of individual gaps that
    fall within the selected profile's tolerance.
    """

    def __init__(self, frequency_profiles: Sequence[FrequencyProfile]):
        """
        Initialize the frequency analyzer.

        Args:
            frequency_profiles: Candidate cadences in tie-break order (first listed wins)
        """
        self.frequency_profiles = tuple(frequency_profiles)

    def analyze(self, gaps: Sequence[int]) -> FrequencyAnalysis:
        """
        Classify a gap sequence.

        Args:
            gaps: Day gaps between consecutive transactions

        Returns:
            FrequencyAnalysis; ``profile`` is None when nothing matches
        """
        if len(gaps) == 0:
            return FrequencyAnalysis(profile=None, gap_consistency=0.0)

        median_gap = float(np.median(gaps))
        profile = self._match_profile(median_gap)

        if profile is None:
            return FrequencyAnalysis(profile=None, gap_consistency=0.0, median_gap=median_gap)

        matching_gaps = sum(
            1 for gap in gaps
            if abs(gap - profile.expected_gap_days) <= profile.tolerance_days
        )
        gap_consistency = matching_gaps / len(gaps)

        return FrequencyAnalysis(
            profile=profile,
            gap_consistency=gap_consistency,
            median_gap=median_gap
        )

    def _match_profile(self, median_gap: float) -> Optional[FrequencyProfile]:
        """
        Find the closest eligible profile.

        Args:
            median_gap: Median gap in days

        Returns:
            Closest profile within twice its tolerance, or None
        """
        best_match: Optional[FrequencyProfile] = None
        best_distance = float('inf')

        for profile in self.frequency_profiles:
            distance = abs(median_gap - profile.expected_gap_days)
            # Strict comparison keeps the earlier profile on ties
            if distance < best_distance and distance <= profile.tolerance_days * 2:
                best_distance = distance
                best_match = profile

        return best_match
