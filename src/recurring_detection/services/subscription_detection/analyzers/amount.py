"""
Amount analyzer for recurring charge detection.

Estimates a robust central amount for a merchant group and how much the
individual charges deviate from it.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from recurring_detection.models.subscription import AmountType
from recurring_detection.services.subscription_detection.config import AmountToleranceBands

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AmountAnalysis:
    """Central amount, dispersion and agreement of a group's charges."""
    core_amount: float
    variance: float
    amount_type: AmountType
    matching_count: int
    tolerance: float


class AmountAnalyzer:
    """
    Analyzes charge amounts with median-based statistics.

    The variance is the median relative absolute deviation from the median
    amount, so a single outlier charge does not disqualify a stable group.
    """

    def __init__(self, tolerances: AmountToleranceBands):
        """
        Initialize the amount analyzer.

        Args:
            tolerances: Tolerance bands used to classify fixed vs variable amounts
        """
        self.tolerances = tolerances

    def analyze(self, amounts: Sequence[float]) -> AmountAnalysis:
        """
        Analyze signed amounts of a merchant group.

        Args:
            amounts: Signed transaction amounts

        Returns:
            AmountAnalysis for the absolute amounts
        """
        abs_amounts = np.abs(np.asarray(amounts, dtype=float))
        core_amount = float(np.median(abs_amounts)) if abs_amounts.size else 0.0
        variance = self._relative_variance(abs_amounts, core_amount)

        if variance <= self.tolerances.strict:
            tolerance = self.tolerances.strict
            amount_type = AmountType.FIXED
        elif variance <= self.tolerances.normal:
            tolerance = self.tolerances.normal
            amount_type = AmountType.FIXED
        else:
            tolerance = self.tolerances.loose
            amount_type = AmountType.VARIABLE

        if core_amount == 0:
            matching_count = 0
        else:
            deviations = np.abs(abs_amounts - core_amount) / core_amount
            matching_count = int(np.sum(deviations <= tolerance))

        return AmountAnalysis(
            core_amount=core_amount,
            variance=variance,
            amount_type=amount_type,
            matching_count=matching_count,
            tolerance=tolerance
        )

    @staticmethod
    def _relative_variance(abs_amounts: np.ndarray, reference: float) -> float:
        """
        Median of |amount - reference| / reference.

        Returns 0.0 for an empty list or a zero reference.
        """
        if reference == 0 or abs_amounts.size == 0:
            return 0.0
        deviations = np.abs(abs_amounts - reference) / reference
        return float(np.median(deviations))
