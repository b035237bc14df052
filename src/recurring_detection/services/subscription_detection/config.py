"""
Configuration classes for recurring charge detection.

Centralizes all configuration parameters, thresholds and scoring breakpoints
used in the detection pipeline. Every analyzer receives its configuration
explicitly so alternate tunings can be injected in tests.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from recurring_detection.models.subscription import BillingFrequency


@dataclass(frozen=True)
class FrequencyProfile:
    """
    A billing cadence the frequency classifier can match.

    A profile is a candidate when the median gap lies within twice
    ``tolerance_days`` of ``expected_gap_days``; individual gaps count as
    consistent when they lie within ``tolerance_days``.
    """

    frequency: BillingFrequency
    expected_gap_days: int
    tolerance_days: int
    min_occurrences: int

    def __post_init__(self):
        if self.expected_gap_days <= 0:
            raise ValueError(f"expected_gap_days must be positive, got {self.expected_gap_days}")
        if self.tolerance_days < 0:
            raise ValueError(f"tolerance_days must not be negative, got {self.tolerance_days}")
        if self.min_occurrences < 2:
            raise ValueError(f"min_occurrences must be at least 2, got {self.min_occurrences}")


# Table order matters: on equal distance the first listed profile wins.
FREQUENCY_PROFILES: Tuple[FrequencyProfile, ...] = (
    FrequencyProfile(BillingFrequency.WEEKLY, expected_gap_days=7, tolerance_days=2, min_occurrences=4),
    FrequencyProfile(BillingFrequency.BIWEEKLY, expected_gap_days=14, tolerance_days=3, min_occurrences=3),
    FrequencyProfile(BillingFrequency.MONTHLY, expected_gap_days=30, tolerance_days=5, min_occurrences=3),
    FrequencyProfile(BillingFrequency.QUARTERLY, expected_gap_days=90, tolerance_days=10, min_occurrences=2),
    FrequencyProfile(BillingFrequency.ANNUAL, expected_gap_days=365, tolerance_days=15, min_occurrences=2),
)


@dataclass(frozen=True)
class AmountToleranceBands:
    """
    Relative amount tolerances, selected by the observed amount variance.

    variance <= strict -> strict tolerance, fixed amount
    variance <= normal -> normal tolerance, fixed amount
    otherwise          -> loose tolerance, variable amount
    """

    strict: float = 0.05
    """5% for fixed subscriptions."""

    normal: float = 0.15
    """15% for general recurring charges."""

    loose: float = 0.25
    """25% for variable amounts."""

    def __post_init__(self):
        if not (0 <= self.strict <= self.normal <= self.loose):
            raise ValueError(
                f"Amount tolerances must satisfy 0 <= strict <= normal <= loose, "
                f"got strict={self.strict}, normal={self.normal}, loose={self.loose}"
            )


@dataclass(frozen=True)
class ConfidenceThresholds:
    """
    Step-function breakpoints for the four confidence sub-scores.

    Each band table is a sequence of (breakpoint, points) pairs checked in
    order; the first satisfied breakpoint wins, otherwise the floor applies.
    Scores are not interpolated between breakpoints.
    """

    amount_bands: Tuple[Tuple[float, int], ...] = (
        (0.02, 30), (0.05, 25), (0.10, 20), (0.15, 15), (0.25, 10),
    )
    """Upper bounds on amount variance (<=) and their points."""
    amount_floor: int = 5

    timing_bands: Tuple[Tuple[float, int], ...] = (
        (0.95, 30), (0.90, 25), (0.80, 20), (0.70, 15), (0.60, 10),
    )
    """Lower bounds on gap consistency (>=) and their points."""
    timing_floor: int = 5

    occurrence_bands: Tuple[Tuple[int, int], ...] = (
        (10, 20), (6, 15), (4, 10), (3, 7),
    )
    """Lower bounds on occurrence count (>=) and their points."""
    occurrence_floor: int = 4

    clarity_strong: Tuple[float, int] = (0.8, 20)
    """Minimum gap consistency and amount match ratio for a clear pattern."""
    clarity_moderate: Tuple[float, int] = (0.6, 15)
    """Minimum gap consistency and amount match ratio for a moderate pattern."""
    clarity_matched: int = 10
    """Points when a frequency matched but ratios are below the moderate bar."""
    clarity_floor: int = 5

    high_level: int = 75
    """Minimum score for the HIGH confidence level."""
    medium_level: int = 50
    """Minimum score for the MEDIUM confidence level."""

    def __post_init__(self):
        """Validate that every band table is ordered from best to worst."""
        self._check_ordered("amount_bands", self.amount_bands, ascending=True)
        self._check_ordered("timing_bands", self.timing_bands, ascending=False)
        self._check_ordered("occurrence_bands", self.occurrence_bands, ascending=False)
        if self.clarity_strong[0] < self.clarity_moderate[0]:
            raise ValueError(
                f"clarity_strong threshold {self.clarity_strong[0]} must not be below "
                f"clarity_moderate threshold {self.clarity_moderate[0]}"
            )
        if self.medium_level > self.high_level:
            raise ValueError(
                f"medium_level ({self.medium_level}) must not exceed high_level ({self.high_level})"
            )

    @staticmethod
    def _check_ordered(name: str, bands, ascending: bool):
        breakpoints = [breakpoint for breakpoint, _ in bands]
        expected = sorted(breakpoints, reverse=not ascending)
        if breakpoints != expected:
            raise ValueError(f"{name} breakpoints must be sorted best-first, got {breakpoints}")


@dataclass(frozen=True)
class DetectionConfig:
    """
    Master configuration for recurring charge detection.

    Aggregates all configuration classes into a single configuration object.
    """

    frequency_profiles: Tuple[FrequencyProfile, ...] = FREQUENCY_PROFILES
    amount_tolerances: AmountToleranceBands = field(default_factory=AmountToleranceBands)
    confidence_thresholds: ConfidenceThresholds = field(default_factory=ConfidenceThresholds)

    min_confidence: int = 40
    """Minimum confidence score (inclusive) for a group to be reported."""

    max_groups: Optional[int] = None
    """Upper bound on merchant groups evaluated per run (None = unbounded)."""

    strict: bool = False
    """Raise on non-finite amounts instead of skipping them."""

    def __post_init__(self):
        if not self.frequency_profiles:
            raise ValueError("At least one frequency profile is required")
        if not (0 <= self.min_confidence <= 100):
            raise ValueError(f"min_confidence must be between 0 and 100, got {self.min_confidence}")
        if self.max_groups is not None and self.max_groups < 0:
            raise ValueError(f"max_groups must not be negative, got {self.max_groups}")

    def profiles_by_frequency(self) -> Dict[BillingFrequency, FrequencyProfile]:
        """
        Map each BillingFrequency to its profile.

        Returns:
            Dictionary mapping BillingFrequency to FrequencyProfile
        """
        return {profile.frequency: profile for profile in self.frequency_profiles}


# Default configuration instance
DEFAULT_CONFIG = DetectionConfig()


# Module-level constants mirroring the default configuration
MIN_CONFIDENCE = DEFAULT_CONFIG.min_confidence
AMOUNT_TOLERANCES = DEFAULT_CONFIG.amount_tolerances
CONFIDENCE_THRESHOLDS = DEFAULT_CONFIG.confidence_thresholds
