"""
Pattern analyzers for recurring charge detection.

This package provides specialized analyzers that extract different aspects
of recurring charge patterns from merchant groups.
"""

from recurring_detection.services.subscription_detection.analyzers.merchant import (
    InvalidTransactionError,
    MerchantGroup,
    MerchantGrouper,
)
from recurring_detection.services.subscription_detection.analyzers.frequency import (
    FrequencyAnalysis,
    FrequencyAnalyzer,
    calculate_gaps,
)
from recurring_detection.services.subscription_detection.analyzers.amount import (
    AmountAnalysis,
    AmountAnalyzer,
)
from recurring_detection.services.subscription_detection.analyzers.confidence import (
    ConfidenceResult,
    ConfidenceScoreCalculator,
    get_confidence_level,
)
from recurring_detection.services.subscription_detection.analyzers.temporal import BillingDayAnalyzer

__all__ = [
    'InvalidTransactionError',
    'MerchantGroup',
    'MerchantGrouper',
    'FrequencyAnalysis',
    'FrequencyAnalyzer',
    'calculate_gaps',
    'AmountAnalysis',
    'AmountAnalyzer',
    'ConfidenceResult',
    'ConfidenceScoreCalculator',
    'get_confidence_level',
    'BillingDayAnalyzer',
]
