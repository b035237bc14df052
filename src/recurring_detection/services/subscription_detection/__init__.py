"""
Recurring Charge Detection and Prediction Services.

This package provides rule-based recurring charge detection and prediction.

Public API:
    - SubscriptionDetectionService: Groups expenses by merchant and scores recurring patterns
    - SubscriptionPredictionService: Predicts upcoming occurrences of recurring charges
    - detect_subscriptions: One-call detection with the default configuration
    - normalize_recipient_name: Reduces a raw description to a merchant key
    - DetectionConfig: Configuration for detection parameters
    - DEFAULT_CONFIG: Default configuration instance
"""

from recurring_detection.services.subscription_detection.detection_service import (
    SubscriptionDetectionService,
    detect_subscriptions,
    generate_subscription_id,
)
from recurring_detection.services.subscription_detection.prediction_service import (
    SubscriptionPredictionService,
    predict_next_date,
)
from recurring_detection.services.subscription_detection.normalization import normalize_recipient_name
from recurring_detection.services.subscription_detection.config import (
    AMOUNT_TOLERANCES,
    DEFAULT_CONFIG,
    FREQUENCY_PROFILES,
    MIN_CONFIDENCE,
    AmountToleranceBands,
    ConfidenceThresholds,
    DetectionConfig,
    FrequencyProfile,
)
from recurring_detection.services.subscription_detection.analyzers import (
    AmountAnalyzer,
    BillingDayAnalyzer,
    ConfidenceScoreCalculator,
    FrequencyAnalyzer,
    InvalidTransactionError,
    MerchantGrouper,
    calculate_gaps,
    get_confidence_level,
)

__all__ = [
    'SubscriptionDetectionService',
    'SubscriptionPredictionService',
    'detect_subscriptions',
    'generate_subscription_id',
    'predict_next_date',
    'normalize_recipient_name',
    'AMOUNT_TOLERANCES',
    'DEFAULT_CONFIG',
    'FREQUENCY_PROFILES',
    'MIN_CONFIDENCE',
    'AmountToleranceBands',
    'ConfidenceThresholds',
    'DetectionConfig',
    'FrequencyProfile',
    'AmountAnalyzer',
    'BillingDayAnalyzer',
    'ConfidenceScoreCalculator',
    'FrequencyAnalyzer',
    'InvalidTransactionError',
    'MerchantGrouper',
    'calculate_gaps',
    'get_confidence_level',
]
