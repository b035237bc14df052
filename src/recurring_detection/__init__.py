"""
Recurring charge (subscription) detection.

Identifies recurring payments in a transaction history, scores how
confident the detection is, and predicts the next expected charge.

Example:
    >>> from recurring_detection import detect_subscriptions
    >>> for subscription in detect_subscriptions(transactions):
    ...     print(subscription.recipient_name, subscription.confidence)
"""

from recurring_detection.models import (
    AmountType,
    BillingFrequency,
    ConfidenceLevel,
    ConfidenceScoreBreakdown,
    DetectedSubscription,
    GroupDiagnostic,
    RecurringType,
    RejectionReason,
    Subscription,
    Transaction,
    TransactionBadge,
    TransactionBadgeType,
)
from recurring_detection.services.subscription_detection import (
    DEFAULT_CONFIG,
    FREQUENCY_PROFILES,
    MIN_CONFIDENCE,
    DetectionConfig,
    InvalidTransactionError,
    SubscriptionDetectionService,
    SubscriptionPredictionService,
    detect_subscriptions,
    normalize_recipient_name,
    predict_next_date,
)
from recurring_detection.services.subscription_service import (
    calculate_monthly_subscription_cost,
    create_subscription,
    get_billing_day_label,
    get_billing_frequency_label,
    group_subscriptions_by_subcategory,
    mark_transactions_as_recurring,
    mark_transactions_as_subscriptions,
)

__version__ = "0.1.0"

__all__ = [
    'AmountType',
    'BillingFrequency',
    'ConfidenceLevel',
    'ConfidenceScoreBreakdown',
    'DetectedSubscription',
    'GroupDiagnostic',
    'RecurringType',
    'RejectionReason',
    'Subscription',
    'Transaction',
    'TransactionBadge',
    'TransactionBadgeType',
    'DEFAULT_CONFIG',
    'FREQUENCY_PROFILES',
    'MIN_CONFIDENCE',
    'DetectionConfig',
    'InvalidTransactionError',
    'SubscriptionDetectionService',
    'SubscriptionPredictionService',
    'detect_subscriptions',
    'normalize_recipient_name',
    'predict_next_date',
    'calculate_monthly_subscription_cost',
    'create_subscription',
    'get_billing_day_label',
    'get_billing_frequency_label',
    'group_subscriptions_by_subcategory',
    'mark_transactions_as_recurring',
    'mark_transactions_as_subscriptions',
]
