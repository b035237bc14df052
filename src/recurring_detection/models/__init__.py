"""
Models package for recurring charge detection.
"""

from .transaction import (
    Transaction,
    TransactionBadge,
    TransactionBadgeType,
)

from .subscription import (
    AmountType,
    BillingFrequency,
    ConfidenceLevel,
    ConfidenceScoreBreakdown,
    DetectedSubscription,
    GroupDiagnostic,
    RecurringType,
    RejectionReason,
    Subscription,
)

__all__ = [
    'Transaction',
    'TransactionBadge',
    'TransactionBadgeType',
    'AmountType',
    'BillingFrequency',
    'ConfidenceLevel',
    'ConfidenceScoreBreakdown',
    'DetectedSubscription',
    'GroupDiagnostic',
    'RecurringType',
    'RejectionReason',
    'Subscription',
]
