"""
Subscription Service.

Helpers for working with recurring charges after detection: confirming a
detected charge as a subscription, flagging its transactions, and
aggregating confirmed subscriptions for display.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Set

from recurring_detection.models.subscription import (
    BillingFrequency,
    DetectedSubscription,
    RecurringType,
    Subscription,
)
from recurring_detection.models.transaction import (
    Transaction,
    TransactionBadge,
    TransactionBadgeType,
)

logger = logging.getLogger(__name__)

BILLING_FREQUENCY_LABELS = {
    BillingFrequency.WEEKLY: "Weekly",
    BillingFrequency.BIWEEKLY: "Bi-weekly",
    BillingFrequency.MONTHLY: "Monthly",
    BillingFrequency.QUARTERLY: "Quarterly",
    BillingFrequency.ANNUAL: "Annual",
}

DAY_OF_WEEK_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

RECURRING_BADGES = {
    RecurringType.SUBSCRIPTION: TransactionBadge(
        type=TransactionBadgeType.SUBSCRIPTION, label="Subscription"
    ),
    RecurringType.RECURRING_EXPENSE: TransactionBadge(
        type=TransactionBadgeType.RECURRING_EXPENSE, label="Fixed"
    ),
}


def create_subscription(detected: DetectedSubscription) -> Subscription:
    """
    Confirm a detected recurring charge as a subscription.

    Args:
        detected: Detected subscription the user accepted

    Returns:
        Active Subscription billed on the expected billing day (a weekday
        for weekly cadences, a day of month otherwise)
    """
    return Subscription(
        id=detected.id,
        name=detected.recipient_name,
        amount=detected.average_amount,
        billingDay=detected.expected_billing_day,
        recurringType=detected.recurring_type or RecurringType.SUBSCRIPTION,
        categoryId=detected.category_id,
        subcategoryId=detected.subcategory_id,
        transactionIds=list(detected.transaction_ids),
        createdAt=datetime.now(timezone.utc),
        isActive=True,
        confidence=detected.confidence,
        billingFrequency=detected.billing_frequency,
        amountType=detected.amount_type,
        nextExpectedDate=detected.next_expected_date,
    )


def mark_transactions_as_recurring(
    transactions: Iterable[Transaction],
    recurring_ids: Mapping[str, RecurringType]
) -> List[Transaction]:
    """
    Flag transactions that belong to a recurring payment.

    Args:
        transactions: Transactions to process (not modified)
        recurring_ids: Mapping of transaction id to its recurring type

    Returns:
        Transactions in input order; flagged ones are updated copies with
        ``is_subscription`` set and a recurring badge added unless one exists
    """
    result = []
    for txn in transactions:
        recurring_type = recurring_ids.get(txn.transaction_id)
        if recurring_type is None:
            result.append(txn)
            continue

        badges = list(txn.badges)
        if not txn.has_badge(TransactionBadgeType.SUBSCRIPTION, TransactionBadgeType.RECURRING_EXPENSE):
            badges.append(RECURRING_BADGES[RecurringType(recurring_type)])

        result.append(txn.model_copy(update={'is_subscription': True, 'badges': badges}))

    return result


def mark_transactions_as_subscriptions(
    transactions: Iterable[Transaction],
    subscription_ids: Set[str]
) -> List[Transaction]:
    """Flag transactions as subscriptions; shorthand for mark_transactions_as_recurring."""
    recurring_ids = {txn_id: RecurringType.SUBSCRIPTION for txn_id in subscription_ids}
    return mark_transactions_as_recurring(transactions, recurring_ids)


def group_subscriptions_by_subcategory(
    subscriptions: Iterable[Subscription]
) -> Dict[Optional[str], List[Subscription]]:
    """
    Group subscriptions by subcategory for display.

    Subscriptions without a subcategory are grouped under None. Both the group
    order and the order within each group follow the input order.
    """
    groups: Dict[Optional[str], List[Subscription]] = {}
    for subscription in subscriptions:
        groups.setdefault(subscription.subcategory_id, []).append(subscription)
    return groups


def calculate_monthly_subscription_cost(subscriptions: Iterable[Subscription]) -> Decimal:
    """
    Total amount of active subscriptions.

    Amounts are summed as stored, without normalizing non-monthly frequencies.
    """
    return sum((s.amount for s in subscriptions if s.is_active), Decimal("0"))


def get_billing_frequency_label(frequency: BillingFrequency) -> str:
    """Display label for a billing frequency."""
    return BILLING_FREQUENCY_LABELS[BillingFrequency(frequency)]


def get_billing_day_label(day: int, frequency: BillingFrequency) -> str:
    """
    Display label for an expected billing day.

    Args:
        day: Day of week (0 = Sunday) for weekly cadences, day of month otherwise
        frequency: Billing frequency the day belongs to

    Returns:
        Weekday abbreviation (e.g. "Mon") or "Day N"
    """
    if BillingFrequency(frequency).uses_day_of_week and 0 <= day < len(DAY_OF_WEEK_LABELS):
        return DAY_OF_WEEK_LABELS[day]
    return f"Day {day}"
