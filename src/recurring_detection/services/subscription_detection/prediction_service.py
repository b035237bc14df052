"""
Recurring Charge Prediction Service.

This module predicts upcoming occurrences of detected recurring charges from
the last observed charge and the classified billing frequency.

Month and year steps follow calendar semantics and clamp to the last valid
day of the target month (Jan 31 + 1 month -> Feb 28/29) rather than rolling
over into the following month.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional, Union

from recurring_detection.models.subscription import BillingFrequency, DetectedSubscription, Subscription
from recurring_detection.utils.date_utils import add_months, add_years

logger = logging.getLogger(__name__)

# Nominal step per frequency: (days, months, years)
FREQUENCY_STEPS = {
    BillingFrequency.WEEKLY: (7, 0, 0),
    BillingFrequency.BIWEEKLY: (14, 0, 0),
    BillingFrequency.MONTHLY: (0, 1, 0),
    BillingFrequency.QUARTERLY: (0, 3, 0),
    BillingFrequency.ANNUAL: (0, 0, 1),
}

# Hard cap on projected occurrences per call
MAX_PREDICTIONS = 120


def predict_next_date(last_date: date, frequency: BillingFrequency) -> date:
    """
    Predict the next expected charge date.

    Args:
        last_date: Date of the last observed charge
        frequency: Classified billing frequency

    Returns:
        last_date advanced by one billing period
    """
    return _advance(last_date, frequency, periods=1)


def _advance(anchor: date, frequency: BillingFrequency, periods: int) -> date:
    """Advance ``anchor`` by a whole number of billing periods."""
    days, months, years = FREQUENCY_STEPS[frequency]
    if days:
        return anchor + timedelta(days=days * periods)
    if months:
        return add_months(anchor, months * periods)
    return add_years(anchor, years * periods)


class SubscriptionPredictionService:
    """
    Service for projecting upcoming charges of recurring payments.

    Works with both detected and confirmed subscriptions. Multi-step
    projections are always computed from the last observed charge, so a
    clamped month end (Jan 31 -> Feb 29) does not drift into later months.
    """

    def predict_next_date(self, last_date: date, frequency: BillingFrequency) -> date:
        """Predict the charge after ``last_date``."""
        return predict_next_date(last_date, frequency)

    def predict_upcoming(
        self,
        subscription: DetectedSubscription,
        count: int = 3,
        from_date: Optional[date] = None
    ) -> List[date]:
        """
        Predict the next ``count`` charges strictly after ``from_date``.

        Args:
            subscription: Detected subscription to project
            count: Number of occurrences to predict
            from_date: Date to predict from (default: the last seen date)

        Returns:
            List of predicted charge dates in ascending order
        """
        if count <= 0:
            return []
        if count > MAX_PREDICTIONS:
            logger.warning(f"Requested {count} predictions, capping at {MAX_PREDICTIONS}")
            count = MAX_PREDICTIONS

        anchor = subscription.last_seen
        frequency = subscription.billing_frequency
        from_date = from_date or anchor

        predictions: List[date] = []
        period = 1
        next_date = _advance(anchor, frequency, period)

        # Skip periods that already lie in the past
        while next_date <= from_date:
            period += 1
            next_date = _advance(anchor, frequency, period)

        while len(predictions) < count:
            predictions.append(next_date)
            period += 1
            next_date = _advance(anchor, frequency, period)

        return predictions

    def days_until_due(
        self,
        subscription: Union[DetectedSubscription, Subscription],
        today: date
    ) -> Optional[int]:
        """
        Days from ``today`` until the next expected charge.

        Negative when the charge is overdue; None when the subscription has
        no expected date.
        """
        if subscription.next_expected_date is None:
            return None
        return (subscription.next_expected_date - today).days
