"""
Billing day analyzer for recurring charge detection.

Finds the day a recurring charge usually lands on: a weekday for weekly
cadences, a day of the month otherwise.
"""

import logging
from collections import Counter
from datetime import date
from typing import Sequence

from recurring_detection.models.subscription import BillingFrequency
from recurring_detection.utils.date_utils import day_of_week

logger = logging.getLogger(__name__)

DEFAULT_BILLING_DAY = 1


class BillingDayAnalyzer:
    """
    Determines the most common billing day of a group of charges.

    Ties between equally frequent days resolve to the lowest day index so
    the result does not depend on input order.
    """

    def expected_billing_day(self, dates: Sequence[date], frequency: BillingFrequency) -> int:
        """
        Get the expected billing day.

        Args:
            dates: Charge dates
            frequency: Classified billing frequency

        Returns:
            Day of week (0 = Sunday .. 6 = Saturday) for weekly and biweekly,
            day of month (1-31) otherwise
        """
        if frequency.uses_day_of_week:
            return self.most_common_day_of_week(dates)
        return self.most_common_day_of_month(dates)

    def most_common_day_of_week(self, dates: Sequence[date]) -> int:
        """Most frequent weekday (0 = Sunday), 0 for an empty list."""
        return self._most_common([day_of_week(d) for d in dates], default=0)

    def most_common_day_of_month(self, dates: Sequence[date]) -> int:
        """Most frequent day of month, DEFAULT_BILLING_DAY for an empty list."""
        return self._most_common([d.day for d in dates], default=DEFAULT_BILLING_DAY)

    @staticmethod
    def _most_common(days: Sequence[int], default: int) -> int:
        if not days:
            return default
        counts = Counter(days)
        return min(counts, key=lambda day: (-counts[day], day))
