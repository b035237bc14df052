"""
Transaction Models.

Normalized transaction records as produced by the ingestion layer. The
detection engine only reads these; helpers that flag recurring transactions
return updated copies.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class TransactionBadgeType(str, Enum):
    """Visual indicator attached to a transaction."""
    UNCATEGORIZED = "uncategorized"          # Needs manual categorization
    SUBSCRIPTION = "subscription"            # Cancellable recurring service
    RECURRING_EXPENSE = "recurring_expense"  # Fixed recurring expense (loan, rent)
    HIGH_VALUE = "high_value"                # Above threshold amount
    REFUND = "refund"                        # Money returned
    INCOME = "income"                        # Positive amount


class TransactionBadge(BaseModel):
    """A badge shown next to a transaction."""
    type: TransactionBadgeType
    label: str

    model_config = ConfigDict(use_enum_values=False)


class Transaction(BaseModel):
    """
    Represents a single bank transaction.

    Amounts are signed: negative values are expenses, positive values income.
    Only expenses are eligible for recurring-charge detection.
    """
    transaction_id: str = Field(alias="id")
    date: date
    description: str = Field(default="", max_length=1000)
    # Non-finite amounts are accepted here; the detection engine decides
    # whether to skip them or reject them (strict mode).
    amount: Decimal = Field(allow_inf_nan=True)
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    subcategory_id: Optional[str] = Field(default=None, alias="subcategoryId")
    is_subscription: bool = Field(default=False, alias="isSubscription")
    badges: List[TransactionBadge] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={Decimal: str},
        use_enum_values=False
    )

    @field_validator('date', mode='before')
    @classmethod
    def coerce_calendar_date(cls, v: Any) -> Any:
        """
        Reduce timestamps to calendar dates.

        Accepts ``datetime`` objects (time of day is dropped) and integers
        representing milliseconds since epoch (interpreted in UTC).
        """
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, int) and not isinstance(v, bool):
            if v < 0:
                raise ValueError("Timestamp must be a positive integer representing milliseconds since epoch")
            return datetime.fromtimestamp(v / 1000, tz=timezone.utc).date()
        return v

    @property
    def is_expense(self) -> bool:
        """True for finite negative amounts."""
        return self.amount.is_finite() and self.amount < 0

    def has_badge(self, *badge_types: TransactionBadgeType) -> bool:
        return any(badge.type in badge_types for badge in self.badges)
