"""
Recurring Charge (Subscription) Models.

This module provides Pydantic models for recurring charge detection output,
confirmed subscriptions, per-group diagnostics and related enums.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing_extensions import Self

logger = logging.getLogger(__name__)

# Constants
BILLING_DAY_ERROR_MESSAGE = "expected_billing_day must be between 0 and 31"


class BillingFrequency(str, Enum):
    """Billing cadence of a recurring charge."""
    WEEKLY = "weekly"          # ~7 day intervals
    BIWEEKLY = "biweekly"      # ~14 day intervals
    MONTHLY = "monthly"        # ~30 day intervals
    QUARTERLY = "quarterly"    # ~90 day intervals
    ANNUAL = "annual"          # ~365 day intervals

    @property
    def uses_day_of_week(self) -> bool:
        """Weekly cadences are anchored on a weekday, the rest on a day of month."""
        return self in (BillingFrequency.WEEKLY, BillingFrequency.BIWEEKLY)


class AmountType(str, Enum):
    """Whether a recurring charge bills a stable or a fluctuating amount."""
    FIXED = "fixed"
    VARIABLE = "variable"


class ConfidenceLevel(str, Enum):
    """Coarse bucket derived from the 0-100 confidence score."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RecurringType(str, Enum):
    """Type of recurring payment, chosen by the user on review."""
    SUBSCRIPTION = "subscription"            # Cancellable services (Netflix, Spotify, gym)
    RECURRING_EXPENSE = "recurring_expense"  # Fixed expenses (loan, rent, insurance)


class RejectionReason(str, Enum):
    """Outcome of evaluating a merchant group against the detection filters."""
    TOO_FEW_TRANSACTIONS = "too_few_transactions"
    NO_FREQUENCY_MATCH = "no_frequency_match"
    TOO_FEW_OCCURRENCES = "too_few_occurrences"
    AMOUNTS_INCONSISTENT = "amounts_inconsistent"
    LOW_CONFIDENCE = "low_confidence"
    ACCEPTED = "accepted"


class ConfidenceScoreBreakdown(BaseModel):
    """The four sub-scores that sum to the confidence score."""
    amount_score: int = Field(alias="amountScore", ge=0, le=30)
    timing_score: int = Field(alias="timingScore", ge=0, le=30)
    occurrence_score: int = Field(alias="occurrenceScore", ge=0, le=20)
    clarity_score: int = Field(alias="clarityScore", ge=0, le=20)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def total(self) -> int:
        return self.amount_score + self.timing_score + self.occurrence_score + self.clarity_score


class DetectedSubscription(BaseModel):
    """
    A recurring charge inferred from transaction history.

    Records are created fresh on every detection run and are never mutated
    afterwards; downstream code may persist them at its own discretion.
    """
    id: str
    recipient_name: str = Field(alias="recipientName")

    # Amounts (absolute values, rounded to 2 decimals)
    average_amount: Decimal = Field(alias="averageAmount")
    min_amount: Decimal = Field(alias="minAmount")
    max_amount: Decimal = Field(alias="maxAmount")
    amount_variance: Decimal = Field(alias="amountVariance", ge=0)  # Percentage
    amount_type: AmountType = Field(alias="amountType")

    # Occurrences
    transaction_ids: List[str] = Field(alias="transactionIds")
    occurrence_count: int = Field(alias="occurrenceCount", ge=0)
    first_seen: date = Field(alias="firstSeen")
    last_seen: date = Field(alias="lastSeen")

    # Cadence
    billing_frequency: BillingFrequency = Field(alias="billingFrequency")
    expected_billing_day: int = Field(alias="expectedBillingDay")
    common_day_of_month: int = Field(alias="commonDayOfMonth", ge=1, le=31)
    next_expected_date: date = Field(alias="nextExpectedDate")

    # Scoring
    confidence: int = Field(ge=0, le=100)
    confidence_level: ConfidenceLevel = Field(alias="confidenceLevel")
    score_breakdown: ConfidenceScoreBreakdown = Field(alias="scoreBreakdown")

    # Review state and category hints
    is_confirmed: Optional[bool] = Field(default=None, alias="isConfirmed")
    recurring_type: Optional[RecurringType] = Field(default=None, alias="recurringType")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    subcategory_id: Optional[str] = Field(default=None, alias="subcategoryId")

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_encoders={Decimal: str},
        use_enum_values=False  # Preserve enum objects (not strings) for type safety
    )

    @field_validator('expected_billing_day')
    @classmethod
    def validate_expected_billing_day(cls, v: int) -> int:
        if not (0 <= v <= 31):
            raise ValueError(BILLING_DAY_ERROR_MESSAGE)
        return v


class Subscription(BaseModel):
    """
    A recurring payment the user has confirmed.

    Created from a DetectedSubscription via
    ``services.subscription_service.create_subscription``.
    """
    id: str
    name: str
    amount: Decimal
    billing_day: int = Field(alias="billingDay", ge=0, le=31)
    recurring_type: RecurringType = Field(alias="recurringType")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    subcategory_id: Optional[str] = Field(default=None, alias="subcategoryId")
    transaction_ids: List[str] = Field(default_factory=list, alias="transactionIds")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt"
    )
    is_active: bool = Field(default=True, alias="isActive")

    confidence: Optional[int] = Field(default=None, ge=0, le=100)
    billing_frequency: Optional[BillingFrequency] = Field(default=None, alias="billingFrequency")
    amount_type: Optional[AmountType] = Field(default=None, alias="amountType")
    next_expected_date: Optional[date] = Field(default=None, alias="nextExpectedDate")

    model_config = ConfigDict(
        populate_by_name=True,
        json_encoders={Decimal: str},
        use_enum_values=False
    )

    def to_storage_item(self) -> Dict[str, Any]:
        """
        Convert to a JSON-safe dictionary.

        Dates become ISO strings, Decimals strings and enums their values.
        """
        return self.model_dump(by_alias=True, exclude_none=True, mode='json')

    @classmethod
    def from_storage_item(cls, data: Dict[str, Any]) -> Self:
        """Create from a dictionary produced by ``to_storage_item``."""
        converted_data = data.copy()

        # Unknown enum values degrade gracefully instead of failing the load
        if 'billingFrequency' in converted_data and isinstance(converted_data['billingFrequency'], str):
            try:
                converted_data['billingFrequency'] = BillingFrequency(converted_data['billingFrequency'])
            except ValueError:
                logger.warning(f"Invalid BillingFrequency value: {converted_data['billingFrequency']}")
                converted_data.pop('billingFrequency')

        if 'amountType' in converted_data and isinstance(converted_data['amountType'], str):
            try:
                converted_data['amountType'] = AmountType(converted_data['amountType'])
            except ValueError:
                logger.warning(f"Invalid AmountType value: {converted_data['amountType']}")
                converted_data.pop('amountType')

        return cls.model_validate(converted_data)


class GroupDiagnostic(BaseModel):
    """
    Explains how a single merchant group fared in the detection pipeline.

    Fields beyond ``reason`` are filled in as far as the group progressed
    through the filters.
    """
    recipient_name: str = Field(alias="recipientName")
    transaction_count: int = Field(alias="transactionCount", ge=0)
    reason: RejectionReason
    gaps: List[int] = Field(default_factory=list)
    billing_frequency: Optional[BillingFrequency] = Field(default=None, alias="billingFrequency")
    gap_consistency: Optional[float] = Field(default=None, alias="gapConsistency")
    required_occurrences: Optional[int] = Field(default=None, alias="requiredOccurrences")
    core_amount: Optional[float] = Field(default=None, alias="coreAmount")
    amount_variance: Optional[float] = Field(default=None, alias="amountVariance")
    matching_count: Optional[int] = Field(default=None, alias="matchingCount")
    required_matches: Optional[int] = Field(default=None, alias="requiredMatches")
    confidence: Optional[int] = None
    score_breakdown: Optional[ConfidenceScoreBreakdown] = Field(default=None, alias="scoreBreakdown")

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    @property
    def accepted(self) -> bool:
        return self.reason == RejectionReason.ACCEPTED

    def summary(self) -> str:
        """One-line human readable explanation."""
        if self.reason == RejectionReason.TOO_FEW_TRANSACTIONS:
            return f"{self.recipient_name}: only {self.transaction_count} transaction(s), need at least 2"
        if self.reason == RejectionReason.NO_FREQUENCY_MATCH:
            return f"{self.recipient_name}: no matching frequency pattern (gaps: {self.gaps} days)"
        if self.reason == RejectionReason.TOO_FEW_OCCURRENCES:
            return (
                f"{self.recipient_name}: only {self.transaction_count} occurrences "
                f"(need {self.required_occurrences} for {self.billing_frequency.value})"
            )
        if self.reason == RejectionReason.AMOUNTS_INCONSISTENT:
            return (
                f"{self.recipient_name}: only {self.matching_count} amounts match "
                f"(need {self.required_matches}), core amount {self.core_amount:.2f}, "
                f"variance {self.amount_variance * 100:.1f}%"
            )
        if self.reason == RejectionReason.LOW_CONFIDENCE:
            return f"{self.recipient_name}: confidence {self.confidence} below threshold"
        return (
            f"{self.recipient_name}: detected as {self.billing_frequency.value} "
            f"with confidence {self.confidence}"
        )
