"""
Recurring Charge Detection Service.

This module orchestrates recurring charge detection over a transaction
history using specialized pattern analyzers.

## Detection Pipeline

```mermaid
graph TD
    A[Transactions] --> B[MerchantGrouper]
    B --> C[Merchant Groups]
    C --> D[calculate_gaps]
    D --> E[FrequencyAnalyzer]
    C --> F[AmountAnalyzer]
    E --> G{Filters}
    F --> G
    G --> H[ConfidenceScoreCalculator]
    H --> I{score >= min_confidence?}
    I -->|Yes| J[BillingDayAnalyzer + predict_next_date]
    J --> K[DetectedSubscriptions sorted by confidence]
```

## Filters (applied in order, first failure rejects the group)
1. At least 2 transactions (one gap)
2. Gaps match a billing frequency
3. Occurrences reach the frequency's minimum
4. At least half the amounts agree with the core amount
5. Confidence reaches the minimum
"""

import hashlib
import logging
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import AbstractSet, Dict, Iterable, List, Optional

from recurring_detection.models.subscription import (
    DetectedSubscription,
    GroupDiagnostic,
    RejectionReason,
)
from recurring_detection.models.transaction import Transaction
from recurring_detection.services.subscription_detection.analyzers import (
    AmountAnalysis,
    AmountAnalyzer,
    BillingDayAnalyzer,
    ConfidenceResult,
    ConfidenceScoreCalculator,
    FrequencyAnalysis,
    FrequencyAnalyzer,
    MerchantGroup,
    MerchantGrouper,
    calculate_gaps,
)
from recurring_detection.services.subscription_detection.config import (
    DEFAULT_CONFIG,
    MIN_CONFIDENCE,
    DetectionConfig,
)
from recurring_detection.services.subscription_detection.prediction_service import predict_next_date
from recurring_detection.utils.performance import DetectionPerformanceTracker

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


@dataclass
class GroupEvaluation:
    """Diagnostic for one merchant group plus the record it produced, if any."""
    diagnostic: GroupDiagnostic
    subscription: Optional[DetectedSubscription] = None


class SubscriptionDetectionService:
    """
    Orchestrates recurring charge detection using specialized analyzers.

    Groups expenses by normalized recipient name, then applies the frequency,
    amount and confidence analyzers to each group independently and keeps
    the groups that pass every filter.
    """

    def __init__(self, config: Optional[DetectionConfig] = None):
        """
        Initialize the detection service.

        Args:
            config: Optional detection configuration. If None, uses DEFAULT_CONFIG.
        """
        self.config = config or DEFAULT_CONFIG

        # Initialize specialized analyzers
        self.grouper = MerchantGrouper(strict=self.config.strict)
        self.frequency_analyzer = FrequencyAnalyzer(
            frequency_profiles=self.config.frequency_profiles
        )
        self.amount_analyzer = AmountAnalyzer(
            tolerances=self.config.amount_tolerances
        )
        self.confidence_calculator = ConfidenceScoreCalculator(
            thresholds=self.config.confidence_thresholds
        )
        self.billing_day_analyzer = BillingDayAnalyzer()

    def detect_subscriptions(
        self,
        transactions: Iterable[Transaction],
        min_confidence: Optional[int] = None,
        skip_recipients: Optional[AbstractSet[str]] = None
    ) -> List[DetectedSubscription]:
        """
        Detect recurring charges in a transaction history.

        Args:
            transactions: Transactions in any order (not modified)
            min_confidence: Minimum confidence score to include a charge
                (default: the configured minimum)
            skip_recipients: Normalized recipient names already reviewed by
                the user; these groups are not evaluated

        Returns:
            Detected subscriptions, highest confidence first, ties by recipient name
        """
        transactions = list(transactions)
        if min_confidence is None:
            min_confidence = self.config.min_confidence

        logger.info(f"Starting subscription detection over {len(transactions)} transactions")

        with DetectionPerformanceTracker("detect_subscriptions") as tracker:
            tracker.set_transaction_count(len(transactions))

            # Stage 1: Grouping
            with tracker.stage("grouping"):
                groups = self._select_groups(self.grouper.group(transactions), skip_recipients)
                tracker.set_groups_evaluated(len(groups))

            # Stage 2: Per-group analysis
            detected: List[DetectedSubscription] = []
            with tracker.stage("pattern_analysis"):
                for merchant_group in groups:
                    evaluation = self._evaluate_group(merchant_group, min_confidence)
                    logger.debug(evaluation.diagnostic.summary())
                    if evaluation.subscription is not None:
                        detected.append(evaluation.subscription)

            # Stage 3: Ranking
            with tracker.stage("ranking"):
                detected.sort(key=lambda s: (-s.confidence, s.recipient_name))
            tracker.set_subscriptions_detected(len(detected))

        logger.info(f"Detection complete: found {len(detected)} recurring charges in {len(groups)} groups")
        return detected

    def explain_detection(
        self,
        transactions: Iterable[Transaction],
        search_term: str,
        min_confidence: Optional[int] = None
    ) -> List[GroupDiagnostic]:
        """
        Explain why transactions matching a search term were or were not detected.

        Args:
            transactions: Transaction history
            search_term: Case-insensitive substring of the raw description
            min_confidence: Minimum confidence score (default: the configured minimum)

        Returns:
            One GroupDiagnostic per normalized group of matching expenses,
            ordered by recipient name
        """
        if min_confidence is None:
            min_confidence = self.config.min_confidence

        needle = search_term.lower()
        matching = [txn for txn in transactions if needle in txn.description.lower()]
        logger.debug(f"Found {len(matching)} transactions containing '{search_term}'")

        groups = self.grouper.group(matching)
        diagnostics = []
        for key in sorted(groups):
            evaluation = self._evaluate_group(groups[key], min_confidence)
            logger.debug(evaluation.diagnostic.summary())
            diagnostics.append(evaluation.diagnostic)

        return diagnostics

    def _select_groups(
        self,
        groups: Dict[str, MerchantGroup],
        skip_recipients: Optional[AbstractSet[str]]
    ) -> List[MerchantGroup]:
        """
        Order groups by key, drop reviewed recipients and apply the group cap.

        Args:
            groups: Merchant groups keyed by recipient name
            skip_recipients: Recipient names to leave out

        Returns:
            Groups to evaluate
        """
        skip_recipients = skip_recipients or frozenset()
        selected = [groups[key] for key in sorted(groups) if key not in skip_recipients]

        max_groups = self.config.max_groups
        if max_groups is not None and len(selected) > max_groups:
            logger.warning(
                f"Evaluating {max_groups} of {len(selected)} merchant groups; "
                f"raise max_groups to analyze the rest"
            )
            selected = selected[:max_groups]

        return selected

    def _evaluate_group(self, merchant_group: MerchantGroup, min_confidence: int) -> GroupEvaluation:
        """
        Run a merchant group through the detection filters.

        Args:
            merchant_group: Date-sorted transactions of one recipient
            min_confidence: Minimum confidence score

        Returns:
            GroupEvaluation with the diagnostic and, if accepted, the detected subscription
        """
        transactions = merchant_group.transactions
        occurrence_count = merchant_group.occurrence_count
        diagnostic = GroupDiagnostic(
            recipientName=merchant_group.key,
            transactionCount=occurrence_count,
            reason=RejectionReason.TOO_FEW_TRANSACTIONS,
        )

        # 1. Need at least one gap to classify frequency
        gaps = calculate_gaps(transactions)
        diagnostic.gaps = gaps
        if not gaps:
            return GroupEvaluation(diagnostic=diagnostic)

        # 2. Frequency must match a profile
        frequency_analysis = self.frequency_analyzer.analyze(gaps)
        if not frequency_analysis.matched:
            diagnostic.reason = RejectionReason.NO_FREQUENCY_MATCH
            return GroupEvaluation(diagnostic=diagnostic)

        profile = frequency_analysis.profile
        diagnostic.billing_frequency = profile.frequency
        diagnostic.gap_consistency = frequency_analysis.gap_consistency
        diagnostic.required_occurrences = profile.min_occurrences

        # 3. Enough occurrences for the detected frequency
        if occurrence_count < profile.min_occurrences:
            diagnostic.reason = RejectionReason.TOO_FEW_OCCURRENCES
            return GroupEvaluation(diagnostic=diagnostic)

        # 4. At least half of the amounts must agree with the core amount
        amount_analysis = self.amount_analyzer.analyze(merchant_group.amounts)
        required_matches = math.ceil(occurrence_count / 2)
        diagnostic.core_amount = amount_analysis.core_amount
        diagnostic.amount_variance = amount_analysis.variance
        diagnostic.matching_count = amount_analysis.matching_count
        diagnostic.required_matches = required_matches
        if amount_analysis.matching_count < required_matches:
            diagnostic.reason = RejectionReason.AMOUNTS_INCONSISTENT
            return GroupEvaluation(diagnostic=diagnostic)

        # 5. Confidence threshold (inclusive)
        confidence = self.confidence_calculator.calculate(
            amount_analysis,
            frequency_analysis,
            occurrence_count,
            occurrence_count
        )
        diagnostic.confidence = confidence.score
        diagnostic.score_breakdown = confidence.breakdown
        if confidence.score < min_confidence:
            diagnostic.reason = RejectionReason.LOW_CONFIDENCE
            return GroupEvaluation(diagnostic=diagnostic)

        diagnostic.reason = RejectionReason.ACCEPTED
        subscription = self._build_subscription(
            merchant_group, frequency_analysis, amount_analysis, confidence
        )
        return GroupEvaluation(diagnostic=diagnostic, subscription=subscription)

    def _build_subscription(
        self,
        merchant_group: MerchantGroup,
        frequency_analysis: FrequencyAnalysis,
        amount_analysis: AmountAnalysis,
        confidence: ConfidenceResult
    ) -> DetectedSubscription:
        """
        Build the output record for an accepted group.

        Args:
            merchant_group: Accepted merchant group
            frequency_analysis: Its frequency analysis (matched)
            amount_analysis: Its amount analysis
            confidence: Its confidence result

        Returns:
            DetectedSubscription
        """
        transactions = merchant_group.transactions
        frequency = frequency_analysis.frequency
        dates = merchant_group.dates
        abs_amounts = [abs(amount) for amount in merchant_group.amounts]

        # Category hints only when the whole group agrees
        category_ids = {txn.category_id for txn in transactions}
        subcategory_ids = {txn.subcategory_id for txn in transactions}

        return DetectedSubscription(
            id=generate_subscription_id(merchant_group.key, amount_analysis.core_amount),
            recipientName=merchant_group.key,
            averageAmount=_round_to_cents(amount_analysis.core_amount),
            minAmount=_round_to_cents(min(abs_amounts)),
            maxAmount=_round_to_cents(max(abs_amounts)),
            amountVariance=_round_to_cents(amount_analysis.variance * 100),
            amountType=amount_analysis.amount_type,
            transactionIds=merchant_group.transaction_ids,
            occurrenceCount=merchant_group.occurrence_count,
            firstSeen=dates[0],
            lastSeen=dates[-1],
            billingFrequency=frequency,
            expectedBillingDay=self.billing_day_analyzer.expected_billing_day(dates, frequency),
            commonDayOfMonth=self.billing_day_analyzer.most_common_day_of_month(dates),
            nextExpectedDate=predict_next_date(dates[-1], frequency),
            confidence=confidence.score,
            confidenceLevel=self.confidence_calculator.confidence_level(confidence.score),
            scoreBreakdown=confidence.breakdown,
            categoryId=transactions[0].category_id if len(category_ids) == 1 else None,
            subcategoryId=transactions[0].subcategory_id if len(subcategory_ids) == 1 else None,
        )


def generate_subscription_id(recipient_name: str, amount: float) -> str:
    """
    Generate a deterministic identifier for a detected subscription.

    Args:
        recipient_name: Normalized recipient name
        amount: Core amount of the subscription

    Returns:
        Identifier of the form ``sub-<12 hex digits>``
    """
    content = f"{recipient_name}-{abs(amount):.2f}"
    hash_obj = hashlib.sha256(content.encode('utf-8'))
    return f"sub-{hash_obj.hexdigest()[:12]}"


def _round_to_cents(value: float) -> Decimal:
    """Round half up to 2 decimal places."""
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def detect_subscriptions(
    transactions: Iterable[Transaction],
    min_confidence: int = MIN_CONFIDENCE,
    config: Optional[DetectionConfig] = None
) -> List[DetectedSubscription]:
    """
    Detect recurring charges with a one-off service instance.

    Args:
        transactions: Transaction history
        min_confidence: Minimum confidence score to include a charge
        config: Optional detection configuration

    Returns:
        Detected subscriptions, highest confidence first
    """
    service = SubscriptionDetectionService(config=config)
    return service.detect_subscriptions(transactions, min_confidence=min_confidence)
