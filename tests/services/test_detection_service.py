"""
Unit tests for SubscriptionDetectionService.

Tests the end-to-end detection pipeline: grouping, filters, scoring,
record assembly, ordering and diagnostics.
"""

import logging
import random
import pytest
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

from recurring_detection.models.subscription import (
    AmountType,
    BillingFrequency,
    ConfidenceLevel,
    ConfidenceScoreBreakdown,
    RejectionReason,
)
from recurring_detection.services.subscription_detection.analyzers import (
    ConfidenceResult,
    InvalidTransactionError,
)
from recurring_detection.services.subscription_detection.config import (
    MIN_CONFIDENCE,
    DetectionConfig,
)
from recurring_detection.services.subscription_detection.detection_service import (
    SubscriptionDetectionService,
    detect_subscriptions,
    generate_subscription_id,
)
from tests.fixtures.subscription_fixtures import (
    clean_monthly_scenario,
    create_interval_series,
    create_monthly_series,
    create_series,
    create_transaction,
    threshold_39_scenario,
    threshold_40_scenario,
)


class TestSubscriptionDetectionService:
    """Test suite for SubscriptionDetectionService."""

    @pytest.fixture
    def detection_service(self):
        """Create detection service instance."""
        return SubscriptionDetectionService()

    def test_clean_monthly_subscription(self, detection_service):
        """Test six identical charges on the 3rd of each month."""
        results = detection_service.detect_subscriptions(clean_monthly_scenario())

        assert len(results) == 1
        subscription = results[0]
        assert subscription.recipient_name == "Netflix.com"
        assert subscription.billing_frequency == BillingFrequency.MONTHLY
        assert subscription.occurrence_count == 6
        assert subscription.confidence == 95
        assert subscription.confidence_level == ConfidenceLevel.HIGH
        assert subscription.score_breakdown == ConfidenceScoreBreakdown(
            amount_score=30, timing_score=30, occurrence_score=15, clarity_score=20
        )
        assert subscription.average_amount == Decimal("99.00")
        assert subscription.min_amount == Decimal("99.00")
        assert subscription.max_amount == Decimal("99.00")
        assert subscription.amount_variance == Decimal("0.00")
        assert subscription.amount_type == AmountType.FIXED
        assert subscription.first_seen == date(2024, 1, 3)
        assert subscription.last_seen == date(2024, 6, 3)
        assert subscription.expected_billing_day == 3
        assert subscription.common_day_of_month == 3
        assert subscription.next_expected_date == date(2024, 7, 3)
        assert subscription.transaction_ids == [f"netflix-{i}" for i in range(6)]
        assert subscription.id.startswith("sub-")

    def test_weekly_subscription(self, detection_service):
        transactions = create_interval_series(
            "SPOTIFY P0123456789", start=date(2024, 1, 1), count=8, amount="-12.50"
        )

        results = detection_service.detect_subscriptions(transactions)

        assert len(results) == 1
        subscription = results[0]
        assert subscription.recipient_name == "Spotify"
        assert subscription.billing_frequency == BillingFrequency.WEEKLY
        assert subscription.expected_billing_day == 1  # Monday
        assert subscription.common_day_of_month == 1
        assert subscription.next_expected_date == date(2024, 2, 26)
        assert subscription.confidence == 95

    def test_annual_subscription(self, detection_service):
        transactions = create_series(
            "AMAZON PRIME", [date(2023, 3, 15), date(2024, 3, 15)], "-1200.00"
        )

        results = detection_service.detect_subscriptions(transactions)

        assert len(results) == 1
        assert results[0].billing_frequency == BillingFrequency.ANNUAL
        assert results[0].confidence == 84
        assert results[0].next_expected_date == date(2025, 3, 15)

    def test_too_few_occurrences(self, detection_service):
        """Test that two monthly charges are not enough."""
        transactions = create_monthly_series("NETFLIX", start=date(2024, 1, 3), count=2, amount="-99.00")

        assert detection_service.detect_subscriptions(transactions) == []

    def test_inconsistent_amounts(self, detection_service):
        """Test that wildly varying amounts are rejected."""
        transactions = create_series(
            "POWER COMPANY",
            [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)],
            ["-10", "-20", "-40", "-80"]
        )

        assert detection_service.detect_subscriptions(transactions) == []

    def test_single_outlier_amount_still_detected(self, detection_service):
        """Test that one 200 among 50s does not disqualify a fixed charge."""
        transactions = create_series(
            "STREAMING PLUS",
            [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1), date(2024, 5, 1)],
            ["-50", "-50", "-50", "-200", "-50"],
        )

        results = detection_service.detect_subscriptions(transactions)

        assert len(results) == 1
        subscription = results[0]
        assert subscription.average_amount == Decimal("50.00")
        assert subscription.min_amount == Decimal("50.00")
        assert subscription.max_amount == Decimal("200.00")
        assert subscription.amount_type == AmountType.FIXED
        assert subscription.confidence == 90

    def test_income_excluded(self, detection_service):
        """Test that positive amounts never form a recurring charge."""
        transactions = create_monthly_series("SALARY ACME", start=date(2024, 1, 25), count=6, amount="25000")

        assert detection_service.detect_subscriptions(transactions) == []

    def test_zero_amounts_excluded(self, detection_service):
        transactions = create_monthly_series("FREE TRIAL", start=date(2024, 1, 1), count=6, amount="0")

        assert detection_service.detect_subscriptions(transactions) == []

    def test_blank_descriptions_excluded(self, detection_service):
        transactions = create_monthly_series("   ", start=date(2024, 1, 1), count=6, amount="-99")

        assert detection_service.detect_subscriptions(transactions) == []

    def test_empty_input(self, detection_service):
        assert detection_service.detect_subscriptions([]) == []

    def test_differently_normalized_names_grouped(self, detection_service):
        """Test that descriptions normalizing to the same key form one group."""
        dates = [date(2024, 1, 3), date(2024, 2, 3), date(2024, 3, 3)]
        descriptions = ["KORTKÖP NETFLIX.COM", "NETFLIX.COM 2024-02-03", "netflix.com"]
        transactions = [
            create_transaction(d, description, "-99.00") for d, description in zip(dates, descriptions)
        ]

        results = detection_service.detect_subscriptions(transactions)

        assert [s.recipient_name for s in results] == ["Netflix.com"]
        assert results[0].occurrence_count == 3

    def test_input_not_modified(self, detection_service):
        transactions = clean_monthly_scenario()
        shuffled = list(reversed(transactions))
        snapshot = [t.model_copy() for t in shuffled]

        detection_service.detect_subscriptions(shuffled)

        assert shuffled == snapshot

    def test_deterministic(self, detection_service):
        """Test that repeated runs and input order yield the same output."""
        transactions = (
            clean_monthly_scenario()
            + create_interval_series("SPOTIFY", start=date(2024, 1, 1), count=8, amount="-12.50")
            + threshold_40_scenario()
        )
        shuffled = list(transactions)
        random.Random(42).shuffle(shuffled)

        first = detection_service.detect_subscriptions(transactions)
        second = detection_service.detect_subscriptions(transactions)
        third = detection_service.detect_subscriptions(shuffled)

        assert first == second == third
        assert len(first) == 3

    def test_sorted_by_confidence_then_name(self, detection_service):
        transactions = (
            threshold_40_scenario()
            + create_monthly_series("BETA MUSIC", start=date(2024, 1, 3), count=6, amount="-99")
            + create_monthly_series("ALPHA VIDEO", start=date(2024, 1, 3), count=6, amount="-99")
        )

        results = detection_service.detect_subscriptions(transactions)

        assert [(s.recipient_name, s.confidence) for s in results] == [
            ("Alpha Video", 95),
            ("Beta Music", 95),
            ("Gym Membership", 40),
        ]

    def test_ids_deterministic_and_unique(self, detection_service):
        transactions = (
            create_monthly_series("ALPHA VIDEO", start=date(2024, 1, 3), count=6, amount="-99")
            + create_monthly_series("BETA MUSIC", start=date(2024, 1, 3), count=6, amount="-99")
        )

        results = detection_service.detect_subscriptions(transactions)

        assert results[0].id == generate_subscription_id("Alpha Video", 99.0)
        assert results[1].id == generate_subscription_id("Beta Music", 99.0)
        assert results[0].id != results[1].id

    def test_transaction_ids_in_date_order(self, detection_service):
        transactions = clean_monthly_scenario()

        results = detection_service.detect_subscriptions(list(reversed(transactions)))

        assert results[0].transaction_ids == [t.transaction_id for t in transactions]

    def test_amount_rounding_half_up(self, detection_service):
        transactions = create_monthly_series(
            "ROUNDING CO", start=date(2024, 1, 1), count=4, amount="-10.005"
        )

        results = detection_service.detect_subscriptions(transactions)

        assert results[0].average_amount == Decimal("10.01")
        assert results[0].min_amount == Decimal("10.01")

    def test_amount_variance_as_percentage(self, detection_service):
        results = detection_service.detect_subscriptions(threshold_40_scenario())

        assert results[0].amount_variance == Decimal("12.00")
        assert results[0].average_amount == Decimal("100.00")
        assert results[0].min_amount == Decimal("88.00")
        assert results[0].max_amount == Decimal("112.00")

    def test_shared_category_propagated(self, detection_service):
        transactions = create_monthly_series(
            "NETFLIX", start=date(2024, 1, 3), count=4, amount="-99",
            category_id="entertainment", subcategory_id="streaming"
        )

        results = detection_service.detect_subscriptions(transactions)

        assert results[0].category_id == "entertainment"
        assert results[0].subcategory_id == "streaming"

    def test_mixed_category_not_propagated(self, detection_service):
        transactions = create_monthly_series(
            "NETFLIX", start=date(2024, 1, 3), count=3, amount="-99", category_id="entertainment"
        ) + [create_transaction(date(2024, 4, 3), "NETFLIX", "-99", category_id="other")]

        results = detection_service.detect_subscriptions(transactions)

        assert results[0].category_id is None
        assert results[0].subcategory_id is None

    def test_records_not_confirmed(self, detection_service):
        results = detection_service.detect_subscriptions(clean_monthly_scenario())

        assert results[0].is_confirmed is None
        assert results[0].recurring_type is None


class TestConfidenceThreshold:
    """Test the inclusive minimum confidence boundary."""

    @pytest.fixture
    def detection_service(self):
        return SubscriptionDetectionService()

    def test_default_minimum(self):
        assert MIN_CONFIDENCE == 40

    def test_score_of_40_retained(self, detection_service):
        results = detection_service.detect_subscriptions(threshold_40_scenario())

        assert len(results) == 1
        assert results[0].confidence == 40
        assert results[0].confidence_level == ConfidenceLevel.LOW
        assert results[0].score_breakdown == ConfidenceScoreBreakdown(
            amount_score=15, timing_score=5, occurrence_score=10, clarity_score=10
        )

    def test_score_of_39_dropped(self, detection_service):
        assert detection_service.detect_subscriptions(threshold_39_scenario()) == []

    def test_score_of_39_retained_with_lower_minimum(self, detection_service):
        results = detection_service.detect_subscriptions(threshold_39_scenario(), min_confidence=39)

        assert len(results) == 1
        assert results[0].billing_frequency == BillingFrequency.QUARTERLY
        assert results[0].confidence == 39

    def test_configured_minimum(self):
        service = SubscriptionDetectionService(config=DetectionConfig(min_confidence=96))

        assert service.detect_subscriptions(clean_monthly_scenario()) == []

    @pytest.mark.parametrize("score,expected_count", [(39, 0), (40, 1), (41, 1)])
    def test_boundary_with_patched_score(self, detection_service, score, expected_count):
        breakdown = ConfidenceScoreBreakdown(
            amount_score=10, timing_score=10, occurrence_score=10, clarity_score=10
        )
        with patch.object(
            detection_service.confidence_calculator,
            'calculate',
            return_value=ConfidenceResult(score=score, breakdown=breakdown)
        ):
            results = detection_service.detect_subscriptions(clean_monthly_scenario())

        assert len(results) == expected_count


class TestMonotonicity:
    """Test that more regular groups never score lower."""

    @pytest.fixture
    def detection_service(self):
        return SubscriptionDetectionService(config=DetectionConfig(min_confidence=0))

    def test_lower_amount_variance_scores_at_least_as_high(self, detection_service):
        dates = [date(2024, 1, 3), date(2024, 2, 3), date(2024, 3, 3), date(2024, 4, 3)]
        steady = create_series("STEADY", dates, ["-100", "-101", "-100", "-99"])
        noisy = create_series("NOISY", dates, ["-100", "-110", "-100", "-90"])

        results = {s.recipient_name: s for s in detection_service.detect_subscriptions(steady + noisy)}

        assert results["Steady"].confidence >= results["Noisy"].confidence
        assert results["Steady"].score_breakdown.amount_score > results["Noisy"].score_breakdown.amount_score

    def test_higher_gap_consistency_scores_at_least_as_high(self, detection_service):
        regular = create_series(
            "REGULAR",
            [date(2024, 1, 1), date(2024, 1, 31), date(2024, 3, 1), date(2024, 3, 31)],
            "-50"
        )
        irregular = create_series(
            "IRREGULAR",
            [date(2024, 1, 1), date(2024, 1, 23), date(2024, 2, 22), date(2024, 3, 31)],
            "-50"
        )

        results = {s.recipient_name: s for s in detection_service.detect_subscriptions(regular + irregular)}

        assert results["Regular"].confidence >= results["Irregular"].confidence
        assert results["Regular"].score_breakdown.timing_score > results["Irregular"].score_breakdown.timing_score


class TestGroupSelection:
    """Test skip set, group cap and strict mode."""

    @pytest.fixture
    def two_groups(self):
        return (
            create_monthly_series("BETA MUSIC", start=date(2024, 1, 3), count=6, amount="-99")
            + create_monthly_series("ALPHA VIDEO", start=date(2024, 1, 3), count=6, amount="-99")
        )

    def test_skip_recipients(self, two_groups):
        service = SubscriptionDetectionService()

        results = service.detect_subscriptions(two_groups, skip_recipients={"Alpha Video"})

        assert [s.recipient_name for s in results] == ["Beta Music"]

    def test_skip_recipients_uses_normalized_keys(self, two_groups):
        service = SubscriptionDetectionService()

        results = service.detect_subscriptions(two_groups, skip_recipients={"ALPHA VIDEO"})

        assert len(results) == 2

    def test_max_groups_caps_in_key_order(self, two_groups, caplog):
        service = SubscriptionDetectionService(config=DetectionConfig(max_groups=1))

        results = service.detect_subscriptions(two_groups)

        assert [s.recipient_name for s in results] == ["Alpha Video"]
        assert "Evaluating 1 of 2 merchant groups" in caplog.text

    def test_max_groups_zero(self, two_groups):
        service = SubscriptionDetectionService(config=DetectionConfig(max_groups=0))

        assert service.detect_subscriptions(two_groups) == []

    def test_non_finite_amount_skipped_in_lenient_mode(self, two_groups, caplog):
        service = SubscriptionDetectionService()
        transactions = two_groups + [create_transaction(date(2024, 1, 5), "BROKEN", "NaN")]

        results = service.detect_subscriptions(transactions)

        assert len(results) == 2
        assert "non-finite" in caplog.text

    def test_non_finite_amount_raises_in_strict_mode(self, two_groups):
        service = SubscriptionDetectionService(config=DetectionConfig(strict=True))
        broken = create_transaction(date(2024, 1, 5), "BROKEN", "-Infinity", transaction_id="txn-broken")

        with pytest.raises(InvalidTransactionError) as exc_info:
            service.detect_subscriptions(two_groups + [broken])

        assert exc_info.value.transaction_id == "txn-broken"
        assert isinstance(exc_info.value, ValueError)


class TestExplainDetection:
    """Test per-group diagnostics."""

    @pytest.fixture
    def detection_service(self):
        return SubscriptionDetectionService()

    def test_accepted_group(self, detection_service):
        diagnostics = detection_service.explain_detection(clean_monthly_scenario(), "netflix")

        assert len(diagnostics) == 1
        diagnostic = diagnostics[0]
        assert diagnostic.accepted
        assert diagnostic.reason == RejectionReason.ACCEPTED
        assert diagnostic.recipient_name == "Netflix.com"
        assert diagnostic.gaps == [31, 29, 31, 30, 31]
        assert diagnostic.billing_frequency == BillingFrequency.MONTHLY
        assert diagnostic.confidence == 95

    def test_search_is_case_insensitive_substring(self, detection_service):
        transactions = clean_monthly_scenario() + create_monthly_series(
            "SPOTIFY", start=date(2024, 1, 1), count=3, amount="-10"
        )

        diagnostics = detection_service.explain_detection(transactions, "FLIX")

        assert [d.recipient_name for d in diagnostics] == ["Netflix.com"]

    def test_no_matches(self, detection_service):
        assert detection_service.explain_detection(clean_monthly_scenario(), "spotify") == []

    def test_too_few_transactions(self, detection_service):
        transactions = [create_transaction(date(2024, 1, 1), "GYM", "-10")]

        diagnostic = detection_service.explain_detection(transactions, "gym")[0]

        assert diagnostic.reason == RejectionReason.TOO_FEW_TRANSACTIONS
        assert diagnostic.transaction_count == 1

    def test_no_frequency_match(self, detection_service):
        transactions = create_series("GYM", [date(2024, 1, 1), date(2024, 2, 20)], "-10")

        diagnostic = detection_service.explain_detection(transactions, "gym")[0]

        assert diagnostic.reason == RejectionReason.NO_FREQUENCY_MATCH
        assert diagnostic.gaps == [50]

    def test_too_few_occurrences(self, detection_service):
        transactions = create_monthly_series("GYM", start=date(2024, 1, 1), count=2, amount="-10")

        diagnostic = detection_service.explain_detection(transactions, "gym")[0]

        assert diagnostic.reason == RejectionReason.TOO_FEW_OCCURRENCES
        assert diagnostic.required_occurrences == 3
        assert diagnostic.billing_frequency == BillingFrequency.MONTHLY

    def test_amounts_inconsistent(self, detection_service):
        transactions = create_series(
            "POWER",
            [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1)],
            ["-10", "-20", "-40", "-80"]
        )

        diagnostic = detection_service.explain_detection(transactions, "power")[0]

        assert diagnostic.reason == RejectionReason.AMOUNTS_INCONSISTENT
        assert diagnostic.matching_count == 0
        assert diagnostic.required_matches == 2
        assert diagnostic.core_amount == 30.0

    def test_low_confidence(self, detection_service):
        diagnostic = detection_service.explain_detection(threshold_39_scenario(), "insurance")[0]

        assert diagnostic.reason == RejectionReason.LOW_CONFIDENCE
        assert diagnostic.confidence == 39
        assert diagnostic.score_breakdown.total == 39

    def test_multiple_groups_ordered_by_name(self, detection_service):
        transactions = (
            create_monthly_series("GYM NORTH", start=date(2024, 1, 1), count=2, amount="-10")
            + create_monthly_series("GYM EAST", start=date(2024, 1, 1), count=4, amount="-10")
        )

        diagnostics = detection_service.explain_detection(transactions, "gym")

        assert [d.recipient_name for d in diagnostics] == ["Gym East", "Gym North"]
        assert [d.accepted for d in diagnostics] == [True, False]

    def test_diagnostics_logged_at_debug(self, detection_service, caplog):
        caplog.set_level(logging.DEBUG, logger="recurring_detection")

        detection_service.explain_detection(clean_monthly_scenario(), "netflix")

        assert "Netflix.com: detected as monthly with confidence 95" in caplog.text


class TestDetectSubscriptionsFunction:
    """Test the module-level convenience function."""

    def test_default_configuration(self):
        results = detect_subscriptions(clean_monthly_scenario())

        assert len(results) == 1
        assert results[0].confidence == 95

    def test_min_confidence(self):
        assert detect_subscriptions(threshold_40_scenario(), min_confidence=41) == []

    def test_custom_config(self):
        transactions = clean_monthly_scenario() + [
            create_transaction(date(2024, 1, 5), "BROKEN", "NaN")
        ]

        with pytest.raises(InvalidTransactionError):
            detect_subscriptions(transactions, config=DetectionConfig(strict=True))

    def test_accepts_generator(self):
        results = detect_subscriptions(t for t in clean_monthly_scenario())

        assert len(results) == 1

    def test_package_exports(self):
        import recurring_detection

        assert recurring_detection.detect_subscriptions is detect_subscriptions
        assert recurring_detection.SubscriptionDetectionService is SubscriptionDetectionService


def test_weekly_gaps_with_drift():
    """Test weekly charges that slip a day now and then."""
    start = date(2024, 1, 1)
    offsets = [0, 7, 15, 21, 28, 36]
    transactions = create_series("GYM", [start + timedelta(days=o) for o in offsets], "-45")

    results = detect_subscriptions(transactions)

    assert len(results) == 1
    assert results[0].billing_frequency == BillingFrequency.WEEKLY
    assert results[0].score_breakdown.timing_score == 30
