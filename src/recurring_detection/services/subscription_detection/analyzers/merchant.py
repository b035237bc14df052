"""
Merchant grouper for recurring charge detection.

Partitions expense transactions into candidate merchant groups keyed by the
normalized recipient name.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, List

from recurring_detection.models.transaction import Transaction
from recurring_detection.services.subscription_detection.normalization import normalize_recipient_name

logger = logging.getLogger(__name__)


class InvalidTransactionError(ValueError):
    """Raised in strict mode for transactions the engine cannot reason about."""

    def __init__(self, message: str, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(message)


@dataclass
class MerchantGroup:
    """Transactions sharing one normalized recipient key, sorted by date."""
    key: str
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def occurrence_count(self) -> int:
        return len(self.transactions)

    @property
    def dates(self) -> List[date]:
        return [txn.date for txn in self.transactions]

    @property
    def amounts(self) -> List[float]:
        return [float(txn.amount) for txn in self.transactions]

    @property
    def transaction_ids(self) -> List[str]:
        return [txn.transaction_id for txn in self.transactions]


class MerchantGrouper:
    """
    Groups expense transactions by normalized recipient name.

    Only finite negative amounts are considered; income and zero-amount
    transactions are excluded entirely. Key equality is exact, so differently
    normalized spellings of the same merchant form separate groups.
    """

    def __init__(
        self,
        normalizer: Callable[[str], str] = normalize_recipient_name,
        strict: bool = False
    ):
        """
        Initialize the merchant grouper.

        Args:
            normalizer: Function mapping a description to a merchant key
            strict: Raise InvalidTransactionError on non-finite amounts instead of skipping them
        """
        self.normalizer = normalizer
        self.strict = strict

    def group(self, transactions: Iterable[Transaction]) -> Dict[str, MerchantGroup]:
        """
        Partition transactions into merchant groups.

        Args:
            transactions: Transactions in any order (not modified)

        Returns:
            Dictionary mapping merchant key to its date-sorted MerchantGroup
        """
        groups: Dict[str, MerchantGroup] = {}
        skipped_non_finite = 0

        for txn in transactions:
            if not txn.amount.is_finite():
                if self.strict:
                    raise InvalidTransactionError(
                        f"Transaction {txn.transaction_id} has non-finite amount {txn.amount}",
                        transaction_id=txn.transaction_id
                    )
                skipped_non_finite += 1
                continue

            # Only expenses can be recurring charges
            if txn.amount >= 0:
                continue

            key = self.normalizer(txn.description)
            if not key:
                continue

            groups.setdefault(key, MerchantGroup(key=key)).transactions.append(txn)

        if skipped_non_finite:
            logger.warning(f"Skipped {skipped_non_finite} transactions with non-finite amounts")

        # sort() is stable, so same-day transactions keep their input order
        for merchant_group in groups.values():
            merchant_group.transactions.sort(key=lambda t: t.date)

        return groups
