"""
Performance monitoring utilities for recurring charge detection.

This module provides a context manager for timing a detection run and its
stages, including:
- Grouping time
- Pattern analysis time
- Ranking time
- Total execution time
"""

import time
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

SLOW_RUN_WARNING_MS = 10000
SLOW_RUN_ERROR_MS = 30000


@dataclass
class DetectionMetrics:
    """Container for detection run performance metrics."""
    operation_name: str
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    elapsed_ms: Optional[float] = None
    transaction_count: int = 0
    groups_evaluated: int = 0
    subscriptions_detected: int = 0
    stage_ms: Dict[str, float] = field(default_factory=dict)

    def finish(self):
        """Mark the operation as finished and calculate elapsed time."""
        self.end_time = time.time()
        self.elapsed_ms = (self.end_time - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary for logging."""
        return {
            'operation_name': self.operation_name,
            'elapsed_ms': self.elapsed_ms,
            'transaction_count': self.transaction_count,
            'groups_evaluated': self.groups_evaluated,
            'subscriptions_detected': self.subscriptions_detected,
            'stage_ms': dict(self.stage_ms),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

    def log_metrics(self):
        """Log the performance metrics."""
        metrics = self.to_dict()
        elapsed_ms = self.elapsed_ms or 0.0

        # Determine log level based on performance
        if elapsed_ms > SLOW_RUN_ERROR_MS:
            logger.error(
                f"SLOW DETECTION RUN: {self.operation_name} took {elapsed_ms:.2f}ms",
                extra={'detection_metrics': metrics}
            )
        elif elapsed_ms > SLOW_RUN_WARNING_MS:
            logger.warning(
                f"Slow detection run: {self.operation_name} took {elapsed_ms:.2f}ms",
                extra={'detection_metrics': metrics}
            )
        else:
            logger.info(
                f"Detection run completed: {self.operation_name} in {elapsed_ms:.2f}ms "
                f"({self.transaction_count} transactions, {self.groups_evaluated} groups, "
                f"{self.subscriptions_detected} detected)",
                extra={'detection_metrics': metrics}
            )

        if self.stage_ms:
            breakdown = ', '.join(f"{stage}: {ms:.2f}ms" for stage, ms in self.stage_ms.items())
            logger.debug(
                f"Detection run breakdown for {self.operation_name}: {breakdown}",
                extra={'detection_metrics': metrics}
            )


class StageTimer:
    """Times one named stage and records it on the metrics object."""

    def __init__(self, metrics: DetectionMetrics, stage: str):
        self.metrics = metrics
        self.stage = stage
        self.start_time: float = 0.0

    def __enter__(self):
        self.start_time = time.time()
        logger.debug(f"Starting stage: {self.stage}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed_ms = (time.time() - self.start_time) * 1000
        self.metrics.stage_ms[self.stage] = elapsed_ms
        logger.debug(f"Completed stage {self.stage} in {elapsed_ms:.2f}ms")


class DetectionPerformanceTracker:
    """
    Context manager for detection run performance tracking.

    Usage:
        with DetectionPerformanceTracker("detect_subscriptions") as tracker:
            tracker.set_transaction_count(len(transactions))

            with tracker.stage('grouping'):
                groups = grouper.group(transactions)
            tracker.set_groups_evaluated(len(groups))

            with tracker.stage('pattern_analysis'):
                detected = analyze(groups)
            tracker.set_subscriptions_detected(len(detected))
    """

    def __init__(self, operation_name: str):
        self.metrics = DetectionMetrics(operation_name=operation_name)

    def __enter__(self):
        logger.debug(f"Starting detection run: {self.metrics.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.metrics.finish()
        self.metrics.log_metrics()

    def stage(self, stage_name: str) -> StageTimer:
        """Create a context manager for tracking a stage."""
        return StageTimer(self.metrics, stage_name)

    def set_transaction_count(self, count: int):
        """Set the number of transactions being processed."""
        self.metrics.transaction_count = count

    def set_groups_evaluated(self, count: int):
        """Set the number of merchant groups evaluated."""
        self.metrics.groups_evaluated = count

    def set_subscriptions_detected(self, count: int):
        """Set the number of recurring charges detected."""
        self.metrics.subscriptions_detected = count
