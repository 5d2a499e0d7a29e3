"""
Per-stage latency histogram.

Thin wrapper over hdrh's HdrHistogram. Values outside the trackable range
(negative durations from out-of-order input, or anything above the highest
trackable value) are counted and logged instead of recorded.

Mean and standard deviation come from running sums kept on record(), so
they are exact and do not walk the bucket array. Percentiles are read in a
single pass with get_percentile_to_value_dict().
"""

import logging
import math
from typing import Dict, Sequence

from hdrh.histogram import HdrHistogram

from ..core.errors import ErrorCode, PipespyError

logger = logging.getLogger(__name__)


# Largest recordable duration, in input time units
HIGHEST_TRACKABLE_VALUE = 360_000_000
SIGNIFICANT_DIGITS = 5


class StageHistogram:
    """HDR histogram of completed durations for one stage."""

    def __init__(
        self,
        stage: str,
        highest_trackable_value: int = HIGHEST_TRACKABLE_VALUE,
        significant_digits: int = SIGNIFICANT_DIGITS,
    ):
        self.stage = stage
        self.highest_trackable_value = highest_trackable_value
        self.significant_digits = significant_digits
        self.histogram = HdrHistogram(1, highest_trackable_value, significant_digits)
        self.unrecordable = 0

        # Running totals for exact mean/stddev
        self._count = 0
        self._sum = 0
        self._sum_squares = 0

    def record(self, value: int) -> bool:
        """Record one duration. Returns False if it was out of range."""
        if value < 0 or value > self.highest_trackable_value:
            self.unrecordable += 1
            error = PipespyError(
                code=ErrorCode.E2002_UNRECORDABLE_LATENCY,
                context={
                    'stage': self.stage,
                    'value': value,
                    'highest': self.highest_trackable_value,
                },
            )
            logger.log(error.level, str(error))
            return False
        self.histogram.record_value(value)
        self._count += 1
        self._sum += value
        self._sum_squares += value * value
        return True

    @property
    def total_count(self) -> int:
        return self._count

    def value_at_percentile(self, p: float) -> int:
        """Value at percentile p (fraction, 0.0 to 1.0)."""
        if self._count == 0:
            return 0
        return self.histogram.get_value_at_percentile(p * 100)

    def values_at_percentiles(self, percentiles: Sequence[float]) -> Dict[float, int]:
        """Values for several percentiles (fractions) in one pass."""
        if self._count == 0:
            return {p: 0 for p in percentiles}
        scaled = {p: p * 100 for p in percentiles}
        values = self.histogram.get_percentile_to_value_dict(list(scaled.values()))
        return {p: values[scaled[p]] for p in percentiles}

    def rank_at_percentile(self, p: float) -> int:
        """Number of samples at or below percentile p."""
        total = self._count
        if total == 0:
            return 0
        return min(total, max(1, int(p * total + 0.5)))

    @property
    def mean(self) -> float:
        if self._count == 0:
            return 0.0
        return self._sum / self._count

    @property
    def stddev(self) -> float:
        """Population standard deviation."""
        if self._count == 0:
            return 0.0
        # n^2 * variance, exact in integers
        scaled_variance = self._count * self._sum_squares - self._sum * self._sum
        return math.sqrt(max(scaled_variance, 0)) / self._count

    @property
    def min(self) -> int:
        if self._count == 0:
            return 0
        return self.histogram.get_min_value()

    @property
    def max(self) -> int:
        if self._count == 0:
            return 0
        return self.histogram.get_max_value()
