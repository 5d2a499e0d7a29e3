"""
Open latency interval for one (stage, trace id).

start only moves earlier and end only moves later while the interval is
open. The interval is complete once both have been set, and it is recorded
at most once: the owner discards it right after record_if_complete().
"""

import math

from .histogram import StageHistogram


class PendingLatency:
    """Interval [start, end] waiting to be recorded into a stage histogram."""

    __slots__ = ('histogram', 'start', 'end')

    def __init__(self, histogram: StageHistogram):
        self.histogram = histogram
        self.start = math.inf
        self.end = -math.inf

    def set_start(self, timestamp: int) -> None:
        if timestamp < self.start:
            self.start = timestamp

    def set_end(self, timestamp: int) -> None:
        if timestamp > self.end:
            self.end = timestamp

    @property
    def complete(self) -> bool:
        return self.start != math.inf and self.end != -math.inf

    @property
    def duration(self):
        if not self.complete:
            return None
        return self.end - self.start

    def record_if_complete(self) -> bool:
        """Record end - start if complete. Returns True if recorded."""
        if not self.complete:
            return False
        return self.histogram.record(self.end - self.start)

    def __repr__(self) -> str:
        return f"PendingLatency(stage={self.histogram.stage!r}, start={self.start}, end={self.end})"
