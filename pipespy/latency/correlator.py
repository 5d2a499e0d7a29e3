"""
Latency reconstruction from one-sided observations.

No log line carries a latency. Each line only says that a trace id left one
stage and reached another at some time. For every stage the correlator
keeps one open interval per trace id and closes it from later lines:

- Arrival at to_stage: the open interval for (to_stage, trace id), if any,
  is recorded when complete and discarded. A fresh interval starts at the
  arrival time.
- Departure from from_stage: the open interval for (from_stage, trace id)
  is extended to the departure time, creating it if needed. An existing
  interval is never replaced on departure.

So each arrival opens a new measurement window and each departure stretches
the current one. A trace that passes through a stage twice (request, then
response) yields one duration per pass.

Trace id 0 means "not correlated" and is ignored.

At end of input flush() records every interval that is complete.
"""

import logging
from typing import Dict, Iterable, Optional, Sequence, TextIO

from .histogram import StageHistogram, HIGHEST_TRACKABLE_VALUE, SIGNIFICANT_DIGITS
from .parser import ParsedTraceEvent, parse_line
from .pending import PendingLatency
from .report import DEFAULT_PERCENTILES, write_report

logger = logging.getLogger(__name__)


class LatencyCorrelator:
    """
    Per-stage correlation table and histograms.

    Example:
        correlator = LatencyCorrelator()
        for line in lines:
            correlator.handle(parse_line(line))
        correlator.flush()
        for stage, histogram in correlator.histograms.items():
            print(stage, histogram.value_at_percentile(0.99))
    """

    def __init__(
        self,
        highest_trackable_value: int = HIGHEST_TRACKABLE_VALUE,
        significant_digits: int = SIGNIFICANT_DIGITS,
    ):
        self.highest_trackable_value = highest_trackable_value
        self.significant_digits = significant_digits

        # stage -> histogram, in first-seen order
        self.histograms: Dict[str, StageHistogram] = {}
        # stage -> trace id -> open interval
        self.pending: Dict[str, Dict[int, PendingLatency]] = {}

        self.events_handled: int = 0
        self.events_uncorrelated: int = 0

    def histogram_for(self, stage: str) -> StageHistogram:
        histogram = self.histograms.get(stage)
        if histogram is None:
            histogram = StageHistogram(
                stage,
                self.highest_trackable_value,
                self.significant_digits,
            )
            self.histograms[stage] = histogram
        return histogram

    def handle(self, event: ParsedTraceEvent) -> None:
        """Apply one observation, in input order."""
        if event.trace_id == 0:
            self.events_uncorrelated += 1
            return

        self.events_handled += 1
        trace_id = event.trace_id

        # Arrival closes the previous window at to_stage and opens a new one
        arrivals = self.pending.setdefault(event.to_stage, {})
        previous = arrivals.get(trace_id)
        if previous is not None:
            previous.record_if_complete()
        arrival = PendingLatency(self.histogram_for(event.to_stage))
        arrival.set_start(event.timestamp)
        arrivals[trace_id] = arrival

        # Departure extends the current window at from_stage
        departures = self.pending.setdefault(event.from_stage, {})
        departure = departures.get(trace_id)
        if departure is None:
            departure = PendingLatency(self.histogram_for(event.from_stage))
            departures[trace_id] = departure
        departure.set_end(event.timestamp)

    def flush(self) -> int:
        """
        Record every complete open interval and clear the table.

        Returns:
            Number of intervals recorded.
        """
        recorded = 0
        for intervals in self.pending.values():
            for interval in intervals.values():
                if interval.record_if_complete():
                    recorded += 1
        self.pending.clear()
        return recorded

    @property
    def pending_count(self) -> int:
        return sum(len(intervals) for intervals in self.pending.values())

    @property
    def unrecordable(self) -> int:
        return sum(h.unrecordable for h in self.histograms.values())

    def report(
        self,
        out: TextIO,
        percentiles: Sequence[float] = DEFAULT_PERCENTILES,
        scaling: float = 1.0,
    ) -> None:
        write_report(out, self.histograms, percentiles, scaling)


def run_latency(
    lines: Iterable[str],
    correlator: Optional[LatencyCorrelator] = None,
) -> LatencyCorrelator:
    """
    Correlate every line, in order, then flush.

    Raises:
        LineFormatError: On the first line that does not match the grammar.
            Nothing after it is read and nothing is flushed.
    """
    correlator = correlator or LatencyCorrelator()
    for line_number, line in enumerate(lines, start=1):
        correlator.handle(parse_line(line, line_number))
    recorded = correlator.flush()
    logger.debug(
        f"Correlated {correlator.events_handled} events "
        f"({correlator.events_uncorrelated} uncorrelated), "
        f"{recorded} intervals recorded at end of input"
    )
    return correlator
