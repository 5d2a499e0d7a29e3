"""Offline latency reconstruction engine."""

from .parser import ParsedTraceEvent, parse_line, LINE_PATTERN
from .histogram import StageHistogram, HIGHEST_TRACKABLE_VALUE, SIGNIFICANT_DIGITS
from .pending import PendingLatency
from .correlator import LatencyCorrelator, run_latency
from .report import DEFAULT_PERCENTILES, write_report, write_stage_report
from .command import (
    SORT,
    LATENCY_HISTOGRAM,
    POST_PROCESS_TYPES,
    sort_log,
    latency_histogram,
    post_process,
)

__all__ = [
    'ParsedTraceEvent',
    'parse_line',
    'LINE_PATTERN',
    'StageHistogram',
    'HIGHEST_TRACKABLE_VALUE',
    'SIGNIFICANT_DIGITS',
    'PendingLatency',
    'LatencyCorrelator',
    'run_latency',
    'DEFAULT_PERCENTILES',
    'write_report',
    'write_stage_report',
    'SORT',
    'LATENCY_HISTOGRAM',
    'POST_PROCESS_TYPES',
    'sort_log',
    'latency_histogram',
    'post_process',
]
