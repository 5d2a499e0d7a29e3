"""
Post-processing commands over a complete log.

- sort: order a raw log by timestamp (not implemented)
- latency-histogram: reconstruct per-stage latency from a sorted log

Unknown types do nothing.
"""

import logging
from pathlib import Path
from typing import Optional, TextIO

from .correlator import LatencyCorrelator, run_latency
from .report import DEFAULT_PERCENTILES

logger = logging.getLogger(__name__)


SORT = 'sort'
LATENCY_HISTOGRAM = 'latency-histogram'
POST_PROCESS_TYPES = (SORT, LATENCY_HISTOGRAM)


def sort_log(input_file: Path, output_file: Path) -> None:
    raise NotImplementedError("Not yet implemented")


def latency_histogram(
    input_file: Path,
    out: TextIO,
    correlator: Optional[LatencyCorrelator] = None,
    percentiles=DEFAULT_PERCENTILES,
    scaling: float = 1.0,
) -> LatencyCorrelator:
    """
    Correlate a sorted log file and write the per-stage report.

    Raises:
        LineFormatError: On the first malformed line; no report is written.
    """
    with open(input_file, 'r', encoding='utf-8') as f:
        correlator = run_latency(f, correlator)

    if correlator.unrecordable:
        logger.warning(f"{correlator.unrecordable} durations were outside the histogram range")

    correlator.report(out, percentiles, scaling)
    return correlator


def post_process(
    type_: str,
    input_file: Path,
    output_file: Optional[Path],
    out: TextIO,
    correlator: Optional[LatencyCorrelator] = None,
    percentiles=DEFAULT_PERCENTILES,
    scaling: float = 1.0,
) -> Optional[LatencyCorrelator]:
    """
    Dispatch one post-processing run.

    output_file defaults to input_file (sorting is in place).
    """
    output_file = output_file or input_file

    if type_ == SORT:
        sort_log(input_file, output_file)
    elif type_ == LATENCY_HISTOGRAM:
        out.write("This command currently requires a sorted file\n")
        return latency_histogram(input_file, out, correlator, percentiles, scaling)
    else:
        logger.debug(f"Unknown post-process type {type_!r}, nothing to do")
    return None
