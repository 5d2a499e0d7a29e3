"""
Percentile distribution report.

One block per stage:

    ======= <stage> =======
           Value     Percentile TotalCount 1/(1-Percentile)

            5.00 0.500000000000          1           2.00
            ...
            9.00 1.000000000000          2
    #[Mean    =         7.00, StdDeviation   =         2.00]
    #[Max     =         9.00, Total count    =            2]
    #[Min     =         5.00, Unrecordable   =            0]

followed by a blank line. Values are divided by the unit scaling ratio.
"""

from typing import Dict, Sequence, TextIO

from .histogram import StageHistogram


DEFAULT_PERCENTILES = (0.5, 0.75, 0.9, 0.95, 0.99, 0.999, 1.0)


def write_stage_report(
    out: TextIO,
    histogram: StageHistogram,
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
    scaling: float = 1.0,
) -> None:
    out.write(f"======= {histogram.stage} =======\n")
    out.write(f"{'Value':>12} {'Percentile':>14} {'TotalCount':>10} {'1/(1-Percentile)':>14}\n\n")

    values = histogram.values_at_percentiles(percentiles)
    for p in sorted(percentiles):
        value = values[p] / scaling
        count = histogram.rank_at_percentile(p)
        if p < 1.0:
            out.write(f"{value:12.2f} {p:2.12f} {count:10d} {1 / (1 - p):14.2f}\n")
        else:
            out.write(f"{value:12.2f} {p:2.12f} {count:10d}\n")

    out.write(
        f"#[Mean    = {histogram.mean / scaling:12.2f}, "
        f"StdDeviation   = {histogram.stddev / scaling:12.2f}]\n"
    )
    out.write(
        f"#[Max     = {histogram.max / scaling:12.2f}, "
        f"Total count    = {histogram.total_count:12d}]\n"
    )
    out.write(
        f"#[Min     = {histogram.min / scaling:12.2f}, "
        f"Unrecordable   = {histogram.unrecordable:12d}]\n"
    )
    out.write("\n")


def write_report(
    out: TextIO,
    histograms: Dict[str, StageHistogram],
    percentiles: Sequence[float] = DEFAULT_PERCENTILES,
    scaling: float = 1.0,
) -> None:
    """Write every stage's block, in the order stages were first seen."""
    for histogram in histograms.values():
        write_stage_report(out, histogram, percentiles, scaling)
