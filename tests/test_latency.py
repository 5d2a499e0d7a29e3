"""
Tests for the offline latency engine.

These tests verify:
1. Line grammar and arrow normalisation
2. Arrival/departure correlation, including revisits of a stage
3. Trace id 0 is ignored
4. The first malformed line stops the run before anything is reported
5. Open intervals are flushed at end of input
6. Report layout
"""

import io

import pytest

from pipespy.core.errors import LineFormatError
from pipespy.latency import (
    LatencyCorrelator,
    ParsedTraceEvent,
    PendingLatency,
    StageHistogram,
    parse_line,
    run_latency,
    write_report,
    post_process,
    latency_histogram,
    SORT,
    LATENCY_HISTOGRAM,
)


def values(histogram: StageHistogram):
    """Recorded values, smallest first."""
    return [
        item.value_iterated_to
        for item in histogram.histogram.get_recorded_iterator()
        for _ in range(item.count_at_value_iterated_to)
    ]


class TestParser:
    """Test the trace line grammar."""

    def test_forward(self):
        event = parse_line("100, 0x1f, client -> http, BEGIN")
        assert event == ParsedTraceEvent(100, 0x1f, 'client', 'http')

    def test_backward_is_normalised(self):
        """'A <- B' means B sent to A."""
        event = parse_line("100, 0x1, client <- http, WINDOW")
        assert event.from_stage == 'http'
        assert event.to_stage == 'client'

    def test_trailing_newline(self):
        assert parse_line("5, 0x2, a -> b, DATA [3]\r\n").timestamp == 5

    def test_rest_may_contain_anything(self):
        event = parse_line("5, 0x2, a -> b, DATA [3] [0] [0x0000000000000000]")
        assert (event.from_stage, event.to_stage) == ('a', 'b')

    def test_large_trace_id(self):
        assert parse_line("1, 0xffffffffffffffff, a -> b, x").trace_id == 0xffffffffffffffff

    @pytest.mark.parametrize('line', [
        "",
        "garbage",
        "100, 1f, a -> b, BEGIN",
        "100, 0x1, a => b, BEGIN",
        "100, 0x1, a -> b",
        "-5, 0x1, a -> b, BEGIN",
        "100, 0xzz, a -> b, BEGIN",
    ])
    def test_malformed(self, line):
        with pytest.raises(LineFormatError):
            parse_line(line)

    def test_error_message(self):
        with pytest.raises(LineFormatError) as info:
            parse_line("nope\n", line_number=3)
        assert str(info.value) == 'Failed to match input, potential bug: "nope"'
        assert info.value.line_number == 3
        assert info.value.EXIT_STATUS == 2


class TestPendingLatency:
    """Test open intervals."""

    def test_incomplete_not_recorded(self):
        histogram = StageHistogram('a')
        pending = PendingLatency(histogram)
        pending.set_start(10)
        assert not pending.complete
        assert pending.duration is None
        assert not pending.record_if_complete()
        assert histogram.total_count == 0

    def test_widening(self):
        """Start only moves earlier, end only later."""
        pending = PendingLatency(StageHistogram('a'))
        pending.set_start(10)
        pending.set_start(12)
        pending.set_end(20)
        pending.set_end(15)
        assert pending.duration == 10


class TestStageHistogram:
    """Test histogram range handling."""

    def test_out_of_range(self):
        histogram = StageHistogram('a', highest_trackable_value=1000, significant_digits=3)
        assert not histogram.record(-1)
        assert not histogram.record(1001)
        assert histogram.record(1000)
        assert histogram.unrecordable == 2
        assert histogram.total_count == 1

    def test_empty(self):
        histogram = StageHistogram('a')
        assert histogram.value_at_percentile(0.99) == 0
        assert histogram.mean == 0.0
        assert histogram.max == 0

    def test_exact_small_values(self):
        histogram = StageHistogram('a')
        for value in (5, 9):
            histogram.record(value)
        assert histogram.min == 5
        assert histogram.max == 9
        assert histogram.value_at_percentile(1.0) == 9
        assert histogram.rank_at_percentile(0.5) == 1

    def test_exact_mean_and_stddev(self):
        histogram = StageHistogram('a')
        for value in (5, 9):
            histogram.record(value)
        assert histogram.mean == 7.0
        assert histogram.stddev == 2.0

    def test_stddev_of_constant_is_zero(self):
        histogram = StageHistogram('a')
        for _ in range(3):
            histogram.record(123_456)
        assert histogram.mean == 123_456.0
        assert histogram.stddev == 0.0

    def test_out_of_range_not_in_mean(self):
        histogram = StageHistogram('a', highest_trackable_value=1000, significant_digits=3)
        histogram.record(10)
        histogram.record(5000)
        assert histogram.mean == 10.0

    def test_out_of_range_logs_error_code(self, caplog):
        histogram = StageHistogram('proxy', highest_trackable_value=1000, significant_digits=3)
        with caplog.at_level('WARNING', logger='pipespy.latency'):
            histogram.record(-3)
        assert '[E2002]' in caplog.text
        assert 'stage=proxy' in caplog.text
        assert 'value=-3' in caplog.text

    def test_values_at_percentiles(self):
        histogram = StageHistogram('a')
        for value in range(1, 101):
            histogram.record(value)
        result = histogram.values_at_percentiles((0.5, 0.99, 1.0))
        assert result == {0.5: 50, 0.99: 99, 1.0: 100}

    def test_values_at_percentiles_empty(self):
        histogram = StageHistogram('a')
        assert histogram.values_at_percentiles((0.5, 1.0)) == {0.5: 0, 1.0: 0}


class TestCorrelator:
    """Test arrival/departure correlation."""

    def test_request_through_stages(self):
        """Time between reaching a stage and leaving it."""
        correlator = run_latency([
            "10, 0x1, A -> B, BEGIN",
            "15, 0x1, B -> C, BEGIN",
            "20, 0x1, C -> B, BEGIN",
        ])

        assert values(correlator.histograms['B']) == [5]
        assert values(correlator.histograms['C']) == [5]
        assert values(correlator.histograms['A']) == []

    def test_stages_in_first_seen_order(self):
        correlator = run_latency([
            "10, 0x1, A -> B, BEGIN",
            "15, 0x1, B -> C, BEGIN",
        ])
        assert list(correlator.histograms) == ['B', 'A', 'C']

    def test_revisit_records_once_per_pass(self):
        """A -> B, B -> A, A -> B: B holds exactly one duration."""
        correlator = LatencyCorrelator()
        for line in ("1, 0x5, A -> B, x", "2, 0x5, B -> A, x", "3, 0x5, A -> B, x"):
            correlator.handle(parse_line(line))

        assert values(correlator.histograms['B']) == [1]

    def test_arrival_replaces_incomplete_interval(self):
        correlator = LatencyCorrelator()
        correlator.handle(ParsedTraceEvent(1, 7, 'A', 'B'))
        correlator.handle(ParsedTraceEvent(4, 7, 'X', 'B'))
        assert correlator.pending['B'][7].start == 4
        assert correlator.histograms['B'].total_count == 0

    def test_departure_keeps_existing_interval(self):
        correlator = LatencyCorrelator()
        correlator.handle(ParsedTraceEvent(1, 7, 'A', 'B'))
        correlator.handle(ParsedTraceEvent(3, 7, 'B', 'C'))
        correlator.handle(ParsedTraceEvent(8, 7, 'B', 'D'))
        interval = correlator.pending['B'][7]
        assert (interval.start, interval.end) == (1, 8)

    def test_trace_ids_independent(self):
        correlator = run_latency([
            "1, 0x1, A -> B, x",
            "2, 0x2, A -> B, x",
            "4, 0x2, B -> C, x",
            "9, 0x1, B -> C, x",
        ])
        assert values(correlator.histograms['B']) == [2, 8]

    def test_uncorrelated_ignored(self):
        correlator = run_latency([
            "1, 0x0, A -> B, x",
            "2, 0x0, B -> C, x",
        ])
        assert correlator.histograms == {}
        assert correlator.pending_count == 0
        assert correlator.events_uncorrelated == 2
        assert correlator.events_handled == 0

    def test_flush_records_open_intervals(self):
        correlator = LatencyCorrelator()
        correlator.handle(ParsedTraceEvent(1, 7, 'X', 'Y'))
        correlator.handle(ParsedTraceEvent(4, 7, 'Y', 'Z'))
        assert correlator.histograms['Y'].total_count == 0

        assert correlator.flush() == 1
        assert values(correlator.histograms['Y']) == [3]
        assert values(correlator.histograms['Z']) == []
        assert correlator.pending_count == 0

    def test_out_of_order_counted(self):
        """A departure before the arrival is unrecordable, not an error."""
        correlator = run_latency([
            "10, 0x1, A -> B, x",
            "5, 0x1, B -> C, x",
        ])
        assert correlator.histograms['B'].total_count == 0
        assert correlator.unrecordable == 1

    def test_malformed_stops_run(self):
        """Nothing after the bad line is read and nothing is flushed."""
        consumed = []

        def lines():
            for line in ("1, 0x1, A -> B, x", "2, 0x1, B -> C, x", "oops", "3, 0x1, C -> D, x"):
                consumed.append(line)
                yield line

        correlator = LatencyCorrelator()
        with pytest.raises(LineFormatError) as info:
            run_latency(lines(), correlator)

        assert info.value.line_number == 3
        assert consumed == ["1, 0x1, A -> B, x", "2, 0x1, B -> C, x", "oops"]
        assert 'D' not in correlator.histograms
        assert correlator.histograms['B'].total_count == 0

    def test_configured_range(self):
        correlator = LatencyCorrelator(highest_trackable_value=100, significant_digits=2)
        correlator.handle(ParsedTraceEvent(0, 1, 'A', 'B'))
        correlator.handle(ParsedTraceEvent(500, 1, 'B', 'C'))
        correlator.flush()
        assert correlator.histograms['B'].unrecordable == 1


class TestReport:
    """Test report output."""

    def test_stage_block(self):
        correlator = run_latency([
            "10, 0x1, A -> B, x",
            "15, 0x1, B -> C, x",
            "20, 0x1, C -> B, x",
        ])
        out = io.StringIO()
        write_report(out, correlator.histograms, percentiles=(0.5, 1.0))
        text = out.getvalue()

        blocks = [line for line in text.splitlines() if line.startswith('=======')]
        assert blocks == ['======= B =======', '======= A =======', '======= C =======']

        b_block = text.split('======= A =======')[0]
        assert '        5.00 0.500000000000          1           2.00\n' in b_block
        assert '        5.00 1.000000000000          1\n' in b_block
        assert '#[Max     =         5.00, Total count    =            1]' in b_block
        assert '#[Min     =         5.00, Unrecordable   =            0]' in b_block

    def test_scaling(self):
        histogram = StageHistogram('s')
        histogram.record(2000)
        out = io.StringIO()
        write_report(out, {'s': histogram}, percentiles=(1.0,), scaling=1000.0)
        assert '        2.00 1.000000000000' in out.getvalue()

    def test_correlator_report(self):
        correlator = run_latency(["1, 0x1, A -> B, x", "4, 0x1, B -> C, x"])
        out = io.StringIO()
        correlator.report(out, percentiles=(1.0,))
        assert '        3.00 1.000000000000          1\n' in out.getvalue()

    def test_empty_stage(self):
        out = io.StringIO()
        write_report(out, {'a': StageHistogram('a')}, percentiles=(0.5,))
        assert 'Total count    =            0' in out.getvalue()

    def test_report_does_not_walk_buckets(self, monkeypatch):
        """Mean and stddev come from running sums, not a full bucket scan."""
        histogram = StageHistogram('a')
        for value in (5, 9):
            histogram.record(value)

        def walk(*args, **kwargs):
            raise AssertionError("full histogram scan")

        monkeypatch.setattr(histogram.histogram, 'get_mean_value', walk)
        monkeypatch.setattr(histogram.histogram, 'get_stddev', walk)
        out = io.StringIO()
        write_report(out, {'a': histogram}, percentiles=(0.5, 1.0))
        assert '#[Mean    =         7.00, StdDeviation   =         2.00]' in out.getvalue()


class TestPostProcess:
    """Test post-processing commands."""

    def test_latency_histogram(self, write_log):
        path = write_log([
            "10, 0x1, A -> B, x",
            "15, 0x1, B -> C, x",
        ])
        out = io.StringIO()
        correlator = post_process(LATENCY_HISTOGRAM, path, None, out)

        text = out.getvalue()
        assert text.startswith("This command currently requires a sorted file\n")
        assert '======= B =======' in text
        assert values(correlator.histograms['B']) == [5]

    def test_malformed_writes_no_report(self, write_log):
        path = write_log([
            "10, 0x1, A -> B, x",
            "not a trace line",
            "15, 0x1, B -> D, x",
        ])
        out = io.StringIO()
        with pytest.raises(LineFormatError):
            post_process(LATENCY_HISTOGRAM, path, None, out)
        assert out.getvalue() == "This command currently requires a sorted file\n"

    def test_blank_line_is_malformed(self, write_log):
        path = write_log(["10, 0x1, A -> B, x", ""])
        with pytest.raises(LineFormatError):
            latency_histogram(path, io.StringIO())

    def test_sort_not_implemented(self, write_log):
        path = write_log(["10, 0x1, A -> B, x"])
        with pytest.raises(NotImplementedError, match="Not yet implemented"):
            post_process(SORT, path, None, io.StringIO())

    def test_unknown_type(self, write_log):
        path = write_log(["whatever"])
        out = io.StringIO()
        assert post_process('histogram', path, None, out) is None
        assert out.getvalue() == ''

    def test_demo_log(self, tmp_path):
        from pipespy.demo import PipelineDemo, STAGES

        path = tmp_path / 'demo.log'
        PipelineDemo(seed=3).write_trace_log(path, traces=50, uncorrelated=5)
        correlator = latency_histogram(path, io.StringIO())

        assert set(correlator.histograms) == set(STAGES)
        assert correlator.events_uncorrelated == 5
        assert correlator.unrecordable == 0
        # Two passes (request and response) through every inner stage
        assert correlator.histograms['proxy'].total_count == 100
