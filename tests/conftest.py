"""Pytest fixtures shared by the pipespy tests."""

import io
from pathlib import Path

import pytest

from pipespy.channel.memory import MemoryStreamsLayout
from pipespy.decoder.loggable import LoggableStream
from pipespy.demo import PipelineDemo


@pytest.fixture
def layout() -> MemoryStreamsLayout:
    """Empty in-memory layout."""
    return MemoryStreamsLayout()


@pytest.fixture
def out() -> io.StringIO:
    """Output sink for decoded lines."""
    return io.StringIO()


@pytest.fixture
def make_stream(layout, out):
    """Build a LoggableStream over the shared layout and sink."""
    def _make(receiver: str = 'tcp', sender: str = 'http', verbose: bool = False, **kwargs):
        return LoggableStream(receiver, sender, layout, out, verbose=verbose, **kwargs)
    return _make


@pytest.fixture
def drain():
    """Poll a stream until it reports no more records."""
    def _drain(stream, limit: int = 1) -> int:
        total = 0
        while True:
            count = stream.poll(limit)
            if count == 0:
                return total
            total += count
    return _drain


@pytest.fixture
def capture_dir(tmp_path: Path) -> Path:
    """Directory holding the demo capture files."""
    directory = tmp_path / 'capture'
    PipelineDemo(seed=1).write_captures(directory)
    return directory


@pytest.fixture
def write_log(tmp_path: Path):
    """Write trace log lines to a file and return its path."""
    def _write(lines, name: str = 'trace.log') -> Path:
        path = tmp_path / name
        path.write_text(''.join(f"{line}\n" for line in lines))
        return path
    return _write
