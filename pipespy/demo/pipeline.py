"""
Generate synthetic pipeline data for demos and tests.

Models a four-stage pipeline, client -> http -> proxy -> tcp, where every
request travels down the pipeline and its response travels back:

- write_captures() writes capture files for the http/proxy and proxy/tcp
  pairs, with HTTP and TCP begin extensions, data, flow control and the
  occasional reset/abort.
- write_trace_log() writes a timestamp-sorted trace log in the format the
  latency engine reads, with per-stage service times drawn from a profile.
"""

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..channel.capture import CapturePair
from ..extensions.http import HttpBeginEx
from ..extensions.tcp import TcpAddress, TcpBeginEx
from ..formats.frames import (
    BeginFrame,
    DataFrame,
    EndFrame,
    AbortFrame,
    ResetFrame,
    WindowFrame,
)


STAGES = ('client', 'http', 'proxy', 'tcp')


@dataclass
class LatencyProfile:
    """Statistical profile for per-stage service time."""
    mean: float
    std: float

    def sample(self, rng: random.Random) -> int:
        """Sample a service time (always positive)."""
        return max(1, int(round(rng.gauss(self.mean, self.std))))


DEFAULT_PROFILES = {
    'client': LatencyProfile(mean=40, std=10),
    'http': LatencyProfile(mean=12, std=3),
    'proxy': LatencyProfile(mean=25, std=8),
    'tcp': LatencyProfile(mean=90, std=30),
}


@dataclass
class PipelineDemo:
    """
    Deterministic generator for capture files and trace logs.

    Usage:
        demo = PipelineDemo(seed=7)
        demo.write_captures(Path('./capture'))
        demo.write_trace_log(Path('./trace.log'), traces=500)
    """
    seed: int = 0
    connections: int = 4
    profiles: Dict[str, LatencyProfile] = field(default_factory=lambda: dict(DEFAULT_PROFILES))
    rng: random.Random = field(init=False, repr=False)

    def __post_init__(self):
        self.rng = random.Random(self.seed)

    def write_captures(self, directory: Path, run_id: int = 0) -> List[Tuple[str, str]]:
        """
        Write capture files for (proxy <- http) and (tcp <- proxy).

        Returns:
            The (receiver, sender) pairs written.
        """
        directory = Path(directory)

        with CapturePair(directory, 'proxy', 'http', run_id) as pair:
            for n in range(self.connections):
                stream_id = 0x10 + n * 2
                extension = HttpBeginEx.of([
                    (':scheme', 'http'),
                    (':method', 'GET'),
                    (':path', f"/items/{n}"),
                    (':authority', 'localhost:8080'),
                ]).encode()
                pair.streams.write_frame(BeginFrame(
                    stream_id=stream_id,
                    authorization=0,
                    source='http',
                    source_ref=0x1f90,
                    correlation_id=0x1000 + n,
                    extension=extension,
                ))
                pair.throttle.write_frame(WindowFrame(
                    stream_id=stream_id, credit=8192, padding=0, group_id=0,
                ))
                payload = self._payload()
                pair.streams.write_frame(DataFrame(
                    stream_id=stream_id,
                    authorization=0,
                    padding=0,
                    length=len(payload),
                    payload=payload,
                ))
                if n == self.connections - 1:
                    pair.throttle.write_frame(ResetFrame(stream_id=stream_id))
                else:
                    pair.streams.write_frame(EndFrame(stream_id=stream_id, authorization=0))

        with CapturePair(directory, 'tcp', 'proxy', run_id) as pair:
            for n in range(self.connections):
                stream_id = 0x20 + n * 2
                address = TcpAddress.ip('127.0.0.1') if n % 2 else TcpAddress.host('backend.local')
                pair.streams.write_frame(BeginFrame(
                    stream_id=stream_id,
                    authorization=0,
                    source='proxy',
                    source_ref=0,
                    correlation_id=0x2000 + n,
                    extension=TcpBeginEx(address, 8080 + n).encode(),
                ))
                pair.throttle.write_frame(WindowFrame(
                    stream_id=stream_id, credit=65536, padding=0, group_id=0,
                ))
                payload = self._payload()
                pair.streams.write_frame(DataFrame(
                    stream_id=stream_id,
                    authorization=0,
                    padding=0,
                    length=len(payload),
                    payload=payload,
                ))
                if n == 0:
                    pair.streams.write_frame(AbortFrame(stream_id=stream_id, authorization=0))
                else:
                    pair.streams.write_frame(EndFrame(stream_id=stream_id, authorization=0))

        return [('proxy', 'http'), ('tcp', 'proxy')]

    def _payload(self) -> bytes:
        return bytes(self.rng.getrandbits(8) for _ in range(self.rng.randint(16, 64)))

    def trace_lines(self, traces: int = 1000, uncorrelated: int = 0) -> List[str]:
        """
        Build trace log lines sorted by timestamp.

        Each trace goes client -> http -> proxy -> tcp and back. The return
        path is logged as flow-control lines ("upstream <- downstream").
        """
        events: List[Tuple[int, int, str]] = []
        start = 0

        for trace_id in range(1, traces + 1):
            start += self.rng.randint(5, 50)
            t = start

            for sender, receiver in zip(STAGES, STAGES[1:]):
                t += self.profiles[sender].sample(self.rng)
                events.append((t, trace_id, f"{sender} -> {receiver}, BEGIN"))

            for downstream, upstream in zip(reversed(STAGES), reversed(STAGES[:-1])):
                t += self.profiles[downstream].sample(self.rng)
                events.append((t, trace_id, f"{upstream} <- {downstream}, WINDOW"))

        for _ in range(uncorrelated):
            t = self.rng.randint(0, max(start, 1))
            events.append((t, 0, "client -> http, DATA"))

        events.sort(key=lambda e: e[0])
        return [f"{t}, 0x{trace_id:x}, {text}" for t, trace_id, text in events]

    def write_trace_log(self, path: Path, traces: int = 1000, uncorrelated: int = 0) -> int:
        """Write a sorted trace log. Returns the number of lines."""
        lines = self.trace_lines(traces, uncorrelated)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(''.join(f"{line}\n" for line in lines))
        return len(lines)
