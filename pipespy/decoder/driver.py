"""
Polling driver for live decoders.

Each pass polls every LoggableStream once. When a whole pass finds no
records the idle strategy runs, so a quiet pipeline does not spin a core.
"""

import logging
import os
import time
from typing import Callable, Optional, Sequence

from .loggable import LoggableStream

logger = logging.getLogger(__name__)


class IdleStrategy:
    """Called after a pass that processed no records."""

    def idle(self) -> None:
        pass


class BusySpinIdleStrategy(IdleStrategy):
    pass


class YieldIdleStrategy(IdleStrategy):

    def idle(self) -> None:
        if hasattr(os, 'sched_yield'):
            os.sched_yield()
        else:
            time.sleep(0)


class SleepIdleStrategy(IdleStrategy):

    def __init__(self, micros: int = 1000):
        self.micros = micros

    def idle(self) -> None:
        time.sleep(self.micros / 1_000_000)


IDLE_STRATEGIES = ('spin', 'yield', 'sleep')


def idle_strategy(name: str, micros: int = 1000) -> IdleStrategy:
    """Build an idle strategy from its config name."""
    if name == 'spin':
        return BusySpinIdleStrategy()
    if name == 'yield':
        return YieldIdleStrategy()
    if name == 'sleep':
        return SleepIdleStrategy(micros)
    raise ValueError(f"Unknown idle strategy: {name} (expected one of {', '.join(IDLE_STRATEGIES)})")


def run_decoder(
    streams: Sequence[LoggableStream],
    idle: Optional[IdleStrategy] = None,
    batch_limit: int = 1,
    should_stop: Optional[Callable[[], bool]] = None,
    once: bool = False,
) -> int:
    """
    Poll streams until stopped.

    Args:
        streams: Decoders to poll, in order
        idle: Strategy to run after an empty pass (default: 1ms sleep)
        batch_limit: Max records per plane per poll
        should_stop: Checked before every pass
        once: Stop after the first empty pass

    Returns:
        Total records processed.

    Every stream's layout is closed on return, including on error or
    KeyboardInterrupt.
    """
    idle = idle or SleepIdleStrategy()
    total = 0
    try:
        while should_stop is None or not should_stop():
            work = 0
            for stream in streams:
                work += stream.poll(batch_limit)
            total += work
            if work == 0:
                if once:
                    break
                idle.idle()
    finally:
        for stream in streams:
            stream.close()
        logger.debug(f"Decoder stopped after {total} records")
    return total
