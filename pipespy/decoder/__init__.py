"""Live protocol decoder."""

from .loggable import LoggableStream
from .driver import (
    IdleStrategy,
    BusySpinIdleStrategy,
    YieldIdleStrategy,
    SleepIdleStrategy,
    IDLE_STRATEGIES,
    idle_strategy,
    run_decoder,
)

__all__ = [
    'LoggableStream',
    'IdleStrategy',
    'BusySpinIdleStrategy',
    'YieldIdleStrategy',
    'SleepIdleStrategy',
    'IDLE_STRATEGIES',
    'idle_strategy',
    'run_decoder',
]
