"""Streams layouts: the non-destructive record channels the decoder spies on."""

from .base import RecordHandler, RecordSpy, StreamsLayout
from .memory import RecordLog, MemoryRecordSpy, MemoryStreamsLayout
from .capture import (
    CaptureFileSpy,
    CaptureFileLayout,
    CaptureWriter,
    CapturePair,
    capture_paths,
)

__all__ = [
    'RecordHandler',
    'RecordSpy',
    'StreamsLayout',
    'RecordLog',
    'MemoryRecordSpy',
    'MemoryStreamsLayout',
    'CaptureFileSpy',
    'CaptureFileLayout',
    'CaptureWriter',
    'CapturePair',
    'capture_paths',
]
