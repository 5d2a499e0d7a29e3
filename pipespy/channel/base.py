"""
Base classes for streams layouts.

A StreamsLayout exposes the two planes of one sender/receiver pair as
RecordSpy objects. A spy observes records without consuming them: the
producer and any number of other spies keep seeing the same records.

RecordSpy.spy() is non-blocking. It hands at most `limit` records to the
handler and returns how many it handed over, 0 when nothing new is there.
"""

from abc import ABC, abstractmethod
from typing import Callable

from ..formats.frames import Buffer


# handler(kind, buffer, offset, length)
RecordHandler = Callable[[int, Buffer, int, int], None]


class RecordSpy(ABC):
    """Non-destructive reader over one plane."""

    @abstractmethod
    def spy(self, handler: RecordHandler, limit: int) -> int:
        """
        Deliver up to `limit` unseen records to handler.

        Returns:
            Number of records delivered.
        """
        pass


class StreamsLayout(ABC):
    """
    The streams and throttle planes of one sender/receiver pair.

    close() releases both planes. It may be called any number of times;
    only the first call releases anything.
    """

    def __init__(self):
        self._closed = False

    @property
    @abstractmethod
    def streams(self) -> RecordSpy:
        pass

    @property
    @abstractmethod
    def throttle(self) -> RecordSpy:
        pass

    @abstractmethod
    def _release(self) -> None:
        pass

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    def __enter__(self) -> 'StreamsLayout':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
