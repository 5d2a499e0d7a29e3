"""
In-memory streams layout.

RecordLog is an append-only record store shared by a producer and any
number of MemoryRecordSpy readers. Each record is kept framed exactly as in
a capture file (kind, length, payload), and spies deliver the payload by
offset into that framed buffer.
"""

from typing import List

from .base import RecordHandler, RecordSpy, StreamsLayout
from ..formats.file_header import RECORD_HEADER, RECORD_HEADER_SIZE, encode_record


class RecordLog:
    """Append-only list of framed records."""

    def __init__(self):
        self._records: List[bytes] = []

    def append(self, kind: int, payload: bytes) -> None:
        self._records.append(encode_record(kind, bytes(payload)))

    def append_frame(self, frame) -> None:
        self.append(frame.TYPE_ID, frame.encode())

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> bytes:
        return self._records[index]


class MemoryRecordSpy(RecordSpy):
    """Reader with its own cursor over a RecordLog."""

    def __init__(self, log: RecordLog, position: int = 0):
        self.log = log
        self.position = position

    def spy(self, handler: RecordHandler, limit: int) -> int:
        count = 0
        while count < limit and self.position < len(self.log):
            record = self.log[self.position]
            self.position += 1
            kind, length = RECORD_HEADER.unpack_from(record, 0)
            handler(kind, record, RECORD_HEADER_SIZE, length)
            count += 1
        return count


class MemoryStreamsLayout(StreamsLayout):
    """
    Layout over two in-memory record logs.

    Example:
        layout = MemoryStreamsLayout()
        layout.streams_log.append_frame(BeginFrame(...))
        with LoggableStream('tcp', 'http', layout, sys.stdout) as stream:
            stream.poll()
    """

    def __init__(self, streams_log: RecordLog = None, throttle_log: RecordLog = None):
        super().__init__()
        self.streams_log = streams_log if streams_log is not None else RecordLog()
        self.throttle_log = throttle_log if throttle_log is not None else RecordLog()
        self._streams = MemoryRecordSpy(self.streams_log)
        self._throttle = MemoryRecordSpy(self.throttle_log)
        self.release_count = 0

    @property
    def streams(self) -> RecordSpy:
        return self._streams

    @property
    def throttle(self) -> RecordSpy:
        return self._throttle

    def _release(self) -> None:
        self.release_count += 1
