"""
File-backed streams layout.

A capture directory holds one pair of files per sender/receiver pair:

    <directory>/<receiver>/<sender>.streams
    <directory>/<receiver>/<sender>.throttle

Each file is a FileHeader followed by framed records (see file_header).
Producers only ever append. A CaptureFileSpy keeps its own read position,
stops at a partially written record and picks it up on a later poll once
the producer has finished writing it.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .base import RecordHandler, RecordSpy, StreamsLayout
from ..core.errors import ChannelError, ErrorCode
from ..formats.file_header import (
    FileHeader,
    HEADER_SIZE,
    PLANE_STREAMS,
    PLANE_THROTTLE,
    RECORD_HEADER,
    RECORD_HEADER_SIZE,
    encode_record,
)

logger = logging.getLogger(__name__)


STREAMS_SUFFIX = '.streams'
THROTTLE_SUFFIX = '.throttle'


def capture_paths(directory: Path, receiver: str, sender: str) -> Tuple[Path, Path]:
    """Paths of the streams and throttle files for one pair."""
    base = Path(directory) / receiver
    return base / f"{sender}{STREAMS_SUFFIX}", base / f"{sender}{THROTTLE_SUFFIX}"


class CaptureFileSpy(RecordSpy):
    """Reader over one capture file."""

    def __init__(self, path: Path, plane: int):
        path = Path(path)
        if not path.is_file():
            raise ChannelError(ErrorCode.E4001_CAPTURE_MISSING, path=path)

        try:
            header = FileHeader.probe(path)
        except ValueError as e:
            raise ChannelError(ErrorCode.E4002_CAPTURE_INVALID, path=path, detail=e) from e
        if header is None:
            raise ChannelError(ErrorCode.E4002_CAPTURE_INVALID, path=path, detail="no capture header")
        errors = header.validate()
        if header.plane != plane:
            errors.append(f"Expected plane {plane}, found {header.plane}")
        if errors:
            raise ChannelError(ErrorCode.E4002_CAPTURE_INVALID, path=path, detail="; ".join(errors))

        self.path = path
        self.header = header
        self.position = HEADER_SIZE
        self._file = open(path, 'rb')

    def spy(self, handler: RecordHandler, limit: int) -> int:
        count = 0
        while count < limit:
            self._file.seek(self.position)
            head = self._file.read(RECORD_HEADER_SIZE)
            if len(head) < RECORD_HEADER_SIZE:
                break

            kind, length = RECORD_HEADER.unpack(head)
            if length < 0:
                raise ChannelError(
                    ErrorCode.E4002_CAPTURE_INVALID,
                    path=self.path,
                    detail=f"negative record length {length} at offset {self.position}",
                )

            payload = self._file.read(length)
            if len(payload) < length:
                # Producer is still writing this record
                break

            self.position += RECORD_HEADER_SIZE + length
            handler(kind, payload, 0, length)
            count += 1
        return count

    def close(self) -> None:
        self._file.close()


class CaptureFileLayout(StreamsLayout):
    """
    Layout over the capture files of one sender/receiver pair.

    Raises:
        ChannelError: If either file is missing or has an invalid header
    """

    def __init__(self, directory: Path, receiver: str, sender: str):
        super().__init__()
        self.directory = Path(directory)
        self.receiver = receiver
        self.sender = sender

        streams_path, throttle_path = capture_paths(self.directory, receiver, sender)
        self._streams = CaptureFileSpy(streams_path, PLANE_STREAMS)
        try:
            self._throttle = CaptureFileSpy(throttle_path, PLANE_THROTTLE)
        except ChannelError:
            self._streams.close()
            raise

    @property
    def streams(self) -> RecordSpy:
        return self._streams

    @property
    def throttle(self) -> RecordSpy:
        return self._throttle

    def _release(self) -> None:
        try:
            self._streams.close()
        finally:
            self._throttle.close()

    @classmethod
    def discover(cls, directory: Path) -> List[Tuple[str, str]]:
        """
        Find every (receiver, sender) pair with a streams file.

        Returns:
            Pairs sorted by receiver then sender.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ChannelError(ErrorCode.E4003_CAPTURE_DIRECTORY_MISSING, path=directory)

        pairs = []
        for streams_path in sorted(directory.glob(f"*/*{STREAMS_SUFFIX}")):
            receiver = streams_path.parent.name
            sender = streams_path.name[:-len(STREAMS_SUFFIX)]
            pairs.append((receiver, sender))
        logger.debug(f"Discovered {len(pairs)} capture pairs in {directory}")
        return pairs


class CaptureWriter:
    """
    Append records to a capture file.

    Usage:
        with CaptureWriter(path, PLANE_STREAMS) as writer:
            writer.write_frame(BeginFrame(...))
    """

    def __init__(self, path: Path, plane: int, run_id: int = 0):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0
        self._file = open(self.path, 'wb')
        self._file.write(FileHeader(plane=plane, run_id=run_id).encode())
        self._file.flush()

    def write(self, kind: int, payload: bytes) -> None:
        self._file.write(encode_record(kind, payload))
        self._file.flush()
        self.count += 1

    def write_frame(self, frame) -> None:
        self.write(frame.TYPE_ID, frame.encode())

    def close(self) -> None:
        self._file.close()

    def __enter__(self) -> 'CaptureWriter':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class CapturePair:
    """Writers for both planes of one sender/receiver pair."""

    def __init__(self, directory: Path, receiver: str, sender: str, run_id: int = 0):
        streams_path, throttle_path = capture_paths(directory, receiver, sender)
        self.streams = CaptureWriter(streams_path, PLANE_STREAMS, run_id)
        self.throttle: Optional[CaptureWriter] = None
        try:
            self.throttle = CaptureWriter(throttle_path, PLANE_THROTTLE, run_id)
        except OSError:
            self.streams.close()
            raise

    def close(self) -> None:
        try:
            self.streams.close()
        finally:
            self.throttle.close()

    def __enter__(self) -> 'CapturePair':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
