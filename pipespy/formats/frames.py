"""
Zero-copy frame views for the stream and throttle planes.

A frame is decoded straight out of the delivered buffer through a
FrameReader, which walks a memoryview between [offset, limit). Payloads and
extensions are returned as memoryview slices of the same buffer, so nothing
is copied until a string is rendered.

Layouts (little-endian):

    Begin   streamId u64, authorization u64, source string8,
            sourceRef u64, correlationId u64, extension octets
    Data    streamId u64, authorization u64, padding i32, length i32,
            payload[length], extension octets
    End     streamId u64, authorization u64, extension octets
    Abort   streamId u64, authorization u64
    Reset   streamId u64
    Window  streamId u64, credit i32, padding i32, groupId u64

    string8   u8 byte length, UTF-8 bytes
    string16  u16 byte length, UTF-8 bytes
    octets    i16 byte length (-1 = absent), bytes

Views are scoped to one handler call. Keep a reference past the call only
after copying (bytes(view)), since the channel may reuse its buffer.
"""

import struct
from dataclasses import dataclass, field
from typing import ClassVar, Union

from .record_types import MessageKind
from ..core.errors import ErrorCode, FrameDecodeError


Buffer = Union[bytes, bytearray, memoryview]

_U8 = struct.Struct('<B')
_U16 = struct.Struct('<H')
_I16 = struct.Struct('<h')
_I32 = struct.Struct('<i')
_U64 = struct.Struct('<Q')

_EMPTY = memoryview(b'')


class FrameReader:
    """
    Bounds-checked cursor over a buffer window.

    Every read fails with FrameDecodeError instead of running past limit,
    so a malformed frame can never read a neighbouring record.
    """

    def __init__(
        self,
        buffer: Buffer,
        offset: int = 0,
        limit: int = None,
        code: ErrorCode = ErrorCode.E1001_FRAME_TRUNCATED,
    ):
        view = buffer if isinstance(buffer, memoryview) else memoryview(buffer)
        if limit is None:
            limit = len(view)
        self.code = code
        if offset < 0 or offset > limit or limit > len(view):
            raise FrameDecodeError(
                f"Window [{offset}, {limit}) outside buffer of {len(view)} bytes",
                code,
            )
        self._view = view
        self.position = offset
        self.limit = limit

    @property
    def remaining(self) -> int:
        return self.limit - self.position

    def _advance(self, size: int, what: str) -> int:
        start = self.position
        if size < 0 or start + size > self.limit:
            raise FrameDecodeError(
                f"{what} at offset {start} needs {size} bytes, "
                f"only {self.limit - start} remain",
                self.code,
            )
        self.position = start + size
        return start

    def _unpack(self, layout: struct.Struct, what: str) -> int:
        start = self._advance(layout.size, what)
        return layout.unpack_from(self._view, start)[0]

    def uint8(self) -> int:
        return self._unpack(_U8, 'uint8')

    def uint16(self) -> int:
        return self._unpack(_U16, 'uint16')

    def int16(self) -> int:
        return self._unpack(_I16, 'int16')

    def int32(self) -> int:
        return self._unpack(_I32, 'int32')

    def uint64(self) -> int:
        return self._unpack(_U64, 'uint64')

    def slice(self, size: int, what: str = 'bytes') -> memoryview:
        start = self._advance(size, what)
        return self._view[start:start + size]

    def sub(self, size: int, what: str = 'list') -> 'FrameReader':
        """Reader over the next size bytes, advancing past them."""
        start = self._advance(size, what)
        return FrameReader(self._view, start, start + size, self.code)

    def string8(self) -> str:
        size = self.uint8()
        return bytes(self.slice(size, 'string8')).decode('utf-8', 'replace')

    def string16(self) -> str:
        size = self.uint16()
        return bytes(self.slice(size, 'string16')).decode('utf-8', 'replace')

    def octets(self) -> memoryview:
        size = self.int16()
        if size == -1:
            return _EMPTY
        return self.slice(size, 'octets')


def pack_string8(value: str) -> bytes:
    raw = value.encode('utf-8')
    if len(raw) > 0xFF:
        raise ValueError(f"string8 too long: {len(raw)} bytes")
    return _U8.pack(len(raw)) + raw


def pack_string16(value: str) -> bytes:
    raw = value.encode('utf-8')
    if len(raw) > 0xFFFF:
        raise ValueError(f"string16 too long: {len(raw)} bytes")
    return _U16.pack(len(raw)) + raw


def pack_octets(value: Buffer = None) -> bytes:
    if value is None:
        return _I16.pack(-1)
    raw = bytes(value)
    if len(raw) > 0x7FFF:
        raise ValueError(f"octets too long: {len(raw)} bytes")
    return _I16.pack(len(raw)) + raw


@dataclass
class BeginFrame:
    """Opens a stream; carries the source stage name and an extension."""
    TYPE_ID: ClassVar[int] = MessageKind.BEGIN

    stream_id: int
    authorization: int
    source: str
    source_ref: int
    correlation_id: int
    extension: Buffer = field(default=_EMPTY)

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int, limit: int) -> 'BeginFrame':
        reader = FrameReader(buffer, offset, limit)
        return cls(
            stream_id=reader.uint64(),
            authorization=reader.uint64(),
            source=reader.string8(),
            source_ref=reader.uint64(),
            correlation_id=reader.uint64(),
            extension=reader.octets(),
        )

    def encode(self) -> bytes:
        return b''.join((
            _U64.pack(self.stream_id),
            _U64.pack(self.authorization),
            pack_string8(self.source),
            _U64.pack(self.source_ref),
            _U64.pack(self.correlation_id),
            pack_octets(self.extension),
        ))


@dataclass
class DataFrame:
    """Payload on an open stream."""
    TYPE_ID: ClassVar[int] = MessageKind.DATA

    stream_id: int
    authorization: int
    padding: int
    length: int
    payload: Buffer = field(default=_EMPTY)
    extension: Buffer = field(default=_EMPTY)

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int, limit: int) -> 'DataFrame':
        reader = FrameReader(buffer, offset, limit)
        stream_id = reader.uint64()
        authorization = reader.uint64()
        padding = reader.int32()
        length = reader.int32()
        payload = reader.slice(length, 'payload') if length > 0 else _EMPTY
        return cls(
            stream_id=stream_id,
            authorization=authorization,
            padding=padding,
            length=length,
            payload=payload,
            extension=reader.octets(),
        )

    def encode(self) -> bytes:
        payload = bytes(self.payload)
        if self.length >= 0 and len(payload) != self.length:
            raise ValueError(f"payload is {len(payload)} bytes, length says {self.length}")
        return b''.join((
            _U64.pack(self.stream_id),
            _U64.pack(self.authorization),
            _I32.pack(self.padding),
            _I32.pack(self.length),
            payload,
            pack_octets(self.extension),
        ))


@dataclass
class EndFrame:
    """Closes a stream normally."""
    TYPE_ID: ClassVar[int] = MessageKind.END

    stream_id: int
    authorization: int
    extension: Buffer = field(default=_EMPTY)

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int, limit: int) -> 'EndFrame':
        reader = FrameReader(buffer, offset, limit)
        return cls(
            stream_id=reader.uint64(),
            authorization=reader.uint64(),
            extension=reader.octets(),
        )

    def encode(self) -> bytes:
        return (
            _U64.pack(self.stream_id)
            + _U64.pack(self.authorization)
            + pack_octets(self.extension)
        )


@dataclass
class AbortFrame:
    """Closes a stream abruptly."""
    TYPE_ID: ClassVar[int] = MessageKind.ABORT

    stream_id: int
    authorization: int

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int, limit: int) -> 'AbortFrame':
        reader = FrameReader(buffer, offset, limit)
        return cls(stream_id=reader.uint64(), authorization=reader.uint64())

    def encode(self) -> bytes:
        return _U64.pack(self.stream_id) + _U64.pack(self.authorization)


@dataclass
class ResetFrame:
    """Rejects a stream from the receiving side."""
    TYPE_ID: ClassVar[int] = MessageKind.RESET

    stream_id: int

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int, limit: int) -> 'ResetFrame':
        reader = FrameReader(buffer, offset, limit)
        return cls(stream_id=reader.uint64())

    def encode(self) -> bytes:
        return _U64.pack(self.stream_id)


@dataclass
class WindowFrame:
    """Grants credit to the sending side."""
    TYPE_ID: ClassVar[int] = MessageKind.WINDOW

    stream_id: int
    credit: int
    padding: int
    group_id: int

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int, limit: int) -> 'WindowFrame':
        reader = FrameReader(buffer, offset, limit)
        return cls(
            stream_id=reader.uint64(),
            credit=reader.int32(),
            padding=reader.int32(),
            group_id=reader.uint64(),
        )

    def encode(self) -> bytes:
        return (
            _U64.pack(self.stream_id)
            + _I32.pack(self.credit)
            + _I32.pack(self.padding)
            + _U64.pack(self.group_id)
        )
