"""
HTTP begin extension.

Carried by BEGIN frames sent from HTTP stages. The extension is a list of
headers in arrival order.

Layout (little-endian):
    headers   u16 byte length of the list, then entries back-to-back
    entry     name string8, value string16

Pseudo-headers (":method", ":path", ...) are ordinary entries.
"""

import struct
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from ..formats.frames import Buffer, FrameReader, pack_string8, pack_string16
from ..core.errors import ErrorCode


FAMILY = 'http'


@dataclass
class HttpHeader:
    name: str
    value: str


@dataclass
class HttpBeginEx:
    """Decoded HTTP begin extension."""

    headers: List[HttpHeader] = field(default_factory=list)

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int = 0, limit: int = None) -> 'HttpBeginEx':
        reader = FrameReader(buffer, offset, limit, ErrorCode.E1002_EXTENSION_TRUNCATED)
        size = reader.uint16()
        entries = reader.sub(size, 'headers')

        headers = []
        while entries.remaining > 0:
            name = entries.string8()
            value = entries.string16()
            headers.append(HttpHeader(name, value))

        return cls(headers=headers)

    @classmethod
    def of(cls, headers: Sequence[Tuple[str, str]]) -> 'HttpBeginEx':
        return cls(headers=[HttpHeader(name, value) for name, value in headers])

    def encode(self) -> bytes:
        entries = b''.join(
            pack_string8(h.name) + pack_string16(h.value) for h in self.headers
        )
        return struct.pack('<H', len(entries)) + entries

    def render(self) -> List[str]:
        """One '<name>: <value>' line per header, in header order."""
        return [f"{h.name}: {h.value}" for h in self.headers]
