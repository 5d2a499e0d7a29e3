"""
TCP begin extension.

Carried by BEGIN frames addressed to the TCP stage. It names the remote end
of the connection the stream should open.

Layout (little-endian):
    remoteAddress   u8 kind, then
                      kind 1 (IPv4): 4 octets
                      kind 2 (IPv6): 16 octets
                      kind 3 (host): string8
    remotePort      u16
"""

import ipaddress
import struct
from dataclasses import dataclass
from typing import List, Union

from ..formats.frames import Buffer, FrameReader, pack_string8
from ..core.errors import ErrorCode, FrameDecodeError


FAMILY = 'tcp'


class AddressKind:
    IPV4 = 1
    IPV6 = 2
    HOST = 3


@dataclass
class TcpAddress:
    """Remote address variant: a host name or raw IPv4/IPv6 octets."""

    kind: int
    value: Union[str, bytes]

    @classmethod
    def host(cls, name: str) -> 'TcpAddress':
        return cls(AddressKind.HOST, name)

    @classmethod
    def ip(cls, address: str) -> 'TcpAddress':
        parsed = ipaddress.ip_address(address)
        kind = AddressKind.IPV4 if parsed.version == 4 else AddressKind.IPV6
        return cls(kind, parsed.packed)

    def __str__(self) -> str:
        if self.kind == AddressKind.HOST:
            return self.value
        if self.kind == AddressKind.IPV4:
            return str(ipaddress.IPv4Address(bytes(self.value)))
        return str(ipaddress.IPv6Address(bytes(self.value)))

    def encode(self) -> bytes:
        if self.kind == AddressKind.HOST:
            return struct.pack('<B', self.kind) + pack_string8(self.value)
        return struct.pack('<B', self.kind) + bytes(self.value)


@dataclass
class TcpBeginEx:
    """Decoded TCP begin extension."""

    remote_address: TcpAddress
    remote_port: int

    @classmethod
    def wrap(cls, buffer: Buffer, offset: int = 0, limit: int = None) -> 'TcpBeginEx':
        reader = FrameReader(buffer, offset, limit, ErrorCode.E1002_EXTENSION_TRUNCATED)
        kind = reader.uint8()

        if kind == AddressKind.IPV4:
            address = TcpAddress(kind, bytes(reader.slice(4, 'ipv4Address')))
        elif kind == AddressKind.IPV6:
            address = TcpAddress(kind, bytes(reader.slice(16, 'ipv6Address')))
        elif kind == AddressKind.HOST:
            address = TcpAddress(kind, reader.string8())
        else:
            raise FrameDecodeError(
                f"Unknown address kind: {kind}",
                ErrorCode.E1003_UNKNOWN_ADDRESS_KIND,
            )

        return cls(remote_address=address, remote_port=reader.uint16())

    def encode(self) -> bytes:
        return self.remote_address.encode() + struct.pack('<H', self.remote_port)

    def render(self) -> List[str]:
        return [f"remoteAddress: {self.remote_address}:{self.remote_port}"]
