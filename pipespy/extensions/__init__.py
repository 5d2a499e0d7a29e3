"""BEGIN extension codecs and the protocol-family registry."""

from .http import HttpBeginEx, HttpHeader
from .tcp import TcpBeginEx, TcpAddress, AddressKind
from .registry import (
    ExtensionCodec,
    ExtensionRegistry,
    SENDER_PREFIX,
    RECEIVER_EQUALS,
    default_registry,
)

__all__ = [
    'HttpBeginEx',
    'HttpHeader',
    'TcpBeginEx',
    'TcpAddress',
    'AddressKind',
    'ExtensionCodec',
    'ExtensionRegistry',
    'SENDER_PREFIX',
    'RECEIVER_EQUALS',
    'default_registry',
]
