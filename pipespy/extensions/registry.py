"""
Protocol-family registry for BEGIN extensions.

A BEGIN extension does not say what it is. Its meaning follows from who
sent it or who receives it, so each codec is registered against a protocol
family together with the identity rule that selects it:

- SENDER_PREFIX: the sending stage's name starts with the family
- RECEIVER_EQUALS: the receiving stage's name equals the family

Every matching codec decodes the same extension buffer independently.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from ..formats.frames import Buffer
from . import http, tcp


SENDER_PREFIX = 'sender-prefix'
RECEIVER_EQUALS = 'receiver-equals'


@dataclass(frozen=True)
class ExtensionCodec:
    """Decoder and renderer for one protocol family."""

    family: str
    selector: str
    decode: Callable[[Buffer], Any]
    render: Callable[[Any], List[str]]

    def matches(self, sender: str, receiver: str) -> bool:
        if self.selector == SENDER_PREFIX:
            return sender.startswith(self.family)
        if self.selector == RECEIVER_EQUALS:
            return receiver == self.family
        return False

    def lines(self, extension: Buffer) -> List[str]:
        """Decode and render; raises FrameDecodeError before any line exists."""
        return self.render(self.decode(extension))


class ExtensionRegistry:
    """
    Ordered set of extension codecs keyed by family.

    Usage:
        registry = default_registry()
        registry.register(ExtensionCodec('ws', SENDER_PREFIX, decode, render))
        for codec in registry.select('http-client', 'tcp'):
            ...
    """

    def __init__(self):
        self._codecs: Dict[str, ExtensionCodec] = {}

    def register(self, codec: ExtensionCodec) -> None:
        if codec.selector not in (SENDER_PREFIX, RECEIVER_EQUALS):
            raise ValueError(f"Unknown selector: {codec.selector}")
        self._codecs[codec.family] = codec

    def unregister(self, family: str) -> None:
        self._codecs.pop(family, None)

    def families(self) -> List[str]:
        return list(self._codecs)

    def get(self, family: str) -> ExtensionCodec:
        return self._codecs[family]

    def select(self, sender: str, receiver: str) -> List[ExtensionCodec]:
        """Codecs whose identity rule matches, in registration order."""
        return [c for c in self._codecs.values() if c.matches(sender, receiver)]

    def __contains__(self, family: str) -> bool:
        return family in self._codecs

    def __len__(self) -> int:
        return len(self._codecs)


def default_registry() -> ExtensionRegistry:
    """Registry with the HTTP and TCP families."""
    registry = ExtensionRegistry()
    registry.register(ExtensionCodec(
        family=http.FAMILY,
        selector=SENDER_PREFIX,
        decode=http.HttpBeginEx.wrap,
        render=http.HttpBeginEx.render,
    ))
    registry.register(ExtensionCodec(
        family=tcp.FAMILY,
        selector=RECEIVER_EQUALS,
        decode=tcp.TcpBeginEx.wrap,
        render=tcp.TcpBeginEx.render,
    ))
    return registry
