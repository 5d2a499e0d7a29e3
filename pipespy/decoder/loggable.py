"""
Live decoder for one sender/receiver pair.

LoggableStream spies on the streams and throttle planes of a layout and
writes one line per recognised record:

    [<sender> -> <receiver>]\t[0x%016x] BEGIN "<source>" [0x%016x] [0x%016x] [0x%016x]
    [<sender> -> <receiver>]\t[0x%016x] DATA [%d] [%d] [0x%016x]
    [<sender> -> <receiver>]\t[0x%016x] END [0x%016x]
    [<sender> -> <receiver>]\t[0x%016x] ABORT [0x%016x]
    [<sender> <- <receiver>]\t[0x%016x] RESET
    [<sender> <- <receiver>]\t[0x%016x] WINDOW [%d] [%d] [%d]

Throttle frames travel from the receiver back to the sender, so on that
plane the stage on the left is the one the frame is delivered to.

In verbose mode a BEGIN is followed by the lines its extension codecs
render (HTTP headers, TCP remote address). Unknown kinds are skipped
silently so newer producers can be observed by older decoders.
"""

import logging
from typing import Callable, Dict, List, TextIO

from ..channel.base import StreamsLayout
from ..core.errors import FrameDecodeError
from ..extensions.registry import ExtensionCodec, ExtensionRegistry, default_registry
from ..formats.frames import (
    Buffer,
    BeginFrame,
    DataFrame,
    EndFrame,
    AbortFrame,
    ResetFrame,
    WindowFrame,
)
from ..formats.record_types import MessageKind

logger = logging.getLogger(__name__)


class LoggableStream:
    """
    Decode and log the records of one sender/receiver pair.

    Not safe for concurrent use by several threads. Open one LoggableStream
    per thread instead; spies never interfere with each other.

    Example:
        with LoggableStream('tcp', 'http', layout, sys.stdout, verbose=True) as stream:
            while stream.poll() > 0:
                pass
    """

    def __init__(
        self,
        receiver: str,
        sender: str,
        layout: StreamsLayout,
        out: TextIO,
        verbose: bool = False,
        extensions: ExtensionRegistry = None,
    ):
        self.receiver = receiver
        self.sender = sender
        self.layout = layout
        self.out = out
        self.verbose = verbose
        self.extensions = extensions if extensions is not None else default_registry()

        self.stream_prefix = f"[{sender} -> {receiver}]\t"
        self.throttle_prefix = f"[{sender} <- {receiver}]\t"

        # Records whose primary frame could not be decoded
        self.malformed = 0
        # Extension decodes that failed and were suppressed
        self.extension_failures = 0

        self._codecs_by_source: Dict[str, List[ExtensionCodec]] = {}

        self._stream_handlers: Dict[int, Callable[[Buffer, int, int], None]] = {
            MessageKind.BEGIN: self._on_begin,
            MessageKind.DATA: self._on_data,
            MessageKind.END: self._on_end,
            MessageKind.ABORT: self._on_abort,
        }
        self._throttle_handlers: Dict[int, Callable[[Buffer, int, int], None]] = {
            MessageKind.RESET: self._on_reset,
            MessageKind.WINDOW: self._on_window,
        }

    def poll(self, limit: int = 1) -> int:
        """
        Process up to `limit` records from each plane.

        Returns:
            Records processed across both planes, 0 when idle.
        """
        return (
            self.layout.streams.spy(self.handle_stream, limit)
            + self.layout.throttle.spy(self.handle_throttle, limit)
        )

    def close(self) -> None:
        self.layout.close()

    def __enter__(self) -> 'LoggableStream':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def handle_stream(self, kind: int, buffer: Buffer, offset: int, length: int) -> None:
        self._dispatch(self._stream_handlers, kind, buffer, offset, length)

    def handle_throttle(self, kind: int, buffer: Buffer, offset: int, length: int) -> None:
        self._dispatch(self._throttle_handlers, kind, buffer, offset, length)

    def _dispatch(self, handlers, kind: int, buffer: Buffer, offset: int, length: int) -> None:
        handler = handlers.get(kind)
        if handler is None:
            return
        try:
            handler(buffer, offset, offset + length)
        except FrameDecodeError as e:
            self.malformed += 1
            logger.warning(
                f"{self.sender} -> {self.receiver}: skipping malformed "
                f"{MessageKind.name(kind)} frame: {e.to_error()}"
            )

    def _stream_line(self, stream_id: int, description: str) -> None:
        self.out.write(f"{self.stream_prefix}[0x{stream_id:016x}] {description}\n")

    def _throttle_line(self, stream_id: int, description: str) -> None:
        self.out.write(f"{self.throttle_prefix}[0x{stream_id:016x}] {description}\n")

    def _on_begin(self, buffer: Buffer, offset: int, limit: int) -> None:
        begin = BeginFrame.wrap(buffer, offset, limit)

        self._stream_line(
            begin.stream_id,
            f"BEGIN \"{begin.source}\" [0x{begin.source_ref:016x}] "
            f"[0x{begin.correlation_id:016x}] [0x{begin.authorization:016x}]",
        )

        # An absent extension has nothing to decode
        if self.verbose and len(begin.extension) > 0:
            for codec in self._codecs_for(begin.source):
                self._write_extension(codec, begin)

    def _codecs_for(self, source: str) -> List[ExtensionCodec]:
        codecs = self._codecs_by_source.get(source)
        if codecs is None:
            codecs = self.extensions.select(source, self.receiver)
            self._codecs_by_source[source] = codecs
        return codecs

    def _write_extension(self, codec: ExtensionCodec, begin: BeginFrame) -> None:
        try:
            lines = codec.lines(begin.extension)
        except FrameDecodeError as e:
            self.extension_failures += 1
            logger.warning(
                f"[0x{begin.stream_id:016x}] {codec.family} extension "
                f"not decodable, suppressed: {e.to_error()}"
            )
            return
        for line in lines:
            self.out.write(f"{line}\n")

    def _on_data(self, buffer: Buffer, offset: int, limit: int) -> None:
        data = DataFrame.wrap(buffer, offset, limit)
        self._stream_line(
            data.stream_id,
            f"DATA [{data.length}] [{data.padding}] [0x{data.authorization:016x}]",
        )

    def _on_end(self, buffer: Buffer, offset: int, limit: int) -> None:
        end = EndFrame.wrap(buffer, offset, limit)
        self._stream_line(end.stream_id, f"END [0x{end.authorization:016x}]")

    def _on_abort(self, buffer: Buffer, offset: int, limit: int) -> None:
        abort = AbortFrame.wrap(buffer, offset, limit)
        self._stream_line(abort.stream_id, f"ABORT [0x{abort.authorization:016x}]")

    def _on_reset(self, buffer: Buffer, offset: int, limit: int) -> None:
        reset = ResetFrame.wrap(buffer, offset, limit)
        self._throttle_line(reset.stream_id, "RESET")

    def _on_window(self, buffer: Buffer, offset: int, limit: int) -> None:
        window = WindowFrame.wrap(buffer, offset, limit)
        self._throttle_line(
            window.stream_id,
            f"WINDOW [{window.credit}] [{window.padding}] [{window.group_id}]",
        )
