"""Error codes and exception types."""

from .errors import (
    ErrorCode,
    ERROR_METADATA,
    PipespyError,
    FrameDecodeError,
    LineFormatError,
    ChannelError,
)

__all__ = [
    'ErrorCode',
    'ERROR_METADATA',
    'PipespyError',
    'FrameDecodeError',
    'LineFormatError',
    'ChannelError',
]
