"""Wire formats: message kinds, frame views and capture files."""

from .record_types import MessageKind
from .frames import (
    FrameReader,
    BeginFrame,
    DataFrame,
    EndFrame,
    AbortFrame,
    ResetFrame,
    WindowFrame,
    pack_string8,
    pack_string16,
    pack_octets,
)
from .file_header import (
    FileHeader,
    HEADER_SIZE,
    MAGIC,
    PLANE_STREAMS,
    PLANE_THROTTLE,
    RECORD_HEADER,
    RECORD_HEADER_SIZE,
    encode_record,
)

__all__ = [
    'MessageKind',
    'FrameReader',
    'BeginFrame',
    'DataFrame',
    'EndFrame',
    'AbortFrame',
    'ResetFrame',
    'WindowFrame',
    'pack_string8',
    'pack_string16',
    'pack_octets',
    'FileHeader',
    'HEADER_SIZE',
    'MAGIC',
    'PLANE_STREAMS',
    'PLANE_THROTTLE',
    'RECORD_HEADER',
    'RECORD_HEADER_SIZE',
    'encode_record',
]
