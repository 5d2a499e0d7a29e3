"""
Message kind constants.

Each record delivered by a streams layout carries a kind that determines how
it is decoded. Kinds are split by plane:
- Stream (data) plane: BEGIN, DATA, END, ABORT
- Throttle (flow-control) plane: RESET, WINDOW

Throttle kinds have the 0x40000000 bit set so the two planes never collide.
Unknown kinds are ignored by the decoder.
"""


class MessageKind:
    """Message kind constants."""

    # Stream plane
    BEGIN = 0x00000001
    DATA = 0x00000002
    END = 0x00000003
    ABORT = 0x00000004

    # Throttle plane
    RESET = 0x40000001
    WINDOW = 0x40000002

    STREAM_KINDS = (BEGIN, DATA, END, ABORT)
    THROTTLE_KINDS = (RESET, WINDOW)

    @classmethod
    def name(cls, kind: int) -> str:
        """Get human-readable name for a message kind."""
        names = {
            cls.BEGIN: 'BEGIN',
            cls.DATA: 'DATA',
            cls.END: 'END',
            cls.ABORT: 'ABORT',
            cls.RESET: 'RESET',
            cls.WINDOW: 'WINDOW',
        }
        return names.get(kind, f'UNKNOWN(0x{kind:08x})')

    @classmethod
    def is_stream(cls, kind: int) -> bool:
        return kind in cls.STREAM_KINDS

    @classmethod
    def is_throttle(cls, kind: int) -> bool:
        return kind in cls.THROTTLE_KINDS

    @classmethod
    def is_valid(cls, kind: int) -> bool:
        """Check if kind value is known."""
        return cls.is_stream(kind) or cls.is_throttle(kind)
