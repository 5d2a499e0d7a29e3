"""
File header for pipespy capture files.

A capture file holds the records of one plane (streams or throttle) of one
sender/receiver pair, in the order the producer appended them.

Layout (32 bytes):
    Bytes 0-3:   magic      "PSPY"
    Byte 4:      version    Capture format version (1)
    Byte 5:      plane      0 = streams, 1 = throttle
    Bytes 6-7:   reserved
    Bytes 8-11:  run_id     Producer run identifier
    Bytes 12-19: rec_count  Record count hint (0 = unknown/streaming)
    Bytes 20-31: reserved   Reserved for future use

Each record after the header is framed as:
    kind    i32   Message kind (see MessageKind)
    length  i32   Payload length in bytes
    payload       Frame bytes
"""

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List


# Magic bytes: "PSPY" as bytes
MAGIC = b'PSPY'

# Header size in bytes
HEADER_SIZE = 32

# Record framing: kind, length
RECORD_HEADER = struct.Struct('<ii')
RECORD_HEADER_SIZE = RECORD_HEADER.size

PLANE_STREAMS = 0
PLANE_THROTTLE = 1


@dataclass
class FileHeader:
    """File header for capture files."""

    magic: bytes = MAGIC
    version: int = 1           # Capture format version
    plane: int = PLANE_STREAMS
    run_id: int = 0            # Producer run identifier
    record_count: int = 0      # Record count hint (0 = unknown/streaming)

    # Struct format: 4s=magic, B=version, B=plane, 2x=reserved,
    #                I=run_id, Q=rec_count, 12x=padding
    FORMAT = '<4sBB2xIQ12x'

    def __post_init__(self):
        """Validate header fields."""
        if isinstance(self.magic, str):
            self.magic = self.magic.encode('ascii')
        if len(self.magic) != 4:
            raise ValueError(f"Magic must be 4 bytes, got {len(self.magic)}")

    def encode(self) -> bytes:
        """Encode header to bytes."""
        return struct.pack(
            self.FORMAT,
            self.magic,
            self.version,
            self.plane,
            self.run_id,
            self.record_count,
        )

    @classmethod
    def decode(cls, data: bytes) -> 'FileHeader':
        """Decode header from bytes."""
        if len(data) < HEADER_SIZE:
            raise ValueError(f"Header too small: {len(data)} < {HEADER_SIZE}")

        magic, version, plane, run_id, count = struct.unpack(
            cls.FORMAT, data[:HEADER_SIZE]
        )

        if magic != MAGIC:
            raise ValueError(f"Invalid magic: {magic!r} (expected {MAGIC!r})")

        return cls(
            magic=magic,
            version=version,
            plane=plane,
            run_id=run_id,
            record_count=count,
        )

    @classmethod
    def probe(cls, path: Path) -> Optional['FileHeader']:
        """
        Try to read header from file.

        Returns:
            FileHeader if file has valid header, None otherwise.
        """
        path = Path(path)
        if not path.is_file() or path.stat().st_size < HEADER_SIZE:
            return None

        with open(path, 'rb') as f:
            data = f.read(HEADER_SIZE)

        # Check magic before full decode
        if data[:4] != MAGIC:
            return None

        return cls.decode(data)

    def validate(self) -> List[str]:
        """
        Validate header fields.

        Returns:
            List of validation error messages (empty if valid).
        """
        errors = []

        if self.magic != MAGIC:
            errors.append(f"Invalid magic: {self.magic!r}")

        if self.version != 1:
            errors.append(f"Unsupported version: {self.version}")

        if self.plane not in (PLANE_STREAMS, PLANE_THROTTLE):
            errors.append(f"Invalid plane: {self.plane}")

        return errors


def encode_record(kind: int, payload: bytes) -> bytes:
    """Frame one record for a capture file."""
    return RECORD_HEADER.pack(kind, len(payload)) + payload


# Verify struct size at module load
_computed_size = struct.calcsize(FileHeader.FORMAT)
assert _computed_size == HEADER_SIZE, \
    f"FileHeader format size mismatch: {_computed_size} != {HEADER_SIZE}"
