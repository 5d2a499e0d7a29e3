"""
Tests for wire formats.

These tests verify:
1. Message kinds are split by plane
2. Frame views decode at any offset inside a larger buffer
3. Reads past the frame limit fail instead of leaking into the next record
4. Capture file headers
"""

import struct

import pytest

from pipespy.core.errors import ErrorCode, FrameDecodeError
from pipespy.formats import (
    MessageKind,
    FrameReader,
    BeginFrame,
    DataFrame,
    EndFrame,
    AbortFrame,
    ResetFrame,
    WindowFrame,
    FileHeader,
    HEADER_SIZE,
    MAGIC,
    PLANE_THROTTLE,
    pack_octets,
)


class TestMessageKind:
    """Test message kind constants."""

    def test_planes_do_not_overlap(self):
        """No kind belongs to both planes."""
        assert not set(MessageKind.STREAM_KINDS) & set(MessageKind.THROTTLE_KINDS)

    def test_plane_membership(self):
        assert MessageKind.is_stream(MessageKind.BEGIN)
        assert MessageKind.is_throttle(MessageKind.WINDOW)
        assert not MessageKind.is_stream(MessageKind.RESET)

    def test_unknown_name(self):
        assert MessageKind.name(0x7f) == 'UNKNOWN(0x0000007f)'
        assert not MessageKind.is_valid(0x7f)


class TestFrameReader:
    """Test bounds-checked reads."""

    def test_read_past_limit_raises(self):
        """A read that crosses limit fails even if the buffer is longer."""
        buffer = bytes(16)
        reader = FrameReader(buffer, 0, 4)
        with pytest.raises(FrameDecodeError, match="needs 8 bytes"):
            reader.uint64()

    def test_window_outside_buffer_raises(self):
        with pytest.raises(FrameDecodeError):
            FrameReader(bytes(4), 2, 8)

    def test_absent_octets_are_empty(self):
        reader = FrameReader(pack_octets(None))
        assert bytes(reader.octets()) == b''
        assert reader.remaining == 0

    def test_error_code_is_carried(self):
        reader = FrameReader(b'', code=ErrorCode.E1002_EXTENSION_TRUNCATED)
        with pytest.raises(FrameDecodeError) as info:
            reader.uint8()
        assert info.value.code == ErrorCode.E1002_EXTENSION_TRUNCATED


class TestFrames:
    """Test frame views."""

    def test_begin_at_offset(self):
        """Begin decodes from the middle of a larger buffer."""
        frame = BeginFrame(
            stream_id=0xabc,
            authorization=0x1,
            source='http',
            source_ref=0x1f90,
            correlation_id=0x42,
            extension=b'\x01\x02',
        )
        encoded = frame.encode()
        buffer = b'\xff' * 7 + encoded + b'\xee' * 5

        decoded = BeginFrame.wrap(buffer, 7, 7 + len(encoded))

        assert decoded.stream_id == 0xabc
        assert decoded.authorization == 0x1
        assert decoded.source == 'http'
        assert decoded.source_ref == 0x1f90
        assert decoded.correlation_id == 0x42
        assert bytes(decoded.extension) == b'\x01\x02'

    def test_begin_extension_is_a_view(self):
        """The extension is a slice of the delivered buffer, not a copy."""
        encoded = BeginFrame(1, 0, 's', 0, 0, extension=b'xyz').encode()
        decoded = BeginFrame.wrap(encoded, 0, len(encoded))
        assert isinstance(decoded.extension, memoryview)
        assert decoded.extension.obj is encoded

    def test_unsigned_ids(self):
        """Ids with the top bit set stay positive."""
        encoded = EndFrame(stream_id=0xffffffffffffffff, authorization=0x8000000000000000).encode()
        decoded = EndFrame.wrap(encoded, 0, len(encoded))
        assert decoded.stream_id == 0xffffffffffffffff
        assert decoded.authorization == 0x8000000000000000

    def test_data_without_payload(self):
        """length -1 means no payload."""
        encoded = DataFrame(stream_id=2, authorization=0, padding=0, length=-1).encode()
        decoded = DataFrame.wrap(encoded, 0, len(encoded))
        assert decoded.length == -1
        assert bytes(decoded.payload) == b''

    def test_data_payload_longer_than_frame(self):
        """A length that runs past the frame is a decode error."""
        encoded = struct.pack('<QQii', 2, 0, 0, 100) + b'short'
        with pytest.raises(FrameDecodeError, match="payload"):
            DataFrame.wrap(encoded, 0, len(encoded))

    def test_throttle_frames(self):
        window = WindowFrame(stream_id=9, credit=-4, padding=3, group_id=12)
        encoded = window.encode()
        assert WindowFrame.wrap(encoded, 0, len(encoded)) == window

        reset = ResetFrame(stream_id=9)
        assert ResetFrame.wrap(reset.encode(), 0, 8) == reset

    def test_truncated_abort(self):
        encoded = AbortFrame(stream_id=1, authorization=2).encode()
        with pytest.raises(FrameDecodeError):
            AbortFrame.wrap(encoded, 0, len(encoded) - 1)

    def test_type_ids(self):
        assert BeginFrame.TYPE_ID == MessageKind.BEGIN
        assert WindowFrame.TYPE_ID == MessageKind.WINDOW


class TestFileHeader:
    """Test capture file header."""

    def test_header_size(self):
        assert HEADER_SIZE == 32
        assert struct.calcsize(FileHeader.FORMAT) == 32

    def test_header_decode(self):
        encoded = FileHeader(plane=PLANE_THROTTLE, run_id=77, record_count=5).encode()
        assert encoded[:4] == MAGIC

        decoded = FileHeader.decode(encoded)
        assert decoded.plane == PLANE_THROTTLE
        assert decoded.run_id == 77
        assert decoded.record_count == 5
        assert decoded.validate() == []

    def test_decode_invalid_magic_raises(self):
        with pytest.raises(ValueError, match="Invalid magic"):
            FileHeader.decode(b'XXXX' + b'\x00' * 28)

    def test_probe_no_header(self, tmp_path):
        path = tmp_path / 'plain.bin'
        path.write_bytes(b'\x00' * 64)
        assert FileHeader.probe(path) is None

    def test_validate_plane(self):
        assert any('plane' in e for e in FileHeader(plane=9).validate())
