"""Value codecs for containerd bucket entries.

This module decodes the binary encodings containerd writes into bucket
values: Go ``time.Time`` binary form, Go varints, and fixed-width
big-endian integers.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import struct

from core.errors import ExplorerCorruptError

_UINT64 = struct.Struct(">Q")
_GO_TIME_V1 = struct.Struct(">Bqih")
_GO_TIME_V1_SIZE = 15
_GO_TIME_V2_SIZE = 16
_GO_EPOCH = datetime(1, 1, 1, tzinfo=timezone.utc)
_MAX_VARINT_BYTES = 10
UINT64_MAX = 0xFFFFFFFFFFFFFFFF


def encode_uint64(value: int) -> bytes:
    """Encode an unsigned 64-bit integer as 8 big-endian bytes.

    Raises:
        ValueError: If value is outside the uint64 range.
    """
    if not 0 <= value <= UINT64_MAX:
        raise ValueError(f"Value {value} is outside the uint64 range.")
    return _UINT64.pack(value)


def decode_uint64(raw: bytes) -> int:
    """Decode 8 big-endian bytes into an unsigned integer.

    Raises:
        ExplorerCorruptError: If raw is not exactly 8 bytes.
    """
    if len(raw) != _UINT64.size:
        raise ExplorerCorruptError(
            f"Fixed-width integer must be {_UINT64.size} bytes, got {len(raw)}."
        )
    return int(_UINT64.unpack(raw)[0])


def decode_uvarint(raw: bytes) -> int:
    """Decode a Go unsigned varint occupying the whole value.

    Raises:
        ExplorerCorruptError: If the varint is truncated, overlong, or padded.
    """
    result = 0
    shift = 0
    for index, byte in enumerate(raw):
        if index == _MAX_VARINT_BYTES or (index == _MAX_VARINT_BYTES - 1 and byte > 1):
            raise ExplorerCorruptError("Varint overflows 64 bits.")
        result |= (byte & 0x7F) << shift
        if byte < 0x80:
            if index != len(raw) - 1:
                raise ExplorerCorruptError(
                    f"Varint ends at byte {index + 1} of a {len(raw)}-byte value."
                )
            return result
        shift += 7
    raise ExplorerCorruptError("Truncated varint.")


def decode_varint(raw: bytes) -> int:
    """Decode a Go signed (zigzag) varint occupying the whole value."""
    unsigned = decode_uvarint(raw)
    value = unsigned >> 1
    if unsigned & 1:
        value = ~value
    return value


def decode_sequence_id(raw: bytes) -> int:
    """Decode a snapshot sequence id.

    Eight-byte values are fixed-width big-endian; shorter values are the
    unsigned varint form written by the snapshot plugin store.

    Raises:
        ExplorerCorruptError: If the value is empty or undecodable.
    """
    if not raw:
        raise ExplorerCorruptError("Empty snapshot sequence id.")
    if len(raw) == _UINT64.size:
        return decode_uint64(raw)
    return decode_uvarint(raw)


def decode_go_time(raw: bytes) -> datetime | None:
    """Decode Go ``time.Time.MarshalBinary`` output into a UTC datetime.

    The zero time decodes to None.

    Raises:
        ExplorerCorruptError: If the encoding version or length is wrong.
    """
    if len(raw) not in (_GO_TIME_V1_SIZE, _GO_TIME_V2_SIZE):
        raise ExplorerCorruptError(f"Timestamp has unexpected length {len(raw)}.")
    version, seconds, nanoseconds, _offset_minutes = _GO_TIME_V1.unpack_from(raw, 0)
    if version not in (1, 2) or (version == 1) != (len(raw) == _GO_TIME_V1_SIZE):
        raise ExplorerCorruptError(f"Unsupported timestamp encoding version {version}.")
    if not 0 <= nanoseconds < 1_000_000_000:
        raise ExplorerCorruptError(f"Timestamp nanoseconds out of range: {nanoseconds}.")
    if seconds == 0 and nanoseconds == 0:
        return None
    try:
        return _GO_EPOCH + timedelta(seconds=seconds, microseconds=nanoseconds // 1000)
    except OverflowError as error:
        raise ExplorerCorruptError(f"Timestamp seconds out of range: {seconds}.") from error
