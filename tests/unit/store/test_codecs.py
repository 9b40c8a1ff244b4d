"""Unit tests for bucket value codecs."""

from __future__ import annotations

from datetime import datetime, timezone
import struct

import pytest

from core.errors import ExplorerCorruptError
from store.codecs import (
    UINT64_MAX,
    decode_go_time,
    decode_sequence_id,
    decode_uint64,
    decode_uvarint,
    decode_varint,
    encode_uint64,
)
from tests.bolt_builder import go_time, uvarint, varint


@pytest.mark.parametrize("value", [0, 1, 42, 2**32, UINT64_MAX])
def test_uint64_round_trips_through_big_endian_bytes(value: int) -> None:
    """Fixed-width encoding should be reversible across the uint64 range."""
    encoded = encode_uint64(value)

    assert (len(encoded), decode_uint64(encoded)) == (8, value)


def test_uint64_is_big_endian() -> None:
    """The most significant byte should come first."""
    assert encode_uint64(42) == b"\x00" * 7 + b"\x2a"


def test_encode_uint64_rejects_out_of_range() -> None:
    """Negative and oversized values cannot be encoded."""
    with pytest.raises(ValueError):
        encode_uint64(UINT64_MAX + 1)


def test_decode_uint64_rejects_truncated_value() -> None:
    """A short fixed-width integer should be reported as corrupt."""
    with pytest.raises(ExplorerCorruptError):
        decode_uint64(b"\x00\x01")


def test_go_time_decodes_to_utc() -> None:
    """Go binary timestamps should decode to the same UTC instant."""
    moment = datetime(2023, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)

    assert decode_go_time(go_time(moment)) == moment


def test_go_time_version_two_is_accepted() -> None:
    """Version 2 timestamps carry an extra offset-seconds byte."""
    moment = datetime(2021, 1, 1, tzinfo=timezone.utc)
    raw = b"\x02" + go_time(moment)[1:] + b"\x00"

    assert decode_go_time(raw) == moment


def test_go_zero_time_decodes_to_none() -> None:
    """The Go zero time means the timestamp was never set."""
    raw = struct.pack(">Bqih", 1, 0, 0, -1)

    assert decode_go_time(raw) is None


@pytest.mark.parametrize("raw", [b"", b"\x01\x02", b"\x03" + b"\x00" * 14])
def test_go_time_rejects_malformed_values(raw: bytes) -> None:
    """Wrong lengths and versions should be reported as corrupt."""
    with pytest.raises(ExplorerCorruptError):
        decode_go_time(raw)


@pytest.mark.parametrize("value", [0, 1, 127, 128, 300, 2**40])
def test_uvarint_matches_go_encoding(value: int) -> None:
    """Unsigned varints should decode Go's PutUvarint output."""
    assert decode_uvarint(uvarint(value)) == value


@pytest.mark.parametrize("value", [0, -1, 1, -64, 1234])
def test_varint_decodes_zigzag_values(value: int) -> None:
    """Signed varints should decode Go's PutVarint output."""
    assert decode_varint(varint(value)) == value


@pytest.mark.parametrize("raw", [b"", b"\x80", b"\x01\x00"])
def test_uvarint_rejects_truncated_or_padded_values(raw: bytes) -> None:
    """Truncated varints and trailing bytes are corrupt."""
    with pytest.raises(ExplorerCorruptError):
        decode_uvarint(raw)


def test_sequence_id_reads_fixed_width_and_varint_forms() -> None:
    """Sequence ids should decode from both stored forms."""
    assert (decode_sequence_id(encode_uint64(42)), decode_sequence_id(uvarint(42))) == (42, 42)


def test_sequence_id_rejects_empty_value() -> None:
    """An empty id is corrupt."""
    with pytest.raises(ExplorerCorruptError):
        decode_sequence_id(b"")
