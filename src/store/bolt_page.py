"""bbolt page layout.

This module parses raw page bytes into headers and elements.
All multi-byte fields are little-endian as written on amd64/arm64 hosts.
"""

from __future__ import annotations

from dataclasses import dataclass
import struct

from core.errors import ExplorerCorruptError

BOLT_MAGIC = 0xED0CDAED
BOLT_VERSION = 2

BRANCH_PAGE_FLAG = 0x01
LEAF_PAGE_FLAG = 0x02
META_PAGE_FLAG = 0x04
FREELIST_PAGE_FLAG = 0x10
BUCKET_LEAF_FLAG = 0x01

PAGE_HEADER = struct.Struct("<QHHI")
BRANCH_ELEMENT = struct.Struct("<IIQ")
LEAF_ELEMENT = struct.Struct("<IIII")
META = struct.Struct("<IIIIQQQQQQ")
BUCKET_HEADER = struct.Struct("<QQ")

_FNV_OFFSET_BASIS = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
_UINT64_MASK = 0xFFFFFFFFFFFFFFFF


@dataclass(frozen=True)
class PageHeader:
    """Fixed header at the start of every page."""

    page_id: int
    flags: int
    count: int
    overflow: int

    @property
    def is_leaf(self) -> bool:
        return bool(self.flags & LEAF_PAGE_FLAG)

    @property
    def is_branch(self) -> bool:
        return bool(self.flags & BRANCH_PAGE_FLAG)


@dataclass(frozen=True)
class MetaPage:
    """Decoded meta page.

    Attributes:
        page_size: Page size the file was created with.
        root_page_id: Root page of the top-level bucket.
        high_water_page_id: First page id beyond the allocated file area.
        txid: Transaction id that wrote this meta page.
    """

    page_size: int
    root_page_id: int
    high_water_page_id: int
    txid: int


@dataclass(frozen=True)
class LeafElement:
    """Key/value pair stored on a leaf page."""

    key: bytes
    value: bytes
    is_bucket: bool


@dataclass(frozen=True)
class BranchElement:
    """Separator key and child page id stored on a branch page."""

    key: bytes
    page_id: int


def read_page_header(buffer: bytes) -> PageHeader:
    """Decode the page header at the start of a buffer.

    Raises:
        ExplorerCorruptError: If the buffer is shorter than a header.
    """
    if len(buffer) < PAGE_HEADER.size:
        raise ExplorerCorruptError(
            f"Truncated page header: need {PAGE_HEADER.size} bytes, got {len(buffer)}."
        )
    page_id, flags, count, overflow = PAGE_HEADER.unpack_from(buffer, 0)
    return PageHeader(page_id=page_id, flags=flags, count=count, overflow=overflow)


def read_meta(buffer: bytes) -> MetaPage:
    """Decode and validate the meta structure of a meta page.

    Args:
        buffer: Page bytes starting at the page header.

    Returns:
        Validated meta page.

    Raises:
        ExplorerCorruptError: If magic, version, or checksum do not match.
    """
    start = PAGE_HEADER.size
    if len(buffer) < start + META.size:
        raise ExplorerCorruptError("Truncated meta page.")
    header = read_page_header(buffer)
    if not header.flags & META_PAGE_FLAG:
        raise ExplorerCorruptError(f"Page {header.page_id} is not a meta page.")
    (
        magic,
        version,
        page_size,
        _flags,
        root_page_id,
        _sequence,
        _freelist_page_id,
        high_water_page_id,
        txid,
        checksum,
    ) = META.unpack_from(buffer, start)
    if magic != BOLT_MAGIC:
        raise ExplorerCorruptError(f"Invalid store magic 0x{magic:08x}.")
    if version != BOLT_VERSION:
        raise ExplorerCorruptError(f"Unsupported store version {version}.")
    if checksum != fnv1a_64(buffer[start : start + META.size - 8]):
        raise ExplorerCorruptError("Meta page checksum mismatch.")
    if page_size < PAGE_HEADER.size + META.size:
        raise ExplorerCorruptError(f"Invalid page size {page_size} in meta page.")
    return MetaPage(
        page_size=page_size,
        root_page_id=root_page_id,
        high_water_page_id=high_water_page_id,
        txid=txid,
    )


def leaf_elements(buffer: bytes) -> list[LeafElement]:
    """Decode all elements of a leaf page.

    Raises:
        ExplorerCorruptError: If an element points outside the page.
    """
    header = read_page_header(buffer)
    elements: list[LeafElement] = []
    for index in range(header.count):
        element_offset = PAGE_HEADER.size + index * LEAF_ELEMENT.size
        _check_bounds(buffer, element_offset, LEAF_ELEMENT.size, header.page_id)
        flags, pos, key_size, value_size = LEAF_ELEMENT.unpack_from(buffer, element_offset)
        key_start = element_offset + pos
        _check_bounds(buffer, key_start, key_size + value_size, header.page_id)
        value_start = key_start + key_size
        elements.append(
            LeafElement(
                key=bytes(buffer[key_start:value_start]),
                value=bytes(buffer[value_start : value_start + value_size]),
                is_bucket=bool(flags & BUCKET_LEAF_FLAG),
            )
        )
    return elements


def branch_elements(buffer: bytes) -> list[BranchElement]:
    """Decode all elements of a branch page.

    Raises:
        ExplorerCorruptError: If an element points outside the page.
    """
    header = read_page_header(buffer)
    elements: list[BranchElement] = []
    for index in range(header.count):
        element_offset = PAGE_HEADER.size + index * BRANCH_ELEMENT.size
        _check_bounds(buffer, element_offset, BRANCH_ELEMENT.size, header.page_id)
        pos, key_size, page_id = BRANCH_ELEMENT.unpack_from(buffer, element_offset)
        key_start = element_offset + pos
        _check_bounds(buffer, key_start, key_size, header.page_id)
        elements.append(
            BranchElement(key=bytes(buffer[key_start : key_start + key_size]), page_id=page_id)
        )
    return elements


def fnv1a_64(data: bytes) -> int:
    """Return the 64-bit FNV-1a hash used for meta checksums."""
    value = _FNV_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * _FNV_PRIME) & _UINT64_MASK
    return value


def _check_bounds(buffer: bytes, start: int, length: int, page_id: int) -> None:
    if start < 0 or start + length > len(buffer):
        raise ExplorerCorruptError(
            f"Element on page {page_id} points outside the page "
            f"(offset {start}, length {length}, page bytes {len(buffer)})."
        )
