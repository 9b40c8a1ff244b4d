"""Test-only writer for bbolt files.

Builds real page layouts (meta, freelist, leaf, branch, overflow, and
inline bucket pages) from nested dicts so the reader can be exercised
without a containerd host.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import json
import math
from pathlib import Path
import struct
from typing import Mapping, Union

from google.protobuf import any_pb2

from store.bolt_page import (
    BOLT_MAGIC,
    BOLT_VERSION,
    BRANCH_ELEMENT,
    BRANCH_PAGE_FLAG,
    BUCKET_HEADER,
    BUCKET_LEAF_FLAG,
    FREELIST_PAGE_FLAG,
    LEAF_ELEMENT,
    LEAF_PAGE_FLAG,
    META,
    META_PAGE_FLAG,
    PAGE_HEADER,
    fnv1a_64,
)

TreeValue = Union[bytes, str, "RawBucket", "Tree"]
Tree = Mapping[Union[bytes, str], TreeValue]

_GO_UNIX_OFFSET_SECONDS = 62135596800
SPEC_TYPE_URL = "types.containerd.io/opencontainers/runtime-spec/1/Spec"


@dataclass(frozen=True)
class RawBucket:
    """Leaf value flagged as a nested bucket but written verbatim."""

    value: bytes


@dataclass
class BoltBuilder:
    """Serialize nested dicts into a bbolt file.

    Attributes:
        page_size: Page size written into the meta pages.
        max_leaf_elements: Split leaves above this size under a branch page.
        inline_buckets: Embed small leaf-only buckets in their parent.
        txid: Transaction id of the newer meta page.
    """

    page_size: int = 4096
    max_leaf_elements: int | None = None
    inline_buckets: bool = True
    txid: int = 2

    def write(self, path: Path, tree: Tree) -> Path:
        self._pages: dict[int, bytes] = {}
        self._next_page_id = 3
        root_page_id = self._write_tree(self._elements(tree))
        self._pages[2] = self._page(2, FREELIST_PAGE_FLAG, 0, b"")
        self._pages[0] = self._meta(0, root_page_id, self.txid)
        self._pages[1] = self._meta(1, root_page_id, self.txid - 1)
        image = bytearray(self._next_page_id * self.page_size)
        for page_id, page in self._pages.items():
            offset = page_id * self.page_size
            image[offset : offset + len(page)] = page
        path.write_bytes(bytes(image))
        return path

    def _elements(self, tree: Tree) -> list[tuple[bytes, bytes, bool]]:
        elements = []
        for key, value in tree.items():
            raw_key = key.encode("utf-8") if isinstance(key, str) else key
            if isinstance(value, RawBucket):
                elements.append((raw_key, value.value, True))
            elif isinstance(value, Mapping):
                elements.append((raw_key, self._bucket_value(value), True))
            else:
                raw_value = value.encode("utf-8") if isinstance(value, str) else value
                elements.append((raw_key, raw_value, False))
        return sorted(elements, key=lambda element: element[0])

    def _bucket_value(self, tree: Tree) -> bytes:
        elements = self._elements(tree)
        inline_size = PAGE_HEADER.size + sum(
            LEAF_ELEMENT.size + len(key) + len(value) for key, value, _ in elements
        )
        if (
            self.inline_buckets
            and not any(is_bucket for _, _, is_bucket in elements)
            and inline_size <= self.page_size // 4
        ):
            return BUCKET_HEADER.pack(0, 0) + self._leaf(0, elements)
        return BUCKET_HEADER.pack(self._write_tree(elements), 0)

    def _write_tree(self, elements: list[tuple[bytes, bytes, bool]]) -> int:
        limit = self.max_leaf_elements
        if not limit or len(elements) <= limit:
            return self._allocate(lambda page_id, overflow: self._leaf(page_id, elements, overflow))
        children = []
        for start in range(0, len(elements), limit):
            chunk = elements[start : start + limit]
            child_id = self._allocate(
                lambda page_id, overflow, chunk=chunk: self._leaf(page_id, chunk, overflow)
            )
            children.append((chunk[0][0], child_id))
        return self._allocate(lambda page_id, overflow: self._branch(page_id, children, overflow))

    def _allocate(self, render) -> int:
        size = len(render(0, 0))
        page_count = max(1, math.ceil(size / self.page_size))
        page_id = self._next_page_id
        self._next_page_id += page_count
        self._pages[page_id] = render(page_id, page_count - 1)
        return page_id

    def _leaf(self, page_id: int, elements, overflow: int = 0) -> bytes:
        headers = b""
        data = b""
        data_start = PAGE_HEADER.size + len(elements) * LEAF_ELEMENT.size
        for index, (key, value, is_bucket) in enumerate(elements):
            element_offset = PAGE_HEADER.size + index * LEAF_ELEMENT.size
            position = data_start + len(data) - element_offset
            flags = BUCKET_LEAF_FLAG if is_bucket else 0
            headers += LEAF_ELEMENT.pack(flags, position, len(key), len(value))
            data += key + value
        return self._page(page_id, LEAF_PAGE_FLAG, len(elements), headers + data, overflow)

    def _branch(self, page_id: int, children, overflow: int = 0) -> bytes:
        headers = b""
        data = b""
        data_start = PAGE_HEADER.size + len(children) * BRANCH_ELEMENT.size
        for index, (key, child_id) in enumerate(children):
            element_offset = PAGE_HEADER.size + index * BRANCH_ELEMENT.size
            headers += BRANCH_ELEMENT.pack(data_start + len(data) - element_offset, len(key), child_id)
            data += key
        return self._page(page_id, BRANCH_PAGE_FLAG, len(children), headers + data, overflow)

    def _page(self, page_id: int, flags: int, count: int, body: bytes, overflow: int = 0) -> bytes:
        return PAGE_HEADER.pack(page_id, flags, count, overflow) + body

    def _meta(self, page_id: int, root_page_id: int, txid: int) -> bytes:
        fields = META.pack(
            BOLT_MAGIC,
            BOLT_VERSION,
            self.page_size,
            0,
            root_page_id,
            0,
            2,
            self._next_page_id,
            txid,
            0,
        )[:-8]
        meta = fields + struct.pack("<Q", fnv1a_64(fields))
        return self._page(page_id, META_PAGE_FLAG, 0, meta)


def write_bolt(path: Path, tree: Tree, **options: object) -> Path:
    """Write a tree with default builder options overridden by keywords."""
    return BoltBuilder(**options).write(path, tree)


def go_time(value: datetime) -> bytes:
    """Encode a datetime like Go ``time.Time.MarshalBinary`` (version 1, UTC)."""
    value = value.astimezone(timezone.utc)
    seconds = int(value.replace(microsecond=0).timestamp()) + _GO_UNIX_OFFSET_SECONDS
    return struct.pack(">Bqih", 1, seconds, value.microsecond * 1000, -1)


def uvarint(value: int) -> bytes:
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def varint(value: int) -> bytes:
    return uvarint((value << 1) ^ (value >> 63) if value < 0 else value << 1)


def spec_payload(document: object, type_url: str = SPEC_TYPE_URL) -> bytes:
    """Wrap a runtime spec document the way containerd stores it."""
    wrapper = any_pb2.Any(type_url=type_url, value=json.dumps(document).encode("utf-8"))
    return wrapper.SerializeToString()
