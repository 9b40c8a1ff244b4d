"""Read-only bbolt store access.

This module opens a store file under a shared lock, pins a meta page
per transaction, and walks the B+tree of nested buckets. It never
writes to the file.
"""

from __future__ import annotations

from bisect import bisect_right
from contextlib import contextmanager
import errno
import fcntl
import mmap
import os
from pathlib import Path
import time
from typing import Iterator

from core.constants import LOCK_POLL_INTERVAL_SECONDS
from core.errors import (
    ExplorerCorruptError,
    ExplorerLockedError,
    ExplorerNotFoundError,
    ExplorerPlatformError,
)
from core.logging_config import get_logger
from store.bolt_page import (
    BUCKET_HEADER,
    PAGE_HEADER,
    LeafElement,
    MetaPage,
    branch_elements,
    leaf_elements,
    read_meta,
    read_page_header,
)

_LOGGER = get_logger(__name__)
_MAX_TREE_DEPTH = 64
_FALLBACK_PAGE_SIZES = (4096, 8192, 16384, 32768, 65536)


class BoltFile:
    """Shared, read-only handle on one bbolt store file."""

    def __init__(self, path: Path, descriptor: int, mapping: mmap.mmap) -> None:
        self.path = path
        self._descriptor = descriptor
        self._mapping = mapping
        self._closed = False

    @classmethod
    def open(cls, path: Path, timeout: float) -> "BoltFile":
        """Open a store file read-only under a shared lock.

        Args:
            path: Store file path.
            timeout: Seconds to keep retrying the shared lock.

        Returns:
            Open store handle; release it with ``close`` or ``with``.

        Raises:
            ExplorerNotFoundError: If the file does not exist.
            ExplorerLockedError: If the lock is not granted before the timeout.
            ExplorerCorruptError: If no valid meta page is present.
            ExplorerPlatformError: For other I/O failures.
        """
        try:
            descriptor = os.open(path, os.O_RDONLY)
        except FileNotFoundError as error:
            raise ExplorerNotFoundError(f"Store file not found: {path}.") from error
        except OSError as error:
            raise ExplorerPlatformError(f"Cannot open store file {path}: {error}.") from error
        try:
            _acquire_shared_lock(descriptor, path, timeout)
            mapping = _map_file(descriptor, path)
        except BaseException:
            os.close(descriptor)
            raise
        handle = cls(path, descriptor, mapping)
        try:
            handle.meta()
        except BaseException:
            handle.close()
            raise
        _LOGGER.debug("store_opened", path=str(path), size=len(mapping))
        return handle

    def close(self) -> None:
        """Release the mapping, the lock, and the descriptor."""
        if self._closed:
            return
        self._closed = True
        self._mapping.close()
        os.close(self._descriptor)

    def __enter__(self) -> "BoltFile":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def meta(self) -> MetaPage:
        """Return the valid meta page with the highest transaction id.

        Raises:
            ExplorerCorruptError: If neither meta page is valid.
        """
        candidates: list[MetaPage] = []
        failures: list[str] = []
        first_page = self._mapping[: _FALLBACK_PAGE_SIZES[0]]
        try:
            first_meta = read_meta(first_page)
            candidates.append(first_meta)
            second_offsets: tuple[int, ...] = (first_meta.page_size,)
        except ExplorerCorruptError as error:
            failures.append(str(error))
            second_offsets = _FALLBACK_PAGE_SIZES
        for offset in second_offsets:
            try:
                candidates.append(read_meta(self._mapping[offset : offset * 2]))
                break
            except ExplorerCorruptError as error:
                failures.append(str(error))
        if not candidates:
            raise ExplorerCorruptError(
                f"Store file {self.path} has no valid meta page: {'; '.join(failures)}"
            )
        return max(candidates, key=lambda meta: meta.txid)

    @contextmanager
    def view(self) -> Iterator["ReadTransaction"]:
        """Open a read-only transaction pinned to the current meta page."""
        if self._closed:
            raise ExplorerPlatformError(f"Store file {self.path} is closed.")
        yield ReadTransaction(self, self.meta())

    def read_page(self, page_id: int, page_size: int) -> bytes:
        """Return the bytes of a page including its overflow pages.

        Raises:
            ExplorerCorruptError: If the page lies outside the file.
        """
        offset = page_id * page_size
        if offset + PAGE_HEADER.size > len(self._mapping):
            raise ExplorerCorruptError(
                f"Page {page_id} lies beyond the end of {self.path}."
            )
        header = read_page_header(self._mapping[offset : offset + PAGE_HEADER.size])
        if header.page_id != page_id:
            raise ExplorerCorruptError(
                f"Page {page_id} header carries id {header.page_id}."
            )
        end = offset + (header.overflow + 1) * page_size
        if end > len(self._mapping):
            raise ExplorerCorruptError(
                f"Page {page_id} overflows beyond the end of {self.path}."
            )
        return self._mapping[offset:end]


class ReadTransaction:
    """Consistent read view of a store at one transaction id."""

    def __init__(self, store: BoltFile, meta: MetaPage) -> None:
        self._store = store
        self.meta = meta
        self.root = Bucket(self, meta.root_page_id)

    @property
    def txid(self) -> int:
        return self.meta.txid

    def bucket(self, name: bytes) -> "Bucket | None":
        """Return a top-level bucket or None when absent."""
        return self.root.bucket(name)

    def page(self, page_id: int) -> bytes:
        return self._store.read_page(page_id, self.meta.page_size)


class Bucket:
    """Nested bucket backed by a page tree or an inline page."""

    def __init__(
        self,
        tx: ReadTransaction,
        root_page_id: int,
        inline_page: bytes | None = None,
    ) -> None:
        self._tx = tx
        self._root_page_id = root_page_id
        self._inline_page = inline_page

    def get(self, key: bytes) -> bytes | None:
        """Return the value for key, or None if absent or a nested bucket."""
        element = self._seek(key)
        if element is None or element.is_bucket:
            return None
        return element.value

    def bucket(self, key: bytes) -> "Bucket | None":
        """Return the nested bucket for key, or None if absent."""
        element = self._seek(key)
        if element is None or not element.is_bucket:
            return None
        return self._open_child(element.value)

    def items(self) -> Iterator[tuple[bytes, bytes | None]]:
        """Yield (key, value) pairs in key order; value is None for buckets."""
        for element in self._iter_elements(self._root_buffer(), 0):
            yield element.key, None if element.is_bucket else element.value

    def buckets(self) -> Iterator[tuple[bytes, "Bucket"]]:
        """Yield (key, bucket) pairs for nested buckets in key order."""
        for element in self._iter_elements(self._root_buffer(), 0):
            if element.is_bucket:
                yield element.key, self._open_child(element.value)

    def keys(self) -> Iterator[bytes]:
        for key, _ in self.items():
            yield key

    def _root_buffer(self) -> bytes:
        if self._inline_page is not None:
            return self._inline_page
        return self._tx.page(self._root_page_id)

    def _open_child(self, value: bytes) -> "Bucket":
        if len(value) < BUCKET_HEADER.size:
            raise ExplorerCorruptError(
                f"Bucket header truncated: need {BUCKET_HEADER.size} bytes, got {len(value)}."
            )
        root_page_id, _sequence = BUCKET_HEADER.unpack_from(value, 0)
        if root_page_id == 0:
            return Bucket(self._tx, 0, value[BUCKET_HEADER.size :])
        return Bucket(self._tx, root_page_id)

    def _iter_elements(self, buffer: bytes, depth: int) -> Iterator[LeafElement]:
        _check_depth(depth)
        header = read_page_header(buffer)
        if header.is_leaf:
            yield from leaf_elements(buffer)
        elif header.is_branch:
            for branch in branch_elements(buffer):
                yield from self._iter_elements(self._tx.page(branch.page_id), depth + 1)
        else:
            raise ExplorerCorruptError(
                f"Page {header.page_id} has unexpected flags 0x{header.flags:02x}."
            )

    def _seek(self, key: bytes) -> LeafElement | None:
        buffer = self._root_buffer()
        for depth in range(_MAX_TREE_DEPTH + 1):
            header = read_page_header(buffer)
            if header.is_leaf:
                for element in leaf_elements(buffer):
                    if element.key == key:
                        return element
                return None
            if not header.is_branch:
                raise ExplorerCorruptError(
                    f"Page {header.page_id} has unexpected flags 0x{header.flags:02x}."
                )
            branches = branch_elements(buffer)
            if not branches:
                return None
            index = max(bisect_right([branch.key for branch in branches], key) - 1, 0)
            buffer = self._tx.page(branches[index].page_id)
        _check_depth(_MAX_TREE_DEPTH + 1)
        return None


def _check_depth(depth: int) -> None:
    if depth > _MAX_TREE_DEPTH:
        raise ExplorerCorruptError(
            f"Bucket tree deeper than {_MAX_TREE_DEPTH} levels; the page graph is cyclic."
        )


def _acquire_shared_lock(descriptor: int, path: Path, timeout: float) -> None:
    """Take a shared flock, polling until the timeout expires.

    Raises:
        ExplorerLockedError: If an exclusive holder keeps the lock.
        ExplorerPlatformError: If locking fails for another reason.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            fcntl.flock(descriptor, fcntl.LOCK_SH | fcntl.LOCK_NB)
            return
        except OSError as error:
            if error.errno not in (errno.EAGAIN, errno.EWOULDBLOCK, errno.EACCES):
                raise ExplorerPlatformError(f"Cannot lock store file {path}: {error}.") from error
        if time.monotonic() >= deadline:
            raise ExplorerLockedError(
                f"Timed out after {timeout:.2f}s waiting for a shared lock on {path}. "
                "Another process holds it exclusively; inspect a copy of the file instead."
            )
        time.sleep(LOCK_POLL_INTERVAL_SECONDS)


def _map_file(descriptor: int, path: Path) -> mmap.mmap:
    """Map the whole file read-only.

    Raises:
        ExplorerCorruptError: If the file is too small to hold meta pages.
        ExplorerPlatformError: If mapping fails.
    """
    try:
        size = os.fstat(descriptor).st_size
    except OSError as error:
        raise ExplorerPlatformError(f"Cannot stat store file {path}: {error}.") from error
    if size < 2 * PAGE_HEADER.size:
        raise ExplorerCorruptError(f"Store file {path} is too small ({size} bytes).")
    try:
        return mmap.mmap(descriptor, 0, access=mmap.ACCESS_READ)
    except (OSError, ValueError) as error:
        raise ExplorerPlatformError(f"Cannot map store file {path}: {error}.") from error
