"""Shared field readers for containerd buckets.

This module reads the labels, timestamps, and scalar values that every
containerd object bucket carries. A corrupt field degrades to an empty
value and a warning event; the surrounding record is kept.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, TypeVar

from core.constants import BUCKET_KEY_LABELS, KEY_CREATED_AT, KEY_UPDATED_AT
from core.errors import ExplorerCorruptError
from core.logging_config import get_logger
from core.types import NamespaceRecords
from store.bolt_file import Bucket
from store.bucket_path import BucketLookup
from store.codecs import decode_go_time, decode_varint

_LOGGER = get_logger(__name__)

RecordT = TypeVar("RecordT")


def decode_text(raw: bytes | None) -> str:
    """Decode a UTF-8 key or value; absent values become empty strings."""
    if raw is None:
        return ""
    return raw.decode("utf-8", errors="replace")


def namespace_name(namespace: str | bytes) -> str:
    """Return the display name of a namespace given as text or raw key."""
    return decode_text(namespace) if isinstance(namespace, bytes) else namespace


def read_string_map(bucket: Bucket, name: bytes) -> dict[str, str]:
    """Read a sub-bucket of string pairs such as labels or annotations."""
    child = bucket.bucket(name)
    if child is None:
        return {}
    return {
        decode_text(key): decode_text(value)
        for key, value in child.items()
        if value is not None
    }


def read_labels(bucket: Bucket) -> dict[str, str]:
    return read_string_map(bucket, BUCKET_KEY_LABELS)


def read_timestamp(bucket: Bucket, key: bytes, **log_fields: object) -> datetime | None:
    """Read one Go binary timestamp; corrupt values become None."""
    raw = bucket.get(key)
    if raw is None:
        return None
    try:
        return decode_go_time(raw)
    except ExplorerCorruptError as error:
        _LOGGER.warning("field_corrupt", field=decode_text(key), error=str(error), **log_fields)
        return None


def read_timestamps(bucket: Bucket, **log_fields: object) -> tuple[datetime | None, datetime | None]:
    """Read the created and updated timestamps of an object bucket."""
    return (
        read_timestamp(bucket, KEY_CREATED_AT, **log_fields),
        read_timestamp(bucket, KEY_UPDATED_AT, **log_fields),
    )


def read_varint(bucket: Bucket, key: bytes, **log_fields: object) -> int:
    """Read a signed varint value; absent or corrupt values become 0."""
    raw = bucket.get(key)
    if raw is None:
        return 0
    try:
        return decode_varint(raw)
    except ExplorerCorruptError as error:
        _LOGGER.warning("field_corrupt", field=decode_text(key), error=str(error), **log_fields)
        return 0


def decode_object_buckets(
    namespace: str,
    lookup: BucketLookup,
    decode_one: Callable[[str, Bucket], RecordT],
    kind: str,
) -> NamespaceRecords[RecordT]:
    """Decode every child bucket of a namespace-level object bucket.

    Args:
        namespace: Owning namespace.
        lookup: Result of navigating to the object bucket.
        decode_one: Decoder for one (key, bucket) pair.
        kind: Object kind for log events.

    Returns:
        Records in key order; corrupt records are counted in ``skipped``.
    """
    if not lookup.found or lookup.bucket is None:
        _LOGGER.debug("bucket_absent", namespace=namespace, kind=kind, path=lookup.describe())
        return NamespaceRecords(namespace=namespace, records=(), bucket_found=False)
    parent = lookup.bucket
    records: list[RecordT] = []
    skipped = 0
    try:
        for key, value in parent.items():
            if value is not None:
                continue
            try:
                child = parent.bucket(key)
                if child is None:
                    raise ExplorerCorruptError("Bucket entry cannot be resolved by its key.")
                records.append(decode_one(decode_text(key), child))
            except ExplorerCorruptError as error:
                skipped += 1
                _LOGGER.warning(
                    "record_skipped",
                    namespace=namespace,
                    kind=kind,
                    key=decode_text(key),
                    error=str(error),
                )
    except ExplorerCorruptError as error:
        skipped += 1
        _LOGGER.warning(
            "bucket_truncated",
            namespace=namespace,
            kind=kind,
            decoded=len(records),
            error=str(error),
        )
    return NamespaceRecords(namespace=namespace, records=tuple(records), skipped=skipped)
