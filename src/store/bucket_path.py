"""Nested bucket navigation.

This module resolves a path of raw bucket keys into a bucket. A missing
level is reported as data on the lookup result, never as an exception,
because absent namespaces and sub-buckets are a normal store state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.constants import BUCKET_KEY_VERSION

if TYPE_CHECKING:
    from store.bolt_file import Bucket, ReadTransaction


@dataclass(frozen=True)
class BucketLookup:
    """Result of resolving a bucket path.

    Attributes:
        path: Requested key path.
        bucket: Resolved bucket, or None when a level is absent.
        missing_segment: First key that could not be resolved.
    """

    path: tuple[bytes, ...]
    bucket: "Bucket | None" = None
    missing_segment: bytes | None = None

    @property
    def found(self) -> bool:
        return self.bucket is not None

    @classmethod
    def absent(cls, path: tuple[bytes, ...], missing_segment: bytes) -> "BucketLookup":
        return cls(path=path, bucket=None, missing_segment=missing_segment)

    def describe(self) -> str:
        """Render the path as slash-separated text for log fields."""
        return "/".join(segment.decode("utf-8", errors="replace") for segment in self.path)


def navigate(tx: "ReadTransaction", *segments: bytes) -> BucketLookup:
    """Resolve nested buckets from the top level of a transaction.

    Args:
        tx: Open read transaction.
        segments: Bucket keys from the top level downwards.

    Returns:
        Lookup result; ``found`` is False if any level is absent.

    Raises:
        ValueError: If no segment is given.
    """
    if not segments:
        raise ValueError("navigate requires at least one bucket key")
    bucket = tx.bucket(segments[0])
    if bucket is None:
        return BucketLookup.absent(segments, segments[0])
    for segment in segments[1:]:
        child = bucket.bucket(segment)
        if child is None:
            return BucketLookup.absent(segments, segment)
        bucket = child
    return BucketLookup(path=segments, bucket=bucket)


def navigate_namespace(
    tx: "ReadTransaction",
    namespace: str | bytes,
    *segments: bytes,
) -> BucketLookup:
    """Resolve ``v1/<namespace>/<segments...>`` in the primary store.

    Raw key bytes are used as given; text names are UTF-8 encoded.
    """
    key = namespace if isinstance(namespace, bytes) else namespace.encode("utf-8")
    return navigate(tx, BUCKET_KEY_VERSION, key, *segments)
