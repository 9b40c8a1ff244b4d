"""Content blob decoding.

Blob keys are digest strings kept verbatim; they are never split into
algorithm and hex parts.
"""

from __future__ import annotations

from core.constants import BUCKET_KEY_BLOB, BUCKET_KEY_CONTENT, KEY_SIZE
from core.errors import ExplorerCorruptError
from core.types import ContentRecord, NamespaceRecords
from metadata.bucket_fields import (
    decode_object_buckets,
    namespace_name,
    read_labels,
    read_timestamps,
    read_varint,
)
from store.bolt_file import Bucket, ReadTransaction
from store.bucket_path import navigate_namespace


def list_content(tx: ReadTransaction, namespace: str | bytes) -> NamespaceRecords[ContentRecord]:
    """Decode all blobs under ``v1/<namespace>/content/blob``.

    Args:
        tx: Read transaction on the primary store.
        namespace: Namespace name or raw namespace key.

    Returns:
        Blob records in digest order; no records when the bucket is absent.
    """
    name = namespace_name(namespace)
    lookup = navigate_namespace(tx, namespace, BUCKET_KEY_CONTENT, BUCKET_KEY_BLOB)
    return decode_object_buckets(
        name,
        lookup,
        lambda digest, bucket: decode_blob(name, digest, bucket),
        "content",
    )


def decode_blob(namespace: str, digest: str, bucket: Bucket) -> ContentRecord:
    """Decode one blob bucket.

    Raises:
        ExplorerCorruptError: If the digest key is empty.
    """
    if not digest:
        raise ExplorerCorruptError("Content blob has an empty digest key.")
    created_at, updated_at = read_timestamps(bucket, namespace=namespace, digest=digest)
    return ContentRecord(
        namespace=namespace,
        digest=digest,
        size=read_varint(bucket, KEY_SIZE, namespace=namespace, digest=digest),
        created_at=created_at,
        updated_at=updated_at,
        labels=read_labels(bucket),
    )
