"""Lease decoding.

Leases have no fixed shape beyond id and creation time, so each lease
becomes an open mapping merged with its namespace. Resources pinned by
the lease are listed under ``resources``; unrecognised plain values are
kept as text.
"""

from __future__ import annotations

from typing import Any

from core.constants import (
    BUCKET_KEY_LABELS,
    BUCKET_KEY_LEASES,
    BUCKET_KEY_SNAPSHOTS,
    KEY_CREATED_AT,
    KEY_UPDATED_AT,
)
from core.types import NamespaceRecords
from metadata.bucket_fields import (
    decode_object_buckets,
    decode_text,
    namespace_name,
    read_labels,
    read_timestamp,
)
from store.bolt_file import Bucket, ReadTransaction
from store.bucket_path import navigate_namespace

_TIMESTAMP_KEYS = (KEY_CREATED_AT, KEY_UPDATED_AT)


def list_leases(tx: ReadTransaction, namespace: str | bytes) -> NamespaceRecords[dict[str, Any]]:
    """Decode all leases of one namespace in id order."""
    name = namespace_name(namespace)
    lookup = navigate_namespace(tx, namespace, BUCKET_KEY_LEASES)
    return decode_object_buckets(
        name,
        lookup,
        lambda lease_id, bucket: decode_lease(name, lease_id, bucket),
        "lease",
    )


def decode_lease(namespace: str, lease_id: str, bucket: Bucket) -> dict[str, Any]:
    """Decode one lease bucket into an open attribute map."""
    lease: dict[str, Any] = {
        "namespace": namespace,
        "id": lease_id,
        "created_at": read_timestamp(bucket, KEY_CREATED_AT, namespace=namespace, lease=lease_id),
        "labels": read_labels(bucket),
    }
    resources: list[dict[str, str]] = []
    for key, value in bucket.items():
        if key in _TIMESTAMP_KEYS or key == BUCKET_KEY_LABELS:
            continue
        name = decode_text(key)
        if value is not None:
            lease.setdefault(name, decode_text(value))
            continue
        child = bucket.bucket(key)
        if child is not None:
            resources.extend(_resources(name, child))
    if bucket.get(KEY_UPDATED_AT) is not None:
        lease["updated_at"] = read_timestamp(
            bucket, KEY_UPDATED_AT, namespace=namespace, lease=lease_id
        )
    lease["resources"] = resources
    return lease


def _resources(resource_type: str, bucket: Bucket) -> list[dict[str, str]]:
    if resource_type.encode("utf-8") == BUCKET_KEY_SNAPSHOTS:
        return [
            {"id": decode_text(key), "type": f"{resource_type}/{decode_text(plugin)}"}
            for plugin, plugin_bucket in bucket.buckets()
            for key in plugin_bucket.keys()
        ]
    return [{"id": decode_text(key), "type": resource_type} for key in bucket.keys()]
