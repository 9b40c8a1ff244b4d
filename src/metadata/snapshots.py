"""Snapshot decoding across the primary and plugin stores.

The primary store indexes snapshots per namespace and plugin under
``v1/<namespace>/snapshots/<plugin>/<key>``. Kind, sequence id, and
usage live in each plugin's own store under ``v1/snapshots/<name>``.
Records are grouped by plugin so each plugin store is opened once and
overlay paths are built from that plugin's own root.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Iterable

from core.constants import (
    BUCKET_KEY_SNAPSHOTS,
    BUCKET_KEY_VERSION,
    KEY_ID,
    KEY_INODES,
    KEY_KIND,
    KEY_NAME,
    KEY_PARENT,
    KEY_SIZE,
    SNAPSHOT_KIND_NAMES,
)
from core.errors import ExplorerCorruptError, ExplorerNotFoundError
from core.logging_config import get_logger
from core.types import NamespaceRecords, SnapshotDetail, SnapshotIndexEntry, SnapshotRecord
from metadata.bucket_fields import (
    decode_object_buckets,
    decode_text,
    namespace_name,
    read_labels,
    read_timestamps,
    read_varint,
)
from store.bolt_file import Bucket, ReadTransaction
from store.bucket_path import BucketLookup, navigate, navigate_namespace
from store.codecs import decode_sequence_id
from store.environment import ContainerEnvironment

_LOGGER = get_logger(__name__)


def overlay_path(plugin_root: str, sequence_id: int) -> str:
    """Build the on-disk directory of a snapshot's filesystem."""
    return f"{plugin_root}/snapshots/{sequence_id}/fs"


def read_snapshot_index(
    tx: ReadTransaction,
    namespace: str | bytes,
) -> NamespaceRecords[SnapshotIndexEntry]:
    """Read the per-plugin snapshot index of one namespace.

    Args:
        tx: Read transaction on the primary store.
        namespace: Namespace name or raw namespace key.

    Returns:
        Index entries ordered by plugin name, then key. A corrupt plugin
        bucket is counted in ``skipped`` and the other plugins are kept.
    """
    name = namespace_name(namespace)
    lookup = navigate_namespace(tx, namespace, BUCKET_KEY_SNAPSHOTS)
    if lookup.bucket is None:
        return NamespaceRecords(namespace=name, records=(), bucket_found=False)
    parent = lookup.bucket
    entries: list[SnapshotIndexEntry] = []
    skipped = 0
    try:
        for plugin_key, value in parent.items():
            if value is not None:
                continue
            snapshotter = decode_text(plugin_key)
            try:
                plugin_bucket = parent.bucket(plugin_key)
            except ExplorerCorruptError as error:
                skipped += 1
                _LOGGER.warning(
                    "snapshot_plugin_skipped",
                    namespace=name,
                    snapshotter=snapshotter,
                    error=str(error),
                )
                continue
            listing = decode_object_buckets(
                name,
                BucketLookup(path=lookup.path + (plugin_key,), bucket=plugin_bucket),
                lambda key, bucket: _decode_index_entry(name, snapshotter, key, bucket),
                "snapshot",
            )
            entries.extend(listing.records)
            skipped += listing.skipped
    except ExplorerCorruptError as error:
        skipped += 1
        _LOGGER.warning(
            "bucket_truncated",
            namespace=name,
            kind="snapshot",
            decoded=len(entries),
            error=str(error),
        )
    _log_missing_parents(name, entries)
    return NamespaceRecords(namespace=name, records=tuple(entries), skipped=skipped)


def read_snapshot_details(
    tx: ReadTransaction,
    backend_keys: Iterable[bytes],
) -> dict[bytes, SnapshotDetail]:
    """Read snapshot details from a plugin store.

    Args:
        tx: Read transaction on a plugin store.
        backend_keys: Raw snapshot keys inside the plugin store.

    Returns:
        Details keyed by raw key; missing or corrupt snapshots are left out.
    """
    lookup = navigate(tx, BUCKET_KEY_VERSION, BUCKET_KEY_SNAPSHOTS)
    if lookup.bucket is None:
        _LOGGER.info("plugin_snapshots_absent", path=lookup.describe())
        return {}
    details: dict[bytes, SnapshotDetail] = {}
    for key in backend_keys:
        backend_name = decode_text(key)
        try:
            bucket = lookup.bucket.bucket(key)
            if bucket is None:
                _LOGGER.info("plugin_snapshot_absent", backend_name=backend_name)
                continue
            details[key] = decode_snapshot_detail(backend_name, bucket)
        except ExplorerCorruptError as error:
            _LOGGER.warning("plugin_snapshot_skipped", backend_name=backend_name, error=str(error))
    return details


def decode_snapshot_detail(backend_name: str, bucket: Bucket) -> SnapshotDetail:
    """Decode one snapshot bucket of a plugin store.

    A corrupt or missing sequence id becomes 0, which no real snapshot uses.
    """
    created_at, updated_at = read_timestamps(bucket, backend_name=backend_name)
    raw_kind = bucket.get(KEY_KIND)
    kind = SNAPSHOT_KIND_NAMES.get(raw_kind[0], "unknown") if raw_kind else "unknown"
    return SnapshotDetail(
        backend_name=backend_name,
        kind=kind,
        parent_name=decode_text(bucket.get(KEY_PARENT)),
        sequence_id=_read_sequence_id(bucket, backend_name),
        created_at=created_at,
        updated_at=updated_at,
        inodes=read_varint(bucket, KEY_INODES, backend_name=backend_name),
        size=read_varint(bucket, KEY_SIZE, backend_name=backend_name),
    )


def resolve_snapshots(
    environment: ContainerEnvironment,
    index: list[NamespaceRecords[SnapshotIndexEntry]],
) -> list[NamespaceRecords[SnapshotRecord]]:
    """Join index entries with plugin store details.

    Args:
        environment: Resolver for plugin roots and stores.
        index: Per-namespace index listings from the primary store.

    Returns:
        Per-namespace snapshot records in index order.

    Raises:
        ExplorerPlatformError: If a plugin store exists but cannot be opened or
            locked. Missing or corrupt plugin stores only leave their
            snapshots unresolved.
    """
    backend_keys_by_plugin: OrderedDict[str, list[bytes]] = OrderedDict()
    for listing in index:
        for entry in listing.records:
            backend_keys_by_plugin.setdefault(entry.snapshotter, []).append(entry.backend_key)
    roots: dict[str, str] = {}
    details: dict[tuple[str, bytes], SnapshotDetail] = {}
    for plugin, backend_keys in backend_keys_by_plugin.items():
        root, plugin_details = _read_plugin(environment, plugin, backend_keys)
        roots[plugin] = root
        for key, detail in plugin_details.items():
            details[(plugin, key)] = detail
    return [
        NamespaceRecords(
            namespace=listing.namespace,
            records=tuple(
                merge_snapshot(
                    entry,
                    details.get((entry.snapshotter, entry.backend_key)),
                    roots.get(entry.snapshotter, ""),
                )
                for entry in listing.records
            ),
            bucket_found=listing.bucket_found,
            skipped=listing.skipped,
        )
        for listing in index
    ]


def merge_snapshot(
    entry: SnapshotIndexEntry,
    detail: SnapshotDetail | None,
    plugin_root: str,
) -> SnapshotRecord:
    """Combine an index entry with its plugin detail, if any."""
    if detail is None:
        return SnapshotRecord(
            namespace=entry.namespace,
            snapshotter=entry.snapshotter,
            key=entry.key,
            kind="unknown",
            parent=entry.parent,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
            labels=entry.labels,
            backend_name=entry.backend_name,
        )
    has_path = bool(plugin_root) and detail.sequence_id > 0
    return SnapshotRecord(
        namespace=entry.namespace,
        snapshotter=entry.snapshotter,
        key=entry.key,
        kind=detail.kind,
        parent=entry.parent,
        created_at=detail.created_at or entry.created_at,
        updated_at=detail.updated_at or entry.updated_at,
        labels=entry.labels,
        overlay_path=overlay_path(plugin_root, detail.sequence_id) if has_path else "",
        sequence_id=detail.sequence_id,
        backend_name=entry.backend_name,
        backend_parent=detail.parent_name,
        inodes=detail.inodes,
        size=detail.size,
    )


def _read_plugin(
    environment: ContainerEnvironment,
    plugin: str,
    backend_keys: list[bytes],
) -> tuple[str, dict[bytes, SnapshotDetail]]:
    try:
        root = environment.resolve_plugin_root(plugin)
    except ExplorerCorruptError as error:
        _LOGGER.warning("snapshot_plugin_invalid", snapshotter=plugin, error=str(error))
        return "", {}
    try:
        handle = environment.open_snapshot_store(plugin)
    except ExplorerNotFoundError as error:
        _LOGGER.warning("snapshot_store_absent", snapshotter=plugin, error=str(error))
        return root, {}
    except ExplorerCorruptError as error:
        _LOGGER.warning("snapshot_store_corrupt", snapshotter=plugin, error=str(error))
        return root, {}
    with handle, handle.view() as tx:
        _LOGGER.debug("snapshot_store_opened", snapshotter=plugin, root=root, txid=tx.txid)
        try:
            return root, read_snapshot_details(tx, backend_keys)
        except ExplorerCorruptError as error:
            _LOGGER.warning("snapshot_store_corrupt", snapshotter=plugin, error=str(error))
            return root, {}


def _decode_index_entry(
    namespace: str,
    snapshotter: str,
    key: str,
    bucket: Bucket,
) -> SnapshotIndexEntry:
    if not key:
        raise ExplorerCorruptError(f"Snapshot under plugin '{snapshotter}' has an empty key.")
    created_at, updated_at = read_timestamps(bucket, namespace=namespace, snapshot=key)
    backend_key = bucket.get(KEY_NAME) or b""
    return SnapshotIndexEntry(
        namespace=namespace,
        snapshotter=snapshotter,
        key=key,
        backend_name=decode_text(backend_key),
        parent=decode_text(bucket.get(KEY_PARENT)),
        created_at=created_at,
        updated_at=updated_at,
        labels=read_labels(bucket),
        backend_key=backend_key,
    )


def _read_sequence_id(bucket: Bucket, backend_name: str) -> int:
    raw = bucket.get(KEY_ID)
    if raw is None:
        _LOGGER.warning("snapshot_id_absent", backend_name=backend_name)
        return 0
    try:
        return decode_sequence_id(raw)
    except ExplorerCorruptError as error:
        _LOGGER.warning("field_corrupt", field="id", backend_name=backend_name, error=str(error))
        return 0


def _log_missing_parents(namespace: str, entries: list[SnapshotIndexEntry]) -> None:
    keys = {(entry.snapshotter, entry.key) for entry in entries}
    for entry in entries:
        if entry.parent and (entry.snapshotter, entry.parent) not in keys:
            _LOGGER.info(
                "snapshot_parent_missing",
                namespace=namespace,
                snapshotter=entry.snapshotter,
                key=entry.key,
                parent=entry.parent,
            )
