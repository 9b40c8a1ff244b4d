"""Shared typed models.

This module defines immutable records decoded from the containerd
metadata stores. Records carry raw values only; rendering happens in
the CLI layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, Mapping, TypeVar

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class NamespaceRecords(Generic[RecordT]):
    """Decoded records of one entity kind for one namespace.

    Attributes:
        namespace: Owning namespace.
        records: Records in raw key order.
        bucket_found: False when the namespace has no bucket for this kind.
        skipped: Number of records dropped because they were corrupt.
    """

    namespace: str
    records: tuple[RecordT, ...]
    bucket_found: bool = True
    skipped: int = 0


@dataclass(frozen=True)
class ContainerRecord:
    """Container metadata with derived hostname and support flag."""

    namespace: str
    container_id: str
    image: str
    created_at: datetime | None
    updated_at: datetime | None
    labels: Mapping[str, str] = field(default_factory=dict)
    hostname: str = ""
    support_container: bool = False
    container_type: str = ""
    runtime_name: str = ""
    snapshotter: str = ""
    snapshot_key: str = ""
    sandbox_id: str = ""
    spec_type_url: str = ""


@dataclass(frozen=True)
class ImageRecord:
    """Image metadata and its target descriptor."""

    namespace: str
    name: str
    created_at: datetime | None
    updated_at: datetime | None
    labels: Mapping[str, str] = field(default_factory=dict)
    target_digest: str = ""
    target_media_type: str = ""
    target_size: int = 0
    target_annotations: Mapping[str, str] = field(default_factory=dict)
    support_image: bool = False


@dataclass(frozen=True)
class ContentRecord:
    """Content blob metadata keyed by an opaque digest string."""

    namespace: str
    digest: str
    size: int
    created_at: datetime | None
    updated_at: datetime | None
    labels: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SnapshotIndexEntry:
    """Snapshot entry from the primary store.

    Attributes:
        namespace: Owning namespace.
        snapshotter: Snapshot plugin name.
        key: Snapshot key within the namespace.
        backend_name: Key of the snapshot inside the plugin store, as text.
        parent: Parent snapshot key; empty for a root snapshot.
        created_at: Creation time recorded in the primary store.
        updated_at: Update time recorded in the primary store.
        labels: Snapshot labels.
        backend_key: Raw key of the snapshot inside the plugin store.
    """

    namespace: str
    snapshotter: str
    key: str
    backend_name: str
    parent: str
    created_at: datetime | None
    updated_at: datetime | None
    labels: Mapping[str, str] = field(default_factory=dict)
    backend_key: bytes = b""


@dataclass(frozen=True)
class SnapshotDetail:
    """Snapshot entry from a plugin store."""

    backend_name: str
    kind: str
    parent_name: str
    sequence_id: int
    created_at: datetime | None
    updated_at: datetime | None
    inodes: int = 0
    size: int = 0


@dataclass(frozen=True)
class SnapshotRecord:
    """Merged snapshot view with the reconstructed overlay path."""

    namespace: str
    snapshotter: str
    key: str
    kind: str
    parent: str
    created_at: datetime | None
    updated_at: datetime | None
    labels: Mapping[str, str] = field(default_factory=dict)
    overlay_path: str = ""
    sequence_id: int = 0
    backend_name: str = ""
    backend_parent: str = ""
    inodes: int = 0
    size: int = 0


@dataclass(frozen=True)
class TaskRecord:
    """Task state recorded for a container."""

    namespace: str
    container_id: str
    container_type: str
    pid: int
    status: str
