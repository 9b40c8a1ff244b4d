"""Core constants used across explorer modules.

This module centralizes on-disk layout names and bucket keys.
Keeping values here avoids magic literals in decoding logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONTAINERD_ROOT = Path("/var/lib/containerd")
DEFAULT_CONTAINERD_STATE = Path("/run/containerd")
DEFAULT_OPEN_TIMEOUT_SECONDS = 5.0
DEFAULT_LOG_LEVEL = "warning"
LOCK_POLL_INTERVAL_SECONDS = 0.05

METADATA_PLUGIN_DIR_NAME = "io.containerd.metadata.v1.bolt"
METADATA_FILE_NAME = "meta.db"
SNAPSHOTTER_PLUGIN_PREFIX = "io.containerd.snapshotter.v1."
SNAPSHOT_METADATA_FILE_NAME = "metadata.db"
TASK_RUNTIME_DIR_NAME = "io.containerd.runtime.v2.task"
TASK_PID_FILE_NAME = "init.pid"

BUCKET_KEY_VERSION = b"v1"
BUCKET_KEY_CONTAINERS = b"containers"
BUCKET_KEY_CONTENT = b"content"
BUCKET_KEY_BLOB = b"blob"
BUCKET_KEY_IMAGES = b"images"
BUCKET_KEY_SNAPSHOTS = b"snapshots"
BUCKET_KEY_LEASES = b"leases"
BUCKET_KEY_LABELS = b"labels"
BUCKET_KEY_ANNOTATIONS = b"annotations"
BUCKET_KEY_TARGET = b"target"
BUCKET_KEY_RUNTIME = b"runtime"

KEY_CREATED_AT = b"createdat"
KEY_UPDATED_AT = b"updatedat"
KEY_IMAGE = b"image"
KEY_SPEC = b"spec"
KEY_SNAPSHOT_KEY = b"snapshotKey"
KEY_SNAPSHOTTER = b"snapshotter"
KEY_SANDBOX_ID = b"sandboxid"
KEY_NAME = b"name"
KEY_PARENT = b"parent"
KEY_DIGEST = b"digest"
KEY_MEDIA_TYPE = b"mediatype"
KEY_SIZE = b"size"
KEY_ID = b"id"
KEY_KIND = b"kind"
KEY_INODES = b"inodes"

CRI_KIND_LABEL = "io.cri-containerd.kind"
DEFAULT_CONTAINER_TYPE = "containerd"
HOSTNAME_ENV_PREFIX = "HOSTNAME="

TASK_STATUS_RUNNING = "RUNNING"
TASK_STATUS_STOPPED = "STOPPED"
TASK_STATUS_UNKNOWN = "UNKNOWN"

SNAPSHOT_KIND_NAMES = {
    0: "unknown",
    1: "view",
    2: "active",
    3: "committed",
}
