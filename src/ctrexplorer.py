"""Public SDK surface for the containerd metadata explorer.

This module provides a stable import path for library users.
It re-exports the explorer, its configuration, and the typed records.
"""

from __future__ import annotations

from core.config import ExplorerConfig
from core.errors import (
    ExplorerConfigError,
    ExplorerCorruptError,
    ExplorerError,
    ExplorerLockedError,
    ExplorerNotFoundError,
    ExplorerPlatformError,
)
from core.types import (
    ContainerRecord,
    ContentRecord,
    ImageRecord,
    NamespaceRecords,
    SnapshotRecord,
    TaskRecord,
)
from metadata.explorer import ContainerExplorer
from metadata.snapshots import overlay_path
from metadata.support_images import (
    KNOWN_SUPPORT_IMAGES,
    SupportImageClassifier,
    is_support_image,
    load_support_images,
)

__all__ = [
    "KNOWN_SUPPORT_IMAGES",
    "ContainerExplorer",
    "ContainerRecord",
    "ContentRecord",
    "ExplorerConfig",
    "ExplorerConfigError",
    "ExplorerCorruptError",
    "ExplorerError",
    "ExplorerLockedError",
    "ExplorerNotFoundError",
    "ExplorerPlatformError",
    "ImageRecord",
    "NamespaceRecords",
    "SnapshotRecord",
    "SupportImageClassifier",
    "TaskRecord",
    "is_support_image",
    "load_support_images",
    "overlay_path",
]
