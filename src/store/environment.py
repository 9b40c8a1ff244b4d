"""containerd on-disk environment.

This module maps the explorer configuration onto containerd's directory
layout and opens its stores read-only. Every path honours the optional
image root so a mounted disk image resolves like a live host.
"""

from __future__ import annotations

import os
from pathlib import Path

from core.config import ExplorerConfig
from core.constants import (
    BUCKET_KEY_VERSION,
    METADATA_FILE_NAME,
    METADATA_PLUGIN_DIR_NAME,
    SNAPSHOT_METADATA_FILE_NAME,
    SNAPSHOTTER_PLUGIN_PREFIX,
    TASK_RUNTIME_DIR_NAME,
)
from core.errors import ExplorerCorruptError
from core.logging_config import get_logger
from store.bolt_file import BoltFile

_LOGGER = get_logger(__name__)


class ContainerEnvironment:
    """Resolves store files and plugin roots for one containerd install."""

    def __init__(self, config: ExplorerConfig) -> None:
        """Initialize environment from config.

        Args:
            config: Runtime configuration.
        """
        self._config = config
        self.root_dir = _under_image_root(config.image_root, config.containerd_root)
        self.state_dir = _under_image_root(config.image_root, config.state_dir)

    @property
    def metadata_path(self) -> Path:
        if self._config.metadata_file is not None:
            return self._config.metadata_file
        return self.root_dir / METADATA_PLUGIN_DIR_NAME / METADATA_FILE_NAME

    def open_metadata(self) -> tuple[BoltFile, Path]:
        """Open the primary metadata store.

        Returns:
            Pair of open store handle and containerd root directory.

        Raises:
            ExplorerNotFoundError: If the store file is missing.
            ExplorerCorruptError: If the file is not a containerd store.
            ExplorerPlatformError: If the file cannot be opened or locked.
        """
        handle = open_store(self.metadata_path, self._config.open_timeout)
        return handle, self.root_dir

    def resolve_plugin_root(self, plugin_name: str) -> str:
        """Return the root directory of a snapshot plugin.

        Raises:
            ExplorerCorruptError: If the plugin name is not a plain name.
        """
        return plugin_root(str(self.root_dir), plugin_name)

    def snapshot_metadata_path(self, plugin_name: str) -> Path:
        return Path(self.resolve_plugin_root(plugin_name)) / SNAPSHOT_METADATA_FILE_NAME

    def open_snapshot_store(self, plugin_name: str) -> BoltFile:
        """Open the metadata store owned by a snapshot plugin.

        Raises:
            ExplorerNotFoundError: If the plugin keeps no store file.
            ExplorerCorruptError: If the file is not a snapshot store.
            ExplorerPlatformError: If the file cannot be opened or locked.
        """
        return open_store(self.snapshot_metadata_path(plugin_name), self._config.open_timeout)

    def task_bundle_dir(self, namespace: str | bytes, container_id: str) -> Path:
        return self.task_namespace_dir(namespace) / container_id

    def task_namespace_dir(self, namespace: str | bytes) -> Path:
        """Return the runtime state directory of a namespace.

        Raw namespace keys map to file names byte for byte.
        """
        return self.state_dir / TASK_RUNTIME_DIR_NAME / os.fsdecode(namespace)


def open_store(path: Path, timeout: float) -> BoltFile:
    """Open a store file and verify its top-level version bucket.

    Args:
        path: Store file path.
        timeout: Seconds to wait for a shared lock.

    Returns:
        Open store handle.

    Raises:
        ExplorerCorruptError: If the version bucket is missing.
    """
    handle = BoltFile.open(path, timeout)
    try:
        with handle.view() as tx:
            if tx.bucket(BUCKET_KEY_VERSION) is None:
                raise ExplorerCorruptError(
                    f"Store file {path} has no '{BUCKET_KEY_VERSION.decode()}' bucket; "
                    "it is not a containerd metadata store."
                )
            _LOGGER.debug("store_verified", path=str(path), txid=tx.txid)
    except BaseException:
        handle.close()
        raise
    return handle


def plugin_root(root_dir: str, plugin_name: str) -> str:
    """Build ``<root>/io.containerd.snapshotter.v1.<plugin>``.

    Raises:
        ExplorerCorruptError: If the plugin name could escape the root.
    """
    if not plugin_name or "/" in plugin_name or plugin_name in (".", ".."):
        raise ExplorerCorruptError(f"Invalid snapshot plugin name '{plugin_name}'.")
    return f"{root_dir.rstrip('/')}/{SNAPSHOTTER_PLUGIN_PREFIX}{plugin_name}"


def _under_image_root(image_root: Path | None, path: Path) -> Path:
    if image_root is None:
        return path
    return image_root / path.relative_to(path.anchor) if path.is_absolute() else image_root / path
