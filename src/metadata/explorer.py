"""Python SDK for containerd metadata listings.

This module exposes one listing call per entity kind. Each call opens
the primary store, performs all decoding inside a single read
transaction, and releases the store before returning.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from core.config import ExplorerConfig
from core.logging_config import get_logger
from core.types import (
    ContainerRecord,
    ContentRecord,
    ImageRecord,
    NamespaceRecords,
    SnapshotRecord,
    TaskRecord,
)
from metadata.containers import list_containers
from metadata.content import list_content
from metadata.images import list_images
from metadata.leases import list_leases
from metadata.namespaces import list_namespaces, namespace_keys
from metadata.snapshots import read_snapshot_index, resolve_snapshots
from metadata.support_images import DEFAULT_CLASSIFIER, SupportImageClassifier
from metadata.tasks import list_tasks
from store.bolt_file import ReadTransaction
from store.environment import ContainerEnvironment

_LOGGER = get_logger(__name__)

RecordT = TypeVar("RecordT")


class ContainerExplorer:
    """Primary SDK entry point for read-only metadata listings."""

    def __init__(
        self,
        config: ExplorerConfig | None = None,
        classifier: SupportImageClassifier = DEFAULT_CLASSIFIER,
    ) -> None:
        """Create explorer.

        Args:
            config: Optional runtime configuration.
            classifier: Support image classifier for containers and images.
        """
        self._config = config or ExplorerConfig.from_env()
        self._classifier = classifier
        self.environment = ContainerEnvironment(self._config)

    def list_namespaces(self) -> tuple[str, ...]:
        """List namespace names.

        Raises:
            ExplorerNotFoundError: If the metadata store is missing.
            ExplorerCorruptError: If it is not a containerd store.
            ExplorerPlatformError: If it cannot be opened or locked.
        """
        handle, root_dir = self.environment.open_metadata()
        with handle, handle.view() as tx:
            namespaces = list_namespaces(tx)
        _LOGGER.debug("namespaces_listed", root_dir=str(root_dir), count=len(namespaces))
        return namespaces

    def list_containers(self) -> list[NamespaceRecords[ContainerRecord]]:
        """List containers per namespace, support containers included."""
        return self._per_namespace(
            lambda tx, namespace: list_containers(tx, namespace, self._classifier),
            "container",
        )

    def list_images(self) -> list[NamespaceRecords[ImageRecord]]:
        """List images per namespace, support images included."""
        return self._per_namespace(
            lambda tx, namespace: list_images(tx, namespace, self._classifier),
            "image",
        )

    def list_content(self) -> list[NamespaceRecords[ContentRecord]]:
        """List content blobs per namespace."""
        return self._per_namespace(list_content, "content")

    def list_snapshots(self) -> list[NamespaceRecords[SnapshotRecord]]:
        """List snapshots per namespace with reconstructed overlay paths.

        Raises:
            ExplorerPlatformError: If a plugin store exists but cannot be opened.
        """
        index = self._per_namespace(read_snapshot_index, "snapshot")
        return resolve_snapshots(self.environment, index)

    def list_leases(self) -> list[NamespaceRecords[dict[str, Any]]]:
        """List leases per namespace as open attribute maps."""
        return self._per_namespace(list_leases, "lease")

    def list_tasks(self) -> list[NamespaceRecords[TaskRecord]]:
        """List container tasks per namespace."""
        return self._per_namespace(
            lambda tx, namespace: list_tasks(tx, self.environment, namespace),
            "task",
        )

    def with_support_images(self, names: frozenset[str]) -> "ContainerExplorer":
        """Clone the explorer with extra support image base names."""
        return ContainerExplorer(self._config, self._classifier.extended(names))

    def _per_namespace(
        self,
        decode: Callable[[ReadTransaction, bytes], NamespaceRecords[RecordT]],
        kind: str,
    ) -> list[NamespaceRecords[RecordT]]:
        handle, root_dir = self.environment.open_metadata()
        with handle, handle.view() as tx:
            listings = [decode(tx, namespace) for namespace in namespace_keys(tx)]
        _LOGGER.info(
            "listing_completed",
            kind=kind,
            root_dir=str(root_dir),
            namespaces=len(listings),
            records=sum(len(listing.records) for listing in listings),
            skipped=sum(listing.skipped for listing in listings),
        )
        return listings
