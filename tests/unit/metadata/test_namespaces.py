"""Unit tests for namespace enumeration."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from metadata.explorer import ContainerExplorer
from metadata.namespaces import list_namespaces
from store.bolt_file import BoltFile
from tests.bolt_builder import write_bolt


def test_namespaces_in_key_order(containerd_config) -> None:
    """Namespaces are the child buckets of the version bucket, in key order."""
    assert ContainerExplorer(containerd_config).list_namespaces() == ("default", "empty", "k8s.io")


def test_plain_values_are_not_namespaces(tmp_path: Path) -> None:
    """Scalar entries beside namespaces should be ignored."""
    path = write_bolt(tmp_path / "meta.db", {"v1": {"version": b"\x03", "ns": {}}})

    with BoltFile.open(path, timeout=0) as handle, handle.view() as tx:
        namespaces = list_namespaces(tx)

    assert namespaces == ("ns",)


def test_missing_version_bucket_lists_nothing(tmp_path: Path) -> None:
    """A store without the version bucket has no namespaces."""
    path = write_bolt(tmp_path / "meta.db", {"other": {}})

    with BoltFile.open(path, timeout=0) as handle, handle.view() as tx:
        namespaces = list_namespaces(tx)

    assert namespaces == ()


def test_raw_namespace_key_finds_its_containers(containerd_config, tmp_path: Path) -> None:
    """A namespace key that is not valid UTF-8 should still resolve its buckets."""
    metadata_file = write_bolt(
        tmp_path / "raw.db",
        {"v1": {b"ns-\xff": {"containers": {"c1": {"image": "busybox"}}}}},
    )
    config = replace(containerd_config, metadata_file=metadata_file)

    listing = ContainerExplorer(config).list_containers()[0]

    assert (
        listing.namespace,
        [record.container_id for record in listing.records],
        listing.bucket_found,
    ) == ("ns-\ufffd", ["c1"], True)
