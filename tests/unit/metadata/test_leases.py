"""Unit tests for lease decoding."""

from __future__ import annotations

from metadata.explorer import ContainerExplorer
from tests.containerd_fixtures import CREATED_AT


def _lease(config) -> dict:
    return ContainerExplorer(config).list_leases()[0].records[0]


def test_lease_core_fields(containerd_config) -> None:
    """Each lease should carry namespace, id, creation time, and labels."""
    lease = _lease(containerd_config)

    assert (lease["namespace"], lease["id"], lease["created_at"], lease["labels"]) == (
        "default",
        "lease-1",
        CREATED_AT,
        {"containerd.io/gc.expire": "2023-05-03T00:00:00Z"},
    )


def test_lease_resources_are_typed(containerd_config) -> None:
    """Pinned resources should be listed with their type."""
    assert _lease(containerd_config)["resources"] == [
        {"id": "sha256:aaa", "type": "content"},
        {"id": "web", "type": "snapshots/overlayfs"},
    ]


def test_lease_keeps_extra_values_as_text(containerd_config) -> None:
    """Unrecognised plain values stay in the open map."""
    lease = _lease(containerd_config)

    assert (lease["note"], "updated_at" in lease) == ("kept", False)


def test_namespaces_without_leases(containerd_config) -> None:
    """Namespaces lacking a leases bucket yield nothing."""
    listings = ContainerExplorer(containerd_config).list_leases()

    assert [len(listing.records) for listing in listings] == [1, 0, 0]
