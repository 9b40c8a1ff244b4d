"""Unit tests for container decoding."""

from __future__ import annotations

from core.types import ContainerRecord
from metadata.containers import container_type
from metadata.explorer import ContainerExplorer
from tests.bolt_builder import SPEC_TYPE_URL
from tests.containerd_fixtures import CREATED_AT, UPDATED_AT


class _FakeLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, object]]] = []

    def warning(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))

    def info(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))

    def debug(self, event: str, **fields: object) -> None:
        self.events.append((event, fields))


def _containers(config) -> dict[str, dict[str, ContainerRecord]]:
    listings = ContainerExplorer(config).list_containers()
    return {
        listing.namespace: {record.container_id: record for record in listing.records}
        for listing in listings
    }


def test_containers_are_listed_per_namespace_in_id_order(containerd_config) -> None:
    """Every namespace should appear, with container ids in key order."""
    listings = ContainerExplorer(containerd_config).list_containers()

    assert [(listing.namespace, [r.container_id for r in listing.records]) for listing in listings] == [
        ("default", ["bad-time", "broken-spec", "fluent", "web"]),
        ("empty", []),
        ("k8s.io", ["sandbox-1"]),
    ]


def test_container_fields_are_decoded(containerd_config) -> None:
    """A complete container bucket should decode every field."""
    web = _containers(containerd_config)["default"]["web"]

    assert web == ContainerRecord(
        namespace="default",
        container_id="web",
        image="myapp/web:v2",
        created_at=CREATED_AT,
        updated_at=UPDATED_AT,
        labels={"a": "1", "b": "2"},
        hostname="web-1",
        support_container=False,
        container_type="containerd",
        runtime_name="io.containerd.runc.v2",
        snapshotter="overlayfs",
        snapshot_key="web",
        sandbox_id="",
        spec_type_url=SPEC_TYPE_URL,
    )


def test_support_containers_are_flagged_not_dropped(containerd_config) -> None:
    """Platform containers stay in the listing with the support flag set."""
    containers = _containers(containerd_config)

    assert (
        containers["default"]["fluent"].support_container,
        containers["default"]["fluent"].hostname,
        containers["k8s.io"]["sandbox-1"].support_container,
    ) == (True, "node-a", True)


def test_cri_kind_label_sets_container_type(containerd_config) -> None:
    """The CRI kind label should become the container type."""
    assert _containers(containerd_config)["k8s.io"]["sandbox-1"].container_type == "sandbox"


def test_corrupt_timestamp_keeps_the_record(containerd_config) -> None:
    """A bad timestamp should only clear that field."""
    record = _containers(containerd_config)["default"]["bad-time"]

    assert (record.image, record.created_at, record.updated_at) == ("alpine", None, None)


def test_undecodable_spec_clears_hostname_and_logs(containerd_config, monkeypatch) -> None:
    """A broken spec payload should leave the hostname empty and emit a warning."""
    fake_logger = _FakeLogger()
    monkeypatch.setattr("metadata.containers._LOGGER", fake_logger)

    record = _containers(containerd_config)["default"]["broken-spec"]

    events = [event for event, _ in fake_logger.events]
    assert (record.hostname, record.spec_type_url, "spec_undecodable" in events) == ("", "", True)


def test_container_type_defaults_without_label() -> None:
    """Containers without a CRI kind label use the default type."""
    assert container_type({"other": "x"}) == "containerd"
