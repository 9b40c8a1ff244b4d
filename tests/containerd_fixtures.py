"""Synthetic containerd installations for tests.

Writes a primary metadata store and an overlayfs plugin store under a
temporary containerd root and returns a matching explorer config.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from google.protobuf import any_pb2

from core.config import ExplorerConfig
from store.codecs import encode_uint64
from tests.bolt_builder import go_time, spec_payload, uvarint, varint, write_bolt

CREATED_AT = datetime(2023, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)
UPDATED_AT = datetime(2023, 5, 2, 8, 0, 0, tzinfo=timezone.utc)
SNAPSHOT_CREATED_AT = datetime(2023, 5, 1, 12, 29, 0, tzinfo=timezone.utc)


def _stamps() -> dict[str, bytes]:
    return {"createdat": go_time(CREATED_AT), "updatedat": go_time(UPDATED_AT)}


def primary_tree() -> dict:
    """Primary store with two populated namespaces and one empty one."""
    return {
        "v1": {
            "version": uvarint(3),
            "default": {
                "containers": {
                    "web": {
                        **_stamps(),
                        "image": "myapp/web:v2",
                        "labels": {"b": "2", "a": "1"},
                        "spec": spec_payload(
                            {"hostname": "", "process": {"env": ["PATH=/bin", "HOSTNAME= web-1 "]}}
                        ),
                        "runtime": {"name": "io.containerd.runc.v2"},
                        "snapshotter": "overlayfs",
                        "snapshotKey": "web",
                    },
                    "fluent": {
                        **_stamps(),
                        "image": "gke.gcr.io/fluent-bit:v1",
                        "spec": spec_payload({"hostname": "node-a", "process": {"env": []}}),
                    },
                    "broken-spec": {
                        **_stamps(),
                        "image": "busybox:latest",
                        "spec": any_pb2.Any(type_url="x", value=b"{not json").SerializeToString(),
                    },
                    "bad-time": {
                        "createdat": b"\x01\x02",
                        "image": "alpine",
                    },
                },
                "content": {
                    "blob": {
                        "sha256:aaa": {**_stamps(), "size": varint(1234), "labels": {"k": "v"}},
                        "blake3:odd-digest": {**_stamps(), "size": varint(7)},
                    },
                },
                "images": {
                    "docker.io/library/busybox:latest": {
                        **_stamps(),
                        "target": {
                            "digest": "sha256:bbb",
                            "mediatype": "application/vnd.oci.image.index.v1+json",
                            "size": varint(527),
                        },
                    },
                    "k8s.gcr.io/pause:3.8": {
                        **_stamps(),
                        "target": {"digest": "sha256:ccc", "mediatype": "m"},
                    },
                    "no-target": {**_stamps()},
                },
                "snapshots": {
                    "overlayfs": {
                        "base": {**_stamps(), "name": "default/1/base"},
                        "web": {
                            **_stamps(),
                            "name": "default/2/web",
                            "parent": "base",
                            "labels": {"containerd.io/gc.root": "x"},
                        },
                        "ghost": {**_stamps(), "name": "default/9/ghost", "parent": "base"},
                    },
                },
                "leases": {
                    "lease-1": {
                        "createdat": go_time(CREATED_AT),
                        "labels": {"containerd.io/gc.expire": "2023-05-03T00:00:00Z"},
                        "content": {"sha256:aaa": b""},
                        "snapshots": {"overlayfs": {"web": b""}},
                        "note": "kept",
                    },
                },
            },
            "k8s.io": {
                "containers": {
                    "sandbox-1": {
                        **_stamps(),
                        "image": "k8s.gcr.io/pause@sha256:ddd",
                        "labels": {"io.cri-containerd.kind": "sandbox"},
                    },
                },
                "snapshots": {
                    "native": {"k1": {**_stamps(), "name": "k8s.io/3/k1"}},
                    "overlayfs": {"k2": {**_stamps(), "name": "k8s.io/4/k2"}},
                },
            },
            "empty": {},
        }
    }


def overlay_tree() -> dict:
    """overlayfs plugin store matching the primary snapshot index."""
    return {
        "v1": {
            "snapshots": {
                "default/1/base": {
                    "createdat": go_time(SNAPSHOT_CREATED_AT),
                    "updatedat": go_time(SNAPSHOT_CREATED_AT),
                    "id": uvarint(1),
                    "kind": b"\x03",
                    "inodes": varint(10),
                    "size": varint(4096),
                },
                "default/2/web": {
                    "createdat": go_time(SNAPSHOT_CREATED_AT),
                    "id": encode_uint64(42),
                    "kind": b"\x02",
                    "parent": "default/1/base",
                },
                "k8s.io/4/k2": {"id": b"\x80", "kind": b"\x01"},
            },
        }
    }


def build_containerd_root(tmp_path: Path) -> ExplorerConfig:
    """Write both stores and return a config pointing at them."""
    root = tmp_path / "containerd"
    metadata_dir = root / "io.containerd.metadata.v1.bolt"
    metadata_dir.mkdir(parents=True)
    write_bolt(metadata_dir / "meta.db", primary_tree())
    overlay_dir = root / "io.containerd.snapshotter.v1.overlayfs"
    overlay_dir.mkdir(parents=True)
    write_bolt(overlay_dir / "metadata.db", overlay_tree())
    return ExplorerConfig(
        containerd_root=root,
        state_dir=tmp_path / "run" / "containerd",
        image_root=None,
        metadata_file=None,
        open_timeout=0.2,
        log_level="warning",
    )
