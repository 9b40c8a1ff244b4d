"""Container decoding.

This module decodes ``v1/<namespace>/containers/<id>`` buckets,
resolves the hostname from the embedded runtime spec, and flags
platform support containers.
"""

from __future__ import annotations

from typing import Mapping

from core.constants import (
    BUCKET_KEY_CONTAINERS,
    BUCKET_KEY_RUNTIME,
    CRI_KIND_LABEL,
    DEFAULT_CONTAINER_TYPE,
    KEY_IMAGE,
    KEY_NAME,
    KEY_SANDBOX_ID,
    KEY_SNAPSHOT_KEY,
    KEY_SNAPSHOTTER,
    KEY_SPEC,
)
from core.errors import ExplorerCorruptError
from core.logging_config import get_logger
from core.types import ContainerRecord, NamespaceRecords
from metadata.bucket_fields import (
    decode_object_buckets,
    decode_text,
    namespace_name,
    read_labels,
    read_timestamps,
)
from metadata.process_spec import ProcessSpec, decode_spec_payload, resolve_hostname
from metadata.support_images import DEFAULT_CLASSIFIER, SupportImageClassifier
from store.bolt_file import Bucket, ReadTransaction
from store.bucket_path import navigate_namespace

_LOGGER = get_logger(__name__)


def list_containers(
    tx: ReadTransaction,
    namespace: str | bytes,
    classifier: SupportImageClassifier = DEFAULT_CLASSIFIER,
) -> NamespaceRecords[ContainerRecord]:
    """Decode all containers of one namespace.

    Args:
        tx: Read transaction on the primary store.
        namespace: Namespace name or raw namespace key.
        classifier: Support image classifier.

    Returns:
        Container records in id order.
    """
    name = namespace_name(namespace)
    lookup = navigate_namespace(tx, namespace, BUCKET_KEY_CONTAINERS)
    return decode_object_buckets(
        name,
        lookup,
        lambda container_id, bucket: decode_container(name, container_id, bucket, classifier),
        "container",
    )


def decode_container(
    namespace: str,
    container_id: str,
    bucket: Bucket,
    classifier: SupportImageClassifier = DEFAULT_CLASSIFIER,
) -> ContainerRecord:
    """Decode one container bucket.

    Args:
        namespace: Owning namespace.
        container_id: Container id (the bucket key).
        bucket: Container bucket.
        classifier: Support image classifier.

    Returns:
        Container record; a corrupt spec only clears the hostname.
    """
    created_at, updated_at = read_timestamps(bucket, namespace=namespace, container_id=container_id)
    labels = read_labels(bucket)
    image = decode_text(bucket.get(KEY_IMAGE))
    spec = _decode_spec(bucket.get(KEY_SPEC), namespace=namespace, container_id=container_id)
    runtime = bucket.bucket(BUCKET_KEY_RUNTIME)
    return ContainerRecord(
        namespace=namespace,
        container_id=container_id,
        image=image,
        created_at=created_at,
        updated_at=updated_at,
        labels=labels,
        hostname=resolve_hostname(spec),
        support_container=classifier.is_support_image(image),
        container_type=container_type(labels),
        runtime_name=decode_text(runtime.get(KEY_NAME)) if runtime is not None else "",
        snapshotter=decode_text(bucket.get(KEY_SNAPSHOTTER)),
        snapshot_key=decode_text(bucket.get(KEY_SNAPSHOT_KEY)),
        sandbox_id=decode_text(bucket.get(KEY_SANDBOX_ID)),
        spec_type_url=spec.type_url,
    )


def container_type(labels: Mapping[str, str]) -> str:
    """Return the CRI kind label (``sandbox`` or ``container``) if set."""
    return labels.get(CRI_KIND_LABEL) or DEFAULT_CONTAINER_TYPE


def _decode_spec(raw: bytes | None, **log_fields: object) -> ProcessSpec:
    if not raw:
        return ProcessSpec()
    try:
        spec = decode_spec_payload(raw)
    except ExplorerCorruptError as error:
        _LOGGER.warning("spec_undecodable", error=str(error), **log_fields)
        return ProcessSpec()
    _LOGGER.debug("spec_decoded", hostname=spec.hostname, type_url=spec.type_url, **log_fields)
    return spec
