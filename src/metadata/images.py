"""Image decoding.

This module decodes ``v1/<namespace>/images/<name>`` buckets including
the target descriptor that points at the manifest blob.
"""

from __future__ import annotations

from core.constants import (
    BUCKET_KEY_ANNOTATIONS,
    BUCKET_KEY_IMAGES,
    BUCKET_KEY_TARGET,
    KEY_DIGEST,
    KEY_MEDIA_TYPE,
    KEY_SIZE,
)
from core.logging_config import get_logger
from core.types import ImageRecord, NamespaceRecords
from metadata.bucket_fields import (
    decode_object_buckets,
    decode_text,
    namespace_name,
    read_labels,
    read_string_map,
    read_timestamps,
    read_varint,
)
from metadata.support_images import DEFAULT_CLASSIFIER, SupportImageClassifier
from store.bolt_file import Bucket, ReadTransaction
from store.bucket_path import navigate_namespace

_LOGGER = get_logger(__name__)


def list_images(
    tx: ReadTransaction,
    namespace: str | bytes,
    classifier: SupportImageClassifier = DEFAULT_CLASSIFIER,
) -> NamespaceRecords[ImageRecord]:
    """Decode all images of one namespace in name order."""
    display_name = namespace_name(namespace)
    lookup = navigate_namespace(tx, namespace, BUCKET_KEY_IMAGES)
    return decode_object_buckets(
        display_name,
        lookup,
        lambda name, bucket: decode_image(display_name, name, bucket, classifier),
        "image",
    )


def decode_image(
    namespace: str,
    name: str,
    bucket: Bucket,
    classifier: SupportImageClassifier = DEFAULT_CLASSIFIER,
) -> ImageRecord:
    """Decode one image bucket.

    A missing target bucket leaves the descriptor fields empty.
    """
    created_at, updated_at = read_timestamps(bucket, namespace=namespace, image=name)
    target = bucket.bucket(BUCKET_KEY_TARGET)
    if target is None:
        _LOGGER.info("image_target_absent", namespace=namespace, image=name)
        digest = media_type = ""
        size = 0
    else:
        digest = decode_text(target.get(KEY_DIGEST))
        media_type = decode_text(target.get(KEY_MEDIA_TYPE))
        size = read_varint(target, KEY_SIZE, namespace=namespace, image=name)
    return ImageRecord(
        namespace=namespace,
        name=name,
        created_at=created_at,
        updated_at=updated_at,
        labels=read_labels(bucket),
        target_digest=digest,
        target_media_type=media_type,
        target_size=size,
        target_annotations=read_string_map(bucket, BUCKET_KEY_ANNOTATIONS),
        support_image=classifier.is_support_image(name),
    )
