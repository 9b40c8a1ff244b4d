"""Namespace enumeration."""

from __future__ import annotations

from core.constants import BUCKET_KEY_VERSION
from core.logging_config import get_logger
from metadata.bucket_fields import decode_text
from store.bolt_file import ReadTransaction
from store.bucket_path import navigate

_LOGGER = get_logger(__name__)


def namespace_keys(tx: ReadTransaction) -> tuple[bytes, ...]:
    """List raw namespace keys in key order.

    Namespaces are the nested buckets of the top-level version bucket;
    plain values beside them (the schema version) are ignored. Decoders
    navigate by these keys so names that are not valid UTF-8 still resolve.

    Args:
        tx: Read transaction on the primary store.

    Returns:
        Namespace keys; empty when the version bucket is absent.
    """
    lookup = navigate(tx, BUCKET_KEY_VERSION)
    if lookup.bucket is None:
        _LOGGER.info("namespaces_absent")
        return ()
    return tuple(key for key, value in lookup.bucket.items() if value is None)


def list_namespaces(tx: ReadTransaction) -> tuple[str, ...]:
    """List namespace display names in raw key order."""
    return tuple(decode_text(key) for key in namespace_keys(tx))
