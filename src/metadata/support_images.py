"""Managed-platform support image classification.

This module flags containers and images injected by a managed Kubernetes
platform (autoscalers, DNS add-ons, metrics and log agents, proxy agents,
pause images). It is a display heuristic: unlisted platform images are
not flagged.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import yaml

from core.errors import ExplorerConfigError

KNOWN_SUPPORT_IMAGES: frozenset[str] = frozenset(
    {
        "asia.gcr.io/gke-release-staging/cluster-proportional-autoscaler-amd64",
        "gcr.io/k8s-ingress-image-push/ingress-gce-404-server-with-metrics",
        "gke.gcr.io/cluster-proportional-autoscaler",
        "gke.gcr.io/csi-node-driver-registrar",
        "gke.gcr.io/event-exporter",
        "gke.gcr.io/fluent-bit",
        "gke.gcr.io/fluent-bit-gke-exporter",
        "gke.gcr.io/gcp-compute-persistent-disk-csi-driver",
        "gke.gcr.io/gke-metrics-agent",
        "gke.gcr.io/k8s-dns-dnsmasq-nanny",
        "gke.gcr.io/k8s-dns-kube-dns",
        "gke.gcr.io/k8s-dns-sidecar",
        "gke.gcr.io/kube-proxy-amd64",
        "gke.gcr.io/prometheus-to-sd",
        "gke.gcr.io/proxy-agent",
        "k8s.gcr.io/metrics-server/metrics-server",
        "k8s.gcr.io/pause",
    }
)
SUPPORT_IMAGES_YAML_KEY = "support_images"


def strip_reference_suffix(reference: str) -> str:
    """Drop a trailing ``@digest`` and then a trailing ``:tag``.

    A colon before the last slash belongs to a registry port and is kept.
    """
    base = reference.split("@", 1)[0]
    colon = base.rfind(":")
    if colon > base.rfind("/"):
        base = base[:colon]
    return base


@dataclass(frozen=True)
class SupportImageClassifier:
    """Exact base-name matcher over an immutable image table."""

    known_images: frozenset[str] = KNOWN_SUPPORT_IMAGES

    def is_support_image(self, reference: str) -> bool:
        return strip_reference_suffix(reference.strip()) in self.known_images

    def extended(self, names: Iterable[str]) -> "SupportImageClassifier":
        """Return a classifier that also matches the given base names."""
        return SupportImageClassifier(self.known_images | frozenset(names))


DEFAULT_CLASSIFIER = SupportImageClassifier()


def is_support_image(reference: str) -> bool:
    """Classify an image reference with the built-in table."""
    return DEFAULT_CLASSIFIER.is_support_image(reference)


def load_support_images(path: Path) -> frozenset[str]:
    """Load extra support image base names from a YAML file.

    The file holds either a list of names or a mapping with a
    ``support_images`` list.

    Args:
        path: YAML file path.

    Returns:
        Base names with any tag or digest removed.

    Raises:
        ExplorerConfigError: If the file is unreadable or malformed.
    """
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as error:
        raise ExplorerConfigError(f"Cannot read support image file {path}: {error}.") from error
    except yaml.YAMLError as error:
        raise ExplorerConfigError(f"Invalid YAML in support image file {path}: {error}.") from error
    if isinstance(payload, dict):
        payload = payload.get(SUPPORT_IMAGES_YAML_KEY)
    if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
        raise ExplorerConfigError(
            f"Support image file {path} must contain a list of image names "
            f"or a '{SUPPORT_IMAGES_YAML_KEY}' list."
        )
    return frozenset(strip_reference_suffix(item.strip()) for item in payload if item.strip())
