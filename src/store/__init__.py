"""Read-only storage layer.

This module reads bbolt store files page by page and exposes nested
buckets, value codecs, and the containerd on-disk layout.
"""
