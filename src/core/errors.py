"""Explorer exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Decoders recover from not-found and corrupt conditions per record;
platform failures abort the whole listing.
"""

from __future__ import annotations


class ExplorerError(Exception):
    """Base exception for all explorer failures."""


class ExplorerConfigError(ExplorerError):
    """Raised for invalid runtime configuration."""


class ExplorerNotFoundError(ExplorerError):
    """Raised when a store file, bucket, or record is absent."""


class ExplorerCorruptError(ExplorerError):
    """Raised for malformed store pages or undecodable values."""


class ExplorerPlatformError(ExplorerError):
    """Raised when a store file cannot be opened or read."""


class ExplorerLockedError(ExplorerPlatformError):
    """Raised when a shared lock cannot be obtained before the timeout."""
