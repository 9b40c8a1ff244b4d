"""Runtime configuration model for the explorer.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_CONTAINERD_ROOT,
    DEFAULT_CONTAINERD_STATE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_OPEN_TIMEOUT_SECONDS,
)
from core.errors import ExplorerConfigError
from core.logging_config import parse_log_level


@dataclass(frozen=True)
class ExplorerConfig:
    """Validated runtime configuration.

    Attributes:
        containerd_root: containerd installation root as seen on the host.
        state_dir: containerd runtime state directory.
        image_root: Optional mount point of a disk image; prefixed to paths.
        metadata_file: Optional explicit path to the primary store file.
        open_timeout: Seconds to wait for a shared lock on a store file.
        log_level: Minimum structured log level.
    """

    containerd_root: Path
    state_dir: Path
    image_root: Path | None
    metadata_file: Path | None
    open_timeout: float
    log_level: str

    @classmethod
    def from_env(cls) -> "ExplorerConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ExplorerConfigError: If environment values are invalid.
        """
        image_root = os.getenv("CTREXPLORER_IMAGE_ROOT")
        metadata_file = os.getenv("CTREXPLORER_METADATA_FILE")
        log_level = os.getenv("CTREXPLORER_LOG_LEVEL", DEFAULT_LOG_LEVEL)
        parse_log_level(log_level)
        return cls(
            containerd_root=Path(os.getenv("CTREXPLORER_ROOT", str(DEFAULT_CONTAINERD_ROOT))),
            state_dir=Path(os.getenv("CTREXPLORER_STATE_DIR", str(DEFAULT_CONTAINERD_STATE))),
            image_root=Path(image_root).expanduser() if image_root else None,
            metadata_file=Path(metadata_file).expanduser() if metadata_file else None,
            open_timeout=parse_open_timeout(
                os.getenv("CTREXPLORER_OPEN_TIMEOUT", str(DEFAULT_OPEN_TIMEOUT_SECONDS))
            ),
            log_level=log_level,
        )


def parse_open_timeout(raw_value: str) -> float:
    """Parse the open timeout value.

    Args:
        raw_value: Raw string from environment or CLI.

    Returns:
        Non-negative timeout in seconds.

    Raises:
        ExplorerConfigError: If value is not a non-negative number.
    """
    try:
        timeout = float(raw_value)
    except ValueError as error:
        raise ExplorerConfigError(
            "Invalid CTREXPLORER_OPEN_TIMEOUT value: "
            f"expected number of seconds, got '{raw_value}'."
        ) from error
    if timeout < 0:
        raise ExplorerConfigError(
            f"Invalid CTREXPLORER_OPEN_TIMEOUT value: '{raw_value}' is negative."
        )
    return timeout
