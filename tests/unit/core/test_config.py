"""Unit tests for core config parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import ExplorerConfig, parse_open_timeout
from core.errors import ExplorerConfigError

_VARIABLES = (
    "CTREXPLORER_ROOT",
    "CTREXPLORER_STATE_DIR",
    "CTREXPLORER_IMAGE_ROOT",
    "CTREXPLORER_METADATA_FILE",
    "CTREXPLORER_OPEN_TIMEOUT",
    "CTREXPLORER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults() -> None:
    """Without overrides the standard containerd locations are used."""
    config = ExplorerConfig.from_env()

    assert (
        config.containerd_root,
        config.state_dir,
        config.image_root,
        config.metadata_file,
        config.open_timeout,
        config.log_level,
    ) == (Path("/var/lib/containerd"), Path("/run/containerd"), None, None, 5.0, "warning")


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve locations from environment."""
    monkeypatch.setenv("CTREXPLORER_ROOT", "/mnt/containerd")
    monkeypatch.setenv("CTREXPLORER_IMAGE_ROOT", "/mnt/image")
    monkeypatch.setenv("CTREXPLORER_OPEN_TIMEOUT", "0.5")

    config = ExplorerConfig.from_env()

    assert (config.containerd_root, config.image_root, config.open_timeout) == (
        Path("/mnt/containerd"),
        Path("/mnt/image"),
        0.5,
    )


def test_from_env_raises_for_invalid_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a non-numeric open timeout."""
    monkeypatch.setenv("CTREXPLORER_OPEN_TIMEOUT", "soon")

    with pytest.raises(ExplorerConfigError):
        ExplorerConfig.from_env()


def test_from_env_raises_for_unknown_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for an unknown log level."""
    monkeypatch.setenv("CTREXPLORER_LOG_LEVEL", "verbose")

    with pytest.raises(ExplorerConfigError):
        ExplorerConfig.from_env()


def test_parse_open_timeout_rejects_negative() -> None:
    """Negative timeouts are invalid."""
    with pytest.raises(ExplorerConfigError):
        parse_open_timeout("-1")
