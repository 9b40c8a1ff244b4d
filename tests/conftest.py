"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
for _path in (_PROJECT_ROOT / "src", _PROJECT_ROOT):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from core.config import ExplorerConfig  # noqa: E402
from core.logging_config import configure_logging  # noqa: E402
from tests.containerd_fixtures import build_containerd_root  # noqa: E402


@pytest.fixture
def containerd_config(tmp_path: Path) -> ExplorerConfig:
    """Config for a synthetic containerd root with both stores written."""
    return build_containerd_root(tmp_path)


@pytest.fixture(autouse=True)
def _default_logging():
    """Restore the default log level after tests that reconfigure it."""
    yield
    configure_logging()
