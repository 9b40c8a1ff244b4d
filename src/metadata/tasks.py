"""Task decoding.

Tasks are derived from the container buckets of a namespace. The pid
comes from the runtime state directory, which only exists on a live or
freshly captured host; a disk image usually yields ``UNKNOWN``.
"""

from __future__ import annotations

from pathlib import Path

from core.constants import (
    BUCKET_KEY_CONTAINERS,
    TASK_PID_FILE_NAME,
    TASK_STATUS_RUNNING,
    TASK_STATUS_STOPPED,
    TASK_STATUS_UNKNOWN,
)
from core.errors import ExplorerCorruptError, ExplorerPlatformError
from core.logging_config import get_logger
from core.types import NamespaceRecords, TaskRecord
from metadata.bucket_fields import decode_object_buckets, namespace_name, read_labels
from metadata.containers import container_type
from store.bolt_file import Bucket, ReadTransaction
from store.bucket_path import navigate_namespace
from store.environment import ContainerEnvironment

_LOGGER = get_logger(__name__)


def list_tasks(
    tx: ReadTransaction,
    environment: ContainerEnvironment,
    namespace: str | bytes,
) -> NamespaceRecords[TaskRecord]:
    """Decode the task of every container in one namespace.

    Raises:
        ExplorerPlatformError: If the runtime state directory is unreadable.
    """
    lookup = navigate_namespace(tx, namespace, BUCKET_KEY_CONTAINERS)
    return decode_object_buckets(
        namespace_name(namespace),
        lookup,
        lambda container_id, bucket: decode_task(environment, namespace, container_id, bucket),
        "task",
    )


def decode_task(
    environment: ContainerEnvironment,
    namespace: str | bytes,
    container_id: str,
    bucket: Bucket,
) -> TaskRecord:
    """Build the task record of one container.

    Raises:
        ExplorerCorruptError: If the container id is not a plain name.
    """
    if not container_id or "/" in container_id or container_id in (".", ".."):
        raise ExplorerCorruptError(f"Invalid container id '{container_id}'.")
    pid, status = read_task_state(environment, namespace, container_id)
    return TaskRecord(
        namespace=namespace_name(namespace),
        container_id=container_id,
        container_type=container_type(read_labels(bucket)),
        pid=pid,
        status=status,
    )


def read_task_state(
    environment: ContainerEnvironment,
    namespace: str | bytes,
    container_id: str,
) -> tuple[int, str]:
    """Return the recorded pid and status of a container's task.

    Returns:
        ``(pid, RUNNING)`` when a pid is recorded, ``(0, STOPPED)`` when the
        namespace has runtime state but no bundle for the container, and
        ``(0, UNKNOWN)`` when no runtime state is available.
    """
    if not _is_dir(environment.task_namespace_dir(namespace)):
        return 0, TASK_STATUS_UNKNOWN
    bundle_dir = environment.task_bundle_dir(namespace, container_id)
    if not _is_dir(bundle_dir):
        return 0, TASK_STATUS_STOPPED
    pid_path = bundle_dir / TASK_PID_FILE_NAME
    try:
        raw_pid = pid_path.read_bytes()
    except FileNotFoundError:
        return 0, TASK_STATUS_UNKNOWN
    except OSError as error:
        raise ExplorerPlatformError(f"Cannot read task pid file {pid_path}: {error}.") from error
    try:
        pid = int(raw_pid.decode("utf-8").strip())
    except ValueError:
        _LOGGER.warning(
            "task_pid_corrupt",
            namespace=namespace_name(namespace),
            container_id=container_id,
        )
        return 0, TASK_STATUS_UNKNOWN
    return (pid, TASK_STATUS_RUNNING) if pid > 0 else (0, TASK_STATUS_UNKNOWN)


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError as error:
        raise ExplorerPlatformError(f"Cannot inspect runtime state {path}: {error}.") from error
