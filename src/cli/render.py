"""Table and JSON rendering of decoded records.

This module turns typed records into output text. It applies display
options (support filtering, label and timestamp columns); decoders never
format or filter anything themselves.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime
import json
from typing import Any, Iterable, Mapping, Sequence

from core.types import (
    ContainerRecord,
    ContentRecord,
    ImageRecord,
    NamespaceRecords,
    SnapshotRecord,
    TaskRecord,
)

TIMESTAMP_LAYOUT = "%Y-%m-%dT%H:%M:%SZ"
COLUMN_GAP = "  "


@dataclass(frozen=True)
class RenderOptions:
    """Display switches chosen on the command line."""

    output: str = "table"
    show_support: bool = False
    show_labels: bool = True
    show_updated: bool = False


def format_timestamp(value: datetime | None) -> str:
    return value.strftime(TIMESTAMP_LAYOUT) if value is not None else ""


def format_labels(labels: Mapping[str, str]) -> str:
    """Render labels as sorted ``key=value`` pairs joined by commas."""
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


def render_table(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render left-aligned columns separated by two spaces."""
    materialized = [list(header)] + [list(row) for row in rows]
    widths = [max(len(row[index]) for row in materialized) for index in range(len(header))]
    lines = [
        COLUMN_GAP.join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
        for row in materialized
    ]
    return "\n".join(lines) + "\n"


def render_json(records: Iterable[Any]) -> str:
    """Render records as a JSON array with ISO timestamps."""
    payload = [asdict(record) if is_dataclass(record) else record for record in records]
    return json.dumps(payload, indent=2, default=_json_default) + "\n"


def render_namespaces(namespaces: Sequence[str], options: RenderOptions) -> str:
    if options.output == "json":
        return render_json({"namespace": namespace} for namespace in namespaces)
    return render_table(["NAMESPACE"], ([namespace] for namespace in namespaces))


def render_containers(
    listings: Sequence[NamespaceRecords[ContainerRecord]],
    options: RenderOptions,
) -> str:
    """Render containers, hiding support containers unless requested."""
    records = [
        record
        for record in _flatten(listings)
        if options.show_support or not record.support_container
    ]
    if options.output == "json":
        return render_json(records)
    header = ["NAMESPACE", "TYPE", "CONTAINER ID", "CONTAINER HOSTNAME", "IMAGE", "CREATED AT"]
    rows = [
        [
            record.namespace,
            record.container_type,
            record.container_id,
            record.hostname,
            record.image,
            format_timestamp(record.created_at),
        ]
        for record in records
    ]
    return _render_with_optional_columns(header, rows, records, options)


def render_images(listings: Sequence[NamespaceRecords[ImageRecord]], options: RenderOptions) -> str:
    records = [
        record
        for record in _flatten(listings)
        if options.show_support or not record.support_image
    ]
    if options.output == "json":
        return render_json(records)
    header = ["NAMESPACE", "NAME", "CREATED AT", "DIGEST", "TYPE"]
    rows = [
        [
            record.namespace,
            record.name,
            format_timestamp(record.created_at),
            record.target_digest,
            record.target_media_type,
        ]
        for record in records
    ]
    return _render_with_optional_columns(header, rows, records, options)


def render_content(listings: Sequence[NamespaceRecords[ContentRecord]], options: RenderOptions) -> str:
    records = list(_flatten(listings))
    if options.output == "json":
        return render_json(records)
    header = ["NAMESPACE", "DIGEST", "SIZE", "CREATED AT"]
    rows = [
        [record.namespace, record.digest, str(record.size), format_timestamp(record.created_at)]
        for record in records
    ]
    return _render_with_optional_columns(header, rows, records, options)


def render_snapshots(
    listings: Sequence[NamespaceRecords[SnapshotRecord]],
    options: RenderOptions,
) -> str:
    records = list(_flatten(listings))
    if options.output == "json":
        return render_json(records)
    header = ["NAMESPACE", "SNAPSHOTTER", "CREATED AT", "KIND", "NAME", "PARENT", "LAYER PATH"]
    rows = [
        [
            record.namespace,
            record.snapshotter,
            format_timestamp(record.created_at),
            record.kind,
            record.key,
            record.parent,
            record.overlay_path,
        ]
        for record in records
    ]
    return _render_with_optional_columns(header, rows, records, options)


def render_leases(listings: Sequence[NamespaceRecords[dict[str, Any]]], options: RenderOptions) -> str:
    """Render leases; the table view shows the fixed fields only."""
    records = list(_flatten(listings))
    if options.output == "json":
        return render_json(records)
    header = ["NAMESPACE", "ID", "CREATED AT", "RESOURCES"]
    rows = [
        [
            str(lease.get("namespace", "")),
            str(lease.get("id", "")),
            format_timestamp(lease.get("created_at")),
            str(len(lease.get("resources", ()))),
        ]
        for lease in records
    ]
    if options.show_labels:
        header.append("LABELS")
        for row, lease in zip(rows, records):
            row.append(format_labels(lease.get("labels", {})))
    return render_table(header, rows)


def render_tasks(listings: Sequence[NamespaceRecords[TaskRecord]], options: RenderOptions) -> str:
    records = list(_flatten(listings))
    if options.output == "json":
        return render_json(records)
    header = ["NAMESPACE", "CONTAINER ID", "CONTAINER TYPE", "PID", "STATUS"]
    rows = [
        [record.namespace, record.container_id, record.container_type, str(record.pid), record.status]
        for record in records
    ]
    return render_table(header, rows)


def _render_with_optional_columns(
    header: list[str],
    rows: list[list[str]],
    records: Sequence[Any],
    options: RenderOptions,
) -> str:
    if options.show_updated:
        header.append("UPDATED AT")
        for row, record in zip(rows, records):
            row.append(format_timestamp(record.updated_at))
    if options.show_labels:
        header.append("LABELS")
        for row, record in zip(rows, records):
            row.append(format_labels(record.labels))
    return render_table(header, rows)


def _flatten(listings: Iterable[NamespaceRecords[Any]]) -> Iterable[Any]:
    for listing in listings:
        yield from listing.records


def _json_default(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
