"""
Report assembly and rendering.

Joins enumerated devices with the allow-list and the host's addresses
into DeviceRecords, and renders them as a JSON document or as text
blocks. Both renderings can be parsed back into the same records.
"""

from __future__ import annotations

import json
import logging
from typing import Mapping

from ._types import (
    BUS_NOT_APPLICABLE,
    DeviceRecord,
    EnumeratedDevice,
    OutputFormat,
)
from .allowlist import AllowList

logger = logging.getLogger(__name__)

NO_DEVICES_MESSAGE = "No USB devices found."

# Text labels in output order
TEXT_LABELS = (
    ("device", "Device"),
    ("type", "Type"),
    ("name", "Name"),
    ("status", "Status"),
    ("bus_device", "Bus Device"),
    ("ip", "IP"),
    ("allow", "Allow"),
)


class ReportError(Exception):
    """Raised when the report cannot be rendered."""


def build_records(
    devices: Mapping[str, EnumeratedDevice],
    allowlist: AllowList,
    ip: str,
) -> list[DeviceRecord]:
    """
    Build one record per enumerated device, ordered by serial.

    Args:
        devices: normalized serial -> device from an enumerator
        allowlist: Authorized serials
        ip: Resolved local address string
    """
    records = []
    for serial in sorted(devices):
        device = devices[serial]
        records.append(DeviceRecord(
            device=serial,
            name=device.name or "",
            bus_device=device.bus_path or BUS_NOT_APPLICABLE,
            ip=ip,
            allow=allowlist.is_allowed(serial),
        ))
    return records


def render_json(records: list[DeviceRecord], include_name: bool = True) -> str:
    """
    Render records as an indented JSON array.

    Raises:
        ReportError: If serialization fails
    """
    try:
        return json.dumps(
            [record.to_dict(include_name=include_name) for record in records],
            indent=2,
            ensure_ascii=False,
        )
    except (TypeError, ValueError) as e:
        raise ReportError(f"Error converting to JSON: {e}") from e


def format_record(record: DeviceRecord, include_name: bool = True) -> str:
    """Format one record as a labeled text block."""
    data = record.to_dict(include_name=include_name)
    lines = []
    for key, label in TEXT_LABELS:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, bool):
            value = "true" if value else "false"
        lines.append(f"{label}: {value}")
    return "\n".join(lines)


def render_text(records: list[DeviceRecord], include_name: bool = True) -> str:
    """Render records as text blocks separated by blank lines."""
    return "\n\n".join(format_record(r, include_name=include_name) for r in records)


def parse_text_block(block: str) -> DeviceRecord:
    """Parse a block produced by format_record() back into a record."""
    keys = {label: key for key, label in TEXT_LABELS}
    data: dict[str, object] = {}

    for line in block.splitlines():
        label, sep, value = line.partition(":")
        if not sep or label not in keys:
            continue
        if value.startswith(" "):
            value = value[1:]
        data[keys[label]] = value

    if "device" not in data:
        raise ReportError(f"Text block has no Device line: {block!r}")

    data["allow"] = data.get("allow") == "true"
    return DeviceRecord.from_dict(data)


def parse_text_report(text: str) -> list[DeviceRecord]:
    """Parse the output of render_text()."""
    return [parse_text_block(block) for block in text.split("\n\n") if block.strip()]


def render(
    records: list[DeviceRecord],
    output_format: OutputFormat = OutputFormat.JSON,
    include_name: bool = True,
) -> str:
    """Render records in the requested format."""
    if output_format == OutputFormat.TEXT:
        return render_text(records, include_name=include_name)
    return render_json(records, include_name=include_name)
