"""
Windows USB mass-storage enumeration.

Uses a single `wmic diskdrive` query. The WMI filter in the query is the
only classification step; every row it returns is treated as a removable
or USB storage device. No bus path exists on this platform.
"""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Optional

from .._types import EnumeratedDevice, WindowsMediaFilter
from ..serial import normalize_serial
from ..utils import run_command
from .base import StorageEnumerator

logger = logging.getLogger(__name__)

MODEL_FIELD = "Model"
SERIAL_FIELD = "SerialNumber"
DISK_DRIVE_FIELDS = (MODEL_FIELD, SERIAL_FIELD, "Status")

WMI_FILTERS = {
    WindowsMediaFilter.REMOVABLE: "MediaType='Removable Media'",
    WindowsMediaFilter.USB: "InterfaceType='USB'",
}


@dataclass(frozen=True)
class DiskDriveRow:
    """One row of the disk drive listing."""
    model: str
    serial: str


def parse_disk_drive_row(line: str, min_fields: int = 2) -> Optional[DiskDriveRow]:
    """
    Parse a row without column positions.

    The second-to-last field is the serial and everything before it is the
    model. Only correct when exactly one column follows SerialNumber.
    """
    parts = line.split()
    if len(parts) < min_fields:
        return None

    return DiskDriveRow(
        model=" ".join(parts[:-2]),
        serial=parts[-2],
    )


def locate_columns(header: str, fields: tuple[str, ...]) -> Optional[list[tuple[str, int]]]:
    """
    Find the start offset of every requested column in a wmic header.

    Returns (name, offset) pairs sorted by offset, or None if any requested
    field is missing from the header.
    """
    offsets = {m.group(0): m.start() for m in re.finditer(r"\S+", header)}
    if not all(name in offsets for name in fields):
        return None

    return sorted(((name, offsets[name]) for name in offsets), key=lambda c: c[1])


def slice_row(line: str, columns: list[tuple[str, int]]) -> DiskDriveRow:
    """Cut a fixed-width row at the header's column offsets; other columns are dropped."""
    values = {}
    for i, (name, start) in enumerate(columns):
        end = columns[i + 1][1] if i + 1 < len(columns) else None
        values[name] = line[start:end].strip()

    return DiskDriveRow(
        model=values.get(MODEL_FIELD, ""),
        serial=values.get(SERIAL_FIELD, ""),
    )


def parse_disk_drive_listing(
    output: str,
    fields: tuple[str, ...] = DISK_DRIVE_FIELDS,
    min_fields: int = 2,
) -> list[DiskDriveRow]:
    """
    Parse `wmic diskdrive ... get <fields>` output.

    wmic prints a header naming each column followed by fixed-width rows,
    so rows are sliced at the header's offsets. If the header does not name
    every requested field the positional heuristic is used instead.
    """
    lines = [line.rstrip() for line in output.splitlines() if line.strip()]
    if len(lines) < 2:
        return []

    header, body = lines[0], lines[1:]
    columns = locate_columns(header, fields)
    if columns is None:
        logger.debug(f"wmic header {header.strip()!r} lacks {fields}, using positional parsing")

    rows = []
    for line in body:
        if columns is not None:
            row = slice_row(line, columns)
        else:
            row = parse_disk_drive_row(line, min_fields=min_fields)

        if row is None or not row.serial:
            continue
        rows.append(row)

    return rows


class WindowsUsbEnumerator(StorageEnumerator):
    """Enumerate removable or USB disk drives via wmic."""

    required_tools = ("wmic",)

    def __init__(
        self,
        media_filter: WindowsMediaFilter = WindowsMediaFilter.REMOVABLE,
        min_fields: int = 2,
        command_timeout: float = 10.0,
    ):
        """
        Initialize Windows enumeration.

        Args:
            media_filter: WMI filter restricting the listing
            min_fields: Minimum tokens per row for positional parsing
            command_timeout: Seconds to wait for wmic
        """
        super().__init__(command_timeout=command_timeout)
        self.media_filter = media_filter
        self.min_fields = min_fields

    @property
    def name(self) -> str:
        return "wmic"

    @property
    def command(self) -> list[str]:
        return [
            "wmic", "diskdrive",
            "where", WMI_FILTERS[self.media_filter],
            "get", ",".join(DISK_DRIVE_FIELDS),
        ]

    async def enumerate(self) -> dict[str, EnumeratedDevice]:
        """
        Enumerate disk drives matching the media filter.

        Returns mapping of normalized serial -> device with model name.
        """
        devices: dict[str, EnumeratedDevice] = {}

        try:
            result = await run_command(self.command, timeout=self.command_timeout)
        except subprocess.CalledProcessError as e:
            logger.error(f"Error listing USB devices: wmic exited {e.returncode}: {(e.stderr or '').strip()}")
            return devices
        except (OSError, asyncio.TimeoutError) as e:
            logger.error(f"Error listing USB devices: {e!r}")
            return devices

        rows = parse_disk_drive_listing(result.stdout, min_fields=self.min_fields)
        if not rows:
            logger.info("wmic returned no disk drives")
            return devices

        for row in rows:
            devices[normalize_serial(row.serial)] = EnumeratedDevice(name=row.model)

        logger.info(f"Windows enumeration found {len(devices)} mass-storage devices")
        return devices
