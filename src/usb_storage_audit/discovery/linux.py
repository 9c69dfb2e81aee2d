"""
Linux USB mass-storage enumeration.

Lists USB devices with lsusb, then asks udev about each one. A device is
reported when udev knows its short serial and one of its interfaces has
the USB mass-storage class (08).
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional

from .._types import EnumeratedDevice, InterfaceClassPolicy
from ..serial import normalize_serial
from ..utils import run_command
from .base import StorageEnumerator

logger = logging.getLogger(__name__)

USB_BUS_ROOT = "/dev/bus/usb"

# lsusb: Bus 001 Device 004: ID abcd:1234 Example
LSUSB_MIN_FIELDS = 6

# Substrings of ID_USB_INTERFACES (":ccsspp:" per interface)
MASS_STORAGE_CLASS = ":08"
MASS_STORAGE_SCSI_BULK_ONLY = "080650"

UDEV_SERIAL_KEY = "ID_SERIAL_SHORT"
UDEV_INTERFACES_KEY = "ID_USB_INTERFACES"
UDEV_MODEL_KEY = "ID_MODEL"


@dataclass(frozen=True)
class UsbBusEntry:
    """One device line from lsusb."""
    bus_id: str
    device_id: str

    @property
    def bus_path(self) -> str:
        return f"{USB_BUS_ROOT}/{self.bus_id}/{self.device_id}"


@dataclass(frozen=True)
class UdevProperties:
    """The udev properties needed to classify a device."""
    serial: str = ""
    interfaces: str = ""
    model: str = ""


def parse_lsusb_line(line: str) -> Optional[UsbBusEntry]:
    """Parse a single lsusb line, or None if it is not a device line."""
    parts = line.split()
    if len(parts) < LSUSB_MIN_FIELDS:
        return None

    # "004:" -> "004"
    device_id = parts[3][:-1]
    if not device_id:
        return None

    return UsbBusEntry(bus_id=parts[1], device_id=device_id)


def parse_lsusb_output(output: str) -> list[UsbBusEntry]:
    """Parse lsusb output into bus entries, skipping malformed lines."""
    entries = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue

        entry = parse_lsusb_line(line)
        if entry is None:
            logger.debug(f"Skipping unexpected lsusb line: {line!r}")
            continue
        entries.append(entry)
    return entries


def parse_udev_properties(output: str) -> UdevProperties:
    """
    Extract serial, interface signature and model from
    `udevadm info --query=all` output.

    Only "E: KEY=VALUE" lines are considered; later lines win.
    """
    values = {UDEV_SERIAL_KEY: "", UDEV_INTERFACES_KEY: "", UDEV_MODEL_KEY: ""}

    for line in output.splitlines():
        line = line.strip()
        if not line.startswith("E: "):
            continue

        key, sep, value = line[3:].partition("=")
        if sep and key in values:
            values[key] = value.strip()

    return UdevProperties(
        serial=values[UDEV_SERIAL_KEY],
        interfaces=values[UDEV_INTERFACES_KEY],
        model=values[UDEV_MODEL_KEY],
    )


def is_mass_storage(
    props: UdevProperties,
    policy: InterfaceClassPolicy = InterfaceClassPolicy.CLASS,
) -> bool:
    """Check the interface signature against the policy; a serial is required."""
    if not props.serial:
        return False
    if policy == InterfaceClassPolicy.EXACT:
        return MASS_STORAGE_SCSI_BULK_ONLY in props.interfaces
    return MASS_STORAGE_CLASS in props.interfaces


class LinuxUsbEnumerator(StorageEnumerator):
    """
    Enumerate USB mass-storage devices via lsusb and udevadm.

    Bus paths are reported as /dev/bus/usb/<bus>/<device>.
    """

    required_tools = ("lsusb", "udevadm")

    def __init__(
        self,
        policy: InterfaceClassPolicy = InterfaceClassPolicy.CLASS,
        command_timeout: float = 10.0,
    ):
        """
        Initialize Linux enumeration.

        Args:
            policy: Interface-class matching policy
            command_timeout: Seconds to wait for each external command
        """
        super().__init__(command_timeout=command_timeout)
        self.policy = policy

    @property
    def name(self) -> str:
        return "lsusb"

    async def enumerate(self) -> dict[str, EnumeratedDevice]:
        """
        Enumerate mass-storage devices.

        Returns mapping of normalized serial -> device with bus path and model.
        """
        devices: dict[str, EnumeratedDevice] = {}

        try:
            result = await run_command(["lsusb"], timeout=self.command_timeout)
        except subprocess.CalledProcessError as e:
            logger.error(f"Error listing USB devices: lsusb exited {e.returncode}: {(e.stderr or '').strip()}")
            return devices
        except (OSError, asyncio.TimeoutError) as e:
            logger.error(f"Error listing USB devices: {e!r}")
            return devices

        for entry in parse_lsusb_output(result.stdout):
            props = await self._query_udev(entry.bus_path)
            if props is None:
                continue

            if not is_mass_storage(props, self.policy):
                continue

            serial = normalize_serial(props.serial)
            if serial in devices:
                logger.debug(f"Serial {serial} already seen, replacing with {entry.bus_path}")

            devices[serial] = EnumeratedDevice(name=props.model, bus_path=entry.bus_path)

        logger.info(f"Linux enumeration found {len(devices)} mass-storage devices")
        return devices

    async def _query_udev(self, bus_path: str) -> Optional[UdevProperties]:
        """Query udev for one device; None if the query fails."""
        cmd = ["udevadm", "info", "--query=all", f"--name={bus_path}"]
        try:
            result = await run_command(cmd, timeout=self.command_timeout)
        except subprocess.CalledProcessError as e:
            logger.warning(f"Error getting details for device {bus_path}: {(e.stderr or '').strip()}")
            return None
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Error getting details for device {bus_path}: {e!r}")
            return None

        return parse_udev_properties(result.stdout)
