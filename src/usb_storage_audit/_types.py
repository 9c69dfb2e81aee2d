"""
Type definitions for the USB storage audit.

These dataclasses define the report model shared by every platform
enumerator and the report assembler.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


# Fixed record values
MASS_STORAGE_TYPE = "Mass Storage Device"
STATUS_CONNECTED = "connected"

# Sentinels
BUS_NOT_APPLICABLE = "N/A"
IP_UNKNOWN = "unknown"


class InterfaceClassPolicy(str, Enum):
    """How strictly ID_USB_INTERFACES must match the mass-storage class."""
    CLASS = "class"  # ":08" anywhere in the signature
    EXACT = "exact"  # "080650" (mass storage / SCSI / bulk-only)


class WindowsMediaFilter(str, Enum):
    """WMI filter used to restrict the disk drive listing."""
    REMOVABLE = "removable"
    USB = "usb"


class OutputFormat(str, Enum):
    """Report rendering."""
    JSON = "json"
    TEXT = "text"


class ReportOutcome(str, Enum):
    """How a run ended. All outcomes exit with status 0."""
    REPORTED = "reported"
    NO_DEVICES = "no_devices"
    UNSUPPORTED_PLATFORM = "unsupported_platform"


@dataclass(frozen=True)
class EnumeratedDevice:
    """
    A mass-storage device as reported by a platform enumerator.

    Enumerators return these keyed by normalized serial, so a serial can
    appear at most once per run.
    """
    name: str = ""
    bus_path: Optional[str] = None  # None where the platform has no bus path


@dataclass(frozen=True)
class DeviceRecord:
    """One line of the final report."""
    device: str
    name: str = ""
    bus_device: str = BUS_NOT_APPLICABLE
    ip: str = IP_UNKNOWN
    allow: bool = False
    type: str = MASS_STORAGE_TYPE
    status: str = STATUS_CONNECTED

    def to_dict(self, include_name: bool = True) -> dict[str, Any]:
        """Serialize in report field order."""
        data: dict[str, Any] = {
            "device": self.device,
            "type": self.type,
        }
        if include_name:
            data["name"] = self.name
        data.update({
            "status": self.status,
            "bus_device": self.bus_device,
            "ip": self.ip,
            "allow": self.allow,
        })
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeviceRecord":
        """Inverse of to_dict(). A missing name reads back as empty."""
        return cls(
            device=data["device"],
            type=data.get("type", MASS_STORAGE_TYPE),
            name=data.get("name", ""),
            status=data.get("status", STATUS_CONNECTED),
            bus_device=data.get("bus_device", BUS_NOT_APPLICABLE),
            ip=data.get("ip", IP_UNKNOWN),
            allow=bool(data.get("allow", False)),
        )
