"""
USB Storage Audit - allow-list reporting for attached USB mass-storage devices.

Enumerates USB mass-storage devices on Linux (lsusb + udev) or Windows
(wmic), checks each serial against a remotely served allow-list, and
prints a JSON or text report with the host's IPv4 addresses.
"""

__version__ = "0.1.0"

from ._types import (
    DeviceRecord,
    EnumeratedDevice,
    InterfaceClassPolicy,
    OutputFormat,
    ReportOutcome,
    WindowsMediaFilter,
)
from .allowlist import AllowList, fetch_allowlist, parse_allowlist
from .serial import normalize_serial

__all__ = [
    "__version__",
    "DeviceRecord",
    "EnumeratedDevice",
    "InterfaceClassPolicy",
    "OutputFormat",
    "ReportOutcome",
    "WindowsMediaFilter",
    "AllowList",
    "fetch_allowlist",
    "parse_allowlist",
    "normalize_serial",
]
