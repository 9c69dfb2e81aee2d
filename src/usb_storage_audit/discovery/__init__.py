"""
Platform enumerators for USB mass-storage devices.

Each enumerator implements the same interface:
- async enumerate() -> dict[str, EnumeratedDevice]

Enumerators:
- Linux: lsusb bus listing + udevadm property dumps
- Windows: wmic diskdrive listing
"""

from .base import StorageEnumerator
from .linux import LinuxUsbEnumerator, UdevProperties, UsbBusEntry
from .windows import DiskDriveRow, WindowsUsbEnumerator
from .factory import get_enumerator

__all__ = [
    "StorageEnumerator",
    "LinuxUsbEnumerator",
    "UdevProperties",
    "UsbBusEntry",
    "WindowsUsbEnumerator",
    "DiskDriveRow",
    "get_enumerator",
]
