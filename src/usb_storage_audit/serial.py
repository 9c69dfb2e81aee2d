"""
Serial number normalization.

udev reports ID_SERIAL_SHORT at the device's native length while WMI
truncates SerialNumber, so serials are capped to a shared length before
they are compared with each other or with the allow-list.
"""

SERIAL_MAX_LENGTH = 20


def normalize_serial(serial: str, max_length: int = SERIAL_MAX_LENGTH) -> str:
    """Return the first max_length characters of serial."""
    if len(serial) > max_length:
        return serial[:max_length]
    return serial
