"""
Platform selection for enumerators.
"""

from __future__ import annotations

import logging
import platform
from typing import Optional

from ..config import AuditConfig
from .base import StorageEnumerator
from .linux import LinuxUsbEnumerator
from .windows import WindowsUsbEnumerator

logger = logging.getLogger(__name__)


def get_enumerator(
    config: AuditConfig,
    system: Optional[str] = None,
) -> Optional[StorageEnumerator]:
    """
    Pick the enumerator for the host OS family.

    Args:
        config: Audit configuration
        system: platform.system() value (detected if None)

    Returns:
        The enumerator, or None if the platform is unsupported
    """
    system = system or platform.system()

    if system == "Linux":
        return LinuxUsbEnumerator(
            policy=config.interface_class_policy,
            command_timeout=config.command_timeout,
        )
    elif system == "Windows":
        return WindowsUsbEnumerator(
            media_filter=config.windows_media_filter,
            min_fields=config.windows_min_fields,
            command_timeout=config.command_timeout,
        )

    logger.warning(f"Unsupported OS: {system}")
    return None
