"""
Base classes for platform enumerators.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod

from .._types import EnumeratedDevice

logger = logging.getLogger(__name__)


class StorageEnumerator(ABC):
    """Base class for platform enumerators."""

    # Executables the enumerator shells out to
    required_tools: tuple[str, ...] = ()

    def __init__(self, command_timeout: float = 10.0):
        """
        Initialize enumerator.

        Args:
            command_timeout: Seconds to wait for each external command
        """
        self.command_timeout = command_timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this enumerator."""
        pass

    @abstractmethod
    async def enumerate(self) -> dict[str, EnumeratedDevice]:
        """
        Enumerate attached USB mass-storage devices.

        Returns mapping of normalized serial -> device.
        """
        pass

    async def is_available(self) -> bool:
        """Check that every required tool is on PATH."""
        found = await asyncio.to_thread(
            lambda: all(shutil.which(tool) for tool in self.required_tools)
        )
        if not found:
            logger.debug(f"{self.name}: missing one of {self.required_tools}")
        return found
