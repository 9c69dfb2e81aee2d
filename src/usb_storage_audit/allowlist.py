"""
Allow-list retrieval.

The allow-list endpoint returns one authorized serial per line. Any
failure to fetch it degrades to an empty list, so every device is then
reported as not allowed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

import aiohttp

logger = logging.getLogger(__name__)


class AllowList:
    """Immutable set of authorized serial numbers."""

    def __init__(self, serials: Iterable[str] = ()):
        self._serials = frozenset(serials)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "AllowList":
        """Build from raw lines, trimming whitespace and dropping blanks."""
        return cls(line.strip() for line in lines if line.strip())

    def is_allowed(self, serial: str) -> bool:
        return serial in self._serials

    def __len__(self) -> int:
        return len(self._serials)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AllowList):
            return self._serials == other._serials
        if isinstance(other, (set, frozenset)):
            return self._serials == other
        return NotImplemented

    def __repr__(self):
        return f"AllowList({len(self._serials)} serials)"


def parse_allowlist(text: str) -> AllowList:
    """Parse a newline-delimited allow-list body."""
    return AllowList.from_lines(text.splitlines())


async def fetch_allowlist(endpoint: str, timeout: float = 10.0) -> AllowList:
    """
    Fetch the allow-list with a single GET.

    Args:
        endpoint: Allow-list URL
        timeout: Total request timeout in seconds

    Returns:
        AllowList (empty if the endpoint is unreachable or errors)
    """
    try:
        client_timeout = aiohttp.ClientTimeout(total=timeout)

        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(endpoint) as response:
                if response.status != 200:
                    logger.error(f"Error fetching allow list: {endpoint} returned HTTP {response.status}")
                    return AllowList()

                body = await response.text()

    except aiohttp.ClientError as e:
        logger.error(f"Error fetching allow list: {e}")
        return AllowList()
    except asyncio.TimeoutError:
        logger.error(f"Error fetching allow list: timed out after {timeout}s")
        return AllowList()
    except UnicodeDecodeError as e:
        logger.error(f"Error reading allow list response: {e}")
        return AllowList()

    allowlist = parse_allowlist(body)
    logger.info(f"Fetched {len(allowlist)} allowed serials")
    return allowlist
