"""
Local address resolution.

Reports every non-loopback IPv4 address configured on the host.
"""

from __future__ import annotations

import ipaddress
import logging
import socket

import psutil

from ._types import IP_UNKNOWN

logger = logging.getLogger(__name__)

IP_SEPARATOR = ", "


def get_local_ipv4_addresses() -> list[str]:
    """
    Collect non-loopback IPv4 addresses from all interfaces.

    Raises:
        OSError: If interface enumeration fails
    """
    ips = []
    for iface, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            try:
                ip = ipaddress.IPv4Address(addr.address)
            except ValueError:
                logger.debug(f"Ignoring unparsable address {addr.address!r} on {iface}")
                continue
            if ip.is_loopback:
                continue
            ips.append(str(ip))
    return ips


def resolve_local_ip() -> str:
    """Comma-joined local IPv4 addresses, or "unknown"."""
    try:
        ips = get_local_ipv4_addresses()
    except (OSError, psutil.Error) as e:
        logger.error(f"Error getting local IP: {e}")
        return IP_UNKNOWN

    if not ips:
        logger.warning("No non-loopback IPv4 address found")
        return IP_UNKNOWN

    return IP_SEPARATOR.join(ips)
