"""
USB storage audit - top-level orchestration.

Runs one enumeration pass for the host platform, checks each device's
serial against the allow-list, and prints the report.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ._types import DeviceRecord, EnumeratedDevice, ReportOutcome
from .allowlist import fetch_allowlist
from .config import AuditConfig, load_config
from .discovery import StorageEnumerator, get_enumerator
from .network import resolve_local_ip
from .report import NO_DEVICES_MESSAGE, ReportError, build_records, render
from .utils import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class AuditResult:
    """Outcome of one audit run."""
    outcome: ReportOutcome
    records: list[DeviceRecord] = field(default_factory=list)
    output: Optional[str] = None  # text to print, None if nothing


class UsbStorageAuditor:
    """
    One-shot USB mass-storage audit.

    Steps run strictly in sequence: enumerate, fetch allow-list,
    resolve local addresses, assemble and render.
    """

    def __init__(
        self,
        config: AuditConfig,
        enumerator: Optional[StorageEnumerator] = None,
        system: Optional[str] = None,
    ):
        """
        Initialize auditor.

        Args:
            config: Audit configuration
            enumerator: Enumerator to use (selected from the host OS if None)
            system: Override for platform.system() when selecting
        """
        self.config = config
        self.enumerator = enumerator or get_enumerator(config, system=system)

    async def enumerate(self) -> dict[str, EnumeratedDevice]:
        if not await self.enumerator.is_available():
            logger.warning(f"{self.enumerator.name} tools not found on PATH")
        return await self.enumerator.enumerate()

    async def run(self) -> AuditResult:
        """
        Run the audit.

        Raises:
            ReportError: If the report cannot be serialized
        """
        if self.enumerator is None:
            logger.error("Unsupported OS, no enumeration attempted")
            return AuditResult(outcome=ReportOutcome.UNSUPPORTED_PLATFORM)

        logger.info(f"Enumerating USB mass-storage devices with {self.enumerator.name}")
        devices = await self.enumerate()

        if not devices:
            return AuditResult(outcome=ReportOutcome.NO_DEVICES, output=NO_DEVICES_MESSAGE)

        allowlist = await fetch_allowlist(
            self.config.allowlist_endpoint,
            timeout=self.config.fetch_timeout,
        )
        ip = resolve_local_ip()

        records = build_records(devices, allowlist, ip)
        denied = sum(1 for r in records if not r.allow)
        if denied:
            logger.warning(f"{denied} of {len(records)} devices are not on the allow list")

        output = render(
            records,
            output_format=self.config.output_format,
            include_name=self.config.include_name,
        )
        return AuditResult(outcome=ReportOutcome.REPORTED, records=records, output=output)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Report attached USB mass-storage devices against an allow list"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML config file (environment variables still apply)"
    )
    parser.add_argument("--allowlist-url", type=str, help="Allow-list endpoint URL")
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=["json", "text"],
        help="Report format"
    )
    parser.add_argument(
        "--policy",
        dest="interface_class_policy",
        choices=["class", "exact"],
        help="Mass-storage interface match: class (:08) or exact (080650)"
    )
    parser.add_argument(
        "--no-name",
        dest="include_name",
        action="store_const",
        const=False,
        help="Omit the device name from the report"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for usb-storage-audit. Returns the exit status."""
    args = parse_args(argv)

    overrides = {
        "allowlist_endpoint": args.allowlist_url,
        "output_format": args.output_format,
        "interface_class_policy": args.interface_class_policy,
        "include_name": args.include_name,
        "log_level": args.log_level,
    }

    try:
        config = load_config(args.config, overrides=overrides)
    except (ValidationError, OSError, ValueError) as e:
        setup_logging(args.log_level or "INFO")
        logger.error(f"Config error: {e}")
        return 1

    setup_logging(config.log_level)

    auditor = UsbStorageAuditor(config)

    try:
        result = asyncio.run(auditor.run())
    except ReportError as e:
        logger.critical(str(e))
        return 1

    if result.output is not None:
        print(result.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
