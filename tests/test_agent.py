"""Tests for the audit orchestration and CLI."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from usb_storage_audit._types import EnumeratedDevice, ReportOutcome
from usb_storage_audit.agent import AuditResult, UsbStorageAuditor, main
from usb_storage_audit.allowlist import AllowList
from usb_storage_audit.config import ENV_VARS, AuditConfig
from usb_storage_audit.discovery import (
    LinuxUsbEnumerator,
    StorageEnumerator,
    WindowsUsbEnumerator,
    get_enumerator,
)
from usb_storage_audit.report import ReportError

from conftest import FakeCommands, ok, udevadm


class StaticEnumerator(StorageEnumerator):
    """Enumerator returning a fixed device map."""

    def __init__(self, devices):
        super().__init__()
        self.devices = devices
        self.calls = 0

    @property
    def name(self) -> str:
        return "static"

    async def enumerate(self):
        self.calls += 1
        return dict(self.devices)


@pytest.fixture
def config():
    return AuditConfig(allowlist_endpoint="http://10.10.20.1/serial.php")


@pytest.fixture
def no_network():
    """Patch out the allow-list fetch and address lookup."""
    with patch("usb_storage_audit.agent.fetch_allowlist", new_callable=AsyncMock) as fetch, \
            patch("usb_storage_audit.agent.resolve_local_ip", return_value="192.168.1.10") as ip:
        fetch.return_value = AllowList({"ABC123"})
        yield fetch, ip


class TestGetEnumerator:
    """Tests for platform selection."""

    def test_linux(self, config):
        enumerator = get_enumerator(config, system="Linux")
        assert isinstance(enumerator, LinuxUsbEnumerator)
        assert enumerator.policy == config.interface_class_policy

    def test_windows(self, config):
        enumerator = get_enumerator(config, system="Windows")
        assert isinstance(enumerator, WindowsUsbEnumerator)
        assert enumerator.command_timeout == config.command_timeout

    def test_windows_min_fields(self):
        config = AuditConfig(allowlist_endpoint="http://x/", windows_min_fields=3)
        assert get_enumerator(config, system="Windows").min_fields == 3

    def test_unsupported(self, config):
        assert get_enumerator(config, system="Darwin") is None


class TestUsbStorageAuditor:
    """Tests for a full audit run."""

    @pytest.mark.asyncio
    async def test_reported(self, config, no_network):
        fetch, _ = no_network
        enumerator = StaticEnumerator({
            "ABC123": EnumeratedDevice(name="ExampleDrive", bus_path="/dev/bus/usb/001/004"),
            "XYZ789": EnumeratedDevice(name="Other"),
        })

        result = await UsbStorageAuditor(config, enumerator=enumerator).run()

        assert result.outcome == ReportOutcome.REPORTED
        assert [(r.device, r.allow) for r in result.records] == [("ABC123", True), ("XYZ789", False)]
        assert result.records[1].bus_device == "N/A"
        assert json.loads(result.output)[0]["ip"] == "192.168.1.10"
        fetch.assert_awaited_once_with("http://10.10.20.1/serial.php", timeout=10.0)

    @pytest.mark.asyncio
    async def test_no_devices(self, config, no_network):
        """An empty enumeration reports the message and no records."""
        fetch, _ = no_network

        result = await UsbStorageAuditor(config, enumerator=StaticEnumerator({})).run()

        assert result.outcome == ReportOutcome.NO_DEVICES
        assert result.records == []
        assert result.output == "No USB devices found."
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsupported_platform(self, config, no_network):
        """No enumerator means no enumeration attempt."""
        auditor = UsbStorageAuditor(config, system="Plan9")

        result = await auditor.run()

        assert result.outcome == ReportOutcome.UNSUPPORTED_PLATFORM
        assert result.output is None

    @pytest.mark.asyncio
    async def test_unreachable_allowlist_denies_all(self, config):
        """With the allow-list unreachable every device is denied."""
        config.allowlist_endpoint = "http://127.0.0.1:1/serial.php"
        config.fetch_timeout = 2
        enumerator = StaticEnumerator({"ABC123": EnumeratedDevice(name="ExampleDrive")})

        with patch("usb_storage_audit.agent.resolve_local_ip", return_value="unknown"):
            result = await UsbStorageAuditor(config, enumerator=enumerator).run()

        assert result.outcome == ReportOutcome.REPORTED
        assert [r.allow for r in result.records] == [False]

    @pytest.mark.asyncio
    async def test_text_without_name(self, config, no_network):
        config.output_format = "text"
        config.include_name = False
        enumerator = StaticEnumerator({"ABC123": EnumeratedDevice(name="ExampleDrive")})

        result = await UsbStorageAuditor(config, enumerator=enumerator).run()

        assert result.output.splitlines()[0] == "Device: ABC123"
        assert "Name:" not in result.output
        assert "Allow: true" in result.output

    @pytest.mark.asyncio
    async def test_linux_end_to_end(self, config, no_network):
        """lsusb + udev output through to the final record."""
        fake = FakeCommands({
            ("lsusb",): ok("Bus 001 Device 004: ID abcd:1234 Example\n"),
            udevadm("/dev/bus/usb/001/004"): ok(
                "E: ID_SERIAL_SHORT=ABC123\n"
                "E: ID_USB_INTERFACES=abc:080650:def\n"
                "E: ID_MODEL=ExampleDrive\n"
            ),
        })

        with patch("usb_storage_audit.discovery.linux.run_command", fake), \
                patch.object(LinuxUsbEnumerator, "is_available", AsyncMock(return_value=True)):
            result = await UsbStorageAuditor(config, system="Linux").run()

        assert json.loads(result.output) == [{
            "device": "ABC123",
            "type": "Mass Storage Device",
            "name": "ExampleDrive",
            "status": "connected",
            "bus_device": "/dev/bus/usb/001/004",
            "ip": "192.168.1.10",
            "allow": True,
        }]


class TestMain:
    """Tests for the command-line entry point."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for env_var in ENV_VARS:
            monkeypatch.delenv(env_var, raising=False)

    def test_missing_endpoint_fails(self):
        assert main([]) == 1

    def test_malformed_config_file_fails(self, tmp_path):
        path = tmp_path / "usb_audit.yaml"
        path.write_text("allowlist_endpoint: [unclosed\n")

        assert main(["--config", str(path)]) == 1

    def test_no_devices_exits_zero(self, capsys):
        result = AuditResult(outcome=ReportOutcome.NO_DEVICES, output="No USB devices found.")

        with patch.object(UsbStorageAuditor, "run", AsyncMock(return_value=result)):
            code = main(["--allowlist-url", "http://10.10.20.1/serial.php"])

        assert code == 0
        assert capsys.readouterr().out.strip() == "No USB devices found."

    def test_unsupported_platform_exits_zero(self, capsys):
        result = AuditResult(outcome=ReportOutcome.UNSUPPORTED_PLATFORM)

        with patch.object(UsbStorageAuditor, "run", AsyncMock(return_value=result)):
            code = main(["--allowlist-url", "http://10.10.20.1/serial.php"])

        assert code == 0
        assert capsys.readouterr().out == ""

    def test_report_error_is_fatal(self):
        with patch.object(UsbStorageAuditor, "run", AsyncMock(side_effect=ReportError("bad"))):
            code = main(["--allowlist-url", "http://10.10.20.1/serial.php"])

        assert code == 1

    def test_cli_overrides_reach_config(self, monkeypatch):
        monkeypatch.setenv("ALLOWLIST_ENDPOINT", "http://env/serial.php")
        seen = {}

        def capture(self, config, enumerator=None, system=None):
            seen["config"] = config
            self.config = config
            self.enumerator = StaticEnumerator({})

        with patch.object(UsbStorageAuditor, "__init__", capture):
            code = main(["--format", "text", "--policy", "exact", "--no-name"])

        assert code == 0
        config = seen["config"]
        assert config.allowlist_endpoint == "http://env/serial.php"
        assert config.output_format == "text"
        assert config.interface_class_policy == "exact"
        assert config.include_name is False
