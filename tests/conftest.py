"""Shared fixtures and command fakes."""

import subprocess

import pytest

from usb_storage_audit.utils import CommandResult


def ok(stdout: str) -> CommandResult:
    return CommandResult(exit_code=0, stdout=stdout, stderr="")


class FakeCommands:
    """
    Stand-in for run_command().

    Responses are keyed by the full command tuple; a value may be a
    CommandResult or an exception to raise.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    async def __call__(self, cmd, timeout=None):
        self.calls.append(list(cmd))
        response = self.responses.get(tuple(cmd))
        if response is None:
            raise subprocess.CalledProcessError(1, cmd, output="", stderr="no such device")
        if isinstance(response, Exception):
            raise response
        return response


def udevadm(bus_path: str) -> tuple:
    return ("udevadm", "info", "--query=all", f"--name={bus_path}")


@pytest.fixture
def fake_commands():
    return FakeCommands()
