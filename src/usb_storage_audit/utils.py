"""
Utility functions for the USB storage audit.

Includes:
- Process execution helpers
- Logging setup
"""

import asyncio
import logging
import subprocess
import sys
from typing import Optional

logger = logging.getLogger(__name__)


class CommandResult:
    """Result of a command execution."""

    def __init__(
        self,
        exit_code: int,
        stdout: str,
        stderr: str,
    ):
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def __repr__(self):
        return f"CommandResult(exit_code={self.exit_code})"


async def run_command(
    cmd: list[str],
    timeout: Optional[float] = None,
) -> CommandResult:
    """
    Run a command asynchronously and capture its output.

    Args:
        cmd: Command and arguments as list
        timeout: Timeout in seconds (None = no timeout)

    Returns:
        CommandResult with exit code, stdout and stderr

    Raises:
        FileNotFoundError: If the executable does not exist
        subprocess.CalledProcessError: If the command exits non-zero
        asyncio.TimeoutError: If timeout exceeded
    """
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE
    )

    try:
        if timeout:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
        else:
            stdout, stderr = await process.communicate()
    except asyncio.TimeoutError:
        # Kill process on timeout
        try:
            process.kill()
            await process.wait()
        except ProcessLookupError:
            pass
        raise

    # wmic emits OEM/UTF-16 fragments on some hosts
    result = CommandResult(
        exit_code=process.returncode,
        stdout=stdout.decode('utf-8', errors='replace') if stdout else '',
        stderr=stderr.decode('utf-8', errors='replace') if stderr else '',
    )

    if result.exit_code != 0:
        raise subprocess.CalledProcessError(
            result.exit_code,
            cmd,
            output=result.stdout,
            stderr=result.stderr
        )

    return result


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging for the audit.

    Logs go to stderr so stdout carries only the report.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )
