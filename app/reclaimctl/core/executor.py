"""Command execution for cleanup actions.

Defines the executor contract consumed by the orchestrator and the
disk/snapshot probes, plus the shell-backed implementation used by the
CLI. The orchestrator only ever hands validator-approved commands to an
executor.
"""

import logging
import subprocess
from typing import Protocol

from reclaimctl.core.errors import ExecutionError
from reclaimctl.utils.shell import run_shell

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0


class CommandExecutor(Protocol):
    """Runs one command line and returns its standard output."""

    def execute(self, command: str) -> str:
        """Execute a command.

        Raises:
            ExecutionError: On non-zero exit or invocation failure.
        """
        ...


class ShellExecutor:
    """Executes commands through the POSIX shell.

    Attributes:
        dry_run: If True, log commands instead of running them.
        timeout: Maximum time in seconds per command.
    """

    def __init__(self, dry_run: bool = False, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        """Initialize the ShellExecutor.

        Args:
            dry_run: If True, report what would run without running it.
            timeout: Maximum time in seconds per command.
        """
        self.dry_run = dry_run
        self.timeout = timeout

    def execute(self, command: str) -> str:
        """Execute a command line and return its standard output.

        Args:
            command: Full command line.

        Returns:
            Captured standard output ("" in dry-run mode).

        Raises:
            ExecutionError: If the command exits non-zero, times out,
                or cannot be started.
        """
        if self.dry_run:
            logger.info("Dry-run: would execute %s", command)
            return ""

        logger.debug("Executing: %s", command)
        try:
            result = run_shell(command, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            msg = f"Command timed out after {self.timeout:g} seconds"
            raise ExecutionError(msg, command=command) from e
        except OSError as e:
            msg = f"Command could not be started: {e}"
            raise ExecutionError(msg, command=command) from e

        if not result.success:
            stderr = result.stderr.strip()
            msg = stderr or f"Command exited with code {result.returncode}"
            raise ExecutionError(
                msg,
                command=command,
                returncode=result.returncode,
                stderr=stderr,
            )

        return result.stdout


class ReadOnlyExecutor:
    """Executor that always runs commands, even when cleanup is a dry-run.

    Measurement commands (``df``, ``du``, ``tmutil listlocalsnapshots``)
    do not modify the filesystem, so a dry-run cleanup still needs them
    to produce real before/after figures.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self._inner = ShellExecutor(dry_run=False, timeout=timeout)

    def execute(self, command: str) -> str:
        """Execute a read-only command."""
        return self._inner.execute(command)
