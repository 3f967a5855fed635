"""
Run the file sample as a subprocess and capture what it prints
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class CliResult:
    """Captured output of one sample invocation."""

    command: str
    stdout: str
    stderr: str
    returncode: int

    @property
    def output(self) -> str:
        """Combined stdout and stderr, the text scenarios assert on."""
        return self.stdout + self.stderr


def run_command(
    command: str,
    cwd: PathLike,
    env: Optional[dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> CliResult:
    """
    Run a command line and wait for it to exit.

    The exit code is recorded but not interpreted. An OSError from spawning
    the process propagates to the caller.
    """
    logger.debug(f"Running {command!r} in {cwd}")
    completed = subprocess.run(
        shlex.split(command),
        cwd=str(cwd),
        env=env,
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    return CliResult(
        command=command,
        stdout=completed.stdout,
        stderr=completed.stderr,
        returncode=completed.returncode,
    )


class CliInvoker:
    """Invokes a fixed base command with per-call arguments."""

    def __init__(
        self,
        base_command: str,
        cwd: PathLike,
        env: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ):
        self.base_command = base_command
        self.cwd = Path(cwd)
        self.env = env
        self.timeout = timeout

    def run(self, *args: str) -> CliResult:
        """Append quoted arguments to the base command and run it."""
        return self.run_raw(shlex.join(str(arg) for arg in args))

    def run_raw(self, arguments: str) -> CliResult:
        """Append an already formatted argument string, e.g. 'test "/"'."""
        command = f"{self.base_command} {arguments}".strip()
        return run_command(command, self.cwd, env=self.env, timeout=self.timeout)
