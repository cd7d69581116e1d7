"""Subprocess execution with Result-based error handling.

This is the only module allowed to call ``subprocess`` directly; git and any
other external tool go through :func:`run`.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from muno.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not be started, timed out, or exited non-zero.

    Attributes:
        command: The argv that was executed.
        returncode: Exit code, or -1 when the process never completed.
        stdout: Captured standard output.
        stderr: Captured standard error, or a synthesized reason.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def detail(self) -> str:
        """Most useful single-line explanation of the failure."""
        text = self.stderr.strip() or self.stdout.strip()
        if not text:
            return str(self)
        return text.splitlines()[-1]

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its stdout.

    Args:
        cmd: Command and arguments.
        cwd: Working directory for the command.
        env: Environment variables (inherits the current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on exit status 0, Err(ProcessError) otherwise.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(ProcessError(tuple(cmd), -1, partial, f"Command timed out after {timeout}s"))
    except OSError as e:
        return Err(ProcessError(tuple(cmd), -1, "", str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(tuple(cmd), proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
