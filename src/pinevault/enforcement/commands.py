"""Subprocess execution with a uniform timeout and cancellation policy."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from pinevault.cancellation import CancellationToken

LOGGER = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when a command exits non-zero or cannot be started."""

    def __init__(self, args: Sequence[str], message: str, returncode: Optional[int] = None) -> None:
        super().__init__(f"{shlex.join(args)}: {message}")
        self.command = list(args)
        self.returncode = returncode


class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout."""


@dataclass
class CommandResult:
    """Captured outcome of a finished command."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str


class CommandRunner:
    """Run external commands in ``cwd``, each bounded by a timeout.

    Every invocation gets ``default_timeout`` unless a shorter or longer
    one is passed explicitly. Output is captured, never inherited.
    """

    def __init__(self, cwd: Path, *, default_timeout: float = 300.0) -> None:
        self.cwd = cwd
        self.default_timeout = default_timeout

    def run(
        self,
        args: Sequence[str],
        *,
        timeout: Optional[float] = None,
        token: Optional[CancellationToken] = None,
    ) -> CommandResult:
        """Run ``args`` and return its captured output.

        Raises:
            CancelledError: If ``token`` was cancelled before the command started.
            CommandTimeoutError: If the command did not finish in time.
            CommandError: If the command could not start or exited non-zero.
        """
        command = [str(arg) for arg in args]
        if token is not None:
            token.raise_if_cancelled(shlex.join(command))

        limit = self.default_timeout if timeout is None else timeout
        LOGGER.debug("Running %s (timeout %.0fs)", shlex.join(command), limit)
        try:
            completed = subprocess.run(
                command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=limit,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(command, f"timed out after {limit:g}s") from exc
        except OSError as exc:
            raise CommandError(command, f"could not start ({exc})") from exc

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout).strip()
            message = f"exited with status {completed.returncode}"
            if detail:
                message = f"{message}: {detail}"
            raise CommandError(command, message, completed.returncode)

        return CommandResult(
            args=command,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


__all__ = ["CommandRunner", "CommandResult", "CommandError", "CommandTimeoutError"]
