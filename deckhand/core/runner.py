"""Command execution backends for pipeline steps.

Defines the ``CommandRunner`` Protocol that every external tool invocation
goes through (git, rustup, cargo, docker, scp), and ``SubprocessRunner``,
the default backend. Tests substitute a recording runner.

A runner raises ``CommandFailedError`` on a non-zero exit; callers never
inspect return codes themselves.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

REDACTED = "***"


class CommandResult(BaseModel):
    """Outcome of one external command."""

    model_config = ConfigDict(frozen=True)

    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


class CommandFailedError(RuntimeError):
    """Raised when a command exits non-zero or cannot be started."""

    def __init__(self, message: str, result: CommandResult) -> None:
        super().__init__(message)
        self.result = result


def redact(text: str, secrets: Sequence[str]) -> str:
    """Replace every occurrence of each non-empty secret with ``***``."""
    for secret in sorted((s for s in secrets if s), key=len, reverse=True):
        text = text.replace(secret, REDACTED)
    return text


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for command execution backends."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        secrets: Sequence[str] = (),
    ) -> CommandResult:
        """Run *argv* to completion.

        *secrets* are masked in anything the runner logs or puts into an
        exception message.
        """
        ...


class SubprocessRunner:
    """Runs commands with ``subprocess.run``, capturing output.

    Parameters
    ----------
    timeout:
        Optional per-command timeout in seconds.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        secrets: Sequence[str] = (),
    ) -> CommandResult:
        argv = [str(a) for a in argv]
        shown = redact(shlex.join(argv), secrets)
        logger.info("$ %s", shown)

        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            result = CommandResult(argv=argv, returncode=127, stderr=str(exc))
            raise CommandFailedError(
                f"Could not run {shown}: {redact(str(exc), secrets)}", result
            ) from exc

        result = CommandResult(
            argv=argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if result.stdout:
            logger.debug("%s", redact(result.stdout.rstrip(), secrets))
        if result.returncode != 0:
            tail = redact(result.stderr.strip(), secrets)[-2000:]
            logger.error("Command failed (exit %d): %s", result.returncode, shown)
            raise CommandFailedError(
                f"Command exited with status {result.returncode}: {shown}"
                + (f"\n{tail}" if tail else ""),
                result,
            )
        return result
