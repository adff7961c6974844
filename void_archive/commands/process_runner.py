from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Protocol, Sequence


logger = logging.getLogger(__name__)

DEFAULT_EXEC_TIMEOUT_S = 30.0


def get_exec_timeout_s() -> float:
    return float(os.environ.get("VOID_ARCHIVE_EXEC_TIMEOUT_S", DEFAULT_EXEC_TIMEOUT_S))


class ProcessTimeoutError(TimeoutError):
    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"Process timed out after {timeout_s:g}s")
        self.timeout_s = timeout_s


@dataclass(frozen=True, slots=True)
class ProcessOutput:
    output: str
    exit_code: int


class ProcessRunner(Protocol):
    """The only way the engine touches OS processes."""

    async def run(self, args: Sequence[str], *, timeout_s: float, cwd: str | None = None) -> ProcessOutput: ...


class SubprocessRunner:
    """Runs argv directly (no shell), stderr folded into stdout.

    Raises ProcessTimeoutError after killing the process when `timeout_s` elapses;
    OSError propagates if the binary can't be spawned.
    """

    async def run(self, args: Sequence[str], *, timeout_s: float, cwd: str | None = None) -> ProcessOutput:
        if not args:
            raise ValueError("No command given")

        proc = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=cwd,
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
        except TimeoutError:
            logger.warning("Killing %s after %.1fs timeout (pid=%s)", args[0], timeout_s, proc.pid)
            proc.kill()
            await proc.wait()
            raise ProcessTimeoutError(timeout_s) from None

        return ProcessOutput(
            output=stdout.decode("utf-8", errors="replace"),
            exit_code=proc.returncode if proc.returncode is not None else 1,
        )
