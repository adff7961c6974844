from __future__ import annotations

import logging
import os

import redis

from void_archive.api.models import CommandIntent, CommandRecord, CommandResult
from void_archive.commands.base import CommandRegistry
from void_archive.commands.process_runner import ProcessRunner, SubprocessRunner, get_exec_timeout_s
from void_archive.commands.strategies import build_default_registry
from void_archive.content.registry import NarrativeContent
from void_archive.core.context import parse_command_context
from void_archive.event_tracker import EventTracker
from void_archive.filesystem import VirtualFileSystem
from void_archive.lock import SessionBusyError, session_lock


logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Entry point for every command line.

    Applies a command by:
    - parsing the raw line into a CommandContext
    - holding the per-session lock (when a Redis client is given)
    - resolving the strategy through the ordered registry
    - running it, turning any unexpected exception into an exit-1 result

    Never raises for a command line; the worst case is the unknown-command result.
    """

    def __init__(
        self,
        *,
        registry: CommandRegistry,
        r: redis.Redis | None = None,
        lock_ttl_ms: int = 35_000,
        lock_wait_ms: int = 35_000,
    ) -> None:
        self.registry = registry
        self._r = r
        self._lock_ttl_ms = lock_ttl_ms
        self._lock_wait_ms = lock_wait_ms

    async def execute(self, session_id: str, command_line: str, working_directory: str = "/") -> CommandResult:
        ctx = parse_command_context(session_id, command_line, working_directory)
        strategy = self.registry.resolve(ctx.verb)
        logger.debug("session=%s verb=%r -> %s", session_id, ctx.verb, type(strategy).__name__)

        try:
            if self._r is None:
                return await strategy.execute(ctx)
            async with session_lock(
                r=self._r,
                session_id=session_id,
                ttl_ms=self._lock_ttl_ms,
                wait_ms=self._lock_wait_ms,
            ):
                return await strategy.execute(ctx)
        except SessionBusyError as e:
            return CommandResult.failure(str(e))
        except Exception as e:
            logger.exception("Command %r failed for session %s", command_line, session_id)
            return CommandResult.failure(f"Error executing command: {e}")

    async def execute_and_record(
        self, session_id: str, command_line: str, working_directory: str = "/"
    ) -> tuple[CommandResult, CommandRecord]:
        result = await self.execute(session_id, command_line, working_directory)
        record = CommandRecord.from_result(session_id=session_id, command=command_line, result=result)
        return result, record

    def available_commands(self) -> list[str]:
        return self.registry.available_commands()

    def commands_by_intent(self) -> dict[CommandIntent, list[str]]:
        return self.registry.commands_by_intent()

    def get_help(self, command: str | None = None) -> str:
        if command is None:
            return self.registry.general_help()
        parts = command.split()
        return self.registry.resolve(parts[0] if parts else "").help_text()


def build_dispatcher(
    *,
    r: redis.Redis,
    runner: ProcessRunner | None = None,
    content: NarrativeContent | None = None,
    exec_timeout_s: float | None = None,
) -> CommandDispatcher:
    timeout_s = exec_timeout_s if exec_timeout_s is not None else get_exec_timeout_s()
    # The lock must outlive the slowest command, i.e. an exec that runs into its timeout.
    lock_ms = int((timeout_s + 5) * 1000)
    wait_ms = int(os.environ.get("VOID_ARCHIVE_LOCK_WAIT_MS", lock_ms))

    registry = build_default_registry(
        fs=VirtualFileSystem(r=r, content=content),
        events=EventTracker(r=r, content=content),
        runner=runner or SubprocessRunner(),
        exec_timeout_s=timeout_s,
    )
    return CommandDispatcher(registry=registry, r=r, lock_ttl_ms=lock_ms, lock_wait_ms=wait_ms)
