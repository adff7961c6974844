from __future__ import annotations

import shlex

from void_archive.api.models import CommandIntent, CommandResult, MessageType, ResponseMessage, VirtualFile
from void_archive.commands.base import CommandRegistry, CommandStrategy, resolve_path
from void_archive.commands.process_runner import ProcessRunner, ProcessTimeoutError
from void_archive.core.context import CommandContext
from void_archive.core.events import GameEvent, GameEventType
from void_archive.event_tracker import EventTracker
from void_archive.filesystem import VirtualFileSystem


CONNECT_SCRIPT_PATH = "/connect.sh"
SYSTEM_LOG_PATH = "/system_log"

ALLOWED_EXEC_COMMANDS: tuple[str, ...] = ("echo", "date", "pwd", "whoami")

# Host processes never see the virtual working directory.
EXEC_WORKING_DIRECTORY = "/"

_LONG_FLAGS = {"-l", "-la", "-al"}
_HIDDEN_FLAGS = {"-a", "-la", "-al"}


def _system(text: str) -> ResponseMessage:
    return ResponseMessage(kind=MessageType.system, text=text)


def _fire_once(
    *, events: EventTracker, session_id: str, event_type: GameEventType, into: list[ResponseMessage]
) -> None:
    if events.has_occurred(session_id, event_type):
        return
    into.extend(events.handle(session_id, GameEvent.now(type=event_type)))


def _format_long(files: list[VirtualFile]) -> str:
    lines = []
    for f in files:
        size = "DIR" if f.is_directory else str(f.size)
        lines.append(f"{f.permissions}  {size}  {f.name}")
    return "\n".join(lines)


class ListFilesCommand(CommandStrategy):
    intent = CommandIntent.list_files
    aliases = ("ls", "list", "dir")

    def __init__(self, *, fs: VirtualFileSystem, events: EventTracker) -> None:
        self.fs = fs
        self.events = events

    async def execute(self, ctx: CommandContext) -> CommandResult:
        long_format = any(a in _LONG_FLAGS for a in ctx.args)
        show_hidden = any(a in _HIDDEN_FLAGS for a in ctx.args)

        target = next((a for a in ctx.args if not a.startswith("-")), ctx.working_directory)
        path = resolve_path(ctx.working_directory, target)

        if not self.fs.exists(ctx.session_id, path):
            return CommandResult.failure(f"No such file or directory: {target}", exit_code=2)

        files = self.fs.list_files(ctx.session_id, path, show_hidden=show_hidden)
        if not files:
            return CommandResult.success("", intent=self.intent)

        listing = _format_long(files) if long_format else "\n".join(f.name for f in files)
        messages = [_system(listing)]

        if "/secure" in path:
            _fire_once(
                events=self.events,
                session_id=ctx.session_id,
                event_type=GameEventType.secure_directory_accessed,
                into=messages,
            )
        if show_hidden and any(f.is_hidden for f in files):
            _fire_once(
                events=self.events,
                session_id=ctx.session_id,
                event_type=GameEventType.hidden_directory_found,
                into=messages,
            )

        return CommandResult.success(messages, intent=self.intent)

    def help_text(self) -> str:
        return "\n".join(
            [
                "ls [OPTIONS] [DIRECTORY]",
                "",
                "List directory contents",
                "",
                "Options:",
                "  -l        Use a long listing format",
                "  -a        Show hidden files",
                "  -la       Long listing format with hidden files",
                "",
                "Examples:",
                "  ls",
                "  ls -la",
                "  ls /path/to/directory",
            ]
        )


class ReadFileCommand(CommandStrategy):
    intent = CommandIntent.read_file
    aliases = ("cat", "read", "view")

    def __init__(self, *, fs: VirtualFileSystem, events: EventTracker) -> None:
        self.fs = fs
        self.events = events

    async def execute(self, ctx: CommandContext) -> CommandResult:
        target = ctx.first_arg
        if target is None:
            return CommandResult.failure("Usage: cat <file>")

        path = resolve_path(ctx.working_directory, target)
        if not self.fs.exists(ctx.session_id, path):
            return CommandResult.failure(f"No such file: {target}")

        f = self.fs.read_file(ctx.session_id, path)
        if f is None:
            # Implicit directory: it has children but no record of its own.
            return CommandResult.failure(f"Cannot read file: {target}")
        if f.is_directory:
            return CommandResult.failure(f"{target} is a directory")

        messages = [_system(f.content)]
        if path == SYSTEM_LOG_PATH:
            _fire_once(
                events=self.events,
                session_id=ctx.session_id,
                event_type=GameEventType.system_log_read,
                into=messages,
            )
        return CommandResult.success(messages, intent=self.intent)

    def help_text(self) -> str:
        return "\n".join(
            [
                "cat <file>",
                "",
                "Concatenate and display file contents",
                "",
                "Examples:",
                "  cat file.txt",
                "  cat /path/to/file.log",
            ]
        )


class RunScriptCommand(CommandStrategy):
    intent = CommandIntent.execute_script
    aliases = ("run", "./")

    def __init__(self, *, fs: VirtualFileSystem, events: EventTracker) -> None:
        self.fs = fs
        self.events = events

    async def execute(self, ctx: CommandContext) -> CommandResult:
        target = ctx.first_arg
        if target is None:
            return CommandResult.failure("Usage: run <script>")

        path = resolve_path(ctx.working_directory, target)
        if not self.fs.exists(ctx.session_id, path):
            return CommandResult.failure(f"No such file: {target}")
        if not self.fs.is_executable(ctx.session_id, path):
            return CommandResult.failure(f"Permission denied: {target} is not executable", exit_code=126)

        if path == CONNECT_SCRIPT_PATH:
            return self._connect(ctx)

        f = self.fs.read_file(ctx.session_id, path)
        output = f.content if f is not None and f.content else f"Script executed: {target}"
        return CommandResult.success(output, intent=self.intent)

    def _connect(self, ctx: CommandContext) -> CommandResult:
        if self.events.has_occurred(ctx.session_id, GameEventType.elara_first_contact):
            return CommandResult.success(
                [
                    ResponseMessage(
                        kind=MessageType.narrator,
                        text="[Elara]: You're back. Please, help me get out of here.",
                        speaker="Elara",
                    )
                ],
                intent=self.intent,
            )

        messages = self.events.handle(ctx.session_id, GameEvent.now(type=GameEventType.elara_first_contact))
        return CommandResult.success(messages, intent=self.intent)

    def help_text(self) -> str:
        return "\n".join(
            [
                "run <script>",
                "",
                "Execute a script file",
                "",
                "Examples:",
                "  run connect.sh",
                "  run /path/to/script.sh",
                "  ./ connect.sh",
            ]
        )


class ExecuteCommand(CommandStrategy):
    """Runs one allow-listed host binary. The only strategy with a real side effect."""

    intent = CommandIntent.execute_script
    aliases = ("exec", "bash", "sh")

    def __init__(
        self,
        *,
        runner: ProcessRunner,
        timeout_s: float,
        allowed: tuple[str, ...] = ALLOWED_EXEC_COMMANDS,
    ) -> None:
        self.runner = runner
        self.timeout_s = timeout_s
        self.allowed = allowed

    async def execute(self, ctx: CommandContext) -> CommandResult:
        if not ctx.args:
            return CommandResult.failure("Usage: exec <command>")

        # Quotes group words the way a shell would; no shell is involved.
        try:
            argv = shlex.split(" ".join(ctx.args))
        except ValueError as e:
            return CommandResult.failure(f"Invalid command line: {e}")
        if not argv:
            return CommandResult.failure("Usage: exec <command>")

        command = argv[0]
        if command not in self.allowed:
            return CommandResult.failure(
                f"Command not allowed: {command}. Allowed: {', '.join(self.allowed)}",
                exit_code=126,
            )

        try:
            result = await self.runner.run(argv, timeout_s=self.timeout_s, cwd=EXEC_WORKING_DIRECTORY)
        except ProcessTimeoutError:
            return CommandResult.failure(f"Command timeout after {self.timeout_s:g}s", exit_code=124)
        except OSError as e:
            return CommandResult.failure(f"Execution error: {e}")

        output = result.output.strip()
        if result.exit_code == 0:
            return CommandResult.success(output, intent=self.intent)
        return CommandResult.failure(output, exit_code=result.exit_code)

    def help_text(self) -> str:
        return "\n".join(
            [
                "exec <command> [args...]",
                "",
                "Execute system command (limited for security)",
                "",
                f"Allowed commands: {', '.join(self.allowed)}",
                "",
                "Examples:",
                '  exec echo "Hello World"',
                "  exec date",
                "  exec pwd",
            ]
        )


class KillProcessCommand(CommandStrategy):
    intent = CommandIntent.kill_process
    aliases = ("kill", "terminate")

    async def execute(self, ctx: CommandContext) -> CommandResult:
        pid = ctx.first_arg
        if pid is None:
            return CommandResult.failure("Usage: kill <pid>")
        # Placeholder: nothing real is signalled.
        return CommandResult.success(f"Kill signal to process: {pid}", intent=self.intent)

    def help_text(self) -> str:
        return "\n".join(
            [
                "kill <pid>",
                "",
                "Send a termination signal to the process with the given pid.",
                "",
                "Examples:",
                "  kill 1234",
            ]
        )


class HelpCommand(CommandStrategy):
    intent = CommandIntent.help
    aliases = ("help", "?", "man")

    def __init__(self, *, registry: CommandRegistry) -> None:
        self.registry = registry

    async def execute(self, ctx: CommandContext) -> CommandResult:
        verb = ctx.first_arg
        if verb is None:
            return CommandResult.success(self.registry.general_help(), intent=self.intent)

        strategy = self.registry.find(verb)
        text = strategy.help_text() if strategy is not None else f"Unknown command: {verb}"
        return CommandResult.success(text, intent=self.intent)

    def help_text(self) -> str:
        return "\n".join(
            [
                "help [command]",
                "",
                "Display help information",
                "",
                "Examples:",
                "  help          Show all available commands",
                "  help ls       Show help for 'ls' command",
            ]
        )


class AbortCommand(CommandStrategy):
    intent = CommandIntent.abort
    aliases = ("abort", "exit", "quit", "bye")

    async def execute(self, ctx: CommandContext) -> CommandResult:
        # Session teardown belongs to whoever owns the session lifecycle.
        return CommandResult.success("Session terminated by user.", intent=self.intent)

    def help_text(self) -> str:
        return "\n".join(
            [
                "abort",
                "",
                "Terminate the current session or command.",
                "",
                "Aliases: exit, quit, bye",
                "",
                "Examples:",
                "  abort",
                "  exit",
                "  quit",
            ]
        )


class UnknownCommand(CommandStrategy):
    intent = CommandIntent.unknown
    aliases = ()

    def matches(self, verb: str) -> bool:
        return True

    async def execute(self, ctx: CommandContext) -> CommandResult:
        return CommandResult.unknown(ctx.verb)

    def help_text(self) -> str:
        return "\n".join(
            [
                "Unknown command",
                "",
                "Use 'help' to list the valid commands.",
            ]
        )


def build_default_registry(
    *,
    fs: VirtualFileSystem,
    events: EventTracker,
    runner: ProcessRunner,
    exec_timeout_s: float,
) -> CommandRegistry:
    """The fixed strategy order. First registered wins on alias collisions."""

    registry = CommandRegistry(fallback=UnknownCommand())
    registry.register(ListFilesCommand(fs=fs, events=events))
    registry.register(ReadFileCommand(fs=fs, events=events))
    registry.register(RunScriptCommand(fs=fs, events=events))
    registry.register(ExecuteCommand(runner=runner, timeout_s=exec_timeout_s))
    registry.register(KillProcessCommand())
    registry.register(HelpCommand(registry=registry))
    registry.register(AbortCommand())
    return registry
