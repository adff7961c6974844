from __future__ import annotations

from collections.abc import Sequence

import fakeredis
import pytest

from void_archive.commands.dispatcher import build_dispatcher
from void_archive.commands.process_runner import (
    ProcessOutput,
    ProcessTimeoutError,
    SubprocessRunner,
    get_exec_timeout_s,
)
from void_archive.commands.strategies import ExecuteCommand
from void_archive.core.context import parse_command_context


class _RecordingRunner:
    def __init__(self, *, output: str = "", exit_code: int = 0) -> None:
        self.output = output
        self.exit_code = exit_code
        self.calls: list[tuple[str, ...]] = []
        self.cwds: list[str | None] = []

    async def run(self, args: Sequence[str], *, timeout_s: float, cwd: str | None = None) -> ProcessOutput:
        self.calls.append(tuple(args))
        self.cwds.append(cwd)
        return ProcessOutput(output=self.output, exit_code=self.exit_code)


class _TimeoutRunner:
    async def run(self, args: Sequence[str], *, timeout_s: float, cwd: str | None = None) -> ProcessOutput:
        raise ProcessTimeoutError(timeout_s)


class _BrokenRunner:
    async def run(self, args: Sequence[str], *, timeout_s: float, cwd: str | None = None) -> ProcessOutput:
        raise FileNotFoundError(2, "No such file or directory", args[0])


@pytest.mark.asyncio
async def test_disallowed_command_never_reaches_runner() -> None:
    runner = _RecordingRunner()
    cmd = ExecuteCommand(runner=runner, timeout_s=1)

    result = await cmd.execute(parse_command_context("s1", "exec rm -rf /"))

    assert result.exit_code == 126
    assert runner.calls == []


@pytest.mark.asyncio
async def test_exec_without_args_is_usage_error() -> None:
    result = await ExecuteCommand(runner=_RecordingRunner(), timeout_s=1).execute(parse_command_context("s1", "exec"))
    assert result.exit_code == 1
    assert result.error == "[ERROR] Usage: exec <command>"


@pytest.mark.asyncio
async def test_full_argument_line_is_passed_and_output_trimmed() -> None:
    runner = _RecordingRunner(output="  hi there \n")
    cmd = ExecuteCommand(runner=runner, timeout_s=1)

    result = await cmd.execute(parse_command_context("s1", "sh echo hi there"))

    assert result.is_success
    assert result.output == "hi there"
    assert runner.calls == [("echo", "hi", "there")]


@pytest.mark.asyncio
async def test_quoted_arguments_are_grouped_without_a_shell() -> None:
    runner = _RecordingRunner(output="Hello World\n")
    cmd = ExecuteCommand(runner=runner, timeout_s=1)

    result = await cmd.execute(parse_command_context("s1", 'exec echo "Hello World"'))

    assert result.output == "Hello World"
    assert runner.calls == [("echo", "Hello World")]


@pytest.mark.asyncio
async def test_quoted_command_name_is_still_checked() -> None:
    runner = _RecordingRunner()
    result = await ExecuteCommand(runner=runner, timeout_s=1).execute(parse_command_context("s1", "exec 'rm' -rf /"))

    assert result.exit_code == 126
    assert runner.calls == []


@pytest.mark.asyncio
async def test_unbalanced_quote_is_rejected() -> None:
    runner = _RecordingRunner()
    result = await ExecuteCommand(runner=runner, timeout_s=1).execute(parse_command_context("s1", 'exec echo "oops'))

    assert result.exit_code == 1
    assert (result.error or "").startswith("[ERROR] Invalid command line:")
    assert runner.calls == []


@pytest.mark.asyncio
async def test_virtual_working_directory_is_not_used_on_the_host() -> None:
    runner = _RecordingRunner(output="/")
    cmd = ExecuteCommand(runner=runner, timeout_s=1)

    await cmd.execute(parse_command_context("s1", "exec pwd", "/secure"))

    assert runner.cwds == ["/"]


@pytest.mark.asyncio
async def test_nonzero_exit_code_is_propagated() -> None:
    cmd = ExecuteCommand(runner=_RecordingRunner(output="boom\n", exit_code=3), timeout_s=1)
    result = await cmd.execute(parse_command_context("s1", "exec date"))

    assert result.exit_code == 3
    assert result.error == "[ERROR] boom"


@pytest.mark.asyncio
async def test_timeout_maps_to_exit_124() -> None:
    result = await ExecuteCommand(runner=_TimeoutRunner(), timeout_s=0.5).execute(
        parse_command_context("s1", "exec date")
    )
    assert result.exit_code == 124
    assert "timeout" in (result.error or "")


@pytest.mark.asyncio
async def test_spawn_failure_is_exit_1() -> None:
    result = await ExecuteCommand(runner=_BrokenRunner(), timeout_s=1).execute(
        parse_command_context("s1", "exec whoami")
    )
    assert result.exit_code == 1
    assert (result.error or "").startswith("[ERROR] Execution error:")


@pytest.mark.asyncio
async def test_exec_echo_through_dispatcher(r: fakeredis.FakeRedis) -> None:
    dispatcher = build_dispatcher(r=r, runner=SubprocessRunner(), exec_timeout_s=10)

    blocked = await dispatcher.execute("s1", "exec rm -rf /")
    assert blocked.exit_code == 126

    result = await dispatcher.execute("s1", "exec echo hello")
    assert result.is_success
    assert result.output == "hello"

    quoted = await dispatcher.execute("s1", 'exec echo "Hello World"')
    assert quoted.output == "Hello World"

    pwd = await dispatcher.execute("s1", "exec pwd", working_directory="/secure")
    assert pwd.output == "/"


@pytest.mark.asyncio
async def test_subprocess_runner_kills_on_timeout() -> None:
    with pytest.raises(ProcessTimeoutError) as exc_info:
        await SubprocessRunner().run(["sleep", "5"], timeout_s=0.2)
    assert exc_info.value.timeout_s == 0.2


@pytest.mark.asyncio
async def test_subprocess_runner_folds_stderr() -> None:
    out = await SubprocessRunner().run(["ls", "/definitely/not/here"], timeout_s=5)
    assert out.exit_code != 0
    assert "definitely" in out.output


def test_exec_timeout_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VOID_ARCHIVE_EXEC_TIMEOUT_S", raising=False)
    assert get_exec_timeout_s() == 30.0

    monkeypatch.setenv("VOID_ARCHIVE_EXEC_TIMEOUT_S", "2.5")
    assert get_exec_timeout_s() == 2.5
