from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(tz=UTC)


class MessageType(StrEnum):
    system = "system"
    narrator = "narrator"
    error = "error"
    success = "success"


class ResponseMessage(BaseModel):
    kind: MessageType
    text: str

    # Client-side pacing only; the server never sleeps on this.
    delay_ms: int = 0

    # "Elara", "Warden", or None for plain system output.
    speaker: str | None = None


class CommandIntent(StrEnum):
    list_files = "list_files"
    read_file = "read_file"
    execute_script = "execute_script"
    kill_process = "kill_process"
    help = "help"
    abort = "abort"
    unknown = "unknown"


class CommandResult(BaseModel):
    messages: list[ResponseMessage] = Field(default_factory=list)
    exit_code: int = 0
    intent: CommandIntent | None = None

    @property
    def is_success(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return "\n".join(m.text for m in self.messages)

    @property
    def error(self) -> str | None:
        return next((m.text for m in self.messages if m.kind == MessageType.error), None)

    @classmethod
    def success(cls, output: str | list[ResponseMessage], *, intent: CommandIntent | None = None) -> "CommandResult":
        if isinstance(output, str):
            messages = [ResponseMessage(kind=MessageType.system, text=output)]
        else:
            messages = list(output)
        return cls(messages=messages, exit_code=0, intent=intent)

    @classmethod
    def failure(cls, error: str, *, exit_code: int = 1) -> "CommandResult":
        return cls(
            messages=[ResponseMessage(kind=MessageType.error, text=f"[ERROR] {error}")],
            exit_code=exit_code,
        )

    @classmethod
    def unknown(cls, verb: str) -> "CommandResult":
        return cls(
            messages=[ResponseMessage(kind=MessageType.error, text=f"[ERROR] Unknown command: {verb}")],
            exit_code=127,
            intent=CommandIntent.unknown,
        )


class VirtualFile(BaseModel):
    # Absolute path; unique within one session.
    path: str
    name: str
    content: str = ""

    is_directory: bool = False
    is_hidden: bool = False
    is_executable: bool = False

    permissions: str = "rw-r--r--"

    # Defaults to len(content) when not given.
    size: int | None = None

    created_at: datetime = Field(default_factory=_now)
    modified_at: datetime = Field(default_factory=_now)

    def model_post_init(self, __context: Any) -> None:
        if self.size is None:
            self.size = len(self.content)

    @property
    def parent_path(self) -> str:
        idx = self.path.rfind("/")
        if idx <= 0:
            return "/"
        return self.path[:idx]

    @classmethod
    def directory(cls, *, path: str, name: str, is_hidden: bool = False) -> "VirtualFile":
        return cls(
            path=path,
            name=name,
            content="",
            is_directory=True,
            is_hidden=is_hidden,
            permissions="drwxr-xr-x",
            size=0,
        )

    @classmethod
    def file(cls, *, path: str, name: str, content: str, is_hidden: bool = False) -> "VirtualFile":
        return cls(path=path, name=name, content=content, is_hidden=is_hidden, permissions="rw-r--r--")

    @classmethod
    def script(cls, *, path: str, name: str, content: str) -> "VirtualFile":
        return cls(path=path, name=name, content=content, is_executable=True, permissions="rwxr-xr-x")


class EndingType(StrEnum):
    singularity = "singularity"
    hunted = "hunted"
    sacrifice = "sacrifice"
    architect = "architect"


class GameState(BaseModel):
    session_id: str
    act: int = 1

    # Act 2: the three containment seals.
    logic_seal_broken: bool = False
    data_seal_broken: bool = False
    power_seal_broken: bool = False

    # Act 3.
    ending: EndingType | None = None

    created_at: datetime = Field(default_factory=_now)
    last_updated_at: datetime = Field(default_factory=_now)

    @property
    def all_seals_broken(self) -> bool:
        return self.logic_seal_broken and self.data_seal_broken and self.power_seal_broken


class CommandRecord(BaseModel):
    """Flattened history entry for one executed command line."""

    id: str | None = None
    session_id: str
    command: str
    response: str
    intent: CommandIntent | None = None
    timestamp: datetime = Field(default_factory=_now)

    @classmethod
    def from_result(cls, *, session_id: str, command: str, result: CommandResult) -> "CommandRecord":
        response = result.output if result.is_success else (result.error or "Unknown error")
        return cls(session_id=session_id, command=command, response=response, intent=result.intent)


# --- HTTP request / response bodies ---


class SessionCreateRequest(BaseModel):
    session_id: str | None = Field(default=None, min_length=1, max_length=128)


class SessionResponse(BaseModel):
    state: GameState
    messages: list[ResponseMessage]


class ExecuteRequest(BaseModel):
    command: str = Field(..., max_length=4000)
    working_directory: str = "/"


class ExecuteResponse(BaseModel):
    session_id: str
    command: str
    messages: list[ResponseMessage]
    exit_code: int
    intent: CommandIntent | None
    output: str
    is_success: bool

    @classmethod
    def from_result(cls, *, session_id: str, command: str, result: CommandResult) -> "ExecuteResponse":
        return cls(
            session_id=session_id,
            command=command,
            messages=result.messages,
            exit_code=result.exit_code,
            intent=result.intent,
            output=result.output,
            is_success=result.is_success,
        )


class MessagesResponse(BaseModel):
    messages: list[ResponseMessage]


class GameStateUpdateRequest(BaseModel):
    act: int | None = Field(default=None, ge=1, le=3)
    logic_seal_broken: bool | None = None
    data_seal_broken: bool | None = None
    power_seal_broken: bool | None = None
    ending: EndingType | None = None


class CommandHistoryResponse(BaseModel):
    commands: list[CommandRecord]
    total: int


class SessionStatsResponse(BaseModel):
    session_id: str
    total_commands: int
    recent_commands: list[CommandRecord]


class HelpResponse(BaseModel):
    command: str | None
    text: str
