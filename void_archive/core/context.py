from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Everything a command strategy needs to run one command line."""

    session_id: str
    verb: str
    args: tuple[str, ...] = ()
    working_directory: str = "/"
    environment: dict[str, str] = field(default_factory=dict)

    @property
    def first_arg(self) -> str | None:
        return self.args[0] if self.args else None


def parse_command_context(
    session_id: str,
    raw_line: str,
    working_directory: str = "/",
    environment: dict[str, str] | None = None,
) -> CommandContext:
    """Split a raw line into verb + args. Never fails; a blank line yields an empty verb."""

    parts = raw_line.split()
    verb = parts[0] if parts else ""

    wd = working_directory or "/"
    if not wd.startswith("/"):
        wd = "/" + wd

    return CommandContext(
        session_id=session_id,
        verb=verb,
        args=tuple(parts[1:]),
        working_directory=wd,
        environment=dict(environment or {}),
    )
