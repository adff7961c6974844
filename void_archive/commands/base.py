from __future__ import annotations

from abc import ABC, abstractmethod

from void_archive.api.models import CommandIntent, CommandResult
from void_archive.core.context import CommandContext


def resolve_path(working_directory: str, path: str) -> str:
    """Turn a user-typed path into an absolute one.

    Strips a leading `./`, joins relative paths onto the working directory,
    collapses `//`, and drops a trailing `/` (except for the root itself).
    """

    if path.startswith("./"):
        path = path[2:]
    joined = path if path.startswith("/") else f"{working_directory}/{path}"
    while "//" in joined:
        joined = joined.replace("//", "/")
    if len(joined) > 1:
        joined = joined.rstrip("/") or "/"
    return joined


class CommandStrategy(ABC):
    """Handler for one verb family."""

    intent: CommandIntent
    aliases: tuple[str, ...] = ()

    def matches(self, verb: str) -> bool:
        v = verb.casefold()
        return any(a.casefold() == v for a in self.aliases)

    @abstractmethod
    async def execute(self, ctx: CommandContext) -> CommandResult:
        raise NotImplementedError

    def help_text(self) -> str:
        return f"Usage: {', '.join(self.aliases)}"


class CommandRegistry:
    """Explicitly ordered strategy table.

    Lookup scans in registration order; the first registered match wins. The
    fallback handles every verb nothing else claims.
    """

    def __init__(self, *, fallback: CommandStrategy) -> None:
        self._strategies: list[CommandStrategy] = []
        self.fallback = fallback

    def register(self, strategy: CommandStrategy) -> CommandStrategy:
        if strategy.intent == CommandIntent.unknown:
            raise ValueError("The unknown-command strategy can only be the fallback")
        self._strategies.append(strategy)
        return strategy

    @property
    def strategies(self) -> tuple[CommandStrategy, ...]:
        return tuple(self._strategies)

    def find(self, verb: str) -> CommandStrategy | None:
        return next((s for s in self._strategies if s.matches(verb)), None)

    def resolve(self, verb: str) -> CommandStrategy:
        return self.find(verb) or self.fallback

    def available_commands(self) -> list[str]:
        return sorted({a for s in self._strategies for a in s.aliases})

    def commands_by_intent(self) -> dict[CommandIntent, list[str]]:
        grouped: dict[CommandIntent, set[str]] = {}
        for s in self._strategies:
            grouped.setdefault(s.intent, set()).update(s.aliases)
        return {intent: sorted(aliases) for intent, aliases in grouped.items()}

    def general_help(self) -> str:
        # Intents in registration order, aliases in declaration order.
        grouped: dict[CommandIntent, list[str]] = {}
        for s in self._strategies:
            grouped.setdefault(s.intent, []).extend(s.aliases)

        lines = ["Available Commands:", ""]
        for intent, aliases in grouped.items():
            lines.append(f"  {intent.name.upper():<20} {', '.join(aliases)}")
        lines.append("")
        lines.append("Use 'help <command>' for more information on a specific command.")
        return "\n".join(lines)
