"""Play the maintenance shell from a terminal, without the HTTP layer.

Contract
- Inputs: one command line per prompt.
- Outputs: the command's messages, paced by their `delay_ms` unless `--fast`.
- Uses the Redis at `REDIS_URL`; the session keeps its files and fired events
  between runs unless `--reset` is given.

Usage:
    uv run python scripts/play.py --session demo
    uv run python scripts/play.py --session demo --reset --fast
"""

from __future__ import annotations

import argparse
import asyncio

from void_archive.api.models import CommandIntent, MessageType, ResponseMessage
from void_archive.commands.dispatcher import build_dispatcher
from void_archive.content.singleton import get_content
from void_archive.event_tracker import EventTracker
from void_archive.filesystem import VirtualFileSystem
from void_archive.game_store import get_or_create_game_state
from void_archive.history import record_command
from void_archive.infra.redis_client import create_redis


_PREFIX: dict[MessageType, str] = {
    MessageType.system: "",
    MessageType.narrator: "",
    MessageType.error: "!! ",
    MessageType.success: "++ ",
}


async def _show(messages: list[ResponseMessage], *, fast: bool) -> None:
    elapsed = 0
    for m in messages:
        if not fast and m.delay_ms > elapsed:
            await asyncio.sleep((m.delay_ms - elapsed) / 1000)
            elapsed = m.delay_ms
        print(f"{_PREFIX[m.kind]}{m.text}")


async def _play(*, session_id: str, reset: bool, fast: bool, redis_url: str | None) -> None:
    r = create_redis(url=redis_url)
    fs = VirtualFileSystem(r=r)
    if reset:
        fs.destroy_session(session_id)
        EventTracker(r=r).destroy_session(session_id)

    state = get_or_create_game_state(r=r, session_id=session_id)
    if not fs.exists(session_id, "/"):
        fs.initialize_session(session_id, state.act)

    content = get_content()
    await _show(content.script("boot_sequence"), fast=fast)
    await _show(content.script("welcome"), fast=fast)

    dispatcher = build_dispatcher(r=r)
    while True:
        try:
            line = input("> ")
        except EOFError:
            break
        result, record = await dispatcher.execute_and_record(session_id, line)
        record_command(r=r, record=record)
        await _show(result.messages, fast=fast)
        if record.intent == CommandIntent.abort:
            break


def main() -> None:
    p = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    p.add_argument("--session", default="local", help="Session id (default: local)")
    p.add_argument("--reset", action="store_true", help="Reseed the filesystem and forget fired events")
    p.add_argument("--fast", action="store_true", help="Ignore message delays")
    p.add_argument("--redis-url", default=None, help="Overrides REDIS_URL")
    args = p.parse_args()

    asyncio.run(_play(session_id=args.session, reset=args.reset, fast=args.fast, redis_url=args.redis_url))


if __name__ == "__main__":
    main()
