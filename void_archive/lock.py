from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import redis


class SessionBusyError(RuntimeError):
    pass


def lock_key(session_id: str) -> str:
    return f"lock:session:{session_id}"


@asynccontextmanager
async def session_lock(
    *,
    r: redis.Redis,
    session_id: str,
    ttl_ms: int = 35_000,
    wait_ms: int = 35_000,
    poll_ms: int = 25,
) -> AsyncIterator[None]:
    """Serialize command execution per session.

    Waits up to `wait_ms` for the holder to finish, then raises SessionBusyError.
    The TTL bounds how long a crashed holder can block the session.
    """

    key = lock_key(session_id)
    token = uuid4().hex
    deadline = time.monotonic() + wait_ms / 1000

    while not r.set(key, token, nx=True, px=ttl_ms):
        if time.monotonic() >= deadline:
            raise SessionBusyError(f"Session is busy: {session_id}")
        await asyncio.sleep(poll_ms / 1000)

    try:
        yield
    finally:
        # Only release our own lock; it may have expired and been taken over.
        # Not atomic (get + delete); a Lua script would close that gap.
        if r.get(key) == token:
            r.delete(key)
