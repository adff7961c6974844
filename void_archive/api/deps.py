from __future__ import annotations

from collections.abc import Generator

import redis

from void_archive.commands.process_runner import ProcessRunner, SubprocessRunner
from void_archive.infra.redis_client import create_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


def get_process_runner() -> ProcessRunner:
    return SubprocessRunner()
