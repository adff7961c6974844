from __future__ import annotations

import os

import redis


DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def get_redis_url() -> str:
    return os.environ.get("REDIS_URL", DEFAULT_REDIS_URL)


def create_redis(*, url: str | None = None) -> redis.Redis:
    """Client shared by the session stores (filesystem, events, state, history, locks).

    decode_responses=True => hash values, set members and stream fields come back as str.
    """

    return redis.Redis.from_url(
        url or get_redis_url(),
        decode_responses=True,
        client_name="void-archive",
        health_check_interval=30,
    )
