from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, cast

import redis

from void_archive.api.models import CommandIntent, CommandRecord


logger = logging.getLogger(__name__)

HISTORY_KEY_PREFIX = "void:history:"  # + {session_id}


def history_key(session_id: str) -> str:
    return f"{HISTORY_KEY_PREFIX}{session_id}"


def _to_fields(record: CommandRecord) -> dict[str, str]:
    # Stream fields are flat strings; an absent intent is stored as "".
    return {
        "session_id": record.session_id,
        "command": record.command,
        "response": record.response,
        "intent": record.intent.value if record.intent else "",
        "timestamp": record.timestamp.isoformat(),
    }


def _from_entry(entry_id: str, fields: dict[str, Any]) -> CommandRecord:
    intent = fields.get("intent") or None
    return CommandRecord(
        id=entry_id,
        session_id=fields["session_id"],
        command=fields.get("command", ""),
        response=fields.get("response", ""),
        intent=CommandIntent(intent) if intent else None,
        timestamp=datetime.fromisoformat(fields["timestamp"]),
    )


def save_command_history(*, r: redis.Redis, record: CommandRecord) -> CommandRecord:
    """Append a record to the session's history stream and return it with its entry id."""

    entry_id = r.xadd(history_key(record.session_id), _to_fields(record))
    return record.model_copy(update={"id": cast(str, entry_id)})


def record_command(*, r: redis.Redis, record: CommandRecord) -> CommandRecord | None:
    """Best-effort save: a storage failure is logged and never reaches the caller."""

    try:
        return save_command_history(r=r, record=record)
    except redis.RedisError:
        logger.exception("Failed to save command history for session %s", record.session_id)
        return None


def get_command(*, r: redis.Redis, session_id: str, entry_id: str) -> CommandRecord | None:
    entries = r.xrange(history_key(session_id), min=entry_id, max=entry_id, count=1)
    if not entries:
        return None
    eid, fields = entries[0]
    return _from_entry(eid, fields)


def session_history(*, r: redis.Redis, session_id: str) -> list[CommandRecord]:
    return [_from_entry(eid, fields) for eid, fields in r.xrange(history_key(session_id))]


def recent_commands(*, r: redis.Redis, session_id: str, limit: int = 10) -> list[CommandRecord]:
    """Newest first."""

    entries = r.xrevrange(history_key(session_id), count=limit)
    return [_from_entry(eid, fields) for eid, fields in entries]


def command_count(*, r: redis.Redis, session_id: str) -> int:
    return int(r.xlen(history_key(session_id)))


def search_commands(*, r: redis.Redis, session_id: str, keyword: str) -> list[CommandRecord]:
    needle = keyword.casefold()
    return [
        rec
        for rec in session_history(r=r, session_id=session_id)
        if needle in rec.command.casefold() or needle in rec.response.casefold()
    ]


def delete_history(*, r: redis.Redis, session_id: str) -> None:
    r.delete(history_key(session_id))
