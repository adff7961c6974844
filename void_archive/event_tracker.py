from __future__ import annotations

import redis

from void_archive.api.models import ResponseMessage
from void_archive.content.registry import NarrativeContent
from void_archive.content.singleton import get_content
from void_archive.core.events import GameEvent, GameEventType


EVENTS_KEY_PREFIX = "void:events:"  # + {session_id}


def _events_key(session_id: str) -> str:
    return f"{EVENTS_KEY_PREFIX}{session_id}"


class EventTracker:
    """Per-session set of narrative events that have fired.

    Entries are only ever added; the set goes away with the session.
    """

    def __init__(self, *, r: redis.Redis, content: NarrativeContent | None = None) -> None:
        self._r = r
        self._content = content

    @property
    def content(self) -> NarrativeContent:
        return self._content or get_content()

    def has_occurred(self, session_id: str, event_type: GameEventType) -> bool:
        return bool(self._r.sismember(_events_key(session_id), event_type.value))

    def record(self, session_id: str, event: GameEvent) -> None:
        self._r.sadd(_events_key(session_id), event.type.value)

    def occurred(self, session_id: str) -> set[GameEventType]:
        return {GameEventType(v) for v in self._r.smembers(_events_key(session_id))}

    def handle(self, session_id: str, event: GameEvent) -> list[ResponseMessage]:
        """Record the event, then return its canned sequence.

        Repeated calls return the full sequence again; callers decide whether to
        suppress repeats via `has_occurred`.
        """

        self.record(session_id, event)
        return self.content.messages_for_event(event.type)

    def destroy_session(self, session_id: str) -> None:
        self._r.delete(_events_key(session_id))
