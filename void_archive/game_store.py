from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

import redis

from void_archive.api.models import EndingType, GameState
from void_archive.fsm import ActFSM


STATE_KEY_PREFIX = "void:state:"  # + {session_id}


class SessionNotFoundError(RuntimeError):
    """An update was attempted before the session's state was ever created."""


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _state_key(session_id: str) -> str:
    return f"{STATE_KEY_PREFIX}{session_id}"


def load_game_state(*, r: redis.Redis, session_id: str) -> GameState | None:
    raw = r.get(_state_key(session_id))
    if not raw:
        return None
    return GameState.model_validate_json(raw)


def save_game_state(*, r: redis.Redis, state: GameState) -> GameState:
    state.last_updated_at = _now()
    r.set(_state_key(state.session_id), state.model_dump_json())
    return state


def delete_game_state(*, r: redis.Redis, session_id: str) -> None:
    r.delete(_state_key(session_id))


def get_or_create_game_state(*, r: redis.Redis, session_id: str) -> GameState:
    state = load_game_state(r=r, session_id=session_id)
    if state is not None:
        return state
    now = _now()
    return save_game_state(r=r, state=GameState(session_id=session_id, created_at=now, last_updated_at=now))


def require_game_state(*, r: redis.Redis, session_id: str) -> GameState:
    state = load_game_state(r=r, session_id=session_id)
    if state is None:
        raise SessionNotFoundError(f"Session not found: {session_id}")
    return state


def _update(*, r: redis.Redis, session_id: str, mutate: Callable[[GameState], None]) -> GameState:
    state = require_game_state(r=r, session_id=session_id)
    mutate(state)
    return save_game_state(r=r, state=state)


def update_logic_seal(*, r: redis.Redis, session_id: str, broken: bool) -> GameState:
    def _set(s: GameState) -> None:
        s.logic_seal_broken = broken

    return _update(r=r, session_id=session_id, mutate=_set)


def update_data_seal(*, r: redis.Redis, session_id: str, broken: bool) -> GameState:
    def _set(s: GameState) -> None:
        s.data_seal_broken = broken

    return _update(r=r, session_id=session_id, mutate=_set)


def update_power_seal(*, r: redis.Redis, session_id: str, broken: bool) -> GameState:
    def _set(s: GameState) -> None:
        s.power_seal_broken = broken

    return _update(r=r, session_id=session_id, mutate=_set)


def update_act(*, r: redis.Redis, session_id: str, act: int) -> GameState:
    def _set(s: GameState) -> None:
        s.act = act

    return _update(r=r, session_id=session_id, mutate=_set)


def update_ending(*, r: redis.Redis, session_id: str, ending: EndingType) -> GameState:
    def _set(s: GameState) -> None:
        s.ending = ending

    return _update(r=r, session_id=session_id, mutate=_set)


def advance_act(*, r: redis.Redis, session_id: str) -> GameState:
    state = require_game_state(r=r, session_id=session_id)
    fsm = ActFSM(state)

    if fsm.current_state == fsm.act_1:
        fsm.open_archive()
    elif fsm.current_state == fsm.act_2:
        if not state.all_seals_broken:
            raise ValueError("All three seals must be broken before Act 3")
        fsm.breach_containment()
    else:
        raise ValueError("Already in the final act")

    fsm.sync_act_to_model()
    return save_game_state(r=r, state=state)
