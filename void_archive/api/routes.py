from __future__ import annotations

from uuid import uuid4

import redis
from fastapi import APIRouter, Depends, HTTPException, Response, status

from void_archive.api.deps import get_process_runner, get_redis
from void_archive.api.models import (
    CommandHistoryResponse,
    CommandRecord,
    CommandIntent,
    ExecuteRequest,
    ExecuteResponse,
    GameState,
    GameStateUpdateRequest,
    HelpResponse,
    MessagesResponse,
    SessionCreateRequest,
    SessionResponse,
    SessionStatsResponse,
)
from void_archive.commands.dispatcher import CommandDispatcher, build_dispatcher
from void_archive.commands.process_runner import ProcessRunner
from void_archive.content.singleton import get_content
from void_archive.event_tracker import EventTracker
from void_archive.filesystem import VirtualFileSystem
from void_archive.game_store import (
    SessionNotFoundError,
    advance_act,
    delete_game_state,
    get_or_create_game_state,
    load_game_state,
    update_act,
    update_data_seal,
    update_ending,
    update_logic_seal,
    update_power_seal,
)
from void_archive.history import (
    command_count,
    delete_history,
    get_command,
    recent_commands,
    record_command,
    search_commands,
    session_history,
)
from void_archive.lock import SessionBusyError, session_lock

router = APIRouter()


def get_dispatcher(
    r: redis.Redis = Depends(get_redis),
    runner: ProcessRunner = Depends(get_process_runner),
) -> CommandDispatcher:
    return build_dispatcher(r=r, runner=runner)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/sessions", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session_route(payload: SessionCreateRequest, r: redis.Redis = Depends(get_redis)) -> SessionResponse:
    session_id = payload.session_id or str(uuid4())
    try:
        async with session_lock(r=r, session_id=session_id, wait_ms=5_000):
            state = get_or_create_game_state(r=r, session_id=session_id)
            # Resuming keeps the existing tree; only seed it the first time.
            fs = VirtualFileSystem(r=r)
            if not fs.exists(session_id, "/"):
                fs.initialize_session(session_id, state.act)
    except SessionBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return SessionResponse(state=state, messages=get_content().script("boot_sequence"))


@router.post("/sessions/{session_id}/start", response_model=MessagesResponse)
async def start_session_route(session_id: str, r: redis.Redis = Depends(get_redis)) -> MessagesResponse:
    if load_game_state(r=r, session_id=session_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return MessagesResponse(messages=get_content().script("welcome"))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def destroy_session_route(
    session_id: str,
    purge: bool = False,
    r: redis.Redis = Depends(get_redis),
) -> Response:
    VirtualFileSystem(r=r).destroy_session(session_id)
    EventTracker(r=r).destroy_session(session_id)
    # Progression and history outlive the shell session unless purged.
    if purge:
        delete_game_state(r=r, session_id=session_id)
        delete_history(r=r, session_id=session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/sessions/{session_id}/commands", response_model=ExecuteResponse)
async def execute_command_route(
    session_id: str,
    payload: ExecuteRequest,
    r: redis.Redis = Depends(get_redis),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> ExecuteResponse:
    result, record = await dispatcher.execute_and_record(session_id, payload.command, payload.working_directory)

    record_command(r=r, record=record)

    return ExecuteResponse.from_result(session_id=session_id, command=payload.command, result=result)


@router.get("/sessions/{session_id}/state", response_model=GameState)
async def get_state_route(session_id: str, r: redis.Redis = Depends(get_redis)) -> GameState:
    return get_or_create_game_state(r=r, session_id=session_id)


@router.patch("/sessions/{session_id}/state", response_model=GameState)
async def update_state_route(
    session_id: str,
    payload: GameStateUpdateRequest,
    r: redis.Redis = Depends(get_redis),
) -> GameState:
    try:
        state = None
        if payload.act is not None:
            state = update_act(r=r, session_id=session_id, act=payload.act)
        if payload.logic_seal_broken is not None:
            state = update_logic_seal(r=r, session_id=session_id, broken=payload.logic_seal_broken)
        if payload.data_seal_broken is not None:
            state = update_data_seal(r=r, session_id=session_id, broken=payload.data_seal_broken)
        if payload.power_seal_broken is not None:
            state = update_power_seal(r=r, session_id=session_id, broken=payload.power_seal_broken)
        if payload.ending is not None:
            state = update_ending(r=r, session_id=session_id, ending=payload.ending)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    if state is None:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="No fields to update")
    return state


@router.post("/sessions/{session_id}/state/advance", response_model=GameState)
async def advance_act_route(session_id: str, r: redis.Redis = Depends(get_redis)) -> GameState:
    try:
        return advance_act(r=r, session_id=session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e


@router.get("/sessions/{session_id}/history", response_model=CommandHistoryResponse)
async def history_route(session_id: str, r: redis.Redis = Depends(get_redis)) -> CommandHistoryResponse:
    commands = session_history(r=r, session_id=session_id)
    return CommandHistoryResponse(commands=commands, total=len(commands))


@router.get("/sessions/{session_id}/history/recent", response_model=CommandHistoryResponse)
async def recent_history_route(
    session_id: str,
    limit: int = 10,
    r: redis.Redis = Depends(get_redis),
) -> CommandHistoryResponse:
    if limit < 1 or limit > 200:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="limit must be between 1 and 200")
    commands = recent_commands(r=r, session_id=session_id, limit=limit)
    return CommandHistoryResponse(commands=commands, total=command_count(r=r, session_id=session_id))


@router.get("/sessions/{session_id}/history/search", response_model=CommandHistoryResponse)
async def search_history_route(
    session_id: str,
    keyword: str,
    r: redis.Redis = Depends(get_redis),
) -> CommandHistoryResponse:
    commands = search_commands(r=r, session_id=session_id, keyword=keyword)
    return CommandHistoryResponse(commands=commands, total=len(commands))


@router.get("/sessions/{session_id}/history/stats", response_model=SessionStatsResponse)
async def history_stats_route(session_id: str, r: redis.Redis = Depends(get_redis)) -> SessionStatsResponse:
    return SessionStatsResponse(
        session_id=session_id,
        total_commands=command_count(r=r, session_id=session_id),
        recent_commands=recent_commands(r=r, session_id=session_id, limit=5),
    )


@router.get("/sessions/{session_id}/history/{entry_id}", response_model=CommandRecord)
async def history_entry_route(session_id: str, entry_id: str, r: redis.Redis = Depends(get_redis)) -> CommandRecord:
    try:
        record = get_command(r=r, session_id=session_id, entry_id=entry_id)
    except redis.ResponseError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Invalid entry id: {entry_id}") from e
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Command not found")
    return record


@router.get("/commands")
async def available_commands_route(dispatcher: CommandDispatcher = Depends(get_dispatcher)) -> dict[str, list[str]]:
    return {"commands": dispatcher.available_commands()}


@router.get("/commands/intents")
async def commands_by_intent_route(
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> dict[CommandIntent, list[str]]:
    return dispatcher.commands_by_intent()


@router.get("/help", response_model=HelpResponse)
async def help_route(command: str | None = None, dispatcher: CommandDispatcher = Depends(get_dispatcher)) -> HelpResponse:
    return HelpResponse(command=command, text=dispatcher.get_help(command))
