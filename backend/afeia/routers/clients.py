# clients router - quick actions from a caseload card
# send a message, keep an observation, snooze or resume follow-up

import logging
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, status

from afeia.dependencies import get_clock, require_practitioner
from afeia.models.review import ActionType
from afeia.models.session import ActionResponse, MessageCreate, NoteCreate, SnoozeRequest
from afeia.services.action_executor import ActionExecutor, resolve_snooze_until
from afeia.services.db import Database, get_db
from afeia.services.errors import ActionExecutionError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/clients", tags=["clients"])


def _action_failed(e: ActionExecutionError) -> HTTPException:
    code = status.HTTP_404_NOT_FOUND if e.not_found else status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=str(e))


@router.post("/{client_id}/messages", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    client_id: str,
    payload: MessageCreate,
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
):
    """send a message to one of the practitioner's clients"""
    try:
        await ActionExecutor(db, current_user["id"]).send_message(client_id, payload.body, clock())
    except ActionExecutionError as e:
        raise _action_failed(e)
    return ActionResponse(client_id=client_id, action=ActionType.SEND_MESSAGE)


@router.post("/{client_id}/notes", response_model=ActionResponse, status_code=status.HTTP_201_CREATED)
async def save_observation(
    client_id: str,
    payload: NoteCreate,
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
):
    """keep an observation for the next appointment"""
    try:
        await ActionExecutor(db, current_user["id"]).save_observation(client_id, payload.content, clock())
    except ActionExecutionError as e:
        raise _action_failed(e)
    return ActionResponse(client_id=client_id, action=ActionType.NOTE_OBSERVATION)


@router.post("/{client_id}/snooze", response_model=ActionResponse)
async def snooze_client(
    client_id: str,
    payload: SnoozeRequest,
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
):
    """pause follow-up; a snoozed client scores 0 until the end date"""
    now = clock()
    try:
        until = resolve_snooze_until(payload.reason, now, payload.until)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    try:
        await ActionExecutor(db, current_user["id"]).snooze_client(client_id, payload.reason, until, now)
    except ActionExecutionError as e:
        raise _action_failed(e)
    return ActionResponse(client_id=client_id, action=ActionType.SNOOZE, snooze_until=until)


@router.delete("/{client_id}/snooze", response_model=ActionResponse)
async def unsnooze_client(
    client_id: str,
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
):
    """resume follow-up before the snooze ends"""
    try:
        await ActionExecutor(db, current_user["id"]).unsnooze_client(client_id, clock())
    except ActionExecutionError as e:
        raise _action_failed(e)
    return ActionResponse(client_id=client_id, action=ActionType.SNOOZE)
