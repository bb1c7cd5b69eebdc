# morning review router - scored caseload, attention queue and guided review
# practitioner-only endpoints; scores are recomputed on every request

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from afeia.dependencies import get_clock, require_practitioner
from afeia.models.review import ActionType, ClientSummary, MorningReviewResponse
from afeia.models.session import ReviewActionRequest, ReviewSessionResponse
from afeia.services.action_executor import ActionExecutor, resolve_snooze_until
from afeia.services.caseload_repository import CaseloadRepository
from afeia.services.db import Database, get_db
from afeia.services.errors import (
    ActionExecutionError,
    CaseloadFetchError,
    InvalidTransitionError,
    SessionNotFoundError,
)
from afeia.services.morning_review import (
    GuidedReview,
    ReviewSessionState,
    ReviewStatus,
    build_attention_queue,
    build_caseload_summaries,
    compute_global_metrics,
    start_review,
)
from afeia.services.morning_review.review_session import EMPTY_REVIEW_MESSAGE
from afeia.services.review_store import ReviewSessionStore, get_review_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/morning-review", tags=["morning-review"])

MESSAGE_ACTION_TYPES = (ActionType.SEND_MESSAGE, ActionType.CELEBRATE)


async def _load_summaries(practitioner_id: str, db: Database, now) -> list[ClientSummary]:
    """score the caseload, or fail the whole pass if it cannot be loaded"""
    try:
        clients = await CaseloadRepository(db).fetch_caseload(practitioner_id, now)
    except CaseloadFetchError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return build_caseload_summaries(clients, now)


def _session_view(session_id: Optional[str], state: ReviewSessionState) -> ReviewSessionResponse:
    if state.status == ReviewStatus.EMPTY:
        return ReviewSessionResponse(status=state.status.value, message=EMPTY_REVIEW_MESSAGE)
    return ReviewSessionResponse(
        session_id=session_id,
        status=state.status.value,
        current_index=state.index,
        total=len(state.queue),
        current=state.current,
        report=state.report(),
    )


def _get_review(store: ReviewSessionStore, session_id: str, practitioner_id: str) -> GuidedReview:
    try:
        return store.get(session_id, practitioner_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _template_for(summary: ClientSummary, action_type: ActionType) -> Optional[str]:
    for action in summary.suggested_actions:
        if action.type == action_type and action.template_message:
            return action.template_message
    return None


def _unprocessable(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


def _finish_if_completed(store: ReviewSessionStore, session_id: str, state: ReviewSessionState) -> None:
    """a completed review has nothing left to do, its report goes out with this response"""
    if state.status != ReviewStatus.COMPLETED:
        return
    report = state.report()
    logger.info(
        f"Guided review {session_id} completed: {report.reviewed_count} clients, "
        f"{len(state.log)} actions in {report.duration_seconds:.0f}s"
    )
    store.finish(session_id)


def _build_command(payload: ReviewActionRequest, current: ClientSummary, executor: ActionExecutor, now):
    """external command behind a review action, None for actions with no side effect

    `current` is only used to reject the payload early; the command itself
    acts on the summary the review hands it while holding its lock.
    """
    if payload.type in MESSAGE_ACTION_TYPES:
        if not payload.body and not _template_for(current, payload.type):
            raise _unprocessable("A message body is required")

        async def send(summary: ClientSummary):
            body = payload.body or _template_for(summary, payload.type)
            if not body:
                raise ActionExecutionError(f"No message template for client {summary.client.id}")
            await executor.send_message(summary.client.id, body, now)

        return send

    if payload.type == ActionType.NOTE_OBSERVATION:
        if not payload.content:
            raise _unprocessable("Observation content is required")
        return lambda summary: executor.save_observation(summary.client.id, payload.content, now)

    if payload.type == ActionType.SNOOZE:
        if payload.reason is None:
            raise _unprocessable("A snooze reason is required")
        try:
            until = resolve_snooze_until(payload.reason, now, payload.until)
        except ValueError as e:
            raise _unprocessable(str(e))
        return lambda summary: executor.snooze_client(summary.client.id, payload.reason, until, now)

    # open_record, adjust_care_plan and schedule_call are handled by the frontend
    return None


@router.get("", response_model=MorningReviewResponse)
async def get_morning_review(
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
):
    """every client of the practitioner, sorted by attention score, with global metrics"""
    now = clock()
    summaries = await _load_summaries(current_user["id"], db, now)

    return MorningReviewResponse(
        summaries=summaries,
        metrics=compute_global_metrics(summaries, now),
        practitioner_name=current_user.get("name", ""),
        generated_at=now,
    )


@router.get("/queue", response_model=list[ClientSummary])
async def get_attention_queue(
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
):
    """clients that deserve a look today, highest score first"""
    now = clock()
    summaries = await _load_summaries(current_user["id"], db, now)
    return build_attention_queue(summaries)


@router.post("/sessions", response_model=ReviewSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_guided_review(
    response: Response,
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
    store: ReviewSessionStore = Depends(get_review_store),
):
    """start a guided review over the clients needing attention"""
    now = clock()
    summaries = await _load_summaries(current_user["id"], db, now)
    state = start_review(summaries, now)

    if state.status == ReviewStatus.EMPTY:
        response.status_code = status.HTTP_200_OK
        return _session_view(None, state)

    session_id = store.create(current_user["id"], GuidedReview(state))
    return _session_view(session_id, state)


@router.get("/sessions/{session_id}", response_model=ReviewSessionResponse)
async def get_guided_review(
    session_id: str,
    current_user: dict = Depends(require_practitioner),
    store: ReviewSessionStore = Depends(get_review_store),
):
    review = _get_review(store, session_id, current_user["id"])
    return _session_view(session_id, review.state)


@router.post("/sessions/{session_id}/next", response_model=ReviewSessionResponse)
async def next_in_review(
    session_id: str,
    current_user: dict = Depends(require_practitioner),
    clock: Callable = Depends(get_clock),
    store: ReviewSessionStore = Depends(get_review_store),
):
    """move to the next client; past the last one the review completes"""
    review = _get_review(store, session_id, current_user["id"])
    try:
        state = await review.next(clock())
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    _finish_if_completed(store, session_id, state)
    return _session_view(session_id, state)


@router.post("/sessions/{session_id}/previous", response_model=ReviewSessionResponse)
async def previous_in_review(
    session_id: str,
    current_user: dict = Depends(require_practitioner),
    store: ReviewSessionStore = Depends(get_review_store),
):
    review = _get_review(store, session_id, current_user["id"])
    try:
        state = await review.previous()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return _session_view(session_id, state)


@router.post("/sessions/{session_id}/actions", response_model=ReviewSessionResponse)
async def act_in_review(
    session_id: str,
    payload: ReviewActionRequest,
    current_user: dict = Depends(require_practitioner),
    db: Database = Depends(get_db),
    clock: Callable = Depends(get_clock),
    store: ReviewSessionStore = Depends(get_review_store),
):
    """run an action on the current client and record it; snoozing moves on"""
    now = clock()
    review = _get_review(store, session_id, current_user["id"])
    current = review.state.current
    if current is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Review session is {review.state.status.value}",
        )

    executor = ActionExecutor(db, current_user["id"])
    command = _build_command(payload, current, executor, now)

    try:
        state = await review.perform(payload.type, now, command)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ActionExecutionError as e:
        code = status.HTTP_404_NOT_FOUND if e.not_found else status.HTTP_502_BAD_GATEWAY
        raise HTTPException(status_code=code, detail=str(e))

    _finish_if_completed(store, session_id, state)
    return _session_view(session_id, state)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_guided_review(
    session_id: str,
    current_user: dict = Depends(require_practitioner),
    store: ReviewSessionStore = Depends(get_review_store),
):
    """abandon the review at any point, no report is kept"""
    try:
        store.discard(session_id, current_user["id"])
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
