# guided review - walk the highest-priority clients one at a time
#
# the session is an immutable ReviewSessionState plus pure transition
# functions. GuidedReview wraps one state for async callers: it serializes
# calls with a lock and only records an action once the external command
# behind it has succeeded.

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from afeia.config import settings
from afeia.models.review import ActionType, ClientSummary
from afeia.models.session import CompletionReport
from afeia.services.errors import ActionExecutionError, InvalidTransitionError
from afeia.services.morning_review.caseload import filter_by_score

logger = logging.getLogger(__name__)

EMPTY_REVIEW_MESSAGE = "No client currently requires attention"

MESSAGE_ACTIONS = frozenset({ActionType.SEND_MESSAGE.value, ActionType.CELEBRATE.value})


class ReviewStatus(str, Enum):
    REVIEWING = "reviewing"
    COMPLETED = "completed"
    EMPTY = "empty"


@dataclass(frozen=True)
class ActionRecord:
    action_type: str
    client_id: str


@dataclass(frozen=True)
class ReviewSessionState:
    queue: tuple[ClientSummary, ...]
    started_at: datetime
    status: ReviewStatus
    index: int = 0
    log: tuple[ActionRecord, ...] = ()
    ended_at: Optional[datetime] = None

    @property
    def current(self) -> Optional[ClientSummary]:
        if self.status != ReviewStatus.REVIEWING:
            return None
        return self.queue[self.index]

    @property
    def is_last(self) -> bool:
        return self.index == len(self.queue) - 1

    def report(self) -> Optional[CompletionReport]:
        """completion report, only once the review reached its end"""
        if self.status != ReviewStatus.COMPLETED:
            return None
        counts = Counter(record.action_type for record in self.log)
        return CompletionReport(
            reviewed_count=len(self.queue),
            actions_by_type=dict(counts),
            duration_seconds=(self.ended_at - self.started_at).total_seconds(),
            messages_count=sum(counts[t] for t in MESSAGE_ACTIONS),
            notes_count=counts[ActionType.NOTE_OBSERVATION.value],
            snoozed_count=counts[ActionType.SNOOZE.value],
        )


def _require_reviewing(state: ReviewSessionState) -> None:
    if state.status != ReviewStatus.REVIEWING:
        raise InvalidTransitionError(f"Review session is {state.status.value}")


def start_review(
    summaries: Iterable[ClientSummary],
    now: datetime,
    threshold: Optional[int] = None,
) -> ReviewSessionState:
    """queue of clients scoring at or above the review threshold, highest first"""
    threshold = settings.REVIEW_SESSION_THRESHOLD if threshold is None else threshold
    queue = tuple(filter_by_score(summaries, threshold))
    status = ReviewStatus.REVIEWING if queue else ReviewStatus.EMPTY
    return ReviewSessionState(queue=queue, started_at=now, status=status)


def next_client(state: ReviewSessionState, now: datetime) -> ReviewSessionState:
    _require_reviewing(state)
    if state.is_last:
        return replace(state, status=ReviewStatus.COMPLETED, ended_at=now)
    return replace(state, index=state.index + 1)


def previous_client(state: ReviewSessionState) -> ReviewSessionState:
    _require_reviewing(state)
    if state.index == 0:
        return state
    return replace(state, index=state.index - 1)


def record_action(state: ReviewSessionState, action_type: str, now: datetime) -> ReviewSessionState:
    """log an action on the current client; snoozing also moves on"""
    _require_reviewing(state)
    action_type = ActionType(action_type).value
    record = ActionRecord(action_type=action_type, client_id=state.current.client.id)
    state = replace(state, log=state.log + (record,))
    if action_type == ActionType.SNOOZE.value:
        return next_client(state, now)
    return state


class GuidedReview:
    """one practitioner's live guided review"""

    def __init__(self, state: ReviewSessionState):
        self._state = state
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def state(self) -> ReviewSessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidTransitionError("Review session was closed")

    async def next(self, now: datetime) -> ReviewSessionState:
        async with self._lock:
            self._ensure_open()
            self._state = next_client(self._state, now)
            return self._state

    async def previous(self) -> ReviewSessionState:
        async with self._lock:
            self._ensure_open()
            self._state = previous_client(self._state)
            return self._state

    async def perform(
        self,
        action_type: str,
        now: datetime,
        command: Optional[Callable[[ClientSummary], Awaitable[object]]] = None,
    ) -> ReviewSessionState:
        """run the external command for the current client, then record the action.
        on failure the session is left exactly as it was."""
        async with self._lock:
            self._ensure_open()
            _require_reviewing(self._state)
            action_type = ActionType(action_type).value
            current = self._state.current
            client_id = current.client.id
            if command is not None:
                try:
                    await command(current)
                except ActionExecutionError:
                    logger.warning(f"Action {action_type} failed for client {client_id}")
                    raise
                except Exception as e:
                    logger.warning(f"Action {action_type} failed for client {client_id}: {e}")
                    raise ActionExecutionError(f"Action {action_type} failed: {e}") from e
            self._state = record_action(self._state, action_type, now)
            return self._state

    def close(self) -> None:
        """abandon the review, no completion report is produced"""
        self._closed = True
