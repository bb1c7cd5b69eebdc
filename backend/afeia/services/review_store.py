# in-memory registry of live guided reviews
# sessions are ephemeral: dropped on close, on completion, or after sitting idle

import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

from afeia.config import settings
from afeia.services.errors import SessionNotFoundError
from afeia.services.morning_review.review_session import GuidedReview

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    practitioner_id: str
    review: GuidedReview
    last_seen: float


class ReviewSessionStore:
    """guided reviews keyed by session id, scoped to the practitioner who started them"""

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._sessions: dict[str, _Entry] = {}
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.REVIEW_SESSION_TTL_MINUTES * 60
        self._clock = clock

    def _prune(self, now: float) -> None:
        expired = [sid for sid, entry in self._sessions.items() if now - entry.last_seen > self._ttl]
        for session_id in expired:
            self._sessions.pop(session_id).review.close()
            logger.info(f"Guided review {session_id} expired after sitting idle")

    def create(self, practitioner_id: str, review: GuidedReview) -> str:
        now = self._clock()
        self._prune(now)
        session_id = secrets.token_urlsafe(12)
        self._sessions[session_id] = _Entry(practitioner_id, review, now)
        logger.info(
            f"Guided review {session_id} started by practitioner {practitioner_id} "
            f"with {len(review.state.queue)} clients"
        )
        return session_id

    def get(self, session_id: str, practitioner_id: str) -> GuidedReview:
        now = self._clock()
        self._prune(now)
        entry = self._sessions.get(session_id)
        if entry is None or entry.practitioner_id != practitioner_id:
            raise SessionNotFoundError(f"Review session {session_id} not found")
        entry.last_seen = now
        return entry.review

    def discard(self, session_id: str, practitioner_id: str) -> None:
        review = self.get(session_id, practitioner_id)
        review.close()
        del self._sessions[session_id]
        logger.info(f"Guided review {session_id} closed")

    def finish(self, session_id: str) -> None:
        """drop a completed review; a no-op if it is already gone"""
        entry = self._sessions.pop(session_id, None)
        if entry is not None:
            entry.review.close()
            logger.info(f"Guided review {session_id} removed after completion")

    def __len__(self) -> int:
        return len(self._sessions)


# singleton instance
review_store = ReviewSessionStore()


async def get_review_store() -> ReviewSessionStore:
    """dependency injection for the review session registry"""
    return review_store
