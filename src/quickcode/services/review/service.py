from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional
from uuid import UUID

from src.quickcode.config import settings
from src.quickcode.services.review.session import ReviewSession

logger = logging.getLogger("review")


class InMemoryReviewSessionService:
    """Simple in-memory registry of review sessions.

    Nothing is persisted. Each session owns its own state, so there is no data
    shared between them. Sessions idle for longer than ``idle_timeout_seconds``
    are cleared and dropped the next time the registry is touched; a session
    with an analysis in flight is never dropped.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], ReviewSession] | None = None,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions: Dict[UUID, ReviewSession] = {}
        self._last_used: Dict[UUID, float] = {}
        self._session_factory = session_factory or ReviewSession
        self._idle_timeout = (
            settings.session_idle_timeout_seconds if idle_timeout_seconds is None else idle_timeout_seconds
        )
        self._clock = clock

    def create_session(self) -> ReviewSession:
        self._expire_idle()
        session = self._session_factory()
        self._sessions[session.id] = session
        self._last_used[session.id] = self._clock()
        return session

    def get_session(self, session_id: UUID) -> Optional[ReviewSession]:
        self._expire_idle()
        session = self._sessions.get(session_id)
        if session is not None:
            self._last_used[session_id] = self._clock()
        return session

    def end_session(self, session_id: UUID) -> bool:
        session = self._sessions.pop(session_id, None)
        self._last_used.pop(session_id, None)
        if session is None:
            return False
        session.clear()
        return True

    def __len__(self) -> int:
        return len(self._sessions)

    def _expire_idle(self) -> None:
        if self._idle_timeout <= 0:
            return
        cutoff = self._clock() - self._idle_timeout
        expired = [
            session_id
            for session_id, last_used in self._last_used.items()
            if last_used < cutoff and not self._sessions[session_id].busy
        ]
        for session_id in expired:
            self.end_session(session_id)
        if expired:
            logger.info("Expired %d idle review session(s)", len(expired))


review_session_service = InMemoryReviewSessionService()
