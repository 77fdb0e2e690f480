"""
Quiz Session Manager

Keeps live quiz controllers in memory, keyed by quiz id, and holds the
summaries of quizzes that have completed. A live session is dropped as soon
as it completes. With a session TTL, quizzes left idle and results left
unread for longer than the TTL are pruned whenever a new quiz is created.
"""

import logging
import time
import uuid
from typing import Callable, Dict, Optional

from adaptive_quiz.session_controller import QuizSessionController
from adaptive_quiz.session_summary import SessionSummary

logger = logging.getLogger(__name__)


class QuizSessionManager:
    """
    In-memory registry of quiz sessions.

    Each controller is created with a completion callback that records the
    session summary here and removes the live entry.
    """

    def __init__(
        self,
        controller_factory: Callable[..., QuizSessionController],
        session_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize QuizSessionManager.

        Args:
            controller_factory: Called with on_complete=<callback> to build a controller
            session_ttl: Seconds an idle quiz or a completed result is kept (None keeps forever)
            clock: Monotonic time source
        """
        self.controller_factory = controller_factory
        self.session_ttl = session_ttl
        self.clock = clock
        self._sessions: Dict[str, QuizSessionController] = {}
        self._owners: Dict[str, Optional[str]] = {}
        self._results: Dict[str, SessionSummary] = {}
        # Last access of a live session, or completion time of a result
        self._last_seen: Dict[str, float] = {}

    def create(self, owner_id: Optional[str] = None) -> str:
        """Register a new, unstarted controller and return its quiz id."""
        self.prune()
        quiz_id = f"quiz_{uuid.uuid4().hex}"
        controller = self.controller_factory(on_complete=self._completion_callback(quiz_id))
        self._sessions[quiz_id] = controller
        self._owners[quiz_id] = owner_id
        self._last_seen[quiz_id] = self.clock()
        logger.debug(f"💾 [QuizSessionManager] Registered {quiz_id}")
        return quiz_id

    def get(self, quiz_id: str) -> Optional[QuizSessionController]:
        controller = self._sessions.get(quiz_id)
        if controller is not None:
            self._last_seen[quiz_id] = self.clock()
        return controller

    def owner_of(self, quiz_id: str) -> Optional[str]:
        return self._owners.get(quiz_id)

    def get_result(self, quiz_id: str) -> Optional[SessionSummary]:
        return self._results.get(quiz_id)

    def discard(self, quiz_id: str) -> bool:
        """Drop a quiz, live or completed, along with its result."""
        controller = self._sessions.pop(quiz_id, None)
        result = self._results.pop(quiz_id, None)
        self._owners.pop(quiz_id, None)
        self._last_seen.pop(quiz_id, None)
        return controller is not None or result is not None

    def prune(self) -> int:
        """
        Drop idle quizzes and old results past the session TTL.

        Quizzes with a request in flight are kept.

        Returns:
            Number of entries removed
        """
        if not self.session_ttl:
            return 0

        cutoff = self.clock() - self.session_ttl
        expired = [
            quiz_id for quiz_id, seen in self._last_seen.items()
            if seen < cutoff and not self._is_busy(quiz_id)
        ]
        for quiz_id in expired:
            self.discard(quiz_id)

        if expired:
            logger.info(f"🧹 [QuizSessionManager] Pruned {len(expired)} expired quiz(zes)")
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

    def _is_busy(self, quiz_id: str) -> bool:
        controller = self._sessions.get(quiz_id)
        return controller is not None and controller.busy

    def _completion_callback(self, quiz_id: str):
        def on_complete(final_mastery: float):
            controller = self._sessions.pop(quiz_id, None)
            if controller is not None and controller.session is not None:
                self._results[quiz_id] = controller.summary()
                self._last_seen[quiz_id] = self.clock()
            logger.info(f"🏁 [QuizSessionManager] {quiz_id} completed with mastery {final_mastery:.2f}")
        return on_complete
