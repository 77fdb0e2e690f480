"""
Collaborator contracts for the quiz session controller.

The controller only depends on these shapes, so each collaborator can be
swapped for a fake in tests.
"""

from typing import Awaitable, Optional, Protocol, Tuple, Union

from adaptive_quiz.session_state import Evaluation, Question


class MasteryStore(Protocol):
    """Read-only access to stored mastery."""

    async def read_mastery(self, learner_id: str, topic_id: str) -> Optional[float]:
        """Return stored mastery, or None when no record exists."""
        ...


class QuestionProvider(Protocol):
    """Generates a question suited to the current mastery."""

    async def generate_question(self, topic: str, mastery: float) -> Tuple[Question, str]:
        """
        Return a question and its opaque difficulty label.

        The question's options must contain correct_answer exactly once.
        """
        ...


class AnswerEvaluator(Protocol):
    """Grades an answer and proposes a new mastery value."""

    async def evaluate_answer(
        self,
        question: str,
        answer: str,
        correct_answer: str,
        topic: str,
        user_id: str,
        topic_id: str,
        mastery: float,
    ) -> Tuple[Evaluation, float]:
        ...


class CompletionSink(Protocol):
    """Called once with the final mastery when the session completes."""

    def __call__(self, final_mastery: float) -> Union[None, Awaitable[None]]:
        ...
