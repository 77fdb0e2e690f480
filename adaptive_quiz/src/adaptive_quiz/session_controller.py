"""
Quiz Session Controller

Drives one adaptive quiz: reads the learner's mastery, asks the question
provider for a question, sends answers to the evaluator, absorbs the mastery
it returns, and reports the final mastery after ROUND_LIMIT rounds.

State machine:
    INITIALIZING --(first question)--> AWAITING_ANSWER
    AWAITING_ANSWER --submit_answer--> EVALUATED
    EVALUATED --advance--> AWAITING_ANSWER | COMPLETED

Mastery only changes when the evaluator responds successfully. At most one
collaborator request is outstanding at a time.
"""

import asyncio
import inspect
import logging
from dataclasses import replace
from datetime import datetime
from typing import Awaitable, Optional, Type, TypeVar

from adaptive_quiz.contracts import AnswerEvaluator, CompletionSink, MasteryStore, QuestionProvider
from adaptive_quiz.errors import (
    EvaluatorFailure,
    MasteryStoreFailure,
    MissingIdentity,
    ProviderFailure,
    QuizError,
    SessionAlreadyStarted,
    SessionBusy,
    ValidationError,
)
from adaptive_quiz.session_state import (
    ROUND_LIMIT,
    Question,
    QuizSession,
    QuizStatus,
    RoundRecord,
    clamp_mastery,
    clamp_score,
)
from adaptive_quiz.session_summary import SessionSnapshot, SessionSummary, build_snapshot, build_summary

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QuizSessionController:
    """
    Sole owner and mutator of a QuizSession.

    All collaborator failures are raised to the caller; the session is left
    in the state it had before the failed call so the same operation can be
    retried.
    """

    def __init__(
        self,
        question_provider: QuestionProvider,
        answer_evaluator: AnswerEvaluator,
        mastery_store: MasteryStore,
        on_complete: Optional[CompletionSink] = None,
        request_timeout: Optional[float] = None,
    ):
        """
        Initialize QuizSessionController.

        Args:
            question_provider: Generates questions for (topic, mastery)
            answer_evaluator: Grades answers and returns updated mastery
            mastery_store: Source of the learner's starting mastery
            on_complete: Called once with the final mastery
            request_timeout: Seconds to wait for any collaborator call (None waits forever)
        """
        self.question_provider = question_provider
        self.answer_evaluator = answer_evaluator
        self.mastery_store = mastery_store
        self.on_complete = on_complete
        self.request_timeout = request_timeout

        self.session: Optional[QuizSession] = None
        self._pending = False
        self._completion_fired = False

    # ==================== Properties ====================

    @property
    def busy(self) -> bool:
        """True while a collaborator request is outstanding."""
        return self._pending

    @property
    def status(self) -> Optional[QuizStatus]:
        return self.session.status if self.session else None

    def snapshot(self) -> Optional[SessionSnapshot]:
        if self.session is None:
            return None
        return build_snapshot(self.session, busy=self._pending)

    def summary(self) -> Optional[SessionSummary]:
        if self.session is None:
            return None
        return build_summary(self.session)

    # ==================== Operations ====================

    async def initialize(
        self,
        topic_id: str,
        learner_id: Optional[str],
        topic_title: Optional[str] = None,
    ) -> SessionSnapshot:
        """
        Start the session and fetch the first question.

        Re-invoking after a ProviderFailure retries the start.

        Raises:
            MissingIdentity: No learner id; nothing is requested
            SessionBusy: A request is already outstanding
            SessionAlreadyStarted: The first question was already received
            MasteryStoreFailure: Stored mastery could not be read
            ProviderFailure: The first question could not be generated
        """
        if not learner_id:
            logger.warning("⚠️ [QuizSession] Cannot start quiz without a learner identity")
            raise MissingIdentity("A learner identity is required to start a quiz")
        if self._pending:
            raise SessionBusy("A request is already in progress")
        if self.session is not None and self.session.status != QuizStatus.INITIALIZING:
            raise SessionAlreadyStarted("Quiz session has already started")

        self._pending = True
        try:
            stored = await self._call(
                self.mastery_store.read_mastery(learner_id, topic_id),
                MasteryStoreFailure,
                "Mastery read",
            )
            try:
                mastery = 0.0 if stored is None else clamp_mastery(stored)
            except ValueError as e:
                raise MasteryStoreFailure(str(e)) from e

            self.session = QuizSession(
                topic_id=topic_id,
                topic_title=topic_title or topic_id,
                learner_id=learner_id,
                mastery=mastery,
                initial_mastery=mastery,
            )
            logger.info(f"📚 [QuizSession] Starting quiz on '{self.session.topic_title}' at mastery {mastery:.2f}")

            question, level = await self._call(
                self.question_provider.generate_question(self.session.topic_title, mastery),
                ProviderFailure,
                "Question generation",
            )
        finally:
            self._pending = False

        self._present(question, level)
        return self.snapshot()

    async def submit_answer(self, choice: str) -> SessionSnapshot:
        """
        Send the learner's answer for evaluation.

        Raises:
            SessionBusy: A request is already outstanding
            ValidationError: No question is awaiting an answer, or choice is
                empty or not one of the options; the evaluator is not called
            EvaluatorFailure: Evaluation failed; mastery and counters are unchanged
        """
        if self._pending:
            raise SessionBusy("A request is already in progress")

        session = self.session
        if session is None or session.status != QuizStatus.AWAITING_ANSWER or session.question is None:
            raise ValidationError("No question is awaiting an answer")
        if not isinstance(choice, str) or not choice:
            raise ValidationError("Please select an answer")

        question = session.question
        if not question.has_option(choice):
            raise ValidationError(f"'{choice}' is not one of the available options")

        self._pending = True
        try:
            evaluation, new_mastery = await self._call(
                self.answer_evaluator.evaluate_answer(
                    question.prompt,
                    choice,
                    question.correct_answer,
                    session.topic_title,
                    session.learner_id,
                    session.topic_id,
                    session.mastery,
                ),
                EvaluatorFailure,
                "Answer evaluation",
            )
            try:
                mastery = clamp_mastery(new_mastery)
                evaluation = replace(evaluation, score=clamp_score(evaluation.score))
            except ValueError as e:
                raise EvaluatorFailure(f"Evaluator returned an invalid result: {e}") from e
        finally:
            self._pending = False

        mastery_before = session.mastery
        session.mastery = mastery
        session.evaluation = evaluation
        session.questions_answered += 1
        session.rounds.append(RoundRecord(
            round_number=session.questions_answered,
            prompt=question.prompt,
            choice=choice,
            correct_answer=question.correct_answer,
            level=session.level,
            score=evaluation.score,
            mastery_before=mastery_before,
            mastery_after=mastery,
        ))
        session.status = QuizStatus.EVALUATED

        logger.info(
            f"✅ [QuizSession] Round {session.questions_answered}/{ROUND_LIMIT} scored "
            f"{evaluation.score:.2f}, mastery {mastery_before:.2f} → {mastery:.2f}"
        )
        return self.snapshot()

    async def advance(self) -> Optional[SessionSnapshot]:
        """
        Move past an evaluated round.

        Completes the session once ROUND_LIMIT rounds are answered, otherwise
        fetches the next question. A no-op unless the session is EVALUATED
        and idle.

        Raises:
            ProviderFailure: The next question could not be generated; the
                session stays EVALUATED
        """
        session = self.session
        if session is None or self._pending or session.status != QuizStatus.EVALUATED:
            if session is not None and session.status != QuizStatus.COMPLETED:
                logger.debug(f"⏭️ [QuizSession] advance() ignored in state {session.status.value}")
            return self.snapshot()

        if session.round_limit_reached:
            session.status = QuizStatus.COMPLETED
            session.completed_at = datetime.now()
            logger.info(f"🏁 [QuizSession] Quiz complete with final mastery {session.mastery:.2f}")
            await self._fire_completion(session.mastery)
            return self.snapshot()

        self._pending = True
        try:
            question, level = await self._call(
                self.question_provider.generate_question(session.topic_title, session.mastery),
                ProviderFailure,
                "Question generation",
            )
        finally:
            self._pending = False

        self._present(question, level)
        return self.snapshot()

    # ==================== Internals ====================

    def _present(self, question: Question, level: Optional[str]):
        """Install a freshly generated question, discarding the previous round."""
        session = self.session
        session.question = question
        session.evaluation = None
        session.level = level
        session.status = QuizStatus.AWAITING_ANSWER
        logger.debug(f"🎯 [QuizSession] Question {session.questions_answered + 1} ready (level: {level})")

    async def _call(self, awaitable: Awaitable[T], failure: Type[QuizError], action: str) -> T:
        """Await a collaborator call, translating errors and timeouts into `failure`."""
        try:
            if self.request_timeout:
                return await asyncio.wait_for(awaitable, timeout=self.request_timeout)
            return await awaitable
        except asyncio.TimeoutError as e:
            logger.error(f"❌ [QuizSession] {action} timed out after {self.request_timeout}s")
            raise failure(f"{action} timed out") from e
        except QuizError:
            raise
        except Exception as e:
            logger.error(f"❌ [QuizSession] {action} failed: {e}")
            raise failure(f"{action} failed: {e}") from e

    async def _fire_completion(self, final_mastery: float):
        if self._completion_fired:
            return
        self._completion_fired = True
        if self.on_complete is None:
            return
        result = self.on_complete(final_mastery)
        if inspect.isawaitable(result):
            await result
