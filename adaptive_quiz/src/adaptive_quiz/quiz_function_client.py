"""
Adaptive Quiz Function Client

Talks to the `adaptive-quiz` Supabase Edge Function. The function is a single
endpoint multiplexed by an `action` field; this client exposes its two
actions as the QuestionProvider and AnswerEvaluator collaborators.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PayloadError

from adaptive_quiz.errors import EvaluatorFailure, ProviderFailure
from adaptive_quiz.session_state import Evaluation, Question
from adaptive_quiz.settings import DEFAULT_FUNCTION_NAME

logger = logging.getLogger(__name__)


# ==================== Wire Models ====================

class GeneratedQuestion(BaseModel):
    question: str
    options: List[str]
    correct_answer: str


class GenerateQuestionResponse(BaseModel):
    success: bool = False
    question: Optional[GeneratedQuestion] = None
    level: Optional[str] = None


class EvaluationPayload(BaseModel):
    score: float
    feedback: str = ""
    correction: Optional[str] = None


class EvaluateAnswerResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    evaluation: Optional[EvaluationPayload] = None
    new_mastery: Optional[float] = Field(default=None, alias="newMastery")


def _decode(raw: Any) -> Dict[str, Any]:
    """Normalize whatever the functions client returned into a dict."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        raise ValueError(f"Expected a JSON object, got {type(raw).__name__}")
    return raw


class AdaptiveQuizFunctionClient:
    """
    Client for the adaptive-quiz edge function.

    Implements both generate_question (QuestionProvider) and evaluate_answer
    (AnswerEvaluator). Failures are raised, never retried here.
    """

    def __init__(self, supabase_client, function_name: str = DEFAULT_FUNCTION_NAME):
        """
        Initialize AdaptiveQuizFunctionClient.

        Args:
            supabase_client: Supabase client instance
            function_name: Name of the deployed edge function
        """
        self.supabase = supabase_client
        self.function_name = function_name

    async def _invoke(self, body: Dict[str, Any]) -> Dict[str, Any]:
        raw = await asyncio.to_thread(
            self.supabase.functions.invoke,
            self.function_name,
            invoke_options={"body": body, "responseType": "json"},
        )
        return _decode(raw)

    async def generate_question(self, topic: str, mastery: float) -> Tuple[Question, Optional[str]]:
        """
        Request one question for the topic at the given mastery.

        Returns:
            (Question, level) where level is the function's difficulty label

        Raises:
            ProviderFailure: On transport errors, success=false, or a malformed question
        """
        body = {
            "action": "generate_question",
            "topic": topic,
            "mastery": mastery,
        }
        try:
            data = await self._invoke(body)
            response = GenerateQuestionResponse.model_validate(data)
        except PayloadError as e:
            logger.warning(f"⚠️ [QuizFunction] Malformed generate_question response: {e}")
            raise ProviderFailure("Question generator returned a malformed response") from e
        except Exception as e:
            logger.error(f"❌ [QuizFunction] generate_question failed: {e}")
            raise ProviderFailure(f"Failed to generate question: {e}") from e

        if not response.success or response.question is None:
            raise ProviderFailure("Failed to generate question")

        payload = response.question
        if payload.options.count(payload.correct_answer) != 1:
            raise ProviderFailure("Generated question must list its correct answer exactly once")

        question = Question(
            prompt=payload.question,
            options=list(payload.options),
            correct_answer=payload.correct_answer,
        )
        logger.debug(f"🎯 [QuizFunction] Generated {response.level or 'unlabelled'} question for '{topic}'")
        return question, response.level

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
        """
        Grade an answer and fetch the updated mastery.

        Raises:
            EvaluatorFailure: On transport errors, success=false, or a malformed response
        """
        body = {
            "action": "evaluate_answer",
            "question": question,
            "answer": answer,
            "correct_answer": correct_answer,
            "topic": topic,
            "userId": user_id,
            "topicId": topic_id,
            "mastery": mastery,
        }
        try:
            data = await self._invoke(body)
            response = EvaluateAnswerResponse.model_validate(data)
        except PayloadError as e:
            logger.warning(f"⚠️ [QuizFunction] Malformed evaluate_answer response: {e}")
            raise EvaluatorFailure("Answer evaluator returned a malformed response") from e
        except Exception as e:
            logger.error(f"❌ [QuizFunction] evaluate_answer failed: {e}")
            raise EvaluatorFailure(f"Failed to evaluate answer: {e}") from e

        if not response.success or response.evaluation is None or response.new_mastery is None:
            raise EvaluatorFailure("Failed to evaluate answer")

        evaluation = Evaluation(
            score=max(0.0, min(1.0, response.evaluation.score)),
            feedback=response.evaluation.feedback,
            correction=response.evaluation.correction,
        )
        return evaluation, response.new_mastery
