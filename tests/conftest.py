"""
Shared fixtures: in-process fakes for the quiz collaborators.
"""

import pytest

from adaptive_quiz.errors import EvaluatorFailure, ProviderFailure
from adaptive_quiz.mastery_store import InMemoryMasteryStore
from adaptive_quiz.session_controller import QuizSessionController
from adaptive_quiz.session_state import Evaluation, Question


LEARNER_ID = "learner-123"
TOPIC_ID = "topic-python"
TOPIC_TITLE = "Python Basics"


def level_for(mastery: float) -> str:
    if mastery < 0.4:
        return "easy"
    if mastery < 0.7:
        return "medium"
    return "hard"


class FakeQuestionProvider:
    """Returns numbered four-option questions; can be told to fail."""

    def __init__(self):
        self.calls = []
        self.fail_next = 0

    async def generate_question(self, topic, mastery):
        self.calls.append((topic, mastery))
        if self.fail_next:
            self.fail_next -= 1
            raise ProviderFailure("Failed to generate question")
        number = len(self.calls)
        question = Question(
            prompt=f"Question {number} about {topic}?",
            options=["A", "B", "C", "D"],
            correct_answer="B",
        )
        return question, level_for(mastery)


class FakeAnswerEvaluator:
    """
    Grades against the correct answer and moves mastery by ±0.1.

    Queued responses in `scripted` take precedence.
    """

    def __init__(self):
        self.calls = []
        self.scripted = []
        self.fail_next = 0

    async def evaluate_answer(self, question, answer, correct_answer, topic, user_id, topic_id, mastery):
        self.calls.append((question, answer, correct_answer, topic, user_id, topic_id, mastery))
        if self.fail_next:
            self.fail_next -= 1
            raise EvaluatorFailure("Failed to evaluate answer")
        if self.scripted:
            return self.scripted.pop(0)
        if answer == correct_answer:
            return Evaluation(score=1.0, feedback="Correct!", correction="None needed"), mastery + 0.1
        return Evaluation(score=0.0, feedback="Not quite.", correction=f"The answer is {correct_answer}"), mastery - 0.1


class CompletionRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, final_mastery):
        self.calls.append(final_mastery)


@pytest.fixture
def provider():
    return FakeQuestionProvider()


@pytest.fixture
def evaluator():
    return FakeAnswerEvaluator()


@pytest.fixture
def store():
    return InMemoryMasteryStore()


@pytest.fixture
def sink():
    return CompletionRecorder()


@pytest.fixture
def controller(provider, evaluator, store, sink):
    return QuizSessionController(
        question_provider=provider,
        answer_evaluator=evaluator,
        mastery_store=store,
        on_complete=sink,
    )
