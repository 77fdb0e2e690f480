"""
Quiz Session Data Model

Defines the QuizSession dataclass and the per-round Question/Evaluation
records owned by the session controller.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


ROUND_LIMIT = 5

# Corrections the evaluator sends when there is nothing to correct
NO_CORRECTION_SENTINELS = {"", "none", "none needed"}


class QuizStatus(Enum):
    """Session states."""
    INITIALIZING = "initializing"
    AWAITING_ANSWER = "awaiting_answer"
    EVALUATED = "evaluated"
    COMPLETED = "completed"


def _clamp_unit(value, label: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"{label} must be finite, got {value!r}")
    return max(0.0, min(1.0, number))


def clamp_mastery(value) -> float:
    """
    Clamp a mastery value into [0.0, 1.0].

    Raises:
        ValueError: If the value is not a finite number
    """
    return _clamp_unit(value, "Mastery")


def clamp_score(value) -> float:
    """Clamp an evaluation score into [0.0, 1.0]; same rules as clamp_mastery."""
    return _clamp_unit(value, "Score")


@dataclass
class Question:
    """A single multiple-choice question."""
    prompt: str
    options: List[str]
    correct_answer: str

    def has_option(self, choice: str) -> bool:
        return bool(choice) and choice in self.options


@dataclass
class Evaluation:
    """Graded result for one answered question."""
    score: float
    feedback: str
    correction: Optional[str] = None

    @property
    def display_correction(self) -> Optional[str]:
        """Correction text to show, or None when the evaluator had nothing to correct."""
        if self.correction is None:
            return None
        if self.correction.strip().lower() in NO_CORRECTION_SENTINELS:
            return None
        return self.correction


@dataclass
class RoundRecord:
    """History entry for one evaluated round."""
    round_number: int
    prompt: str
    choice: str
    correct_answer: str
    level: Optional[str]
    score: float
    mastery_before: float
    mastery_after: float

    @property
    def correct(self) -> bool:
        return self.choice == self.correct_answer


@dataclass
class QuizSession:
    """State for one learner's quiz on one topic."""
    topic_id: str
    topic_title: str
    learner_id: str
    mastery: float = 0.0
    initial_mastery: float = 0.0
    questions_answered: int = 0
    level: Optional[str] = None
    status: QuizStatus = QuizStatus.INITIALIZING
    # Current round
    question: Optional[Question] = None
    evaluation: Optional[Evaluation] = None
    rounds: List[RoundRecord] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def round_limit_reached(self) -> bool:
        return self.questions_answered >= ROUND_LIMIT

    @property
    def is_complete(self) -> bool:
        return self.status == QuizStatus.COMPLETED
