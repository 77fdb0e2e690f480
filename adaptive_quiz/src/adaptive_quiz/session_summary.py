"""
Session Summary

Builds the display snapshot for an in-progress quiz and the summary reported
when the quiz completes.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from adaptive_quiz.session_state import ROUND_LIMIT, QuizSession, QuizStatus


@dataclass
class SessionSnapshot:
    """Everything a client needs to render the current quiz state."""
    topic_id: str
    topic_title: str
    status: str
    mastery: float
    mastery_percent: int
    level: Optional[str]
    questions_answered: int
    round_limit: int
    question_number: int
    progress_percent: float
    busy: bool
    action_label: Optional[str]
    question: Optional[Dict[str, Any]] = None
    evaluation: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionSummary:
    """Outcome of a completed quiz."""
    topic_id: str
    topic_title: str
    learner_id: str
    initial_mastery: float
    final_mastery: float
    mastery_delta: float
    rounds_answered: int
    correct_answers: int
    average_score: float
    rounds: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def action_label(session: QuizSession, busy: bool) -> Optional[str]:
    """Label for the single action button."""
    if busy:
        return "Processing..."
    if session.status == QuizStatus.AWAITING_ANSWER:
        return "Submit"
    if session.status == QuizStatus.EVALUATED:
        return "Finish" if session.round_limit_reached else "Next"
    return None


def build_snapshot(session: QuizSession, busy: bool = False) -> SessionSnapshot:
    """Project a QuizSession into its display form."""
    question = None
    if session.question is not None:
        question = {
            "prompt": session.question.prompt,
            "options": list(session.question.options),
        }
        # Only reveal the answer once the round has been graded
        if session.status == QuizStatus.EVALUATED:
            question["correct_answer"] = session.question.correct_answer

    evaluation = None
    if session.evaluation is not None:
        evaluation = {
            "score": session.evaluation.score,
            "score_percent": round(session.evaluation.score * 100),
            "feedback": session.evaluation.feedback,
            "correction": session.evaluation.display_correction,
        }

    return SessionSnapshot(
        topic_id=session.topic_id,
        topic_title=session.topic_title,
        status=session.status.value,
        mastery=session.mastery,
        mastery_percent=round(session.mastery * 100),
        level=session.level,
        questions_answered=session.questions_answered,
        round_limit=ROUND_LIMIT,
        question_number=min(session.questions_answered + 1, ROUND_LIMIT),
        progress_percent=session.questions_answered / ROUND_LIMIT * 100,
        busy=busy,
        action_label=action_label(session, busy),
        question=question,
        evaluation=evaluation,
    )


def build_summary(session: QuizSession) -> SessionSummary:
    """Summarize the rounds a session has answered so far."""
    scores = [record.score for record in session.rounds]
    average = sum(scores) / len(scores) if scores else 0.0

    return SessionSummary(
        topic_id=session.topic_id,
        topic_title=session.topic_title,
        learner_id=session.learner_id,
        initial_mastery=session.initial_mastery,
        final_mastery=session.mastery,
        mastery_delta=session.mastery - session.initial_mastery,
        rounds_answered=session.questions_answered,
        correct_answers=sum(1 for record in session.rounds if record.correct),
        average_score=average,
        rounds=[
            {
                "round": record.round_number,
                "prompt": record.prompt,
                "choice": record.choice,
                "correct_answer": record.correct_answer,
                "level": record.level,
                "score": record.score,
                "mastery_before": record.mastery_before,
                "mastery_after": record.mastery_after,
            }
            for record in session.rounds
        ],
    )
