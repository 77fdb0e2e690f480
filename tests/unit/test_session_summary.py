"""
Unit Tests for the quiz display snapshot and completion summary
"""

import pytest

from adaptive_quiz.session_state import (
    ROUND_LIMIT,
    Evaluation,
    Question,
    QuizSession,
    QuizStatus,
    RoundRecord,
)
from adaptive_quiz.session_summary import action_label, build_snapshot, build_summary


@pytest.fixture
def session():
    return QuizSession(
        topic_id="topic-1",
        topic_title="Python Basics",
        learner_id="user-1",
        mastery=0.346,
        initial_mastery=0.2,
        level="medium",
        status=QuizStatus.AWAITING_ANSWER,
        question=Question(prompt="2 + 2?", options=["3", "4", "5"], correct_answer="4"),
    )


class TestSnapshot:

    def test_awaiting_answer_hides_correct_answer(self, session):
        snapshot = build_snapshot(session)

        assert snapshot.status == "awaiting_answer"
        assert snapshot.question == {"prompt": "2 + 2?", "options": ["3", "4", "5"]}
        assert snapshot.evaluation is None
        assert snapshot.mastery_percent == 35
        assert snapshot.level == "medium"
        assert snapshot.question_number == 1
        assert snapshot.progress_percent == 0
        assert snapshot.round_limit == ROUND_LIMIT
        assert snapshot.action_label == "Submit"

    def test_evaluated_reveals_answer_and_feedback(self, session):
        session.status = QuizStatus.EVALUATED
        session.questions_answered = 2
        session.evaluation = Evaluation(score=0.75, feedback="Nearly", correction="It is 4.")

        snapshot = build_snapshot(session)

        assert snapshot.question["correct_answer"] == "4"
        assert snapshot.evaluation == {
            "score": 0.75,
            "score_percent": 75,
            "feedback": "Nearly",
            "correction": "It is 4.",
        }
        assert snapshot.progress_percent == pytest.approx(40.0)
        assert snapshot.question_number == 3
        assert snapshot.action_label == "Next"

    def test_sentinel_correction_is_suppressed(self, session):
        session.status = QuizStatus.EVALUATED
        session.evaluation = Evaluation(score=0.8, feedback="Well done", correction="None needed")

        assert build_snapshot(session).evaluation["correction"] is None

    def test_last_round_labels(self, session):
        session.status = QuizStatus.EVALUATED
        session.questions_answered = ROUND_LIMIT

        snapshot = build_snapshot(session)

        assert snapshot.action_label == "Finish"
        assert snapshot.question_number == ROUND_LIMIT
        assert snapshot.progress_percent == 100

    def test_busy_label(self, session):
        assert action_label(session, busy=True) == "Processing..."
        assert build_snapshot(session, busy=True).busy

    def test_to_dict(self, session):
        data = build_snapshot(session).to_dict()
        assert data["topic_title"] == "Python Basics"
        assert data["question"]["options"] == ["3", "4", "5"]


class TestSummary:

    def test_summary_of_rounds(self, session):
        session.status = QuizStatus.COMPLETED
        session.questions_answered = 2
        session.mastery = 0.5
        session.rounds = [
            RoundRecord(1, "Q1", "4", "4", "easy", 1.0, 0.2, 0.35),
            RoundRecord(2, "Q2", "3", "4", "medium", 0.5, 0.35, 0.5),
        ]

        summary = build_summary(session)

        assert summary.initial_mastery == 0.2
        assert summary.final_mastery == 0.5
        assert summary.mastery_delta == pytest.approx(0.3)
        assert summary.rounds_answered == 2
        assert summary.correct_answers == 1
        assert summary.average_score == pytest.approx(0.75)
        assert summary.rounds[1]["level"] == "medium"
        assert summary.to_dict()["learner_id"] == "user-1"

    def test_summary_with_no_rounds(self, session):
        summary = build_summary(session)

        assert summary.average_score == 0.0
        assert summary.rounds == []
