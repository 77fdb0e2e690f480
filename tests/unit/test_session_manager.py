"""
Unit Tests for the in-memory quiz session registry
"""

import asyncio

import pytest

from adaptive_quiz.session_controller import QuizSessionController
from adaptive_quiz.session_manager import QuizSessionManager
from adaptive_quiz.session_state import ROUND_LIMIT

from conftest import LEARNER_ID, TOPIC_ID, TOPIC_TITLE, FakeAnswerEvaluator


@pytest.fixture
def manager(provider, evaluator, store):
    def factory(on_complete=None):
        return QuizSessionController(provider, evaluator, store, on_complete=on_complete)
    return QuizSessionManager(factory)


class TestQuizSessionManager:

    def test_create_registers_controller(self, manager):
        quiz_id = manager.create(owner_id=LEARNER_ID)

        assert quiz_id.startswith("quiz_")
        assert isinstance(manager.get(quiz_id), QuizSessionController)
        assert manager.owner_of(quiz_id) == LEARNER_ID
        assert len(manager) == 1

    def test_ids_are_unique(self, manager):
        assert manager.create() != manager.create()

    def test_unknown_id(self, manager):
        assert manager.get("quiz_missing") is None
        assert manager.get_result("quiz_missing") is None

    def test_discard(self, manager):
        quiz_id = manager.create()

        assert manager.discard(quiz_id)
        assert manager.get(quiz_id) is None
        assert not manager.discard(quiz_id)

    @pytest.mark.asyncio
    async def test_completion_records_result_and_drops_session(self, manager):
        quiz_id = manager.create(owner_id=LEARNER_ID)
        controller = manager.get(quiz_id)
        await controller.initialize(TOPIC_ID, LEARNER_ID, topic_title=TOPIC_TITLE)

        for _ in range(ROUND_LIMIT):
            await controller.submit_answer("B")
            await controller.advance()

        assert manager.get(quiz_id) is None
        assert len(manager) == 0

        result = manager.get_result(quiz_id)
        assert result.rounds_answered == ROUND_LIMIT
        assert result.final_mastery == pytest.approx(0.5)
        assert result.learner_id == LEARNER_ID
        assert manager.owner_of(quiz_id) == LEARNER_ID

    @pytest.mark.asyncio
    async def test_discard_removes_completed_result(self, manager):
        quiz_id = manager.create(owner_id=LEARNER_ID)
        controller = manager.get(quiz_id)
        await controller.initialize(TOPIC_ID, LEARNER_ID)
        for _ in range(ROUND_LIMIT):
            await controller.submit_answer("B")
            await controller.advance()

        assert manager.discard(quiz_id)
        assert manager.get_result(quiz_id) is None
        assert manager.owner_of(quiz_id) is None


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestPruning:

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def manager(self, provider, evaluator, store, clock):
        def factory(on_complete=None):
            return QuizSessionController(provider, evaluator, store, on_complete=on_complete)
        return QuizSessionManager(factory, session_ttl=60, clock=clock)

    def test_idle_session_is_pruned_on_create(self, manager, clock):
        stale = manager.create(owner_id=LEARNER_ID)
        clock.now += 61

        fresh = manager.create(owner_id=LEARNER_ID)

        assert manager.get(stale) is None
        assert manager.owner_of(stale) is None
        assert manager.get(fresh) is not None
        assert len(manager) == 1

    def test_access_keeps_session_alive(self, manager, clock):
        quiz_id = manager.create()
        clock.now += 50
        manager.get(quiz_id)
        clock.now += 50

        assert manager.prune() == 0
        assert manager.get(quiz_id) is not None

    @pytest.mark.asyncio
    async def test_old_results_are_pruned(self, manager, clock):
        quiz_id = manager.create(owner_id=LEARNER_ID)
        controller = manager.get(quiz_id)
        await controller.initialize(TOPIC_ID, LEARNER_ID)
        for _ in range(ROUND_LIMIT):
            await controller.submit_answer("B")
            await controller.advance()

        clock.now += 30
        assert manager.prune() == 0
        assert manager.get_result(quiz_id) is not None

        clock.now += 31
        assert manager.prune() == 1
        assert manager.get_result(quiz_id) is None
        assert manager.owner_of(quiz_id) is None

    @pytest.mark.asyncio
    async def test_session_with_request_in_flight_is_kept(self, provider, store, clock):
        entered = asyncio.Event()
        release = asyncio.Event()

        class BlockingEvaluator(FakeAnswerEvaluator):
            async def evaluate_answer(self, *args):
                entered.set()
                await release.wait()
                return await super().evaluate_answer(*args)

        def factory(on_complete=None):
            return QuizSessionController(provider, BlockingEvaluator(), store, on_complete=on_complete)

        manager = QuizSessionManager(factory, session_ttl=60, clock=clock)
        quiz_id = manager.create(owner_id=LEARNER_ID)
        controller = manager.get(quiz_id)
        await controller.initialize(TOPIC_ID, LEARNER_ID)

        pending = asyncio.create_task(controller.submit_answer("B"))
        await entered.wait()
        clock.now += 120

        assert manager.prune() == 0
        assert manager.get(quiz_id) is controller

        release.set()
        await pending

    def test_no_ttl_keeps_everything(self, provider, evaluator, store, clock):
        manager = QuizSessionManager(
            lambda on_complete=None: QuizSessionController(provider, evaluator, store, on_complete=on_complete),
            clock=clock,
        )
        quiz_id = manager.create()
        clock.now += 10_000

        assert manager.prune() == 0
        assert manager.get(quiz_id) is not None
