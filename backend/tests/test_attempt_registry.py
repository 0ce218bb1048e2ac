from __future__ import annotations

import asyncio

import pytest

from quizgate.services.attempt_controller import AttemptState
from quizgate.services.attempt_registry import AttemptRegistry


@pytest.fixture()
def registry(session_factory):
    return AttemptRegistry(session_factory)


@pytest.fixture()
def quiz_and_student(seed):
    teacher = seed.user("teacher")
    student = seed.user(username="erin")
    return seed.quiz(teacher, duration_minutes=1), student


def _start(registry, quiz, student):
    c = registry.new_controller()
    c.initialize(quiz.id, student.id)
    registry.register(c)
    return c


def test_register_requires_started_controller(registry):
    with pytest.raises(ValueError):
        registry.register(registry.new_controller())


def test_countdown_reaching_zero_submits_and_unregisters(registry, store, quiz_and_student):
    quiz, student = quiz_and_student

    async def scenario():
        c = _start(registry, quiz, student)
        c.record_answer(c.questions[0].id, "A")
        task = registry.start_countdown(c, interval=0.001)
        await asyncio.wait_for(asyncio.gather(task, return_exceptions=True), timeout=10)
        return c

    c = asyncio.run(scenario())

    assert c.state == AttemptState.COMPLETED
    assert c.remaining_seconds == 0
    assert registry.get(c.attempt_id) is None
    assert len(registry) == 0
    row = store.get_attempt(c.attempt_id)
    assert row.is_completed is True
    assert row.score == 33


def test_manual_submit_cancels_countdown(registry, quiz_and_student):
    quiz, student = quiz_and_student

    async def scenario():
        c = _start(registry, quiz, student)
        task = registry.start_countdown(c)
        await asyncio.to_thread(c.submit)
        await asyncio.wait_for(asyncio.gather(task, return_exceptions=True), timeout=5)
        return c, task

    c, task = asyncio.run(scenario())

    assert task.cancelled()
    assert c.state == AttemptState.COMPLETED
    assert c.remaining_seconds == 60
    assert len(registry) == 0


def test_shutdown_cancels_countdowns_and_drops_live_attempts(registry, store, quiz_and_student):
    quiz, student = quiz_and_student

    async def scenario():
        c = _start(registry, quiz, student)
        task = registry.start_countdown(c)
        await asyncio.sleep(0)
        await registry.shutdown()
        return c, task

    c, task = asyncio.run(scenario())

    assert task.cancelled()
    assert len(registry) == 0
    assert c.state == AttemptState.IN_PROGRESS
    assert store.get_attempt(c.attempt_id).is_completed is False
