from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from quizgate.api.deps import SessionContext, require_student, require_teacher
from quizgate.api.routes import attempts
from quizgate.core.errors import InputValidationError, NotAvailableError, NotFoundError
from quizgate.services.attempt_registry import AttemptRegistry


def _req():
    return SimpleNamespace(state=SimpleNamespace(request_id="req-attempt"))


def _ctx(user, role="student"):
    return SessionContext(user_id=int(user.id), role=role, email=user.email, full_name=user.full_name, username=user.username)


@pytest.fixture()
def live(session_factory, seed):
    teacher = seed.user("teacher")
    student = seed.user(username="nia")
    quiz = seed.quiz(teacher)
    reg = AttemptRegistry(session_factory)
    c = reg.new_controller()
    c.initialize(quiz.id, student.id)
    reg.register(c)
    return SimpleNamespace(registry=reg, controller=c, student=student, seed=seed)


def test_state_is_owner_only(live):
    out = attempts.state(request=_req(), attempt_id=live.controller.attempt_id, ctx=_ctx(live.student), registry=live.registry)
    assert out["request_id"] == "req-attempt"
    assert out["data"]["state"] == "in_progress"
    assert out["error"] is None

    other = live.seed.user(username="oto")
    with pytest.raises(NotFoundError):
        attempts.state(request=_req(), attempt_id=live.controller.attempt_id, ctx=_ctx(other), registry=live.registry)


def test_submit_reports_score_and_result_time(live):
    c = live.controller
    attempts.record_answer(
        request=_req(),
        attempt_id=c.attempt_id,
        question_id=c.questions[0].id,
        payload=SimpleNamespace(answer="A"),
        ctx=_ctx(live.student),
        registry=live.registry,
    )
    out = attempts.submit(request=_req(), attempt_id=c.attempt_id, ctx=_ctx(live.student), registry=live.registry)

    data = out["data"]
    assert data["score"] == 33
    assert (data["results_available_at"] - data["completed_at"]).total_seconds() == 3600
    assert live.registry.get(c.attempt_id) is None


def test_submit_in_flight_is_not_available(live):
    c = live.controller
    c._submit_lock.acquire()
    try:
        with pytest.raises(NotAvailableError):
            attempts.submit(request=_req(), attempt_id=c.attempt_id, ctx=_ctx(live.student), registry=live.registry)
    finally:
        c._submit_lock.release()


def test_role_guards(seed):
    teacher = seed.user("teacher")
    fresh = seed.user()

    assert require_teacher(_ctx(teacher, "teacher")).user_id == teacher.id
    with pytest.raises(HTTPException) as ei:
        require_teacher(_ctx(fresh))
    assert ei.value.status_code == 403

    with pytest.raises(InputValidationError):
        require_student(_ctx(fresh))
    with pytest.raises(HTTPException):
        require_student(_ctx(teacher, "teacher"))
