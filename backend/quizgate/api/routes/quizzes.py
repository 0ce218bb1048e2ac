from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from quizgate.api.deps import (
    AttemptRegistry,
    SessionContext,
    get_registry,
    get_session_context,
    get_store,
    require_student,
    require_username,
)
from quizgate.core.errors import NotFoundError
from quizgate.schemas.attempt import AttemptStartOut
from quizgate.schemas.common import Envelope
from quizgate.schemas.quiz import JoinQuizRequest
from quizgate.services.admission_service import QUIZ_NOT_FOUND_MESSAGE, admit, resolve_quiz_by_code
from quizgate.services.attempt_controller import AttemptController
from quizgate.services.quiz_store import QuizStore
from quizgate.services.results_service import quiz_public_out


logger = logging.getLogger(__name__)

router = APIRouter(tags=["quizzes"])


@router.get("/quizzes/code/{quiz_code}", response_model=Envelope)
def lookup(
    request: Request,
    quiz_code: str,
    ctx: SessionContext = Depends(get_session_context),
    store: QuizStore = Depends(get_store),
):
    require_username(ctx)
    quiz = resolve_quiz_by_code(store, quiz_code)
    already = ctx.role == "student" and store.find_attempt(int(quiz.id), ctx.user_id) is not None
    data = quiz_public_out(quiz, already_attempted=already).model_dump()
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.post("/quizzes/join", response_model=Envelope)
def join(
    request: Request,
    payload: JoinQuizRequest,
    ctx: SessionContext = Depends(require_student),
    store: QuizStore = Depends(get_store),
):
    quiz = resolve_quiz_by_code(store, payload.quiz_code)
    admit(store, quiz, ctx.user_id)
    return {"request_id": request.state.request_id, "data": quiz_public_out(quiz).model_dump(), "error": None}


@router.post("/quizzes/{quiz_id}/start", response_model=Envelope)
async def start(
    request: Request,
    quiz_id: int,
    ctx: SessionContext = Depends(require_student),
    store: QuizStore = Depends(get_store),
    registry: AttemptRegistry = Depends(get_registry),
):
    def _admit_and_initialize() -> AttemptController:
        quiz = store.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(QUIZ_NOT_FOUND_MESSAGE)
        admit(store, quiz, ctx.user_id)
        controller = registry.new_controller()
        controller.initialize(int(quiz.id), ctx.user_id)
        return controller

    controller = await run_in_threadpool(_admit_and_initialize)
    registry.register(controller)
    # The countdown runs on this event loop until submit, abandon or shutdown.
    registry.start_countdown(controller)

    out = AttemptStartOut(
        attempt_id=controller.attempt_id,
        quiz_id=controller.quiz_id,
        quiz_title=controller.quiz_title,
        started_at=controller.started_at,
        duration_seconds=controller.duration_seconds,
        remaining_seconds=controller.remaining_seconds,
        questions=controller.questions,
    ).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}
