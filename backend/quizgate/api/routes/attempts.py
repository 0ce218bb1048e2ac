from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from quizgate.api.deps import AttemptRegistry, SessionContext, get_registry, get_store, require_student
from quizgate.core.errors import NotAvailableError, NotFoundError
from quizgate.schemas.attempt import AdvanceRequest, AttemptStateOut, RecordAnswerRequest, SubmitOut
from quizgate.schemas.common import Envelope
from quizgate.services.attempt_controller import AttemptController
from quizgate.services.quiz_store import QuizStore
from quizgate.services.results_service import attempt_results, my_attempts
from quizgate.services.scoring import result_availability


router = APIRouter(tags=["attempts"])


def _live_controller(registry: AttemptRegistry, attempt_id: int, ctx: SessionContext) -> AttemptController:
    controller = registry.get(attempt_id)
    if controller is None or controller.student_id != ctx.user_id:
        raise NotFoundError("No attempt in progress with this id")
    return controller


def _state_out(controller: AttemptController) -> AttemptStateOut:
    return AttemptStateOut(
        attempt_id=controller.attempt_id,
        quiz_id=controller.quiz_id,
        state=controller.state.value,
        current_index=controller.current_index,
        question_count=controller.question_count,
        remaining_seconds=controller.remaining_seconds,
        answers=dict(controller.answers),
    )


# Declared before /attempts/{attempt_id} so "mine" is not read as an id.
@router.get("/attempts/mine", response_model=Envelope)
def mine(request: Request, ctx: SessionContext = Depends(require_student), store: QuizStore = Depends(get_store)):
    data = my_attempts(store, ctx.user_id).model_dump()
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/attempts/{attempt_id}", response_model=Envelope)
def state(
    request: Request,
    attempt_id: int,
    ctx: SessionContext = Depends(require_student),
    registry: AttemptRegistry = Depends(get_registry),
):
    controller = _live_controller(registry, attempt_id, ctx)
    return {"request_id": request.state.request_id, "data": _state_out(controller).model_dump(), "error": None}


@router.put("/attempts/{attempt_id}/answers/{question_id}", response_model=Envelope)
def record_answer(
    request: Request,
    attempt_id: int,
    question_id: int,
    payload: RecordAnswerRequest,
    ctx: SessionContext = Depends(require_student),
    registry: AttemptRegistry = Depends(get_registry),
):
    controller = _live_controller(registry, attempt_id, ctx)
    controller.record_answer(question_id, payload.answer)
    return {"request_id": request.state.request_id, "data": _state_out(controller).model_dump(), "error": None}


@router.post("/attempts/{attempt_id}/advance", response_model=Envelope)
def advance(
    request: Request,
    attempt_id: int,
    payload: AdvanceRequest,
    ctx: SessionContext = Depends(require_student),
    registry: AttemptRegistry = Depends(get_registry),
):
    controller = _live_controller(registry, attempt_id, ctx)
    controller.advance(1 if payload.direction == "next" else -1)
    return {"request_id": request.state.request_id, "data": _state_out(controller).model_dump(), "error": None}


@router.post("/attempts/{attempt_id}/submit", response_model=Envelope)
def submit(
    request: Request,
    attempt_id: int,
    ctx: SessionContext = Depends(require_student),
    registry: AttemptRegistry = Depends(get_registry),
):
    controller = _live_controller(registry, attempt_id, ctx)
    result = controller.submit()
    if result is None:
        raise NotAvailableError("This attempt is already being submitted")

    out = SubmitOut(
        attempt_id=result.attempt_id,
        score=result.score,
        correct_count=result.correct_count,
        total_questions=result.total_questions,
        time_taken_minutes=result.time_taken_minutes,
        completed_at=result.completed_at,
        results_available_at=result_availability(result.completed_at, now=result.completed_at).available_at,
    ).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/attempts/{attempt_id}/results", response_model=Envelope)
def results(
    request: Request,
    attempt_id: int,
    ctx: SessionContext = Depends(require_student),
    store: QuizStore = Depends(get_store),
):
    data = attempt_results(store, ctx.user_id, attempt_id).model_dump()
    return {"request_id": request.state.request_id, "data": data, "error": None}
