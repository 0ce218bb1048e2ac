from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from quizgate.api.deps import SessionContext, get_store, require_teacher
from quizgate.schemas.common import Envelope
from quizgate.schemas.quiz import GenerateQuestionsRequest, QuizActiveUpdate, QuizCreateRequest
from quizgate.services.analytics_service import quiz_analytics
from quizgate.services.question_generation_service import generate_questions
from quizgate.services.quiz_authoring_service import (
    create_quiz,
    delete_quiz,
    get_owned_quiz,
    quiz_detail,
    quiz_out,
    set_quiz_active,
    teacher_dashboard,
)
from quizgate.services.quiz_code_service import share_url
from quizgate.services.quiz_store import QuizStore


router = APIRouter(tags=["teacher-quizzes"])


@router.post("/teacher/quizzes/generate", response_model=Envelope)
def generate(request: Request, payload: GenerateQuestionsRequest, ctx: SessionContext = Depends(require_teacher)):
    drafts = generate_questions(payload.topic, payload.configs)
    data = {"topic": payload.topic, "questions": [d.model_dump() for d in drafts]}
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.post("/teacher/quizzes", response_model=Envelope)
def create(
    request: Request,
    payload: QuizCreateRequest,
    ctx: SessionContext = Depends(require_teacher),
    store: QuizStore = Depends(get_store),
):
    quiz = create_quiz(store, ctx.user_id, payload)
    return {"request_id": request.state.request_id, "data": quiz_out(quiz).model_dump(), "error": None}


@router.get("/teacher/quizzes", response_model=Envelope)
def list_mine(request: Request, ctx: SessionContext = Depends(require_teacher), store: QuizStore = Depends(get_store)):
    data = teacher_dashboard(store, ctx.user_id).model_dump()
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/teacher/quizzes/{quiz_id}", response_model=Envelope)
def get_one(
    request: Request,
    quiz_id: int,
    ctx: SessionContext = Depends(require_teacher),
    store: QuizStore = Depends(get_store),
):
    quiz = get_owned_quiz(store, ctx.user_id, quiz_id)
    return {"request_id": request.state.request_id, "data": quiz_detail(store, quiz).model_dump(), "error": None}


@router.patch("/teacher/quizzes/{quiz_id}/active", response_model=Envelope)
def toggle_active(
    request: Request,
    quiz_id: int,
    payload: QuizActiveUpdate,
    ctx: SessionContext = Depends(require_teacher),
    store: QuizStore = Depends(get_store),
):
    quiz = set_quiz_active(store, ctx.user_id, quiz_id, payload.is_active)
    return {"request_id": request.state.request_id, "data": quiz_out(quiz).model_dump(), "error": None}


@router.delete("/teacher/quizzes/{quiz_id}", response_model=Envelope)
def remove(
    request: Request,
    quiz_id: int,
    ctx: SessionContext = Depends(require_teacher),
    store: QuizStore = Depends(get_store),
):
    delete_quiz(store, ctx.user_id, quiz_id)
    return {"request_id": request.state.request_id, "data": {"deleted": True, "quiz_id": quiz_id}, "error": None}


@router.get("/teacher/quizzes/{quiz_id}/share", response_model=Envelope)
def share(
    request: Request,
    quiz_id: int,
    ctx: SessionContext = Depends(require_teacher),
    store: QuizStore = Depends(get_store),
):
    quiz = get_owned_quiz(store, ctx.user_id, quiz_id)
    data = {"quiz_code": quiz.quiz_code, "share_url": share_url(quiz.quiz_code)}
    return {"request_id": request.state.request_id, "data": data, "error": None}


@router.get("/teacher/quizzes/{quiz_id}/analytics", response_model=Envelope)
def analytics(
    request: Request,
    quiz_id: int,
    ctx: SessionContext = Depends(require_teacher),
    store: QuizStore = Depends(get_store),
):
    quiz = get_owned_quiz(store, ctx.user_id, quiz_id)
    return {"request_id": request.state.request_id, "data": quiz_analytics(store, quiz).model_dump(), "error": None}
