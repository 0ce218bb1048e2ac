from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from quizgate.api.deps import SessionContext, get_session_context, get_store
from quizgate.schemas.common import Envelope
from quizgate.schemas.profile import UsernameUpdateRequest
from quizgate.services.quiz_store import QuizStore
from quizgate.services.user_service import set_username, user_out


router = APIRouter(tags=["profile"])


@router.put("/profile/username", response_model=Envelope)
def update_username(
    request: Request,
    payload: UsernameUpdateRequest,
    ctx: SessionContext = Depends(get_session_context),
    store: QuizStore = Depends(get_store),
):
    u = set_username(store, ctx.user_id, payload.username)
    return {"request_id": request.state.request_id, "data": user_out(u).model_dump(), "error": None}
