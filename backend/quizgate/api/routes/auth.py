from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordRequestForm

from quizgate.api.deps import SessionContext, get_session_context, get_store
from quizgate.core.security import create_access_token
from quizgate.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, TokenResponse, UserOut
from quizgate.schemas.common import Envelope
from quizgate.services.quiz_store import QuizStore
from quizgate.services.user_service import InvalidCredentials, authenticate, register_user, user_out


router = APIRouter(tags=["auth"])


def _token_for(user_id: int) -> TokenResponse:
    return TokenResponse(access_token=create_access_token(subject=str(user_id)))


@router.post("/auth/register", response_model=Envelope)
def register(request: Request, payload: RegisterRequest, store: QuizStore = Depends(get_store)):
    u = register_user(store, payload)
    out = AuthResponse(token=_token_for(u.id), user=user_out(u)).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/auth/login-json", response_model=Envelope)
def login_json(request: Request, payload: LoginRequest, store: QuizStore = Depends(get_store)):
    try:
        u = authenticate(store, payload.email, payload.password)
    except InvalidCredentials:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    out = AuthResponse(token=_token_for(u.id), user=user_out(u)).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/auth/login", response_model=Envelope)
def login_form(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), store: QuizStore = Depends(get_store)):
    # OAuth2PasswordRequestForm uses fields: username (the email here), password
    try:
        u = authenticate(store, form_data.username, form_data.password)
    except InvalidCredentials:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = _token_for(u.id)
    out = {"access_token": token.access_token, "token_type": token.token_type}
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/auth/logout", response_model=Envelope)
def logout(request: Request, ctx: SessionContext = Depends(get_session_context)):
    # Tokens are not tracked server side; the client drops its copy.
    return {"request_id": request.state.request_id, "data": {"signed_out": True}, "error": None}


@router.get("/auth/me", response_model=Envelope)
def me(request: Request, ctx: SessionContext = Depends(get_session_context)):
    out = UserOut(
        id=ctx.user_id, email=ctx.email, full_name=ctx.full_name, role=ctx.role, username=ctx.username
    ).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}
