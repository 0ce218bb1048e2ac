"""Common FastAPI dependencies.

The bearer token issued at sign-in is decoded on every request and the
profile is loaded into an immutable ``SessionContext``; no session state is
kept on the server.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from quizgate.core.errors import InputValidationError
from quizgate.core.security import safe_decode_token
from quizgate.db.session import get_db
from quizgate.services.attempt_registry import AttemptRegistry, get_registry
from quizgate.services.quiz_store import QuizStore

__all__ = [
    "SessionContext",
    "get_db",
    "get_registry",
    "get_store",
    "get_session_context",
    "require_teacher",
    "require_student",
    "require_username",
    "AttemptRegistry",
]


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    user_id: int
    role: str
    email: str
    full_name: str
    username: Optional[str] = None

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"


def get_store(db: Session = Depends(get_db)) -> QuizStore:
    return QuizStore(db)


def get_session_context(
    token: Optional[str] = Depends(oauth2_scheme),
    store: QuizStore = Depends(get_store),
) -> SessionContext:
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    claims = safe_decode_token(token)
    if not claims or not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    try:
        uid = int(str(claims["sub"]))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = store.get_user(uid)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return SessionContext(
        user_id=int(user.id),
        role=str(user.role or "student"),
        email=str(user.email),
        full_name=str(user.full_name),
        username=user.username,
    )


def require_teacher(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if ctx.role != "teacher":
        raise HTTPException(status_code=403, detail="Teacher role required")
    return ctx


def require_username(ctx: SessionContext) -> SessionContext:
    """Students reach no quiz until they have picked a username."""
    if ctx.role == "student" and not ctx.username:
        raise InputValidationError("Please set a username before taking quizzes")
    return ctx


def require_student(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    if ctx.role != "student":
        raise HTTPException(status_code=403, detail="Student role required")
    return require_username(ctx)
