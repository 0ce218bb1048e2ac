from __future__ import annotations

import logging

from quizgate.core.errors import InputValidationError
from quizgate.core.security import get_password_hash, verify_password
from quizgate.models.user import User
from quizgate.schemas.auth import RegisterRequest, UserOut
from quizgate.services.quiz_store import QuizStore
from quizgate.services.username_service import validate_username

logger = logging.getLogger(__name__)


class InvalidCredentials(Exception):
    pass


def user_out(u: User) -> UserOut:
    return UserOut(
        id=int(u.id),
        email=str(u.email),
        full_name=u.full_name,
        role=u.role or "student",
        username=u.username,
    )


def register_user(store: QuizStore, payload: RegisterRequest) -> User:
    email = str(payload.email).strip().lower()
    if "@" not in email:
        raise InputValidationError("Please enter a valid email address")
    if store.get_user_by_email(email) is not None:
        raise InputValidationError("Email already exists")
    user = store.create_user(
        email=email,
        full_name=(payload.full_name or "").strip() or "User",
        role=payload.role,
        password_hash=get_password_hash(payload.password),
    )
    logger.info("registered %s %s", user.role, user.id)
    return user


def authenticate(store: QuizStore, email: str, password: str) -> User:
    user = store.get_user_by_email(str(email).strip().lower())
    if user is None or not user.password_hash:
        raise InvalidCredentials()
    if not verify_password(password, str(user.password_hash)):
        raise InvalidCredentials()
    return user


def set_username(store: QuizStore, user_id: int, raw_username: str) -> User:
    username = validate_username(raw_username)
    user = store.set_username(user_id, username)
    logger.info("user %s set username %s", user_id, username)
    return user
