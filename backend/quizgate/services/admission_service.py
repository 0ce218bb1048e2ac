"""Checks that gate whether a student may start an attempt."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from quizgate.core.errors import AlreadyAttemptedError, NotAvailableError, NotFoundError
from quizgate.models.attempt import QuizAttempt
from quizgate.models.quiz import Quiz
from quizgate.services.quiz_store import QuizStore
from quizgate.services.timeutil import as_utc, utcnow


QUIZ_NOT_FOUND_MESSAGE = "Quiz not found. Please check the quiz code and try again."


def _fmt(dt: datetime) -> str:
    return as_utc(dt).strftime("%Y-%m-%d %H:%M UTC")


def check_admission(quiz: Quiz, existing_attempt: Optional[QuizAttempt], *, now: Optional[datetime] = None) -> None:
    now = as_utc(now) if now is not None else utcnow()

    if not bool(quiz.is_active):
        raise NotAvailableError("This quiz is not currently active.")

    start_time = as_utc(quiz.start_time)
    if start_time is not None and now < start_time:
        raise NotAvailableError(
            f"Quiz will be available from {_fmt(start_time)}",
            details={"start_time": start_time.isoformat()},
        )

    end_time = as_utc(quiz.end_time)
    if end_time is not None and now > end_time:
        raise NotAvailableError(
            f"Quiz expired on {_fmt(end_time)}",
            details={"end_time": end_time.isoformat()},
        )

    if existing_attempt is not None:
        raise AlreadyAttemptedError()


def resolve_quiz_by_code(store: QuizStore, code: str) -> Quiz:
    quiz = store.get_quiz_by_code(code)
    if quiz is None:
        raise NotFoundError(QUIZ_NOT_FOUND_MESSAGE)
    return quiz


def admit(store: QuizStore, quiz: Quiz, student_id: int, *, now: Optional[datetime] = None) -> None:
    """Raise unless ``student_id`` may start an attempt at ``quiz`` right now."""
    check_admission(quiz, store.find_attempt(int(quiz.id), int(student_id)), now=now)
