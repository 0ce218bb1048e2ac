from __future__ import annotations

import secrets
import string

from quizgate.core.config import settings
from quizgate.core.errors import TransientStoreError
from quizgate.services.quiz_store import QuizStore


QUIZ_CODE_ALPHABET = string.ascii_uppercase + string.digits


def make_quiz_code(length: int | None = None) -> str:
    n = int(length or settings.QUIZ_CODE_LENGTH)
    return "".join(secrets.choice(QUIZ_CODE_ALPHABET) for _ in range(n))


def generate_unique_quiz_code(store: QuizStore, *, max_tries: int | None = None) -> str:
    """Draw codes uniformly from [A-Z0-9] until one is not taken."""
    tries = int(max_tries or settings.QUIZ_CODE_MAX_TRIES)
    for _ in range(tries):
        code = make_quiz_code()
        if not store.quiz_code_taken(code):
            return code
    raise TransientStoreError("Failed to generate a quiz code. Please try again.")


def share_url(quiz_code: str) -> str:
    return f"{settings.FRONTEND_ORIGIN}/quiz/{quiz_code}"
