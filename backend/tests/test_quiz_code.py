from __future__ import annotations

import pytest

from quizgate.core.config import settings
from quizgate.core.errors import TransientStoreError
from quizgate.services import quiz_code_service
from quizgate.services.quiz_code_service import (
    QUIZ_CODE_ALPHABET,
    generate_unique_quiz_code,
    make_quiz_code,
    share_url,
)


class _FakeStore:
    def __init__(self, taken):
        self.taken = set(taken)
        self.checked = []

    def quiz_code_taken(self, code):
        self.checked.append(code)
        return code in self.taken


def test_codes_are_six_uppercase_alphanumerics():
    for _ in range(200):
        code = make_quiz_code()
        assert len(code) == 6
        assert set(code) <= set(QUIZ_CODE_ALPHABET)


def test_taken_codes_are_redrawn(monkeypatch):
    draws = iter(["AAAAAA", "BBBBBB", "CCCCCC"])
    monkeypatch.setattr(quiz_code_service, "make_quiz_code", lambda length=None: next(draws))
    store = _FakeStore({"AAAAAA", "BBBBBB"})

    assert generate_unique_quiz_code(store) == "CCCCCC"
    assert store.checked == ["AAAAAA", "BBBBBB", "CCCCCC"]


def test_gives_up_after_max_tries(monkeypatch):
    monkeypatch.setattr(quiz_code_service, "make_quiz_code", lambda length=None: "AAAAAA")
    store = _FakeStore({"AAAAAA"})

    with pytest.raises(TransientStoreError):
        generate_unique_quiz_code(store, max_tries=3)
    assert len(store.checked) == 3


def test_share_url_uses_frontend_origin(monkeypatch):
    monkeypatch.setattr(settings, "FRONTEND_ORIGIN", "https://quiz.example.com")
    assert share_url("ABC123") == "https://quiz.example.com/quiz/ABC123"
