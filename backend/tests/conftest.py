from __future__ import annotations

import os

# Must be set before quizgate.core.config is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import datetime
from typing import List, Optional

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizgate.db.base import Base
from quizgate.models.question import Question
from quizgate.models.quiz import Quiz
from quizgate.models.user import User
from quizgate.services.quiz_store import QuizStore, store_scope


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def store(session_factory):
    db = session_factory()
    try:
        yield QuizStore(db)
    finally:
        db.close()


@pytest.fixture()
def store_factory(session_factory):
    return lambda: store_scope(session_factory)


class Seeder:
    def __init__(self, store: QuizStore):
        self.store = store
        self._n = 0

    def user(self, role: str = "student", *, username: Optional[str] = None, email: Optional[str] = None) -> User:
        self._n += 1
        u = User(
            email=email or f"{role}{self._n}@example.com",
            full_name=f"{role.title()} {self._n}",
            role=role,
            username=username,
            password_hash="x",
        )
        self.store.db.add(u)
        self.store.db.commit()
        return u

    def quiz(
        self,
        teacher: User,
        questions: Optional[List[dict]] = None,
        *,
        is_active: bool = True,
        duration_minutes: int = 10,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        code: Optional[str] = None,
    ) -> Quiz:
        self._n += 1
        questions = questions if questions is not None else [
            {"question_text": "Pick A", "question_type": "multiple_choice", "correct_answer": "A", "options": ["A", "B", "C", "D"]},
            {"question_text": "The sky is blue", "question_type": "true_false", "correct_answer": "True"},
            {"question_text": "6 x 7 = ___", "question_type": "fill_in_the_blank", "correct_answer": "42"},
        ]
        quiz = Quiz(
            teacher_id=int(teacher.id),
            title=f"Quiz {self._n}",
            total_questions=len(questions),
            duration_minutes=duration_minutes,
            start_time=start_time,
            end_time=end_time,
            is_active=is_active,
            quiz_code=code or f"Q{self._n:05d}",
        )
        rows = [
            Question(
                order_index=i,
                question_text=q["question_text"],
                question_type=q["question_type"],
                difficulty=q.get("difficulty", "medium"),
                correct_answer=q["correct_answer"],
                options=q.get("options"),
                points=q.get("points", 2),
            )
            for i, q in enumerate(questions)
        ]
        return self.store.insert_quiz(quiz, rows)


@pytest.fixture()
def seed(store):
    return Seeder(store)
