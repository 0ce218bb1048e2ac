"""Typed gateway to the quiz store.

All reads and writes of quizzes, questions, attempts and answers go through
``QuizStore`` so callers work with the mapped entities directly. SQLAlchemy
failures are translated into the error taxonomy: the attempt and username
uniqueness conflicts keep their domain meaning, everything else becomes a
``TransientStoreError``.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, ContextManager, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from quizgate.core.errors import AlreadyAttemptedError, InputValidationError, TransientStoreError
from quizgate.models.attempt import QuizAttempt
from quizgate.models.question import Question
from quizgate.models.quiz import Quiz
from quizgate.models.student_answer import StudentAnswer
from quizgate.models.user import User

logger = logging.getLogger(__name__)


def _store_op(action: str):
    """Turn unexpected SQLAlchemy errors into a generic "failed to <action>" error."""

    def deco(fn):
        @functools.wraps(fn)
        def wrapper(self: "QuizStore", *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except SQLAlchemyError as exc:
                logger.warning("store operation %r failed: %s", action, exc)
                self.db.rollback()
                raise TransientStoreError(f"Failed to {action}. Please try again.") from exc

        return wrapper

    return deco


class QuizCodeConflict(Exception):
    pass


@dataclass(frozen=True)
class QuizWithCount:
    quiz: Quiz
    attempt_count: int


@dataclass(frozen=True)
class QuestionStat:
    question: Question
    correct_count: int
    total_attempts: int


class QuizStore:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------
    @_store_op("save changes")
    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------
    @_store_op("load profile")
    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, int(user_id))

    @_store_op("load profile")
    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    @_store_op("create account")
    def create_user(self, *, email: str, full_name: str, role: str, password_hash: str) -> User:
        user = User(email=email, full_name=full_name, role=role, password_hash=password_hash)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if self.get_user_by_email(email) is not None:
                raise InputValidationError("Email already exists") from exc
            raise
        self.db.refresh(user)
        return user

    @_store_op("update username")
    def set_username(self, user_id: int, username: str) -> User:
        user = self.db.get(User, int(user_id))
        if user is None:
            raise InputValidationError("Profile not found")
        user.username = username
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            taken = self.db.execute(
                select(User.id).where(User.username == username, User.id != int(user_id))
            ).first()
            if taken:
                raise InputValidationError("This username is already taken. Please choose another one.") from exc
            raise
        self.db.refresh(user)
        return user

    # ------------------------------------------------------------------
    # Quizzes & questions
    # ------------------------------------------------------------------
    @_store_op("check quiz code")
    def quiz_code_taken(self, code: str) -> bool:
        return self.db.execute(select(Quiz.id).where(Quiz.quiz_code == code)).first() is not None

    @_store_op("save quiz")
    def insert_quiz(self, quiz: Quiz, questions: Sequence[Question]) -> Quiz:
        """Insert a quiz with its questions in one transaction.

        Raises ``QuizCodeConflict`` when another quiz took the code between the
        availability check and the insert, so the caller can draw a new one.
        """
        self.db.add(quiz)
        try:
            self.db.flush()
            for q in questions:
                q.quiz_id = int(quiz.id)
                self.db.add(q)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if self.quiz_code_taken(quiz.quiz_code):
                raise QuizCodeConflict(quiz.quiz_code) from exc
            raise
        self.db.refresh(quiz)
        return quiz

    @_store_op("load quiz")
    def get_quiz(self, quiz_id: int) -> Optional[Quiz]:
        return self.db.get(Quiz, int(quiz_id))

    @_store_op("load quiz")
    def get_quiz_by_code(self, code: str) -> Optional[Quiz]:
        normalized = (code or "").strip().upper()
        if not normalized:
            return None
        return self.db.execute(select(Quiz).where(Quiz.quiz_code == normalized)).scalar_one_or_none()

    @_store_op("load quizzes")
    def list_quizzes_for_teacher(self, teacher_id: int) -> List[QuizWithCount]:
        counts = (
            select(QuizAttempt.quiz_id, func.count(QuizAttempt.id).label("n"))
            .group_by(QuizAttempt.quiz_id)
            .subquery()
        )
        rows = self.db.execute(
            select(Quiz, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.quiz_id == Quiz.id)
            .where(Quiz.teacher_id == int(teacher_id))
            .order_by(Quiz.created_at.desc(), Quiz.id.desc())
        ).all()
        return [QuizWithCount(quiz=q, attempt_count=int(n or 0)) for q, n in rows]

    @_store_op("update quiz")
    def set_quiz_active(self, quiz: Quiz, is_active: bool) -> Quiz:
        quiz.is_active = bool(is_active)
        self.db.commit()
        self.db.refresh(quiz)
        return quiz

    @_store_op("delete quiz")
    def delete_quiz(self, quiz: Quiz) -> None:
        self.db.delete(quiz)
        self.db.commit()

    @_store_op("load questions")
    def list_questions(self, quiz_id: int) -> List[Question]:
        return list(
            self.db.execute(
                select(Question).where(Question.quiz_id == int(quiz_id)).order_by(Question.order_index.asc())
            ).scalars()
        )

    @_store_op("load question")
    def get_correct_answer(self, question_id: int) -> Optional[str]:
        return self.db.execute(
            select(Question.correct_answer).where(Question.id == int(question_id))
        ).scalar_one_or_none()

    @_store_op("load question statistics")
    def question_stats(self, quiz_id: int) -> List[QuestionStat]:
        questions = self.list_questions(quiz_id)
        rows = self.db.execute(
            select(
                StudentAnswer.question_id,
                func.count(StudentAnswer.id),
                func.sum(case((StudentAnswer.is_correct.is_(True), 1), else_=0)),
            )
            .join(Question, Question.id == StudentAnswer.question_id)
            .where(Question.quiz_id == int(quiz_id))
            .group_by(StudentAnswer.question_id)
        ).all()
        by_qid: Dict[int, Tuple[int, int]] = {int(qid): (int(total or 0), int(correct or 0)) for qid, total, correct in rows}
        out: List[QuestionStat] = []
        for q in questions:
            total, correct = by_qid.get(int(q.id), (0, 0))
            out.append(QuestionStat(question=q, correct_count=correct, total_attempts=total))
        return out

    # ------------------------------------------------------------------
    # Attempts & answers
    # ------------------------------------------------------------------
    @_store_op("load attempt")
    def get_attempt(self, attempt_id: int) -> Optional[QuizAttempt]:
        return self.db.get(QuizAttempt, int(attempt_id))

    @_store_op("load attempt")
    def find_attempt(self, quiz_id: int, student_id: int) -> Optional[QuizAttempt]:
        return self.db.execute(
            select(QuizAttempt).where(QuizAttempt.quiz_id == int(quiz_id), QuizAttempt.student_id == int(student_id))
        ).scalar_one_or_none()

    @_store_op("start quiz")
    def create_attempt(self, *, quiz_id: int, student_id: int, total_questions: int, started_at: datetime) -> QuizAttempt:
        """Insert the single attempt of a student at a quiz.

        The (quiz, student) uniqueness constraint is the authority: a conflicting
        insert is reported as already-attempted even if a pre-check passed.
        """
        attempt = QuizAttempt(
            quiz_id=int(quiz_id),
            student_id=int(student_id),
            total_questions=int(total_questions),
            started_at=started_at,
            is_completed=False,
            score=0,
        )
        self.db.add(attempt)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if self.find_attempt(quiz_id, student_id) is not None:
                raise AlreadyAttemptedError() from exc
            raise
        self.db.refresh(attempt)
        return attempt

    @_store_op("submit quiz")
    def insert_answers(self, attempt_id: int, answers: Dict[int, str]) -> List[StudentAnswer]:
        """Stage one answer row per answered question. Not committed."""
        rows = [
            StudentAnswer(attempt_id=int(attempt_id), question_id=int(qid), student_answer=str(text), is_correct=False)
            for qid, text in answers.items()
        ]
        self.db.add_all(rows)
        self.db.flush()
        return rows

    @_store_op("submit quiz")
    def mark_answer(self, attempt_id: int, question_id: int, is_correct: bool) -> None:
        row = self.db.execute(
            select(StudentAnswer).where(
                StudentAnswer.attempt_id == int(attempt_id), StudentAnswer.question_id == int(question_id)
            )
        ).scalar_one()
        row.is_correct = bool(is_correct)
        self.db.flush()

    @_store_op("submit quiz")
    def complete_attempt(self, attempt_id: int, *, score: int, time_taken_minutes: int, completed_at: datetime) -> QuizAttempt:
        attempt = self.db.get(QuizAttempt, int(attempt_id))
        if attempt is None:
            raise TransientStoreError("Failed to submit quiz. Please try again.")
        attempt.is_completed = True
        attempt.completed_at = completed_at
        attempt.score = int(score)
        attempt.time_taken_minutes = int(time_taken_minutes)
        self.db.flush()
        return attempt

    @_store_op("load attempts")
    def list_attempts_for_student(self, student_id: int) -> List[Tuple[QuizAttempt, Quiz]]:
        rows = self.db.execute(
            select(QuizAttempt, Quiz)
            .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
            .where(QuizAttempt.student_id == int(student_id))
            .order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
        ).all()
        return [(a, q) for a, q in rows]

    @_store_op("load attempts")
    def list_completed_attempts(self, quiz_id: int) -> List[Tuple[QuizAttempt, User]]:
        rows = self.db.execute(
            select(QuizAttempt, User)
            .join(User, User.id == QuizAttempt.student_id)
            .where(QuizAttempt.quiz_id == int(quiz_id), QuizAttempt.is_completed.is_(True))
            .order_by(QuizAttempt.score.desc(), QuizAttempt.completed_at.asc())
        ).all()
        return [(a, u) for a, u in rows]

    @_store_op("load results")
    def list_answers_with_questions(self, attempt_id: int) -> List[Tuple[StudentAnswer, Question]]:
        rows = self.db.execute(
            select(StudentAnswer, Question)
            .join(Question, Question.id == StudentAnswer.question_id)
            .where(StudentAnswer.attempt_id == int(attempt_id))
            .order_by(Question.order_index.asc())
        ).all()
        return [(a, q) for a, q in rows]


StoreFactory = Callable[[], ContextManager[QuizStore]]


@contextmanager
def store_scope(session_factory: Callable[[], Session]) -> Iterator[QuizStore]:
    """One store (and one database session) per unit of work."""
    db = session_factory()
    try:
        yield QuizStore(db)
    finally:
        db.close()
