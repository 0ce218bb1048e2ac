"""Teacher side of the quiz lifecycle: create, list, toggle, delete."""

from __future__ import annotations

import logging
from typing import List

from quizgate.core.config import settings
from quizgate.core.errors import InputValidationError, NotFoundError, TransientStoreError
from quizgate.models.question import Question
from quizgate.models.quiz import Quiz
from quizgate.schemas.quiz import (
    QuestionDetailOut,
    QuizCreateRequest,
    QuizDetailOut,
    QuizOut,
    TeacherDashboardOut,
)
from quizgate.services.quiz_code_service import generate_unique_quiz_code, share_url
from quizgate.services.quiz_store import QuizCodeConflict, QuizStore
from quizgate.services.timeutil import as_utc

logger = logging.getLogger(__name__)


def quiz_out(quiz: Quiz, attempt_count: int = 0) -> QuizOut:
    return QuizOut(
        id=int(quiz.id),
        teacher_id=int(quiz.teacher_id),
        title=str(quiz.title),
        description=quiz.description,
        topic=quiz.topic,
        total_questions=int(quiz.total_questions or 0),
        duration_minutes=int(quiz.duration_minutes or 0),
        start_time=as_utc(quiz.start_time),
        end_time=as_utc(quiz.end_time),
        is_active=bool(quiz.is_active),
        quiz_code=str(quiz.quiz_code),
        share_url=share_url(quiz.quiz_code),
        created_at=as_utc(quiz.created_at),
        attempt_count=int(attempt_count or 0),
    )


def question_detail_out(q: Question) -> QuestionDetailOut:
    return QuestionDetailOut(
        id=int(q.id),
        order_index=int(q.order_index),
        question_text=str(q.question_text),
        question_type=str(q.question_type),
        options=list(q.options) if q.options else None,
        points=int(q.points or 0),
        difficulty=str(q.difficulty),
        correct_answer=str(q.correct_answer),
    )


def create_quiz(store: QuizStore, teacher_id: int, payload: QuizCreateRequest) -> Quiz:
    title = (payload.title or "").strip()
    if not title:
        raise InputValidationError("Quiz title is required")
    if not payload.questions:
        raise InputValidationError("A quiz needs at least one question")
    start_time = as_utc(payload.start_time)
    end_time = as_utc(payload.end_time)
    if start_time is not None and end_time is not None and end_time <= start_time:
        raise InputValidationError("End time must be after start time")

    # Another quiz may take the code between the check and the insert.
    for _ in range(int(settings.QUIZ_CODE_MAX_TRIES)):
        quiz = Quiz(
            teacher_id=int(teacher_id),
            title=title,
            description=(payload.description or "").strip() or None,
            topic=(payload.topic or "").strip() or None,
            total_questions=len(payload.questions),
            duration_minutes=int(payload.duration_minutes),
            start_time=start_time,
            end_time=end_time,
            is_active=False,
            quiz_code=generate_unique_quiz_code(store),
        )
        questions = [
            Question(
                order_index=i,
                question_text=d.question_text.strip(),
                question_type=d.question_type,
                difficulty=d.difficulty,
                correct_answer=d.correct_answer.strip(),
                options=d.options,
                points=int(d.points or 0),
            )
            for i, d in enumerate(payload.questions)
        ]
        try:
            saved = store.insert_quiz(quiz, questions)
        except QuizCodeConflict:
            logger.info("quiz code %s was taken concurrently, drawing another", quiz.quiz_code)
            continue
        logger.info(
            "quiz %s created by teacher %s: code=%s questions=%s", saved.id, teacher_id, saved.quiz_code, len(questions)
        )
        return saved
    raise TransientStoreError("Failed to generate a quiz code. Please try again.")


def get_owned_quiz(store: QuizStore, teacher_id: int, quiz_id: int) -> Quiz:
    quiz = store.get_quiz(quiz_id)
    # Someone else's quiz is reported the same way as a missing one.
    if quiz is None or int(quiz.teacher_id) != int(teacher_id):
        raise NotFoundError("Quiz not found")
    return quiz


def quiz_detail(store: QuizStore, quiz: Quiz) -> QuizDetailOut:
    base = quiz_out(quiz)
    questions = [question_detail_out(q) for q in store.list_questions(int(quiz.id))]
    return QuizDetailOut(**base.model_dump(), questions=questions)


def teacher_dashboard(store: QuizStore, teacher_id: int) -> TeacherDashboardOut:
    rows = store.list_quizzes_for_teacher(teacher_id)
    quizzes: List[QuizOut] = [quiz_out(r.quiz, r.attempt_count) for r in rows]
    return TeacherDashboardOut(
        quizzes=quizzes,
        total_quizzes=len(quizzes),
        active_quizzes=sum(1 for q in quizzes if q.is_active),
        total_attempts=sum(q.attempt_count for q in quizzes),
    )


def set_quiz_active(store: QuizStore, teacher_id: int, quiz_id: int, is_active: bool) -> Quiz:
    quiz = get_owned_quiz(store, teacher_id, quiz_id)
    quiz = store.set_quiz_active(quiz, is_active)
    logger.info("quiz %s %s", quiz.id, "activated" if quiz.is_active else "deactivated")
    return quiz


def delete_quiz(store: QuizStore, teacher_id: int, quiz_id: int) -> None:
    quiz = get_owned_quiz(store, teacher_id, quiz_id)
    store.delete_quiz(quiz)
    logger.info("quiz %s deleted by teacher %s", quiz_id, teacher_id)
