"""Student-facing reads: quiz lookup, attempt history and results."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from quizgate.core.errors import NotAvailableError, NotFoundError, ResultsEmbargoedError
from quizgate.models.attempt import QuizAttempt
from quizgate.models.quiz import Quiz
from quizgate.schemas.attempt import AnswerResultOut, AttemptResultsOut, AttemptSummaryOut, MyAttemptsOut
from quizgate.schemas.quiz import QuizPublicOut
from quizgate.services.quiz_store import QuizStore
from quizgate.services.scoring import average, result_availability
from quizgate.services.timeutil import as_utc

logger = logging.getLogger(__name__)


def quiz_public_out(quiz: Quiz, *, already_attempted: bool = False) -> QuizPublicOut:
    return QuizPublicOut(
        id=int(quiz.id),
        title=str(quiz.title),
        description=quiz.description,
        topic=quiz.topic,
        quiz_code=str(quiz.quiz_code),
        duration_minutes=int(quiz.duration_minutes or 0),
        start_time=as_utc(quiz.start_time),
        end_time=as_utc(quiz.end_time),
        is_active=bool(quiz.is_active),
        total_questions=int(quiz.total_questions or 0),
        already_attempted=already_attempted,
    )


def attempt_summary_out(attempt: QuizAttempt, quiz: Quiz) -> AttemptSummaryOut:
    return AttemptSummaryOut(
        attempt_id=int(attempt.id),
        quiz_id=int(quiz.id),
        quiz_title=str(quiz.title),
        quiz_code=str(quiz.quiz_code),
        total_questions=int(attempt.total_questions or 0),
        score=int(attempt.score or 0),
        is_completed=bool(attempt.is_completed),
        started_at=as_utc(attempt.started_at),
        completed_at=as_utc(attempt.completed_at),
        time_taken_minutes=attempt.time_taken_minutes,
    )


def my_attempts(store: QuizStore, student_id: int) -> MyAttemptsOut:
    rows = store.list_attempts_for_student(student_id)
    summaries = [attempt_summary_out(a, q) for a, q in rows]
    done = [s for s in summaries if s.is_completed]
    return MyAttemptsOut(
        attempts=summaries,
        completed_count=len(done),
        average_score=average(s.score for s in done),
        average_time_minutes=average(s.time_taken_minutes or 0 for s in done),
    )


def attempt_results(
    store: QuizStore,
    student_id: int,
    attempt_id: int,
    *,
    now: Optional[datetime] = None,
) -> AttemptResultsOut:
    attempt = store.get_attempt(attempt_id)
    if attempt is None or int(attempt.student_id) != int(student_id):
        raise NotFoundError("Attempt not found")
    if not attempt.is_completed or attempt.completed_at is None:
        raise NotAvailableError("This attempt has not been submitted yet")

    availability = result_availability(attempt.completed_at, now=now)
    if not availability.available:
        raise ResultsEmbargoedError(availability.remaining_minutes)

    quiz = store.get_quiz(int(attempt.quiz_id))
    if quiz is None:
        raise NotFoundError("Quiz not found")

    answers = [
        AnswerResultOut(
            question_id=int(q.id),
            question_text=str(q.question_text),
            question_type=str(q.question_type),
            correct_answer=str(q.correct_answer),
            student_answer=str(a.student_answer),
            is_correct=bool(a.is_correct),
        )
        for a, q in store.list_answers_with_questions(int(attempt.id))
    ]
    correct = sum(1 for a in answers if a.is_correct)
    return AttemptResultsOut(
        attempt=attempt_summary_out(attempt, quiz),
        correct_count=correct,
        incorrect_count=len(answers) - correct,
        answers=answers,
    )
