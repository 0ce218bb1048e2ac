from __future__ import annotations

from quizgate.models.quiz import Quiz
from quizgate.schemas.quiz import QuestionStatOut, QuizAnalyticsOut, StudentStatOut
from quizgate.services.quiz_store import QuizStore
from quizgate.services.scoring import average, score_percent
from quizgate.services.timeutil import as_utc


def quiz_analytics(store: QuizStore, quiz: Quiz) -> QuizAnalyticsOut:
    """Completed attempts and per-question accuracy of one quiz.

    Reads the persisted scores and ``is_correct`` flags; nothing is re-graded.
    """
    completed = store.list_completed_attempts(int(quiz.id))
    attempts = [
        StudentStatOut(
            attempt_id=int(a.id),
            student_id=int(u.id),
            username=u.username,
            full_name=str(u.full_name),
            email=str(u.email),
            score=int(a.score or 0),
            completed_at=as_utc(a.completed_at),
            time_taken_minutes=int(a.time_taken_minutes or 0),
        )
        for a, u in completed
    ]

    question_stats = [
        QuestionStatOut(
            question_id=int(s.question.id),
            question_text=str(s.question.question_text),
            correct_count=s.correct_count,
            total_attempts=s.total_attempts,
            accuracy=score_percent(s.correct_count, s.total_attempts),
        )
        for s in store.question_stats(int(quiz.id))
    ]

    return QuizAnalyticsOut(
        quiz_id=int(quiz.id),
        title=str(quiz.title),
        quiz_code=str(quiz.quiz_code),
        total_questions=int(quiz.total_questions or 0),
        duration_minutes=int(quiz.duration_minutes or 0),
        completed_attempts=len(attempts),
        average_score=average(a.score for a in attempts),
        average_time_minutes=average(a.time_taken_minutes for a in attempts),
        attempts=attempts,
        question_stats=question_stats,
    )
