"""One student's single timed pass through one quiz.

States::

    uninitialized -> loading -> in_progress -> submitting -> completed

``initialize`` falls back to ``uninitialized`` when it fails and ``submit``
falls back to ``in_progress``; in both cases the error is raised to the
caller and nothing is reported as done.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from quizgate.core.errors import AlreadyAttemptedError, AppError, NotAvailableError, NotFoundError
from quizgate.schemas.quiz import QuestionOut
from quizgate.services.quiz_store import QuizStore, StoreFactory
from quizgate.services.scoring import elapsed_minutes, is_answer_correct, score_percent
from quizgate.services.timeutil import utcnow

logger = logging.getLogger(__name__)


class AttemptState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SubmitResult:
    attempt_id: int
    score: int
    correct_count: int
    total_questions: int
    time_taken_minutes: int
    completed_at: datetime


class AttemptController:
    def __init__(self, store_factory: StoreFactory, *, clock: Callable[[], datetime] = utcnow):
        self._store_factory = store_factory
        self._clock = clock

        self.state = AttemptState.UNINITIALIZED
        self.quiz_id: Optional[int] = None
        self.quiz_title: str = ""
        self.student_id: Optional[int] = None
        self.attempt_id: Optional[int] = None
        self.started_at: Optional[datetime] = None
        self.total_questions = 0
        self.duration_seconds = 0
        self.remaining_seconds = 0
        self.current_index = 0
        self.questions: List[QuestionOut] = []
        self.answers: Dict[int, str] = {}
        self.result: Optional[SubmitResult] = None

        self._expired = False
        self._submit_lock = threading.Lock()
        self._answers_lock = threading.Lock()
        self._finished_callbacks: List[Callable[["AttemptController"], None]] = []

    # ------------------------------------------------------------------
    def add_finished_callback(self, fn: Callable[["AttemptController"], None]) -> None:
        self._finished_callbacks.append(fn)

    def _finish(self) -> None:
        # The answer map lives only as long as the attempt is live.
        self.answers = {}
        for fn in list(self._finished_callbacks):
            fn(self)

    @property
    def is_live(self) -> bool:
        return self.state in (AttemptState.IN_PROGRESS, AttemptState.SUBMITTING)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    # ------------------------------------------------------------------
    def initialize(self, quiz_id: int, student_id: int) -> List[QuestionOut]:
        if self.state != AttemptState.UNINITIALIZED:
            raise RuntimeError(f"attempt controller already {self.state.value}")

        self.state = AttemptState.LOADING
        try:
            with self._store_factory() as store:
                quiz = store.get_quiz(int(quiz_id))
                if quiz is None:
                    raise NotFoundError("Quiz not found")
                questions = store.list_questions(int(quiz.id))
                if store.find_attempt(int(quiz.id), int(student_id)) is not None:
                    raise AlreadyAttemptedError()
                attempt = store.create_attempt(
                    quiz_id=int(quiz.id),
                    student_id=int(student_id),
                    total_questions=len(questions),
                    started_at=self._clock(),
                )
                self.quiz_title = str(quiz.title or "")
                duration_minutes = int(quiz.duration_minutes or 0)
        except Exception:
            self.state = AttemptState.UNINITIALIZED
            raise

        self.quiz_id = int(quiz_id)
        self.student_id = int(student_id)
        self.attempt_id = int(attempt.id)
        self.started_at = attempt.started_at
        self.total_questions = int(attempt.total_questions)
        self.questions = [
            QuestionOut(
                id=int(q.id),
                order_index=int(q.order_index),
                question_text=str(q.question_text),
                question_type=str(q.question_type),
                options=list(q.options) if q.options else None,
                points=int(q.points or 0),
            )
            for q in questions
        ]
        self.duration_seconds = max(0, duration_minutes * 60)
        self.remaining_seconds = self.duration_seconds
        self.current_index = 0
        self.state = AttemptState.IN_PROGRESS
        logger.info(
            "attempt %s started: quiz=%s student=%s questions=%s duration=%ss",
            self.attempt_id,
            self.quiz_id,
            self.student_id,
            self.total_questions,
            self.duration_seconds,
        )
        return list(self.questions)

    # ------------------------------------------------------------------
    def record_answer(self, question_id: int, answer_text: str) -> None:
        qid = int(question_id)
        # submit flips the state under the same lock before copying answers
        with self._answers_lock:
            if self.state != AttemptState.IN_PROGRESS or self._expired:
                raise NotAvailableError("This attempt is no longer accepting answers")
            if not any(q.id == qid for q in self.questions):
                raise NotFoundError("Question not found in this quiz")
            self.answers[qid] = str(answer_text)

    def advance(self, direction: int) -> int:
        if not self.questions:
            self.current_index = 0
            return 0
        step = 1 if int(direction) > 0 else -1
        self.current_index = max(0, min(self.current_index + step, len(self.questions) - 1))
        return self.current_index

    # ------------------------------------------------------------------
    def tick(self) -> bool:
        """Advance the countdown by one second.

        Returns True while the countdown should keep running. Reaching zero
        submits once; later ticks do nothing.
        """
        if self.state != AttemptState.IN_PROGRESS or self._expired:
            return False

        if self.remaining_seconds > 0:
            self.remaining_seconds -= 1
        if self.remaining_seconds > 0:
            return True

        self._expired = True
        logger.info("attempt %s: time is up, submitting", self.attempt_id)
        try:
            self.submit()
        except AppError as exc:
            # The student can still submit by hand.
            logger.warning("attempt %s: automatic submit failed: %s", self.attempt_id, exc.message)
        return False

    # ------------------------------------------------------------------
    def submit(self) -> Optional[SubmitResult]:
        """Persist answers, score them and complete the attempt.

        Returns None when another submit of this attempt is already running.
        """
        if not self._submit_lock.acquire(blocking=False):
            logger.info("attempt %s: submit already in flight", self.attempt_id)
            return None
        try:
            if self.state == AttemptState.COMPLETED:
                return self.result
            if self.state != AttemptState.IN_PROGRESS:
                raise NotAvailableError("This attempt has not started")

            with self._answers_lock:
                self.state = AttemptState.SUBMITTING
            try:
                with self._store_factory() as store:
                    result = self._persist(store)
            except Exception:
                self.state = AttemptState.IN_PROGRESS
                logger.warning("attempt %s: submit failed, attempt left incomplete", self.attempt_id)
                raise

            self.result = result
            self.state = AttemptState.COMPLETED
            logger.info(
                "attempt %s submitted: score=%s correct=%s/%s time=%smin",
                result.attempt_id,
                result.score,
                result.correct_count,
                result.total_questions,
                result.time_taken_minutes,
            )
        finally:
            self._submit_lock.release()

        self._finish()
        return result

    def _persist(self, store: QuizStore) -> SubmitResult:
        attempt_id = int(self.attempt_id)
        answers = dict(self.answers)
        now = self._clock()
        try:
            if answers:
                store.insert_answers(attempt_id, answers)

            correct = 0
            for question_id, text in answers.items():
                expected = store.get_correct_answer(question_id)
                ok = expected is not None and is_answer_correct(text, expected)
                store.mark_answer(attempt_id, question_id, ok)
                if ok:
                    correct += 1

            score = score_percent(correct, self.total_questions)
            time_taken = elapsed_minutes(self.started_at, now)
            store.complete_attempt(attempt_id, score=score, time_taken_minutes=time_taken, completed_at=now)
            store.commit()
        except Exception:
            store.rollback()
            raise

        return SubmitResult(
            attempt_id=attempt_id,
            score=score,
            correct_count=correct,
            total_questions=int(self.total_questions),
            time_taken_minutes=time_taken,
            completed_at=now,
        )

    # ------------------------------------------------------------------
    def abandon(self) -> None:
        """Drop the live state without submitting. The attempt row stays incomplete."""
        if self.state == AttemptState.COMPLETED:
            return
        logger.info("attempt %s abandoned in state %s", self.attempt_id, self.state.value)
        self._expired = True
        self._finish()
