from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from quizgate.core.errors import InputValidationError, NotAvailableError, NotFoundError, ResultsEmbargoedError
from quizgate.schemas.quiz import QuestionDraft, QuizCreateRequest
from quizgate.services import quiz_authoring_service as authoring
from quizgate.services.analytics_service import quiz_analytics
from quizgate.services.attempt_controller import AttemptController
from quizgate.services.quiz_code_service import QUIZ_CODE_ALPHABET
from quizgate.services.quiz_store import QuizCodeConflict, QuizStore
from quizgate.services.results_service import attempt_results, my_attempts


T0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def _payload(**kw):
    base = dict(
        title="  Cells  ",
        topic="Biology",
        duration_minutes=15,
        questions=[
            QuestionDraft(question_text="Powerhouse of the cell?", question_type="multiple_choice",
                          difficulty="easy", correct_answer="Mitochondria",
                          options=["Nucleus", "Mitochondria", "Ribosome", "Wall"]),
            QuestionDraft(question_text="Plants have cell walls.", question_type="true_false",
                          difficulty="medium", correct_answer="True"),
        ],
    )
    base.update(kw)
    return QuizCreateRequest(**base)


def test_created_quiz_is_inactive_with_ordered_questions(store, seed):
    teacher = seed.user("teacher")
    quiz = authoring.create_quiz(store, teacher.id, _payload())

    assert quiz.title == "Cells"
    assert quiz.is_active is False
    assert quiz.total_questions == 2
    assert len(quiz.quiz_code) == 6
    assert set(quiz.quiz_code) <= set(QUIZ_CODE_ALPHABET)

    detail = authoring.quiz_detail(store, quiz)
    assert [q.order_index for q in detail.questions] == [0, 1]
    assert detail.questions[0].correct_answer == "Mitochondria"
    assert detail.questions[0].points == 1
    assert detail.questions[1].points == 2
    assert detail.share_url.endswith(f"/quiz/{quiz.quiz_code}")


def test_window_must_end_after_start(store, seed):
    teacher = seed.user("teacher")
    with pytest.raises(InputValidationError) as ei:
        authoring.create_quiz(store, teacher.id, _payload(start_time=T0, end_time=T0))
    assert ei.value.message == "End time must be after start time"


def test_blank_title_rejected(store, seed):
    teacher = seed.user("teacher")
    with pytest.raises(InputValidationError):
        authoring.create_quiz(store, teacher.id, _payload(title="   "))


@pytest.mark.parametrize("field", ["question_text", "correct_answer"])
def test_blank_question_fields_rejected(field):
    fields = dict(question_text="2 + 2 = ___", question_type="fill_in_the_blank", correct_answer="4")
    fields[field] = "   "
    with pytest.raises(ValidationError):
        QuestionDraft(**fields)


def test_question_fields_are_stored_trimmed(store, seed):
    teacher = seed.user("teacher")
    draft = QuestionDraft(question_text="  2 + 2 = ___ ", question_type="fill_in_the_blank", correct_answer=" 4 ")
    quiz = authoring.create_quiz(store, teacher.id, _payload(questions=[draft]))

    q = authoring.quiz_detail(store, quiz).questions[0]
    assert q.question_text == "2 + 2 = ___"
    assert q.correct_answer == "4"


def test_code_collision_on_insert_draws_new_code(store, seed, monkeypatch):
    teacher = seed.user("teacher")
    real_insert = QuizStore.insert_quiz
    calls = []

    def flaky_insert(self, quiz, questions):
        calls.append(quiz.quiz_code)
        if len(calls) == 1:
            raise QuizCodeConflict(quiz.quiz_code)
        return real_insert(self, quiz, questions)

    monkeypatch.setattr(QuizStore, "insert_quiz", flaky_insert)
    quiz = authoring.create_quiz(store, teacher.id, _payload())

    assert len(calls) == 2
    assert quiz.id is not None


def test_only_owner_can_manage_quiz(store, seed):
    owner = seed.user("teacher")
    other = seed.user("teacher")
    quiz = seed.quiz(owner, is_active=False)

    with pytest.raises(NotFoundError):
        authoring.set_quiz_active(store, other.id, quiz.id, True)
    with pytest.raises(NotFoundError):
        authoring.delete_quiz(store, other.id, quiz.id)

    assert authoring.set_quiz_active(store, owner.id, quiz.id, True).is_active is True
    authoring.delete_quiz(store, owner.id, quiz.id)
    assert store.get_quiz(quiz.id) is None


def test_dashboard_totals(store, seed):
    teacher = seed.user("teacher")
    q1 = seed.quiz(teacher, is_active=True)
    seed.quiz(teacher, is_active=False)
    s = seed.user(username="fay")
    store.create_attempt(quiz_id=q1.id, student_id=s.id, total_questions=3, started_at=T0)

    dash = authoring.teacher_dashboard(store, teacher.id)
    assert dash.total_quizzes == 2
    assert dash.active_quizzes == 1
    assert dash.total_attempts == 1


def _take(store_factory, quiz, student, answers, *, started=T0, minutes=5):
    clock = {"now": started}
    c = AttemptController(store_factory, clock=lambda: clock["now"])
    c.initialize(quiz.id, student.id)
    for idx, text in answers.items():
        c.record_answer(c.questions[idx].id, text)
    clock["now"] = started + timedelta(minutes=minutes)
    return c.submit()


def test_analytics_reads_persisted_scores(store, store_factory, seed):
    teacher = seed.user("teacher")
    quiz = seed.quiz(teacher)
    s1 = seed.user(username="gus")
    s2 = seed.user(username="hal")
    s3 = seed.user(username="ivy")
    _take(store_factory, quiz, s1, {0: "A", 1: "True", 2: "42"})
    _take(store_factory, quiz, s2, {0: "B", 1: "True"}, minutes=8)
    # started but never submitted
    store.create_attempt(quiz_id=quiz.id, student_id=s3.id, total_questions=3, started_at=T0)

    out = quiz_analytics(store, quiz)

    assert out.completed_attempts == 2
    assert [a.username for a in out.attempts] == ["gus", "hal"]
    assert [a.score for a in out.attempts] == [100, 33]
    assert out.average_score == 67
    assert [a.time_taken_minutes for a in out.attempts] == [5, 8]
    assert out.average_time_minutes == 7
    acc = [(s.correct_count, s.total_attempts, s.accuracy) for s in out.question_stats]
    assert acc == [(1, 2, 50), (2, 2, 100), (1, 1, 100)]


def test_my_attempts_stats(store, store_factory, seed):
    teacher = seed.user("teacher")
    student = seed.user(username="jo")
    q1 = seed.quiz(teacher)
    q2 = seed.quiz(teacher)
    q3 = seed.quiz(teacher)
    _take(store_factory, q1, student, {0: "A", 1: "True", 2: "42"}, minutes=4)
    _take(store_factory, q2, student, {0: "A"}, minutes=7)
    store.create_attempt(quiz_id=q3.id, student_id=student.id, total_questions=3, started_at=T0)

    out = my_attempts(store, student.id)
    assert len(out.attempts) == 3
    assert out.completed_count == 2
    assert out.average_score == 67  # (100 + 33) / 2 = 66.5
    assert out.average_time_minutes == 6  # (4 + 7) / 2 = 5.5


def test_results_need_submission_and_wait_out_embargo(store, store_factory, seed):
    teacher = seed.user("teacher")
    student = seed.user(username="kim")
    intruder = seed.user(username="lee")
    quiz = seed.quiz(teacher)
    done = _take(store_factory, quiz, student, {0: "A", 1: "False"})

    with pytest.raises(ResultsEmbargoedError) as ei:
        attempt_results(store, student.id, done.attempt_id, now=done.completed_at + timedelta(minutes=59, seconds=59))
    assert ei.value.remaining_minutes == 1
    assert ei.value.message == "Results will be available in 1 minutes"

    with pytest.raises(NotFoundError):
        attempt_results(store, intruder.id, done.attempt_id, now=done.completed_at + timedelta(hours=2))

    out = attempt_results(store, student.id, done.attempt_id, now=done.completed_at + timedelta(minutes=60))
    assert out.correct_count == 1
    assert out.incorrect_count == 1
    assert out.attempt.score == 33
    rows = [(a.question_text, a.student_answer, a.correct_answer, a.is_correct) for a in out.answers]
    assert rows == [("Pick A", "A", "A", True), ("The sky is blue", "False", "True", False)]


def test_incomplete_attempt_has_no_results(store, seed):
    teacher = seed.user("teacher")
    student = seed.user(username="max")
    quiz = seed.quiz(teacher)
    a = store.create_attempt(quiz_id=quiz.id, student_id=student.id, total_questions=3, started_at=T0)

    with pytest.raises(NotAvailableError) as ei:
        attempt_results(store, student.id, a.id)
    assert ei.value.message == "This attempt has not been submitted yet"
