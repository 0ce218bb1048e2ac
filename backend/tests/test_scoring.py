from __future__ import annotations

from datetime import datetime, timedelta, timezone

from quizgate.services.scoring import (
    average,
    elapsed_minutes,
    is_answer_correct,
    result_availability,
    score_percent,
)


def test_answers_compare_trimmed_and_case_insensitive():
    assert is_answer_correct(" Paris ", "paris")
    assert is_answer_correct("  true ", "True")
    assert is_answer_correct("paris", "Paris")
    assert not is_answer_correct("Paris, France", "Paris")
    assert not is_answer_correct("", "A")
    assert not is_answer_correct(None, "A")


def test_score_is_rounded_percentage_of_snapshot_total():
    assert score_percent(2, 3) == 67
    assert score_percent(1, 3) == 33
    assert score_percent(3, 3) == 100
    assert score_percent(0, 5) == 0
    # halves go up
    assert score_percent(1, 8) == 13
    assert score_percent(1, 200) == 1


def test_score_with_no_questions_is_zero():
    assert score_percent(0, 0) == 0
    assert score_percent(3, 0) == 0


def test_score_is_clamped():
    assert score_percent(5, 3) == 100
    assert score_percent(-1, 3) == 0


def test_elapsed_minutes_rounds_to_nearest_minute():
    t0 = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert elapsed_minutes(t0, t0 + timedelta(seconds=29)) == 0
    assert elapsed_minutes(t0, t0 + timedelta(seconds=30)) == 1
    assert elapsed_minutes(t0, t0 + timedelta(minutes=12, seconds=40)) == 13
    # naive values are read as UTC (SQLite drops tzinfo)
    assert elapsed_minutes(t0.replace(tzinfo=None), t0 + timedelta(minutes=2)) == 2


def test_average_rounds_and_handles_empty():
    assert average([]) == 0
    assert average([67, 100]) == 84
    assert average([50, 51]) == 51


def test_results_embargoed_just_before_sixty_minutes():
    done = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    a = result_availability(done, now=done + timedelta(minutes=59, seconds=59), embargo_minutes=60)
    assert not a.available
    assert a.status == "embargoed"
    assert a.remaining_minutes == 1
    assert a.available_at == done + timedelta(minutes=60)


def test_results_available_at_exactly_sixty_minutes():
    done = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    a = result_availability(done, now=done + timedelta(minutes=60), embargo_minutes=60)
    assert a.available
    assert a.status == "available"
    assert a.remaining_minutes == 0


def test_remaining_minutes_round_up():
    done = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    assert result_availability(done, now=done, embargo_minutes=60).remaining_minutes == 60
    assert result_availability(done, now=done + timedelta(minutes=20, seconds=1), embargo_minutes=60).remaining_minutes == 40
