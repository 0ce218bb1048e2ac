"""Answer correctness, score and result embargo.

These are the only place scores are computed; every other reader uses the
persisted ``score`` and ``is_correct`` values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from quizgate.core.config import settings
from quizgate.services.timeutil import as_utc, utcnow


def normalize_answer(text: str | None) -> str:
    return (text or "").strip().lower()


def is_answer_correct(student_answer: str | None, correct_answer: str | None) -> bool:
    return normalize_answer(student_answer) == normalize_answer(correct_answer)


def score_percent(correct_count: int, total_questions: int) -> int:
    """round(100 * correct / total), halves rounded up, clamped to 0..100."""
    total = int(total_questions)
    if total <= 0:
        return 0
    correct = max(0, min(int(correct_count), total))
    return (200 * correct + total) // (2 * total)


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def average(values) -> int:
    """Rounded mean, 0 for no values."""
    vals = [float(v) for v in values]
    if not vals:
        return 0
    return round_half_up(sum(vals) / len(vals))


def elapsed_minutes(started_at: datetime, ended_at: datetime) -> int:
    seconds = max(0.0, (as_utc(ended_at) - as_utc(started_at)).total_seconds())
    return round_half_up(seconds / 60.0)


@dataclass(frozen=True)
class ResultAvailability:
    available: bool
    remaining_minutes: int = 0
    available_at: Optional[datetime] = None

    @property
    def status(self) -> str:
        return "available" if self.available else "embargoed"


def result_availability(
    completed_at: datetime,
    *,
    now: Optional[datetime] = None,
    embargo_minutes: Optional[int] = None,
) -> ResultAvailability:
    minutes = int(settings.RESULTS_EMBARGO_MINUTES if embargo_minutes is None else embargo_minutes)
    done = as_utc(completed_at)
    now = as_utc(now) if now is not None else utcnow()
    available_at = done + timedelta(minutes=minutes)

    elapsed = (now - done).total_seconds() / 60.0
    if elapsed >= minutes:
        return ResultAvailability(available=True, remaining_minutes=0, available_at=available_at)
    return ResultAvailability(
        available=False,
        remaining_minutes=int(math.ceil(minutes - elapsed)),
        available_at=available_at,
    )
