from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from quizgate.schemas.quiz import QuestionOut


class RecordAnswerRequest(BaseModel):
    answer: str


class AdvanceRequest(BaseModel):
    direction: Literal["next", "previous"]


class AttemptStartOut(BaseModel):
    attempt_id: int
    quiz_id: int
    quiz_title: str
    started_at: datetime
    duration_seconds: int
    remaining_seconds: int
    questions: List[QuestionOut] = Field(default_factory=list)


class AttemptStateOut(BaseModel):
    attempt_id: int
    quiz_id: int
    state: str
    current_index: int
    question_count: int
    remaining_seconds: int
    answers: Dict[int, str] = Field(default_factory=dict)


class AttemptSummaryOut(BaseModel):
    attempt_id: int
    quiz_id: int
    quiz_title: str
    quiz_code: str
    total_questions: int
    score: int
    is_completed: bool
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    time_taken_minutes: Optional[int] = None


class SubmitOut(BaseModel):
    attempt_id: int
    score: int
    correct_count: int
    total_questions: int
    time_taken_minutes: int
    completed_at: datetime
    results_available_at: datetime


class MyAttemptsOut(BaseModel):
    attempts: List[AttemptSummaryOut] = Field(default_factory=list)
    completed_count: int = 0
    average_score: int = 0
    average_time_minutes: int = 0


class AnswerResultOut(BaseModel):
    question_id: int
    question_text: str
    question_type: str
    correct_answer: str
    student_answer: str
    is_correct: bool


class AttemptResultsOut(BaseModel):
    attempt: AttemptSummaryOut
    correct_count: int
    incorrect_count: int
    answers: List[AnswerResultOut] = Field(default_factory=list)
