from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

QuestionType = Literal["multiple_choice", "true_false", "fill_in_the_blank", "theory"]
Difficulty = Literal["easy", "medium", "hard"]

DEFAULT_POINTS = {"easy": 1, "medium": 2, "hard": 3}


class QuestionConfig(BaseModel):
    question_type: QuestionType = "multiple_choice"
    difficulty: Difficulty = "medium"
    count: int = Field(default=5, ge=1, le=50)


class GenerateQuestionsRequest(BaseModel):
    topic: str = Field(min_length=1, max_length=255)
    configs: List[QuestionConfig] = Field(min_length=1)


class QuestionDraft(BaseModel):
    """A generated (or teacher edited) question that is not persisted yet."""

    question_text: str = Field(min_length=1)
    question_type: QuestionType
    difficulty: Difficulty = "medium"
    correct_answer: str = Field(min_length=1)
    options: Optional[List[str]] = None
    points: Optional[int] = Field(default=None, ge=0)

    @field_validator("question_text", "correct_answer")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def _normalize(self):
        if self.question_type == "multiple_choice":
            opts = [str(o).strip() for o in (self.options or []) if str(o).strip()]
            if len(opts) < 2:
                raise ValueError("multiple_choice questions need at least two options")
            self.options = opts
        else:
            self.options = None
        if self.points is None:
            self.points = DEFAULT_POINTS[self.difficulty]
        return self


class QuizCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    topic: Optional[str] = Field(default=None, max_length=255)
    duration_minutes: int = Field(default=30, ge=1, le=24 * 60)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    questions: List[QuestionDraft] = Field(min_length=1)


class QuizActiveUpdate(BaseModel):
    is_active: bool


class QuestionOut(BaseModel):
    """Question as a student sees it while taking a quiz (no answer key)."""

    id: int
    order_index: int
    question_text: str
    question_type: str
    options: Optional[List[str]] = None
    points: int = 1


class QuestionDetailOut(QuestionOut):
    difficulty: str
    correct_answer: str


class QuizOut(BaseModel):
    id: int
    teacher_id: int
    title: str
    description: Optional[str] = None
    topic: Optional[str] = None
    total_questions: int
    duration_minutes: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_active: bool
    quiz_code: str
    share_url: str
    created_at: Optional[datetime] = None
    attempt_count: int = 0


class QuizDetailOut(QuizOut):
    questions: List[QuestionDetailOut] = Field(default_factory=list)


class QuizPublicOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    topic: Optional[str] = None
    quiz_code: str
    duration_minutes: int
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_active: bool
    total_questions: int
    already_attempted: bool = False


class JoinQuizRequest(BaseModel):
    quiz_code: str = Field(min_length=1, max_length=16)


class TeacherDashboardOut(BaseModel):
    quizzes: List[QuizOut] = Field(default_factory=list)
    total_quizzes: int = 0
    active_quizzes: int = 0
    total_attempts: int = 0


class StudentStatOut(BaseModel):
    attempt_id: int
    student_id: int
    username: Optional[str] = None
    full_name: str
    email: str
    score: int
    completed_at: Optional[datetime] = None
    time_taken_minutes: int = 0


class QuestionStatOut(BaseModel):
    question_id: int
    question_text: str
    correct_count: int
    total_attempts: int
    accuracy: int


class QuizAnalyticsOut(BaseModel):
    quiz_id: int
    title: str
    quiz_code: str
    total_questions: int
    duration_minutes: int
    completed_attempts: int
    average_score: int
    average_time_minutes: int = 0
    attempts: List[StudentStatOut] = Field(default_factory=list)
    question_stats: List[QuestionStatOut] = Field(default_factory=list)
