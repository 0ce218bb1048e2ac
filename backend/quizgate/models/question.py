from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, func, text
from sqlalchemy.orm import Mapped, mapped_column

from quizgate.db.base_class import Base


QUESTION_TYPES = ("multiple_choice", "true_false", "fill_in_the_blank", "theory")
DIFFICULTIES = ("easy", "medium", "hard")


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (UniqueConstraint("quiz_id", "order_index", name="uq_questions_quiz_order"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    quiz_id: Mapped[int] = mapped_column(ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)

    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    # multiple_choice | true_false | fill_in_the_blank | theory
    question_type: Mapped[str] = mapped_column(String(32), nullable=False, default="multiple_choice")
    # easy | medium | hard
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="medium", server_default="medium")
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)

    # Ordered option labels, multiple_choice only
    options: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
