from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.db.types import JSONType

if TYPE_CHECKING:
    from app.models.quiz import Quiz


class QuestionType(str, Enum):
    multiple_choice = "multiple_choice"
    true_false = "true_false"
    short_answer = "short_answer"
    fill_in_blank = "fill_in_blank"


# Types whose options list is shown to the learner.
OPTION_TYPES = {QuestionType.multiple_choice.value, QuestionType.true_false.value}


class Question(Base):
    __tablename__ = "quiz_questions"

    id: Mapped[int] = mapped_column(primary_key=True)
    quiz_id: Mapped[int] = mapped_column(ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    question_type: Mapped[str] = mapped_column(String(32), nullable=False, default=QuestionType.multiple_choice.value)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)

    # Ordered option texts; only meaningful for multiple_choice / true_false
    options: Mapped[list[str] | None] = mapped_column(JSONType, nullable=True, default=None)
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)

    points: Mapped[float] = mapped_column(Float, nullable=False, default=1, server_default=text("1"))
    # Dense 0..n-1 within a quiz; default (pre-shuffle) presentation order
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    quiz: Mapped["Quiz"] = relationship(back_populates="questions")
