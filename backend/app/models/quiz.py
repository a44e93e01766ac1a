from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, false, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

if TYPE_CHECKING:
    from app.models.attempt import QuizAttempt
    from app.models.question import Question


class ShowResultsPolicy(str, Enum):
    after_submit = "after_submit"
    after_due_date = "after_due_date"
    never = "never"


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(primary_key=True)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False)
    module_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    # NULL = unlimited
    time_limit_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # 0 = unlimited
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=text("1"))
    passing_score: Mapped[int] = mapped_column(Integer, nullable=False, default=70, server_default=text("70"))

    shuffle_questions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    shuffle_options: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    show_results: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ShowResultsPolicy.after_submit.value,
        server_default=ShowResultsPolicy.after_submit.value,
    )

    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    available_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    questions: Mapped[list["Question"]] = relationship(
        back_populates="quiz",
        order_by="Question.order_index",
        cascade="all, delete-orphan",
    )
    attempts: Mapped[list["QuizAttempt"]] = relationship(
        back_populates="quiz",
        cascade="all, delete-orphan",
    )
