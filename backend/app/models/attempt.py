from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.db.types import JSONType

if TYPE_CHECKING:
    from app.models.answer import QuizAnswer
    from app.models.quiz import Quiz


class AttemptStatus(str, Enum):
    in_progress = "in_progress"
    graded = "graded"


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"
    __table_args__ = (
        # At most one open attempt per learner per quiz.
        Index(
            "uq_quiz_attempts_open_per_user",
            "quiz_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    quiz_id: Mapped[int] = mapped_column(ForeignKey("quizzes.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=AttemptStatus.in_progress.value,
        server_default=AttemptStatus.in_progress.value,
    )

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    score: Mapped[float | None] = mapped_column(Float, nullable=True)
    points_earned: Mapped[float | None] = mapped_column(Float, nullable=True)
    points_total: Mapped[float | None] = mapped_column(Float, nullable=True)
    time_taken_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Presentation order chosen once at start so reloads show the same layout.
    question_order: Mapped[list[int]] = mapped_column(JSONType, nullable=False, default=list)
    # {"<question_id>": [option index, ...]}
    option_order: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    quiz: Mapped["Quiz"] = relationship(back_populates="attempts")
    answers: Mapped[list["QuizAnswer"]] = relationship(
        back_populates="attempt",
        cascade="all, delete-orphan",
    )
