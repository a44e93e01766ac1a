from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

QuestionTypeLiteral = Literal["multiple_choice", "true_false", "short_answer", "fill_in_blank"]
ShowResultsLiteral = Literal["after_submit", "after_due_date", "never"]


def _to_utc(v: Optional[datetime]) -> Optional[datetime]:
    # Columns keep wall-clock time only on some stores, so everything is UTC here.
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class QuizCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    instructions: Optional[str] = None
    time_limit_minutes: Optional[int] = Field(default=None, gt=0)
    max_attempts: Optional[int] = Field(default=None, ge=0)
    passing_score: Optional[int] = Field(default=None, ge=0, le=100)
    shuffle_questions: bool = False
    shuffle_options: bool = False
    show_results: ShowResultsLiteral = "after_submit"
    due_date: Optional[datetime] = None
    available_from: Optional[datetime] = None
    module_id: Optional[int] = Field(default=None, gt=0)

    @field_validator("due_date", "available_from")
    @classmethod
    def _normalize_tz(cls, v):
        return _to_utc(v)


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    instructions: Optional[str] = None
    time_limit_minutes: Optional[int] = Field(default=None, gt=0)
    max_attempts: Optional[int] = Field(default=None, ge=0)
    passing_score: Optional[int] = Field(default=None, ge=0, le=100)
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    show_results: Optional[ShowResultsLiteral] = None
    due_date: Optional[datetime] = None
    available_from: Optional[datetime] = None
    module_id: Optional[int] = Field(default=None, gt=0)
    is_published: Optional[bool] = None

    @field_validator("due_date", "available_from")
    @classmethod
    def _normalize_tz(cls, v):
        return _to_utc(v)


class QuestionCreate(BaseModel):
    question_type: QuestionTypeLiteral
    question_text: str = Field(min_length=1)
    options: Optional[List[str]] = None
    correct_answer: str = Field(min_length=1)
    explanation: Optional[str] = None
    points: float = Field(default=1, gt=0)
    order_index: Optional[int] = Field(default=None, ge=0)


class QuestionUpdate(BaseModel):
    question_type: Optional[QuestionTypeLiteral] = None
    question_text: Optional[str] = Field(default=None, min_length=1)
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = Field(default=None, min_length=1)
    explanation: Optional[str] = None
    points: Optional[float] = Field(default=None, gt=0)


class QuestionBulkCreate(BaseModel):
    questions: List[QuestionCreate] = Field(min_length=1)


class QuestionReorder(BaseModel):
    question_ids: List[int]


class SaveAnswerRequest(BaseModel):
    question_id: int = Field(gt=0)
    answer: str = ""
