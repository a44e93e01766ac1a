from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.models.question import QuestionType

# Types graded leniently: the submission may be any part of the canonical text.
_LENIENT_TYPES = {QuestionType.short_answer.value, QuestionType.fill_in_blank.value}


@dataclass(frozen=True)
class GradeResult:
    is_correct: bool
    points_awarded: float


def _normalize(value: Any) -> str:
    return str(value or "").strip().lower()


def is_answer_correct(question_type: str, correct_answer: str, answer_text: str | None) -> bool:
    """Compare a submitted answer with the canonical one.

    Both sides are trimmed and lower-cased. multiple_choice / true_false and
    any unknown type need an exact match; short_answer / fill_in_blank also
    accept a submission contained in the canonical answer. A blank
    submission is never correct.
    """
    correct = _normalize(correct_answer)
    answer = _normalize(answer_text)
    if not answer:
        return False

    if str(question_type) in _LENIENT_TYPES:
        return answer == correct or answer in correct
    return answer == correct


def grade_answer(question: Any, answer_text: str | None) -> GradeResult:
    """Full points when correct, nothing otherwise."""
    ok = is_answer_correct(question.question_type, question.correct_answer, answer_text)
    points = float(question.points or 0) if ok else 0.0
    return GradeResult(is_correct=ok, points_awarded=points)
