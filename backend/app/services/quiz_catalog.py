"""Quiz and question authoring plus the listings built on top of them.

Authoring is limited to the course's instructor (or an admin). Learners only
ever see published quizzes of courses they are enrolled in, and never the
correct answers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import Forbidden, InvalidRequest, NotEnrolled, NotFound
from app.core.principal import Principal
from app.models.answer import QuizAnswer
from app.models.attempt import QuizAttempt
from app.models.course import Course
from app.models.question import OPTION_TYPES, Question, QuestionType
from app.models.quiz import Quiz
from app.schemas.quiz import QuestionCreate, QuestionUpdate, QuizCreate, QuizUpdate
from app.services import enrollment_service

logger = logging.getLogger(__name__)

_TRUE_FALSE_OPTIONS = ["True", "False"]
_NULLABLE_QUIZ_FIELDS = {"description", "instructions", "time_limit_minutes", "due_date", "available_from", "module_id"}


def _iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def _can_author(db: Session, principal: Principal, course_id: int) -> bool:
    return principal.is_admin or enrollment_service.is_course_instructor(db, principal.id, course_id)


def _ensure_can_author(db: Session, principal: Principal, course_id: int) -> None:
    if not _can_author(db, principal, course_id):
        raise Forbidden()


def _get_quiz(db: Session, quiz_id: int) -> Quiz:
    quiz = db.query(Quiz).filter(Quiz.id == int(quiz_id)).first()
    if not quiz:
        raise NotFound("Quiz not found")
    return quiz


def _get_question(db: Session, question_id: int) -> Question:
    question = db.query(Question).filter(Question.id == int(question_id)).first()
    if not question:
        raise NotFound("Question not found")
    return question


def _normalize_options(question_type: str, options: Optional[List[str]]) -> Optional[List[str]]:
    if question_type not in OPTION_TYPES:
        return None
    cleaned = [str(o) for o in (options or []) if str(o).strip()]
    if question_type == QuestionType.true_false.value and not cleaned:
        return list(_TRUE_FALSE_OPTIONS)
    if len(cleaned) < 2:
        raise InvalidRequest("Choice questions need at least two options")
    return cleaned


def _question_counts(db: Session, quiz_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(quiz_ids)
    if not ids:
        return {}
    rows = (
        db.query(Question.quiz_id, func.count(Question.id))
        .filter(Question.quiz_id.in_(ids))
        .group_by(Question.quiz_id)
        .all()
    )
    return {int(qid): int(n) for qid, n in rows}


def _attempt_counts(db: Session, quiz_ids: Iterable[int]) -> Dict[int, int]:
    ids = list(quiz_ids)
    if not ids:
        return {}
    rows = (
        db.query(QuizAttempt.quiz_id, func.count(QuizAttempt.id))
        .filter(QuizAttempt.quiz_id.in_(ids))
        .group_by(QuizAttempt.quiz_id)
        .all()
    )
    return {int(qid): int(n) for qid, n in rows}


def _my_attempts(db: Session, user_id: int, quiz_ids: Iterable[int]) -> Dict[int, List[Dict[str, Any]]]:
    ids = list(quiz_ids)
    out: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
    if not ids:
        return out
    rows = (
        db.query(QuizAttempt)
        .filter(QuizAttempt.user_id == int(user_id), QuizAttempt.quiz_id.in_(ids))
        .order_by(QuizAttempt.attempt_number.desc())
        .all()
    )
    for a in rows:
        out[int(a.quiz_id)].append(
            {
                "id": int(a.id),
                "attempt_number": int(a.attempt_number),
                "score": a.score,
                "status": a.status,
                "submitted_at": _iso(a.submitted_at),
            }
        )
    return out


def serialize_quiz(quiz: Quiz) -> Dict[str, Any]:
    return {
        "id": int(quiz.id),
        "course_id": int(quiz.course_id),
        "module_id": quiz.module_id,
        "title": quiz.title,
        "description": quiz.description,
        "instructions": quiz.instructions,
        "time_limit_minutes": quiz.time_limit_minutes,
        "max_attempts": int(quiz.max_attempts),
        "passing_score": quiz.passing_score,
        "shuffle_questions": bool(quiz.shuffle_questions),
        "shuffle_options": bool(quiz.shuffle_options),
        "show_results": quiz.show_results,
        "due_date": _iso(quiz.due_date),
        "available_from": _iso(quiz.available_from),
        "is_published": bool(quiz.is_published),
        "created_at": _iso(quiz.created_at),
    }


def serialize_question(question: Question, *, include_answer: bool) -> Dict[str, Any]:
    data = {
        "id": int(question.id),
        "quiz_id": int(question.quiz_id),
        "question_type": question.question_type,
        "question_text": question.question_text,
        "options": list(question.options) if question.options else None,
        "points": float(question.points or 0),
        "order_index": int(question.order_index or 0),
    }
    if include_answer:
        data["correct_answer"] = question.correct_answer
        data["explanation"] = question.explanation
    return data


def _available_now(now: datetime):
    return or_(Quiz.available_from.is_(None), Quiz.available_from <= now)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


def list_course_quizzes(db: Session, principal: Principal, course_id: int) -> List[Dict[str, Any]]:
    author = _can_author(db, principal, course_id)
    if not author and not enrollment_service.is_enrolled(db, principal.id, course_id):
        raise NotEnrolled("You must be enrolled in this course to view quizzes")

    q = db.query(Quiz).filter(Quiz.course_id == int(course_id))
    if not author:
        q = q.filter(Quiz.is_published.is_(True), _available_now(datetime.now(timezone.utc)))
    quizzes = q.order_by(Quiz.created_at.asc(), Quiz.id.asc()).all()

    ids = [int(x.id) for x in quizzes]
    questions = _question_counts(db, ids)
    attempts = _attempt_counts(db, ids)
    mine = {} if author else _my_attempts(db, principal.id, ids)

    out = []
    for quiz in quizzes:
        row = serialize_quiz(quiz)
        row["question_count"] = questions.get(int(quiz.id), 0)
        row["attempt_count"] = attempts.get(int(quiz.id), 0)
        if not author:
            row["my_attempts"] = mine.get(int(quiz.id), [])
        out.append(row)
    return out


def list_student_quizzes(db: Session, principal: Principal) -> List[Dict[str, Any]]:
    """Published, already open quizzes across every course the learner is enrolled in."""
    course_ids = enrollment_service.enrolled_course_ids(db, principal.id)
    if not course_ids:
        return []

    titles = {int(c.id): c.title for c in db.query(Course).filter(Course.id.in_(course_ids)).all()}
    quizzes = (
        db.query(Quiz)
        .filter(
            Quiz.course_id.in_(course_ids),
            Quiz.is_published.is_(True),
            _available_now(datetime.now(timezone.utc)),
        )
        .order_by(Quiz.course_id.asc(), Quiz.created_at.asc(), Quiz.id.asc())
        .all()
    )
    ids = [int(x.id) for x in quizzes]
    questions = _question_counts(db, ids)
    mine = _my_attempts(db, principal.id, ids)

    return [
        {
            "id": int(quiz.id),
            "title": quiz.title,
            "description": quiz.description,
            "course_id": int(quiz.course_id),
            "course_name": titles.get(int(quiz.course_id), "Unknown Course"),
            "time_limit_minutes": quiz.time_limit_minutes,
            "max_attempts": int(quiz.max_attempts),
            "passing_score": quiz.passing_score,
            "due_date": _iso(quiz.due_date),
            "question_count": questions.get(int(quiz.id), 0),
            "my_attempts": mine.get(int(quiz.id), []),
        }
        for quiz in quizzes
    ]


def list_instructor_quizzes(db: Session, principal: Principal) -> List[Dict[str, Any]]:
    q = db.query(Quiz, Course.title).join(Course, Course.id == Quiz.course_id)
    if not principal.is_admin:
        q = q.filter(Course.instructor_id == int(principal.id))
    rows = q.order_by(Quiz.created_at.desc(), Quiz.id.desc()).all()

    ids = [int(quiz.id) for quiz, _ in rows]
    questions = _question_counts(db, ids)
    attempts = _attempt_counts(db, ids)
    return [
        {
            "id": int(quiz.id),
            "title": quiz.title,
            "course_id": int(quiz.course_id),
            "course_name": course_title,
            "module_id": quiz.module_id,
            "time_limit_minutes": quiz.time_limit_minutes,
            "is_published": bool(quiz.is_published),
            "question_count": questions.get(int(quiz.id), 0),
            "attempt_count": attempts.get(int(quiz.id), 0),
        }
        for quiz, course_title in rows
    ]


def get_quiz(db: Session, principal: Principal, quiz_id: int) -> Dict[str, Any]:
    quiz = _get_quiz(db, quiz_id)
    author = _can_author(db, principal, quiz.course_id)
    if not author:
        if not quiz.is_published:
            raise NotFound("Quiz not found")
        if not enrollment_service.is_enrolled(db, principal.id, quiz.course_id):
            raise NotEnrolled("You must be enrolled in this course to view quizzes")

    questions = (
        db.query(Question)
        .filter(Question.quiz_id == quiz.id)
        .order_by(Question.order_index.asc(), Question.id.asc())
        .all()
    )
    data = serialize_quiz(quiz)
    data["questions"] = [serialize_question(q, include_answer=author) for q in questions]
    data["attempt_count"] = _attempt_counts(db, [quiz.id]).get(int(quiz.id), 0)
    return data


# ---------------------------------------------------------------------------
# Quiz authoring
# ---------------------------------------------------------------------------


def create_quiz(db: Session, principal: Principal, course_id: int, payload: QuizCreate) -> Dict[str, Any]:
    course = db.query(Course).filter(Course.id == int(course_id)).first()
    if not course:
        raise NotFound("Course not found")
    _ensure_can_author(db, principal, course.id)

    quiz = Quiz(
        course_id=int(course.id),
        module_id=payload.module_id,
        title=payload.title,
        description=payload.description,
        instructions=payload.instructions,
        time_limit_minutes=payload.time_limit_minutes,
        max_attempts=(
            payload.max_attempts if payload.max_attempts is not None else settings.QUIZ_DEFAULT_MAX_ATTEMPTS
        ),
        passing_score=(
            payload.passing_score if payload.passing_score is not None else settings.QUIZ_DEFAULT_PASSING_SCORE
        ),
        shuffle_questions=payload.shuffle_questions,
        shuffle_options=payload.shuffle_options,
        show_results=payload.show_results,
        due_date=payload.due_date,
        available_from=payload.available_from,
        is_published=False,
    )
    db.add(quiz)
    db.commit()
    db.refresh(quiz)
    logger.info("Quiz created quiz_id=%s course_id=%s", quiz.id, course.id)
    return serialize_quiz(quiz)


def update_quiz(db: Session, principal: Principal, quiz_id: int, payload: QuizUpdate) -> Dict[str, Any]:
    quiz = _get_quiz(db, quiz_id)
    _ensure_can_author(db, principal, quiz.course_id)

    for field, value in payload.model_dump(exclude_unset=True).items():
        # Nullable columns may be cleared; the rest ignore an explicit null.
        if value is None and field not in _NULLABLE_QUIZ_FIELDS:
            continue
        setattr(quiz, field, value)
    db.commit()
    db.refresh(quiz)
    return serialize_quiz(quiz)


def delete_quiz(db: Session, principal: Principal, quiz_id: int) -> Dict[str, Any]:
    quiz = _get_quiz(db, quiz_id)
    _ensure_can_author(db, principal, quiz.course_id)

    qid = int(quiz.id)
    db.delete(quiz)
    db.commit()
    logger.info("Quiz deleted quiz_id=%s", qid)
    return {"message": "Quiz deleted successfully"}


# ---------------------------------------------------------------------------
# Question authoring
# ---------------------------------------------------------------------------


def _next_order_index(db: Session, quiz_id: int) -> int:
    n = db.query(func.count(Question.id)).filter(Question.quiz_id == int(quiz_id)).scalar()
    return int(n or 0)


def _resequence(db: Session, quiz_id: int, ordered_ids: Optional[List[int]] = None) -> None:
    """Rewrite order_index as 0..n-1 for the whole quiz."""
    questions = (
        db.query(Question)
        .filter(Question.quiz_id == int(quiz_id))
        .order_by(Question.order_index.asc(), Question.id.asc())
        .all()
    )
    if ordered_ids is not None:
        by_id = {int(q.id): q for q in questions}
        questions = [by_id[int(i)] for i in ordered_ids]
    for idx, q in enumerate(questions):
        q.order_index = idx


def _build_question(quiz_id: int, data: QuestionCreate, order_index: int) -> Question:
    return Question(
        quiz_id=int(quiz_id),
        question_type=data.question_type,
        question_text=data.question_text,
        options=_normalize_options(data.question_type, data.options),
        correct_answer=data.correct_answer,
        explanation=data.explanation,
        points=float(data.points),
        order_index=order_index,
    )


def add_question(db: Session, principal: Principal, quiz_id: int, payload: QuestionCreate) -> Dict[str, Any]:
    quiz = _get_quiz(db, quiz_id)
    _ensure_can_author(db, principal, quiz.course_id)

    count = _next_order_index(db, quiz.id)
    question = _build_question(quiz.id, payload, count)
    db.add(question)
    db.flush()
    # An explicit position inserts the question there and shifts the rest.
    if payload.order_index is not None and payload.order_index < count:
        ids = [
            int(r[0])
            for r in db.query(Question.id)
            .filter(Question.quiz_id == quiz.id, Question.id != question.id)
            .order_by(Question.order_index.asc(), Question.id.asc())
            .all()
        ]
        ids.insert(int(payload.order_index), int(question.id))
        _resequence(db, quiz.id, ids)
    db.commit()
    db.refresh(question)
    return serialize_question(question, include_answer=True)


def add_questions_bulk(
    db: Session,
    principal: Principal,
    quiz_id: int,
    payloads: List[QuestionCreate],
) -> List[Dict[str, Any]]:
    quiz = _get_quiz(db, quiz_id)
    _ensure_can_author(db, principal, quiz.course_id)

    start = _next_order_index(db, quiz.id)
    created = [_build_question(quiz.id, data, start + idx) for idx, data in enumerate(payloads)]
    db.add_all(created)
    db.commit()
    for q in created:
        db.refresh(q)
    logger.info("Questions added in bulk quiz_id=%s count=%s", quiz.id, len(created))
    return [serialize_question(q, include_answer=True) for q in created]


def update_question(db: Session, principal: Principal, question_id: int, payload: QuestionUpdate) -> Dict[str, Any]:
    question = _get_question(db, question_id)
    quiz = _get_quiz(db, question.quiz_id)
    _ensure_can_author(db, principal, quiz.course_id)

    changes = payload.model_dump(exclude_unset=True)
    for field in ("question_type", "question_text", "correct_answer", "explanation", "points"):
        if field in changes and (changes[field] is not None or field == "explanation"):
            setattr(question, field, changes[field])
    if "options" in changes or "question_type" in changes:
        options = changes.get("options", question.options)
        question.options = _normalize_options(question.question_type, options)
    db.commit()
    db.refresh(question)
    return serialize_question(question, include_answer=True)


def delete_question(db: Session, principal: Principal, question_id: int) -> Dict[str, Any]:
    question = _get_question(db, question_id)
    quiz = _get_quiz(db, question.quiz_id)
    _ensure_can_author(db, principal, quiz.course_id)

    db.query(QuizAnswer).filter(QuizAnswer.question_id == question.id).delete(synchronize_session=False)
    db.delete(question)
    db.flush()
    _resequence(db, quiz.id)
    db.commit()
    return {"message": "Question deleted successfully"}


def reorder_questions(db: Session, principal: Principal, quiz_id: int, question_ids: List[int]) -> Dict[str, Any]:
    quiz = _get_quiz(db, quiz_id)
    _ensure_can_author(db, principal, quiz.course_id)

    current = {int(r[0]) for r in db.query(Question.id).filter(Question.quiz_id == quiz.id).all()}
    wanted = [int(i) for i in question_ids]
    if len(wanted) != len(set(wanted)) or set(wanted) != current:
        raise InvalidRequest("question_ids must list every question of the quiz exactly once")

    _resequence(db, quiz.id, wanted)
    db.commit()
    return {"message": "Questions reordered successfully"}
