"""Quiz attempt lifecycle: start → save answers → submit and grade.

An attempt is ``in_progress`` until it is submitted, then ``graded`` for good;
taking the quiz again means starting a new attempt (subject to the quiz's
attempt ceiling). Mutations of a single attempt are serialized by locking its
row, and the graded transition is a compare-and-set on ``status`` so two
concurrent submits cannot both succeed.

There is no background timer: once the time limit has passed, saves are
rejected and the attempt stays open until it is submitted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import (
    AlreadySubmitted,
    AttemptsExhausted,
    Forbidden,
    NotEnrolled,
    NotFound,
    ResultsNotYetVisible,
    TimeLimitExceeded,
    Unavailable,
)
from app.core.principal import Principal
from app.events import AttemptGraded, publish_attempt_graded
from app.models.answer import QuizAnswer
from app.models.attempt import AttemptStatus, QuizAttempt
from app.models.question import Question
from app.models.quiz import Quiz
from app.models.user import User
from app.services import enrollment_service
from app.services.answer_grader import grade_answer
from app.services.results_policy import ensure_results_visible, results_visible
from app.services.shuffle_engine import apply_permutation, build_presentation_order

logger = logging.getLogger(__name__)


def _as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _iso(dt: Optional[datetime]) -> Optional[str]:
    dt = _as_utc(dt)
    return dt.isoformat() if dt else None


def compute_score(points_earned: float, points_total: float) -> float:
    if points_total <= 0:
        return 0.0
    return 100.0 * float(points_earned) / float(points_total)


def is_passed(score: Optional[float], passing_score: int | float) -> bool:
    return float(score or 0) >= float(passing_score or 0)


def _elapsed_seconds(attempt: QuizAttempt, now: datetime) -> float:
    started = _as_utc(attempt.started_at) or now
    return max(0.0, (now - started).total_seconds())


def _time_limit_exceeded(quiz: Quiz, attempt: QuizAttempt, now: datetime) -> bool:
    if not quiz.time_limit_minutes:
        return False
    return _elapsed_seconds(attempt, now) > int(quiz.time_limit_minutes) * 60


def _time_remaining_seconds(quiz: Quiz, attempt: QuizAttempt, now: datetime) -> Optional[int]:
    if not quiz.time_limit_minutes or attempt.status != AttemptStatus.in_progress.value:
        return None
    left = int(quiz.time_limit_minutes) * 60 - _elapsed_seconds(attempt, now)
    return max(0, int(left))


def _attempt_summary(attempt: QuizAttempt, quiz: Quiz, now: datetime) -> Dict[str, Any]:
    graded = attempt.status == AttemptStatus.graded.value
    return {
        "id": int(attempt.id),
        "quiz_id": int(attempt.quiz_id),
        "user_id": int(attempt.user_id),
        "attempt_number": int(attempt.attempt_number),
        "status": attempt.status,
        "started_at": _iso(attempt.started_at),
        "submitted_at": _iso(attempt.submitted_at),
        "score": attempt.score,
        "points_earned": attempt.points_earned,
        "points_total": attempt.points_total,
        "time_taken_seconds": attempt.time_taken_seconds,
        "time_remaining_seconds": _time_remaining_seconds(quiz, attempt, now),
        "is_expired": (not graded) and _time_limit_exceeded(quiz, attempt, now),
        "passed": is_passed(attempt.score, quiz.passing_score) if graded else None,
    }


def _ordered_questions(attempt: QuizAttempt, questions: List[Question]) -> List[Question]:
    """Questions in the order fixed for this attempt.

    Questions added after the attempt started go last in authored order;
    deleted ones simply drop out.
    """
    by_id = {int(q.id): q for q in questions}
    out: List[Question] = []
    for qid in attempt.question_order or []:
        q = by_id.pop(int(qid), None)
        if q is not None:
            out.append(q)
    out.extend(sorted(by_id.values(), key=lambda q: (int(q.order_index or 0), int(q.id))))
    return out


def _presented_options(attempt: QuizAttempt, question: Question) -> Optional[List[str]]:
    if not question.options:
        return None
    order = (attempt.option_order or {}).get(str(question.id))
    return apply_permutation(question.options, order)


def _attempt_payload(db: Session, attempt: QuizAttempt, quiz: Quiz, now: datetime) -> Dict[str, Any]:
    saved = {qid: a.answer_text for qid, a in _attempt_answers(db, attempt.id).items()}
    questions = [
        {
            "id": int(q.id),
            "question_type": q.question_type,
            "question_text": q.question_text,
            "options": _presented_options(attempt, q),
            "points": float(q.points or 0),
            "saved_answer": saved.get(int(q.id)),
        }
        for q in _ordered_questions(attempt, _quiz_questions(db, quiz.id))
    ]
    return {
        "attempt": _attempt_summary(attempt, quiz, now),
        "quiz": {
            "id": int(quiz.id),
            "title": quiz.title,
            "instructions": quiz.instructions,
            "time_limit_minutes": quiz.time_limit_minutes,
        },
        "questions": questions,
    }


def _quiz_questions(db: Session, quiz_id: int) -> List[Question]:
    return (
        db.query(Question)
        .filter(Question.quiz_id == int(quiz_id))
        .order_by(Question.order_index.asc(), Question.id.asc())
        .all()
    )


def _attempt_answers(db: Session, attempt_id: int) -> Dict[int, QuizAnswer]:
    rows = db.query(QuizAnswer).filter(QuizAnswer.attempt_id == int(attempt_id)).all()
    return {int(a.question_id): a for a in rows}


def _open_attempt(db: Session, quiz_id: int, user_id: int) -> Optional[QuizAttempt]:
    return (
        db.query(QuizAttempt)
        .filter(
            QuizAttempt.quiz_id == int(quiz_id),
            QuizAttempt.user_id == int(user_id),
            QuizAttempt.status == AttemptStatus.in_progress.value,
        )
        .first()
    )


def _locked_attempt(db: Session, attempt_id: int) -> QuizAttempt:
    attempt = (
        db.query(QuizAttempt)
        .filter(QuizAttempt.id == int(attempt_id))
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not attempt:
        raise NotFound("Attempt not found")
    return attempt


def start_attempt(db: Session, principal: Principal, quiz_id: int, client_ip: Optional[str] = None) -> Dict[str, Any]:
    quiz = db.query(Quiz).filter(Quiz.id == int(quiz_id)).first()
    if not quiz:
        raise NotFound("Quiz not found")
    if not quiz.is_published:
        raise Unavailable("Quiz is not available")

    now = datetime.now(timezone.utc)
    if quiz.available_from and now < _as_utc(quiz.available_from):
        raise Unavailable("Quiz is not yet available")
    if quiz.due_date and now >= _as_utc(quiz.due_date):
        raise Unavailable("Quiz due date has passed")

    if not enrollment_service.is_enrolled(db, principal.id, quiz.course_id):
        raise NotEnrolled()

    # Re-entry (page refresh) returns the open attempt untouched.
    existing = _open_attempt(db, quiz.id, principal.id)
    if existing:
        return _attempt_payload(db, existing, quiz, now)

    prior = (
        db.query(func.count(QuizAttempt.id))
        .filter(QuizAttempt.quiz_id == quiz.id, QuizAttempt.user_id == int(principal.id))
        .scalar()
    ) or 0
    if quiz.max_attempts > 0 and prior >= quiz.max_attempts:
        raise AttemptsExhausted()

    question_order, option_order = build_presentation_order(
        _quiz_questions(db, quiz.id),
        shuffle_questions=bool(quiz.shuffle_questions),
        shuffle_options=bool(quiz.shuffle_options),
    )
    attempt = QuizAttempt(
        quiz_id=quiz.id,
        user_id=int(principal.id),
        attempt_number=int(prior) + 1,
        status=AttemptStatus.in_progress.value,
        started_at=now,
        ip_address=client_ip,
        question_order=question_order,
        option_order=option_order,
    )
    db.add(attempt)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent start won the open-attempt slot; hand back that one.
        db.rollback()
        existing = _open_attempt(db, quiz.id, principal.id)
        if existing is None:
            raise
        return _attempt_payload(db, existing, quiz, now)

    db.refresh(attempt)
    logger.info(
        "Quiz attempt started attempt_id=%s quiz_id=%s user_id=%s attempt_number=%s",
        attempt.id,
        quiz.id,
        principal.id,
        attempt.attempt_number,
    )
    return _attempt_payload(db, attempt, quiz, now)


def save_answer(
    db: Session,
    principal: Principal,
    attempt_id: int,
    question_id: int,
    answer_text: str,
) -> Dict[str, Any]:
    try:
        attempt = _locked_attempt(db, attempt_id)
        if int(attempt.user_id) != int(principal.id):
            raise Forbidden()
        if attempt.status != AttemptStatus.in_progress.value:
            raise AlreadySubmitted()

        quiz = attempt.quiz
        now = datetime.now(timezone.utc)
        if _time_limit_exceeded(quiz, attempt, now):
            raise TimeLimitExceeded()

        question = (
            db.query(Question)
            .filter(Question.id == int(question_id), Question.quiz_id == int(quiz.id))
            .first()
        )
        if not question:
            raise NotFound("Question not found")

        answer = db.get(QuizAnswer, (int(attempt.id), int(question.id)))
        if answer is None:
            answer = QuizAnswer(
                attempt_id=int(attempt.id),
                question_id=int(question.id),
                answer_text=str(answer_text or ""),
                answered_at=now,
            )
            db.add(answer)
        else:
            answer.answer_text = str(answer_text or "")
            answer.answered_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {
        "attempt_id": int(attempt.id),
        "question_id": int(question.id),
        "answered_at": _iso(now),
        "time_remaining_seconds": _time_remaining_seconds(quiz, attempt, now),
    }


def submit_attempt(
    db: Session,
    principal: Principal,
    attempt_id: int,
    trace_id: Optional[str] = None,
) -> Dict[str, Any]:
    try:
        attempt = _locked_attempt(db, attempt_id)
        if int(attempt.user_id) != int(principal.id):
            raise Forbidden()
        if attempt.status != AttemptStatus.in_progress.value:
            raise AlreadySubmitted()

        quiz = attempt.quiz
        answers = _attempt_answers(db, attempt.id)
        points_earned = 0.0
        points_total = 0.0
        for question in _quiz_questions(db, quiz.id):
            points_total += float(question.points or 0)
            answer = answers.get(int(question.id))
            result = grade_answer(question, answer.answer_text if answer else "")
            points_earned += result.points_awarded
            if answer is not None:
                answer.is_correct = result.is_correct
                answer.points_awarded = result.points_awarded

        score = compute_score(points_earned, points_total)
        now = datetime.now(timezone.utc)
        time_taken = int(round(_elapsed_seconds(attempt, now)))

        db.flush()
        res = db.execute(
            update(QuizAttempt)
            .where(QuizAttempt.id == attempt.id, QuizAttempt.status == AttemptStatus.in_progress.value)
            .values(
                status=AttemptStatus.graded.value,
                submitted_at=now,
                score=score,
                points_earned=points_earned,
                points_total=points_total,
                time_taken_seconds=time_taken,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            raise AlreadySubmitted()
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(attempt)
    passed = is_passed(score, quiz.passing_score)
    logger.info(
        "Quiz attempt submitted attempt_id=%s score=%.2f time_taken=%s passed=%s",
        attempt.id,
        score,
        time_taken,
        passed,
    )

    publish_attempt_graded(
        AttemptGraded(
            attempt_id=int(attempt.id),
            user_id=int(attempt.user_id),
            course_id=int(quiz.course_id),
            quiz_id=int(quiz.id),
            quiz_title=quiz.title,
            score=float(score),
            passed=passed,
            trace_id=trace_id,
        )
    )

    data = _attempt_summary(attempt, quiz, now)
    data["passed"] = passed
    # Lets the client decide whether to fetch per-question results right away.
    data["can_view_results"] = results_visible(
        show_results=quiz.show_results,
        due_date=quiz.due_date,
        is_owner=True,
        is_course_instructor=False,
        is_admin=False,
        now=now,
    )
    return data


def get_attempt_results(db: Session, principal: Principal, attempt_id: int) -> Dict[str, Any]:
    attempt = db.query(QuizAttempt).filter(QuizAttempt.id == int(attempt_id)).first()
    if not attempt:
        raise NotFound("Attempt not found")
    quiz = attempt.quiz

    is_owner = int(attempt.user_id) == int(principal.id)
    is_instructor = enrollment_service.is_course_instructor(db, principal.id, quiz.course_id)
    now = datetime.now(timezone.utc)
    ensure_results_visible(
        show_results=quiz.show_results,
        due_date=quiz.due_date,
        is_owner=is_owner,
        is_course_instructor=is_instructor,
        is_admin=principal.is_admin,
        now=now,
    )
    graded = attempt.status == AttemptStatus.graded.value
    if not graded and not (is_instructor or principal.is_admin):
        raise ResultsNotYetVisible("Results are available once the attempt is submitted")

    answers = _attempt_answers(db, attempt.id)
    results = []
    for q in _quiz_questions(db, quiz.id):
        answer = answers.get(int(q.id))
        if answer is not None:
            is_correct = answer.is_correct
            points_awarded = answer.points_awarded
        else:
            is_correct = False if graded else None
            points_awarded = 0.0 if graded else None
        results.append(
            {
                "question": {
                    "id": int(q.id),
                    "question_type": q.question_type,
                    "question_text": q.question_text,
                    "options": list(q.options) if q.options else None,
                    "points": float(q.points or 0),
                    "correct_answer": q.correct_answer,
                    "explanation": q.explanation,
                },
                "user_answer": answer.answer_text if answer is not None else None,
                "is_correct": is_correct,
                "points_awarded": points_awarded,
            }
        )

    return {
        "attempt": _attempt_summary(attempt, quiz, now),
        "quiz": {"id": int(quiz.id), "title": quiz.title, "passing_score": quiz.passing_score},
        "results": results,
    }


def list_attempts_for_quiz(db: Session, principal: Principal, quiz_id: int) -> List[Dict[str, Any]]:
    quiz = db.query(Quiz).filter(Quiz.id == int(quiz_id)).first()
    if not quiz:
        raise NotFound("Quiz not found")
    if not (principal.is_admin or enrollment_service.is_course_instructor(db, principal.id, quiz.course_id)):
        raise Forbidden()

    attempts = (
        db.query(QuizAttempt)
        .filter(QuizAttempt.quiz_id == quiz.id)
        .order_by(QuizAttempt.submitted_at.desc().nulls_last(), QuizAttempt.id.desc())
        .all()
    )
    user_ids = sorted({int(a.user_id) for a in attempts})
    users = {int(u.id): u for u in db.query(User).filter(User.id.in_(user_ids)).all()} if user_ids else {}

    out = []
    for a in attempts:
        u = users.get(int(a.user_id))
        out.append(
            {
                "id": int(a.id),
                "user_id": int(a.user_id),
                "user": {"id": int(u.id), "full_name": u.full_name, "email": u.email} if u else None,
                "attempt_number": int(a.attempt_number),
                "started_at": _iso(a.started_at),
                "submitted_at": _iso(a.submitted_at),
                "score": a.score,
                "points_earned": a.points_earned,
                "points_total": a.points_total,
                "time_taken_seconds": a.time_taken_seconds,
                "status": a.status,
                "passed": is_passed(a.score, quiz.passing_score) if a.status == AttemptStatus.graded.value else None,
            }
        )
    return out
