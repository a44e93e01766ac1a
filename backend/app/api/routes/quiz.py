from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import client_ip, require_instructor, require_principal
from app.core.principal import Principal
from app.db.session import get_db
from app.schemas.quiz import (
    QuestionBulkCreate,
    QuestionCreate,
    QuestionReorder,
    QuestionUpdate,
    QuizCreate,
    QuizUpdate,
    SaveAnswerRequest,
)
from app.services import attempt_service, quiz_catalog

router = APIRouter(tags=["quiz"])


def _ok(request: Request, data):
    return {"request_id": request.state.request_id, "data": data, "error": None}


# ---------------------------------------------------------------------------
# Listings (static paths first so they never match /quizzes/{quiz_id})
# ---------------------------------------------------------------------------


@router.get("/quizzes/instructor")
def instructor_quizzes(
    request: Request,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.list_instructor_quizzes(db, principal))


@router.get("/quizzes/student")
def student_quizzes(
    request: Request,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.list_student_quizzes(db, principal))


@router.get("/quizzes/course/{course_id}")
def course_quizzes(
    request: Request,
    course_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.list_course_quizzes(db, principal, course_id))


@router.post("/quizzes/course/{course_id}", status_code=201)
def create_quiz(
    request: Request,
    course_id: int,
    payload: QuizCreate,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.create_quiz(db, principal, course_id, payload))


# ---------------------------------------------------------------------------
# Attempts (learner taking a quiz)
# ---------------------------------------------------------------------------


@router.post("/quizzes/attempts/{attempt_id}/answers")
def save_answer(
    request: Request,
    attempt_id: int,
    payload: SaveAnswerRequest,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    data = attempt_service.save_answer(db, principal, attempt_id, payload.question_id, payload.answer)
    return _ok(request, data)


@router.post("/quizzes/attempts/{attempt_id}/submit")
def submit_attempt(
    request: Request,
    attempt_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    data = attempt_service.submit_attempt(db, principal, attempt_id, trace_id=request.state.request_id)
    return _ok(request, data)


@router.get("/quizzes/attempts/{attempt_id}/results")
def attempt_results(
    request: Request,
    attempt_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return _ok(request, attempt_service.get_attempt_results(db, principal, attempt_id))


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


@router.put("/quizzes/questions/{question_id}")
def update_question(
    request: Request,
    question_id: int,
    payload: QuestionUpdate,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.update_question(db, principal, question_id, payload))


@router.delete("/quizzes/questions/{question_id}")
def delete_question(
    request: Request,
    question_id: int,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.delete_question(db, principal, question_id))


@router.post("/quizzes/{quiz_id}/questions", status_code=201)
def add_question(
    request: Request,
    quiz_id: int,
    payload: QuestionCreate,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.add_question(db, principal, quiz_id, payload))


@router.post("/quizzes/{quiz_id}/questions/bulk", status_code=201)
def add_questions_bulk(
    request: Request,
    quiz_id: int,
    payload: QuestionBulkCreate,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.add_questions_bulk(db, principal, quiz_id, payload.questions))


@router.put("/quizzes/{quiz_id}/questions/reorder")
def reorder_questions(
    request: Request,
    quiz_id: int,
    payload: QuestionReorder,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.reorder_questions(db, principal, quiz_id, payload.question_ids))


# ---------------------------------------------------------------------------
# Single quiz
# ---------------------------------------------------------------------------


@router.post("/quizzes/{quiz_id}/attempts")
def start_attempt(
    request: Request,
    quiz_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    data = attempt_service.start_attempt(db, principal, quiz_id, client_ip=client_ip(request))
    return _ok(request, data)


@router.get("/quizzes/{quiz_id}/attempts")
def list_quiz_attempts(
    request: Request,
    quiz_id: int,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, attempt_service.list_attempts_for_quiz(db, principal, quiz_id))


@router.get("/quizzes/{quiz_id}")
def get_quiz(
    request: Request,
    quiz_id: int,
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.get_quiz(db, principal, quiz_id))


@router.put("/quizzes/{quiz_id}")
def update_quiz(
    request: Request,
    quiz_id: int,
    payload: QuizUpdate,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.update_quiz(db, principal, quiz_id, payload))


@router.delete("/quizzes/{quiz_id}")
def delete_quiz(
    request: Request,
    quiz_id: int,
    principal: Principal = Depends(require_instructor),
    db: Session = Depends(get_db),
):
    return _ok(request, quiz_catalog.delete_quiz(db, principal, quiz_id))
