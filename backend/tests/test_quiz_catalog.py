from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import Forbidden, InvalidRequest, NotEnrolled, NotFound
from app.models.answer import QuizAnswer
from app.models.attempt import QuizAttempt
from app.models.question import Question
from app.schemas.quiz import QuestionCreate, QuestionUpdate, QuizCreate, QuizUpdate
from app.services import attempt_service, quiz_catalog


def _mc(text, correct="A", order_index=None):
    return QuestionCreate(
        question_type="multiple_choice",
        question_text=text,
        options=["A", "B", "C"],
        correct_answer=correct,
        order_index=order_index,
    )


def _order(db, quiz_id):
    rows = db.query(Question).filter(Question.quiz_id == quiz_id).order_by(Question.order_index).all()
    return [(q.question_text, q.order_index) for q in rows]


def test_create_quiz_applies_defaults_and_starts_unpublished(db, world):
    data = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells"))
    assert data["is_published"] is False
    assert data["max_attempts"] == 1
    assert data["passing_score"] == 70
    assert data["show_results"] == "after_submit"


def test_only_course_staff_author(db, world):
    with pytest.raises(Forbidden):
        quiz_catalog.create_quiz(db, world.other_instructor, world.course_id, QuizCreate(title="Cells"))
    with pytest.raises(NotFound):
        quiz_catalog.create_quiz(db, world.instructor, 999, QuizCreate(title="Cells"))

    data = quiz_catalog.create_quiz(db, world.admin, world.course_id, QuizCreate(title="Cells"))
    with pytest.raises(Forbidden):
        quiz_catalog.add_question(db, world.other_instructor, data["id"], _mc("Q"))


def test_update_quiz_clears_nullable_fields_only(db, world):
    due = datetime(2026, 5, 1, tzinfo=timezone.utc)
    quiz = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells", due_date=due))

    data = quiz_catalog.update_quiz(
        db, world.instructor, quiz["id"], QuizUpdate(title=None, due_date=None, is_published=True, max_attempts=3)
    )
    assert data["title"] == "Cells"
    assert data["due_date"] is None
    assert data["is_published"] is True
    assert data["max_attempts"] == 3


def test_questions_append_and_insert_keep_dense_order(db, world):
    quiz = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells"))
    quiz_catalog.add_question(db, world.instructor, quiz["id"], _mc("first"))
    quiz_catalog.add_question(db, world.instructor, quiz["id"], _mc("second"))
    quiz_catalog.add_question(db, world.instructor, quiz["id"], _mc("zeroth", order_index=0))

    assert _order(db, quiz["id"]) == [("zeroth", 0), ("first", 1), ("second", 2)]


def test_bulk_add_appends_after_existing(db, world):
    quiz = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells"))
    quiz_catalog.add_question(db, world.instructor, quiz["id"], _mc("first"))
    created = quiz_catalog.add_questions_bulk(db, world.instructor, quiz["id"], [_mc("b1"), _mc("b2")])

    assert [q["order_index"] for q in created] == [1, 2]
    assert _order(db, quiz["id"])[-1] == ("b2", 2)


def test_options_are_validated_per_type(db, world):
    quiz = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells"))

    tf = quiz_catalog.add_question(
        db,
        world.instructor,
        quiz["id"],
        QuestionCreate(question_type="true_false", question_text="Cells divide.", correct_answer="True"),
    )
    assert tf["options"] == ["True", "False"]

    short = quiz_catalog.add_question(
        db,
        world.instructor,
        quiz["id"],
        QuestionCreate(question_type="short_answer", question_text="Name it", options=["x"], correct_answer="mitosis"),
    )
    assert short["options"] is None

    with pytest.raises(InvalidRequest):
        quiz_catalog.add_question(
            db,
            world.instructor,
            quiz["id"],
            QuestionCreate(question_type="multiple_choice", question_text="Q", options=["only"], correct_answer="only"),
        )


def test_update_question_changes_fields(db, world):
    quiz = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells"))
    q = quiz_catalog.add_question(db, world.instructor, quiz["id"], _mc("Q"))

    data = quiz_catalog.update_question(
        db, world.instructor, q["id"], QuestionUpdate(correct_answer="B", points=2, options=["A", "B"])
    )
    assert data["correct_answer"] == "B"
    assert data["points"] == 2.0
    assert data["options"] == ["A", "B"]

    with pytest.raises(NotFound):
        quiz_catalog.update_question(db, world.instructor, 999, QuestionUpdate(points=1))


def test_reorder_requires_exact_permutation(db, world):
    quiz = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells"))
    ids = [quiz_catalog.add_question(db, world.instructor, quiz["id"], _mc(t))["id"] for t in ("a", "b", "c")]

    quiz_catalog.reorder_questions(db, world.instructor, quiz["id"], [ids[2], ids[0], ids[1]])
    assert _order(db, quiz["id"]) == [("c", 0), ("a", 1), ("b", 2)]

    for bad in ([ids[0], ids[1]], [ids[0], ids[0], ids[1]], ids + [999]):
        with pytest.raises(InvalidRequest):
            quiz_catalog.reorder_questions(db, world.instructor, quiz["id"], bad)


def test_delete_question_resequences_and_drops_answers(db, world, make_quiz):
    quiz = make_quiz(
        [
            ("multiple_choice", "a", ["A", "B"], "A", 1),
            ("multiple_choice", "b", ["A", "B"], "A", 1),
            ("multiple_choice", "c", ["A", "B"], "A", 1),
        ]
    )
    started = attempt_service.start_attempt(db, world.learner, quiz.id)
    middle = [q for q in started["questions"] if q["question_text"] == "b"][0]["id"]
    attempt_service.save_answer(db, world.learner, started["attempt"]["id"], middle, "A")

    quiz_catalog.delete_question(db, world.instructor, middle)

    assert _order(db, quiz.id) == [("a", 0), ("c", 1)]
    assert db.query(QuizAnswer).filter(QuizAnswer.question_id == middle).count() == 0


def test_delete_quiz_removes_attempts(db, world, make_quiz, photosynthesis):
    quiz = make_quiz(photosynthesis)
    attempt_service.start_attempt(db, world.learner, quiz.id)
    quiz_id = quiz.id

    quiz_catalog.delete_quiz(db, world.instructor, quiz_id)

    assert db.query(Question).filter(Question.quiz_id == quiz_id).count() == 0
    assert db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz_id).count() == 0
    with pytest.raises(NotFound):
        quiz_catalog.get_quiz(db, world.instructor, quiz_id)


def test_learners_see_only_open_published_quizzes(db, world, make_quiz, photosynthesis):
    now = datetime.now(timezone.utc)
    visible = make_quiz(photosynthesis, title="Visible")
    make_quiz([], title="Draft", is_published=False)
    make_quiz([], title="Later", available_from=now + timedelta(days=2))

    titles = [q["title"] for q in quiz_catalog.list_course_quizzes(db, world.learner, world.course_id)]
    assert titles == ["Visible"]

    staff = [q["title"] for q in quiz_catalog.list_course_quizzes(db, world.instructor, world.course_id)]
    assert sorted(staff) == ["Draft", "Later", "Visible"]

    mine = quiz_catalog.list_student_quizzes(db, world.learner)
    assert [(q["title"], q["course_name"], q["question_count"]) for q in mine] == [("Visible", "Biology 101", 5)]
    assert quiz_catalog.list_student_quizzes(db, world.outsider) == []

    with pytest.raises(NotEnrolled):
        quiz_catalog.list_course_quizzes(db, world.outsider, world.course_id)

    detail = quiz_catalog.get_quiz(db, world.learner, visible.id)
    assert all("correct_answer" not in q for q in detail["questions"])


def test_get_quiz_hides_drafts_from_learners(db, world, make_quiz, photosynthesis):
    draft = make_quiz(photosynthesis, is_published=False)
    with pytest.raises(NotFound):
        quiz_catalog.get_quiz(db, world.learner, draft.id)

    detail = quiz_catalog.get_quiz(db, world.instructor, draft.id)
    assert detail["questions"][0]["correct_answer"] == "Chloroplast"


def test_instructor_listing_counts(db, world, make_quiz, photosynthesis):
    quiz = make_quiz(photosynthesis)
    attempt_service.start_attempt(db, world.learner, quiz.id)

    rows = quiz_catalog.list_instructor_quizzes(db, world.instructor)
    assert [(r["title"], r["question_count"], r["attempt_count"]) for r in rows] == [
        ("Photosynthesis check", 5, 1)
    ]
    assert quiz_catalog.list_instructor_quizzes(db, world.other_instructor) == []
    assert len(quiz_catalog.list_instructor_quizzes(db, world.admin)) == 1


def test_offset_datetimes_are_normalized_to_utc():
    payload = QuizUpdate(due_date="2026-03-01T09:00:00-05:00", available_from="2026-03-01T09:00:00")
    assert payload.due_date == datetime(2026, 3, 1, 14, 0, tzinfo=timezone.utc)
    assert payload.available_from == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_offset_due_date_keeps_its_instant(db, world):
    now = datetime.now(timezone.utc).replace(microsecond=0)
    due = (now + timedelta(hours=2)).astimezone(timezone(timedelta(hours=-5)))
    opens = (now - timedelta(hours=1)).astimezone(timezone(timedelta(hours=5)))

    quiz = quiz_catalog.create_quiz(db, world.instructor, world.course_id, QuizCreate(title="Cells", due_date=due))
    quiz_catalog.update_quiz(db, world.instructor, quiz["id"], QuizUpdate(is_published=True, available_from=opens))

    detail = quiz_catalog.get_quiz(db, world.instructor, quiz["id"])
    assert datetime.fromisoformat(detail["due_date"]) == now + timedelta(hours=2)
    assert datetime.fromisoformat(detail["available_from"]) == now - timedelta(hours=1)

    assert [q["title"] for q in quiz_catalog.list_student_quizzes(db, world.learner)] == ["Cells"]
    started = attempt_service.start_attempt(db, world.learner, quiz["id"])
    assert started["attempt"]["status"] == "in_progress"
