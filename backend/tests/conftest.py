from __future__ import annotations

import os

# Must be set before anything imports app.core.config / app.db.session.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ASYNC_QUEUE_ENABLED"] = "false"
os.environ["AUTH_ENABLED"] = "false"

from types import SimpleNamespace

import pytest

from app.core.principal import Principal
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.models.course import Course, Enrollment
from app.models.question import Question
from app.models.quiz import Quiz
from app.models.user import User


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def world(db):
    """One course taught by user 1; user 2 enrolled, user 3 not; user 4 is an admin."""
    db.add_all(
        [
            User(id=1, email="instructor@test.local", full_name="Instructor", role="instructor"),
            User(id=2, email="alice@test.local", full_name="Alice", role="student"),
            User(id=3, email="bob@test.local", full_name="Bob", role="student"),
            User(id=4, email="admin@test.local", full_name="Admin", role="admin"),
            User(id=5, email="other@test.local", full_name="Other Teacher", role="instructor"),
        ]
    )
    db.add(Course(id=1, instructor_id=1, title="Biology 101"))
    db.add(Enrollment(user_id=2, course_id=1))
    db.commit()
    return SimpleNamespace(
        course_id=1,
        instructor=Principal(id=1, role="instructor"),
        learner=Principal(id=2, role="student"),
        outsider=Principal(id=3, role="student"),
        admin=Principal(id=4, role="admin"),
        other_instructor=Principal(id=5, role="instructor"),
    )


@pytest.fixture()
def make_quiz(db, world):
    """Insert a published quiz with the given questions: (type, text, options, correct, points)."""

    def _make(questions=(), **fields):
        values = {
            "course_id": world.course_id,
            "title": "Photosynthesis check",
            "max_attempts": 1,
            "passing_score": 70,
            "is_published": True,
        }
        values.update(fields)
        quiz = Quiz(**values)
        db.add(quiz)
        db.flush()
        for idx, (qtype, text, options, correct, points) in enumerate(questions):
            db.add(
                Question(
                    quiz_id=quiz.id,
                    question_type=qtype,
                    question_text=text,
                    options=options,
                    correct_answer=correct,
                    points=points,
                    order_index=idx,
                )
            )
        db.commit()
        db.refresh(quiz)
        return quiz

    return _make


PHOTOSYNTHESIS = [
    ("multiple_choice", "Which organelle performs photosynthesis?", ["Mitochondria", "Chloroplast", "Nucleus"], "Chloroplast", 1),
    ("true_false", "Plants release oxygen.", ["True", "False"], "True", 1),
    ("short_answer", "Name the green pigment.", None, "chlorophyll", 1),
    ("fill_in_blank", "Photosynthesis turns light into ___ energy.", None, "chemical", 1),
    ("multiple_choice", "What gas do plants absorb?", ["Oxygen", "Carbon dioxide", "Nitrogen"], "Carbon dioxide", 1),
]


@pytest.fixture()
def photosynthesis():
    return list(PHOTOSYNTHESIS)
