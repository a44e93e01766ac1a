"""Lookups against the course service's tables.

Course and enrollment management is owned elsewhere; the quiz engine only
asks these two questions.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.course import Course, Enrollment


def is_enrolled(db: Session, user_id: int, course_id: int) -> bool:
    row = (
        db.query(Enrollment.id)
        .filter(Enrollment.user_id == int(user_id), Enrollment.course_id == int(course_id))
        .first()
    )
    return row is not None


def is_course_instructor(db: Session, user_id: int, course_id: int) -> bool:
    row = (
        db.query(Course.id)
        .filter(Course.id == int(course_id), Course.instructor_id == int(user_id))
        .first()
    )
    return row is not None


def enrolled_course_ids(db: Session, user_id: int) -> list[int]:
    rows = db.query(Enrollment.course_id).filter(Enrollment.user_id == int(user_id)).all()
    return [int(r[0]) for r in rows]
