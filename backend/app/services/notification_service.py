from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from app.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    *,
    user_id: int,
    type: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> Notification:
    notif_type = NotificationType(type)
    row = Notification(
        user_id=int(user_id),
        type=notif_type,
        title=str(title),
        message=str(message),
        payload_json=data or {},
        is_read=False,
    )
    db.add(row)
    db.flush()
    return row


def notify_quiz_result(
    db: Session,
    *,
    user_id: int,
    course_id: int,
    quiz_id: int,
    attempt_id: int,
    quiz_title: str,
    score: float,
    passed: bool,
) -> Notification:
    verdict = "passed" if passed else "did not pass"
    row = create_notification(
        db,
        user_id=user_id,
        type=NotificationType.quiz_result.value,
        title=f"Quiz graded: {quiz_title}",
        message=f"You scored {float(score):.1f}% on {quiz_title} and {verdict}.",
        data={
            "course_id": int(course_id),
            "quiz_id": int(quiz_id),
            "attempt_id": int(attempt_id),
            "quiz_title": str(quiz_title),
            "score": f"{float(score):.1f}",
            "passed": bool(passed),
        },
    )
    db.commit()
    logger.info("[NOTIFY] quiz_result user_id=%s attempt_id=%s score=%.1f", user_id, attempt_id, float(score))
    return row


def list_unread(db: Session, *, user_id: int) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.user_id == int(user_id), Notification.is_read.is_(False))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


def serialize_notification(row: Notification) -> dict[str, Any]:
    return {
        "id": int(row.id),
        "user_id": int(row.user_id),
        "type": str(row.type.value if hasattr(row.type, "value") else row.type),
        "title": row.title,
        "message": row.message,
        "data": row.data,
        "is_read": bool(row.is_read),
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }
