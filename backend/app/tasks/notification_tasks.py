from __future__ import annotations

from typing import Any, Dict

from app.db.session import SessionLocal
from app.services.notification_service import notify_quiz_result


def task_notify_quiz_result(event: Dict[str, Any]) -> Dict[str, Any]:
    """Background: turn an AttemptGraded event into a learner notification.

    Runs in its own session so it never shares a transaction with the submit
    that produced the event.
    """
    db = SessionLocal()
    try:
        row = notify_quiz_result(
            db,
            user_id=int(event["user_id"]),
            course_id=int(event["course_id"]),
            quiz_id=int(event["quiz_id"]),
            attempt_id=int(event["attempt_id"]),
            quiz_title=str(event.get("quiz_title") or ""),
            score=float(event.get("score") or 0),
            passed=bool(event.get("passed")),
        )
        return {"notification_id": int(row.id)}
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
