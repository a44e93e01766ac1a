"""Domain events emitted by the quiz engine.

Events are published after the producing transaction has committed. Consumers
run as queue jobs (inline when the queue is disabled) and their failures are
logged here and never reach the caller.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from app.core.config import settings
from app.infra.queue import enqueue
from app.tasks.notification_tasks import task_notify_quiz_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptGraded:
    attempt_id: int
    user_id: int
    course_id: int
    quiz_id: int
    quiz_title: str
    score: float
    passed: bool
    trace_id: Optional[str] = None


def publish_attempt_graded(event: AttemptGraded) -> Optional[Dict[str, Any]]:
    try:
        return enqueue(task_notify_quiz_result, asdict(event), queue_name=settings.NOTIFICATION_QUEUE_NAME)
    except Exception as exc:
        logger.warning("Failed to send quiz result notification attempt_id=%s: %s", event.attempt_id, exc)
        return None
