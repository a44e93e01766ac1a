from __future__ import annotations

import logging

from app import events
from app.events import AttemptGraded, publish_attempt_graded
from app.infra import queue
from app.models.notification import Notification
from app.services import attempt_service


def _event(**kw):
    base = dict(
        attempt_id=7,
        user_id=2,
        course_id=1,
        quiz_id=3,
        quiz_title="Photosynthesis check",
        score=80.0,
        passed=True,
        trace_id="req-7",
    )
    base.update(kw)
    return AttemptGraded(**base)


def test_publish_runs_inline_when_queue_disabled(db, world):
    out = publish_attempt_graded(_event())
    assert out["sync_executed"] is True
    assert out["queued"] is False

    row = db.query(Notification).filter(Notification.user_id == 2).one()
    assert row.title == "Quiz graded: Photosynthesis check"
    assert row.data["score"] == "80.0"
    assert row.data["passed"] is True


def test_publish_enqueues_on_notification_queue(monkeypatch):
    calls = []

    class _FakeJob:
        id = "job-1"

    class _FakeQueue:
        def enqueue(self, fn, *args, **kwargs):
            calls.append((fn, args))
            return _FakeJob()

    monkeypatch.setattr(queue.settings, "ASYNC_QUEUE_ENABLED", True)
    monkeypatch.setattr(queue, "get_queue", lambda name="default": calls.append(name) or _FakeQueue())

    out = publish_attempt_graded(_event())

    assert out == {"job_id": "job-1", "queued": True, "sync_executed": False}
    assert calls[0] == "notifications"
    fn, args = calls[1]
    assert fn is events.task_notify_quiz_result
    assert args[0]["attempt_id"] == 7
    assert args[0]["trace_id"] == "req-7"


def test_dispatch_failure_never_reaches_submit(db, world, make_quiz, monkeypatch, caplog):
    def _boom(*args, **kwargs):
        raise ConnectionError("redis down")

    monkeypatch.setattr(events, "enqueue", _boom)
    quiz = make_quiz([("true_false", "Leaves are green.", ["True", "False"], "True", 1)])
    started = attempt_service.start_attempt(db, world.learner, quiz.id)

    with caplog.at_level(logging.WARNING, logger="app.events"):
        result = attempt_service.submit_attempt(db, world.learner, started["attempt"]["id"])

    assert result["status"] == "graded"
    assert db.query(Notification).count() == 0
    assert "redis down" in caplog.text
