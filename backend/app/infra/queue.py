from __future__ import annotations

from typing import Any, Callable, Dict

import redis
from rq import Queue

from app.core.config import settings


def is_async_enabled() -> bool:
    return bool(getattr(settings, "ASYNC_QUEUE_ENABLED", False))


def get_redis_conn() -> redis.Redis:
    url = str(getattr(settings, "REDIS_URL", "redis://localhost:6379/0"))
    return redis.Redis.from_url(url)


def get_queue(name: str = "default") -> Queue:
    conn = get_redis_conn()
    return Queue(name, connection=conn, default_timeout=int(getattr(settings, "RQ_DEFAULT_TIMEOUT_SEC", 1800)))


def enqueue(fn: Callable[..., Any], *args: Any, queue_name: str = "default", **kwargs: Any) -> Dict[str, Any]:
    """Enqueue a background job.

    Returns a dict with job_id and status.
    If async is disabled, runs synchronously and returns a pseudo-job result.
    """
    if not is_async_enabled():
        out = fn(*args, **kwargs)
        return {"job_id": None, "queued": False, "sync_executed": True, "result": out}

    q = get_queue(queue_name)
    job = q.enqueue(fn, *args, **kwargs)
    return {"job_id": str(job.id), "queued": True, "sync_executed": False}

