from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from app.core.errors import Forbidden, ResultsNotYetVisible
from app.models.quiz import ShowResultsPolicy


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def ensure_results_visible(
    *,
    show_results: str,
    due_date: Optional[datetime],
    is_owner: bool,
    is_course_instructor: bool,
    is_admin: bool,
    now: Optional[datetime] = None,
) -> None:
    """Raise unless the viewer may see per-question correctness of an attempt.

    The course instructor and admins always may. The attempt owner may when
    the quiz shows results after submit, or after the due date once it has
    passed (no due date counts as passed); never when the policy is ``never``.
    Everyone else is refused outright.
    """
    if is_course_instructor or is_admin:
        return
    if not is_owner:
        raise Forbidden()

    policy = str(show_results or ShowResultsPolicy.after_submit.value)
    if policy == ShowResultsPolicy.never.value:
        raise ResultsNotYetVisible("Results are not available for this quiz")
    if policy == ShowResultsPolicy.after_due_date.value and due_date is not None:
        current = now or datetime.now(timezone.utc)
        if _as_utc(current) < _as_utc(due_date):
            raise ResultsNotYetVisible("Results will be available after the due date")


def results_visible(**kwargs) -> bool:
    try:
        ensure_results_visible(**kwargs)
    except (Forbidden, ResultsNotYetVisible):
        return False
    return True
