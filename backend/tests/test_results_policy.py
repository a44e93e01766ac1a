from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import Forbidden, ResultsNotYetVisible
from app.services.results_policy import ensure_results_visible, results_visible


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _owner(**kw):
    base = dict(is_owner=True, is_course_instructor=False, is_admin=False, now=NOW, due_date=None)
    base.update(kw)
    return base


def test_after_submit_lets_owner_see_results():
    ensure_results_visible(show_results="after_submit", **_owner())


def test_never_hides_results_from_owner():
    with pytest.raises(ResultsNotYetVisible):
        ensure_results_visible(show_results="never", **_owner())


def test_after_due_date_waits_for_due_date():
    due = NOW + timedelta(hours=1)
    with pytest.raises(ResultsNotYetVisible):
        ensure_results_visible(show_results="after_due_date", **_owner(due_date=due))

    ensure_results_visible(show_results="after_due_date", **_owner(due_date=due, now=due))


def test_after_due_date_without_due_date_is_visible():
    ensure_results_visible(show_results="after_due_date", **_owner())


def test_naive_due_date_is_treated_as_utc():
    due = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    ensure_results_visible(show_results="after_due_date", **_owner(due_date=due))


def test_instructor_and_admin_always_see_results():
    for who in (dict(is_course_instructor=True), dict(is_admin=True)):
        kw = _owner(is_owner=False, **who)
        ensure_results_visible(show_results="never", **kw)


def test_other_learner_is_refused():
    with pytest.raises(Forbidden):
        ensure_results_visible(show_results="after_submit", **_owner(is_owner=False))


def test_results_visible_reports_bool():
    assert results_visible(show_results="after_submit", **_owner()) is True
    assert results_visible(show_results="never", **_owner()) is False
    assert results_visible(show_results="after_submit", **_owner(is_owner=False)) is False
