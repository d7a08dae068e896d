"""Unit tests for the scheduled sweep and its Celery wiring."""

from __future__ import annotations

from datetime import timedelta

import fakeredis
import pytest

from compactify.core import extensions
from compactify.models.base import utcnow
from compactify.tasks import BEAT_SCHEDULE, SWEEP_TASK_NAME
from compactify.tasks.sweep import SWEEP_LOCK_NAME, run_sweep, sweep_links
from tests.factories.link import LinkFactory


@pytest.fixture()
def expired_links(session):
    past = utcnow() - timedelta(hours=1)
    LinkFactory.anonymous(expires_at=past)
    LinkFactory(expires_at=past)
    session.commit()


def test_beat_runs_daily_at_midnight_utc(app):
    entry = BEAT_SCHEDULE["sweep-links-daily"]
    assert entry["task"] == SWEEP_TASK_NAME
    assert entry["schedule"].hour == {0}
    assert entry["schedule"].minute == {0}

    celery_app = app.extensions["celery"]
    assert celery_app.conf.timezone == "UTC"
    assert SWEEP_TASK_NAME in celery_app.tasks


def test_run_sweep_without_redis(expired_links):
    assert run_sweep() == {"skipped": False, "deleted": 1, "deactivated": 1}


def test_run_sweep_skips_when_lock_is_held(expired_links, monkeypatch):
    client = fakeredis.FakeRedis()
    monkeypatch.setattr(extensions, "redis_client", client)

    held = client.lock(SWEEP_LOCK_NAME, timeout=30)
    assert held.acquire(blocking=False)
    try:
        assert run_sweep() == {"skipped": True}
    finally:
        held.release()

    assert run_sweep()["skipped"] is False


def test_task_runs_eagerly(expired_links):
    result = sweep_links.apply()
    assert result.get() == {"skipped": False, "deleted": 1, "deactivated": 1}
