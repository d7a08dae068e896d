"""
Celery integration.

The Celery app is bound to the Flask app so every task runs inside an
application context (database session, config, logging). Beat triggers the
link sweep once a day at midnight UTC.
"""

from __future__ import annotations

from typing import Any

from celery import Celery, Task
from celery.schedules import crontab
from flask import Flask

SWEEP_TASK_NAME = "links.sweep"

BEAT_SCHEDULE: dict[str, dict[str, Any]] = {
    "sweep-links-daily": {
        "task": SWEEP_TASK_NAME,
        "schedule": crontab(minute=0, hour=0),
    },
}


def celery_init_app(app: Flask) -> Celery:
    """
    Create the Celery app for ``app`` and register it in ``app.extensions``.

    :param app: Configured Flask application.
    :returns: Celery application whose tasks run in ``app.app_context()``.
    """

    class FlaskTask(Task):
        def __call__(self, *args: Any, **kwargs: Any) -> Any:
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app = Celery(app.import_name, task_cls=FlaskTask)
    celery_app.config_from_object(app.config.get("CELERY", {}))
    celery_app.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        beat_schedule=BEAT_SCHEDULE,
    )
    celery_app.set_default()

    # Registers the shared tasks on the default app.
    from . import sweep  # noqa: F401

    app.extensions["celery"] = celery_app
    return celery_app
