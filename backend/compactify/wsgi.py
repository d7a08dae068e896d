"""WSGI and Celery entry points.

``gunicorn -c gunicorn.conf.py`` serves :data:`app`; the worker and beat
processes run ``celery -A compactify.wsgi:celery_app worker --beat``.
"""

from __future__ import annotations

from compactify.factory import create_app

app = create_app()
celery_app = app.extensions["celery"]
