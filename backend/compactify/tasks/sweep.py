"""Scheduled link sweep."""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task
from flask import current_app

from compactify.core import extensions
from compactify.infra.redis.single_flight import single_flight
from compactify.services.builders import build_link_service

logger = logging.getLogger(__name__)

SWEEP_LOCK_NAME = "compactify:links:sweep"


def run_sweep() -> dict[str, Any]:
    """
    Run one sweep unless another run holds the single-flight lock.

    Must be called inside an application context.

    :returns: ``{"skipped": True}`` or the deleted/deactivated counts.
    """
    config = current_app.config
    with single_flight(
        SWEEP_LOCK_NAME,
        timeout=int(config.get("SWEEP_LOCK_TIMEOUT", 300)),
        client=extensions.redis_client,
    ) as acquired:
        if not acquired:
            logger.info("Link sweep already running, skipped")
            return {"skipped": True}
        result = build_link_service(config).sweep()
        return {"skipped": False, "deleted": result.deleted, "deactivated": result.deactivated}


@shared_task(name="links.sweep", ignore_result=True)
def sweep_links() -> dict[str, Any]:
    """Celery entry point for the daily sweep."""
    return run_sweep()
