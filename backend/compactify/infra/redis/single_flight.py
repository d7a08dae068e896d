"""Non-blocking single-flight guard for scheduled jobs."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

import redis  # type: ignore[import-untyped]
from redis.exceptions import LockError  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

_local_locks: dict[str, threading.Lock] = {}
_local_registry = threading.Lock()


def _local_lock(name: str) -> threading.Lock:
    with _local_registry:
        return _local_locks.setdefault(name, threading.Lock())


@contextmanager
def single_flight(
    name: str,
    *,
    timeout: int,
    client: redis.Redis | None = None,
) -> Iterator[bool]:
    """
    Try to become the only runner of ``name``; never wait.

    With a Redis ``client`` the guard spans every worker and expires after
    ``timeout`` seconds so a crashed run cannot block the next schedule.
    Without one it only covers the current process.

    :param name: Lock key.
    :param timeout: Lock lifetime in seconds (Redis only).
    :param client: Optional Redis connection.
    :yields: ``True`` when the caller holds the lock and should run.
    """
    if client is None:
        lock = _local_lock(name)
        acquired = lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
        return

    redis_lock = client.lock(name, timeout=timeout, blocking=False)
    acquired = bool(redis_lock.acquire(blocking=False))
    try:
        yield acquired
    finally:
        if acquired:
            try:
                redis_lock.release()
            except LockError:
                logger.warning("Single-flight lock expired before release", extra={"endpoint": name})
