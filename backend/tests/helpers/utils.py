"""Assertion helpers shared across test modules."""

from __future__ import annotations

from contextlib import contextmanager


@contextmanager
def not_raises(exception: type[BaseException]):
    """Fail the test, instead of erroring it, if ``exception`` escapes.

    Used for the best-effort paths (revoke, logout) where "no exception" is
    the behavior under test.
    """
    try:
        yield
    except exception as exc:
        raise AssertionError(f"Unexpected {type(exc).__name__}: {exc}") from exc
