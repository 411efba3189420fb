"""Bounded exponential backoff for remote calls."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from docchat.errors import RemoteAPIError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_retries(
    fn: Callable[[], T],
    *,
    description: str,
    max_attempts: int = 3,
    backoff_seconds: float = 1.0,
) -> T:
    """Call *fn*, retrying transient :class:`RemoteAPIError` failures.

    *fn* is attempted at most ``max_attempts`` times (at least once). The
    wait before attempt ``n + 1`` is ``backoff_seconds * 2 ** (n - 1)``.
    Non-transient errors and the last transient error propagate unchanged.
    """
    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except RemoteAPIError as exc:
            if not exc.transient or attempt == attempts:
                raise
            wait = backoff_seconds * 2 ** (attempt - 1)
            logger.warning(
                "Retry %d/%d for %s (wait %.1fs): %s", attempt, attempts - 1, description, wait, exc
            )
            time.sleep(wait)
    raise AssertionError("unreachable")
