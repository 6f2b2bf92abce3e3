"""Retry configuration for per-player rating persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_random_exponential,
)
from tenacity.wait import wait_base

from domain.ratings.errors import (
    DuplicateRatingUpdateError,
    PersistenceConflictError,
    PersistenceTimeoutError,
)

logger = logging.getLogger(__name__)

# A duplicate history row means the match already landed; retrying cannot help.
RETRYABLE_EXCEPTIONS = (PersistenceConflictError, PersistenceTimeoutError)
RETRY_IF = retry_if_exception_type(RETRYABLE_EXCEPTIONS) & retry_if_not_exception_type(
    DuplicateRatingUpdateError
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    wait_min_seconds: float = 0.05
    wait_max_seconds: float = 1.0
    deadline_seconds: float | None = None


def build_retrying(policy: RetryPolicy, *, wait: wait_base | None = None) -> Retrying:
    """Tenacity controller bounded by attempts and, optionally, wall-clock time."""
    stop = stop_after_attempt(policy.max_attempts)
    if policy.deadline_seconds is not None:
        stop = stop | stop_after_delay(policy.deadline_seconds)

    return Retrying(
        stop=stop,
        wait=wait or wait_random_exponential(multiplier=policy.wait_min_seconds, max=policy.wait_max_seconds),
        retry=RETRY_IF,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


__all__ = ["RETRYABLE_EXCEPTIONS", "RETRY_IF", "RetryPolicy", "build_retrying"]
