"""Retry policy for registry lookups.

The policy is a plain value consumed by the HTTP layer; the resolver never
sees it. Tests pass a ``sleep`` that records delays instead of sleeping.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

import requests

from constants import Constants

TRANSIENT_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})

Outcome = Union[int, BaseException]


def is_transient(outcome: Outcome) -> bool:
    """Classify a status code or exception as worth retrying.

    Timeouts, connection errors, 429 and 5xx are transient. 404 and every
    other 4xx are final.
    """
    if isinstance(outcome, BaseException):
        return isinstance(outcome, (requests.Timeout, requests.ConnectionError))
    return outcome in TRANSIENT_STATUS or 500 <= outcome < 600


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff."""

    max_attempts: int = field(default_factory=lambda: Constants.HTTP_RETRY_MAX)
    base_delay: float = field(default_factory=lambda: Constants.HTTP_RETRY_BASE_DELAY_SEC)
    max_delay: float = field(default_factory=lambda: Constants.HTTP_RETRY_MAX_DELAY_SEC)
    retryable: Callable[[Outcome], bool] = is_transient
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        """Delay before the next try, given the zero-based failed ``attempt``."""
        if retry_after:
            try:
                return min(self.max_delay, max(0.0, float(retry_after)))
            except ValueError:
                pass  # HTTP-date form; fall back to the computed backoff
        return min(self.max_delay, self.base_delay * (2 ** attempt))

    def should_retry(self, attempt: int, outcome: Outcome) -> bool:
        return attempt + 1 < self.max_attempts and self.retryable(outcome)


NO_RETRY = RetryPolicy(max_attempts=1)
