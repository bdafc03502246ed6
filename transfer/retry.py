"""Retry decisions for network operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from common.config import Config
from common.constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_MULTIPLIER,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_MAX_DELAY,
)


class FailureKind(Enum):
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    SERVER_ERROR = "server_error"
    THROTTLED = "throttled"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    CLIENT_ERROR = "client_error"
    INTEGRITY = "integrity"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_RETRYABLE = frozenset({
    FailureKind.TIMEOUT,
    FailureKind.CONNECTION,
    FailureKind.SERVER_ERROR,
    FailureKind.THROTTLED,
})


def classify_status(status_code: int) -> Optional[FailureKind]:
    """
    Map an HTTP status code to a failure kind.

    Args:
        status_code: Response status code

    Returns:
        FailureKind, or None for non-error statuses
    """
    if status_code < 400:
        return None
    if status_code == 408:
        return FailureKind.TIMEOUT
    if status_code == 429:
        return FailureKind.THROTTLED
    if status_code in (401, 403):
        return FailureKind.AUTH
    if status_code == 404:
        return FailureKind.NOT_FOUND
    if status_code < 500:
        return FailureKind.CLIENT_ERROR
    return FailureKind.SERVER_ERROR


def classify_exception(exc: Exception) -> FailureKind:
    """
    Map a transport exception to a failure kind.

    Raises:
        TypeError: If exc is not an httpx transport error
    """
    if isinstance(exc, httpx.TimeoutException):
        return FailureKind.TIMEOUT
    if isinstance(exc, httpx.TransportError):
        return FailureKind.CONNECTION
    raise TypeError(f"Not a transport error: {type(exc).__name__}")


@dataclass(frozen=True)
class RetryDecision:
    should_retry: bool
    delay: float = 0.0


GIVE_UP = RetryDecision(should_retry=False)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Capped exponential backoff for one logical operation.

    Attempts are counted from 1. With the defaults the waits between
    attempts are 1s then 2s, and the third failure is final.
    """
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    backoff_multiplier: float = DEFAULT_RETRY_BACKOFF_MULTIPLIER
    max_delay: float = DEFAULT_RETRY_MAX_DELAY

    @classmethod
    def from_config(cls, config: Config) -> 'RetryPolicy':
        retry_config = config.get_retry_config()
        return cls(
            max_attempts=max(1, int(retry_config['max_attempts'])),
            base_delay=float(retry_config['retry_base_delay']),
            backoff_multiplier=float(retry_config['retry_backoff_multiplier']),
        )

    def backoff(self, attempt: int) -> float:
        return min(self.base_delay * self.backoff_multiplier ** (attempt - 1), self.max_delay)

    def decide(self, attempt: int, kind: FailureKind) -> RetryDecision:
        """
        Decide whether to retry after a failed attempt.

        Args:
            attempt: Number of the attempt that just failed (1-based)
            kind: Classified failure

        Returns:
            RetryDecision with the delay to wait before the next attempt
        """
        if not kind.retryable or attempt >= self.max_attempts:
            return GIVE_UP
        return RetryDecision(should_retry=True, delay=self.backoff(attempt))
