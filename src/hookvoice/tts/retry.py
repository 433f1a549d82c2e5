"""Bounded retry loop for backend calls.

Each backend request runs through run_with_retry(), which classifies every
failure and returns a tagged AttemptResult instead of raising. Providers turn
that result into a SpeakResult, so the attempt ceiling and the error
classification are both visible on the returned object.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    TimeoutError,
    ConnectionError,
    httpx.TransportError,
)


class Outcome(Enum):
    """Final state of a retried operation."""

    SUCCESS = "success"
    RETRYABLE_ERROR = "retryable-error"  # still transient, attempts exhausted
    TERMINAL_ERROR = "terminal-error"


class ErrorKind(Enum):
    """Classification of a single backend failure."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    NETWORK = "network"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.RATE_LIMIT, ErrorKind.SERVER, ErrorKind.NETWORK)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling and exponential backoff settings.

    Args:
        max_attempts: Total attempts including the first one
        base_delay: Delay in seconds before the first retry
        max_delay: Upper bound for any single delay
    """

    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 8.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays cannot be negative")

    def delay_for(self, retry_number: int) -> float:
        """Return the sleep before retry number `retry_number` (1-based)."""
        return min(self.max_delay, self.base_delay * 2 ** (retry_number - 1))


@dataclass
class AttemptResult(Generic[T]):
    """Tagged result of run_with_retry()."""

    outcome: Outcome
    attempts: int
    value: T | None = None
    error: Exception | None = None
    kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS


def status_code_of(error: BaseException) -> int | None:
    """Extract an HTTP status code from an SDK exception, if it carries one."""
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_error(error: BaseException) -> ErrorKind:
    """Map a backend exception onto an ErrorKind."""
    status = status_code_of(error)
    if status == 401:
        return ErrorKind.AUTH
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if status is not None and 500 <= status < 600:
        return ErrorKind.SERVER
    if isinstance(error, NETWORK_ERRORS):
        return ErrorKind.NETWORK
    if status is None:
        # SDKs that only report the status inside the message
        message = str(error).lower()
        if "unauthorized" in message or "401" in message:
            return ErrorKind.AUTH
        if "429" in message or "rate limit" in message:
            return ErrorKind.RATE_LIMIT
    return ErrorKind.OTHER


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    classify: Callable[[BaseException], ErrorKind] = classify_error,
) -> AttemptResult[T]:
    """Run `operation` until it succeeds, fails terminally, or runs out of attempts.

    Args:
        operation: Zero-argument coroutine factory performing one attempt
        policy: Attempt ceiling and backoff (defaults to 4 attempts)
        classify: Maps an exception to an ErrorKind

    Returns:
        AttemptResult tagged SUCCESS, TERMINAL_ERROR (not retryable) or
        RETRYABLE_ERROR (transient failure on the last allowed attempt)
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        attempt += 1
        try:
            value = await operation()
        except Exception as e:
            kind = classify(e)
            if not kind.retryable:
                logger.debug(f"Attempt {attempt} failed terminally ({kind.value}): {e}")
                return AttemptResult(
                    Outcome.TERMINAL_ERROR, attempt, error=e, kind=kind
                )
            if attempt >= policy.max_attempts:
                logger.warning(
                    f"Giving up after {attempt} attempts ({kind.value}): {e}"
                )
                return AttemptResult(
                    Outcome.RETRYABLE_ERROR, attempt, error=e, kind=kind
                )

            delay = policy.delay_for(attempt)
            logger.info(
                f"Attempt {attempt}/{policy.max_attempts} failed ({kind.value}), "
                f"retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            continue

        return AttemptResult(Outcome.SUCCESS, attempt, value=value)
