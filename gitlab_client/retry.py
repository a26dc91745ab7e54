"""Bounded retry with exponential backoff and server-supplied delays."""

import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Optional, TypeVar

from .context import CANCELED
from .exceptions import APIError, CanceledError, ErrorKind
from .request import RequestState

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior with exponential backoff.

    Shared and read-only once a client is built. ``max_attempts`` counts
    the first attempt, so ``max_attempts=1`` disables retries.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0

    # Jitter settings (to avoid thundering herd)
    jitter: bool = True
    jitter_factor: float = 0.1  # +/- 10% randomness

    retry_on_status_codes: FrozenSet[int] = field(default_factory=lambda: frozenset({
        429,  # Too Many Requests
        500,  # Internal Server Error
        502,  # Bad Gateway
        503,  # Service Unavailable
        504,  # Gateway Timeout
    }))

    respect_retry_after_header: bool = True

    # Callbacks for monitoring
    on_retry: Optional[Callable[[int, APIError, float], None]] = None
    on_give_up: Optional[Callable[[APIError], None]] = None

    def __post_init__(self):
        if not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must not be negative")
        object.__setattr__(self, "retry_on_status_codes", frozenset(self.retry_on_status_codes))

    def should_retry(self, error: APIError) -> bool:
        """Check if the error warrants another attempt."""
        if not error.retryable:
            return False
        if error.kind in (ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR):
            return error.status_code in self.retry_on_status_codes
        return True

    def calculate_delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Calculate the delay before the attempt following ``attempt``.

        A server-supplied delay is used as is: no cap and no jitter.
        """
        if retry_after is not None and self.respect_retry_after_header:
            return max(0.0, retry_after)

        # Exponential backoff: initial_delay * (backoff_factor ^ (attempt - 1))
        delay = min(self.initial_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)

        if self.jitter and delay > 0:
            jitter_range = delay * self.jitter_factor
            delay = max(0.0, delay + random.uniform(-jitter_range, jitter_range))

        return delay


DEFAULT_RETRY = RetryPolicy()

NO_RETRY = RetryPolicy(max_attempts=1)

RATE_LIMIT_RETRY = RetryPolicy(
    max_attempts=5,
    initial_delay=5.0,
    max_delay=300.0,
    retry_on_status_codes=frozenset({429}),
)


class RetryManager:
    """Runs one call's attempts strictly in sequence, within the policy bound."""

    def __init__(self, policy: Optional[RetryPolicy] = None):
        self.policy = policy or DEFAULT_RETRY

    def _next_delay(self, error: APIError, state: RequestState) -> Optional[float]:
        """Delay before the next attempt, or None when the call must fail now."""
        error.attempts = state.attempts
        if not self.policy.should_retry(error) or state.attempts >= self.policy.max_attempts:
            if error.retryable:
                logger.error(
                    "Giving up on %s %s after %d attempt(s): %s",
                    state.endpoint.method, state.endpoint.path, state.attempts, error.kind.value,
                )
            if self.policy.on_give_up:
                self.policy.on_give_up(error)
            return None

        delay = self.policy.calculate_delay(state.attempts, error.retry_after)
        logger.warning(
            "Attempt %d/%d for %s %s failed (%s, status %s); retrying in %.2fs",
            state.attempts, self.policy.max_attempts, state.endpoint.method,
            state.endpoint.path, error.kind.value, error.status_code, delay,
        )
        if self.policy.on_retry:
            self.policy.on_retry(state.attempts, error, delay)
        return delay

    def _canceled(self, state: RequestState, error: APIError) -> CanceledError:
        canceled = CanceledError(
            state.context.err() or CANCELED,
            original_exception=error,
            status_code=error.status_code,
            response=error.response,
        )
        canceled.attempts = state.attempts
        return canceled

    def execute_with_retry(self, func: Callable[[], T], state: RequestState) -> T:
        """Call ``func`` until it succeeds, fails terminally, or attempts run out.

        ``func`` performs one full attempt and raises APIError on failure.
        Backoff waits on the call's context, so cancellation ends it early.
        """
        while True:
            state.attempts += 1
            try:
                return func()
            except APIError as e:
                delay = self._next_delay(e, state)
                if delay is None:
                    raise
                if state.context.wait(delay):
                    raise self._canceled(state, e) from e

    async def async_execute_with_retry(
        self, func: Callable[[], Awaitable[T]], state: RequestState
    ) -> T:
        """Asyncio twin of ``execute_with_retry``."""
        while True:
            state.attempts += 1
            try:
                return await func()
            except APIError as e:
                delay = self._next_delay(e, state)
                if delay is None:
                    raise
                if await state.context.async_wait(delay):
                    raise self._canceled(state, e) from e
