"""Tests for retry policy and the retry manager."""

import asyncio
import threading
import time
from unittest.mock import Mock

import pytest

from gitlab_client import (
    DEFAULT_RETRY,
    NO_RETRY,
    CanceledError,
    Context,
    Endpoint,
    RequestState,
    RetryManager,
    RetryPolicy,
    get_error_from_status_code,
)
from gitlab_client.exceptions import APIConnectionError, InvalidArgumentError


def make_state(ctx=None):
    state = RequestState(endpoint=Endpoint("GET", "projects"))
    if ctx is not None:
        state.context = ctx
    return state


class TestRetryPolicy:

    def test_defaults(self):
        assert DEFAULT_RETRY.max_attempts == 3
        assert DEFAULT_RETRY.retry_on_status_codes == frozenset({429, 500, 502, 503, 504})
        assert NO_RETRY.max_attempts == 1

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"max_attempts": 2.5},
        {"initial_delay": -1},
    ])
    def test_invalid_policy(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)

    def test_exponential_backoff_capped(self):
        policy = RetryPolicy(initial_delay=1.0, backoff_factor=2.0, max_delay=5.0, jitter=False)

        assert policy.calculate_delay(1) == 1.0
        assert policy.calculate_delay(2) == 2.0
        assert policy.calculate_delay(3) == 4.0
        assert policy.calculate_delay(4) == 5.0

    def test_jitter_stays_in_range(self):
        policy = RetryPolicy(initial_delay=10.0, jitter=True, jitter_factor=0.1, max_delay=100.0)

        for _ in range(50):
            assert 9.0 <= policy.calculate_delay(1) <= 11.0

    def test_server_delay_wins_uncapped(self):
        """A server-supplied delay is used as is, above max_delay and without jitter"""
        policy = RetryPolicy(max_delay=5.0, jitter=True)

        assert policy.calculate_delay(1, retry_after=60.0) == 60.0

    def test_server_delay_ignored_when_disabled(self):
        policy = RetryPolicy(initial_delay=1.0, jitter=False, respect_retry_after_header=False)

        assert policy.calculate_delay(1, retry_after=60.0) == 1.0

    def test_should_retry(self):
        policy = RetryPolicy(retry_on_status_codes={503})

        assert policy.should_retry(get_error_from_status_code(503, "x"))
        assert not policy.should_retry(get_error_from_status_code(502, "x"))
        assert not policy.should_retry(get_error_from_status_code(404, "x"))
        assert policy.should_retry(APIConnectionError("reset"))
        assert not policy.should_retry(InvalidArgumentError("bad"))


class TestRetryManager:

    def setup_method(self):
        self.policy = RetryPolicy(max_attempts=3, initial_delay=0.0, jitter=False)
        self.manager = RetryManager(self.policy)

    def test_success_first_attempt(self):
        state = make_state()
        func = Mock(return_value="ok")

        assert self.manager.execute_with_retry(func, state) == "ok"
        assert func.call_count == 1
        assert state.attempts == 1

    def test_attempts_bounded(self):
        """A persistently failing call makes exactly max_attempts attempts"""
        state = make_state()
        func = Mock(side_effect=get_error_from_status_code(503, "down"))

        with pytest.raises(Exception) as exc_info:
            self.manager.execute_with_retry(func, state)
        assert func.call_count == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.status_code == 503

    def test_non_retryable_fails_immediately(self):
        state = make_state()
        func = Mock(side_effect=get_error_from_status_code(404, "missing"))

        with pytest.raises(Exception):
            self.manager.execute_with_retry(func, state)
        assert func.call_count == 1

    def test_retries_then_succeeds(self):
        state = make_state()
        func = Mock(side_effect=[get_error_from_status_code(502, "x"), "ok"])

        assert self.manager.execute_with_retry(func, state) == "ok"
        assert state.attempts == 2

    def test_callbacks(self):
        on_retry = Mock()
        on_give_up = Mock()
        policy = RetryPolicy(max_attempts=2, initial_delay=0.0, jitter=False, on_retry=on_retry, on_give_up=on_give_up)
        error = get_error_from_status_code(500, "x")

        with pytest.raises(Exception):
            RetryManager(policy).execute_with_retry(Mock(side_effect=error), make_state())
        on_retry.assert_called_once_with(1, error, 0.0)
        on_give_up.assert_called_once_with(error)

    def test_cancel_during_backoff(self):
        """Canceling the context aborts a long backoff promptly"""
        ctx = Context()
        policy = RetryPolicy(max_attempts=3, initial_delay=60.0, jitter=False)
        func = Mock(side_effect=get_error_from_status_code(503, "x"))
        threading.Timer(0.05, ctx.cancel).start()

        start = time.monotonic()
        with pytest.raises(CanceledError) as exc_info:
            RetryManager(policy).execute_with_retry(func, make_state(ctx))
        assert time.monotonic() - start < 5.0
        assert func.call_count == 1
        assert exc_info.value.attempts == 1
        assert str(exc_info.value).startswith("context canceled")

    def test_deadline_during_backoff(self):
        ctx = Context.with_timeout(0.05)
        policy = RetryPolicy(max_attempts=3, initial_delay=60.0, jitter=False)
        func = Mock(side_effect=get_error_from_status_code(503, "x"))

        with pytest.raises(CanceledError) as exc_info:
            RetryManager(policy).execute_with_retry(func, make_state(ctx))
        assert "deadline exceeded" in str(exc_info.value)

    def test_async_attempts_bounded(self):
        state = make_state()
        calls = []

        async def func():
            calls.append(1)
            raise get_error_from_status_code(503, "down")

        with pytest.raises(Exception):
            asyncio.run(self.manager.async_execute_with_retry(func, state))
        assert len(calls) == 3
