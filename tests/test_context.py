"""Tests for the cancellation context."""

import asyncio
import threading
import time

import pytest

from gitlab_client import CanceledError, Context
from gitlab_client.context import CANCELED, DEADLINE_EXCEEDED


def test_live_context():
    ctx = Context()

    assert not ctx.done
    assert ctx.err() is None
    assert ctx.remaining() is None


def test_cancel_is_idempotent():
    ctx = Context()
    ctx.cancel()
    ctx.cancel("second reason")

    assert ctx.done
    assert ctx.err() == CANCELED


def test_deadline_expires():
    ctx = Context.with_timeout(0.01)
    time.sleep(0.02)

    assert ctx.done
    assert ctx.err() == DEADLINE_EXCEEDED
    assert ctx.remaining() == 0.0


def test_wait_returns_on_cancel():
    ctx = Context()
    threading.Timer(0.05, ctx.cancel).start()

    start = time.monotonic()
    assert ctx.wait(30.0) is True
    assert time.monotonic() - start < 5.0


def test_wait_times_out_when_live():
    assert Context().wait(0.01) is False


def test_done_callbacks():
    ctx = Context()
    fired = []
    remove = ctx.add_done_callback(lambda: fired.append("a"))
    ctx.add_done_callback(lambda: fired.append("b"))
    remove()
    ctx.cancel()

    assert fired == ["b"]

    # Registering on a done context runs the callback immediately
    ctx.add_done_callback(lambda: fired.append("c"))
    assert fired == ["b", "c"]


def test_raise_if_done():
    ctx = Context()
    ctx.raise_if_done()
    ctx.cancel()

    with pytest.raises(CanceledError):
        ctx.raise_if_done()


def test_async_wait_returns_on_cancel():
    async def main():
        ctx = Context()
        asyncio.get_running_loop().call_later(0.05, ctx.cancel)
        return await ctx.async_wait(30.0)

    start = time.monotonic()
    assert asyncio.run(main()) is True
    assert time.monotonic() - start < 5.0


def test_async_wait_from_other_thread():
    async def main():
        ctx = Context()
        threading.Timer(0.05, ctx.cancel).start()
        return await ctx.async_wait(30.0)

    assert asyncio.run(main()) is True
