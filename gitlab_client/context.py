"""Per-call cancellation signal with optional deadline and token override."""

import asyncio
import threading
import time
from typing import Callable, List, Optional

from .exceptions import CanceledError

CANCELED = "context canceled"
DEADLINE_EXCEEDED = "context deadline exceeded"


class Context:
    """Cancellation signal shared between a caller and one in-flight call.

    A context can be canceled from any thread. Backoff sleeps and async
    sends wait on it, so cancellation aborts them promptly. A deadline is
    an absolute ``time.monotonic()`` value; once it passes the context
    reports itself done with ``DEADLINE_EXCEEDED``.
    """

    def __init__(self, deadline: Optional[float] = None, token: Optional[str] = None):
        self.deadline = deadline
        self.token = token
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._reason: Optional[str] = None

    @classmethod
    def with_timeout(cls, seconds: float, token: Optional[str] = None) -> "Context":
        return cls(deadline=time.monotonic() + seconds, token=token)

    def cancel(self, reason: str = CANCELED) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    @property
    def done(self) -> bool:
        if self._event.is_set():
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.cancel(DEADLINE_EXCEEDED)
            return True
        return False

    def err(self) -> Optional[str]:
        """Why the context is done, or None while it is live."""
        if not self.done:
            return None
        return self._reason

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def _bounded(self, timeout: Optional[float]) -> Optional[float]:
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block up to ``timeout`` seconds; return True if the context is done."""
        self._event.wait(self._bounded(timeout))
        return self.done

    def add_done_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancellation; returns a function that unregisters it."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)

                def remove():
                    with self._lock:
                        if callback in self._callbacks:
                            self._callbacks.remove(callback)

                return remove
        callback()
        return lambda: None

    def as_future(self, loop: asyncio.AbstractEventLoop) -> "asyncio.Future[None]":
        """Future that resolves when the context is canceled."""
        future = loop.create_future()

        def resolve():
            if not future.done():
                future.set_result(None)

        def on_cancel():
            loop.call_soon_threadsafe(resolve)

        remove = self.add_done_callback(on_cancel)
        future.add_done_callback(lambda _: remove())
        return future

    async def async_wait(self, timeout: Optional[float] = None) -> bool:
        """Asyncio twin of ``wait``."""
        loop = asyncio.get_running_loop()
        future = self.as_future(loop)
        try:
            await asyncio.wait({future}, timeout=self._bounded(timeout))
        finally:
            future.cancel()
        return self.done

    def raise_if_done(self, **context) -> None:
        reason = self.err()
        if reason is not None:
            raise CanceledError(reason, **context)
