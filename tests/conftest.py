"""Shared fixtures: canned-response transports and client factories."""

import httpx
import pytest

from gitlab_client import ClientConfig, GitLabClient, RetryPolicy

BASE_URL = "https://api.example.com/v1"

# Same bound as the default policy, without backoff sleeps
FAST_RETRY = RetryPolicy(max_attempts=3, initial_delay=0.0, jitter=False)


class StubServer:
    """Replays canned replies in order and records every request it receives.

    A reply is a status code, a ``(status, response kwargs)`` tuple, an
    exception to raise, or a callable taking the request. The last reply
    repeats once the others are used up.
    """

    def __init__(self, *replies):
        self.replies = list(replies) or [200]
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        status, kwargs = reply if isinstance(reply, tuple) else (reply, {})
        return httpx.Response(status, **kwargs)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def stub():
    return StubServer


@pytest.fixture
def make_client():
    clients = []

    def factory(handler, credential=None, retry_policy=FAST_RETRY, base_url=BASE_URL, **kwargs):
        config = ClientConfig(base_url=base_url, retry_policy=retry_policy, **kwargs)
        client = GitLabClient(
            credential,
            config=config,
            transport=httpx.MockTransport(handler),
            async_transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()
