"""GitLab client configuration."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from ._version import __version__
from .retry import DEFAULT_RETRY, RetryPolicy

DEFAULT_BASE_URL = "https://gitlab.com/api/v4"
USER_AGENT = f"python-gitlab-client/{__version__}"


def _default_headers() -> Dict[str, str]:
    return {
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
    }


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for client timeouts, connections, retries and defaults.

    Built once and never mutated; the ``with_*`` helpers return copies.
    """

    base_url: str = DEFAULT_BASE_URL

    # Timeout settings (in seconds)
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    write_timeout: float = 60.0
    pool_timeout: float = 10.0

    # Connection settings
    max_connections: int = 10
    max_keepalive_connections: int = 5
    keepalive_expiry: float = 30.0

    default_headers: Mapping[str, str] = field(default_factory=_default_headers)

    retry_policy: RetryPolicy = DEFAULT_RETRY

    # Client-level request options, applied before each call's own options
    request_options: Tuple[Any, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "default_headers", dict(self.default_headers))
        object.__setattr__(self, "request_options", tuple(self.request_options))

    def timeout(self, remaining: Optional[float] = None) -> httpx.Timeout:
        """httpx timeout, every phase capped at ``remaining`` seconds when given."""
        def cap(value: float) -> float:
            return value if remaining is None else min(value, remaining)

        return httpx.Timeout(
            connect=cap(self.connect_timeout),
            read=cap(self.read_timeout),
            write=cap(self.write_timeout),
            pool=cap(self.pool_timeout),
        )

    def limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
            keepalive_expiry=self.keepalive_expiry,
        )

    def with_base_url(self, base_url: str) -> "ClientConfig":
        """Create a new config with a different base URL."""
        return replace(self, base_url=base_url)

    def with_headers(self, headers: Mapping[str, str]) -> "ClientConfig":
        """Create a new config with additional default headers."""
        new_headers = dict(self.default_headers)
        new_headers.update(headers)
        return replace(self, default_headers=new_headers)

    def with_retry_policy(self, retry_policy: RetryPolicy) -> "ClientConfig":
        """Create a new config with a different retry policy."""
        return replace(self, retry_policy=retry_policy)

    def with_request_options(self, *options) -> "ClientConfig":
        """Create a new config with extra client-level request options."""
        return replace(self, request_options=self.request_options + tuple(options))
