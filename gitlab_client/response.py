"""Response metadata returned with every call."""

import time
from dataclasses import dataclass, field
from email.utils import parsedate_to_datetime
from typing import Optional

import httpx

X_TOTAL = "X-Total"
X_TOTAL_PAGES = "X-Total-Pages"
X_PER_PAGE = "X-Per-Page"
X_PAGE = "X-Page"
X_NEXT_PAGE = "X-Next-Page"
X_PREV_PAGE = "X-Prev-Page"

LINK_NEXT = "next"
LINK_PREV = "prev"
LINK_FIRST = "first"
LINK_LAST = "last"


def _int_header(headers: httpx.Headers, name: str) -> Optional[int]:
    value = headers.get(name, "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_retry_after(value: Optional[str], now: Optional[float] = None) -> Optional[float]:
    """Seconds to wait from a Retry-After value (delta seconds or HTTP date)."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    now = time.time() if now is None else now
    return max(0.0, when.timestamp() - now)


@dataclass
class Response:
    """Status, headers and GitLab pagination/rate-limit metadata."""

    status_code: int
    headers: httpx.Headers
    method: str = ""
    url: str = ""
    content: bytes = field(default=b"", repr=False)

    total_items: Optional[int] = None
    total_pages: Optional[int] = None
    items_per_page: Optional[int] = None
    current_page: Optional[int] = None
    next_page: Optional[int] = None
    previous_page: Optional[int] = None

    next_link: str = ""
    previous_link: str = ""
    first_link: str = ""
    last_link: str = ""

    rate_limit_limit: Optional[int] = None
    rate_limit_remaining: Optional[int] = None
    rate_limit_reset: Optional[int] = None

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "Response":
        headers = response.headers
        links = {rel: link.get("url", "") for rel, link in response.links.items()}
        try:
            request = response.request
        except RuntimeError:
            request = None
        return cls(
            status_code=response.status_code,
            headers=headers,
            method=request.method if request is not None else "",
            url=str(request.url) if request is not None else "",
            content=response.content,
            total_items=_int_header(headers, X_TOTAL),
            total_pages=_int_header(headers, X_TOTAL_PAGES),
            items_per_page=_int_header(headers, X_PER_PAGE),
            current_page=_int_header(headers, X_PAGE),
            next_page=_int_header(headers, X_NEXT_PAGE),
            previous_page=_int_header(headers, X_PREV_PAGE),
            next_link=links.get(LINK_NEXT, ""),
            previous_link=links.get(LINK_PREV, ""),
            first_link=links.get(LINK_FIRST, ""),
            last_link=links.get(LINK_LAST, ""),
            rate_limit_limit=_int_header(headers, "RateLimit-Limit"),
            rate_limit_remaining=_int_header(headers, "RateLimit-Remaining"),
            rate_limit_reset=_int_header(headers, "RateLimit-Reset"),
        )

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def has_next_page_header(self) -> bool:
        return X_NEXT_PAGE in self.headers

    def retry_after(self, now: Optional[float] = None) -> Optional[float]:
        """Server-supplied delay before retrying, if the response carries one.

        Retry-After wins; on 429 a RateLimit-Reset epoch is used next.
        """
        delay = parse_retry_after(self.headers.get("Retry-After"), now=now)
        if delay is not None:
            return delay
        if self.status_code == 429 and self.rate_limit_reset is not None:
            now = time.time() if now is None else now
            return max(0.0, self.rate_limit_reset - now)
        return None
