"""Endpoint descriptors and the mutable request the option pipeline edits."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Mapping, Optional, Sequence, Tuple

import httpx

from .context import Context
from .encoding import encode_json, encode_query
from .ids import escape_id

QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE", "OPTIONS"})

# Every 2xx, plus 304 which GitLab returns for unchanged resources.
DEFAULT_SUCCESS_STATUSES: FrozenSet[int] = frozenset(range(200, 300)) | {304}


class BodyEncoding(str, Enum):
    AUTO = "auto"
    QUERY = "query"
    JSON = "json"


@dataclass(frozen=True)
class Endpoint:
    """One API operation: method, relative path and body encoding."""

    method: str
    path: str
    body_encoding: BodyEncoding = BodyEncoding.AUTO
    success_statuses: FrozenSet[int] = DEFAULT_SUCCESS_STATUSES

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())

    @classmethod
    def build(cls, method: str, template: str, *identifiers: Any, **kwargs) -> "Endpoint":
        """Fill ``{}`` placeholders with individually escaped identifiers.

        >>> Endpoint.build("GET", "groups/{}/projects", "group/sub-group").path
        'groups/group%2Fsub-group/projects'
        """
        return cls(method, template.format(*(escape_id(i) for i in identifiers)), **kwargs)

    def encodes_query(self) -> bool:
        if self.body_encoding is BodyEncoding.AUTO:
            return self.method in QUERY_METHODS
        return self.body_encoding is BodyEncoding.QUERY


def resolve_url(base_url: httpx.URL, path: str) -> httpx.URL:
    """Join ``path`` onto ``base_url`` keeping the base path prefix."""
    prefix = base_url.raw_path.split(b"?", 1)[0].decode("ascii")
    if not prefix.endswith("/"):
        prefix += "/"
    path, _, query = path.partition("?")
    # httpx keeps existing %XX escapes, so escaped segments stay single segments
    url = base_url.copy_with(path=prefix + path.lstrip("/"), query=None)
    if query:
        url = url.copy_merge_params(httpx.QueryParams(query))
    return url


@dataclass
class Request:
    """An in-flight request, rebuilt for every attempt.

    Options mutate it in place; ``to_httpx`` freezes it for sending.
    """

    method: str
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: Optional[bytes] = None
    context: Context = field(default_factory=Context)
    token: Optional[str] = None

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def set_query_param(self, name: str, value: Any) -> None:
        self.url = self.url.copy_set_param(name, value)

    def replace_query(self, pairs: Sequence[Tuple[str, str]]) -> None:
        self.url = self.url.copy_with(query=None).copy_merge_params(httpx.QueryParams(list(pairs)))

    def set_body(self, content: bytes, content_type: Optional[str] = None) -> None:
        self.content = content
        if content_type:
            self.set_header("Content-Type", content_type)

    def to_httpx(self, timeout: Optional[httpx.Timeout] = None) -> httpx.Request:
        extensions = {}
        if timeout is not None:
            extensions["timeout"] = timeout.as_dict()
        return httpx.Request(
            self.method,
            self.url,
            headers=self.headers,
            content=self.content,
            extensions=extensions,
        )


def new_request(
    base_url: httpx.URL,
    endpoint: Endpoint,
    body: Any = None,
    default_headers: Optional[Mapping[str, str]] = None,
) -> Request:
    """Build the unsent request for ``endpoint``; raises InvalidArgumentError."""
    request = Request(
        endpoint.method,
        resolve_url(base_url, endpoint.path),
        headers=httpx.Headers(default_headers or {}),
    )
    if body is None:
        return request

    if endpoint.encodes_query():
        pairs = encode_query(body)
        if pairs:
            request.url = request.url.copy_merge_params(httpx.QueryParams(pairs))
    else:
        request.set_body(encode_json(body), "application/json")
    return request



@dataclass
class RequestState:
    """Mutable state of one logical call, retries included.

    Owned by a single call and never shared; every attempt rebuilds its
    request from ``endpoint``, ``body`` and ``options``.
    """

    endpoint: Endpoint
    body: Any = None
    options: Tuple[Any, ...] = ()
    attempts: int = 0
    context: Context = field(default_factory=Context)
