"""Request options: functions that mutate a request before it is sent.

Client-level options run first, then call-level options, in the order
given. An option reports failure by raising; the pipeline stops at the
first failure and the call fails before any network I/O.
"""

import base64
import hashlib
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import httpx

from .context import Context
from .encoding import encode_json, encode_query
from .exceptions import APIError, InvalidArgumentError
from .ids import parse_id
from .request import Request

RequestOption = Callable[[Request], None]


def apply_options(request: Request, options: Iterable[RequestOption]) -> Request:
    """Apply ``options`` to ``request`` in order, failing fast."""
    for option in options:
        try:
            option(request)
        except APIError:
            raise
        except Exception as e:
            name = getattr(option, "__qualname__", repr(option))
            raise InvalidArgumentError(
                f"request option {name} failed: {e}",
                original_exception=e,
                request_method=request.method,
                request_url=str(request.url),
            ) from e
    return request


def with_header(name: str, value: str) -> RequestOption:
    """Set a single header, overwriting any earlier value."""
    def option(request: Request) -> None:
        request.set_header(name, value)
    return option


def with_headers(headers: Mapping[str, str]) -> RequestOption:
    headers = dict(headers)

    def option(request: Request) -> None:
        for name, value in headers.items():
            request.set_header(name, value)
    return option


def with_sudo(uid: Any) -> RequestOption:
    """Act on behalf of another user, given a username or a user ID."""
    def option(request: Request) -> None:
        request.set_header("Sudo", parse_id(uid))
    return option


def with_context(ctx: Context) -> RequestOption:
    """Run the call under ``ctx`` for cancellation and deadlines."""
    def option(request: Request) -> None:
        request.context = ctx
    return option


def with_token(token: str) -> RequestOption:
    """Authenticate this call with ``token`` instead of the client's token."""
    def option(request: Request) -> None:
        request.token = token
    return option


def with_query_parameters(params: Any) -> RequestOption:
    """Replace the query string with the encoded ``params``."""
    def option(request: Request) -> None:
        request.replace_query(encode_query(params))
    return option


def with_body(content: Union[bytes, str], content_type: str = "") -> RequestOption:
    """Replace the request body; sets Content-Type when one is given."""
    if isinstance(content, str):
        content = content.encode("utf-8")

    def option(request: Request) -> None:
        request.set_body(content, content_type or None)
    return option


def with_json_body(obj: Any) -> RequestOption:
    def option(request: Request) -> None:
        request.set_body(encode_json(obj), "application/json")
    return option


def with_md5() -> RequestOption:
    """Set Content-MD5 from the body as it is when this option runs."""
    def option(request: Request) -> None:
        digest = hashlib.md5(request.content or b"").digest()
        request.set_header("Content-MD5", base64.b64encode(digest).decode("ascii"))
    return option


def with_offset_pagination_parameters(page: int, per_page: Optional[int] = None) -> RequestOption:
    def option(request: Request) -> None:
        request.set_query_param("page", page)
        if per_page:
            request.set_query_param("per_page", per_page)
    return option


def with_keyset_pagination_parameters(next_link: Optional[str]) -> RequestOption:
    """Copy the query of a ``Link: rel="next"`` URL onto the request.

    An empty link leaves the request untouched, so the first page of an
    iteration can pass the option unconditionally.
    """
    def option(request: Request) -> None:
        if not next_link:
            return
        request.url = request.url.copy_merge_params(httpx.URL(next_link).params)
    return option
