"""GitLab REST client: request execution with retries, decoding and pagination."""

import asyncio
import logging
import threading
from functools import lru_cache
from typing import Any, List, Optional, Sequence, Tuple

import httpx
from pydantic import TypeAdapter, ValidationError

from .auth import ANONYMOUS, Credential, CredentialKind
from .config import ClientConfig
from .context import DEADLINE_EXCEEDED, Context
from .exceptions import (
    CanceledError,
    ConfigurationError,
    DecodeFailureError,
    classify_transport_error,
    error_from_response,
)
from .options import RequestOption, apply_options
from .pagination import AsyncPageCursor, PageCursor, PaginationMode
from .request import Endpoint, Request, RequestState, new_request
from .response import Response
from .retry import RetryManager
from .settings import GitLabSettings

logger = logging.getLogger(__name__)

_EMPTY_BODIES = (b"", b"null", b'""')


@lru_cache(maxsize=256)
def _type_adapter(result_type: Any) -> TypeAdapter:
    return TypeAdapter(result_type)


def _parse_base_url(base_url: str) -> httpx.URL:
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigurationError(f"invalid base URL {base_url!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigurationError(
            f"invalid base URL {base_url!r}: expected an absolute http(s) URL"
        )
    return url


class GitLabClient:
    """GitLab REST API client.

    Every call runs through the same pipeline: build the request, apply
    client-level then call-level options, attach the credential, send,
    classify the outcome and retry within the configured policy. Calls
    return ``(value, Response)`` and raise ``APIError`` subclasses.

    The client is safe to share between threads; each call owns its own
    ``RequestState``.
    """

    def __init__(
        self,
        credential: Optional[Credential] = None,
        *,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            credential: How requests authenticate. None sends no credential.
            config: Client configuration. If None, uses default config.
            transport: httpx transport for the sync client (tests inject
                ``httpx.MockTransport`` here).
            async_transport: httpx transport for the async client.

        Raises:
            ConfigurationError: If the base URL is not an absolute http(s) URL.
        """
        self.config = config or ClientConfig()
        self.credential = credential or ANONYMOUS
        self._base_url = _parse_base_url(self.config.base_url)
        self._transport = transport
        self._async_transport = async_transport
        self._client: Optional[httpx.AsyncClient] = None
        self._sync_client: Optional[httpx.Client] = None
        self._retry_manager = RetryManager(self.config.retry_policy)

    @classmethod
    def from_token(
        cls, token: str, kind: CredentialKind = CredentialKind.PRIVATE_TOKEN, **kwargs
    ) -> "GitLabClient":
        return cls(Credential(kind, token=token), **kwargs)

    @classmethod
    def from_basic_auth(cls, username: str, password: str, **kwargs) -> "GitLabClient":
        return cls(Credential.basic(username, password), **kwargs)

    @classmethod
    def from_settings(cls, settings=None, **kwargs) -> "GitLabClient":
        """Build a client from ``GitLabSettings`` (read from the environment if None)."""
        settings = settings or GitLabSettings()
        kwargs.setdefault("config", settings.to_config())
        return cls(settings.credential(), **kwargs)

    @property
    def base_url(self) -> httpx.URL:
        return self._base_url

    def _get_sync_client(self) -> httpx.Client:
        """Get or create synchronous HTTP client."""
        if self._sync_client is None:
            self._sync_client = httpx.Client(
                timeout=self.config.timeout(),
                limits=self.config.limits(),
                transport=self._transport,
            )
        return self._sync_client

    async def _get_async_client(self) -> httpx.AsyncClient:
        """Get or create asynchronous HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout(),
                limits=self.config.limits(),
                transport=self._async_transport,
            )
        return self._client

    def _state(self, endpoint: Endpoint, body: Any, options: Sequence[RequestOption]) -> RequestState:
        return RequestState(
            endpoint=endpoint,
            body=body,
            options=self.config.request_options + tuple(options),
        )

    def _prepare(self, state: RequestState) -> Request:
        """Build a fresh request for the next attempt of ``state``."""
        request = new_request(
            self._base_url, state.endpoint, state.body, self.config.default_headers
        )
        apply_options(request, state.options)
        self.credential.apply(request, request.token or request.context.token)
        state.context = request.context
        return request

    def build_request(
        self,
        endpoint: Endpoint,
        body: Any = None,
        options: Sequence[RequestOption] = (),
    ) -> httpx.Request:
        """Build the request a call would send, without sending it.

        Raises:
            InvalidArgumentError: If the body cannot be encoded or an option fails.
        """
        request = self._prepare(self._state(endpoint, body, options))
        return request.to_httpx(self.config.timeout(request.context.remaining()))

    def _log_attempt(self, request: Request, state: RequestState) -> None:
        logger.debug(
            "%s %s (attempt %d/%d)",
            request.method, request.url, state.attempts,
            self._retry_manager.policy.max_attempts,
        )

    def _canceled(self, request: Request, ctx: Context, exc: Optional[Exception] = None) -> CanceledError:
        return CanceledError(
            ctx.err() or DEADLINE_EXCEEDED,
            original_exception=exc,
            request_method=request.method,
            request_url=str(request.url),
        )

    def _send(self, request: Request) -> httpx.Response:
        """Send on a worker thread so the caller can stop waiting on cancellation.

        A canceled send is abandoned; httpx reads and closes its response
        when the transport eventually returns.
        """
        ctx = request.context
        ctx.raise_if_done(request_method=request.method, request_url=str(request.url))
        client = self._get_sync_client()
        http_request = request.to_httpx(self.config.timeout(ctx.remaining()))

        finished = threading.Event()
        outcome: List[Any] = []

        def run():
            try:
                outcome.append(client.send(http_request))
            except Exception as e:
                outcome.append(e)
            finally:
                finished.set()

        remove = ctx.add_done_callback(finished.set)
        try:
            threading.Thread(target=run, name="gitlab-send", daemon=True).start()
            while not finished.wait(ctx.remaining()):
                if ctx.done:
                    break
        finally:
            remove()

        result = outcome[0] if outcome else None
        if ctx.done:
            error = result if isinstance(result, Exception) else None
            raise self._canceled(request, ctx, error) from error

        if isinstance(result, httpx.TransportError):
            raise classify_transport_error(result, request.method, str(request.url)) from result
        if isinstance(result, Exception):
            raise result
        return result

    async def _asend(self, request: Request) -> httpx.Response:
        ctx = request.context
        ctx.raise_if_done(request_method=request.method, request_url=str(request.url))
        client = await self._get_async_client()
        loop = asyncio.get_running_loop()

        send = asyncio.ensure_future(
            client.send(request.to_httpx(self.config.timeout(ctx.remaining())))
        )
        canceled = ctx.as_future(loop)
        try:
            done, _ = await asyncio.wait(
                {send, canceled},
                timeout=ctx.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            canceled.cancel()

        if send in done:
            try:
                return send.result()
            except httpx.TransportError as e:
                if ctx.done:
                    raise self._canceled(request, ctx, e) from e
                raise classify_transport_error(e, request.method, str(request.url)) from e

        send.cancel()
        await asyncio.gather(send, return_exceptions=True)
        raise self._canceled(request, ctx)

    def _handle_response(
        self, endpoint: Endpoint, raw: httpx.Response, result_type: Any
    ) -> Tuple[Any, Response]:
        """Classify the response and decode its body into ``result_type``."""
        response = Response.from_httpx(raw)
        if response.status_code not in endpoint.success_statuses:
            raise error_from_response(response, retry_after=response.retry_after())
        return self._decode(response, result_type), response

    def _decode(self, response: Response, result_type: Any) -> Any:
        if result_type is None:
            return None
        content = response.content.strip()
        if content in _EMPTY_BODIES:
            return None
        try:
            return _type_adapter(result_type).validate_json(content)
        except ValidationError as e:
            raise DecodeFailureError(
                f"{response.method} {response.url}: failed to decode response: {e}",
                status_code=response.status_code,
                body=response.text,
                response=response,
                original_exception=e,
            ) from e

    # Synchronous methods

    def do(
        self,
        endpoint: Endpoint,
        body: Any = None,
        *,
        result_type: Any = None,
        options: Sequence[RequestOption] = (),
    ) -> Tuple[Any, Response]:
        """Execute ``endpoint`` with retries and decode the result.

        Args:
            endpoint: Method, relative path and body encoding.
            body: Options struct (pydantic model or mapping); query or JSON
                encoded depending on the endpoint.
            result_type: Type to validate the JSON body into; None skips decoding.
            options: Call-level request options, applied after client-level ones.

        Returns:
            The decoded value (None for empty bodies) and the response metadata.

        Raises:
            APIError: Subclass matching the failure kind.
        """
        state = self._state(endpoint, body, options)

        def _attempt():
            request = self._prepare(state)
            self._log_attempt(request, state)
            raw = self._send(request)
            return self._handle_response(state.endpoint, raw, result_type)

        return self._retry_manager.execute_with_retry(_attempt, state)

    def request(self, method: str, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        return self.do(Endpoint(method, path), body, **kwargs)

    def get(self, path: str, params: Any = None, **kwargs) -> Tuple[Any, Response]:
        """Send GET request; ``params`` are query encoded."""
        return self.request("GET", path, params, **kwargs)

    def post(self, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        """Send POST request; ``body`` is JSON encoded."""
        return self.request("POST", path, body, **kwargs)

    def put(self, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        """Send PUT request; ``body`` is JSON encoded."""
        return self.request("PUT", path, body, **kwargs)

    def patch(self, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        """Send PATCH request; ``body`` is JSON encoded."""
        return self.request("PATCH", path, body, **kwargs)

    def delete(self, path: str, params: Any = None, **kwargs) -> Tuple[Any, Response]:
        """Send DELETE request; ``params`` are query encoded."""
        return self.request("DELETE", path, params, **kwargs)

    def list(
        self,
        path: str,
        options: Any = None,
        *request_options: RequestOption,
        result_type: Any = Any,
    ) -> Tuple[List[Any], Response]:
        """Fetch one page of a list endpoint."""
        items, response = self.get(
            path, options, result_type=List[result_type], options=request_options
        )
        return items or [], response

    def paginate(
        self,
        path: str,
        options: Any = None,
        *request_options: RequestOption,
        result_type: Any = Any,
        mode: PaginationMode = PaginationMode.OFFSET,
        per_page: Optional[int] = None,
    ) -> PageCursor:
        """Lazy cursor over every page of a list endpoint."""
        def list_func(opts, *ro):
            return self.list(path, opts, *ro, result_type=result_type)

        return PageCursor(list_func, options, *request_options, mode=mode, per_page=per_page)

    # Asynchronous methods

    async def ado(
        self,
        endpoint: Endpoint,
        body: Any = None,
        *,
        result_type: Any = None,
        options: Sequence[RequestOption] = (),
    ) -> Tuple[Any, Response]:
        """Async twin of ``do``; cancellation aborts in-flight I/O."""
        state = self._state(endpoint, body, options)

        async def _attempt():
            request = self._prepare(state)
            self._log_attempt(request, state)
            raw = await self._asend(request)
            return self._handle_response(state.endpoint, raw, result_type)

        return await self._retry_manager.async_execute_with_retry(_attempt, state)

    async def arequest(self, method: str, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        return await self.ado(Endpoint(method, path), body, **kwargs)

    async def aget(self, path: str, params: Any = None, **kwargs) -> Tuple[Any, Response]:
        return await self.arequest("GET", path, params, **kwargs)

    async def apost(self, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        return await self.arequest("POST", path, body, **kwargs)

    async def aput(self, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        return await self.arequest("PUT", path, body, **kwargs)

    async def apatch(self, path: str, body: Any = None, **kwargs) -> Tuple[Any, Response]:
        return await self.arequest("PATCH", path, body, **kwargs)

    async def adelete(self, path: str, params: Any = None, **kwargs) -> Tuple[Any, Response]:
        return await self.arequest("DELETE", path, params, **kwargs)

    async def alist(
        self,
        path: str,
        options: Any = None,
        *request_options: RequestOption,
        result_type: Any = Any,
    ) -> Tuple[List[Any], Response]:
        items, response = await self.aget(
            path, options, result_type=List[result_type], options=request_options
        )
        return items or [], response

    def apaginate(
        self,
        path: str,
        options: Any = None,
        *request_options: RequestOption,
        result_type: Any = Any,
        mode: PaginationMode = PaginationMode.OFFSET,
        per_page: Optional[int] = None,
    ) -> AsyncPageCursor:
        async def list_func(opts, *ro):
            return await self.alist(path, opts, *ro, result_type=result_type)

        return AsyncPageCursor(list_func, options, *request_options, mode=mode, per_page=per_page)

    def close(self):
        """Close the synchronous HTTP client."""
        if self._sync_client:
            self._sync_client.close()
            self._sync_client = None

    async def aclose(self):
        """Close both HTTP clients."""
        self.close()
        if self._client:
            await self._client.aclose()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
