"""Normalized GitLab client exceptions."""

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

# Longest raw body kept on an error for diagnostics.
MAX_BODY_SNIPPET = 2048


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced to callers."""

    TRANSPORT_FAILURE = "transport_failure"
    TIMEOUT = "timeout"
    CANCELED = "canceled"
    CLIENT_ERROR = "client_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    DECODE_FAILURE = "decode_failure"
    INVALID_ARGUMENT = "invalid_argument"


RETRYABLE_KINDS = frozenset({
    ErrorKind.TRANSPORT_FAILURE,
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMITED,
    ErrorKind.SERVER_ERROR,
})


class ConfigurationError(Exception):
    """Raised once, at client construction, for unusable configuration."""
    pass


class APIError(Exception):
    """Base exception for all request failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        response: Any = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None,
        **context
    ):
        """
        Initialize API error with diagnostics.

        Args:
            message (str): Primary error message
            status_code (Optional[int]): HTTP status, when a response was received
            body (Optional[str]): Raw response body, truncated to MAX_BODY_SNIPPET
            response: Response metadata (gitlab_client.response.Response)
            original_exception (Optional[Exception]): Wrapped transport error
            retry_after (Optional[float]): Server supplied delay in seconds
            **context: Additional error context
        """
        self.message = message
        self.status_code = status_code
        self.body = body[:MAX_BODY_SNIPPET] if body else body
        self.response = response
        self.original_exception = original_exception
        self.retry_after = retry_after
        self.context = context
        self.attempts = 0

        log_message = f"{self.__class__.__name__}: {message}"
        if context:
            log_message += f" | Context: {context}"
        logger.debug(log_message)

        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"Status: {self.status_code}")
        if self.attempts > 1:
            parts.append(f"Attempts: {self.attempts}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "body": self.body,
            "attempts": self.attempts,
            "context": self.context,
        }


class APIConnectionError(APIError):
    """Raised when the server could not be reached."""
    kind = ErrorKind.TRANSPORT_FAILURE


class APITimeoutError(APIError):
    """Raised when a request times out."""
    kind = ErrorKind.TIMEOUT

    def __init__(self, message: str, timeout_type: str = "unknown", **kwargs):
        self.timeout_type = timeout_type
        super().__init__(message, **kwargs)


class CanceledError(APIError):
    """Raised when the call's context is canceled or its deadline passes."""
    kind = ErrorKind.CANCELED


class InvalidArgumentError(APIError):
    """Raised for bad input detected before any network call."""
    kind = ErrorKind.INVALID_ARGUMENT


class DecodeFailureError(APIError):
    """Raised when a response body does not match the expected shape."""
    kind = ErrorKind.DECODE_FAILURE


class HTTPClientError(APIError):
    """Raised for non-retryable error statuses (4xx other than 429)."""
    kind = ErrorKind.CLIENT_ERROR


class BadRequestError(HTTPClientError):
    pass


class APIAuthenticationError(HTTPClientError):
    pass


class ForbiddenError(HTTPClientError):
    pass


class NotFoundError(HTTPClientError):
    pass


class ConflictError(HTTPClientError):
    pass


class APIValidationError(HTTPClientError):
    """Raised on 422 responses."""
    pass


class APIRateLimitError(APIError):
    """Raised when the API rate limit is exceeded."""
    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        remaining: Optional[int] = None,
        limit: Optional[int] = None,
        reset_time: Optional[int] = None,
        **kwargs
    ):
        self.remaining = remaining
        self.limit = limit
        self.reset_time = reset_time
        super().__init__(message, **kwargs)


class HTTPServerError(APIError):
    """Raised for 5xx responses."""
    kind = ErrorKind.SERVER_ERROR


class InternalServerError(HTTPServerError):
    pass


class BadGatewayError(HTTPServerError):
    pass


class ServiceUnavailableError(HTTPServerError):
    pass


class GatewayTimeoutError(HTTPServerError):
    pass


_STATUS_ERRORS = {
    400: BadRequestError,
    401: APIAuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: APIValidationError,
    429: APIRateLimitError,
    500: InternalServerError,
    502: BadGatewayError,
    503: ServiceUnavailableError,
    504: GatewayTimeoutError,
}


def parse_error_message(raw: Any) -> str:
    """
    Flatten a decoded GitLab error payload into a single line.

    Mappings render as ``{key: value}`` groups in key order, lists as
    ``[a, b]``.
    """
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        return "[" + ", ".join(parse_error_message(v) for v in raw) + "]"
    if isinstance(raw, dict):
        return ", ".join(
            f"{{{key}: {parse_error_message(raw[key])}}}" for key in sorted(raw)
        )
    if raw is None or isinstance(raw, (bool, int, float)):
        return json.dumps(raw)
    return f"failed to parse unexpected error type: {type(raw).__name__}"


def _error_summary(body: str) -> str:
    if not body:
        return ""
    try:
        raw = json.loads(body)
    except ValueError:
        return f"failed to parse unknown error format: {body}"
    if isinstance(raw, dict):
        wanted = {k: raw[k] for k in ("error", "message") if k in raw}
        if wanted:
            return parse_error_message(wanted)
    return parse_error_message(raw)


def get_error_from_status_code(status_code: int, message: str, **kwargs) -> APIError:
    """
    Map an HTTP status code to the matching exception.

    Args:
        status_code (int): HTTP status code
        message (str): Error message
        **kwargs: Forwarded to the exception

    Returns:
        APIError: Exception instance for the status code
    """
    error_class = _STATUS_ERRORS.get(status_code)
    if error_class is None:
        error_class = HTTPServerError if status_code >= 500 else HTTPClientError
    return error_class(message, status_code=status_code, **kwargs)


def error_from_response(response: Any, retry_after: Optional[float] = None) -> APIError:
    """
    Build the normalized error for an unsuccessful response.

    Args:
        response: gitlab_client.response.Response metadata
        retry_after: Server supplied delay, if any

    Returns:
        APIError: Error carrying status, body snippet and metadata
    """
    body = response.text
    summary = _error_summary(body)
    message = f"{response.method} {response.url}: {response.status_code}"
    if summary:
        message = f"{message} {summary}"

    kwargs: Dict[str, Any] = {
        "body": body,
        "response": response,
        "retry_after": retry_after,
        "request_method": response.method,
        "request_url": response.url,
    }
    if response.status_code == 429:
        kwargs.update(
            limit=response.rate_limit_limit,
            remaining=response.rate_limit_remaining,
            reset_time=response.rate_limit_reset,
        )
    return get_error_from_status_code(response.status_code, message, **kwargs)


def classify_transport_error(
    exception: Exception,
    request_method: Optional[str] = None,
    request_url: Optional[str] = None,
) -> APIError:
    """
    Classify an httpx transport exception.

    Args:
        exception (Exception): Original transport exception
        request_method: Method of the failed request
        request_url: URL of the failed request

    Returns:
        APIError: APITimeoutError or APIConnectionError
    """
    context = {"request_method": request_method, "request_url": request_url}

    if isinstance(exception, httpx.TimeoutException):
        timeout_type = "unknown"
        if isinstance(exception, httpx.ConnectTimeout):
            timeout_type = "connect"
        elif isinstance(exception, httpx.ReadTimeout):
            timeout_type = "read"
        elif isinstance(exception, httpx.WriteTimeout):
            timeout_type = "write"
        elif isinstance(exception, httpx.PoolTimeout):
            timeout_type = "pool"
        return APITimeoutError(
            f"Request timed out ({timeout_type}): {exception}",
            timeout_type=timeout_type,
            original_exception=exception,
            **context
        )

    return APIConnectionError(
        f"Network error: {exception}",
        original_exception=exception,
        **context
    )
