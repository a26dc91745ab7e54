"""GitLab REST API client core with error normalization, retries and pagination."""

from ._version import __version__
from .auth import ANONYMOUS, Credential, CredentialKind
from .client import GitLabClient
from .config import DEFAULT_BASE_URL, ClientConfig
from .context import Context
from .encoding import encode_json, encode_query
from .ids import ByID, ByPath, Identifier, escape_id, parse_id, path_escape, to_identifier
from .logging_config import setup_logging
from .options import (
    RequestOption,
    apply_options,
    with_body,
    with_context,
    with_header,
    with_headers,
    with_json_body,
    with_keyset_pagination_parameters,
    with_md5,
    with_offset_pagination_parameters,
    with_query_parameters,
    with_sudo,
    with_token,
)
from .pagination import (
    AsyncPageCursor,
    CursorState,
    Page,
    PageCursor,
    PaginationMode,
    all_pages,
    all_pages_for_id,
    page_iterator,
    page_iterator_for_id,
)
from .request import DEFAULT_SUCCESS_STATUSES, BodyEncoding, Endpoint, Request, RequestState, new_request
from .response import Response
from .retry import (
    DEFAULT_RETRY,
    NO_RETRY,
    RATE_LIMIT_RETRY,
    RetryManager,
    RetryPolicy,
)
from .settings import GitLabSettings
from .types import BoolValue, ListOptions
from .exceptions import (
    # Base exceptions
    APIError,
    ConfigurationError,
    ErrorKind,

    # Transport exceptions
    APIConnectionError,
    APITimeoutError,
    CanceledError,

    # Local failures
    InvalidArgumentError,
    DecodeFailureError,

    # HTTP Client errors (4xx)
    HTTPClientError,
    BadRequestError,
    APIAuthenticationError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    APIValidationError,
    APIRateLimitError,

    # HTTP Server errors (5xx)
    HTTPServerError,
    InternalServerError,
    BadGatewayError,
    ServiceUnavailableError,
    GatewayTimeoutError,

    # Utility functions
    get_error_from_status_code,
    error_from_response,
    classify_transport_error,
)

__all__ = [
    "__version__",

    # Client
    "GitLabClient",
    "ClientConfig",
    "GitLabSettings",
    "DEFAULT_BASE_URL",
    "setup_logging",

    # Credentials
    "Credential",
    "CredentialKind",
    "ANONYMOUS",

    # Requests
    "Context",
    "Endpoint",
    "BodyEncoding",
    "DEFAULT_SUCCESS_STATUSES",
    "Request",
    "RequestState",
    "new_request",
    "encode_query",
    "encode_json",
    "Response",

    # Identifiers
    "ByID",
    "ByPath",
    "Identifier",
    "to_identifier",
    "parse_id",
    "path_escape",
    "escape_id",

    # Options
    "RequestOption",
    "apply_options",
    "with_body",
    "with_context",
    "with_header",
    "with_headers",
    "with_json_body",
    "with_keyset_pagination_parameters",
    "with_md5",
    "with_offset_pagination_parameters",
    "with_query_parameters",
    "with_sudo",
    "with_token",

    # Pagination
    "PaginationMode",
    "CursorState",
    "Page",
    "PageCursor",
    "AsyncPageCursor",
    "all_pages",
    "all_pages_for_id",
    "page_iterator",
    "page_iterator_for_id",

    # Retry
    "RetryPolicy",
    "RetryManager",
    "DEFAULT_RETRY",
    "NO_RETRY",
    "RATE_LIMIT_RETRY",

    # Value helpers
    "BoolValue",
    "ListOptions",

    # Exceptions
    "APIError",
    "ConfigurationError",
    "ErrorKind",
    "APIConnectionError",
    "APITimeoutError",
    "CanceledError",
    "InvalidArgumentError",
    "DecodeFailureError",
    "HTTPClientError",
    "BadRequestError",
    "APIAuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "APIValidationError",
    "APIRateLimitError",
    "HTTPServerError",
    "InternalServerError",
    "BadGatewayError",
    "ServiceUnavailableError",
    "GatewayTimeoutError",
    "get_error_from_status_code",
    "error_from_response",
    "classify_transport_error",
]
