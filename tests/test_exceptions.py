"""Tests for error normalization."""

import httpx
import pytest

from gitlab_client import (
    APIAuthenticationError,
    APIConnectionError,
    APIError,
    APIRateLimitError,
    APITimeoutError,
    BadGatewayError,
    ErrorKind,
    HTTPClientError,
    HTTPServerError,
    NotFoundError,
    Response,
    ServiceUnavailableError,
    classify_transport_error,
    error_from_response,
    get_error_from_status_code,
)
from gitlab_client.exceptions import MAX_BODY_SNIPPET, parse_error_message


def make_response(status, **kwargs):
    request = httpx.Request("GET", "https://api.example.com/v1/projects/1")
    return Response.from_httpx(httpx.Response(status, request=request, **kwargs))


@pytest.mark.parametrize("status,error_class,kind", [
    (400, HTTPClientError, ErrorKind.CLIENT_ERROR),
    (401, APIAuthenticationError, ErrorKind.CLIENT_ERROR),
    (404, NotFoundError, ErrorKind.CLIENT_ERROR),
    (418, HTTPClientError, ErrorKind.CLIENT_ERROR),
    (429, APIRateLimitError, ErrorKind.RATE_LIMITED),
    (500, HTTPServerError, ErrorKind.SERVER_ERROR),
    (502, BadGatewayError, ErrorKind.SERVER_ERROR),
    (503, ServiceUnavailableError, ErrorKind.SERVER_ERROR),
    (599, HTTPServerError, ErrorKind.SERVER_ERROR),
])
def test_status_mapping(status, error_class, kind):
    """Status codes map to one exception class and one kind"""
    error = get_error_from_status_code(status, "failed")

    assert isinstance(error, error_class)
    assert error.kind == kind
    assert error.status_code == status


def test_retryable_kinds():
    assert get_error_from_status_code(503, "x").retryable
    assert get_error_from_status_code(429, "x").retryable
    assert not get_error_from_status_code(404, "x").retryable


def test_error_from_response_message():
    response = make_response(404, content=b'{"message":"404 Project Not Found"}')
    error = error_from_response(response)

    assert isinstance(error, NotFoundError)
    assert error.message == (
        "GET https://api.example.com/v1/projects/1: 404 {message: 404 Project Not Found}"
    )
    assert error.response is response
    assert error.body == '{"message":"404 Project Not Found"}'


def test_error_from_response_nested_validation_errors():
    response = make_response(400, json={"message": {"name": ["has already been taken"], "path": ["is invalid"]}})
    error = error_from_response(response)

    assert error.message.endswith(
        "400 {message: {name: [has already been taken]}, {path: [is invalid]}}"
    )


def test_error_from_response_non_json_body():
    response = make_response(502, content=b"<html>bad gateway</html>")
    error = error_from_response(response)

    assert "failed to parse unknown error format: <html>bad gateway</html>" in error.message


def test_error_from_response_empty_body():
    error = error_from_response(make_response(500))
    assert error.message == "GET https://api.example.com/v1/projects/1: 500"


def test_body_snippet_bounded():
    response = make_response(500, content=b"x" * (MAX_BODY_SNIPPET * 2))
    error = error_from_response(response)

    assert len(error.body) == MAX_BODY_SNIPPET


def test_rate_limit_fields():
    response = make_response(429, headers={
        "RateLimit-Limit": "600",
        "RateLimit-Remaining": "0",
        "RateLimit-Reset": "1700000000",
    })
    error = error_from_response(response, retry_after=12.0)

    assert isinstance(error, APIRateLimitError)
    assert error.limit == 600
    assert error.remaining == 0
    assert error.reset_time == 1700000000
    assert error.retry_after == 12.0


def test_parse_error_message_shapes():
    assert parse_error_message("plain") == "plain"
    assert parse_error_message(["a", "b"]) == "[a, b]"
    assert parse_error_message({"b": "2", "a": "1"}) == "{a: 1}, {b: 2}"


def test_classify_transport_errors():
    timeout = classify_transport_error(httpx.ReadTimeout("slow"), "GET", "https://x")
    assert isinstance(timeout, APITimeoutError)
    assert timeout.kind == ErrorKind.TIMEOUT
    assert timeout.timeout_type == "read"

    refused = classify_transport_error(httpx.ConnectError("refused"))
    assert isinstance(refused, APIConnectionError)
    assert refused.kind == ErrorKind.TRANSPORT_FAILURE
    assert refused.retryable


def test_str_and_to_dict():
    error = get_error_from_status_code(503, "unavailable")
    error.attempts = 3

    assert str(error) == "unavailable | Status: 503 | Attempts: 3"
    data = error.to_dict()
    assert data["kind"] == "server_error"
    assert data["error_type"] == "ServiceUnavailableError"
    assert isinstance(error, APIError)
