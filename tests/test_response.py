"""Tests for response metadata parsing."""

from email.utils import formatdate

import httpx

from gitlab_client import Response
from gitlab_client.response import parse_retry_after


def from_headers(status=200, **headers):
    request = httpx.Request("GET", "https://api.example.com/v1/projects")
    return Response.from_httpx(httpx.Response(status, headers=headers, request=request))


def test_pagination_headers():
    response = from_headers(**{
        "X-Total": "45",
        "X-Total-Pages": "3",
        "X-Per-Page": "20",
        "X-Page": "2",
        "X-Next-Page": "3",
        "X-Prev-Page": "1",
    })

    assert response.total_items == 45
    assert response.total_pages == 3
    assert response.items_per_page == 20
    assert response.current_page == 2
    assert response.next_page == 3
    assert response.previous_page == 1
    assert response.has_next_page_header


def test_missing_and_empty_headers():
    response = from_headers(**{"X-Next-Page": ""})

    assert response.total_items is None
    assert response.next_page is None
    assert response.has_next_page_header
    assert not from_headers().has_next_page_header


def test_link_header():
    link = (
        '<https://api.example.com/v1/projects?id_after=5&pagination=keyset>; rel="next", '
        '<https://api.example.com/v1/projects?pagination=keyset>; rel="first"'
    )
    response = from_headers(Link=link)

    assert response.next_link == "https://api.example.com/v1/projects?id_after=5&pagination=keyset"
    assert response.first_link == "https://api.example.com/v1/projects?pagination=keyset"
    assert response.previous_link == ""
    assert response.last_link == ""


def test_request_metadata():
    response = from_headers()

    assert response.method == "GET"
    assert response.url == "https://api.example.com/v1/projects"


def test_parse_retry_after_seconds():
    assert parse_retry_after("12") == 12.0
    assert parse_retry_after("-3") == 0.0
    assert parse_retry_after("") is None
    assert parse_retry_after("soon") is None


def test_parse_retry_after_http_date():
    now = 1_700_000_000.0
    value = formatdate(now + 30, usegmt=True)

    assert parse_retry_after(value, now=now) == 30.0


def test_retry_after_precedence():
    """Retry-After wins over RateLimit-Reset"""
    response = from_headers(429, **{"Retry-After": "7", "RateLimit-Reset": "1700000100"})
    assert response.retry_after(now=1_700_000_000.0) == 7.0


def test_rate_limit_reset_on_429():
    response = from_headers(429, **{"RateLimit-Reset": "1700000100"})

    assert response.retry_after(now=1_700_000_000.0) == 100.0


def test_rate_limit_reset_ignored_on_other_statuses():
    response = from_headers(503, **{"RateLimit-Reset": "1700000100"})

    assert response.retry_after(now=1_700_000_000.0) is None
