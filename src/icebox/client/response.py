"""Conversion between live :class:`httpx.Response` objects and cached payloads.

Responses are captured as :class:`~icebox.models.CachedResponse` models
before they reach a store, and rebuilt into :class:`httpx.Response`
objects on the way out, so callers get the same type on a hit, a miss and
a stale fallback.
"""

from __future__ import annotations

from typing import Any

import httpx

from icebox.models import CachedResponse
from icebox.output import get_output

# The body is stored decoded; these headers describe the wire encoding only.
_WIRE_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def capture_response(response: httpx.Response) -> CachedResponse:
    """Capture *response* as a picklable :class:`~icebox.models.CachedResponse`."""
    headers = {
        name: value
        for name, value in response.headers.items()
        if name.lower() not in _WIRE_HEADERS
    }
    try:
        url = str(response.request.url)
    except RuntimeError:
        url = ""
    return CachedResponse(
        url=url,
        status_code=response.status_code,
        headers=headers,
        content=response.content,
    )


def restore_response(cached: CachedResponse) -> httpx.Response:
    """Rebuild an :class:`httpx.Response` from a cached payload."""
    return httpx.Response(
        status_code=cached.status_code,
        headers=cached.headers,
        content=cached.content,
        request=httpx.Request("GET", cached.url or "http://localhost/"),
    )


def format_api_response(response: httpx.Response) -> None:
    """Format and print a response using the global output system.

    Writes the HTTP status line (e.g. ``HTTP 200 OK``) to stderr, then
    renders the body to stdout.
    """
    output = get_output()

    output.info(f"HTTP {response.status_code} {response.reason_phrase or ''}".rstrip())

    content_type = response.headers.get("content-type", "application/json")
    data = extract_response_data(response)
    if data is not None:
        output.format_response(data, content_type)


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first and falls back to the raw
    text. Returns ``None`` for responses with no content.
    """
    if not response.content:
        return None

    try:
        return response.json()
    except ValueError:
        pass

    return response.text
