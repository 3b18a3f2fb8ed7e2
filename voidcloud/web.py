"""Writing plain-text or JSON responses from an HTTP request handler."""

from __future__ import annotations

from http import HTTPStatus
from http.server import BaseHTTPRequestHandler
from typing import Any

from .pp import _marshal

CONTENT_TYPE_TEXT = "text/plain"
CONTENT_TYPE_JSON = "application/json"


def respond(status: int, value: Any, handler: BaseHTTPRequestHandler) -> None:
    """Send a string as plain text, or anything else as compact JSON."""
    if isinstance(value, str):
        content_type = CONTENT_TYPE_TEXT
        body = value.encode("utf-8")
    else:
        content_type = CONTENT_TYPE_JSON
        body = _marshal(value).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", content_type)
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def respond_ok(value: Any, handler: BaseHTTPRequestHandler) -> None:
    """Respond with 200 OK."""
    respond(HTTPStatus.OK, value, handler)


def respond_accepted(value: Any, handler: BaseHTTPRequestHandler) -> None:
    """Respond with 202 Accepted."""
    respond(HTTPStatus.ACCEPTED, value, handler)


def respond_bad_request(value: Any, handler: BaseHTTPRequestHandler) -> None:
    """Respond with 400 Bad Request."""
    respond(HTTPStatus.BAD_REQUEST, value, handler)