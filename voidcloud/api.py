"""HTTP client for the platform API, authenticated with a bearer token."""

from __future__ import annotations

import os
import posixpath
from typing import Any, BinaryIO
from urllib.parse import quote, urlsplit, urlunsplit

import requests

from .pp import _marshal

HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CONTENT_LENGTH = "Content-Length"
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_BYTES = "application/octet-stream"

_PATH_SAFE = "/!$&'()*+,;=:@-._~"


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def _join(*parts: str) -> str:
    """Join non-empty path parts with slashes and clean the result."""
    kept = [part for part in parts if part]
    return _clean("/".join(kept)) if kept else ""


def route(*args: Any) -> str:
    """Join the string forms of the arguments into a cleaned API route."""
    return _join(*(str(arg) for arg in args))


class Client:
    """Sends requests to the API below a server endpoint."""

    def __init__(
        self, server: str, token: str = "", session: requests.Session | None = None
    ) -> None:
        self.endpoint = urlsplit(server)
        self.token = token
        self._session = session or requests.Session()

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def url(self, route: str) -> str:
        """Return the absolute URL of an API route."""
        path = _join("api", route)
        if self.endpoint.netloc and not path.startswith("/"):
            path = "/" + path
        return urlunsplit(
            (
                self.endpoint.scheme,
                self.endpoint.netloc,
                quote(path, safe=_PATH_SAFE),
                self.endpoint.query,
                self.endpoint.fragment,
            )
        )

    def request(
        self,
        method: str,
        route: str,
        data: bytes | BinaryIO | None = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """Send an authorized request to a route."""
        all_headers = dict(headers or {})
        all_headers[HEADER_AUTHORIZATION] = f"Bearer {self.token}"
        return self._session.request(method, self.url(route), data=data, headers=all_headers)

    def get(self, route: str) -> requests.Response:
        return self.request("GET", route)

    def post(self, route: str, content: bytes | BinaryIO | None = None) -> requests.Response:
        return self.request("POST", route, content)

    def post_json(self, route: str, content: Any) -> requests.Response:
        """Post a value encoded as JSON."""
        body = _marshal(content).encode("utf-8")
        return self.request("POST", route, body, {HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON})

    def post_file(self, route: str, filepath: str | os.PathLike[str]) -> requests.Response:
        """Post the raw contents of a file."""
        with open(filepath, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            return self.request(
                "POST",
                route,
                f,
                {
                    HEADER_CONTENT_TYPE: CONTENT_TYPE_BYTES,
                    HEADER_CONTENT_LENGTH: str(size),
                },
            )