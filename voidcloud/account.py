"""Browser based login that stores the issued token in a keyring."""

from __future__ import annotations

import json
import queue
import threading
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Iterator, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from .system import Keyring, Runtime

PARAM_CLI = "cli"
PARAM_JWT = "jwt"
PARAM_ORIGIN = "origin"

DEFAULT_TIMEOUT = 120.0

_CONTENT_TYPE_HTML = "text/html"
_CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"

LOGIN_SUCCESS_PAGE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Login Complete</title>
  <style>
    body {
      font-family: sans-serif;
      text-align: center;
      padding-top: 50px;
    }
  </style>
  <script>
  history.replaceState(null, '', location.pathname)
  </script>
</head>
<body>
  <h2>Login Successful</h2>
  <p>You can now close this window</p>
</body>
</html>"""


class LoginError(Exception):
    """Logging in failed."""


@dataclass
class User:
    id: int = 0
    name: str = ""

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> User:
        """Build a user from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise TypeError(f"cannot decode {type(data).__name__} into User")
        user_id = data.get("id", 0)
        name = data.get("name", "")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise TypeError(f"cannot decode {type(user_id).__name__} into User.id")
        if not isinstance(name, str):
            raise TypeError(f"cannot decode {type(name).__name__} into User.name")
        return cls(id=user_id, name=name)


@dataclass
class LoginCommand:
    server: str = ""
    runtime: Runtime | None = None
    keyring: Keyring | None = None
    timeout: float = 0.0


def login(command: LoginCommand) -> User:
    """Return the logged-in user, running the browser login when needed."""
    if not command.server:
        raise LoginError("missing server")
    if command.runtime is None:
        raise LoginError("missing runtime")
    if command.keyring is None:
        raise LoginError("missing keyring")
    timeout = command.timeout or DEFAULT_TIMEOUT
    keyring = command.keyring

    jwt = keyring.get(PARAM_JWT)
    if jwt is not None:
        try:
            return _validate(command.server, jwt)
        except LoginError:
            with suppress(KeyError, OSError):
                keyring.delete(PARAM_JWT)

    with _callback_server() as server:
        command.runtime.open(_login_url(command.server, server.server_address[1]))
        jwt = _wait_for_login(server.results, timeout)

    user = _validate(command.server, jwt)
    keyring.set(PARAM_JWT, jwt)
    return user


# --------------------------------------------------------------------------- callback


class _CallbackServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _CallbackHandler)
        self.results: queue.Queue[str | LoginError] = queue.Queue()


class _CallbackHandler(BaseHTTPRequestHandler):
    server: _CallbackServer

    def log_message(self, format: str, *args: Any) -> None:
        pass

    def _send(self, status: int, content_type: str, body: str) -> None:
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _form_jwt(self, query: str) -> str:
        values: list[str] = []
        if self.command in ("POST", "PUT", "PATCH"):
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            content_type = (self.headers.get("Content-Type") or "").split(";")[0].strip()
            if content_type == _CONTENT_TYPE_FORM:
                text = body.decode("utf-8", "replace")
                values += [v for k, v in parse_qsl(text, keep_blank_values=True) if k == PARAM_JWT]
        values += [v for k, v in parse_qsl(query, keep_blank_values=True) if k == PARAM_JWT]
        return values[0] if values else ""

    def _handle(self) -> None:
        parts = urlsplit(self.path)
        if parts.path != "/callback":
            self._send(404, "text/plain; charset=utf-8", "404 page not found\n")
            return
        jwt = self._form_jwt(parts.query)
        if not jwt:
            self._send(400, "text/plain; charset=utf-8", "Missing JWT\n")
            self.server.results.put(LoginError("missing jwt in callback"))
            return
        self._send(200, _CONTENT_TYPE_HTML, LOGIN_SUCCESS_PAGE + "\n")
        self.server.results.put(jwt)

    do_GET = _handle
    do_POST = _handle


@contextmanager
def _callback_server() -> Iterator[_CallbackServer]:
    server = _CallbackServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


def _login_url(server: str, port: int) -> str:
    parts = urlsplit(server)
    params: dict[str, list[str]] = {}
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        params.setdefault(key, []).append(value)
    params[PARAM_CLI] = ["true"]
    params[PARAM_ORIGIN] = [f"http://127.0.0.1:{port}/callback"]
    query = urlencode([(key, value) for key in sorted(params) for value in params[key]])
    path = "/login" if parts.netloc else "login"
    return urlunsplit((parts.scheme, parts.netloc, path, query, parts.fragment))


def _wait_for_login(results: queue.Queue[str | LoginError], timeout: float) -> str:
    try:
        result = results.get(timeout=timeout)
    except queue.Empty:
        raise LoginError("login timed out") from None
    if isinstance(result, LoginError):
        raise result
    return result


# --------------------------------------------------------------------------- validation


def _json_error(err: json.JSONDecodeError) -> str:
    if err.msg == "Expecting value":
        if err.pos >= len(err.doc):
            return "unexpected end of JSON input"
        return f"invalid character '{err.doc[err.pos]}' looking for beginning of value"
    return err.msg


def _decode_user(text: str) -> User:
    stripped = text.lstrip(" \t\r\n")
    if not stripped:
        raise LoginError("unexpected JSON response: EOF")
    try:
        data, _ = json.JSONDecoder().raw_decode(stripped)
    except json.JSONDecodeError as err:
        raise LoginError(f"unexpected JSON response: {_json_error(err)}") from None
    try:
        return User.from_json(data)
    except TypeError as err:
        raise LoginError(f"unexpected JSON response: {err}") from None


def _validate(server: str, jwt: str) -> User:
    parts = urlsplit(server)
    path = "/api/account/me" if parts.netloc else "api/account/me"
    url = urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
    try:
        resp = requests.get(url, headers={"Authorization": f"Bearer {jwt}"})
    except requests.RequestException as err:
        raise LoginError(f"unexpected response: {err}") from None
    with resp:
        if resp.status_code == 401:
            raise LoginError("unauthorized")
        if resp.status_code != 200:
            raise LoginError(f"unexpected status code {resp.status_code}")
        return _decode_user(resp.content.decode("utf-8", "replace"))