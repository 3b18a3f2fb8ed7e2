import json
import os
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import unquote, urlsplit

import pytest

from voidcloud.api import Client
from voidcloud.crypto import blake3
from voidcloud.share import (
    DeployCommand,
    DeployEntry,
    DeployError,
    build_manifest,
    deploy,
)

ORG = "acme"
GAME = "space-game"
DEPLOY_ID = 42
SLUG = "my-game"
GAME_URL = "https://play.example.com/my-game"
_ECHO = object()


class _Handler(BaseHTTPRequestHandler):
    server: "_Platform"

    def log_message(self, format, *args):
        pass

    def _send(self, status, body, headers=None):
        data = body.encode("utf-8")
        self.send_response(status)
        for key, value in (headers or {}).items():
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        path = unquote(urlsplit(self.path).path)
        srv = self.server
        with srv.lock:
            srv.requests.append((path, dict(self.headers), body))
        if path.endswith("/activate"):
            payload = {"deployID": DEPLOY_ID, "slug": SLUG, "url": GAME_URL}
            self._send(srv.activate_status, json.dumps(payload))
        elif "/upload/" in path:
            self._send(srv.upload_status, "")
        elif srv.start_status != 202:
            self._send(srv.start_status, "boom")
        else:
            incremental = json.loads(body) if srv.incremental is _ECHO else srv.incremental
            self._send(202, json.dumps(incremental), {"X-Deploy-ID": srv.deploy_id})


class _Platform(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, incremental=_ECHO, start_status=202, deploy_id=str(DEPLOY_ID),
                 upload_status=200, activate_status=200):
        super().__init__(("127.0.0.1", 0), _Handler)
        self.incremental = incremental
        self.start_status = start_status
        self.deploy_id = deploy_id
        self.upload_status = upload_status
        self.activate_status = activate_status
        self.requests = []
        self.lock = threading.Lock()

    @property
    def url(self):
        return f"http://127.0.0.1:{self.server_address[1]}/"

    def paths(self):
        return [path for path, _, _ in self.requests]


@pytest.fixture
def platform():
    servers = []

    def start(**options):
        server = _Platform(**options)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "game"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_text("<html></html>")
    (root / "assets" / "logo.png").write_bytes(b"png")
    (root / "assets" / "deploy.ssh").write_text("ignored")
    (root / ".env").write_text("KEY=value")
    (root / "repo.git").write_text("ignored")
    return root


def _command(server, project, **overrides):
    options = dict(api=Client(server.url, "token"), org=ORG, game=GAME, path=str(project))
    options.update(overrides)
    return DeployCommand(**options)


# --------------------------------------------------------------------------- manifest


def test_build_manifest_skips_disallowed_files_in_walk_order(project):
    manifest = build_manifest(project)
    assert [entry.path for entry in manifest] == [
        os.path.join("assets", "logo.png"),
        "index.html",
    ]


def test_build_manifest_records_hash_and_length(project):
    entry = {e.path: e for e in build_manifest(project)}["index.html"]
    content = (project / "index.html").read_bytes()
    assert entry.content_length == len(content)
    assert entry.blake3 == blake3(content)


def test_build_manifest_pins_blake3(tmp_path):
    (tmp_path / "foo.txt").write_text("Hello World")
    assert build_manifest(tmp_path) == [
        DeployEntry(
            "foo.txt", "41f8394111eb713a22165c46c90ab8f0fd9399c92028fd6d288944b23ff5bf76", 11
        )
    ]


def test_entry_json_uses_wire_field_names():
    entry = DeployEntry("a/b.txt", "abc", 3)
    assert set(entry.to_json()) == {"path", "blake3", "contentLength"}
    assert DeployEntry._from_json(entry.to_json()) == entry


# --------------------------------------------------------------------------- validation


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"api": None}, "missing api client"),
        ({"org": ""}, "missing organization"),
        ({"game": ""}, "missing game"),
        ({"path": ""}, "missing path"),
    ],
)
def test_deploy_requires_fields(tmp_path, overrides, message):
    options = dict(api=Client("http://127.0.0.1/", "token"), org=ORG, game=GAME, path=str(tmp_path))
    options.update(overrides)
    with pytest.raises(DeployError) as info:
        deploy(DeployCommand(**options))
    assert str(info.value) == message


def test_deploy_missing_directory(tmp_path):
    missing = str(tmp_path / "nope")
    command = DeployCommand(api=Client("http://127.0.0.1/"), org=ORG, game=GAME, path=missing)
    with pytest.raises(DeployError) as info:
        deploy(command)
    assert str(info.value) == f"directory not found {missing}"


def test_deploy_path_is_a_file(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    command = DeployCommand(api=Client("http://127.0.0.1/"), org=ORG, game=GAME, path=str(target))
    with pytest.raises(DeployError) as info:
        deploy(command)
    assert str(info.value) == f"{target} is not a directory"


# --------------------------------------------------------------------------- protocol


def test_deploy_uploads_incremental_files_and_activates(platform, project):
    full = build_manifest(project)
    only_index = [e.to_json() for e in full if e.path == "index.html"]
    server = platform(incremental=only_index)
    started, uploaded = [], []
    result = deploy(
        _command(
            server,
            project,
            on_started=lambda i, m, inc: started.append((i, m, inc)),
            on_upload=lambda i, p: uploaded.append((i, p)),
        )
    )
    assert result.deploy_id == DEPLOY_ID
    assert result.slug == SLUG
    assert result.url == GAME_URL
    assert result.manifest == full
    assert started == [(DEPLOY_ID, full, [DeployEntry._from_json(only_index[0])])]
    assert uploaded == [(DEPLOY_ID, "index.html")]

    uploads = [(p, body) for p, _, body in server.requests if "/upload/" in p]
    assert uploads == [
        (f"/api/{ORG}/{GAME}/deploy/{DEPLOY_ID}/upload/index.html", b"<html></html>")
    ]
    assert server.paths()[-1].endswith("/activate")


def test_deploy_sends_manifest_as_json_with_token(platform, project):
    server = platform()
    result = deploy(_command(server, project))
    path, headers, body = server.requests[0]
    assert path == f"/api/{ORG}/{GAME}/deploy"
    assert headers["Authorization"] == "Bearer token"
    assert headers["Content-Type"] == "application/json"
    assert json.loads(body) == [entry.to_json() for entry in result.manifest]
    assert len([p for p in server.paths() if "/upload/" in p]) == len(result.manifest)


def test_deploy_label_is_part_of_route(platform, project):
    server = platform()
    deploy(_command(server, project, label="v1"))
    assert server.paths()[0] == f"/api/{ORG}/{GAME}/deploy/v1"


def test_deploy_null_incremental_uploads_nothing(platform, project):
    server = platform(incremental=None)
    started = []
    deploy(_command(server, project, on_started=lambda i, m, inc: started.append(inc)))
    assert started == [[]]
    assert not any("/upload/" in p for p in server.paths())


def test_deploy_start_failure(platform, project):
    server = platform(start_status=500)
    with pytest.raises(DeployError) as info:
        deploy(_command(server, project))
    assert str(info.value) == "unexpected status code 500: boom"


def test_deploy_invalid_deploy_id(platform, project):
    server = platform(deploy_id="")
    with pytest.raises(DeployError) as info:
        deploy(_command(server, project))
    assert str(info.value).startswith("missing or invalid deployID: ")


def test_deploy_upload_failure(platform, project):
    server = platform(upload_status=500)
    with pytest.raises(DeployError) as info:
        deploy(_command(server, project))
    message = str(info.value)
    assert message.startswith("[failed to upload to ")
    assert message.count("status code 500") == len(build_manifest(project))
    assert not any(p.endswith("/activate") for p in server.paths())


def test_deploy_activate_failure(platform, project):
    server = platform(activate_status=500)
    with pytest.raises(DeployError) as info:
        deploy(_command(server, project))
    assert str(info.value) == (
        f"failed to activate {ORG}/{GAME}/deploy/{DEPLOY_ID}/activate: status code 500"
    )