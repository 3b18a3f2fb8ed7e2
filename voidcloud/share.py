"""Deploying a directory of game files to the platform."""

from __future__ import annotations

import os
import re
import stat
import threading
from collections.abc import Callable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any

import requests

from .api import Client
from .api import route as _route
from .crypto import blake3

UPLOAD_CONCURRENCY = 8
HEADER_X_DEPLOY_ID = "X-Deploy-ID"

_DISALLOWED_SUFFIXES = (".ssh", ".git", ".env")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class DeployError(Exception):
    """A deploy could not be completed."""


def _lookup(data: Mapping[str, Any], name: str, default: Any) -> Any:
    """Find a JSON field by exact name, falling back to a case-insensitive match."""
    if name in data:
        value = data[name]
    else:
        lowered = name.lower()
        value = next((v for k, v in data.items() if k.lower() == lowered), default)
    return default if value is None else value


def _typed(value: Any, kind: type, owner: str) -> Any:
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise DeployError(f"cannot decode {type(value).__name__} into {owner}")
    return value


@dataclass(frozen=True)
class DeployEntry:
    path: str
    blake3: str
    content_length: int

    def to_json(self) -> dict[str, Any]:
        return {"path": self.path, "blake3": self.blake3, "contentLength": self.content_length}

    @classmethod
    def _from_json(cls, data: Any) -> DeployEntry:
        if not isinstance(data, Mapping):
            raise DeployError(f"cannot decode {type(data).__name__} into DeployEntry")
        return cls(
            path=_typed(_lookup(data, "path", ""), str, "DeployEntry.path"),
            blake3=_typed(_lookup(data, "blake3", ""), str, "DeployEntry.blake3"),
            content_length=_typed(
                _lookup(data, "contentLength", 0), int, "DeployEntry.contentLength"
            ),
        )


def _entries(data: Any) -> list[DeployEntry]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise DeployError(f"cannot decode {type(data).__name__} into a manifest")
    return [DeployEntry._from_json(item) for item in data]


@dataclass
class DeployResult:
    deploy_id: int = 0
    slug: str = ""
    url: str = ""
    manifest: list[DeployEntry] = field(default_factory=list)

    @classmethod
    def _from_json(cls, data: Any) -> DeployResult:
        if not isinstance(data, Mapping):
            raise DeployError(f"cannot decode {type(data).__name__} into DeployResult")
        return cls(
            deploy_id=_typed(_lookup(data, "DeployID", 0), int, "DeployResult.DeployID"),
            slug=_typed(_lookup(data, "Slug", ""), str, "DeployResult.Slug"),
            url=_typed(_lookup(data, "URL", ""), str, "DeployResult.URL"),
            manifest=_entries(_lookup(data, "Manifest", None)),
        )


StartedCallback = Callable[[int, list[DeployEntry], list[DeployEntry]], None]
UploadCallback = Callable[[int, str], None]


@dataclass
class DeployCommand:
    api: Client | None = None
    org: str = ""
    game: str = ""
    label: str = ""
    path: str = ""
    on_started: StartedCallback | None = None
    on_upload: UploadCallback | None = None


def deploy(command: DeployCommand) -> DeployResult:
    """Upload the changed files of a directory and activate the new deploy."""
    if command.api is None:
        raise DeployError("missing api client")
    if not command.org:
        raise DeployError("missing organization")
    if not command.game:
        raise DeployError("missing game")
    if not command.path:
        raise DeployError("missing path")

    try:
        info = os.stat(command.path)
    except OSError:
        raise DeployError(f"directory not found {command.path}") from None
    if not stat.S_ISDIR(info.st_mode):
        raise DeployError(f"{command.path} is not a directory")

    full_manifest = build_manifest(command.path)
    deploy_id, incremental = _start_deploy(command, full_manifest)
    if command.on_started is not None:
        command.on_started(deploy_id, full_manifest, incremental)
    _upload_all(command, deploy_id, incremental)
    result = _activate(command, deploy_id)
    return replace(result, manifest=full_manifest)


# --------------------------------------------------------------------------- manifest


def build_manifest(path: str | os.PathLike[str]) -> list[DeployEntry]:
    """List every file below a directory, in lexical walk order, with its hash and size."""
    root = os.fspath(path)
    return list(_walk(root, root))


def _walk(root: str, directory: str) -> Iterator[DeployEntry]:
    with os.scandir(directory) as scan:
        entries = sorted(scan, key=lambda e: e.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk(root, entry.path)
            continue
        if entry.name.endswith(_DISALLOWED_SUFFIXES):
            continue
        size = entry.stat(follow_symlinks=False).st_size
        with open(entry.path, "rb") as f:
            digest = blake3(f)
        yield DeployEntry(os.path.relpath(entry.path, root), digest, size)


# --------------------------------------------------------------------------- protocol


def _parse_deploy_id(raw: str) -> int:
    if not re.fullmatch(r"[+-]?[0-9]+", raw):
        raise ValueError(f'parsing "{raw}": invalid syntax')
    value = int(raw)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f'parsing "{raw}": value out of range')
    return value


def _decode(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError as err:
        raise DeployError(f"unexpected JSON response: {err}") from None


def _start_deploy(
    command: DeployCommand, manifest: list[DeployEntry]
) -> tuple[int, list[DeployEntry]]:
    assert command.api is not None
    start_route = _route(command.org, command.game, "deploy", command.label)
    with command.api.post_json(start_route, manifest) as resp:
        if resp.status_code != 202:
            raise DeployError(f"unexpected status code {resp.status_code}: {resp.text}")
        try:
            deploy_id = _parse_deploy_id(resp.headers.get(HEADER_X_DEPLOY_ID, ""))
        except ValueError as err:
            raise DeployError(f"missing or invalid deployID: {err}") from None
        return deploy_id, _entries(_decode(resp))


def _upload_all(command: DeployCommand, deploy_id: int, entries: list[DeployEntry]) -> None:
    assert command.api is not None
    api = command.api
    slots = threading.BoundedSemaphore(UPLOAD_CONCURRENCY)
    lock = threading.Lock()
    errors: list[Exception] = []

    def upload(entry: DeployEntry) -> None:
        try:
            upload_route = _route(command.org, command.game, "deploy", deploy_id, "upload", entry.path)
            try:
                resp = api.post_file(upload_route, os.path.join(command.path, entry.path))
            except OSError as err:
                with lock:
                    errors.append(err)
                return
            with resp:
                if resp.status_code != 200:
                    with lock:
                        errors.append(
                            DeployError(
                                f"failed to upload to {upload_route}: "
                                f"status code {resp.status_code}"
                            )
                        )
        finally:
            slots.release()

    with ThreadPoolExecutor(max_workers=UPLOAD_CONCURRENCY) as pool:
        for entry in entries:
            slots.acquire()
            if command.on_upload is not None:
                command.on_upload(deploy_id, entry.path)
            pool.submit(upload, entry)

    if errors:
        raise DeployError("[" + " ".join(str(err) for err in errors) + "]")


def _activate(command: DeployCommand, deploy_id: int) -> DeployResult:
    assert command.api is not None
    activate_route = _route(command.org, command.game, "deploy", deploy_id, "activate")
    with command.api.post(activate_route, None) as resp:
        if resp.status_code != 200:
            raise DeployError(
                f"failed to activate {activate_route}: status code {resp.status_code}"
            )
        return DeployResult._from_json(_decode(resp))