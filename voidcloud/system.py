"""Operating system detection, credential storage and browser launching."""

from __future__ import annotations

import json
import os
import sys
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "voidcloud"


class OperatingSystem(IntEnum):
    UNKNOWN = 0
    WINDOWS = 1
    MAC = 2
    LINUX = 3


_BY_NAME = {
    "darwin": OperatingSystem.MAC,
    "windows": OperatingSystem.WINDOWS,
    "linux": OperatingSystem.LINUX,
}


def identify(name: str) -> OperatingSystem:
    """Map an operating system name such as "darwin" to an OperatingSystem."""
    return _BY_NAME.get(name, OperatingSystem.UNKNOWN)


def current() -> OperatingSystem:
    """Identify the operating system this process runs on."""
    platform = sys.platform
    if platform == "win32":
        platform = "windows"
    elif platform.startswith("linux"):
        platform = "linux"
    return identify(platform)


def open_command(operating_system: OperatingSystem, url: str) -> tuple[str, list[str]]:
    """Return the command and arguments that open a URL on the given system."""
    if operating_system is OperatingSystem.MAC:
        return "open", [url]
    if operating_system is OperatingSystem.WINDOWS:
        return "rundll32", ["url.dll,FileProtocolHandler", url]
    if operating_system is OperatingSystem.LINUX:
        return "xdg-open", [url]
    return "", [url]


# --------------------------------------------------------------------------- keyring


class Keyring(ABC):
    """A store of secret values by key."""

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value for key, or None when it is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key; raise KeyError when it is absent."""


def _default_store_path() -> Path:
    return Path(user_config_dir(APP_NAME)) / "keyring.json"


@dataclass
class SystemKeyring(Keyring):
    """Keyring kept in a private per-user file, one section per service name."""

    name: str
    path: Path = field(default_factory=_default_store_path)

    def _load(self) -> dict[str, dict[str, str]]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"malformed keyring file {self.path}")
        return data

    def _save(self, data: dict[str, dict[str, str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".keyring-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> str | None:
        try:
            section = self._load().get(self.name, {})
        except (OSError, ValueError):
            return None
        value = section.get(key) if isinstance(section, dict) else None
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data.setdefault(self.name, {})[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        section = data.get(self.name, {})
        if key not in section:
            raise KeyError(key)
        del section[key]
        if not section:
            del data[self.name]
        self._save(data)


def default_keyring(name: str) -> SystemKeyring:
    """Return the user's keyring for the named service."""
    return SystemKeyring(name)


# --------------------------------------------------------------------------- runtime


class Runtime(ABC):
    """Side effects on the user's desktop."""

    @abstractmethod
    def open(self, url: str) -> None:
        """Open a URL for the user."""


ExecuteCommand = Callable[[str, Sequence[str]], object]


def _ask_user_to_open(cmd: str, args: Sequence[str]) -> None:
    """Ask the user to open the URL, the last argument, in their browser."""
    if args:
        print(f"Open {args[-1]} in your browser to continue", file=sys.stderr)


@dataclass
class SystemRuntime(Runtime):
    operating_system: OperatingSystem = field(default_factory=current)
    execute_command: ExecuteCommand = _ask_user_to_open

    def open(self, url: str) -> None:
        cmd, args = open_command(self.operating_system, url)
        self.execute_command(cmd, args)


def default_runtime() -> SystemRuntime:
    """Return a runtime for the current operating system."""
    return SystemRuntime()