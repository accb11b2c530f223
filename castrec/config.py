"""Configuration from TOML files and environment variables, plus the per-install identity."""

from __future__ import annotations

import os
import tomllib
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

ENV_PREFIX = "CASTREC_"
SYSTEM_CONFIG_PATH = Path("/etc/castrec/config.toml")
INSTALL_ID_FILENAME = "install-id"
DEFAULT_REC_FILENAME = "%Y-%m-%d-%H-%M-%S-{pid}.cast"

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


class ConfigError(Exception):
    """The configuration is missing, malformed or cannot be saved."""


@dataclass
class RecSettings:
    command: str | None = None
    filename: str = DEFAULT_REC_FILENAME
    input: bool = False
    env: str | None = None
    idle_time_limit: float | None = None
    prefix_key: str | None = None
    pause_key: str | None = None
    add_marker_key: str | None = None


@dataclass
class PlaySettings:
    speed: float | None = None
    idle_time_limit: float | None = None
    pause_key: str | None = None
    step_key: str | None = None
    next_marker_key: str | None = None


@dataclass
class StreamSettings:
    command: str | None = None
    input: bool = False
    env: str | None = None
    prefix_key: str | None = None
    pause_key: str | None = None


@dataclass
class NotificationSettings:
    enabled: bool = True
    command: str | None = None


_SCHEMA: dict[tuple[str, ...], dict[str, type]] = {
    ("server",): {"url": str},
    ("cmd", "rec"): {
        "command": str,
        "filename": str,
        "input": bool,
        "env": str,
        "idle_time_limit": float,
        "prefix_key": str,
        "pause_key": str,
        "add_marker_key": str,
    },
    ("cmd", "play"): {
        "speed": float,
        "idle_time_limit": float,
        "pause_key": str,
        "step_key": str,
        "next_marker_key": str,
    },
    ("cmd", "stream"): {
        "command": str,
        "input": bool,
        "env": str,
        "prefix_key": str,
        "pause_key": str,
    },
    ("notifications",): {"enabled": bool, "command": str},
}


def _env_name(path: tuple[str, ...], name: str) -> str:
    return ENV_PREFIX + "_".join((*path, name)).upper()


def _set_in(tree: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = tree
    for part in path[:-1]:
        node = node.setdefault(part, {})
    node[path[-1]] = value


def _merge(dst: dict[str, Any], src: Mapping[str, Any]) -> None:
    for key, value in src.items():
        if isinstance(value, Mapping) and isinstance(dst.get(key), dict):
            _merge(dst[key], value)
        elif isinstance(value, Mapping):
            dst[key] = {}
            _merge(dst[key], value)
        else:
            dst[key] = value


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e


def _env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    tree: dict[str, Any] = {}
    for path, fields in _SCHEMA.items():
        for name in fields:
            var = _env_name(path, name)
            if var in env:
                _set_in(tree, (*path, name), env[var])

    server_var = _env_name(("server",), "url")
    api_var = ENV_PREFIX + "API_URL"
    if server_var not in env and api_var in env:
        _set_in(tree, ("server", "url"), env[api_var])

    return tree


def _coerce(value: Any, kind: type, dotted: str) -> Any:
    if kind is str:
        if isinstance(value, str):
            return value
    elif kind is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
    elif kind is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
    raise ConfigError(f"invalid value for {dotted}: {value!r}")


def _section(tree: Mapping[str, Any], path: tuple[str, ...]) -> Mapping[str, Any]:
    node: Any = tree
    for depth, part in enumerate(path):
        node = node.get(part, {})
        if not isinstance(node, Mapping):
            raise ConfigError(f"invalid value for {'.'.join(path[:depth + 1])}: expected a table")
    return node


def _load_values(tree: Mapping[str, Any], path: tuple[str, ...]) -> dict[str, Any]:
    raw = _section(tree, path)
    return {
        name: _coerce(raw[name], kind, ".".join((*path, name)))
        for name, kind in _SCHEMA[path].items()
        if name in raw
    }


def _config_home(env: Mapping[str, str]) -> Path:
    if ENV_PREFIX + "CONFIG_HOME" in env:
        return Path(env[ENV_PREFIX + "CONFIG_HOME"])
    if "XDG_CONFIG_HOME" in env:
        return Path(env["XDG_CONFIG_HOME"]) / "castrec"
    if "HOME" in env:
        return Path(env["HOME"]) / ".config" / "castrec"
    raise ConfigError(f"need $HOME or $XDG_CONFIG_HOME or ${ENV_PREFIX}CONFIG_HOME")


def config_home() -> Path:
    """Directory holding the user's configuration files."""
    return _config_home(os.environ)


def parse_server_url(s: str) -> str:
    """Validate a server URL, requiring a scheme and a host."""
    try:
        parts = urlsplit(s.strip())
    except ValueError as e:
        raise ConfigError(f"invalid server URL: {e}") from e
    if not parts.scheme:
        raise ConfigError(f"invalid server URL: {s!r}")
    if not parts.hostname:
        raise ConfigError("server URL is missing a host")
    return urlunsplit(parts._replace(path=parts.path or "/"))


def parse_key(key: str) -> bytes | None:
    """Parse a key definition such as "x", "^x" or "C-x" into the bytes the key sends."""
    match len(key):
        case 0:
            return None
        case 1:
            return key.encode("utf-8")
        case 2 if key[0] == "^" and _is_ascii_alpha(key[1]):
            return bytes([ord(key[1].upper()) - 0x40])
        case 3 if key[0] in "cC" and key[1] in "+-" and _is_ascii_alpha(key[2]):
            return bytes([ord(key[2].upper()) - 0x40])
    raise ConfigError(f"invalid key definition '{key}'")


def _is_ascii_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _ask_for_server_url() -> str:
    print("No server configured for this CLI.")
    try:
        url = input("Enter the server URL to use by default: ")
    except EOFError as e:
        raise ConfigError("no server URL given") from e
    print()
    return url


class Config:
    """Settings merged from the system file, user files, environment and an explicit URL."""

    def __init__(
        self,
        server_url: str | None = None,
        *,
        env: Mapping[str, str] | None = None,
        system_path: Path = SYSTEM_CONFIG_PATH,
    ) -> None:
        self._env = dict(os.environ if env is None else env)
        self.home = _config_home(self._env)

        tree: dict[str, Any] = {}
        for path in (Path(system_path), self.home / "defaults.toml", self.home / "config.toml"):
            _merge(tree, _read_toml(path))
        _merge(tree, _env_overrides(self._env))
        if server_url is not None:
            _set_in(tree, ("server", "url"), server_url)

        self.server_url: str | None = _load_values(tree, ("server",)).get("url")
        self.rec = RecSettings(**_load_values(tree, ("cmd", "rec")))
        self.play = PlaySettings(**_load_values(tree, ("cmd", "play")))
        self.stream = StreamSettings(**_load_values(tree, ("cmd", "stream")))
        self.notifications = NotificationSettings(**_load_values(tree, ("notifications",)))

    def get_server_url(self) -> str:
        """The configured server URL, asking for one and saving it if none is set."""
        if self.server_url is not None:
            return parse_server_url(self.server_url)

        url = parse_server_url(_ask_for_server_url())
        path = self.home / "defaults.toml"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(f'[server]\nurl = "{url}"\n', encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot save {path}: {e}") from e
        self.server_url = url
        return url

    def get_install_id(self) -> str:
        """This installation's identifier, created and saved on first use."""
        path = self.home / INSTALL_ID_FILENAME
        try:
            return path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise ConfigError(f"cannot read {path}: {e}") from e

        install_id = str(uuid.uuid4())
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(install_id, encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot save {path}: {e}") from e
        return install_id

    def key(self, section: str, name: str) -> bytes | None:
        """A configured key binding: None when unset, b"" when set empty (disabled)."""
        settings = {"rec": self.rec, "play": self.play, "stream": self.stream}.get(section)
        if settings is None or not name.endswith("_key") or not hasattr(settings, name):
            raise ValueError(f"unknown key setting {section}.{name}")
        raw = getattr(settings, name)
        if raw is None:
            return None
        parsed = parse_key(raw)
        return b"" if parsed is None else parsed