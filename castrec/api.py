"""Client for the recording server's HTTP API."""

from __future__ import annotations

import os
import platform
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import requests

from castrec.config import Config


class ApiError(Exception):
    """The server rejected a request or could not be reached."""


@dataclass(frozen=True)
class UploadResponse:
    url: str
    message: str | None = None


@dataclass(frozen=True)
class StreamResponse:
    ws_producer_url: str
    url: str


def _with_path(url: str, path: str) -> str:
    return urlunsplit(urlsplit(url)._replace(path="/" + path))


def _package_version() -> str:
    try:
        return version("castrec")
    except PackageNotFoundError:
        return "0.0.0"


def build_user_agent() -> str:
    """The User-Agent header sent with every request."""
    return f"castrec/{_package_version()} target/{platform.machine()}-{sys.platform}"


def _request_options(install_id: str) -> dict[str, Any]:
    return {
        "auth": (os.environ.get("USER", ""), install_id),
        "headers": {"User-Agent": build_user_agent(), "Accept": "application/json"},
    }


def _raise_for_status(response: requests.Response) -> None:
    try:
        response.raise_for_status()
    except requests.HTTPError as e:
        raise ApiError(str(e)) from e


def _json_object(response: requests.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise ApiError(f"invalid response from the server: {e}") from e
    if not isinstance(data, dict):
        raise ApiError("invalid response from the server: expected a JSON object")
    return data


def _required_str(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    if not isinstance(value, str):
        raise ApiError(f"invalid response from the server: missing `{name}`")
    return value


def get_auth_url(config: Config) -> str:
    """The URL at which this installation is linked to a user account."""
    return _with_path(config.get_server_url(), f"connect/{config.get_install_id()}")


def upload_asciicast(path: str, config: Config) -> UploadResponse:
    """Upload a recording file to the configured server."""
    server_url = config.get_server_url()
    install_id = config.get_install_id()
    url = _with_path(server_url, "api/asciicasts")

    try:
        with open(path, "rb") as fh:
            response = requests.post(
                url,
                files={"asciicast": (os.path.basename(path), fh)},
                **_request_options(install_id),
            )
    except OSError as e:
        if isinstance(e, requests.RequestException):
            raise ApiError(f"upload failed: {e}") from e
        raise ApiError(f"cannot read {path}: {e}") from e

    if response.status_code == 413:
        raise ApiError("The size of the recording exceeds the server's configured limit")

    _raise_for_status(response)
    data = _json_object(response)
    message = data.get("message")
    return UploadResponse(
        url=_required_str(data, "url"),
        message=message if isinstance(message, str) else None,
    )


def _not_found_reason(response: requests.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get("reason"), str):
        return data["reason"]
    return None


def create_user_stream(stream_id: str, config: Config) -> StreamResponse:
    """Create a new stream (empty id) or look up an existing one, returning its endpoints."""
    server_url = config.get_server_url()
    hostname = urlsplit(server_url).hostname
    install_id = config.get_install_id()

    if stream_id:
        url = _with_path(server_url, f"api/user/streams/{stream_id}")
        send = requests.get
    else:
        url = _with_path(server_url, "api/streams")
        send = requests.post

    try:
        response = send(url, **_request_options(install_id))
    except requests.RequestException as e:
        raise ApiError(f"cannot obtain stream producer endpoint: {e}") from e

    if response.status_code == 401:
        raise ApiError(
            f"this CLI hasn't been authenticated with {hostname} - run `castrec auth` first"
        )

    if response.status_code == 404:
        reason = _not_found_reason(response)
        raise ApiError(reason if reason is not None else f"{hostname} doesn't support streaming")

    _raise_for_status(response)
    data = _json_object(response)
    return StreamResponse(
        ws_producer_url=_required_str(data, "ws_producer_url"),
        url=_required_str(data, "url"),
    )