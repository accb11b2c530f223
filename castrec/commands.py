"""The cat, upload, auth and play commands and helpers shared by session commands."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Sequence
from typing import BinaryIO
from urllib.parse import urlsplit

from castrec import api, logger, player, v2
from castrec.asciicast import open_from_path
from castrec.config import Config
from castrec.notifier import Notifier, NullNotifier
from castrec.notifier import get_notifier as _select_notifier
from castrec.tty import DevTty

SESSION_ENV_VAR = "CASTREC_REC"


def get_notifier(config: Config) -> Notifier:
    """The notifier configured for desktop notifications, or a silent one if disabled."""
    if config.notifications.enabled:
        return _select_notifier(config.notifications.command)
    return NullNotifier()


def build_exec_command(command: str | None) -> list[str]:
    """The argv that runs command (or $SHELL, or /bin/sh) through /bin/sh -c."""
    if command is None:
        command = os.environ.get("SHELL")
    if command is None:
        command = "/bin/sh"
    return ["/bin/sh", "-c", command]


def build_exec_extra_env(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Extra environment for the session's command, marking it as recorded."""
    env = {SESSION_ENV_VAR: "1"}
    env.update(pairs)
    return env


def cat(filenames: Sequence[str], out: BinaryIO | None = None) -> None:
    """Write the recordings one after another as a single recording."""
    if out is None:
        out = sys.stdout.buffer

    header_encoder = v2.Encoder(0)
    time_offset = 0
    first = True

    for path in filenames:
        recording = open_from_path(path)
        if first:
            out.write(header_encoder.header(recording.header))
            first = False

        encoder = v2.Encoder(time_offset)
        last_time = time_offset
        for event in recording.events:
            last_time = time_offset + event.time
            out.write(encoder.event(event))

        time_offset = last_time

    out.flush()


def upload(filename: str, config: Config) -> str:
    """Upload a recording and print (and return) the server's message or URL."""
    open_from_path(filename)
    response = api.upload_asciicast(filename, config)
    text = response.message if response.message is not None else response.url
    print(text)
    return text


def auth(config: Config) -> str:
    """Print the URL that links this installation to a server account, and return it."""
    server_url = config.get_server_url()
    hostname = urlsplit(server_url).hostname
    auth_url = api.get_auth_url(config)

    print(
        "Open the following URL in a web browser to authenticate this CLI "
        f"with your {hostname} user account:\n"
    )
    print(f"{auth_url}\n")
    print(
        "This action will associate all recordings uploaded from this machine "
        "(past and future ones) with your account, allowing you to manage them "
        f"(change the title/theme, delete) at {hostname}."
    )
    return auth_url


def _override(current: bytes | None, configured: bytes | None) -> bytes | None:
    if configured is None:
        return current
    return configured or None


def _play_key_bindings(config: Config) -> player.KeyBindings:
    keys = player.KeyBindings()
    keys.pause = _override(keys.pause, config.key("play", "pause_key"))
    keys.step = _override(keys.step, config.key("play", "step_key"))
    keys.next_marker = _override(keys.next_marker, config.key("play", "next_marker_key"))
    return keys


def play(
    filename: str,
    config: Config,
    speed: float | None = None,
    idle_time_limit: float | None = None,
    loop: bool = False,
    pause_on_markers: bool = False,
) -> bool:
    """Replay a recording on the terminal; returns False if playback was interrupted."""
    if speed is None:
        speed = config.play.speed
    if speed is None:
        speed = 1.0
    if idle_time_limit is None:
        idle_time_limit = config.play.idle_time_limit

    logger.info(f"Replaying session from {filename}")

    while True:
        recording = open_from_path(filename)
        keys = _play_key_bindings(config)
        with DevTty() as tty:
            ended = player.play(
                recording, tty, speed, idle_time_limit, pause_on_markers, keys
            )
        if not loop:
            break

    logger.info("Playback ended" if ended else "Playback interrupted")
    return ended