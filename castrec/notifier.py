"""Desktop and terminal-multiplexer notifications."""

from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from collections.abc import Mapping, Sequence

APP_NAME = "castrec"


def _run(argv: Sequence[str], env: Mapping[str, str] | None = None) -> None:
    subprocess.run(
        list(argv),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        env=None if env is None else dict(env),
        check=False,
    )


class Notifier(ABC):
    @abstractmethod
    def notify(self, message: str) -> None:
        """Show a notification with the given message."""


@dataclass
class TmuxNotifier(Notifier):
    path: str

    def notify(self, message: str) -> None:
        _run([self.path, "display-message", f"{APP_NAME}: {message}"])


@dataclass
class LibNotifyNotifier(Notifier):
    path: str

    def notify(self, message: str) -> None:
        _run([self.path, APP_NAME, message])


@dataclass
class AppleScriptNotifier(Notifier):
    path: str

    def notify(self, message: str) -> None:
        text = message.replace('"', '\\"')
        script = f'display notification "{text}" with title "{APP_NAME}"'
        _run([self.path, "-e", script])


@dataclass
class CustomNotifier(Notifier):
    """Runs a shell command with the message in the TEXT environment variable."""

    command: str

    def notify(self, message: str) -> None:
        _run(["/bin/sh", "-c", self.command], env={**os.environ, "TEXT": message})


class NullNotifier(Notifier):
    def notify(self, message: str) -> None:
        return None


def get_notifier(custom_command: str | None) -> Notifier:
    """Pick a custom command, or the first notification tool available."""
    if custom_command is not None:
        return CustomNotifier(custom_command)

    if "TMUX" in os.environ:
        tmux = shutil.which("tmux")
        if tmux:
            return TmuxNotifier(tmux)

    notify_send = shutil.which("notify-send")
    if notify_send:
        return LibNotifyNotifier(notify_send)

    osascript = shutil.which("osascript")
    if osascript:
        return AppleScriptNotifier(osascript)

    return NullNotifier()