"""Wire encoding of live stream events and the relay connection's retry and close rules.

A live stream is a sequence of binary WebSocket messages: a fixed magic header
followed by one message per event. All integers are little-endian; times are
seconds since the session started, as 32-bit floats.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

HEADER = b"ALiS\x01"

PING_INTERVAL = 15
PING_TIMEOUT = 10
SEND_TIMEOUT = 10
MAX_RECONNECT_DELAY = 5000

_SECOND = 1_000_000.0

_CLOSE_NORMAL = 1000
_LIBRARY_CODES = range(4000, 5000)
_CLEAN_LIBRARY_LIMIT = 4100


@dataclass(frozen=True)
class InitEvent:
    """Sent first to each viewer: the terminal size, theme and a dump of the screen."""

    time: int
    size: tuple[int, int]
    theme: Any
    init: str


@dataclass(frozen=True)
class OutputEvent:
    """Text written to the terminal."""

    time: int
    text: str


@dataclass(frozen=True)
class ResizeEvent:
    """The terminal changed size."""

    time: int
    size: tuple[int, int]


def _time_bytes(time: int) -> bytes:
    return struct.pack("<f", time / _SECOND)


def _size_bytes(size: tuple[int, int]) -> bytes:
    cols, rows = size
    return struct.pack("<HH", cols, rows)


def _text_bytes(text: str) -> bytes:
    data = text.encode("utf-8")
    return struct.pack("<I", len(data)) + data


def _theme_bytes(theme: Any) -> bytes:
    if theme is None:
        return b"\x00"
    colors = [theme.fg, theme.bg, *theme.palette]
    return b"\x01" + bytes(channel for color in colors for channel in (color.r, color.g, color.b))


def encode_event(event: InitEvent | OutputEvent | ResizeEvent) -> bytes:
    """Encode one stream event as the payload of a binary message."""
    match event:
        case InitEvent(time=time, size=size, theme=theme, init=init):
            return (
                b"\x01"
                + _size_bytes(size)
                + _time_bytes(time)
                + _theme_bytes(theme)
                + _text_bytes(init)
            )
        case OutputEvent(time=time, text=text):
            return b"o" + _time_bytes(time) + _text_bytes(text)
        case ResizeEvent(time=time, size=size):
            return b"r" + _time_bytes(time) + _size_bytes(size)
    raise TypeError(f"not a stream event: {event!r}")


def exponential_delay(attempt: int) -> int:
    """Milliseconds to wait before reconnect attempt number attempt (counting from 0)."""
    return min(2**attempt * 500, MAX_RECONNECT_DELAY)


def is_clean_close(code: int | None) -> bool:
    """Whether a server close with this code (None for no close frame) ends the stream cleanly."""
    if code is None or code == _CLOSE_NORMAL:
        return True
    return code in _LIBRARY_CODES and code < _CLEAN_LIBRARY_LIMIT