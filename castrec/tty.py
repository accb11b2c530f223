"""Terminal access: the controlling terminal, a null terminal and a size override."""

from __future__ import annotations

import fcntl
import os
import re
import select
import struct
import termios
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

COLORS_QUERY = (
    b"\x1b]10;?\x07\x1b]11;?\x07"
    + b"".join(b"\x1b]4;%d;?\x07" % i for i in range(16))
)

_EXPECTED_COLOR_REPLIES = 18


@dataclass(frozen=True)
class Color:
    """An 8-bit-per-channel RGB color."""

    r: int
    g: int
    b: int


class TtySize(NamedTuple):
    cols: int
    rows: int


@dataclass
class Theme:
    fg: Color
    bg: Color
    palette: list[Color] = field(default_factory=list)


class Tty(Protocol):
    def get_size(self) -> TtySize: ...

    def get_theme(self) -> Theme | None: ...

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> int: ...

    def fileno(self) -> int: ...

    def close(self) -> None: ...


def set_non_blocking(fd: int) -> None:
    """Put a file descriptor into non-blocking mode."""
    os.set_blocking(fd, False)


def _parse_hex_byte(text: str) -> int | None:
    if len(text) != 2 or not set(text) <= _HEX_DIGITS:
        return None
    return int(text, 16)


def parse_color(rgb: str) -> Color | None:
    """Parse the "rr../gg../bb.." body of an xterm color reply."""
    components = rgb.split("/")
    if len(components) < 3:
        return None
    channels = []
    for component in components[:3]:
        if len(component) < 2:
            return None
        value = _parse_hex_byte(component[:2])
        if value is None:
            return None
        channels.append(value)
    return Color(*channels)


def _make_raw(attrs: list) -> list:
    attrs = list(attrs)
    attrs[0] &= ~(
        termios.IGNBRK
        | termios.BRKINT
        | termios.PARMRK
        | termios.ISTRIP
        | termios.INLCR
        | termios.IGNCR
        | termios.ICRNL
        | termios.IXON
    )
    attrs[1] &= ~termios.OPOST
    attrs[2] &= ~(termios.CSIZE | termios.PARENB)
    attrs[2] |= termios.CS8
    attrs[3] &= ~(
        termios.ECHO | termios.ECHONL | termios.ICANON | termios.ISIG | termios.IEXTEN
    )
    cc = list(attrs[6])
    cc[termios.VMIN] = 1
    cc[termios.VTIME] = 0
    attrs[6] = cc
    return attrs


class DevTty:
    """The controlling terminal, switched to raw, non-blocking mode."""

    def __init__(self) -> None:
        self._fd: int | None = os.open("/dev/tty", os.O_RDWR)
        try:
            self._saved_attrs = termios.tcgetattr(self._fd)
            termios.tcsetattr(self._fd, termios.TCSANOW, _make_raw(self._saved_attrs))
            set_non_blocking(self._fd)
        except BaseException:
            os.close(self._fd)
            self._fd = None
            raise

    def __enter__(self) -> DevTty:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_fd(self) -> int:
        if self._fd is None:
            raise ValueError("terminal is closed")
        return self._fd

    def get_size(self) -> TtySize:
        buf = struct.pack("HHHH", 24, 80, 0, 0)
        try:
            buf = fcntl.ioctl(self._require_fd(), termios.TIOCGWINSZ, buf)
        except OSError:
            pass
        rows, cols, _, _ = struct.unpack("HHHH", buf)
        return TtySize(cols, rows)

    def get_theme(self) -> Theme | None:
        fd = self._require_fd()
        query = COLORS_QUERY
        response = bytearray()
        reply_count = 0

        while True:
            writers = [fd] if query else []
            try:
                readable, writable, _ = select.select([fd], writers, [], 0.1)
            except InterruptedError:
                continue
            except OSError:
                return None

            if not readable and not writable:
                return None

            if readable:
                try:
                    chunk = os.read(fd, 1024)
                except OSError:
                    return None
                response += chunk
                reply_count += chunk.count(0x07) + chunk.count(ord("\\"))
                if reply_count == _EXPECTED_COLOR_REPLIES:
                    break

            if writable:
                try:
                    written = os.write(fd, query)
                except OSError:
                    return None
                query = query[written:]

        text = response.decode("utf-8", errors="replace")
        colors = []
        for match in re.finditer("rgb:", text):
            color = parse_color(text[match.end():])
            if color is None:
                return None
            colors.append(color)
            if len(colors) == _EXPECTED_COLOR_REPLIES:
                break

        if len(colors) < _EXPECTED_COLOR_REPLIES:
            return None

        return Theme(fg=colors[0], bg=colors[1], palette=colors[2:])

    def read(self, size: int) -> bytes:
        return os.read(self._require_fd(), size)

    def write(self, data: bytes) -> int:
        return os.write(self._require_fd(), data)

    def fileno(self) -> int:
        return self._require_fd()

    def close(self) -> None:
        if self._fd is None:
            return
        try:
            termios.tcsetattr(self._fd, termios.TCSAFLUSH, self._saved_attrs)
        except termios.error:
            pass
        os.close(self._fd)
        self._fd = None


class NullTty:
    """A terminal stand-in of fixed size that discards output and has no input."""

    def __init__(self) -> None:
        self._rx, self._tx = os.pipe()
        self._closed = False

    def __enter__(self) -> NullTty:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_size(self) -> TtySize:
        return TtySize(80, 24)

    def get_theme(self) -> Theme | None:
        return None

    def read(self, size: int) -> bytes:
        raise RuntimeError("read attempt from NullTty")

    def write(self, data: bytes) -> int:
        return len(data)

    def fileno(self) -> int:
        return self._tx

    def close(self) -> None:
        if not self._closed:
            os.close(self._tx)
            os.close(self._rx)
            self._closed = True


class FixedSizeTty:
    """Wraps another terminal, overriding its reported columns and/or rows."""

    def __init__(self, inner: Tty, cols: int | None = None, rows: int | None = None) -> None:
        self.inner = inner
        self.cols = cols
        self.rows = rows

    def __enter__(self) -> FixedSizeTty:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_size(self) -> TtySize:
        size = self.inner.get_size()
        return TtySize(
            self.cols if self.cols is not None else size.cols,
            self.rows if self.rows is not None else size.rows,
        )

    def get_theme(self) -> Theme | None:
        return self.inner.get_theme()

    def read(self, size: int) -> bytes:
        return self.inner.read(size)

    def write(self, data: bytes) -> int:
        return self.inner.write(data)

    def fileno(self) -> int:
        return self.inner.fileno()

    def close(self) -> None:
        self.inner.close()