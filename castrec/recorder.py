"""Turning a pseudo-terminal session into recording events, with pause and marker keys."""

from __future__ import annotations

import codecs
import contextlib
import enum
import queue
import threading
import time as _time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from castrec.events import Event
from castrec.notifier import Notifier, NullNotifier
from castrec.ptyexec import Handler
from castrec.tty import Theme, TtySize


class Output(ABC):
    """Destination of a recording: a header, then events, then a final flush."""

    @abstractmethod
    def header(self, time: float, tty_size: TtySize, theme: Theme | None) -> None:
        """Write the header; time is the session start in seconds since the epoch."""

    @abstractmethod
    def event(self, event: Event) -> None:
        """Write one event."""

    @abstractmethod
    def flush(self) -> None:
        """Finish writing."""


@dataclass
class KeyBindings:
    """Key sequences for recording control; None (or empty) disables a binding."""

    prefix: bytes | None = None
    pause: bytes | None = b"\x1c"
    add_marker: bytes | None = None


class _Kind(enum.Enum):
    OUTPUT = enum.auto()
    INPUT = enum.auto()
    RESIZE = enum.auto()
    MARKER = enum.auto()
    NOTIFICATION = enum.auto()


def _matches(key: bytes | None, data: bytes) -> bool:
    return bool(key) and key == data


class Recorder(Handler):
    """A session handler that passes events to an Output on a background thread."""

    def __init__(
        self,
        output: Output,
        record_input: bool = False,
        keys: KeyBindings | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._output = output
        self.record_input = record_input
        self.keys = keys if keys is not None else KeyBindings()
        self._notifier = notifier if notifier is not None else NullNotifier()
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._thread: threading.Thread | None = None
        self._time_offset = 0
        self._pause_time: int | None = None
        self._prefix_mode = False

    def __enter__(self) -> Recorder:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _elapsed_time(self, time: int) -> int:
        if self._pause_time is not None:
            return self._pause_time
        return time - self._time_offset

    def _notify(self, text: str) -> None:
        self._queue.put((_Kind.NOTIFICATION, 0, text))

    def _run(self, tty_size: TtySize) -> None:
        output = self._output
        last_size = tuple(tty_size)
        input_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        output_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        while (message := self._queue.get()) is not None:
            kind, time, payload = message
            if kind is _Kind.OUTPUT:
                text = output_decoder.decode(payload)
                if text:
                    with contextlib.suppress(OSError):
                        output.event(Event.output(time, text))
            elif kind is _Kind.INPUT:
                text = input_decoder.decode(payload)
                if text:
                    with contextlib.suppress(OSError):
                        output.event(Event.input(time, text))
            elif kind is _Kind.RESIZE:
                new_size = tuple(payload)
                if new_size != last_size:
                    with contextlib.suppress(OSError):
                        output.event(Event.resize(time, new_size))
                    last_size = new_size
            elif kind is _Kind.MARKER:
                with contextlib.suppress(OSError):
                    output.event(Event.marker(time, ""))
            else:
                with contextlib.suppress(OSError):
                    self._notifier.notify(payload)

        with contextlib.suppress(OSError):
            output.flush()

    def start(self, tty_size: TtySize, theme: Theme | None) -> None:
        if self._thread is not None:
            raise RuntimeError("recorder already started")
        with contextlib.suppress(OSError):
            self._output.header(_time.time(), tty_size, theme)
        self._thread = threading.Thread(target=self._run, args=(tty_size,), daemon=True)
        self._thread.start()

    def output(self, time: int, data: bytes) -> bool:
        if self._pause_time is None:
            self._queue.put((_Kind.OUTPUT, self._elapsed_time(time), bytes(data)))
        return True

    def input(self, time: int, data: bytes) -> bool:
        keys = self.keys

        if not self._prefix_mode and _matches(keys.prefix, data):
            self._prefix_mode = True
            return False

        if self._prefix_mode or not keys.prefix:
            self._prefix_mode = False

            if _matches(keys.pause, data):
                if self._pause_time is not None:
                    paused_at = self._pause_time
                    self._pause_time = None
                    self._time_offset += self._elapsed_time(time) - paused_at
                    self._notify("Resumed recording")
                else:
                    self._pause_time = self._elapsed_time(time)
                    self._notify("Paused recording")
                return False

            if _matches(keys.add_marker, data):
                self._queue.put((_Kind.MARKER, self._elapsed_time(time), None))
                self._notify("Marker added")
                return False

        if self.record_input and self._pause_time is None:
            self._queue.put((_Kind.INPUT, self._elapsed_time(time), bytes(data)))

        return True

    def resize(self, time: int, tty_size: TtySize) -> bool:
        self._queue.put((_Kind.RESIZE, self._elapsed_time(time), tty_size))
        return True

    def close(self) -> None:
        """Finish pending events, flush the output and stop the background thread."""
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join()
        self._thread = None