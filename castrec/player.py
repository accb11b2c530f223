"""Replaying a recording to the terminal, with pause, step and marker navigation keys."""

from __future__ import annotations

import math
import select
import sys
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

from castrec.events import Asciicast, Event, EventType, accelerate, limit_idle_time


@dataclass
class KeyBindings:
    """Key sequences for playback control; None (or empty) disables a binding."""

    quit: bytes | None = b"\x03"
    pause: bytes | None = b" "
    step: bytes | None = b"."
    next_marker: bytes | None = b"]"


def _matches(key: bytes | None, data: bytes) -> bool:
    return bool(key) and key == data


def open_recording(
    recording: Asciicast, speed: float, idle_time_limit: float | None
) -> Iterator[Event]:
    """The recording's events with idle time limited and speed applied.

    An explicit idle_time_limit takes precedence over the one in the header.
    """
    limit = idle_time_limit
    if limit is None:
        limit = recording.header.idle_time_limit
    if limit is None:
        limit = math.inf

    events = limit_idle_time(recording.events, limit)
    return accelerate(events, speed)


def _read_input(tty, timeout_us: int) -> bytes | None:
    fd = tty.fileno()
    readable, _, _ = select.select([fd], [], [], max(0, timeout_us) / 1_000_000)
    if fd not in readable:
        return None

    data = bytearray()
    while True:
        try:
            chunk = tty.read(1024)
        except OSError:
            break
        if not chunk:
            break
        data += chunk

    return bytes(data) or None


def play(
    recording: Asciicast,
    tty,
    speed: float = 1.0,
    idle_time_limit: float | None = None,
    pause_on_markers: bool = False,
    keys: KeyBindings | None = None,
    out: BinaryIO | None = None,
) -> bool:
    """Play a recording to out (stdout by default), reading control keys from tty.

    Returns True when playback reached the end, False when it was quit.
    """
    if keys is None:
        keys = KeyBindings()
    if out is None:
        out = sys.stdout.buffer

    events = open_recording(recording, speed, idle_time_limit)
    epoch = time.monotonic()
    pause_elapsed: int | None = None

    def elapsed() -> int:
        return int((time.monotonic() - epoch) * 1_000_000)

    def quit_playback() -> bool:
        out.write(b"\r\n")
        out.flush()
        return False

    next_event = next(events, None)

    while next_event is not None:
        if pause_elapsed is not None:
            key = _read_input(tty, 1_000_000)
            if key is None:
                continue

            if _matches(keys.quit, key):
                return quit_playback()

            if _matches(keys.pause, key):
                epoch = time.monotonic() - pause_elapsed / 1_000_000
                pause_elapsed = None
            elif _matches(keys.step, key):
                pause_elapsed = next_event.time
                if next_event.kind is EventType.OUTPUT:
                    out.write(next_event.data.encode("utf-8"))
                    out.flush()
                next_event = next(events, None)
            elif _matches(keys.next_marker, key):
                while next_event is not None:
                    event = next_event
                    next_event = next(events, None)
                    if event.kind is EventType.OUTPUT:
                        out.write(event.data.encode("utf-8"))
                    elif event.kind is EventType.MARKER:
                        pause_elapsed = event.time
                        break
                out.flush()
        else:
            while next_event is not None:
                delay = next_event.time - elapsed()

                if delay > 0:
                    out.flush()
                    key = _read_input(tty, delay)
                    if key is not None:
                        if _matches(keys.quit, key):
                            return quit_playback()
                        if _matches(keys.pause, key):
                            pause_elapsed = elapsed()
                            break
                        continue

                if next_event.kind is EventType.OUTPUT:
                    out.write(next_event.data.encode("utf-8"))
                elif next_event.kind is EventType.MARKER and pause_on_markers:
                    pause_elapsed = next_event.time
                    next_event = next(events, None)
                    break

                next_event = next(events, None)

    out.flush()
    return True