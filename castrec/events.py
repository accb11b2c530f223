"""Recording model: header, events and event stream transformations."""

from __future__ import annotations

import dataclasses
import enum
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Union

from castrec.tty import Theme, TtySize


class AsciicastError(Exception):
    """A recording could not be read or is malformed."""


class EventType(enum.Enum):
    OUTPUT = "o"
    INPUT = "i"
    RESIZE = "r"
    MARKER = "m"
    OTHER = "other"


EventData = Union[str, TtySize]


@dataclass(frozen=True)
class Event:
    """A timed event; time is in microseconds, data is text or a TtySize for resizes."""

    time: int
    kind: EventType
    data: EventData
    code: str = ""

    def __post_init__(self) -> None:
        if self.kind is EventType.OTHER:
            if len(self.code) != 1:
                raise ValueError("an event of another type needs a one-character code")
        elif not self.code:
            object.__setattr__(self, "code", self.kind.value)

    @classmethod
    def output(cls, time: int, text: str) -> Event:
        return cls(time, EventType.OUTPUT, text)

    @classmethod
    def input(cls, time: int, text: str) -> Event:
        return cls(time, EventType.INPUT, text)

    @classmethod
    def resize(cls, time: int, size: tuple[int, int]) -> Event:
        return cls(time, EventType.RESIZE, TtySize(*size))

    @classmethod
    def marker(cls, time: int, label: str) -> Event:
        return cls(time, EventType.MARKER, label)


@dataclass
class Header:
    cols: int = 80
    rows: int = 24
    timestamp: int | None = None
    idle_time_limit: float | None = None
    command: str | None = None
    title: str | None = None
    env: dict[str, str] | None = None
    theme: Theme | None = None


@dataclass
class Asciicast:
    header: Header
    events: Iterator[Event]


def limit_idle_time(events: Iterable[Event], limit: float) -> Iterator[Event]:
    """Shorten every pause longer than limit seconds down to limit."""
    scaled = limit * 1_000_000
    limit_us = max(0, int(scaled)) if math.isfinite(scaled) else None
    prev_time = 0
    offset = 0

    for event in events:
        delay = event.time - prev_time
        if limit_us is not None and delay > limit_us:
            offset += delay - limit_us
        prev_time = event.time
        yield dataclasses.replace(event, time=event.time - offset)


def accelerate(events: Iterable[Event], speed: float) -> Iterator[Event]:
    """Divide every event time by speed."""
    for event in events:
        yield dataclasses.replace(event, time=max(0, int(event.time / speed)))