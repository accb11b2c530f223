"""Encoders that turn a recording into asciicast or raw terminal output bytes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO

from castrec import v2
from castrec.events import Asciicast, Event, EventType, Header


class Encoder(ABC):
    @abstractmethod
    def header(self, header: Header) -> bytes:
        """Bytes to write for the recording header."""

    @abstractmethod
    def event(self, event: Event) -> bytes:
        """Bytes to write for one event."""

    @abstractmethod
    def flush(self) -> bytes:
        """Bytes to write once all events are done."""

    def encode_to_file(self, cast: Asciicast, file: BinaryIO) -> None:
        """Write a whole recording to a binary file."""
        file.write(self.header(cast.header))
        for event in cast.events:
            file.write(self.event(event))
        file.write(self.flush())


class AsciicastEncoder(Encoder):
    """Version 2 asciicast; in append mode the header is left out."""

    def __init__(self, append: bool = False, time_offset: int = 0) -> None:
        self._inner = v2.Encoder(time_offset)
        self.append = append

    def header(self, header: Header) -> bytes:
        if self.append:
            return b""
        return self._inner.header(header)

    def event(self, event: Event) -> bytes:
        return self._inner.event(event)

    def flush(self) -> bytes:
        return b""


class RawEncoder(Encoder):
    """Raw terminal output, preceded by a resize escape sequence unless appending."""

    def __init__(self, append: bool = False) -> None:
        self.append = append

    def header(self, header: Header) -> bytes:
        if self.append:
            return b""
        return f"\x1b[8;{header.rows};{header.cols}t".encode("utf-8")

    def event(self, event: Event) -> bytes:
        if event.kind is EventType.OUTPUT:
            return event.data.encode("utf-8")
        return b""

    def flush(self) -> bytes:
        return b""