"""Opening recordings of either format from lines or from a file."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from typing import IO

from castrec import v1, v2
from castrec.events import Asciicast, AsciicastError


def _strip_endings(lines: Iterable[str]) -> Iterator[str]:
    for line in lines:
        yield line.removesuffix("\n").removesuffix("\r")


def _file_lines(handle: IO[str]) -> Iterator[str]:
    with handle:
        try:
            yield from handle
        except UnicodeDecodeError as e:
            raise AsciicastError(f"invalid UTF-8 in recording: {e}") from e


def open_lines(lines: Iterable[str]) -> Asciicast:
    """Open a recording given as lines, detecting version 2 or falling back to version 1."""
    remaining = _strip_endings(lines)
    try:
        first_line = next(remaining)
    except StopIteration:
        raise AsciicastError("empty file") from None

    try:
        parser = v2.open_header(first_line)
    except AsciicastError:
        return v1.load(first_line + "".join(remaining))

    return parser.parse(remaining)


def open_from_path(path: str | os.PathLike[str]) -> Asciicast:
    """Open a recording file; events of version 2 files are read lazily."""
    try:
        handle = open(path, encoding="utf-8", newline="\n")
    except OSError as e:
        raise AsciicastError(f"can't open asciicast file: {e}") from e

    try:
        return open_lines(_file_lines(handle))
    except AsciicastError as e:
        handle.close()
        raise AsciicastError(f"can't open asciicast file: {e}") from e


def get_duration(path: str | os.PathLike[str]) -> int:
    """Return the time of the last event in microseconds, or 0 if there are none."""
    last = 0
    for event in open_from_path(path).events:
        last = event.time
    return last