"""Reader and writer for version 2 recordings: a JSON header line followed by event lines."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from castrec.events import Asciicast, AsciicastError, Event, EventType, Header
from castrec.timeparse import parse_time
from castrec.tty import Color, Theme

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

_CODES = {
    "o": EventType.OUTPUT,
    "i": EventType.INPUT,
    "r": EventType.RESIZE,
    "m": EventType.MARKER,
}


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        raise AsciicastError(f"invalid JSON: {e}") from e


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _int_field(doc: dict[str, Any], name: str, bits: int, required: bool = True) -> int | None:
    if name not in doc or doc[name] is None:
        if required:
            raise AsciicastError(f"missing field `{name}`")
        return None
    value = doc[name]
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < (1 << bits):
        raise AsciicastError(f"invalid value for field `{name}`: {value!r}")
    return value


def _optional_float(doc: dict[str, Any], name: str) -> float | None:
    value = doc.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AsciicastError(f"invalid value for field `{name}`: expected a number")
    return float(value)


def _optional_str(doc: dict[str, Any], name: str) -> str | None:
    value = doc.get(name)
    if value is not None and not isinstance(value, str):
        raise AsciicastError(f"invalid value for field `{name}`: expected a string")
    return value


def _optional_env(doc: dict[str, Any]) -> dict[str, str] | None:
    value = doc.get("env")
    if value is None:
        return None
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise AsciicastError("invalid value for field `env`: expected a map of strings")
    return dict(value)


def _hex_byte(text: str) -> int | None:
    if len(text) != 2 or not set(text) <= _HEX_DIGITS:
        return None
    return int(text, 16)


def parse_hex_color(rgb: str) -> Color | None:
    """Parse a "#rrggbb" triplet, or return None if it is not one."""
    if len(rgb) != 7:
        return None
    channels = [_hex_byte(rgb[i:i + 2]) for i in (1, 3, 5)]
    if any(c is None for c in channels):
        return None
    return Color(*channels)


def _color_field(doc: dict[str, Any], name: str) -> Color:
    value = doc.get(name)
    if not isinstance(value, str):
        raise AsciicastError(f"missing or invalid theme color `{name}`")
    color = parse_hex_color(value)
    if color is None:
        raise AsciicastError("invalid hex triplet")
    return color


def _parse_theme(value: Any) -> Theme | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise AsciicastError("invalid value for field `theme`: expected an object")

    fg = _color_field(value, "fg")
    bg = _color_field(value, "bg")

    palette = value.get("palette")
    if not isinstance(palette, str):
        raise AsciicastError("missing or invalid theme palette")

    colors = [c for c in map(parse_hex_color, palette.split(":")) if c is not None]
    if len(colors) == 8:
        colors = colors * 2
    elif len(colors) != 16:
        raise AsciicastError("expected 8 or 16 hex triplets")

    return Theme(fg=fg, bg=bg, palette=colors)


@dataclass
class Parser:
    """Holds a parsed header and turns the remaining lines into events."""

    header: Header

    def parse(self, lines: Iterable[str]) -> Asciicast:
        return Asciicast(header=dataclasses.replace(self.header), events=_parse_lines(lines))


def _parse_lines(lines: Iterable[str]) -> Iterator[Event]:
    for line in lines:
        line = line.removesuffix("\n").removesuffix("\r")
        if line:
            yield parse_event(line)


def open_header(header_line: str) -> Parser:
    """Parse a version 2 header line."""
    doc = _load_json(header_line)
    if not isinstance(doc, dict):
        raise AsciicastError("expected a JSON object header")

    version = _int_field(doc, "version", 8)
    width = _int_field(doc, "width", 16)
    height = _int_field(doc, "height", 16)
    timestamp = _int_field(doc, "timestamp", 64, required=False)
    idle_time_limit = _optional_float(doc, "idle_time_limit")
    command = _optional_str(doc, "command")
    title = _optional_str(doc, "title")
    env = _optional_env(doc)
    theme = _parse_theme(doc.get("theme"))

    if version != 2:
        raise AsciicastError("unsupported asciicast version")

    return Parser(
        Header(
            cols=width,
            rows=height,
            timestamp=timestamp,
            idle_time_limit=idle_time_limit,
            command=command,
            title=title,
            env=env,
            theme=theme,
        )
    )


def _size_part(text: str, what: str) -> int:
    if not (text.isascii() and text.isdigit()) or int(text) > 0xFFFF:
        raise AsciicastError(f"invalid {what} value in resize event: {text!r}")
    return int(text)


def parse_event(line: str) -> Event:
    """Parse one event line of the form [time, code, data]."""
    doc = _load_json(line)
    if not isinstance(doc, list) or len(doc) != 3:
        raise AsciicastError("expected an event array of [time, code, data]")

    time_value, code, data = doc

    try:
        time = parse_time(time_value)
    except ValueError as e:
        raise AsciicastError(str(e)) from e

    if not isinstance(code, str):
        raise AsciicastError("event code must be a string")
    if not code:
        raise AsciicastError("missing event code")
    if not isinstance(data, str):
        raise AsciicastError("event data must be a string")

    kind = _CODES.get(code)
    if kind is None:
        return Event(time, EventType.OTHER, data, code[0])

    if kind is EventType.RESIZE:
        cols, sep, rows = data.partition("x")
        if not sep:
            raise AsciicastError("invalid size value in resize event")
        return Event.resize(time, (_size_part(cols, "cols"), _size_part(rows, "rows")))

    return Event(time, kind, data)


def format_time(time: int) -> str:
    """Format microseconds as seconds with six decimal places."""
    return f"{time // 1_000_000}.{time % 1_000_000:06d}"


def _compact_time(time: int) -> str:
    whole, _, frac = format_time(time).partition(".")
    return f"{whole}.{frac.rstrip('0') or '0'}"


def _hex(color: Color) -> str:
    return f"#{color.r:02x}{color.g:02x}{color.b:02x}"


class Encoder:
    """Serializes a header and events as version 2 lines, shifting times by an offset."""

    def __init__(self, time_offset: int = 0) -> None:
        self.time_offset = time_offset

    def header(self, header: Header) -> bytes:
        doc: dict[str, Any] = {"version": 2, "width": header.cols, "height": header.rows}

        if header.timestamp is not None:
            doc["timestamp"] = header.timestamp
        if header.idle_time_limit is not None:
            doc["idle_time_limit"] = float(header.idle_time_limit)
        if header.command is not None:
            doc["command"] = header.command
        if header.title is not None:
            doc["title"] = header.title
        if header.env:
            doc["env"] = header.env
        if header.theme is not None:
            doc["theme"] = {
                "fg": _hex(header.theme.fg),
                "bg": _hex(header.theme.bg),
                "palette": ":".join(_hex(c) for c in header.theme.palette),
            }

        line = json.dumps(doc, ensure_ascii=False, separators=(",", ":"))
        return (line + "\n").encode("utf-8")

    def event(self, event: Event) -> bytes:
        if event.kind is EventType.RESIZE:
            data = f"{event.data.cols}x{event.data.rows}"
        else:
            data = event.data

        time = _compact_time(event.time + self.time_offset)
        return f"[{time}, {_dumps(event.code)}, {_dumps(data)}]\n".encode("utf-8")