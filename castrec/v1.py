"""Reader for version 1 recordings, which are a single JSON document."""

from __future__ import annotations

import json
from typing import Any

from castrec.events import Asciicast, AsciicastError, Event, Header
from castrec.timeparse import parse_time


def _int_field(doc: dict[str, Any], name: str, bits: int) -> int:
    if name not in doc:
        raise AsciicastError(f"missing field `{name}`")
    value = doc[name]
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < (1 << bits):
        raise AsciicastError(f"invalid value for field `{name}`: {value!r}")
    return value


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


def _output_event(item: Any) -> Event:
    if isinstance(item, list):
        if len(item) != 2:
            raise AsciicastError("expected an output event of [time, data]")
        time_value, data = item
    elif isinstance(item, dict):
        if "time" not in item or "data" not in item:
            raise AsciicastError("output event is missing `time` or `data`")
        time_value, data = item["time"], item["data"]
    else:
        raise AsciicastError("expected an output event of [time, data]")

    if not isinstance(data, str):
        raise AsciicastError("output event data must be a string")

    try:
        time = parse_time(time_value)
    except ValueError as e:
        raise AsciicastError(str(e)) from e

    return Event.output(time, data)


def load(text: str) -> Asciicast:
    """Parse a whole version 1 recording."""
    try:
        doc = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise AsciicastError(f"invalid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise AsciicastError("expected a JSON object")

    version = _int_field(doc, "version", 8)
    width = _int_field(doc, "width", 16)
    height = _int_field(doc, "height", 16)
    command = _optional_str(doc, "command")
    title = _optional_str(doc, "title")
    env = _optional_env(doc)

    if "stdout" not in doc:
        raise AsciicastError("missing field `stdout`")
    stdout = doc["stdout"]
    if not isinstance(stdout, list):
        raise AsciicastError("invalid value for field `stdout`: expected an array")

    events = [_output_event(item) for item in stdout]

    if version != 1:
        raise AsciicastError("unsupported asciicast version")

    header = Header(
        cols=width,
        rows=height,
        timestamp=None,
        idle_time_limit=None,
        command=command,
        title=title,
        env=env,
        theme=None,
    )

    return Asciicast(header=header, events=iter(events))