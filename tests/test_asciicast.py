import pytest

from castrec.asciicast import get_duration, open_from_path, open_lines
from castrec.events import AsciicastError, EventType
from castrec.tty import Color, TtySize

MINIMAL_JSON = '{"version": 1, "width": 100, "height": 50, "stdout": [[1.23, "hello"]]}\n'

FULL_JSON = (
    "{\n"
    '  "version": 1,\n'
    '  "width": 100,\n'
    '  "height": 50,\n'
    '  "command": "/bin/bash",\n'
    '  "title": "Demo",\n'
    '  "env": {"SHELL": "/bin/bash", "TERM": "xterm-256color"},\n'
    '  "stdout": [\n'
    '    [0.000001, "\\u017c"],\n'
    '    [1.0, "\\u00f3\\u0142\\u0107"],\n'
    '    [10.5, "\\r\\n"]\n'
    "  ]\n"
    "}\n"
)

MINIMAL_CAST = '{"version": 2, "width": 100, "height": 50}\n[1.23, "o", "hello"]\n'

FULL_CAST = (
    '{"version": 2, "width": 100, "height": 50, "timestamp": 1509091818, '
    '"theme": {"fg": "#000000", "bg": "#ffffff", "palette": '
    '"#241f31:#c01c28:#2ec27e:#f5c211:#1e78e4:#9841bb:#0ab9dc:#c0bfbc"}}\n'
    '[0.000001, "o", "ż"]\n'
    '[1.0, "o", "ółć"]\n'
    '[2.3, "i", "\\n"]\n'
    '[5.600001, "r", "80x40"]\n'
    '[10.5, "o", "\\r\\n"]\n'
    '[10.6, "m", ""]\n'
)


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_open_v1_minimal(tmp_path):
    cast = open_from_path(_write(tmp_path, "minimal.json", MINIMAL_JSON))
    events = list(cast.events)

    assert (cast.header.cols, cast.header.rows) == (100, 50)
    assert cast.header.theme is None
    assert events[0].time == 1230000
    assert events[0].kind is EventType.OUTPUT
    assert events[0].data == "hello"


def test_open_v1_full(tmp_path):
    cast = open_from_path(_write(tmp_path, "full.json", FULL_JSON))
    events = list(cast.events)

    assert (cast.header.cols, cast.header.rows) == (100, 50)
    assert (events[0].time, events[0].data) == (1, "ż")
    assert (events[1].time, events[1].data) == (1000000, "ółć")
    assert (events[2].time, events[2].data) == (10500000, "\r\n")
    assert all(e.kind is EventType.OUTPUT for e in events)


def test_open_v2_minimal(tmp_path):
    cast = open_from_path(_write(tmp_path, "minimal.cast", MINIMAL_CAST))
    events = list(cast.events)

    assert (cast.header.cols, cast.header.rows) == (100, 50)
    assert cast.header.theme is None
    assert events[0].time == 1230000
    assert events[0].kind is EventType.OUTPUT
    assert events[0].data == "hello"


def test_open_v2_full(tmp_path):
    cast = open_from_path(_write(tmp_path, "full.cast", FULL_CAST))
    events = [next(cast.events) for _ in range(5)]
    theme = cast.header.theme

    assert (cast.header.cols, cast.header.rows) == (100, 50)
    assert theme.fg == Color(0, 0, 0)
    assert theme.bg == Color(0xFF, 0xFF, 0xFF)
    assert theme.palette[0] == Color(0x24, 0x1F, 0x31)

    assert (events[0].time, events[0].kind, events[0].data) == (1, EventType.OUTPUT, "ż")
    assert (events[1].time, events[1].kind, events[1].data) == (1_000_000, EventType.OUTPUT, "ółć")
    assert (events[2].time, events[2].kind, events[2].data) == (2_300_000, EventType.INPUT, "\n")
    assert (events[3].time, events[3].kind, events[3].data) == (
        5_600_001,
        EventType.RESIZE,
        TtySize(80, 40),
    )
    assert (events[4].time, events[4].kind, events[4].data) == (
        10_500_000,
        EventType.OUTPUT,
        "\r\n",
    )


def test_open_lines_detects_v2():
    cast = open_lines(['{"version": 2, "width": 100, "height": 50}', '[1.23, "o", "hello"]'])

    assert [(e.time, e.data) for e in cast.events] == [(1230000, "hello")]


def test_open_lines_falls_back_to_v1():
    cast = open_lines(MINIMAL_JSON.splitlines(keepends=True))

    assert [(e.time, e.data) for e in cast.events] == [(1230000, "hello")]


def test_empty_input_raises():
    with pytest.raises(AsciicastError, match="empty file"):
        open_lines([])


def test_empty_file_raises(tmp_path):
    with pytest.raises(AsciicastError, match="can't open asciicast file"):
        open_from_path(_write(tmp_path, "empty.cast", ""))


def test_missing_file_raises(tmp_path):
    with pytest.raises(AsciicastError, match="can't open asciicast file"):
        open_from_path(tmp_path / "missing.cast")


def test_garbage_file_raises(tmp_path):
    with pytest.raises(AsciicastError):
        open_from_path(_write(tmp_path, "bad.cast", "not a recording\n"))


def test_get_duration(tmp_path):
    assert get_duration(_write(tmp_path, "minimal.cast", MINIMAL_CAST)) == 1230000
    assert get_duration(_write(tmp_path, "minimal.json", MINIMAL_JSON)) == 1230000


def test_get_duration_without_events(tmp_path):
    path = _write(tmp_path, "header.cast", '{"version": 2, "width": 100, "height": 50}\n')

    assert get_duration(path) == 0