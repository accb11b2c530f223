import io
import json

import pytest

from castrec.asciicast import open_from_path
from castrec.config import Config
from castrec.encoders import AsciicastEncoder, RawEncoder
from castrec.events import Event, EventType
from castrec.recording import FileOutput, Metadata, RecordArgs, capture_env, record
from castrec.tty import TtySize


def make_config(tmp_path):
    env = {"HOME": str(tmp_path / "home"), "CASTREC_NOTIFICATIONS_ENABLED": "false"}
    return Config(env=env, system_path=tmp_path / "missing.toml")


def output_text(path):
    return "".join(
        e.data for e in open_from_path(path).events if e.kind is EventType.OUTPUT
    )


def test_capture_env_filters_names(monkeypatch):
    monkeypatch.setenv("TERM", "xterm256-color")
    monkeypatch.setenv("SHELL", "/usr/bin/fish")
    monkeypatch.setenv("OTHER_VAR", "x")
    captured = capture_env("TERM,SHELL")
    assert captured == {"TERM": "xterm256-color", "SHELL": "/usr/bin/fish"}


def test_file_output_asciicast_header_and_event():
    buf = io.BytesIO()
    metadata = Metadata(idle_time_limit=1.5, command="/bin/bash", title="Demo", env={})
    out = FileOutput(buf, AsciicastEncoder(False, 0), metadata)

    out.header(1704719152.7, TtySize(80, 24), None)
    out.event(Event.output(1000001, "hello\r\n"))
    out.flush()

    lines = [json.loads(line) for line in buf.getvalue().decode().splitlines()]
    assert lines[0]["timestamp"] == 1704719152
    assert lines[0]["width"] == 80
    assert lines[0]["height"] == 24
    assert lines[0]["title"] == "Demo"
    assert lines[0]["command"] == "/bin/bash"
    assert lines[1] == [1.000001, "o", "hello\r\n"]


def test_file_output_raw():
    buf = io.BytesIO()
    out = FileOutput(buf, RawEncoder(False), Metadata())
    out.header(0.0, TtySize(100, 50), None)
    out.event(Event.output(0, "he\x1b[1mllo\r\n"))
    out.event(Event.input(1, "."))
    assert buf.getvalue() == b"\x1b[8;50;100the\x1b[1mllo\r\n"


def test_record_headless_command(tmp_path):
    path = tmp_path / "demo.cast"
    args = RecordArgs(path=str(path), headless=True, command="printf hello", title="Demo")

    code = record(args, make_config(tmp_path))

    assert code == 0
    cast = open_from_path(path)
    assert (cast.header.cols, cast.header.rows) == (80, 24)
    assert cast.header.title == "Demo"
    assert cast.header.command == "printf hello"
    assert output_text(path) == "hello"


def test_record_tty_size_override(tmp_path):
    path = tmp_path / "sized.cast"
    args = RecordArgs(path=str(path), headless=True, command="true", tty_size=(100, None))
    record(args, make_config(tmp_path))
    header = open_from_path(path).header
    assert (header.cols, header.rows) == (100, 24)


def test_record_refuses_existing_file(tmp_path):
    path = tmp_path / "exists.cast"
    path.write_text("something\n")
    args = RecordArgs(path=str(path), headless=True, command="true")
    with pytest.raises(FileExistsError):
        record(args, make_config(tmp_path))
    assert path.read_text() == "something\n"


def test_record_into_directory_uses_filename(tmp_path):
    target_dir = tmp_path / "casts"
    target_dir.mkdir()
    args = RecordArgs(path=str(target_dir), headless=True, command="printf hi", filename="rec.cast")
    record(args, make_config(tmp_path))
    assert output_text(target_dir / "rec.cast") == "hi"


def test_record_txt_format_rejected(tmp_path):
    path = tmp_path / "out.txt"
    args = RecordArgs(path=str(path), headless=True, command="true")
    with pytest.raises(ValueError):
        record(args, make_config(tmp_path))
    assert not path.exists()


def test_record_append_continues_times(tmp_path):
    path = tmp_path / "appended.cast"
    config = make_config(tmp_path)
    record(RecordArgs(path=str(path), headless=True, command="printf hello"), config)
    first_times = [e.time for e in open_from_path(path).events]

    record(RecordArgs(path=str(path), headless=True, append=True, command="printf world"), config)

    events = list(open_from_path(path).events)
    times = [e.time for e in events]
    assert output_text(path) == "helloworld"
    assert times == sorted(times)
    assert times[len(first_times)] >= first_times[-1]
    lines = path.read_text().splitlines()
    assert sum(1 for line in lines if line.startswith("{")) == 1