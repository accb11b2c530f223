import io
import json
from unittest import mock

import pytest

from castrec import commands
from castrec.config import Config
from castrec.events import AsciicastError


def make_config(tmp_path, server_url=None, **env):
    env = {"HOME": str(tmp_path / "home"), **env}
    return Config(server_url, env=env, system_path=tmp_path / "missing.toml")


def write_cast(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return str(path)


def test_build_exec_command_uses_given_command():
    assert commands.build_exec_command("echo hi") == ["/bin/sh", "-c", "echo hi"]


def test_build_exec_command_falls_back_to_shell(monkeypatch):
    monkeypatch.setenv("SHELL", "/bin/zsh")
    assert commands.build_exec_command(None) == ["/bin/sh", "-c", "/bin/zsh"]
    monkeypatch.delenv("SHELL")
    assert commands.build_exec_command(None) == ["/bin/sh", "-c", "/bin/sh"]


def test_build_exec_extra_env():
    env = commands.build_exec_extra_env([("FOO", "bar")])
    assert env == {commands.SESSION_ENV_VAR: "1", "FOO": "bar"}


def test_cat_concatenates_with_time_offset(tmp_path):
    first = write_cast(
        tmp_path / "a.cast",
        ['{"version": 2, "width": 100, "height": 50}', '[1.0, "o", "foo"]', '[2.5, "o", "bar"]'],
    )
    second = write_cast(
        tmp_path / "b.cast",
        ['{"version": 2, "width": 80, "height": 24}', '[0.5, "o", "baz"]'],
    )
    out = io.BytesIO()

    commands.cat([first, second], out)

    lines = [json.loads(line) for line in out.getvalue().decode().splitlines()]
    assert len(lines) == 4
    assert lines[0]["width"] == 100
    assert [line[2] for line in lines[1:]] == ["foo", "bar", "baz"]
    assert lines[1][0] == 1.0
    assert lines[2][0] == 2.5
    assert lines[3][0] - lines[2][0] == pytest.approx(0.5)


def test_custom_notifier_runs_command(tmp_path):
    target = tmp_path / "note.txt"
    config = make_config(
        tmp_path, CASTREC_NOTIFICATIONS_COMMAND=f'printf %s "$TEXT" > {target}'
    )
    commands.get_notifier(config).notify("Marker added")
    assert target.read_text() == "Marker added"


def test_disabled_notifications_do_nothing(tmp_path):
    target = tmp_path / "note.txt"
    config = make_config(
        tmp_path,
        CASTREC_NOTIFICATIONS_ENABLED="false",
        CASTREC_NOTIFICATIONS_COMMAND=f'printf %s "$TEXT" > {target}',
    )
    commands.get_notifier(config).notify("Marker added")
    assert not target.exists()


def test_auth_prints_connect_url(tmp_path, capsys):
    config = make_config(tmp_path, server_url="http://localhost:1234")
    url = commands.auth(config)
    printed = capsys.readouterr().out

    assert url == f"http://localhost:1234/connect/{config.get_install_id()}"
    assert url in printed
    assert "localhost" in printed


def test_upload_rejects_invalid_recording(tmp_path):
    config = make_config(tmp_path, server_url="http://localhost:1234")
    bad = tmp_path / "bad.cast"
    bad.write_text("not a recording\n")
    with pytest.raises(AsciicastError):
        commands.upload(str(bad), config)


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"url": "http://localhost/a/1"}, "http://localhost/a/1"),
        ({"url": "http://localhost/a/1", "message": "View it"}, "View it"),
    ],
)
def test_upload_prints_message_or_url(tmp_path, capsys, payload, expected):
    config = make_config(tmp_path, server_url="http://localhost:1234")
    cast = write_cast(tmp_path / "ok.cast", ['{"version": 2, "width": 80, "height": 24}'])
    response = mock.Mock(status_code=200)
    response.json.return_value = payload

    with mock.patch("requests.post", return_value=response) as post:
        result = commands.upload(cast, config)

    assert result == expected
    assert capsys.readouterr().out == expected + "\n"
    assert post.call_args.args[0] == "http://localhost:1234/api/asciicasts"