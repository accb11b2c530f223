import argparse

import pytest

from castrec.cli import (
    Format,
    RelayTarget,
    build_parser,
    parse_args,
    parse_relay_target,
    parse_tty_size,
)


@pytest.mark.parametrize(
    "text, expected",
    [("100x50", (100, 50)), ("100x", (100, None)), ("x50", (None, 50))],
)
def test_parse_tty_size(text, expected):
    assert parse_tty_size(text) == expected


@pytest.mark.parametrize("bad", ["100", "x", "axb", "70000x1", "10x-1", ""])
def test_parse_tty_size_invalid(bad):
    with pytest.raises(argparse.ArgumentTypeError):
        parse_tty_size(bad)


def test_parse_relay_target_stream_id():
    assert parse_relay_target("  abc123  ") == RelayTarget(stream_id="abc123")
    assert parse_relay_target("") == RelayTarget(stream_id="")


@pytest.mark.parametrize("url", ["ws://example.com/ws", "wss://example.com:8443/x"])
def test_parse_relay_target_websocket(url):
    assert parse_relay_target(url) == RelayTarget(ws_producer_url=url)


def test_parse_relay_target_rejects_other_scheme():
    with pytest.raises(argparse.ArgumentTypeError, match=r"must be a WebSocket URL \(ws:// or wss://\)"):
        parse_relay_target("https://example.com")


def test_parse_relay_target_rejects_missing_host():
    with pytest.raises(argparse.ArgumentTypeError):
        parse_relay_target("ws://")


def test_rec_arguments():
    args = parse_args(["rec", "demo.cast", "--stdin", "-t", "Demo", "-i", "1.5", "--tty-size", "100x50"])
    assert args.command == "rec"
    assert args.path == "demo.cast"
    assert args.input is True
    assert args.title == "Demo"
    assert args.idle_time_limit == 1.5
    assert args.tty_size == (100, 50)
    assert args.append is False and args.overwrite is False
    assert args.format is None


def test_rec_append_conflicts_with_overwrite():
    with pytest.raises(SystemExit):
        parse_args(["rec", "demo.cast", "--append", "--overwrite"])


def test_global_options_before_and_after_subcommand():
    before = parse_args(["-q", "--server-url", "https://example.com", "upload", "a.cast"])
    after = parse_args(["upload", "a.cast", "-q", "--server-url", "https://example.com"])
    for args in (before, after):
        assert args.quiet is True
        assert args.server_url == "https://example.com"
        assert args.filename == "a.cast"


def test_global_defaults():
    args = parse_args(["auth"])
    assert args.command == "auth"
    assert args.quiet is False
    assert args.server_url is None


def test_stream_defaults_when_flags_bare():
    args = parse_args(["stream", "-s", "-r"])
    assert args.serve == ("127.0.0.1", 8080)
    assert args.relay == RelayTarget(stream_id="")


def test_stream_explicit_values():
    args = parse_args(["stream", "--serve", "[::1]:9000", "--relay", "wss://example.com/ws"])
    assert args.serve == ("::1", 9000)
    assert args.relay == RelayTarget(ws_producer_url="wss://example.com/ws")


def test_stream_bad_serve_address():
    with pytest.raises(SystemExit):
        parse_args(["stream", "--serve", "localhost:8080"])


def test_stream_omitted_flags():
    args = parse_args(["stream"])
    assert args.serve is None
    assert args.relay is None


def test_cat_requires_filename():
    with pytest.raises(SystemExit):
        parse_args(["cat"])
    assert parse_args(["cat", "a.cast", "b.cast"]).filename == ["a.cast", "b.cast"]


def test_convert_format():
    args = parse_args(["convert", "in.cast", "out.txt", "-f", "raw", "--overwrite"])
    assert args.format is Format.RAW
    assert args.overwrite is True
    with pytest.raises(SystemExit):
        parse_args(["convert", "in.cast", "out.txt", "-f", "bogus"])


def test_play_options():
    args = parse_args(["play", "demo.cast", "-s", "2", "-l", "-m"])
    assert args.speed == 2.0
    assert args.loop is True
    assert args.pause_on_markers is True
    assert args.idle_time_limit is None


def test_missing_command_exits():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])