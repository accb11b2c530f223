"""Command-line argument parsing."""

from __future__ import annotations

import argparse
import enum
import ipaddress
import re
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import urlsplit

DEFAULT_LISTEN_ADDR = "127.0.0.1:8080"

_U16 = re.compile(r"\+?[0-9]+")


class Format(str, enum.Enum):
    ASCIICAST = "asciicast"
    RAW = "raw"
    TXT = "txt"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RelayTarget:
    """Either a server stream id (possibly empty for a new stream) or a WebSocket URL."""

    stream_id: str | None = None
    ws_producer_url: str | None = None


def _parse_u16(text: str) -> int:
    if not text:
        raise argparse.ArgumentTypeError("cannot parse integer from empty string")
    if not _U16.fullmatch(text):
        raise argparse.ArgumentTypeError("invalid digit found in string")
    value = int(text)
    if value > 0xFFFF:
        raise argparse.ArgumentTypeError("number too large to fit in target type")
    return value


def parse_tty_size(s: str) -> tuple[int | None, int | None]:
    """Parse "COLSxROWS", "COLSx" or "xROWS"."""
    cols, sep, rows = s.partition("x")
    if not sep:
        raise argparse.ArgumentTypeError(s)
    if rows == "":
        return (_parse_u16(cols), None)
    if cols == "":
        return (None, _parse_u16(rows))
    return (_parse_u16(cols), _parse_u16(rows))


def parse_relay_target(s: str) -> RelayTarget:
    """A WebSocket URL, or anything without a scheme taken as a stream id."""
    s = s.strip()
    try:
        parts = urlsplit(s)
        hostname = parts.hostname
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e

    if not parts.scheme:
        return RelayTarget(stream_id=s)
    if parts.scheme in ("ws", "wss"):
        if not hostname:
            raise argparse.ArgumentTypeError("empty host")
        return RelayTarget(ws_producer_url=s)
    raise argparse.ArgumentTypeError("must be a WebSocket URL (ws:// or wss://)")


def _parse_socket_addr(s: str) -> tuple[str, int]:
    host, sep, port = s.rpartition(":")
    if not sep:
        raise argparse.ArgumentTypeError("invalid socket address syntax")
    try:
        if host.startswith("[") and host.endswith("]"):
            address: ipaddress.IPv4Address | ipaddress.IPv6Address = ipaddress.IPv6Address(
                host[1:-1]
            )
        else:
            address = ipaddress.IPv4Address(host)
    except ValueError as e:
        raise argparse.ArgumentTypeError("invalid socket address syntax") from e
    return (str(address), _parse_u16(port))


def _add_globals(parser: argparse.ArgumentParser, suppress: bool) -> None:
    parser.add_argument(
        "--server-url",
        default=argparse.SUPPRESS if suppress else None,
        help="server URL",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=argparse.SUPPRESS if suppress else False,
        help="quiet mode, i.e. suppress diagnostic messages",
    )


def _add_format(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument("-f", "--format", type=Format, choices=list(Format), help=help_text)


def build_parser() -> argparse.ArgumentParser:
    """The full argument parser with all subcommands."""
    parser = argparse.ArgumentParser(prog="castrec", description="Terminal session recorder.")
    _add_globals(parser, suppress=False)

    common = argparse.ArgumentParser(add_help=False)
    _add_globals(common, suppress=True)

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    rec = commands.add_parser("rec", parents=[common], help="Record a terminal session")
    rec.add_argument("path", help="output path - either a file or a directory path")
    rec.add_argument("-I", "--input", "--stdin", action="store_true", help="enable input recording")
    mode = rec.add_mutually_exclusive_group()
    mode.add_argument("-a", "--append", action="store_true", help="append to an existing recording file")
    mode.add_argument("--overwrite", action="store_true", help="overwrite target file if it already exists")
    _add_format(rec, "recording file format [default: asciicast]")
    rec.add_argument("--raw", action="store_true", help=argparse.SUPPRESS)
    rec.add_argument("-c", "--command", help="command to record [default: $SHELL]")
    rec.add_argument("--filename", metavar="TEMPLATE", help="filename template, used when recording to a directory")
    rec.add_argument("--env", help="list of env vars to save [default: TERM,SHELL]")
    rec.add_argument("-t", "--title", help="title of the recording")
    rec.add_argument("-i", "--idle-time-limit", type=float, metavar="SECS", help="limit idle time to a given number of seconds")
    rec.add_argument("--headless", action="store_true", help="use headless mode - don't use TTY for input/output")
    rec.add_argument("--tty-size", type=parse_tty_size, metavar="COLSxROWS", help="override terminal size for the recorded command")
    rec.add_argument("--cols", type=_parse_u16, help=argparse.SUPPRESS)
    rec.add_argument("--rows", type=_parse_u16, help=argparse.SUPPRESS)

    play = commands.add_parser("play", parents=[common], help="Replay a terminal session")
    play.add_argument("filename", metavar="FILENAME_OR_URL")
    play.add_argument("-i", "--idle-time-limit", type=float, metavar="SECS", help="limit idle time to a given number of seconds")
    play.add_argument("-s", "--speed", type=float, help="set playback speed")
    play.add_argument("-l", "--loop", action="store_true", dest="loop", help="loop loop loop loop")
    play.add_argument("-m", "--pause-on-markers", action="store_true", help="automatically pause on markers")

    stream = commands.add_parser("stream", parents=[common], help="Stream a terminal session")
    stream.add_argument("-I", "--input", "--stdin", action="store_true", help="enable input capture")
    stream.add_argument("-c", "--command", help="command to stream [default: $SHELL]")
    stream.add_argument(
        "-s",
        "--serve",
        nargs="?",
        const=_parse_socket_addr(DEFAULT_LISTEN_ADDR),
        type=_parse_socket_addr,
        metavar="IP:PORT",
        help="serve the stream with the built-in HTTP server",
    )
    stream.add_argument(
        "-r",
        "--relay",
        nargs="?",
        const=RelayTarget(stream_id=""),
        type=parse_relay_target,
        metavar="STREAM-ID|WS-URL",
        help="relay the stream via a server",
    )
    stream.add_argument("--headless", action="store_true", help="use headless mode - don't use TTY for input/output")
    stream.add_argument("--tty-size", type=parse_tty_size, metavar="COLSxROWS", help="override terminal size for the session")
    stream.add_argument("--log-file", help="log file path")

    cat = commands.add_parser("cat", parents=[common], help="Concatenate multiple recordings")
    cat.add_argument("filename", nargs="+")

    convert = commands.add_parser("convert", parents=[common], help="Convert a recording into another format")
    convert.add_argument("input_filename", metavar="INPUT_FILENAME_OR_URL")
    convert.add_argument("output_filename")
    _add_format(convert, "output file format [default: asciicast]")
    convert.add_argument("--overwrite", action="store_true", help="overwrite target file if it already exists")

    upload = commands.add_parser("upload", parents=[common], help="Upload a recording to a server")
    upload.add_argument("filename", help="filename/path of asciicast to upload")

    commands.add_parser("auth", parents=[common], help="Authenticate this CLI with a server account")

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments, exiting with a usage message on error."""
    return build_parser().parse_args(argv)