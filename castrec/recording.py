"""The rec command: recording a terminal session to a file."""

from __future__ import annotations

import os
import socket
import termios
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

from castrec import asciicast, commands, logger, ptyexec
from castrec.cli import Format
from castrec.config import Config
from castrec.encoders import AsciicastEncoder, Encoder, RawEncoder
from castrec.events import Event, Header
from castrec.locale_check import check_utf8_locale
from castrec.recorder import KeyBindings, Output, Recorder
from castrec.tty import DevTty, FixedSizeTty, NullTty, Theme, TtySize

DEFAULT_ENV_VARS = "TERM,SHELL"


@dataclass
class RecordArgs:
    """Options of the rec command."""

    path: str
    input: bool = False
    append: bool = False
    format: Format | None = None
    raw: bool = False
    overwrite: bool = False
    command: str | None = None
    filename: str | None = None
    env: str | None = None
    title: str | None = None
    idle_time_limit: float | None = None
    headless: bool = False
    tty_size: tuple[int | None, int | None] | None = None
    cols: int | None = None
    rows: int | None = None


@dataclass
class Metadata:
    idle_time_limit: float | None = None
    command: str | None = None
    title: str | None = None
    env: dict[str, str] | None = None


class FileOutput(Output):
    """Writes encoded recording data to a binary file, flushing after every write."""

    def __init__(self, writer: BinaryIO, encoder: Encoder, metadata: Metadata) -> None:
        self.writer = writer
        self.encoder = encoder
        self.metadata = metadata

    def _write(self, data: bytes) -> None:
        if data:
            self.writer.write(data)
            self.writer.flush()

    def header(self, time: float, tty_size: TtySize, theme: Theme | None) -> None:
        env = self.metadata.env
        header = Header(
            cols=tty_size.cols,
            rows=tty_size.rows,
            timestamp=int(time),
            idle_time_limit=self.metadata.idle_time_limit,
            command=self.metadata.command,
            title=self.metadata.title,
            env=dict(env) if env is not None else None,
            theme=theme,
        )
        self._write(self.encoder.header(header))

    def event(self, event: Event) -> None:
        self._write(self.encoder.event(event))

    def flush(self) -> None:
        self._write(self.encoder.flush())


def capture_env(vars: str) -> dict[str, str]:
    """The current values of the comma-separated environment variable names."""
    names = set(vars.split(","))
    return {k: v for k, v in os.environ.items() if k in names}


def _resolve_path(args: RecordArgs, config: Config) -> str:
    path = Path(args.path)
    if not path.is_dir():
        return args.path

    template = args.filename if args.filename is not None else config.rec.filename
    template = template.replace("{pid}", str(os.getpid()))
    if "{user}" in template:
        template = template.replace("{user}", os.environ.get("USER", "unknown"))
    if "{hostname}" in template:
        template = template.replace("{hostname}", socket.gethostname() or "unknown")

    path = path / datetime.now().strftime(template)
    path.parent.mkdir(parents=True, exist_ok=True)
    return str(path)


def _get_format(args: RecordArgs, path: str) -> Format:
    if args.format is not None:
        return Format(args.format)
    if args.raw:
        return Format.RAW
    if path.lower().endswith(".txt"):
        return Format.TXT
    return Format.ASCIICAST


def _get_mode(path: str, append: bool, overwrite: bool) -> tuple[bool, bool]:
    target = Path(path)
    if target.exists():
        if target.stat().st_size == 0:
            overwrite = True
            append = False
        if not append and not overwrite:
            raise FileExistsError("file exists, use --overwrite or --append")
    else:
        append = False
    return append, overwrite


def _make_encoder(fmt: Format, append: bool, time_offset: int) -> Encoder:
    if fmt is Format.ASCIICAST:
        return AsciicastEncoder(append, time_offset)
    if fmt is Format.RAW:
        return RawEncoder(append)
    raise ValueError(f"the {fmt.value} format is not supported for recording")


def _open_file(path: str, append: bool, overwrite: bool) -> BinaryIO:
    if overwrite:
        return open(path, "wb")
    if append:
        return open(path, "ab")
    return open(path, "xb")


def _override(current: bytes | None, configured: bytes | None) -> bytes | None:
    if configured is None:
        return current
    return configured or None


def _key_bindings(config: Config) -> KeyBindings:
    keys = KeyBindings()
    keys.prefix = _override(keys.prefix, config.key("rec", "prefix_key"))
    keys.pause = _override(keys.pause, config.key("rec", "pause_key"))
    keys.add_marker = _override(keys.add_marker, config.key("rec", "add_marker_key"))
    return keys


def _build_metadata(args: RecordArgs, config: Config, command: str | None) -> Metadata:
    idle_time_limit = args.idle_time_limit
    if idle_time_limit is None:
        idle_time_limit = config.rec.idle_time_limit

    env_vars = args.env if args.env is not None else config.rec.env
    if env_vars is None:
        env_vars = DEFAULT_ENV_VARS

    return Metadata(
        idle_time_limit=idle_time_limit,
        command=command,
        title=args.title,
        env=capture_env(env_vars),
    )


def _get_tty(args: RecordArgs) -> FixedSizeTty:
    cols, rows = args.tty_size if args.tty_size is not None else (None, None)
    if cols is None:
        cols = args.cols
    if rows is None:
        rows = args.rows

    if args.headless:
        return FixedSizeTty(NullTty(), cols, rows)
    try:
        return FixedSizeTty(DevTty(), cols, rows)
    except (OSError, termios.error):
        logger.info("TTY not available, recording in headless mode")
        return FixedSizeTty(NullTty(), cols, rows)


def record(args: RecordArgs, config: Config) -> int:
    """Record a session to the file (or directory) in args.path; returns the command's exit code."""
    check_utf8_locale()

    path = _resolve_path(args, config)
    fmt = _get_format(args, path)
    append, overwrite = _get_mode(path, args.append, args.overwrite)
    time_offset = asciicast.get_duration(path) if append and fmt is Format.ASCIICAST else 0
    encoder = _make_encoder(fmt, append, time_offset)

    command = args.command if args.command is not None else config.rec.command
    keys = _key_bindings(config)
    notifier = commands.get_notifier(config)
    record_input = args.input or config.rec.input
    exec_command = commands.build_exec_command(command)
    extra_env = commands.build_exec_extra_env([])
    metadata = _build_metadata(args, config, command)

    with _open_file(path, append, overwrite) as file:
        output = FileOutput(file, encoder, metadata)

        logger.info(f"Recording session started, writing to {path}")
        if command is None:
            logger.info("Press <ctrl+d> or type 'exit' to end")

        with _get_tty(args) as tty, Recorder(output, record_input, keys, notifier) as recorder:
            code = ptyexec.exec_command(exec_command, extra_env, tty, recorder)

    logger.info("Recording session ended")
    return code