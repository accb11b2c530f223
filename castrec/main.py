"""Command-line entry point."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from castrec import commands, logger
from castrec.asciicast import open_from_path
from castrec.cli import Format, parse_args
from castrec.config import Config
from castrec.encoders import AsciicastEncoder, Encoder, RawEncoder
from castrec.recording import RecordArgs, record


def _convert_encoder(fmt: Format | None, output_filename: str) -> Encoder:
    if fmt is None:
        fmt = Format.TXT if output_filename.lower().endswith(".txt") else Format.ASCIICAST
    if fmt is Format.ASCIICAST:
        return AsciicastEncoder(False, 0)
    if fmt is Format.RAW:
        return RawEncoder(False)
    raise ValueError(f"the {fmt.value} format is not supported for conversion")


def _convert(args: argparse.Namespace) -> None:
    cast = open_from_path(args.input_filename)
    encoder = _convert_encoder(args.format, args.output_filename)

    target = Path(args.output_filename)
    overwrite = args.overwrite
    if target.exists():
        if target.stat().st_size == 0:
            overwrite = True
        if not overwrite:
            raise FileExistsError("file exists, use --overwrite option to overwrite the file")

    with open(target, "wb" if overwrite else "xb") as file:
        encoder.encode_to_file(cast, file)


def _record_args(args: argparse.Namespace) -> RecordArgs:
    return RecordArgs(
        path=args.path,
        input=args.input,
        append=args.append,
        format=args.format,
        raw=args.raw,
        overwrite=args.overwrite,
        command=args.command,
        filename=args.filename,
        env=args.env,
        title=args.title,
        idle_time_limit=args.idle_time_limit,
        headless=args.headless,
        tty_size=args.tty_size,
        cols=args.cols,
        rows=args.rows,
    )


def _run(args: argparse.Namespace, config: Config) -> None:
    match args.command:
        case "rec":
            record(_record_args(args), config)
        case "play":
            commands.play(
                args.filename,
                config,
                args.speed,
                args.idle_time_limit,
                args.loop,
                args.pause_on_markers,
            )
        case "cat":
            commands.cat(args.filename)
        case "convert":
            _convert(args)
        case "upload":
            commands.upload(args.filename, config)
        case "auth":
            commands.auth(config)
        case other:
            raise RuntimeError(f"the {other} command is not available in this build")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    args = parse_args(argv)

    try:
        config = Config(args.server_url)
        if args.quiet:
            logger.disable()
        _run(args, config)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())