"""Command-line interface for typewriter markup."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from typewriter.config import OUTPUT_BUFFER, OUTPUT_LIVE, PlaybackOptions, options_from_config
from typewriter.errors import ConfigError, Severity

CONFIG_NAME = "typewriter.toml"


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path
    output_file: Path | None
    playback: PlaybackOptions
    check: bool
    debug: bool
    color: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="typewriter",
        description="Reveal typewriter markup on the terminal, render it to HTML, or check it",
    )
    p.add_argument("input", help="Input markup file")
    p.add_argument("-o", "--output", help="Write buffered HTML to this file")
    p.add_argument("--html", action="store_true", help="Render buffered HTML to stdout")
    p.add_argument("--instant", action="store_true", help="Reveal everything at once")
    p.add_argument("--check", action="store_true", help="Report diagnostics and durations")
    p.add_argument(
        "--char-delay",
        type=float,
        default=None,
        metavar="MS",
        help="Delay after each character (default: 100)",
    )
    p.add_argument(
        "--newline-delay",
        type=float,
        default=None,
        metavar="MS",
        help="Delay after [newline] and [linebreak] (default: 200)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help=f"Config file (default: auto-discover {CONFIG_NAME})",
    )
    p.add_argument("--no-color", action="store_true", help="Do not color terminal output")
    p.add_argument("--debug", action="store_true", help="Dump the token queue to stderr")
    p.add_argument("-v", "--verbose", action="store_true", help="Log engine activity to stderr")
    return p


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / CONFIG_NAME

    if not path.is_file():
        return {}

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from None


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: defaults < config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    kwargs = options_from_config(load_config(config_path, input_dir))

    if args.char_delay is not None:
        kwargs["char_delay"] = args.char_delay
    if args.newline_delay is not None:
        kwargs["newline_delay"] = args.newline_delay
    if args.instant:
        kwargs["instant"] = True

    output_file = Path(args.output) if args.output else None
    if output_file is not None or args.html:
        kwargs["output"] = OUTPUT_BUFFER
    kwargs.setdefault("output", OUTPUT_LIVE)
    if kwargs["output"] == OUTPUT_BUFFER:
        # Buffered output is only useful once complete
        kwargs["instant"] = True

    return CliOptions(
        input_file=input_file,
        output_file=output_file,
        playback=PlaybackOptions(**kwargs),
        check=args.check,
        debug=args.debug,
        color=not args.no_color,
    )


def check_file(options: CliOptions) -> int:
    """Print diagnostics and durations; return 1 if any error was found."""
    from typewriter.analysis import analyze

    source = options.input_file.read_text(encoding="utf-8")
    result = analyze(source, options.playback)
    filename = str(options.input_file)

    for diagnostic in result.diagnostics:
        print(diagnostic.format(source, filename), file=sys.stderr)

    if result.document_duration is None:
        print("durations not computed: no valid timecalc block")
    else:
        for number, duration in enumerate(result.line_durations, start=1):
            if duration.ms or duration.lower_bound:
                print(f"line {number}: {_format_duration(duration.ms, duration.lower_bound)}")
        total = result.document_duration
        print(f"total: {_format_duration(total.ms, total.lower_bound)}")

    return 1 if any(d.severity == Severity.ERROR for d in result.diagnostics) else 0


def _format_duration(ms: float, lower_bound: bool) -> str:
    prefix = "at least " if lower_bound else ""
    return f"{prefix}{ms:g} ms"


def render_file(options: CliOptions) -> str:
    """Reveal a file instantly into buffered HTML."""
    from typewriter.debug import dump_tokens
    from typewriter.playback import Typewriter

    source = options.input_file.read_text(encoding="utf-8")
    typewriter = Typewriter(source, options.playback)
    if options.debug:
        dump_tokens(list(typewriter.queue))
    typewriter.start()
    return typewriter.output or ""


async def play_file(options: CliOptions) -> None:
    """Reveal a file on the terminal in real time; Enter advances past [newpage]."""
    from rich.console import Console

    from typewriter.debug import dump_tokens
    from typewriter.playback import Mode, Typewriter
    from typewriter.scheduler import AsyncioScheduler
    from typewriter.sinks import TerminalSink

    source = options.input_file.read_text(encoding="utf-8")
    sink = TerminalSink(Console(highlight=False), color=options.color)
    typewriter = Typewriter(source, options.playback, sink=sink, scheduler=AsyncioScheduler())
    if options.debug:
        dump_tokens(list(typewriter.queue))

    typewriter.start()
    while typewriter.mode != Mode.FINISHED:
        if typewriter.mode == Mode.AWAITING_PAGE_ADVANCE:
            await asyncio.to_thread(sys.stdin.readline)
            typewriter.advance_page()
        else:
            await asyncio.sleep(0.05)
    sink.line_break()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        options = resolve_options(args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    try:
        if options.check:
            return check_file(options)

        if options.playback.output == OUTPUT_BUFFER:
            html = render_file(options)
            if options.output_file:
                options.output_file.write_text(html, encoding="utf-8")
            else:
                sys.stdout.write(html + "\n")
            return 0

        asyncio.run(play_file(options))
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    return 0
