"""Command-line interface for Deimos."""

from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from deimos.errors import DeimosError

CONFIG_NAME = "deimos.toml"


class ConfigError(Exception):
    """Raised when the config file cannot be read."""


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options."""

    input_file: Path | None  # None reads stdin
    output_file: Path | None
    escape_html: bool
    debug: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="deimos",
        description="Deimos markup to HTML converter",
    )
    p.add_argument("input", nargs="?", default="-", help="Input file ('-' or omitted: stdin)")
    p.add_argument("-o", "--output", help="Output file (default: stdout)")
    p.add_argument(
        "--config",
        metavar="FILE",
        help=f"Config file (default: auto-discover {CONFIG_NAME})",
    )
    p.add_argument(
        "--escape-html",
        action="store_true",
        default=None,
        help="HTML-escape text content (default: emit verbatim)",
    )
    p.add_argument(
        "--debug", action="store_true", default=None, help="Trace and dump AST to stderr"
    )
    return p


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / CONFIG_NAME

    if not path.is_file():
        if config_path is not None:
            raise ConfigError(f"config file not found: {path}")
        return {}

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc


def resolve_options(args: argparse.Namespace) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: config file < CLI flags.
    """
    input_file = None if args.input == "-" else Path(args.input)
    input_dir = input_file.parent if input_file is not None else Path(".")
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    escape_html = False
    cfg_render = config.get("render")
    if isinstance(cfg_render, dict) and isinstance(cfg_render.get("escape_html"), bool):
        escape_html = cfg_render["escape_html"]
    if args.escape_html is not None:
        escape_html = args.escape_html

    debug = False
    cfg_debug = config.get("debug")
    if isinstance(cfg_debug, dict) and isinstance(cfg_debug.get("debug"), bool):
        debug = cfg_debug["debug"]
    if args.debug is not None:
        debug = args.debug

    output_file = Path(args.output) if args.output else None

    return CliOptions(
        input_file=input_file,
        output_file=output_file,
        escape_html=escape_html,
        debug=debug,
    )


def convert(options: CliOptions, source: str) -> str:
    """Parse and render source text according to the options."""
    from deimos.debug import dump_ast, dump_tokens
    from deimos.lexer import tokenize
    from deimos.parser import Parser
    from deimos.render import render
    from deimos.trace import logging_hook

    trace = None
    if options.debug:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(name)s: %(message)s")
        trace = logging_hook()

    tokens = tokenize(source, _display_name(options), trace)
    doc = Parser(tokens, trace).parse()

    if options.debug:
        dump_tokens(tokens)
        dump_ast(doc)

    return render(doc, escape_html=options.escape_html, trace=trace)


def read_source(options: CliOptions) -> str:
    from deimos.lexer import decode_source

    if options.input_file is None:
        data = sys.stdin.buffer.read()
    else:
        data = options.input_file.read_bytes()
    return decode_source(data)


def _display_name(options: CliOptions) -> str:
    return str(options.input_file) if options.input_file is not None else "<stdin>"


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = resolve_options(args)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    try:
        html = convert(options, read_source(options))
    except OSError as exc:
        print(f"error: cannot read input: {exc}", file=sys.stderr)
        return 2
    except DeimosError as exc:
        print(exc.format(_display_name(options)), file=sys.stderr)
        return 1

    if options.output_file:
        options.output_file.write_text(html, encoding="utf-8")
    else:
        sys.stdout.write(html)

    return 0
