"""Top-level CLI entrypoint dispatcher."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from .config import ConfigStore
from .tui import run_tui

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vimos", description="Vim-style modal editing in the terminal")
    parser.add_argument("file", nargs="?", type=Path, help="text file to load into the buffer")
    parser.add_argument("--config", type=Path, help="configuration file (default: ~/.vimos/config.json)")
    parser.add_argument("--log-file", type=Path, help="write logs to this file")
    parser.add_argument("--log-level", default="INFO", type=str.upper, choices=LOG_LEVELS)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_file is not None:
        logging.basicConfig(filename=args.log_file, level=args.log_level, format=LOG_FORMAT)

    text = ""
    if args.file is not None and args.file.exists():
        try:
            text = args.file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            parser.error(f"cannot read {args.file}: {exc}")

    run_tui(text, ConfigStore(args.config))
