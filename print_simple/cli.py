"""Command-line interface for print-simple."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, Optional

from . import constants
from .app import PrintSimpleApp
from .config import ConfigurationError, PrintSimpleConfig, load_config
from .files import WatchSetupError

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_WATCH_FAILED = 1
EXIT_BAD_CONFIG = 2

_SECRET_KEYS = frozenset({"api_key"})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="print-simple", description="Dashboard for a small fleet of 3D printers"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("start", help="Poll printers, watch G-code folders, serve HTTP")
    commands.add_parser("show-config", help="Print the resolved configuration and exit")
    return parser


def _start(config: PrintSimpleConfig) -> int:
    try:
        PrintSimpleApp.start(config)
    except WatchSetupError as exc:
        LOGGER.critical("Cannot watch G-code directories: %s", exc)
        return EXIT_WATCH_FAILED
    return EXIT_OK


def _show_config(config: PrintSimpleConfig) -> int:
    lines = [f"# {config.path}"]
    for section in config.raw.sections():
        lines.append(f"[{section}]")
        for key, value in config.raw.items(section):
            if key in _SECRET_KEYS and value:
                value = "********"
            lines.append(f"{key} = {value}")
        lines.append("")
    print("\n".join(lines))
    return EXIT_OK


_COMMANDS: Dict[str, Callable[[PrintSimpleConfig], int]] = {
    "start": _start,
    "show-config": _show_config,
}


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as exc:
        print(f"Invalid configuration in {args.config}: {exc}", file=sys.stderr)
        return EXIT_BAD_CONFIG

    return _COMMANDS[args.command](config)


if __name__ == "__main__":
    sys.exit(main())
