"""Logging setup for the print-simple service."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Per-request and per-notification chatter; hidden unless log_network is set.
_NETWORK_LOGGERS = ("aiohttp.access", "aiohttp.client", "aiohttp.server", "watchdog")


def configure_logging(
    level: str = "INFO", *, log_path: Optional[Path] = None, log_network: bool = False
) -> None:
    """Replace the root handlers with a console handler and, optionally, a file.

    Parameters
    ----------
    level:
        Log level name such as ``"DEBUG"``; unknown names fall back to INFO.
    log_path:
        File to append to in addition to the console. Parent directories are
        created as needed.
    log_network:
        Keep HTTP access and directory notification records at ``level``
        instead of raising them to WARNING.
    """

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    logging.captureWarnings(True)

    network_level = logging.NOTSET if log_network else logging.WARNING
    for name in _NETWORK_LOGGERS:
        logging.getLogger(name).setLevel(network_level)
