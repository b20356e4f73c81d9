"""Constants used across the print-simple package."""

from __future__ import annotations

from pathlib import Path

APP_NAME = "print-simple"
DEFAULT_CONFIG_FILENAME = f"{APP_NAME}.cfg"
DEFAULT_CONFIG_PATH = Path("/etc") / APP_NAME / DEFAULT_CONFIG_FILENAME

DEFAULT_SERVER_HOST = "0.0.0.0"
DEFAULT_SERVER_PORT = 8080

DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_FETCH_TIMEOUT_SECONDS = 5.0
DEFAULT_SHUTDOWN_TIMEOUT_SECONDS = 5.0

PRINTER_SECTION_PREFIX = "printer "
