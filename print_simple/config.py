"""Configuration loader for print-simple."""

from __future__ import annotations

from configparser import ConfigParser
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from . import constants


class ConfigurationError(ValueError):
    """Raised when the configuration file describes an unusable printer."""


@dataclass(slots=True)
class ServerConfig:
    host: str = constants.DEFAULT_SERVER_HOST
    port: int = constants.DEFAULT_SERVER_PORT
    shutdown_timeout_seconds: float = constants.DEFAULT_SHUTDOWN_TIMEOUT_SECONDS


@dataclass(slots=True)
class StatusConfig:
    poll_interval_seconds: float = constants.DEFAULT_POLL_INTERVAL_SECONDS
    fetch_timeout_seconds: float = constants.DEFAULT_FETCH_TIMEOUT_SECONDS


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"
    path: Optional[Path] = None
    log_network: bool = False


@dataclass(slots=True)
class PrinterConfig:
    name: str
    url: str
    gcode_dir: Path
    host_key: str = ""
    api_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.host_key:
            self.host_key = urlparse(self.url).hostname or self.url


@dataclass(slots=True)
class PrintSimpleConfig:
    server: ServerConfig
    status: StatusConfig
    logging: LoggingConfig
    raw: ConfigParser
    path: Path
    printers: List[PrinterConfig] = field(default_factory=list)


def _parse_printer(parser: ConfigParser, section: str) -> PrinterConfig:
    name = section[len(constants.PRINTER_SECTION_PREFIX) :].strip()
    if not name:
        raise ConfigurationError(f"Printer section [{section}] has no name")

    url = parser.get(section, "url", fallback="").strip()
    if not url:
        raise ConfigurationError(f"Printer {name!r} is missing 'url'")

    gcode_dir = parser.get(section, "gcode_dir", fallback="").strip()
    if not gcode_dir:
        raise ConfigurationError(f"Printer {name!r} is missing 'gcode_dir'")

    api_key = parser.get(section, "api_key", fallback="").strip() or None

    return PrinterConfig(
        name=name,
        url=url.rstrip("/"),
        gcode_dir=Path(gcode_dir).expanduser(),
        host_key=parser.get(section, "host_key", fallback="").strip(),
        api_key=api_key,
    )


def load_config(path: Optional[Path] = None) -> PrintSimpleConfig:
    """Load configuration from disk, applying defaults where necessary."""

    config_path = path or constants.DEFAULT_CONFIG_PATH
    parser = ConfigParser()
    parser.read_dict(
        {
            "server": {
                "host": constants.DEFAULT_SERVER_HOST,
                "port": str(constants.DEFAULT_SERVER_PORT),
                "shutdown_timeout_seconds": str(
                    constants.DEFAULT_SHUTDOWN_TIMEOUT_SECONDS
                ),
            },
            "status": {
                "poll_interval_seconds": str(constants.DEFAULT_POLL_INTERVAL_SECONDS),
                "fetch_timeout_seconds": str(constants.DEFAULT_FETCH_TIMEOUT_SECONDS),
            },
            "logging": {
                "level": "INFO",
                "path": "",
                "log_network": "false",
            },
        }
    )

    if config_path.exists():
        parser.read(config_path)

    server_defaults = ServerConfig()
    try:
        port = parser.getint("server", "port", fallback=server_defaults.port)
    except ValueError as exc:
        raise ConfigurationError(
            f"[server] port must be an integer, got {parser.get('server', 'port')!r}"
        ) from exc

    try:
        shutdown_timeout = parser.getfloat(
            "server",
            "shutdown_timeout_seconds",
            fallback=server_defaults.shutdown_timeout_seconds,
        )
    except ValueError:
        shutdown_timeout = server_defaults.shutdown_timeout_seconds

    server = ServerConfig(
        host=parser.get("server", "host", fallback=server_defaults.host),
        port=port,
        shutdown_timeout_seconds=max(0.0, shutdown_timeout),
    )

    status_defaults = StatusConfig()
    try:
        poll_interval = parser.getfloat(
            "status",
            "poll_interval_seconds",
            fallback=status_defaults.poll_interval_seconds,
        )
    except ValueError:
        poll_interval = status_defaults.poll_interval_seconds

    try:
        fetch_timeout = parser.getfloat(
            "status",
            "fetch_timeout_seconds",
            fallback=status_defaults.fetch_timeout_seconds,
        )
    except ValueError:
        fetch_timeout = status_defaults.fetch_timeout_seconds

    status = StatusConfig(
        poll_interval_seconds=max(0.1, poll_interval),
        fetch_timeout_seconds=max(0.1, fetch_timeout),
    )

    log_path_value = parser.get("logging", "path", fallback="").strip()
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO"),
        path=Path(log_path_value).expanduser() if log_path_value else None,
        log_network=parser.getboolean("logging", "log_network", fallback=False),
    )

    printers = [
        _parse_printer(parser, section)
        for section in parser.sections()
        if section.startswith(constants.PRINTER_SECTION_PREFIX)
    ]

    names = [printer.name for printer in printers]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate printer names: {', '.join(duplicates)}")

    return PrintSimpleConfig(
        server=server,
        status=status,
        logging=logging_config,
        raw=parser,
        path=config_path,
        printers=printers,
    )
