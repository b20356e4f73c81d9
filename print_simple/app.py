"""Main application entry-point for print-simple."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from enum import Enum
from typing import Callable, Optional

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from .adapters import OctoPrintClient
from .config import PrinterConfig, PrintSimpleConfig, load_config
from .core import PrinterClient, PrinterHandle
from .dashboard import DashboardState
from .files import FileWatchCoordinator
from .health import HealthReporter
from .logging import configure_logging
from .poller import StatusPoller
from .server import DashboardServer

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[PrinterConfig], PrinterClient]


class ServiceState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


def build_printers(
    config: PrintSimpleConfig, client_factory: Optional[ClientFactory] = None
) -> list[PrinterHandle]:
    factory = client_factory or (
        lambda printer: OctoPrintClient(
            printer, request_timeout=config.status.fetch_timeout_seconds
        )
    )
    return [
        PrinterHandle(
            name=printer.name,
            host_key=printer.host_key,
            gcode_directory=printer.gcode_dir,
            client=factory(printer),
        )
        for printer in config.printers
    ]


class PrintSimpleApp:
    """Coordinates application startup and shutdown.

    Startup order: load every catalog and establish the directory watches,
    start the status poller, then open the HTTP server. Shutdown runs in
    reverse. A failure to establish the directory watches aborts startup.
    """

    def __init__(
        self,
        config: Optional[PrintSimpleConfig] = None,
        *,
        client_factory: Optional[ClientFactory] = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        self._config = config or load_config()
        self._health = HealthReporter()
        self._dashboard = DashboardState(build_printers(self._config, client_factory))
        shutdown_timeout = self._config.server.shutdown_timeout_seconds
        self._poller = StatusPoller(
            self._dashboard,
            interval=self._config.status.poll_interval_seconds,
            fetch_timeout=self._config.status.fetch_timeout_seconds,
            shutdown_timeout=shutdown_timeout,
            health=self._health,
        )
        self._watcher = FileWatchCoordinator(
            self._dashboard,
            health=self._health,
            observer_factory=observer_factory,
            shutdown_timeout=shutdown_timeout,
        )
        self._server = DashboardServer(
            self._dashboard,
            health=self._health,
            host=self._config.server.host,
            port=self._config.server.port,
        )
        self._shutdown_event: Optional[asyncio.Event] = None

    @property
    def dashboard(self) -> DashboardState:
        return self._dashboard

    def request_shutdown(self) -> None:
        if self._shutdown_event is not None:
            self._shutdown_event.set()

    async def run(self) -> None:
        self._shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, self.request_shutdown)

        LOGGER.info(
            "print-simple starting with %d printer(s) from %s",
            len(self._dashboard.printers),
            self._config.path,
        )
        await self._health.set_service_state(ServiceState.STARTING.value, healthy=False)

        try:
            await self._watcher.start()
            self._poller.start()
            await self._server.start()
            await self._health.set_service_state(
                ServiceState.RUNNING.value, healthy=True
            )
            await self._shutdown_event.wait()
            LOGGER.info("print-simple received shutdown signal")
        finally:
            await self._health.set_service_state(
                ServiceState.STOPPING.value, healthy=False
            )
            await self._stop_services()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, RuntimeError):
                    loop.remove_signal_handler(sig)

    async def _stop_services(self) -> None:
        await self._server.stop()
        await self._poller.stop()
        await self._watcher.stop()
        for printer in self._dashboard.printers:
            if printer.client is None:
                continue
            try:
                await printer.client.aclose()
            except Exception:
                LOGGER.debug("Closing client for %s failed", printer.name, exc_info=True)

    @classmethod
    def start(cls, config: Optional[PrintSimpleConfig] = None) -> None:
        instance = cls(config=config)
        configure_logging(
            instance._config.logging.level,
            log_path=instance._config.logging.path,
            log_network=instance._config.logging.log_network,
        )
        try:
            asyncio.run(instance.run())
        except KeyboardInterrupt:
            LOGGER.info("print-simple received shutdown signal")
