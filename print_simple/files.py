"""File catalog loading and directory watching.

Every printer has a G-code directory whose file names form its catalog.
Catalogs are loaded once at startup, then a watchdog observer watches all
directories. Any write-type notification from any directory reloads the
catalog of every printer; reloads are processed one at a time in the order
notifications arrive.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from .core import PrinterHandle
from .dashboard import DashboardState
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)

HEALTH_COMPONENT = "file-watcher"

WRITE_EVENT_KINDS = frozenset({"created", "modified", "moved", "deleted", "closed"})

_LIVENESS_CHECK_SECONDS = 5.0


class WatchSetupError(RuntimeError):
    """Raised when a directory watch cannot be established."""


class WatchState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"
    RELOADING = "reloading"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class WatchEvent:
    kind: str
    path: str

    @property
    def is_write(self) -> bool:
        return self.kind in WRITE_EVENT_KINDS


_QueueItem = Optional[WatchEvent]


def list_directory(path: Path) -> Set[str]:
    """Return the names of the regular, non-hidden files in ``path``."""

    return {
        entry.name
        for entry in Path(path).iterdir()
        if entry.is_file() and not entry.name.startswith(".")
    }


class _EventForwarder(FileSystemEventHandler):
    """Hands watchdog notifications from the observer thread to the event loop."""

    def __init__(
        self, loop: asyncio.AbstractEventLoop, queue: "asyncio.Queue[_QueueItem]"
    ) -> None:
        super().__init__()
        self._loop = loop
        self._queue = queue

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._post(WatchEvent(kind=event.event_type, path=str(event.src_path)))

    def _post(self, item: _QueueItem) -> None:
        # The loop may close while the observer thread is still delivering.
        with contextlib.suppress(RuntimeError):
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)


class FileWatchCoordinator:
    """Keeps every printer's file catalog roughly in sync with its directory."""

    def __init__(
        self,
        dashboard: DashboardState,
        *,
        health: Optional[HealthReporter] = None,
        observer_factory: Callable[[], BaseObserver] = Observer,
        lister: Callable[[Path], Set[str]] = list_directory,
        shutdown_timeout: float = 5.0,
    ) -> None:
        self._dashboard = dashboard
        self._health = health
        self._observer_factory = observer_factory
        self._lister = lister
        self._shutdown_timeout = shutdown_timeout
        self._queue: "asyncio.Queue[_QueueItem]" = asyncio.Queue()
        self._observer: Optional[BaseObserver] = None
        self._forwarder: Optional[_EventForwarder] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._failed_watches: Set[str] = set()
        self.state = WatchState.IDLE
        self.reloads = 0

    @property
    def event_handler(self) -> Optional[FileSystemEventHandler]:
        return self._forwarder

    async def start(self) -> None:
        """Load all catalogs, then establish one watch per directory.

        Raises:
            WatchSetupError: If any directory cannot be watched.
        """

        if self._task is not None:
            return

        await self.reload_all()

        loop = asyncio.get_running_loop()
        self._forwarder = _EventForwarder(loop, self._queue)
        observer = self._observer_factory()

        try:
            for directory in self._watched_directories():
                if not directory.is_dir():
                    raise WatchSetupError(f"G-code directory does not exist: {directory}")
                LOGGER.info("Watching G-code directory %s", directory)
                observer.schedule(self._forwarder, str(directory), recursive=False)
            observer.start()
        except WatchSetupError:
            self.state = WatchState.FAILED
            await self._set_health(False, "watch setup failed")
            raise
        except Exception as exc:
            self.state = WatchState.FAILED
            await self._set_health(False, "watch setup failed")
            raise WatchSetupError(f"Unable to watch G-code directories: {exc}") from exc

        self._observer = observer
        self.state = WatchState.WATCHING
        await self._set_health(True, self.state.value)
        self._task = asyncio.create_task(self._run_loop(), name="file-watcher")

    async def stop(self) -> None:
        observer = self._observer
        self._observer = None
        if observer is not None:
            observer.stop()
            await asyncio.to_thread(observer.join, self._shutdown_timeout)

        task = self._task
        self._task = None
        if task is not None:
            self._queue.put_nowait(None)
            try:
                await asyncio.wait_for(
                    asyncio.shield(task), timeout=self._shutdown_timeout
                )
            except asyncio.TimeoutError:
                LOGGER.warning(
                    "File watcher did not stop within %.1fs; cancelling",
                    self._shutdown_timeout,
                )
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        if self.state != WatchState.FAILED:
            self.state = WatchState.STOPPED

    async def reload_all(self) -> None:
        """Reload every printer's catalog from its directory."""

        for printer in self._dashboard.printers:
            await self._reload_printer(printer)
        self.reloads += 1

    async def _reload_printer(self, printer: PrinterHandle) -> None:
        try:
            names = await asyncio.to_thread(self._lister, printer.gcode_directory)
        except OSError as exc:
            LOGGER.warning(
                "Listing %s for %s failed; keeping previous catalog: %s",
                printer.gcode_directory,
                printer.name,
                exc,
            )
            return

        async with self._dashboard.locked():
            printer.file_catalog = set(names)

    async def _run_loop(self) -> None:
        while True:
            try:
                item = await asyncio.wait_for(
                    self._queue.get(), timeout=_LIVENESS_CHECK_SECONDS
                )
            except asyncio.TimeoutError:
                await self._check_observer()
                continue

            if item is None:
                break

            if not item.is_write:
                continue

            LOGGER.info(
                "G-code directory changed (%s %s); reloading catalogs",
                item.kind,
                item.path,
            )
            self.state = WatchState.RELOADING
            try:
                await self.reload_all()
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("Catalog reload failed")
            finally:
                self.state = WatchState.WATCHING

    async def _check_observer(self) -> None:
        observer = self._observer
        if observer is None:
            return

        failed: list[str] = []
        if not observer.is_alive():
            failed.append("observer")
        for emitter in list(observer.emitters):
            if not emitter.is_alive():
                failed.append(emitter.watch.path)

        new_failures = [name for name in failed if name not in self._failed_watches]
        if not new_failures:
            return

        self._failed_watches.update(new_failures)
        for name in new_failures:
            LOGGER.error("File watch for %s stopped; catalogs may go stale", name)
        lost = ", ".join(sorted(self._failed_watches))
        await self._set_health(False, f"watch lost: {lost}")

    def _watched_directories(self) -> list[Path]:
        directories: list[Path] = []
        for printer in self._dashboard.printers:
            directory = Path(printer.gcode_directory)
            if directory not in directories:
                directories.append(directory)
        return directories

    async def _set_health(self, healthy: bool, detail: str) -> None:
        if self._health is not None:
            await self._health.update(HEALTH_COMPONENT, healthy, detail)
