"""Shared dashboard state guarded by a single lock."""

from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterator, Iterable, List, Optional, Sequence

from .core import DashboardSnapshot, PortRegistry, PrinterHandle


class UnknownPrinterError(LookupError):
    """Raised when a printer name does not match any configured printer."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown printer: {name!r}")
        self.name = name


class DashboardState:
    """Printer list and port registry shared by poller, watcher and HTTP layer.

    Every mutation of printer status fields, file catalogs or the port
    registry happens inside ``locked()``. ``snapshot()`` takes the same lock
    for the duration of the copy, so readers never observe a half-applied
    poll cycle.
    """

    def __init__(self, printers: Iterable[PrinterHandle]) -> None:
        self._printers: List[PrinterHandle] = list(printers)
        self._ports = PortRegistry()
        self._lock = asyncio.Lock()

    @property
    def printers(self) -> Sequence[PrinterHandle]:
        """The fixed printer list, in configuration order.

        Handles are mutable; read their fields only while holding the lock.
        """

        return tuple(self._printers)

    @property
    def ports(self) -> PortRegistry:
        return self._ports

    @contextlib.asynccontextmanager
    async def locked(self) -> AsyncIterator["DashboardState"]:
        async with self._lock:
            yield self

    def find_printer(self, name: str) -> Optional[PrinterHandle]:
        for printer in self._printers:
            if printer.name == name:
                return printer
        return None

    def get_printer(self, name: str) -> PrinterHandle:
        printer = self.find_printer(name)
        if printer is None:
            raise UnknownPrinterError(name)
        return printer

    async def snapshot(self) -> DashboardSnapshot:
        async with self._lock:
            return DashboardSnapshot(
                printers=tuple(printer.snapshot() for printer in self._printers),
                ports=tuple(port.snapshot() for port in self._ports),
            )
