"""Periodic status polling for every configured printer.

Each cycle fetches settings, connection and temperature details for all
printers concurrently, waits for every fetch to finish, then applies the
results and reconciles the port registry in configuration order while
holding the dashboard lock. Job details are only fetched for printers that
are printing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .core import (
    ConnectionInfo,
    ConnectionState,
    PrinterHandle,
    reconcile_ports,
    refresh_availability,
)
from .dashboard import DashboardState
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)

HEALTH_COMPONENT = "status-poller"


@dataclass(slots=True)
class StatusReport:
    """Result of one printer's status fetch within a poll cycle."""

    name: str
    connection: Optional[ConnectionInfo] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    temperature: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.connection is not None


def _describe(exc: BaseException, timeout: float) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return f"timed out after {timeout:.1f}s"
    message = str(exc).strip()
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class StatusPoller:
    """Keeps dashboard status fields fresh on a fixed interval."""

    def __init__(
        self,
        dashboard: DashboardState,
        *,
        interval: float = 1.0,
        fetch_timeout: float = 5.0,
        shutdown_timeout: float = 5.0,
        health: Optional[HealthReporter] = None,
    ) -> None:
        self._dashboard = dashboard
        self._interval = max(interval, 0.1)
        self._fetch_timeout = fetch_timeout
        self._shutdown_timeout = shutdown_timeout
        self._health = health
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self.cycles = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="status-poller")

    async def stop(self) -> None:
        """Stop scheduling cycles, letting an in-flight cycle finish if it can."""

        task = self._task
        if task is None:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self._shutdown_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning(
                "Status poller did not stop within %.1fs; cancelling",
                self._shutdown_timeout,
            )
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._task = None

    async def _run_loop(self) -> None:
        LOGGER.info(
            "Status poller started for %d printer(s), interval %.1fs",
            len(self._dashboard.printers),
            self._interval,
        )
        while not self._stop_event.is_set():
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("Status poll cycle failed")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                break
            except asyncio.TimeoutError:
                continue

        LOGGER.info("Status poller stopped after %d cycle(s)", self.cycles)

    async def run_cycle(self) -> List[StatusReport]:
        """Run one fetch, join, reconcile and job-info pass."""

        printers = self._dashboard.printers

        tasks = [
            asyncio.create_task(self._fetch_status(printer)) for printer in printers
        ]
        reports: List[StatusReport] = list(await asyncio.gather(*tasks))

        async with self._dashboard.locked() as dashboard:
            for printer, report in zip(printers, reports):
                self._apply_report(printer, report)

            refresh_availability(dashboard.ports, printers)
            for printer in printers:
                reconcile_ports(dashboard.ports, printer)
                if printer.connection_state != ConnectionState.PRINTING:
                    printer.job = {}

            printing = [
                printer
                for printer in printers
                if printer.connection_state == ConnectionState.PRINTING
            ]

        for printer in printing:
            await self._refresh_job(printer)

        self.cycles += 1
        await self._report_health(reports)
        return reports

    async def _fetch_status(self, printer: PrinterHandle) -> StatusReport:
        client = printer.client
        if client is None:
            return StatusReport(name=printer.name, error="no command interface")

        try:
            async with asyncio.timeout(self._fetch_timeout):
                settings = await client.get_settings()
                connection = await client.get_connection_info()
                temperature = await client.get_temperature_info()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            detail = _describe(exc, self._fetch_timeout)
            LOGGER.warning("Status fetch for %s failed: %s", printer.name, detail)
            return StatusReport(name=printer.name, error=detail)

        return StatusReport(
            name=printer.name,
            connection=connection,
            settings=settings,
            temperature=temperature,
        )

    @staticmethod
    def _apply_report(printer: PrinterHandle, report: StatusReport) -> None:
        if report.ok:
            assert report.connection is not None
            printer.apply_status(report.connection, report.settings, report.temperature)
        else:
            printer.record_failure(report.error or "unknown error")

    async def _refresh_job(self, printer: PrinterHandle) -> None:
        client = printer.client
        if client is None:
            return

        try:
            async with asyncio.timeout(self._fetch_timeout):
                job = await client.get_job_info()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            detail = _describe(exc, self._fetch_timeout)
            LOGGER.warning("Job fetch for %s failed: %s", printer.name, detail)
            async with self._dashboard.locked():
                printer.error = f"job: {detail}"
            return

        async with self._dashboard.locked():
            printer.job = job

    async def _report_health(self, reports: List[StatusReport]) -> None:
        if self._health is None:
            return

        failing = [report.name for report in reports if not report.ok]
        if failing:
            await self._health.update(
                HEALTH_COMPONENT, False, f"unreachable: {', '.join(failing)}"
            )
        else:
            await self._health.update(HEALTH_COMPONENT, True, f"cycle {self.cycles}")
