"""Protocol definitions for printer command clients."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import ConnectionInfo


@runtime_checkable
class PrinterClient(Protocol):
    """Contract for the command interface of a single printer.

    The status poller only uses the four read operations; the remaining
    commands are issued by the HTTP layer on behalf of a caller.
    """

    async def get_settings(self) -> dict[str, Any]:
        """Return the printer server settings."""
        ...

    async def get_connection_info(self) -> ConnectionInfo:
        """Return the connection state, selected port and available ports."""
        ...

    async def get_temperature_info(self) -> dict[str, Any]:
        """Return current and target temperatures for tools and bed."""
        ...

    async def get_job_info(self) -> dict[str, Any]:
        """Return details of the active print job."""
        ...

    async def connect(self, port: str) -> None:
        ...

    async def preheat(self, tool_target: int, bed_target: int) -> None:
        ...

    async def extrude(self, amount: int) -> None:
        ...

    async def start_job(self) -> None:
        ...

    async def cancel_job(self) -> None:
        ...

    async def move_z(self, distance: int) -> None:
        ...

    async def print_file(self, filename: str) -> None:
        ...

    async def aclose(self) -> None:
        """Close any underlying resources."""
        ...
