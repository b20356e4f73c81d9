import asyncio
from pathlib import Path
from typing import Any, Optional

import pytest

from print_simple.core import ConnectionInfo, PrinterHandle


class FakePrinterClient:
    """In-memory stand-in for the printer command interface."""

    def __init__(
        self,
        *,
        state: str = "Operational",
        port: str = "",
        ports: tuple[str, ...] = (),
        fail_with: Optional[BaseException] = None,
        delay: float = 0.0,
        job: Optional[dict[str, Any]] = None,
    ) -> None:
        self.connection = ConnectionInfo(
            state=state, selected_port=port, available_ports=ports
        )
        self.fail_with = fail_with
        self.delay = delay
        self.job = job if job is not None else {"job": {"file": {"name": "cube.gcode"}}}
        self.calls: list[tuple[Any, ...]] = []
        self.closed = False

    async def _status_call(self, name: str) -> None:
        self.calls.append((name,))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with

    async def get_settings(self) -> dict[str, Any]:
        await self._status_call("get_settings")
        return {"api": {"enabled": True}}

    async def get_connection_info(self) -> ConnectionInfo:
        await self._status_call("get_connection_info")
        return self.connection

    async def get_temperature_info(self) -> dict[str, Any]:
        await self._status_call("get_temperature_info")
        return {"tool0": {"actual": 21.5, "target": 0.0}}

    async def get_job_info(self) -> dict[str, Any]:
        self.calls.append(("get_job_info",))
        return self.job

    async def connect(self, port: str) -> None:
        self.calls.append(("connect", port))

    async def preheat(self, tool_target: int, bed_target: int) -> None:
        self.calls.append(("preheat", tool_target, bed_target))

    async def extrude(self, amount: int) -> None:
        self.calls.append(("extrude", amount))

    async def start_job(self) -> None:
        self.calls.append(("start_job",))

    async def cancel_job(self) -> None:
        self.calls.append(("cancel_job",))

    async def move_z(self, distance: int) -> None:
        self.calls.append(("move_z", distance))

    async def print_file(self, filename: str) -> None:
        self.calls.append(("print_file", filename))

    async def aclose(self) -> None:
        self.closed = True


def make_printer(
    name: str,
    host_key: str,
    *,
    gcode_dir: Path = Path("/tmp/gcode"),
    client: Optional[FakePrinterClient] = None,
    selected_port: str = "",
    available_ports: tuple[str, ...] = (),
) -> PrinterHandle:
    return PrinterHandle(
        name=name,
        host_key=host_key,
        gcode_directory=gcode_dir,
        client=client,
        selected_port=selected_port,
        available_ports=list(available_ports),
    )


@pytest.fixture
def fake_client():
    """Factory for FakePrinterClient instances."""
    return FakePrinterClient


@pytest.fixture
def printer():
    """Factory for PrinterHandle instances."""
    return make_printer
