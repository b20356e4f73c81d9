import asyncio

import pytest

from print_simple.dashboard import DashboardState, UnknownPrinterError


def test_get_printer_by_name(printer):
    dashboard = DashboardState([printer("ender3", "usb0"), printer("prusa", "usb1")])

    assert dashboard.get_printer("prusa").host_key == "usb1"
    assert dashboard.find_printer("voron") is None
    with pytest.raises(UnknownPrinterError):
        dashboard.get_printer("voron")


@pytest.mark.asyncio
async def test_snapshot_waits_for_writer(printer):
    dashboard = DashboardState([printer("ender3", "usb0")])
    writer_inside = asyncio.Event()
    release = asyncio.Event()

    async def writer() -> None:
        async with dashboard.locked() as state:
            state.ports.ensure("/dev/ttyUSB0", "usb0")
            writer_inside.set()
            await release.wait()
            state.ports.ensure("/dev/ttyUSB1", "usb0")

    task = asyncio.create_task(writer())
    await writer_inside.wait()
    reader = asyncio.create_task(dashboard.snapshot())
    await asyncio.sleep(0.01)
    assert not reader.done()

    release.set()
    snapshot = await reader
    await task

    assert [port.name for port in snapshot.ports] == ["/dev/ttyUSB0", "/dev/ttyUSB1"]


@pytest.mark.asyncio
async def test_snapshot_is_immutable_copy(printer):
    dashboard = DashboardState([printer("ender3", "usb0")])
    async with dashboard.locked() as state:
        state.ports.ensure("/dev/ttyUSB0", "usb0")

    snapshot = await dashboard.snapshot()
    async with dashboard.locked() as state:
        state.ports.get("/dev/ttyUSB0", "usb0").available = False

    assert snapshot.ports[0].available is True
    assert snapshot.as_dict()["ports"] == [
        {"available": True, "name": "/dev/ttyUSB0", "host": "usb0"}
    ]
