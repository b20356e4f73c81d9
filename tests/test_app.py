"""Tests for application startup and shutdown."""

from __future__ import annotations

import asyncio
from pathlib import Path

import aiohttp
import pytest
from watchdog.observers.polling import PollingObserver

from print_simple.adapters import OctoPrintClient
from print_simple.app import PrintSimpleApp, build_printers
from print_simple.config import load_config
from print_simple.files import WatchSetupError


def _write_config(path: Path, *, port: int, gcode_dir: Path) -> Path:
    path.write_text(
        f"""
[server]
host = 127.0.0.1
port = {port}
shutdown_timeout_seconds = 2

[status]
poll_interval_seconds = 0.1
fetch_timeout_seconds = 0.5

[printer ender3]
url = http://octopi-ender.local
host_key = usb0
gcode_dir = {gcode_dir}
        """.strip()
        + "\n",
        encoding="utf-8",
    )
    return path


async def _fetch_status(url: str, timeout: float = 5.0) -> dict:
    async with aiohttp.ClientSession() as session:
        async with asyncio.timeout(timeout):
            while True:
                try:
                    async with session.get(url) as response:
                        if response.status == 200:
                            payload = await response.json()
                            if payload["ports"]:
                                return payload
                except aiohttp.ClientConnectionError:
                    pass
                await asyncio.sleep(0.05)


def test_build_printers_defaults_to_octoprint_clients(tmp_path: Path):
    config = load_config(
        _write_config(tmp_path / "print-simple.cfg", port=8080, gcode_dir=tmp_path)
    )

    printers = build_printers(config)

    assert [printer.name for printer in printers] == ["ender3"]
    assert printers[0].host_key == "usb0"
    assert printers[0].gcode_directory == tmp_path
    assert isinstance(printers[0].client, OctoPrintClient)


@pytest.mark.asyncio
async def test_app_serves_dashboard_then_shuts_down(
    tmp_path: Path, unused_tcp_port_factory, fake_client
):
    gcode_dir = tmp_path / "ender3"
    gcode_dir.mkdir()
    (gcode_dir / "cube.gcode").write_text("G28\n")
    port = unused_tcp_port_factory()
    config = load_config(
        _write_config(tmp_path / "print-simple.cfg", port=port, gcode_dir=gcode_dir)
    )
    clients = {}

    def factory(printer_config):
        client = fake_client(port="/dev/ttyUSB0", ports=("/dev/ttyUSB0", "/dev/ttyUSB1"))
        clients[printer_config.name] = client
        return client

    app = PrintSimpleApp(
        config, client_factory=factory, observer_factory=PollingObserver
    )
    task = asyncio.create_task(app.run())
    try:
        payload = await _fetch_status(f"http://127.0.0.1:{port}/status")
    finally:
        app.request_shutdown()
        await asyncio.wait_for(task, timeout=10)

    assert payload["printers"][0]["files"] == ["cube.gcode"]
    assert payload["ports"] == [
        {"available": False, "name": "/dev/ttyUSB0", "host": "usb0"},
        {"available": True, "name": "/dev/ttyUSB1", "host": "usb0"},
    ]
    assert clients["ender3"].closed is True


@pytest.mark.asyncio
async def test_app_aborts_when_directories_cannot_be_watched(
    tmp_path: Path, unused_tcp_port_factory, fake_client
):
    config = load_config(
        _write_config(
            tmp_path / "print-simple.cfg",
            port=unused_tcp_port_factory(),
            gcode_dir=tmp_path / "missing",
        )
    )
    client = fake_client()
    app = PrintSimpleApp(
        config, client_factory=lambda _: client, observer_factory=PollingObserver
    )

    with pytest.raises(WatchSetupError):
        await app.run()

    assert client.closed is True
    assert client.calls == []
