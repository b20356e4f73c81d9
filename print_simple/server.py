"""HTTP surface: dashboard status, printer commands and health."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp
from aiohttp import web

from .adapters import PrinterCommandError
from .core import PrinterClient
from .dashboard import DashboardState, UnknownPrinterError
from .health import HealthReporter

LOGGER = logging.getLogger(__name__)

# heat level -> (tool target, bed target)
PREHEAT_LEVELS: Dict[int, tuple[int, int]] = {
    0: (0, 0),
    1: (200, 60),
    2: (220, 60),
}

EXTRUDE_AMOUNT = 100

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class RequestValidationError(ValueError):
    """Raised when a request body is malformed or misses required fields."""


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


@web.middleware
async def _log_and_map_errors(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    LOGGER.info("%s %s %s", request.remote, request.method, request.rel_url)
    try:
        return await handler(request)
    except RequestValidationError as exc:
        return _error(400, str(exc))
    except UnknownPrinterError as exc:
        return _error(404, str(exc))
    except PrinterCommandError as exc:
        LOGGER.warning("Printer command failed: %s", exc)
        return _error(502, str(exc))
    except asyncio.TimeoutError:
        return _error(504, "printer did not answer in time")
    except aiohttp.ClientError as exc:
        LOGGER.warning("Printer unreachable: %s", exc)
        return _error(502, f"printer unreachable: {exc}")


async def _read_body(request: web.Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RequestValidationError(f"invalid JSON body: {exc}") from exc
    if not isinstance(body, dict):
        raise RequestValidationError("request body must be a JSON object")
    return body


def _require(body: Dict[str, Any], key: str, kind: type) -> Any:
    if key not in body:
        raise RequestValidationError(f"missing field '{key}'")
    value = body[key]
    if kind is int and isinstance(value, bool):
        raise RequestValidationError(f"field '{key}' must be an integer")
    if not isinstance(value, kind):
        raise RequestValidationError(f"field '{key}' must be of type {kind.__name__}")
    return value


class DashboardServer:
    """aiohttp application exposing the dashboard and printer commands."""

    def __init__(
        self,
        dashboard: DashboardState,
        *,
        health: Optional[HealthReporter] = None,
        host: str = "0.0.0.0",
        port: int = 8080,
    ) -> None:
        self._dashboard = dashboard
        self._health = health
        self._host = host
        self._port = port
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[_log_and_map_errors])
        app.router.add_get("/", self._handle_root)
        app.router.add_get("/healthz", self._handle_health)

        routes: Dict[str, tuple[str, Handler]] = {
            "/status": ("GET", self._handle_status),
            "/connect": ("POST", self._handle_connect),
            "/preheat": ("POST", self._handle_preheat),
            "/extrude": ("POST", self._handle_extrude),
            "/job": ("POST", self._handle_job),
            "/movez": ("POST", self._handle_movez),
            "/print_file": ("POST", self._handle_print_file),
        }
        for path, (method, handler) in routes.items():
            app.router.add_route(method, path, handler)
            app.router.add_route(method, f"{path}/", handler)
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app(), access_log=None)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()
        LOGGER.info("Dashboard listening on http://%s:%s/", self._host, self._port)

    async def stop(self) -> None:
        with contextlib.suppress(Exception):
            if self._site is not None:
                await self._site.stop()
        if self._runner is not None:
            await self._runner.cleanup()
        self._site = None
        self._runner = None

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    async def _handle_root(self, request: web.Request) -> web.Response:
        return web.Response(text="Ready to Print!")

    async def _handle_health(self, request: web.Request) -> web.Response:
        if self._health is None:
            return web.json_response({"status": "ok", "components": []})
        snapshot = await self._health.snapshot()
        status = 200 if snapshot["status"] == "ok" else 503
        return web.json_response(snapshot, status=status)

    async def _handle_status(self, request: web.Request) -> web.Response:
        snapshot = await self._dashboard.snapshot()
        return web.json_response(snapshot.as_dict())

    async def _handle_connect(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        client = self._client_for(body)
        await client.connect(_require(body, "port", str))
        return web.json_response(body)

    async def _handle_preheat(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        client = self._client_for(body)
        level = _require(body, "heat_level", int)
        if level not in PREHEAT_LEVELS:
            raise RequestValidationError(
                f"heat_level must be one of {sorted(PREHEAT_LEVELS)}"
            )
        tool, bed = PREHEAT_LEVELS[level]
        await client.preheat(tool, bed)
        return web.json_response(body)

    async def _handle_extrude(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        client = self._client_for(body)
        await client.extrude(EXTRUDE_AMOUNT)
        return web.json_response(body)

    async def _handle_job(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        client = self._client_for(body)
        operation = _require(body, "operation", str)
        if operation == "cancel":
            await client.cancel_job()
            await client.preheat(*PREHEAT_LEVELS[0])
        elif operation == "start":
            await client.start_job()
        else:
            raise RequestValidationError("operation must be 'start' or 'cancel'")
        return web.json_response(body)

    async def _handle_movez(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        client = self._client_for(body)
        await client.move_z(_require(body, "z", int))
        return web.json_response(body)

    async def _handle_print_file(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        client = self._client_for(body)
        filename = _require(body, "file_name", str)
        if not filename.strip():
            raise RequestValidationError("file_name cannot be empty")
        await client.print_file(filename)
        return web.json_response(body)

    def _client_for(self, body: Dict[str, Any]) -> PrinterClient:
        printer = self._dashboard.get_printer(_require(body, "printer_name", str))
        if printer.client is None:
            raise RequestValidationError(
                f"printer {printer.name!r} has no command interface"
            )
        return printer.client
