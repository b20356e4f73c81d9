"""OctoPrint adapter implementing the printer command interface over HTTP."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote

import aiohttp

from ..config import PrinterConfig
from ..core import ConnectionInfo, PrinterClient

LOGGER = logging.getLogger(__name__)


class PrinterCommandError(RuntimeError):
    """Raised when a printer answers a request with an error status."""

    def __init__(self, printer: str, action: str, status: int, detail: str) -> None:
        super().__init__(
            f"{printer}: {action} failed with status {status}: {detail.strip()}"
        )
        self.printer = printer
        self.action = action
        self.status = status


class OctoPrintClient(PrinterClient):
    """Non-blocking client for a single OctoPrint instance."""

    def __init__(
        self,
        config: PrinterConfig,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        request_timeout: float = 10.0,
    ) -> None:
        self.config = config
        self.request_timeout = request_timeout

        self._base_url = self.config.url.rstrip("/")
        self._headers = {}
        if self.config.api_key:
            self._headers["X-Api-Key"] = self.config.api_key

        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

    # ------------------------------------------------------------------
    # Status queries
    # ------------------------------------------------------------------
    async def get_settings(self) -> dict[str, Any]:
        return await self._request("GET", "/api/settings", action="settings")

    async def get_connection_info(self) -> ConnectionInfo:
        payload = await self._request("GET", "/api/connection", action="connection")
        current = payload.get("current") or {}
        options = payload.get("options") or {}
        return ConnectionInfo(
            state=str(current.get("state") or ""),
            selected_port=str(current.get("port") or ""),
            available_ports=tuple(str(port) for port in options.get("ports") or ()),
        )

    async def get_temperature_info(self) -> dict[str, Any]:
        try:
            payload = await self._request(
                "GET",
                "/api/printer",
                params={"exclude": "sd,state"},
                action="temperature",
            )
        except PrinterCommandError as exc:
            # OctoPrint answers 409 while the printer is not operational
            if exc.status == 409:
                return {}
            raise
        return payload.get("temperature") or {}

    async def get_job_info(self) -> dict[str, Any]:
        return await self._request("GET", "/api/job", action="job")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def connect(self, port: str) -> None:
        body: dict[str, Any] = {"command": "connect", "autoconnect": False}
        if port:
            body["port"] = port
        await self._request("POST", "/api/connection", json=body, action="connect")

    async def preheat(self, tool_target: int, bed_target: int) -> None:
        await self._request(
            "POST",
            "/api/printer/tool",
            json={"command": "target", "targets": {"tool0": tool_target}},
            action="preheat tool",
        )
        await self._request(
            "POST",
            "/api/printer/bed",
            json={"command": "target", "target": bed_target},
            action="preheat bed",
        )

    async def extrude(self, amount: int) -> None:
        await self._request(
            "POST",
            "/api/printer/tool",
            json={"command": "extrude", "amount": amount},
            action="extrude",
        )

    async def start_job(self) -> None:
        await self._request(
            "POST", "/api/job", json={"command": "start"}, action="start job"
        )

    async def cancel_job(self) -> None:
        await self._request(
            "POST", "/api/job", json={"command": "cancel"}, action="cancel job"
        )

    async def move_z(self, distance: int) -> None:
        await self._request(
            "POST",
            "/api/printer/printhead",
            json={"command": "jog", "z": distance},
            action="move z",
        )

    async def print_file(self, filename: str) -> None:
        if not filename or not filename.strip():
            raise ValueError("Filename cannot be empty")

        await self._request(
            "POST",
            f"/api/files/local/{quote(filename.strip())}",
            json={"command": "select", "print": True},
            action="print file",
        )

    async def aclose(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=None)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        session = await self._ensure_session()
        url = f"{self._base_url}{path}"

        try:
            async with asyncio.timeout(self.request_timeout):
                async with session.request(
                    method, url, json=json, params=params, headers=self._headers
                ) as response:
                    if response.status >= 400:
                        detail = await response.text()
                        raise PrinterCommandError(
                            self.config.name, action, response.status, detail
                        )
                    if response.status == 204:
                        return {}
                    data = await response.json(content_type=None)
                    return data or {}
        except asyncio.TimeoutError:
            LOGGER.warning(
                "%s: %s timed out after %.1fs (url=%s)",
                self.config.name,
                action,
                self.request_timeout,
                url,
            )
            raise
