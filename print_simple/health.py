"""Health of the long-running print-simple actors, served on ``/healthz``."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


@dataclass(slots=True)
class ComponentStatus:
    name: str
    healthy: bool
    detail: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "healthy": self.healthy,
            "detail": self.detail,
            "updated_at": _timestamp(self.updated_at),
        }


class HealthReporter:
    """Latest status per component plus the service lifecycle state.

    The poller reports as ``status-poller`` after every cycle and the file
    watcher as ``file-watcher`` whenever its watches change. The overall
    status is ``ok`` only while every component and the service itself are
    healthy.
    """

    def __init__(self) -> None:
        self._components: Dict[str, ComponentStatus] = {}
        self._service: Optional[ComponentStatus] = None
        self._lock = asyncio.Lock()

    async def update(
        self, name: str, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._components[name] = ComponentStatus(name, healthy, detail)

    async def set_service_state(
        self, state: str, *, healthy: bool, detail: Optional[str] = None
    ) -> None:
        async with self._lock:
            self._service = ComponentStatus("service", healthy, detail or state)

    async def snapshot(self) -> Dict[str, object]:
        async with self._lock:
            components = list(self._components.values())
            service = self._service

        unhealthy: List[str] = [item.name for item in components if not item.healthy]
        if service is not None and not service.healthy:
            unhealthy.insert(0, service.name)

        payload: Dict[str, object] = {
            "status": "degraded" if unhealthy else "ok",
            "unhealthy": unhealthy,
            "components": [item.as_dict() for item in components],
        }
        if service is not None:
            payload["service"] = {
                "state": service.detail,
                "healthy": service.healthy,
                "updated_at": _timestamp(service.updated_at),
            }
        return payload
