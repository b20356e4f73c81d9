"""Domain models for printer status and the dashboard."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

if TYPE_CHECKING:
    from .protocols import PrinterClient


class ConnectionState(str, Enum):
    DISCONNECTED = "Disconnected"
    CONNECTING = "Connecting"
    CONNECTED = "Connected"
    PRINTING = "Printing"
    ERROR = "Error"

    @classmethod
    def from_octoprint(cls, state_text: Optional[str]) -> "ConnectionState":
        """Map an OctoPrint connection state string onto a ConnectionState."""

        text = (state_text or "").strip()
        lowered = text.lower()
        if not lowered or lowered in {"closed", "offline"}:
            return cls.DISCONNECTED
        if lowered.startswith("error") or lowered.startswith("offline after error"):
            return cls.ERROR
        if lowered.startswith("printing"):
            return cls.PRINTING
        if lowered.startswith(("opening", "detecting", "connecting")):
            return cls.CONNECTING
        return cls.CONNECTED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class ConnectionInfo:
    """Connection details as reported by a printer."""

    state: str
    selected_port: str = ""
    available_ports: tuple[str, ...] = ()


@dataclass(slots=True)
class Port:
    """A communication port seen on a host, identified by (name, host_key)."""

    name: str
    host_key: str
    available: bool = True

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.host_key)

    def snapshot(self) -> "PortSnapshot":
        return PortSnapshot(self.name, self.host_key, self.available)


@dataclass
class PrinterHandle:
    """In-memory representation of one managed printer.

    Status fields are written by the status poller, ``file_catalog`` by the
    file watch coordinator. Both write only while holding the dashboard lock.
    """

    name: str
    host_key: str
    gcode_directory: Path
    client: Optional["PrinterClient"] = None
    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    state_text: str = ""
    selected_port: str = ""
    available_ports: List[str] = field(default_factory=list)
    file_catalog: Set[str] = field(default_factory=set)
    settings: Dict[str, Any] = field(default_factory=dict)
    temperature: Dict[str, Any] = field(default_factory=dict)
    job: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    updated_at: Optional[datetime] = None

    def apply_status(
        self,
        connection: ConnectionInfo,
        settings: Dict[str, Any],
        temperature: Dict[str, Any],
    ) -> None:
        self.state_text = connection.state
        self.connection_state = ConnectionState.from_octoprint(connection.state)
        self.selected_port = connection.selected_port or ""
        self.available_ports = list(connection.available_ports)
        self.settings = settings
        self.temperature = temperature
        self.error = None
        self.updated_at = _utcnow()

    def record_failure(self, detail: str) -> None:
        """Mark the printer as failed, keeping its last known ports."""

        self.connection_state = ConnectionState.ERROR
        self.error = detail
        self.updated_at = _utcnow()

    def snapshot(self) -> "PrinterSnapshot":
        return PrinterSnapshot(
            name=self.name,
            host_key=self.host_key,
            connection_state=self.connection_state,
            state_text=self.state_text,
            selected_port=self.selected_port,
            available_ports=tuple(self.available_ports),
            gcode_directory=str(self.gcode_directory),
            file_catalog=tuple(sorted(self.file_catalog)),
            settings=copy.deepcopy(self.settings),
            temperature=copy.deepcopy(self.temperature),
            job=copy.deepcopy(self.job),
            error=self.error,
            updated_at=self.updated_at,
        )


@dataclass(slots=True, frozen=True)
class PrinterSnapshot:
    name: str
    host_key: str
    connection_state: ConnectionState
    state_text: str
    selected_port: str
    available_ports: tuple[str, ...]
    gcode_directory: str
    file_catalog: tuple[str, ...]
    settings: Dict[str, Any]
    temperature: Dict[str, Any]
    job: Dict[str, Any]
    error: Optional[str]
    updated_at: Optional[datetime]

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "host": self.host_key,
            "connection": {
                "state": self.connection_state.value,
                "state_text": self.state_text,
                "port": self.selected_port,
                "available_ports": list(self.available_ports),
            },
            "gcode_dir": self.gcode_directory,
            "files": list(self.file_catalog),
            "settings": self.settings,
            "temperature": self.temperature,
            "job": self.job,
            "error": self.error,
            "updated_at": (
                self.updated_at.isoformat(timespec="seconds")
                if self.updated_at
                else None
            ),
        }


@dataclass(slots=True, frozen=True)
class PortSnapshot:
    name: str
    host_key: str
    available: bool

    def as_dict(self) -> Dict[str, object]:
        return {"available": self.available, "name": self.name, "host": self.host_key}


@dataclass(slots=True, frozen=True)
class DashboardSnapshot:
    """Read-only copy of the dashboard taken under the dashboard lock."""

    printers: tuple[PrinterSnapshot, ...]
    ports: tuple[PortSnapshot, ...]

    def as_dict(self) -> Dict[str, object]:
        return {
            "printers": [printer.as_dict() for printer in self.printers],
            "ports": [port.as_dict() for port in self.ports],
        }
