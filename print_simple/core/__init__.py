"""Core primitives for print-simple."""

from .models import (
    ConnectionInfo,
    ConnectionState,
    DashboardSnapshot,
    Port,
    PortSnapshot,
    PrinterHandle,
    PrinterSnapshot,
)
from .ports import PortRegistry, reconcile_ports, refresh_availability
from .protocols import PrinterClient

__all__ = [
    "ConnectionInfo",
    "ConnectionState",
    "DashboardSnapshot",
    "Port",
    "PortRegistry",
    "PortSnapshot",
    "PrinterClient",
    "PrinterHandle",
    "PrinterSnapshot",
    "reconcile_ports",
    "refresh_availability",
]
