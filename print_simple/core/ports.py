"""Port registry and the reconciliation of printer port reports.

Each printer reports the ports visible on its host and the port it is
currently connected to. Reconciliation folds those reports into a single
registry keyed by ``(port name, host key)`` so callers can see which ports
are free. Entries are never removed; a port that disappears keeps its last
availability until a later cycle changes it.
"""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Optional

from .models import Port, PrinterHandle


class PortRegistry:
    """Insertion-ordered set of ports, unique by ``(name, host_key)``."""

    def __init__(self) -> None:
        self._entries: Dict[tuple[str, str], Port] = {}

    def __iter__(self) -> Iterator[Port]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, name: str, host_key: str) -> Optional[Port]:
        return self._entries.get((name, host_key))

    def ensure(self, name: str, host_key: str) -> Port:
        """Return the entry for the pair, inserting an available one if absent."""

        port = self._entries.get((name, host_key))
        if port is None:
            port = Port(name=name, host_key=host_key, available=True)
            self._entries[port.key] = port
        return port


def reconcile_ports(registry: PortRegistry, printer: PrinterHandle) -> None:
    """Merge one printer's reported ports into the registry."""

    for name in printer.available_ports:
        port = registry.ensure(name, printer.host_key)
        if port.name == printer.selected_port:
            port.available = False


def refresh_availability(
    registry: PortRegistry, printers: Iterable[PrinterHandle]
) -> None:
    """Recompute availability of every entry from the printers' selections."""

    claimed = {
        (printer.selected_port, printer.host_key)
        for printer in printers
        if printer.selected_port
    }
    for port in registry:
        port.available = port.key not in claimed
