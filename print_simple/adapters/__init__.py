"""Adapter modules for external integrations."""

from .octoprint import OctoPrintClient, PrinterCommandError

__all__ = [
    "OctoPrintClient",
    "PrinterCommandError",
]
