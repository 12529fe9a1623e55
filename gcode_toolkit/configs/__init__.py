"""Printer profile loading and validation."""

from gcode_toolkit.configs.loader import (
    BuildVolume,
    ConfigError,
    PresentMotion,
    PrinterProfile,
    get_profile,
    load_printer_profiles,
)

__all__ = [
    "BuildVolume",
    "ConfigError",
    "PresentMotion",
    "PrinterProfile",
    "get_profile",
    "load_printer_profiles",
]
