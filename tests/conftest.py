"""Shared fixtures for the gcode_toolkit test suite."""

from __future__ import annotations

import logging
from typing import Iterator

import pytest

from gcode_toolkit.configs.loader import PrinterProfile, load_printer_profiles
from gcode_toolkit.utils import logging_config


# ---------------------------------------------------------------------------
# Sample streams
# ---------------------------------------------------------------------------

# Five layers (Z 0.2 .. 1.0), one square perimeter, 10x10 mm footprint at
# (10, 10).  Line indices:
#   4 -> layer 1, 6 -> layer 2, 8 -> layer 3, 10 -> layer 4, 12 -> layer 5
SAMPLE_LINES = [
    "; generated for tests",
    "M140 S60",
    "M104 S210 ; set nozzle",
    "M106 S200",
    "G1 Z0.2 F600",
    "G1 X10 Y10 E1 F1200",
    "G1 Z0.4",
    "G1 X20 Y10 E2 F1005",
    "G1 Z0.6",
    "G1 X20 Y20 E3",
    "G1 Z0.8",
    "G1 X10 Y20 E4",
    "G1 Z1.0",
    "G1 X10 Y10 E5",
]


@pytest.fixture()
def sample_lines() -> list[str]:
    return list(SAMPLE_LINES)


@pytest.fixture()
def sample_text() -> str:
    return "\n".join(SAMPLE_LINES)


@pytest.fixture()
def profiles() -> dict[str, PrinterProfile]:
    """Profiles shipped with the package."""
    return load_printer_profiles()


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Undo any ``setup_logging`` call made by a test."""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    for handler in logging_config._installed_handlers:
        root.removeHandler(handler)
        handler.close()
    logging_config._installed_handlers.clear()
    logging_config.pop_context()
    logging.captureWarnings(False)
