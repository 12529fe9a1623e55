"""Diagnostics engine -- rule table evaluated over extracted metrics.

Each rule is a predicate plus a message builder.  Rules are independent
and evaluated in table order, so the output order is stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from gcode_toolkit.gcode.metrics import Diagnostic, DiagnosticLevel, ToolpathMetrics

THIN_DIMENSION_MM = 0.4
MAX_RETRACTIONS = 5000
LONG_PRINT_MINUTES = 600
FINE_LAYER_MM = 0.15
HIGH_NOZZLE_TEMP_C = 260
MIN_PRINT_MOVES_FOR_BED = 100


@dataclass(frozen=True, slots=True)
class Rule:
    """One diagnostic rule."""

    name: str
    level: DiagnosticLevel
    applies: Callable[[ToolpathMetrics], bool]
    message: Callable[[ToolpathMetrics], str]


def _thin(m: ToolpathMetrics) -> bool:
    bb = m.bounding_box
    return bb.width < THIN_DIMENSION_MM or bb.depth < THIN_DIMENSION_MM


RULES: tuple[Rule, ...] = (
    Rule(
        name="thin_dimensions",
        level="warning",
        applies=_thin,
        message=lambda m: (
            "Very thin dimensions detected: may be too thin to print reliably."
        ),
    ),
    Rule(
        name="high_retraction_count",
        level="warning",
        applies=lambda m: m.retraction_count > MAX_RETRACTIONS,
        message=lambda m: (
            f"High retraction count ({m.retraction_count}): increased clogging risk."
        ),
    ),
    Rule(
        name="long_fine_print",
        level="info",
        applies=lambda m: (
            m.estimated_time_minutes > LONG_PRINT_MINUTES
            and 0 < m.layer_height <= FINE_LAYER_MM
        ),
        message=lambda m: (
            "Long print with fine layers. Consider thicker layers to save time."
        ),
    ),
    Rule(
        name="high_nozzle_temp",
        level="warning",
        applies=lambda m: m.nozzle_temp_max > HIGH_NOZZLE_TEMP_C,
        message=lambda m: (
            f"High nozzle temperature ({m.nozzle_temp_max:g}°C): "
            "ensure all-metal hotend."
        ),
    ),
    Rule(
        name="no_heated_bed",
        level="error",
        applies=lambda m: (
            m.bed_temp_max == 0 and m.print_move_count > MIN_PRINT_MOVES_FOR_BED
        ),
        message=lambda m: (
            "No heated bed commands detected: adhesion issues likely."
        ),
    ),
)


def evaluate(metrics: ToolpathMetrics) -> list[Diagnostic]:
    """Return the diagnostics that apply to *metrics*, in rule order."""
    return [
        Diagnostic(level=rule.level, message=rule.message(metrics))
        for rule in RULES
        if rule.applies(metrics)
    ]
