"""Parse entry point: metrics extraction plus diagnostics."""

from __future__ import annotations

import dataclasses
import logging

from gcode_toolkit.gcode.diagnostics import evaluate
from gcode_toolkit.gcode.metrics import ToolpathMetrics, extract_metrics

logger = logging.getLogger(__name__)


def parse(text: str) -> ToolpathMetrics:
    """Extract metrics from *text* and attach diagnostics.

    Always returns; malformed content only yields zero-valued fields.
    """
    metrics = extract_metrics(text)
    diagnostics = evaluate(metrics)
    logger.info(
        "Parsed G-code: %d layers, %d min, %.1f g, %d diagnostics",
        metrics.layer_count,
        metrics.estimated_time_minutes,
        metrics.filament_weight_grams,
        len(diagnostics),
    )
    return dataclasses.replace(metrics, warnings=tuple(diagnostics))


def format_time(minutes: int) -> str:
    """Render a duration as ``"2h 5m"`` or ``"45m"``."""
    hours, mins = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"
