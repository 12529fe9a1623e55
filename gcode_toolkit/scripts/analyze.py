#!/usr/bin/env python3
"""
Analyze G-code Script.

Print layer, time, filament, footprint and motion statistics for a
G-code file, followed by any diagnostics.

Usage:
    gcode-analyze part.gcode
    gcode-analyze part.gcode --json
    gcode-analyze part.gcode --yaml-out part_metrics.yaml
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from gcode_toolkit.gcode import format_time, parse
from gcode_toolkit.gcode.metrics import ToolpathMetrics
from gcode_toolkit.utils import fs
from gcode_toolkit.utils.logging_config import push_context, setup_logging

logger = logging.getLogger(__name__)

_LEVEL_TAGS = {"error": "ERROR", "warning": "WARN ", "info": "INFO "}


def format_summary(name: str, m: ToolpathMetrics) -> str:
    """Human-readable report for one file."""
    bb = m.bounding_box
    lines = [
        f"File:             {name}",
        f"Layers:           {m.layer_count} "
        f"(height {m.layer_height:g} mm, first {m.first_layer_height:g} mm)",
        f"Estimated time:   {format_time(m.estimated_time_minutes)}",
        f"Filament:         {m.filament_length_mm / 1000.0:.2f} m "
        f"({m.filament_weight_grams:.1f} g)",
        f"Dimensions:       {bb.width:.1f} x {bb.depth:.1f} x {bb.height:.1f} mm",
        f"Temperatures:     nozzle {m.nozzle_temp_max:g} C, bed {m.bed_temp_max:g} C",
        f"Max speed:        {m.max_speed_mm_per_sec:g} mm/s",
        f"Moves:            {m.print_move_count} print, {m.travel_move_count} travel "
        f"({m.travel_distance:.1f} mm)",
        f"Retractions:      {m.retraction_count} ({m.retraction_distance:.1f} mm)",
    ]
    if m.warnings:
        lines.append("Diagnostics:")
        lines.extend(f"  [{_LEVEL_TAGS[d.level]}] {d.message}" for d in m.warnings)
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Analyze a G-code file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("file", type=str, help="G-code file to analyze")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print metrics as JSON instead of the text summary",
    )
    parser.add_argument(
        "--yaml-out",
        type=str,
        help="Also write metrics to this YAML file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also log to this file",
    )

    args = parser.parse_args(argv)

    path = Path(args.file)

    try:
        setup_logging(args.log_level, args.log_file, context={"tool": "analyze"})
        push_context(file=path.name)
        text = fs.read_gcode(path)
        metrics = parse(text)
        if args.yaml_out:
            fs.atomic_yaml_dump(metrics.to_dict(), args.yaml_out)
            logger.info("Metrics written to %s", args.yaml_out)
    except (OSError, ValueError, RuntimeError, yaml.YAMLError) as e:
        logger.error("Analysis failed: %s", e)
        sys.exit(1)

    if args.json:
        print(json.dumps(metrics.to_dict(), indent=2))
    else:
        print(format_summary(path.name, metrics))


if __name__ == "__main__":
    main()
