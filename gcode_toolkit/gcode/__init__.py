"""
G-code engine module.

Parses G-code into print metrics with diagnostics, and applies mutation
directives to a stream.  Pure: no file I/O apart from loading the shipped
printer profiles when ``mutate`` is not given one.
"""

from gcode_toolkit.gcode.diagnostics import evaluate
from gcode_toolkit.gcode.eject import build_eject_sequence
from gcode_toolkit.gcode.layers import find_layer_start_lines
from gcode_toolkit.gcode.metrics import (
    BoundingBox,
    Diagnostic,
    ToolpathMetrics,
    extract_metrics,
)
from gcode_toolkit.gcode.parser import format_time, parse
from gcode_toolkit.gcode.postprocessor import (
    apply_layer_insertions,
    apply_line_insertions,
    apply_rewrites,
    mutate,
)
from gcode_toolkit.gcode.tokenizer import GCodeLine, tokenize_line

__all__ = [
    "BoundingBox",
    "Diagnostic",
    "GCodeLine",
    "ToolpathMetrics",
    "apply_layer_insertions",
    "apply_line_insertions",
    "apply_rewrites",
    "build_eject_sequence",
    "evaluate",
    "extract_metrics",
    "find_layer_start_lines",
    "format_time",
    "mutate",
    "parse",
    "tokenize_line",
]
