"""Layer locator -- map layer numbers to the line where each layer starts.

Two strategies run on every line:

1. Slicer layer comments (``;LAYER:12``, ``; layer 12``, ``;LAYER_12``).
2. Z-increase fallback: every ``G0``/``G1`` whose ``Z`` exceeds the last
   accepted Z starts a new layer, counted from 1.

A layer number that is already mapped keeps its first line, whichever
strategy mapped it.  Comment numbering is taken as-is (Cura counts from 0,
others from 1); the fallback counter starts at 1.
"""

from __future__ import annotations

import re
from typing import Iterable

from gcode_toolkit.gcode.tokenizer import tokenize_line

_LAYER_COMMENT_RE = re.compile(r"^;\s*layer[:\s_]+(\d+)", re.IGNORECASE)


def find_layer_start_lines(lines: Iterable[str]) -> dict[int, int]:
    """Build the layer -> zero-based line index map for *lines*.

    Z-hops are not distinguished from layer changes: a lift above the
    current layer counts as a new layer.
    """
    layer_map: dict[int, int] = {}
    last_z = -1.0
    counter = 0

    for idx, raw in enumerate(lines):
        stripped = raw.strip()

        match = _LAYER_COMMENT_RE.match(stripped)
        if match:
            layer_map.setdefault(int(match.group(1)), idx)

        cmd = tokenize_line(stripped)
        if cmd is None or not cmd.is_motion:
            continue
        z = cmd.get("Z")
        if z is not None and z > last_z:
            last_z = z
            counter += 1
            layer_map.setdefault(counter, idx)

    return layer_map
