"""Metrics extractor -- single forward pass over a G-code stream.

Tracks a private motion register (position, extrusion accumulator,
extrusion and positioning modes) and accumulates:

    - Layer statistics from distinct positive Z heights
    - Bounding box of XY moves
    - Move classification (print / retraction / travel) from the signed
      extrusion delta of every XY move
    - Peak nozzle and bed temperatures, peak feed rate
    - Slicer metadata (print time, filament length) from header comments

Move classification needs no slicer-specific ``;TYPE:`` markers: a move
that adds filament prints, one that pulls filament back retracts, and
one that leaves the accumulator untouched travels.

Usage::

    from gcode_toolkit.gcode.metrics import extract_metrics
    metrics = extract_metrics(text)
    print(metrics.layer_count, metrics.bounding_box.width)

Diagnostics are attached separately (see ``gcode_toolkit.gcode.parser``).
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Literal

from gcode_toolkit.gcode.numbers import round_half_up
from gcode_toolkit.gcode.tokenizer import (
    BED_TEMP_CODES,
    NOZZLE_TEMP_CODES,
    GCodeLine,
    tokenize_line,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HEIGHT_DECIMALS = 3
LAYER_HEIGHT_SAMPLE = 20       # heights considered for the layer-height mode
FILAMENT_DIAMETER_MM = 1.75
FILAMENT_DENSITY_G_CM3 = 1.24  # PLA

_CURA_TIME_RE = re.compile(r"^;TIME:\s*(\d+)")
_PRUSA_TIME_RE = re.compile(
    r"^;\s*estimated printing time(?:\s*\(normal mode\))?\s*=\s*(.+)$",
    re.IGNORECASE,
)
_DURATION_PART_RE = re.compile(r"(\d+)\s*([dhms])", re.IGNORECASE)
_CURA_FILAMENT_RE = re.compile(r"^;\s*Filament used:\s*([\d.]+)\s*m\b", re.IGNORECASE)
_PRUSA_FILAMENT_RE = re.compile(
    r"^;\s*filament used \[(mm|m)\]\s*=\s*([\d.,\s]+)$", re.IGNORECASE
)

_SECONDS_PER_UNIT = {"d": 86400, "h": 3600, "m": 60, "s": 1}

DiagnosticLevel = Literal["error", "warning", "info"]


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One severity-tagged finding about the content of a stream."""

    level: DiagnosticLevel
    message: str

    def __post_init__(self) -> None:
        if self.level not in ("error", "warning", "info"):
            raise ValueError(
                f"level must be 'error', 'warning' or 'info', got {self.level!r}"
            )


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """XY extent of the moves that carried an explicit X or Y, plus max Z."""

    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0
    max_z: float = 0.0

    @property
    def width(self) -> float:
        """X extent in mm, rounded to 0.1."""
        return round(self.max_x - self.min_x, 1)

    @property
    def depth(self) -> float:
        """Y extent in mm, rounded to 0.1."""
        return round(self.max_y - self.min_y, 1)

    @property
    def height(self) -> float:
        """Z extent in mm, rounded to 0.1."""
        return round(self.max_z, 1)


@dataclass(frozen=True, slots=True)
class ToolpathMetrics:
    """Everything the extractor learned from one stream.  Immutable.

    ``first_layer_height`` is the lowest Z whenever any height was seen,
    even a single one; only ``layer_height`` needs two heights and stays 0
    below that.  Older tooling reported 0 for both on single-height
    streams, which sent the push-off to its fallback height.
    """

    layer_count: int = 0
    layer_height: float = 0.0
    first_layer_height: float = 0.0
    estimated_time_minutes: int = 0
    filament_length_mm: float = 0.0
    filament_weight_grams: float = 0.0
    bounding_box: BoundingBox = field(default_factory=BoundingBox)
    nozzle_temp_max: float = 0.0
    bed_temp_max: float = 0.0
    max_speed_mm_per_sec: float = 0.0
    retraction_count: int = 0
    retraction_distance: float = 0.0
    travel_distance: float = 0.0
    print_move_count: int = 0
    travel_move_count: int = 0
    warnings: tuple[Diagnostic, ...] = ()

    @property
    def xy_move_count(self) -> int:
        """Moves that carried an explicit X or Y, of any kind."""
        return self.print_move_count + self.travel_move_count + self.retraction_count

    def to_dict(self) -> dict[str, Any]:
        """Plain ``dict`` form for JSON / YAML output."""
        bb = self.bounding_box
        return {
            "layer_count": self.layer_count,
            "layer_height": self.layer_height,
            "first_layer_height": self.first_layer_height,
            "estimated_time_minutes": self.estimated_time_minutes,
            "filament_length_mm": self.filament_length_mm,
            "filament_weight_grams": self.filament_weight_grams,
            "bounding_box": {
                "min_x": bb.min_x,
                "min_y": bb.min_y,
                "max_x": bb.max_x,
                "max_y": bb.max_y,
                "max_z": bb.max_z,
            },
            "dimensions": {"x": bb.width, "y": bb.depth, "z": bb.height},
            "nozzle_temp_max": self.nozzle_temp_max,
            "bed_temp_max": self.bed_temp_max,
            "max_speed_mm_per_sec": self.max_speed_mm_per_sec,
            "retraction_count": self.retraction_count,
            "retraction_distance": self.retraction_distance,
            "travel_distance": self.travel_distance,
            "print_move_count": self.print_move_count,
            "travel_move_count": self.travel_move_count,
            "warnings": [
                {"level": w.level, "message": w.message} for w in self.warnings
            ],
        }


# ---------------------------------------------------------------------------
# Motion register
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class MotionRegister:
    """Mutable machine state for one extraction pass.  Never shared."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    e: float = 0.0
    absolute_e: bool = True      # M82 / M83
    absolute_xyz: bool = True    # G90 / G91
    feed: float | None = None


# ---------------------------------------------------------------------------
# Metadata comments
# ---------------------------------------------------------------------------


def _parse_duration_seconds(text: str) -> int | None:
    """``"1d 2h 3m 4s"`` -> seconds, or ``None`` if nothing matched."""
    parts = _DURATION_PART_RE.findall(text)
    if not parts:
        return None
    return sum(int(n) * _SECONDS_PER_UNIT[unit.lower()] for n, unit in parts)


def _parse_filament_values(text: str) -> float:
    """Sum comma-separated per-extruder values."""
    total = 0.0
    for chunk in text.split(","):
        chunk = chunk.strip()
        if chunk:
            try:
                total += float(chunk)
            except ValueError:
                continue
    return total


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class MetricsExtractor:
    """Forward-only metrics accumulator.

    Feed lines in order with :meth:`execute_line`, then call
    :meth:`result`.  One instance per stream; :func:`extract_metrics`
    is the usual entry point.
    """

    def __init__(self) -> None:
        self.reg = MotionRegister()
        self._heights: set[float] = set()
        self._max_speed = 0.0
        self._min_x = math.inf
        self._min_y = math.inf
        self._max_x = 0.0
        self._max_y = 0.0
        self._max_z = 0.0
        self._time_minutes = 0
        self._filament_mm = 0.0
        self._nozzle_max = 0.0
        self._bed_max = 0.0
        self._retractions = 0
        self._retraction_distance = 0.0
        self._travel_distance = 0.0
        self._print_moves = 0
        self._travel_moves = 0
        self.line_count = 0

    # ------------------------------------------------------------------
    # Line dispatch
    # ------------------------------------------------------------------

    def execute_line(self, raw: str) -> None:
        self.line_count += 1
        stripped = raw.strip()
        if not stripped:
            return
        if stripped.startswith(";"):
            self._scan_metadata(stripped)
            return

        cmd = tokenize_line(stripped)
        if cmd is None:
            return

        if cmd.is_motion:
            self._move(cmd)
        elif cmd.code == "M82":
            self.reg.absolute_e = True
        elif cmd.code == "M83":
            self.reg.absolute_e = False
        elif cmd.code == "G90":
            self.reg.absolute_xyz = True
        elif cmd.code == "G91":
            self.reg.absolute_xyz = False
        elif cmd.code == "G92":
            self._set_position(cmd)
        elif cmd.code in NOZZLE_TEMP_CODES:
            s = cmd.get("S")
            if s:
                self._nozzle_max = max(self._nozzle_max, s)
        elif cmd.code in BED_TEMP_CODES:
            s = cmd.get("S")
            if s:
                self._bed_max = max(self._bed_max, s)

    def _scan_metadata(self, comment: str) -> None:
        match = _CURA_TIME_RE.match(comment)
        if match:
            self._time_minutes = round_half_up(int(match.group(1)) / 60)
            return

        match = _PRUSA_TIME_RE.match(comment)
        if match:
            seconds = _parse_duration_seconds(match.group(1))
            if seconds is not None:
                self._time_minutes = round_half_up(seconds / 60)
            return

        match = _CURA_FILAMENT_RE.match(comment)
        if match:
            try:
                self._filament_mm = float(match.group(1)) * 1000.0
            except ValueError:
                logger.debug("Unreadable filament comment: %s", comment)
            return

        match = _PRUSA_FILAMENT_RE.match(comment)
        if match:
            value = _parse_filament_values(match.group(2))
            self._filament_mm = value * (1000.0 if match.group(1).lower() == "m" else 1.0)

    # ------------------------------------------------------------------
    # Motion
    # ------------------------------------------------------------------

    def _target(self, current: float, value: float | None) -> float:
        if value is None:
            return current
        return value if self.reg.absolute_xyz else current + value

    def _move(self, cmd: GCodeLine) -> None:
        reg = self.reg
        x = self._target(reg.x, cmd.get("X"))
        y = self._target(reg.y, cmd.get("Y"))
        z = self._target(reg.z, cmd.get("Z"))

        if "E" in cmd.params:
            e = cmd.params["E"]
        else:
            e = reg.e if reg.absolute_e else 0.0

        feed = cmd.get("F")
        if feed:
            reg.feed = feed
            self._max_speed = max(self._max_speed, feed / 60.0)

        if z != reg.z:
            if z > 0:
                self._heights.add(round(z, HEIGHT_DECIMALS))
            self._max_z = max(self._max_z, z)

        if "X" in cmd.params or "Y" in cmd.params:
            self._max_x = max(self._max_x, x)
            self._max_y = max(self._max_y, y)
            self._min_x = min(self._min_x, x)
            self._min_y = min(self._min_y, y)

            dist = math.hypot(x - reg.x, y - reg.y)
            delta = e - reg.e if reg.absolute_e else e

            if delta > 0:
                self._print_moves += 1
            elif delta < 0:
                self._retractions += 1
                self._retraction_distance += abs(delta)
            else:
                self._travel_moves += 1
                self._travel_distance += dist

        reg.x, reg.y, reg.z = x, y, z
        if reg.absolute_e:
            reg.e = e
        else:
            reg.e += e

    def _set_position(self, cmd: GCodeLine) -> None:
        reg = self.reg
        if "E" in cmd.params:
            reg.e = cmd.params["E"]
        if "X" in cmd.params:
            reg.x = cmd.params["X"]
        if "Y" in cmd.params:
            reg.y = cmd.params["Y"]
        if "Z" in cmd.params:
            reg.z = cmd.params["Z"]

    # ------------------------------------------------------------------
    # Finalisation
    # ------------------------------------------------------------------

    def _layer_stats(self) -> tuple[int, float, float]:
        heights = sorted(self._heights)
        if not heights:
            return 0, 0.0, 0.0

        layer_height = 0.0
        if len(heights) >= 2:
            window = heights[:LAYER_HEIGHT_SAMPLE]
            deltas = [
                round(b - a, HEIGHT_DECIMALS) for a, b in zip(window, window[1:])
            ]
            # Counter keeps insertion order, so ties go to the first-seen delta
            layer_height = Counter(deltas).most_common(1)[0][0]

        return len(heights), layer_height, heights[0]

    def result(self) -> ToolpathMetrics:
        """Build the immutable metrics record (without diagnostics)."""
        layer_count, layer_height, first_layer_height = self._layer_stats()

        weight = 0.0
        if self._filament_mm > 0:
            r = FILAMENT_DIAMETER_MM / 2.0
            volume_mm3 = math.pi * r * r * self._filament_mm
            weight = round(volume_mm3 * FILAMENT_DENSITY_G_CM3 / 1000.0, 1)

        bbox = BoundingBox(
            min_x=0.0 if math.isinf(self._min_x) else self._min_x,
            min_y=0.0 if math.isinf(self._min_y) else self._min_y,
            max_x=self._max_x,
            max_y=self._max_y,
            max_z=self._max_z,
        )

        return ToolpathMetrics(
            layer_count=layer_count,
            layer_height=layer_height,
            first_layer_height=first_layer_height,
            estimated_time_minutes=self._time_minutes,
            filament_length_mm=self._filament_mm,
            filament_weight_grams=weight,
            bounding_box=bbox,
            nozzle_temp_max=self._nozzle_max,
            bed_temp_max=self._bed_max,
            max_speed_mm_per_sec=float(round_half_up(self._max_speed)),
            retraction_count=self._retractions,
            retraction_distance=self._retraction_distance,
            travel_distance=self._travel_distance,
            print_move_count=self._print_moves,
            travel_move_count=self._travel_moves,
        )


def extract_metrics(text: str) -> ToolpathMetrics:
    """Run one extraction pass over *text*.

    Never raises on malformed content; unknown commands and unparsable
    tokens are skipped.
    """
    extractor = MetricsExtractor()
    for line in text.split("\n"):
        extractor.execute_line(line)

    metrics = extractor.result()
    logger.debug(
        "Extracted metrics from %d lines: %d layers, %d print / %d travel / %d retract moves",
        extractor.line_count,
        metrics.layer_count,
        metrics.print_move_count,
        metrics.travel_move_count,
        metrics.retraction_count,
    )
    return metrics
