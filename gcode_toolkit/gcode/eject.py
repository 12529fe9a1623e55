"""Sequence synthesizer -- end-of-print auto-eject G-code.

Blocks, in fixed order, each emitted only when configured:

1. Cool & release: heaters off, retract, lift, present the bed, wait for
   the bed to cool so the part lets go.
2. Bed shake: rapid +/- Y oscillation around the bed centre.
3. Push-off: lower the nozzle beside the part and sweep it off along +X.
4. Cleanup: fan and steppers off (and heaters, if step 1 did not run).

Printer geometry comes from :class:`~gcode_toolkit.configs.loader.PrinterProfile`.
When metrics from the stream are available, the push-off approaches the
part's actual footprint; otherwise it uses a fixed start position.
"""

from __future__ import annotations

import logging

from gcode_toolkit.configs.loader import PrinterProfile
from gcode_toolkit.directives.operations import BedShake, CoolRelease, EjectConfig, PushOff
from gcode_toolkit.gcode.metrics import ToolpathMetrics
from gcode_toolkit.gcode.numbers import format_number as _n

logger = logging.getLogger(__name__)

HEADER = "; ========== AUTO-EJECT SEQUENCE =========="
FOOTER = "; ========== END AUTO-EJECT SEQUENCE =========="

MIN_PUSH_HEIGHT_MM = 0.3
DEFAULT_FIRST_LAYER_MM = 0.2
APPROACH_CLEARANCE_MM = 10.0
FALLBACK_START_X_MM = 10.0


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


def _present_line(profile: PrinterProfile) -> str:
    present = profile.present
    if present.mode == "home_x":
        return "G28 X ; Home X axis"
    return f"G1 X{_n(present.x)} Y{_n(present.y)} F{_n(present.feed)} ; Move to front"


def _cool_block(cool: CoolRelease, profile: PrinterProfile) -> list[str]:
    t = _n(cool.target_temp)
    w = _n(cool.wait_seconds)
    return [
        "; --- Cool & Release ---",
        "M104 S0 ; Turn off nozzle heater",
        f"M140 S{t} ; Set bed to target cool temperature",
        "G91 ; Relative positioning",
        "G1 E-2 F1800 ; Retract filament",
        "G1 Z10 F3000 ; Lift nozzle away from print",
        "G90 ; Absolute positioning",
        _present_line(profile),
        f"M190 S{t} ; Wait for bed to cool to {t}C",
        f"G4 S{w} ; Wait {w} seconds for part release",
        "M140 S0 ; Turn off bed completely",
    ]


def _shake_block(shake: BedShake, profile: PrinterProfile, lifted: bool) -> list[str]:
    lines = ["; --- Bed Shake ---"]
    if not lifted:
        lines += [
            "G91 ; Relative positioning",
            "G1 Z5 F3000 ; Lift nozzle first",
        ]
    d = _n(shake.distance)
    f = _n(shake.feed_rate)
    lines += [
        "G90 ; Absolute positioning",
        f"G1 Y{_n(profile.bed_center_y)} F6000 ; Move to bed center Y",
        "G91 ; Relative positioning",
    ]
    for _ in range(shake.repetitions):
        lines.append(f"G1 Y{d} F{f} ; Shake forward")
        lines.append(f"G1 Y-{d} F{f} ; Shake backward")
    lines.append("G90 ; Absolute positioning")
    return lines


def _push_block(
    push: PushOff, profile: PrinterProfile, metrics: ToolpathMetrics | None
) -> list[str]:
    lines = ["; --- Push-Off ---", "G90 ; Absolute positioning"]
    f = _n(push.feed_rate)

    if metrics is not None:
        bb = metrics.bounding_box
        z = max(MIN_PUSH_HEIGHT_MM, metrics.first_layer_height or DEFAULT_FIRST_LAYER_MM)
        approach_x = max(0.0, (bb.min_x or APPROACH_CLEARANCE_MM) - APPROACH_CLEARANCE_MM)
        mid_y = bb.min_y + bb.depth / 2.0
        lines += [
            f"G1 Z{z:.1f} F1000 ; Lower to push height",
            f"G1 X{_n(approach_x)} Y{mid_y:.1f} F3000 ; Move to part edge",
            f"G1 X{_n(approach_x + push.distance)} F{f} ; Push part off bed",
        ]
    else:
        start_y = profile.bed_center_y
        lines += [
            f"G1 Z{MIN_PUSH_HEIGHT_MM:.1f} F1000 ; Lower to push height",
            f"G1 X{_n(FALLBACK_START_X_MM)} Y{_n(start_y)} F3000 ; Move to starting position",
            f"G1 X{_n(FALLBACK_START_X_MM + push.distance)} F{f} ; Push part",
        ]

    lines += [
        "G91 ; Relative positioning",
        "G1 Z20 F3000 ; Lift nozzle after push",
        "G90 ; Absolute positioning",
    ]
    return lines


def _cleanup_block(cooled: bool) -> list[str]:
    lines = ["; --- Cleanup ---"]
    if not cooled:
        lines += ["M104 S0 ; Turn off nozzle", "M140 S0 ; Turn off bed"]
    lines += ["M107 ; Turn off fan", "M84 ; Disable steppers"]
    return lines


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_eject_sequence(
    eject: EjectConfig,
    profile: PrinterProfile,
    metrics: ToolpathMetrics | None = None,
) -> list[str]:
    """Synthesize the auto-eject block.

    Parameters
    ----------
    eject : EjectConfig
        Which blocks to emit and their parameters.
    profile : PrinterProfile
        Printer geometry (present motion, bed centre).
    metrics : ToolpathMetrics | None
        Metrics of the stream being ended; enables footprint-aware push-off.

    Returns
    -------
    list[str]
        Lines to append, starting with a blank separator line.  Empty when
        no block is enabled.
    """
    if not eject.enabled:
        return []

    lines = ["", HEADER]
    if eject.cool is not None:
        lines += _cool_block(eject.cool, profile)
    if eject.shake is not None:
        lines += _shake_block(eject.shake, profile, lifted=eject.cool is not None)
    if eject.push is not None:
        lines += _push_block(eject.push, profile, metrics)
    lines += _cleanup_block(cooled=eject.cool is not None)
    lines.append(FOOTER)

    logger.debug(
        "Built %d-line eject sequence for %s (cool=%s shake=%s push=%s)",
        len(lines),
        profile.id,
        eject.cool is not None,
        eject.shake is not None,
        eject.push is not None,
    )
    return lines
