"""Tests for the auto-eject sequence synthesizer."""

from __future__ import annotations

import pytest

from gcode_toolkit.configs.loader import PrinterProfile
from gcode_toolkit.directives.operations import BedShake, CoolRelease, EjectConfig, PushOff
from gcode_toolkit.gcode.eject import FOOTER, HEADER, build_eject_sequence
from gcode_toolkit.gcode.metrics import BoundingBox, ToolpathMetrics, extract_metrics


@pytest.fixture()
def bambu(profiles: dict[str, PrinterProfile]) -> PrinterProfile:
    return profiles["bambu_a1"]


@pytest.fixture()
def kobra(profiles: dict[str, PrinterProfile]) -> PrinterProfile:
    return profiles["kobra_s1"]


# ---------------------------------------------------------------------------
# Block selection
# ---------------------------------------------------------------------------


class TestBlocks:
    def test_nothing_enabled(self, kobra: PrinterProfile) -> None:
        assert build_eject_sequence(EjectConfig(), kobra) == []

    def test_cool_only_bambu(self, bambu: PrinterProfile) -> None:
        lines = build_eject_sequence(EjectConfig(cool=CoolRelease()), bambu)
        assert lines == [
            "",
            HEADER,
            "; --- Cool & Release ---",
            "M104 S0 ; Turn off nozzle heater",
            "M140 S30 ; Set bed to target cool temperature",
            "G91 ; Relative positioning",
            "G1 E-2 F1800 ; Retract filament",
            "G1 Z10 F3000 ; Lift nozzle away from print",
            "G90 ; Absolute positioning",
            "G28 X ; Home X axis",
            "M190 S30 ; Wait for bed to cool to 30C",
            "G4 S60 ; Wait 60 seconds for part release",
            "M140 S0 ; Turn off bed completely",
            "; --- Cleanup ---",
            "M107 ; Turn off fan",
            "M84 ; Disable steppers",
            FOOTER,
        ]

    def test_cool_kobra_parks(self, kobra: PrinterProfile) -> None:
        lines = build_eject_sequence(
            EjectConfig(cool=CoolRelease(target_temp=25, wait_seconds=90)), kobra
        )
        assert "G1 X0 Y220 F6000 ; Move to front" in lines
        assert "M190 S25 ; Wait for bed to cool to 25C" in lines
        assert "G4 S90 ; Wait 90 seconds for part release" in lines
        assert "G28 X ; Home X axis" not in lines

    def test_shake_without_cool_lifts_first(self, kobra: PrinterProfile) -> None:
        lines = build_eject_sequence(EjectConfig(shake=BedShake(repetitions=3)), kobra)
        start = lines.index("; --- Bed Shake ---")
        assert lines[start + 1:start + 6] == [
            "G91 ; Relative positioning",
            "G1 Z5 F3000 ; Lift nozzle first",
            "G90 ; Absolute positioning",
            "G1 Y110 F6000 ; Move to bed center Y",
            "G91 ; Relative positioning",
        ]
        assert lines.count("G1 Y2 F3000 ; Shake forward") == 3
        assert lines.count("G1 Y-2 F3000 ; Shake backward") == 3
        # heaters are switched off in cleanup when cooling did not run
        assert "M104 S0 ; Turn off nozzle" in lines
        assert "M140 S0 ; Turn off bed" in lines

    def test_shake_after_cool_skips_lift(self, bambu: PrinterProfile) -> None:
        lines = build_eject_sequence(
            EjectConfig(cool=CoolRelease(), shake=BedShake(distance=1.5, feed_rate=4000)), bambu
        )
        assert "G1 Z5 F3000 ; Lift nozzle first" not in lines
        assert "G1 Y128 F6000 ; Move to bed center Y" in lines
        assert "G1 Y1.5 F4000 ; Shake forward" in lines
        assert "M104 S0 ; Turn off nozzle" not in lines

    def test_block_order(self, kobra: PrinterProfile) -> None:
        lines = build_eject_sequence(
            EjectConfig(cool=CoolRelease(), shake=BedShake(), push=PushOff()), kobra
        )
        markers = [l for l in lines if l.startswith("; ")]
        assert markers == [
            HEADER,
            "; --- Cool & Release ---",
            "; --- Bed Shake ---",
            "; --- Push-Off ---",
            "; --- Cleanup ---",
            FOOTER,
        ]


# ---------------------------------------------------------------------------
# Push-off geometry
# ---------------------------------------------------------------------------


class TestPushOff:
    def test_without_metrics(self, kobra: PrinterProfile) -> None:
        lines = build_eject_sequence(EjectConfig(push=PushOff()), kobra)
        start = lines.index("; --- Push-Off ---")
        assert lines[start + 1:start + 8] == [
            "G90 ; Absolute positioning",
            "G1 Z0.3 F1000 ; Lower to push height",
            "G1 X10 Y110 F3000 ; Move to starting position",
            "G1 X40 F300 ; Push part",
            "G91 ; Relative positioning",
            "G1 Z20 F3000 ; Lift nozzle after push",
            "G90 ; Absolute positioning",
        ]

    def test_with_metrics(self, kobra: PrinterProfile) -> None:
        metrics = ToolpathMetrics(
            first_layer_height=0.4,
            bounding_box=BoundingBox(min_x=50, min_y=60, max_x=90, max_y=100, max_z=10),
        )
        lines = build_eject_sequence(EjectConfig(push=PushOff()), kobra, metrics)
        assert "G1 Z0.4 F1000 ; Lower to push height" in lines
        assert "G1 X40 Y80.0 F3000 ; Move to part edge" in lines
        assert "G1 X70 F300 ; Push part off bed" in lines

    def test_minimum_push_height(self, kobra: PrinterProfile) -> None:
        metrics = ToolpathMetrics(first_layer_height=0.12)
        lines = build_eject_sequence(EjectConfig(push=PushOff()), kobra, metrics)
        assert "G1 Z0.3 F1000 ; Lower to push height" in lines

    def test_single_height_stream_sets_push_height(self, kobra: PrinterProfile) -> None:
        metrics = extract_metrics("G1 Z0.5 F600\nG1 X10 Y10 E1\nG1 X30 Y10 E2")
        assert metrics.layer_height == 0.0
        lines = build_eject_sequence(EjectConfig(push=PushOff()), kobra, metrics)
        assert "G1 Z0.5 F1000 ; Lower to push height" in lines

    def test_part_at_origin_approaches_from_zero(self, kobra: PrinterProfile) -> None:
        metrics = ToolpathMetrics(bounding_box=BoundingBox(max_x=20, max_y=20))
        lines = build_eject_sequence(EjectConfig(push=PushOff(distance=25)), kobra, metrics)
        assert "G1 X0 Y10.0 F3000 ; Move to part edge" in lines
        assert "G1 X25 F300 ; Push part off bed" in lines
