"""Tests for the mutation pipeline.

Validates identity on empty directives, code-part-only rewrites with
half-up rounding and clamping, layer/line splicing under multiple edits,
and the appended eject sequence.
"""

from __future__ import annotations

import logging

import pytest

from gcode_toolkit.configs.loader import PrinterProfile
from gcode_toolkit.directives.operations import (
    CoolRelease,
    EjectConfig,
    Injection,
    LayerPause,
    LineRewrite,
    MutationDirectives,
    PushOff,
)
from gcode_toolkit.gcode.eject import FOOTER, HEADER
from gcode_toolkit.gcode.postprocessor import (
    apply_layer_insertions,
    apply_line_insertions,
    apply_rewrites,
    mutate,
)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class TestIdentity:
    def test_empty_directives(self, sample_text: str) -> None:
        assert mutate(sample_text, MutationDirectives()) == sample_text

    def test_empty_directives_preserve_crlf_and_trailing_newline(self) -> None:
        text = "G1 X1 F1200\r\nM104 S200\r\n"
        assert mutate(text, MutationDirectives()) == text

    def test_neutral_rewrite(self, sample_text: str) -> None:
        d = MutationDirectives(rewrite=LineRewrite(speed_percent=100, fan_percent=100))
        assert mutate(sample_text, d) == sample_text

    def test_unreachable_targets(self, sample_text: str) -> None:
        d = MutationDirectives(
            pauses=(LayerPause(layer=99),),
            injections=(Injection(mode="line", number=1000, code="M117 x"),),
        )
        assert mutate(sample_text, d) == sample_text


# ---------------------------------------------------------------------------
# Line rewrites
# ---------------------------------------------------------------------------


class TestRewrites:
    def test_speed_half(self, sample_lines: list[str]) -> None:
        out = apply_rewrites(sample_lines, LineRewrite(speed_percent=50))
        assert out[4] == "G1 Z0.2 F300"
        assert out[5] == "G1 X10 Y10 E1 F600"
        # 502.5 rounds half-up
        assert out[7] == "G1 X20 Y10 E2 F503"
        assert out[9] == sample_lines[9]

    def test_speed_only_touches_motion(self) -> None:
        out = apply_rewrites(["M203 F1000", "G0 X1 F1000"], LineRewrite(speed_percent=150))
        assert out == ["M203 F1000", "G0 X1 F1500"]

    def test_comment_untouched(self) -> None:
        out = apply_rewrites(["G1 X1 F1000 ; F9999 S5"], LineRewrite(speed_percent=50))
        assert out == ["G1 X1 F500 ; F9999 S5"]

    def test_nozzle_and_bed_offsets(self, sample_lines: list[str]) -> None:
        out = apply_rewrites(sample_lines, LineRewrite(nozzle_offset=5, bed_offset=-100))
        assert out[1] == "M140 S0"
        assert out[2] == "M104 S215 ; set nozzle"

    def test_only_first_s_rewritten(self) -> None:
        out = apply_rewrites(["M104 S200 S10"], LineRewrite(nozzle_offset=2.4))
        assert out == ["M104 S202 S10"]

    def test_wait_variants(self) -> None:
        out = apply_rewrites(["M109 S200", "M190 S60"], LineRewrite(nozzle_offset=10, bed_offset=5))
        assert out == ["M109 S210", "M190 S65"]

    def test_offsets_capped_at_profile_limits(self, profiles: dict[str, PrinterProfile]) -> None:
        bambu = profiles["bambu_a1"]  # 300 C nozzle, 100 C bed
        lines = ["M104 S290", "M190 S95 ; wait", "M140 S50"]
        out = apply_rewrites(lines, LineRewrite(nozzle_offset=20, bed_offset=10), bambu)
        assert out == ["M104 S300", "M190 S100 ; wait", "M140 S60"]

    def test_mutate_caps_with_printer_profile(self) -> None:
        d = MutationDirectives(rewrite=LineRewrite(bed_offset=30), printer="kobra_s1")
        assert mutate("M140 S100", d) == "M140 S110"

    def test_fan_scaling_clamped(self) -> None:
        assert apply_rewrites(["M106 S200"], LineRewrite(fan_percent=200)) == ["M106 S255"]
        assert apply_rewrites(["M106 S200"], LineRewrite(fan_percent=50)) == ["M106 S100"]
        assert apply_rewrites(["M106 S255"], LineRewrite(fan_percent=0)) == ["M106 S0"]

    def test_neutral_scalar_leaves_lines_byte_identical(self) -> None:
        lines = ["G1 X1 F1200.0", "M104 S200.0 ; hot", "M106 S127.5"]
        out = apply_rewrites(lines, LineRewrite(bed_offset=5))
        assert out == lines

    def test_lines_without_parameter_untouched(self) -> None:
        lines = ["G1 X1 Y1", "M104", "M106"]
        out = apply_rewrites(lines, LineRewrite(speed_percent=50, nozzle_offset=5, fan_percent=50))
        assert out == lines


# ---------------------------------------------------------------------------
# Layer insertions
# ---------------------------------------------------------------------------


class TestLayerInsertions:
    def test_pause_block_before_layer(self, sample_lines: list[str]) -> None:
        out = apply_layer_insertions(sample_lines, [LayerPause(layer=2)])
        idx = out.index("; --- Layer Pause at Layer 2 ---")
        assert out[idx + 1] == "M600 ; Pause at layer 2"
        assert out[idx + 2] == "; --- End Layer Pause ---"
        assert out[idx + 3] == "G1 Z0.4"
        assert len(out) == len(sample_lines) + 3

    def test_pause_order_independent(self, sample_text: str) -> None:
        a = MutationDirectives(pauses=(LayerPause(layer=5), LayerPause(layer=2)))
        b = MutationDirectives(pauses=(LayerPause(layer=2), LayerPause(layer=5)))
        out_a = mutate(sample_text, a)
        assert out_a == mutate(sample_text, b)

        lines = out_a.split("\n")
        for layer, first_line in ((2, "G1 Z0.4"), (5, "G1 Z1.0")):
            idx = lines.index(f"; --- Layer Pause at Layer {layer} ---")
            assert lines[idx + 3] == first_line

    def test_pause_above_injection_at_same_layer(self, sample_lines: list[str]) -> None:
        out = apply_layer_insertions(
            sample_lines,
            [LayerPause(layer=3, command="M601")],
            [Injection(mode="layer", number=3, code="M117 hi")],
        )
        assert out[8:15] == [
            "; --- Layer Pause at Layer 3 ---",
            "M601 ; Pause at layer 3",
            "; --- End Layer Pause ---",
            "; --- Custom Injection at Layer 3 ---",
            "M117 hi",
            "; --- End Custom Injection ---",
            "G1 Z0.6",
        ]

    def test_later_pause_at_same_layer_on_top(self, sample_lines: list[str]) -> None:
        out = apply_layer_insertions(
            sample_lines, [LayerPause(layer=2, command="M600"), LayerPause(layer=2, command="M601")]
        )
        assert out[6:13] == [
            "; --- Layer Pause at Layer 2 ---",
            "M601 ; Pause at layer 2",
            "; --- End Layer Pause ---",
            "; --- Layer Pause at Layer 2 ---",
            "M600 ; Pause at layer 2",
            "; --- End Layer Pause ---",
            "G1 Z0.4",
        ]

    def test_later_injection_at_same_layer_on_top(self, sample_lines: list[str]) -> None:
        out = apply_layer_insertions(
            sample_lines,
            [LayerPause(layer=4)],
            [
                Injection(mode="layer", number=4, code="M117 a"),
                Injection(mode="layer", number=4, code="M117 b"),
            ],
        )
        pause = out.index("M600 ; Pause at layer 4")
        assert pause < out.index("M117 b") < out.index("M117 a") < out.index("G1 Z0.8")

    def test_custom_pause_payload(self, sample_lines: list[str]) -> None:
        pause = LayerPause(layer=1, command="custom", custom_code="M400\nM25")
        out = apply_layer_insertions(sample_lines, [pause])
        assert out[4:9] == [
            "; --- Layer Pause at Layer 1 ---",
            "M400",
            "M25",
            "; --- End Layer Pause ---",
            "G1 Z0.2 F600",
        ]

    def test_line_injections_ignored(self, sample_lines: list[str]) -> None:
        out = apply_layer_insertions(
            sample_lines, [], [Injection(mode="line", number=1, code="M117 x")]
        )
        assert out == sample_lines

    def test_missing_layer_logged(
        self, sample_lines: list[str], caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="gcode_toolkit.gcode.postprocessor"):
            out = apply_layer_insertions(sample_lines, [LayerPause(layer=42)])
        assert out == sample_lines
        assert "Layer 42 not found" in caplog.text


# ---------------------------------------------------------------------------
# Line insertions
# ---------------------------------------------------------------------------


class TestLineInsertions:
    def test_injection_at_line_one(self, sample_lines: list[str]) -> None:
        inj = Injection(mode="line", number=1, code="M117 A\nM117 B")
        out = apply_line_insertions(sample_lines, [inj])
        assert len(out) == len(sample_lines) + 4
        assert out[0] == "; --- Custom Injection at Line 1 ---"
        assert out[1:3] == ["M117 A", "M117 B"]
        assert out[3] == "; --- End Custom Injection ---"
        assert out[4:] == sample_lines

    def test_one_past_end_appends(self, sample_lines: list[str]) -> None:
        n = len(sample_lines)
        out = apply_line_insertions(sample_lines, [Injection(mode="line", number=n + 1, code="M84")])
        assert out[:n] == sample_lines
        assert out[n + 1] == "M84"

    def test_beyond_end_skipped(self, sample_lines: list[str]) -> None:
        n = len(sample_lines)
        out = apply_line_insertions(sample_lines, [Injection(mode="line", number=n + 2, code="M84")])
        assert out == sample_lines

    def test_multiple_targets_use_original_numbering(self, sample_lines: list[str]) -> None:
        out = apply_line_insertions(
            sample_lines,
            [
                Injection(mode="line", number=1, code="M117 first"),
                Injection(mode="line", number=3, code="M117 third"),
            ],
        )
        idx = out.index("M117 third")
        assert out[idx + 2] == sample_lines[2]
        assert out[1] == "M117 first"
        assert out[3] == sample_lines[0]

    def test_later_injection_at_same_line_on_top(self) -> None:
        out = apply_line_insertions(
            ["G28"],
            [
                Injection(mode="line", number=1, code="M117 a"),
                Injection(mode="line", number=1, code="M117 b"),
            ],
        )
        assert out.index("M117 b") < out.index("M117 a") < out.index("G28")


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------


class TestMutate:
    def test_stages_combined(self, sample_text: str, profiles: dict[str, PrinterProfile]) -> None:
        d = MutationDirectives(
            rewrite=LineRewrite(speed_percent=50),
            pauses=(LayerPause(layer=2),),
            injections=(Injection(mode="line", number=1, code="M117 start"),),
            eject=EjectConfig(cool=CoolRelease()),
            printer="kobra_s1",
        )
        lines = mutate(sample_text, d, profile=profiles["kobra_s1"]).split("\n")
        assert lines[1] == "M117 start"
        assert "G1 X20 Y10 E2 F503" in lines
        assert "M600 ; Pause at layer 2" in lines
        assert lines[-1] == FOOTER
        assert "G1 X0 Y220 F6000 ; Move to front" in lines

    def test_eject_preserves_trailing_newline(
        self, sample_text: str, profiles: dict[str, PrinterProfile]
    ) -> None:
        d = MutationDirectives(eject=EjectConfig(cool=CoolRelease()), printer="bambu_a1")
        out = mutate(sample_text + "\n", d, profile=profiles["bambu_a1"])
        assert out.startswith(sample_text + "\n\n" + HEADER + "\n")
        assert out.endswith(FOOTER + "\n")
        assert "G28 X ; Home X axis" in out

    def test_eject_without_trailing_newline(self, sample_text: str) -> None:
        d = MutationDirectives(eject=EjectConfig(cool=CoolRelease()))
        out = mutate(sample_text, d)
        assert out.endswith(FOOTER)
        assert out.startswith(sample_text + "\n\n" + HEADER)

    def test_push_uses_stream_metrics(self, sample_text: str) -> None:
        d = MutationDirectives(eject=EjectConfig(push=PushOff()), printer="kobra_s1")
        lines = mutate(sample_text, d).split("\n")
        assert "G1 Z0.3 F1000 ; Lower to push height" in lines
        assert "G1 X0 Y15.0 F3000 ; Move to part edge" in lines
        assert "G1 X30 F300 ; Push part off bed" in lines

    def test_unknown_printer_falls_back(
        self, sample_text: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        d = MutationDirectives(eject=EjectConfig(cool=CoolRelease()), printer="nope")
        with caplog.at_level(logging.WARNING):
            out = mutate(sample_text, d)
        assert "G1 X0 Y220 F6000 ; Move to front" in out
        assert "Unknown printer 'nope'" in caplog.text

    def test_input_directives_unchanged(self, sample_text: str) -> None:
        d = MutationDirectives(pauses=[LayerPause(layer=1)])
        mutate(sample_text, d)
        assert d.pauses == (LayerPause(layer=1),)
