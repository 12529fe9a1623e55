"""Mutation pipeline -- apply directives to a G-code stream.

Stages, in order::

    text --split--> lines
         --> line rewrites          (speed / temperature / fan scalars)
         --> layer insertions       (pauses + layer injections, one map)
         --> line insertions        (1-based line injections)
         --> eject sequence         (appended)
         --join--> text

Within each insertion stage every target index is resolved once, up
front, and blocks are spliced highest index first so earlier splices
never shift later targets.  Targets that do not exist in the stream are
skipped and logged at DEBUG; ``mutate`` never raises on stream content.

Usage::

    from gcode_toolkit.gcode.postprocessor import mutate
    out = mutate(text, MutationDirectives(pauses=(LayerPause(layer=5),)))
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Sequence

from gcode_toolkit.configs.loader import PrinterProfile, get_profile, load_printer_profiles
from gcode_toolkit.directives.operations import (
    Injection,
    LayerPause,
    LineRewrite,
    MutationDirectives,
)
from gcode_toolkit.gcode.eject import build_eject_sequence
from gcode_toolkit.gcode.layers import find_layer_start_lines
from gcode_toolkit.gcode.metrics import ToolpathMetrics, extract_metrics
from gcode_toolkit.gcode.numbers import round_half_up
from gcode_toolkit.gcode.tokenizer import (
    BED_TEMP_CODES,
    FAN_CODE,
    MOTION_CODES,
    NOZZLE_TEMP_CODES,
    split_comment,
    tokenize_line,
)

logger = logging.getLogger(__name__)

_NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)"
_F_PARAM_RE = re.compile(rf"(^|\s)([Ff])({_NUMBER})")
_S_PARAM_RE = re.compile(rf"(^|\s)([Ss])({_NUMBER})")

FAN_MAX = 255


# ---------------------------------------------------------------------------
# Block builders
# ---------------------------------------------------------------------------


def _pause_block(pause: LayerPause) -> list[str]:
    return [
        f"; --- Layer Pause at Layer {pause.layer} ---",
        *pause.payload,
        "; --- End Layer Pause ---",
    ]


def _injection_block(inj: Injection) -> list[str]:
    where = "Layer" if inj.mode == "layer" else "Line"
    return [
        f"; --- Custom Injection at {where} {inj.number} ---",
        *inj.payload,
        "; --- End Custom Injection ---",
    ]


# ---------------------------------------------------------------------------
# Line rewrites
# ---------------------------------------------------------------------------


def _sub_param(
    code: str, pattern: re.Pattern[str], fn: Callable[[float], int], all_: bool
) -> str:
    def repl(match: re.Match[str]) -> str:
        return f"{match.group(1)}{match.group(2)}{fn(float(match.group(3)))}"

    return pattern.sub(repl, code, count=0 if all_ else 1)


def _temp_offset(offset: float, limit: float | None) -> Callable[[float], int]:
    def fn(v: float) -> int:
        t = max(0, round_half_up(v + offset))
        return t if limit is None else min(t, int(limit))

    return fn


def _rewrite_line(line: str, rw: LineRewrite, profile: PrinterProfile | None = None) -> str:
    code, comment = split_comment(line)
    cmd = tokenize_line(code)
    if cmd is None:
        return line

    new_code = code
    if cmd.code in MOTION_CODES and rw.speed_percent != 100 and "F" in cmd.params:
        new_code = _sub_param(
            code, _F_PARAM_RE,
            lambda v: round_half_up(v * rw.speed_percent / 100.0), all_=True,
        )
    elif cmd.code in NOZZLE_TEMP_CODES and rw.nozzle_offset != 0 and "S" in cmd.params:
        limit = profile.max_nozzle_temp if profile is not None else None
        new_code = _sub_param(
            code, _S_PARAM_RE, _temp_offset(rw.nozzle_offset, limit), all_=False
        )
    elif cmd.code in BED_TEMP_CODES and rw.bed_offset != 0 and "S" in cmd.params:
        limit = profile.max_bed_temp if profile is not None else None
        new_code = _sub_param(
            code, _S_PARAM_RE, _temp_offset(rw.bed_offset, limit), all_=False
        )
    elif cmd.code == FAN_CODE and rw.fan_percent != 100 and "S" in cmd.params:
        new_code = _sub_param(
            code, _S_PARAM_RE,
            lambda v: min(FAN_MAX, max(0, round_half_up(v * rw.fan_percent / 100.0))),
            all_=False,
        )

    if new_code == code:
        return line
    return new_code + comment


def apply_rewrites(
    lines: Sequence[str],
    rewrite: LineRewrite,
    profile: PrinterProfile | None = None,
) -> list[str]:
    """Apply the global scalars to every matching line.

    Only the code part of a line changes; comments are kept verbatim.
    Neutral scalars leave their lines byte-identical.  With a *profile*,
    offset temperatures are also capped at its nozzle and bed maxima.
    """
    if rewrite.is_neutral:
        return list(lines)
    out = [_rewrite_line(line, rewrite, profile) for line in lines]
    changed = sum(1 for a, b in zip(lines, out) if a != b)
    logger.debug("Rewrote %d lines (%s)", changed, rewrite)
    return out


# ---------------------------------------------------------------------------
# Insertions
# ---------------------------------------------------------------------------


def apply_layer_insertions(
    lines: Sequence[str],
    pauses: Sequence[LayerPause] = (),
    injections: Sequence[Injection] = (),
) -> list[str]:
    """Splice pauses and layer injections before their layers' first lines.

    All targets come from one layer map built before any splice.  At the
    same layer, pauses sit above injections.  Each block is spliced in turn
    at its layer start, so among pauses (or among injections) for one layer
    the later directive ends up on top.
    """
    out = list(lines)
    items: list[tuple[int, LayerPause | Injection]] = [(p.layer, p) for p in pauses]
    items += [(i.number, i) for i in injections if i.mode == "layer"]
    if not items:
        return out

    layer_map = find_layer_start_lines(out)

    resolved: list[tuple[int, int, int, int, list[str]]] = []
    for seq, (layer, directive) in enumerate(items):
        idx = layer_map.get(layer)
        if idx is None:
            logger.debug("Layer %d not found, skipping %s", layer, type(directive).__name__)
            continue
        if isinstance(directive, LayerPause):
            rank, block = 0, _pause_block(directive)
        else:
            rank, block = 1, _injection_block(directive)
        resolved.append((idx, layer, rank, -seq, block))

    # Highest index first.  At one index injections go in before pauses,
    # earliest directive first; each later splice lands above the last.
    for idx, *_key, block in sorted(resolved, key=lambda r: r[:4], reverse=True):
        out[idx:idx] = block

    logger.debug("Applied %d of %d layer insertions", len(resolved), len(items))
    return out


def apply_line_insertions(
    lines: Sequence[str], injections: Sequence[Injection] = ()
) -> list[str]:
    """Splice line-mode injections before their 1-based line numbers.

    A number one past the last line appends.  Out-of-range numbers are
    skipped.  Injections sharing a number are spliced in turn, so the
    later one ends up on top.
    """
    out = list(lines)
    targets = [
        (inj.number - 1, -seq, inj)
        for seq, inj in enumerate(injections)
        if inj.mode == "line"
    ]
    if not targets:
        return out

    n_lines = len(out)
    applied = 0
    for idx, _seq, inj in sorted(targets, key=lambda t: t[:2], reverse=True):
        if not 0 <= idx <= n_lines:
            logger.debug("Line %d out of range (1..%d), skipping", inj.number, n_lines + 1)
            continue
        out[idx:idx] = _injection_block(inj)
        applied += 1

    logger.debug("Applied %d of %d line insertions", applied, len(targets))
    return out


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def mutate(
    text: str,
    directives: MutationDirectives,
    metrics: ToolpathMetrics | None = None,
    profile: PrinterProfile | None = None,
) -> str:
    """Apply *directives* to *text* and return the new stream.

    Parameters
    ----------
    text : str
        Source G-code.
    directives : MutationDirectives
        Everything to apply.  Empty directives return *text* unchanged.
    metrics : ToolpathMetrics | None
        Metrics of *text*, used to aim the push-off.  Extracted on demand
        when a push-off is requested and none are given.
    profile : PrinterProfile | None
        Printer limits for temperature offsets and geometry for the eject
        sequence.  Resolved from ``directives.printer`` against the shipped
        profiles when omitted and either is in use.
    """
    if directives.is_empty:
        return text

    rewrite = directives.rewrite
    eject = directives.eject
    needs_profile = eject.enabled or rewrite.nozzle_offset != 0 or rewrite.bed_offset != 0
    if profile is None and needs_profile:
        profile = get_profile(load_printer_profiles(), directives.printer)

    lines = text.split("\n")
    lines = apply_rewrites(lines, rewrite, profile)
    lines = apply_layer_insertions(lines, directives.pauses, directives.layer_injections)
    lines = apply_line_insertions(lines, directives.line_injections)

    if eject.enabled:
        if eject.push is not None and metrics is None:
            metrics = extract_metrics(text)

        trailing_newline = len(lines) > 1 and lines[-1] == ""
        if trailing_newline:
            lines.pop()
        lines += build_eject_sequence(eject, profile, metrics)
        if trailing_newline:
            lines.append("")

    logger.info(
        "Mutated G-code: %d pauses, %d injections, eject=%s, %d -> %d lines",
        len(directives.pauses),
        len(directives.injections),
        eject.enabled,
        text.count("\n") + 1,
        len(lines),
    )
    return "\n".join(lines)
