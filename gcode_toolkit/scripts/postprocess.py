#!/usr/bin/env python3
"""
Post-process G-code Script.

Apply speed/temperature/fan scaling, layer pauses, code injections and an
auto-eject sequence to a G-code file.  Writes ``<stem>_modified<suffix>``
next to the input unless ``--output`` is given.

Usage:
    gcode-postprocess part.gcode --speed 80 --pause 12:M600
    gcode-postprocess part.gcode --inject-line "1:M117 Starting"
    gcode-postprocess part.gcode --template builtin-kobra-end@120
    gcode-postprocess part.gcode --printer bambu_a1 --cool --shake --push
    gcode-postprocess part.gcode --job part.job.yaml -o out.gcode

Command-line directives are added on top of a ``--job`` file: scalars
given on the command line replace the job's, pauses and injections are
appended, and eject blocks are switched on.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

import yaml

from gcode_toolkit.configs.loader import ConfigError, get_profile, load_printer_profiles
from gcode_toolkit.directives.operations import (
    PAUSE_COMMANDS,
    BedShake,
    CoolRelease,
    EjectConfig,
    Injection,
    LayerPause,
    MutationDirectives,
    PushOff,
)
from gcode_toolkit.directives.templates import get_template
from gcode_toolkit.gcode import mutate
from gcode_toolkit.utils import fs, validators
from gcode_toolkit.utils.logging_config import push_context, setup_logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Argument types
# ---------------------------------------------------------------------------


def _split_number(value: str, sep: str) -> tuple[int, str]:
    head, _, tail = value.partition(sep)
    try:
        number = int(head)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected N{sep}..., got {value!r}") from exc
    return number, tail


def pause_arg(value: str) -> LayerPause:
    """``LAYER`` or ``LAYER:COMMAND``."""
    layer, command = _split_number(value, ":")
    try:
        return LayerPause(layer=layer, command=command.upper() or "M600")
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _injection_arg(mode: str, value: str) -> Injection:
    number, code = _split_number(value, ":")
    try:
        return Injection(mode=mode, number=number, code=code.replace("\\n", "\n"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def inject_layer_arg(value: str) -> Injection:
    """``N:CODE``; ``\\n`` in CODE separates lines."""
    return _injection_arg("layer", value)


def inject_line_arg(value: str) -> Injection:
    """``N:CODE``; ``\\n`` in CODE separates lines."""
    return _injection_arg("line", value)


def template_arg(value: str) -> Injection:
    """``TEMPLATE_ID@LAYER``."""
    template_id, _, layer = value.rpartition("@")
    if not template_id:
        raise argparse.ArgumentTypeError(f"expected TEMPLATE_ID@LAYER, got {value!r}")
    try:
        return get_template(template_id).as_injection("layer", int(layer))
    except KeyError as exc:
        raise argparse.ArgumentTypeError(str(exc).strip("'\"")) from exc
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Directive assembly
# ---------------------------------------------------------------------------


def build_directives(args: argparse.Namespace) -> MutationDirectives:
    """Merge an optional job file with command-line directives.

    Raises
    ------
    ValueError
        If the job file or a scalar is invalid.
    FileNotFoundError
        If the job file doesn't exist.
    """
    if args.job:
        base = validators.load_postprocess_job(args.job).to_directives()
    else:
        base = MutationDirectives()

    overrides = {
        "speed_percent": args.speed,
        "nozzle_offset": args.nozzle_offset,
        "bed_offset": args.bed_offset,
        "fan_percent": args.fan,
    }
    rewrite = dataclasses.replace(
        base.rewrite, **{k: v for k, v in overrides.items() if v is not None}
    )

    eject = base.eject
    if args.cool:
        eject = dataclasses.replace(
            eject, cool=CoolRelease(target_temp=args.cool_temp, wait_seconds=args.cool_wait)
        )
    if args.shake:
        eject = dataclasses.replace(
            eject,
            shake=BedShake(
                distance=args.shake_distance,
                feed_rate=args.shake_feed,
                repetitions=args.shake_reps,
            ),
        )
    if args.push:
        eject = dataclasses.replace(
            eject, push=PushOff(distance=args.push_distance, feed_rate=args.push_feed)
        )

    return MutationDirectives(
        rewrite=rewrite,
        pauses=base.pauses + tuple(args.pause),
        injections=base.injections + tuple(args.inject_layer) + tuple(args.inject_line)
        + tuple(args.template),
        eject=eject,
        printer=args.printer or base.printer,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Post-process a G-code file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Pause commands: {', '.join(c for c in PAUSE_COMMANDS if c != 'custom')}",
    )
    parser.add_argument("file", type=str, help="G-code file to modify")
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output path (default: <stem>_modified<suffix> next to the input)",
    )
    parser.add_argument("--job", "-j", type=str, help="postprocess.v1 job file (YAML)")
    parser.add_argument("--printer", type=str, help="Printer profile id")
    parser.add_argument("--printers", type=str, help="Printer profiles YAML path")

    # Rewrites
    parser.add_argument("--speed", type=float, help="Feed-rate scale in percent")
    parser.add_argument("--nozzle-offset", type=float, help="Nozzle temperature offset (C)")
    parser.add_argument("--bed-offset", type=float, help="Bed temperature offset (C)")
    parser.add_argument("--fan", type=float, help="Fan speed scale in percent")

    # Insertions
    parser.add_argument(
        "--pause",
        type=pause_arg,
        action="append",
        default=[],
        metavar="LAYER[:COMMAND]",
        help="Pause before LAYER (repeatable, default command M600)",
    )
    parser.add_argument(
        "--inject-layer",
        type=inject_layer_arg,
        action="append",
        default=[],
        metavar="N:CODE",
        help="Insert CODE before layer N (repeatable)",
    )
    parser.add_argument(
        "--inject-line",
        type=inject_line_arg,
        action="append",
        default=[],
        metavar="N:CODE",
        help="Insert CODE before line N (repeatable)",
    )
    parser.add_argument(
        "--template",
        type=template_arg,
        action="append",
        default=[],
        metavar="ID@LAYER",
        help="Insert a built-in template before LAYER (repeatable)",
    )

    # Eject
    parser.add_argument("--cool", action="store_true", help="Append cool & release")
    parser.add_argument("--cool-temp", type=float, default=30.0, help="Release bed temperature (C)")
    parser.add_argument("--cool-wait", type=float, default=60.0, help="Dwell after cooling (s)")
    parser.add_argument("--shake", action="store_true", help="Append bed shake")
    parser.add_argument("--shake-distance", type=float, default=2.0, help="Shake amplitude (mm)")
    parser.add_argument("--shake-feed", type=float, default=3000.0, help="Shake feed (mm/min)")
    parser.add_argument("--shake-reps", type=int, default=10, help="Shake cycles")
    parser.add_argument("--push", action="store_true", help="Append push-off")
    parser.add_argument("--push-distance", type=float, default=30.0, help="Push travel (mm)")
    parser.add_argument("--push-feed", type=float, default=300.0, help="Push feed (mm/min)")

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", type=str, help="Also log to this file")

    args = parser.parse_args(argv)

    source = Path(args.file)

    try:
        setup_logging(args.log_level, args.log_file, context={"tool": "postprocess"})
        push_context(file=source.name)
        directives = build_directives(args)
        if directives.is_empty:
            logger.warning("No directives given; output will equal the input")

        profile = get_profile(load_printer_profiles(args.printers), directives.printer)
        push_context(printer=profile.id)

        text = fs.read_gcode(source)
        result = mutate(text, directives, profile=profile)

        output = Path(args.output) if args.output else fs.modified_output_path(source)
        fs.write_gcode(output, result)
    except (OSError, ValueError, ConfigError, RuntimeError, yaml.YAMLError) as e:
        logger.error("Post-processing failed: %s", e)
        sys.exit(1)

    logger.info("Wrote %s", output)
    print(output)


if __name__ == "__main__":
    main()
