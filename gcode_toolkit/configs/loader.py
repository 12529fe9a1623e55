"""Printer profile loader.

Loads and validates ``printers.yaml`` into typed, frozen dataclasses.
Bed geometry and the "present the bed" motion used by the auto-eject
sequence come from the profile -- nothing printer-specific is hardcoded
in the synthesizer.

Feeds are stored in G-code units (mm/min) because they are emitted
verbatim as ``F`` parameters.

Usage::

    from gcode_toolkit.configs.loader import load_printer_profiles, get_profile
    profiles = load_printer_profiles()                    # default path
    profiles = load_printer_profiles("/custom/printers.yaml")
    profile = get_profile(profiles, "kobra_s1")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from gcode_toolkit.utils.fs import load_yaml

logger = logging.getLogger(__name__)

FALLBACK_PRINTER = "generic"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuildVolume:
    """Printable volume in mm."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class PresentMotion:
    """How the printer brings the bed forward once the print is done.

    Parameters
    ----------
    mode : {"home_x", "park"}
        ``home_x`` emits ``G28 X``; ``park`` emits ``G1 X<x> Y<y> F<feed>``.
    x, y : float
        Park position in mm (``park`` only).
    feed : float
        Park feed rate in mm/min (``park`` only).
    """

    mode: Literal["home_x", "park"]
    x: float = 0.0
    y: float = 0.0
    feed: float = 6000.0


@dataclass(frozen=True)
class PrinterProfile:
    """One printer's eject-relevant geometry."""

    id: str
    name: str
    build_volume: BuildVolume
    bed_center_y: float
    max_nozzle_temp: float
    max_bed_temp: float
    present: PresentMotion


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _parse_present(printer_id: str, data: dict[str, Any]) -> PresentMotion:
    mode = data["mode"]
    if mode == "home_x":
        return PresentMotion(mode="home_x")
    if mode == "park":
        return PresentMotion(
            mode="park",
            x=float(data["x"]),
            y=float(data["y"]),
            feed=float(data.get("feed", 6000.0)),
        )
    raise ConfigError(
        f"Printer '{printer_id}': present.mode must be 'home_x' or 'park', "
        f"got {mode!r}"
    )


def _parse_profile(printer_id: str, data: dict[str, Any]) -> PrinterProfile:
    bv = data["build_volume_mm"]
    return PrinterProfile(
        id=printer_id,
        name=str(data.get("name", printer_id)),
        build_volume=BuildVolume(x=float(bv["x"]), y=float(bv["y"]), z=float(bv["z"])),
        bed_center_y=float(data.get("bed_center_y_mm", float(bv["y"]) / 2.0)),
        max_nozzle_temp=float(data["max_nozzle_temp_c"]),
        max_bed_temp=float(data["max_bed_temp_c"]),
        present=_parse_present(printer_id, data["present"]),
    )


def _validate_profiles(profiles: dict[str, PrinterProfile]) -> None:
    """Validate cross-field consistency.

    Raises
    ------
    ConfigError
        On any invalid combination.
    """
    if FALLBACK_PRINTER not in profiles:
        raise ConfigError(f"Profile '{FALLBACK_PRINTER}' must be defined")

    for pid, p in profiles.items():
        bv = p.build_volume
        if min(bv.x, bv.y, bv.z) <= 0:
            raise ConfigError(f"Printer '{pid}': build volume must be positive")
        if not 0 <= p.bed_center_y <= bv.y:
            raise ConfigError(
                f"Printer '{pid}': bed centre Y {p.bed_center_y:.1f} outside "
                f"bed depth {bv.y:.1f}"
            )
        if p.present.mode == "park":
            if not (0 <= p.present.x <= bv.x and 0 <= p.present.y <= bv.y):
                raise ConfigError(
                    f"Printer '{pid}': park position "
                    f"({p.present.x:.1f}, {p.present.y:.1f}) outside build volume"
                )
            if p.present.feed <= 0:
                raise ConfigError(f"Printer '{pid}': park feed must be > 0")
        if p.max_nozzle_temp <= 0 or p.max_bed_temp < 0:
            raise ConfigError(f"Printer '{pid}': invalid temperature limits")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_printer_profiles(
    path: str | Path | None = None,
) -> dict[str, PrinterProfile]:
    """Load and validate printer profiles from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to ``printers.yaml``.  ``None`` loads the default shipped
        alongside this module.

    Returns
    -------
    dict[str, PrinterProfile]
        Profiles keyed by printer id.

    Raises
    ------
    ConfigError
        If any field is missing or fails validation.
    FileNotFoundError
        If *path* does not exist.
    """
    if path is None:
        path = Path(__file__).parent / "printers.yaml"
    else:
        path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.debug("Loading printer profiles from %s", path)

    data: dict[str, Any] = load_yaml(path)
    if data is None:
        raise ConfigError(f"Empty configuration file: {path}")

    try:
        printers = data["printers"]
        if not isinstance(printers, dict) or not printers:
            raise ConfigError(f"No printers defined in {path}")

        profiles = {
            str(pid): _parse_profile(str(pid), pdata)
            for pid, pdata in printers.items()
        }
        _validate_profiles(profiles)
        logger.debug("Loaded %d printer profiles", len(profiles))
        return profiles

    except KeyError as exc:
        raise ConfigError(
            f"Missing required configuration key: {exc}"
        ) from exc
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"Invalid configuration value: {exc}"
        ) from exc


def get_profile(
    profiles: dict[str, PrinterProfile], printer_id: str
) -> PrinterProfile:
    """Return the profile for *printer_id*, falling back to ``generic``.

    Raises
    ------
    ConfigError
        If neither *printer_id* nor the fallback profile exists.
    """
    profile = profiles.get(printer_id)
    if profile is not None:
        return profile
    fallback = profiles.get(FALLBACK_PRINTER)
    if fallback is None:
        raise ConfigError(
            f"Unknown printer '{printer_id}' and no '{FALLBACK_PRINTER}' profile. "
            f"Available: {', '.join(sorted(profiles))}"
        )
    logger.warning(
        "Unknown printer '%s', using '%s' profile", printer_id, FALLBACK_PRINTER
    )
    return fallback
