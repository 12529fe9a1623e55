"""Built-in G-code templates.

A template is a named, reusable block of G-code.  The pipeline only ever
uses a template's ``code`` as an :class:`Injection` payload; storing
user templates is left to the caller.

Usage::

    from gcode_toolkit.directives.templates import get_template
    tpl = get_template("builtin-kobra-end")
    inj = tpl.as_injection("layer", 42)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from gcode_toolkit.directives.operations import Injection, InjectionMode

TemplatePurpose = Literal["end-gcode", "auto-eject", "pause", "custom"]


@dataclass(frozen=True, slots=True)
class Template:
    """Reusable G-code block."""

    id: str
    name: str
    printer_tag: str
    purpose_tag: TemplatePurpose
    code: str
    notes: str = ""
    is_built_in: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Template id must not be empty")
        if not self.code.strip():
            raise ValueError(f"Template {self.id!r} has no code")

    def as_injection(self, mode: InjectionMode, number: int) -> Injection:
        return Injection(mode=mode, number=number, code=self.code)


BUILTIN_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="builtin-bambu-end",
        name="Bambu A1 - Standard End",
        printer_tag="bambu_a1",
        purpose_tag="end-gcode",
        is_built_in=True,
        notes="Standard end G-code for Bambu Lab A1. Turns off heaters, retracts, and homes.",
        code="\n".join([
            "; Bambu A1 Standard End G-code",
            "M400 ; Wait for moves to finish",
            "M104 S0 ; Turn off nozzle heater",
            "M140 S0 ; Turn off bed heater",
            "G91 ; Relative positioning",
            "G1 E-2 F1800 ; Retract filament",
            "G1 Z5 F3000 ; Lift nozzle 5mm",
            "G90 ; Absolute positioning",
            "G28 X ; Home X axis",
            "M84 ; Disable steppers",
            "M107 ; Turn off fan",
        ]),
    ),
    Template(
        id="builtin-bambu-cool-release",
        name="Bambu A1 - Cool & Release",
        printer_tag="bambu_a1",
        purpose_tag="auto-eject",
        is_built_in=True,
        notes="Cools bed to 30C then lifts nozzle. Good for PLA on textured PEI.",
        code="\n".join([
            "; Bambu A1 Cool & Release End G-code",
            "M400 ; Wait for moves to finish",
            "M104 S0 ; Turn off nozzle heater",
            "M140 S30 ; Cool bed to 30C",
            "G91 ; Relative positioning",
            "G1 E-2 F1800 ; Retract filament",
            "G1 Z10 F3000 ; Lift nozzle 10mm",
            "G90 ; Absolute positioning",
            "G28 X ; Home X axis",
            "M190 S30 ; Wait for bed to reach 30C",
            "G4 S60 ; Wait 60 seconds for part release",
            "M140 S0 ; Turn off bed completely",
            "M84 ; Disable steppers",
            "M107 ; Turn off fan",
        ]),
    ),
    Template(
        id="builtin-kobra-end",
        name="Kobra S1 - Standard End",
        printer_tag="kobra_s1",
        purpose_tag="end-gcode",
        is_built_in=True,
        notes="Standard end G-code for Anycubic Kobra S1. Retracts, lifts, and presents the bed.",
        code="\n".join([
            "; Kobra S1 Standard End G-code",
            "M400 ; Wait for moves to finish",
            "M104 S0 ; Turn off nozzle heater",
            "M140 S0 ; Turn off bed heater",
            "G91 ; Relative positioning",
            "G1 E-3 F1800 ; Retract filament",
            "G1 Z10 F3000 ; Lift nozzle 10mm",
            "G90 ; Absolute positioning",
            "G1 X0 Y220 F6000 ; Present bed",
            "M84 ; Disable steppers",
            "M107 ; Turn off fan",
        ]),
    ),
    Template(
        id="builtin-kobra-cool-release",
        name="Kobra S1 - Cool & Release",
        printer_tag="kobra_s1",
        purpose_tag="auto-eject",
        is_built_in=True,
        notes="Cools bed to 30C, presents bed for easy part removal on spring steel PEI.",
        code="\n".join([
            "; Kobra S1 Cool & Release End G-code",
            "M400 ; Wait for moves to finish",
            "M104 S0 ; Turn off nozzle heater",
            "M140 S30 ; Cool bed to 30C",
            "G91 ; Relative positioning",
            "G1 E-3 F1800 ; Retract filament",
            "G1 Z10 F3000 ; Lift nozzle 10mm",
            "G90 ; Absolute positioning",
            "G1 X0 Y220 F6000 ; Present bed",
            "M190 S30 ; Wait for bed to reach 30C",
            "G4 S60 ; Wait 60 seconds",
            "M140 S0 ; Turn off bed completely",
            "M84 ; Disable steppers",
            "M107 ; Turn off fan",
        ]),
    ),
)


def get_template(template_id: str) -> Template:
    """Return the built-in template with *template_id*.

    Raises
    ------
    KeyError
        If no built-in template has that id.
    """
    for tpl in BUILTIN_TEMPLATES:
        if tpl.id == template_id:
            return tpl
    known = ", ".join(t.id for t in BUILTIN_TEMPLATES)
    raise KeyError(f"Unknown template {template_id!r}. Known: {known}")


def templates_for(printer_id: str) -> list[Template]:
    """Built-in templates tagged for *printer_id*."""
    return [t for t in BUILTIN_TEMPLATES if t.printer_tag == printer_id]
