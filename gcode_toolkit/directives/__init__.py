"""
Mutation directives module.

Defines every edit a caller can ask of the mutation pipeline as immutable
dataclasses, plus the built-in template catalog.
"""

from gcode_toolkit.directives.operations import (
    BedShake,
    CoolRelease,
    Directive,
    EjectConfig,
    Injection,
    LayerPause,
    LineRewrite,
    MutationDirectives,
    PushOff,
)
from gcode_toolkit.directives.templates import (
    BUILTIN_TEMPLATES,
    Template,
    get_template,
    templates_for,
)

__all__ = [
    "BUILTIN_TEMPLATES",
    "BedShake",
    "CoolRelease",
    "Directive",
    "EjectConfig",
    "Injection",
    "LayerPause",
    "LineRewrite",
    "MutationDirectives",
    "PushOff",
    "Template",
    "get_template",
    "templates_for",
]
