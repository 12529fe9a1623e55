"""Mutation directives -- the vocabulary between callers and the pipeline.

Every directive is an immutable, slotted dataclass validated at
construction.  Directives use **semantic** names (``LayerPause``, not
``M600`` spliced at line 1234) and are resolved to line indices only
inside the mutation pipeline, against the stream being edited.

Grouping
--------
``MutationDirectives`` bundles everything one ``mutate`` call applies:
global line rewrites, layer pauses, code injections (by layer or line)
and the optional end-of-print eject sequence.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from typing import Literal

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

PauseCommand = Literal["M600", "M601", "M0", "M1", "M25", "PAUSE", "custom"]
"""Firmware pause commands; ``custom`` splices caller-supplied code."""

PAUSE_COMMANDS: tuple[str, ...] = ("M600", "M601", "M0", "M1", "M25", "PAUSE", "custom")

InjectionMode = Literal["layer", "line"]

# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Directive(ABC):
    """Base class for all mutation directives."""

    pass


# ---------------------------------------------------------------------------
# Insertion directives
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LayerPause(Directive):
    """Pause the print before the first line of *layer*.

    Parameters
    ----------
    layer : int
        Layer number as seen by the layer locator (>= 1).
    command : PauseCommand
        Firmware pause command, default ``M600`` (filament change).
    custom_code : str
        Newline-separated G-code, used only when *command* is ``custom``.
    """

    layer: int
    command: PauseCommand = "M600"
    custom_code: str = ""

    def __post_init__(self) -> None:
        if self.layer < 1:
            raise ValueError(f"LayerPause layer must be >= 1, got {self.layer}")
        if self.command not in PAUSE_COMMANDS:
            raise ValueError(
                f"LayerPause command must be one of {', '.join(PAUSE_COMMANDS)}, "
                f"got {self.command!r}"
            )
        if self.command == "custom" and not self.custom_code.strip():
            raise ValueError("LayerPause with command 'custom' requires custom_code")

    @property
    def payload(self) -> list[str]:
        """Lines spliced between the block markers."""
        if self.command == "custom":
            return self.custom_code.split("\n")
        return [f"{self.command} ; Pause at layer {self.layer}"]


@dataclass(frozen=True, slots=True)
class Injection(Directive):
    """Splice arbitrary code before a layer's first line or a 1-based line."""

    mode: InjectionMode
    number: int
    code: str

    def __post_init__(self) -> None:
        if self.mode not in ("layer", "line"):
            raise ValueError(
                f"Injection mode must be 'layer' or 'line', got {self.mode!r}"
            )
        if self.number < 1:
            raise ValueError(f"Injection number must be >= 1, got {self.number}")
        if not self.code.strip():
            raise ValueError("Injection code must not be empty")

    @property
    def payload(self) -> list[str]:
        return self.code.split("\n")


# ---------------------------------------------------------------------------
# Rewrite directive
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LineRewrite(Directive):
    """Global scalars applied to every matching line.

    ``speed_percent`` scales ``G0``/``G1`` feed rates, ``nozzle_offset``
    and ``bed_offset`` shift temperature set-points in degrees C, and
    ``fan_percent`` scales ``M106`` fan speed.  Neutral values (100, 0, 0,
    100) leave their lines untouched.
    """

    speed_percent: float = 100.0
    nozzle_offset: float = 0.0
    bed_offset: float = 0.0
    fan_percent: float = 100.0

    def __post_init__(self) -> None:
        if self.speed_percent <= 0:
            raise ValueError(
                f"speed_percent must be > 0, got {self.speed_percent}"
            )
        if self.fan_percent < 0:
            raise ValueError(f"fan_percent must be >= 0, got {self.fan_percent}")

    @property
    def is_neutral(self) -> bool:
        return (
            self.speed_percent == 100
            and self.nozzle_offset == 0
            and self.bed_offset == 0
            and self.fan_percent == 100
        )


# ---------------------------------------------------------------------------
# Eject sequence directives
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CoolRelease(Directive):
    """Cool the bed to *target_temp* and wait so the part lets go."""

    target_temp: float = 30.0
    wait_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.target_temp < 0:
            raise ValueError(f"CoolRelease target_temp must be >= 0, got {self.target_temp}")
        if self.wait_seconds < 0:
            raise ValueError(
                f"CoolRelease wait_seconds must be >= 0, got {self.wait_seconds}"
            )


@dataclass(frozen=True, slots=True)
class BedShake(Directive):
    """Shake the bed along Y to break the part loose."""

    distance: float = 2.0
    feed_rate: float = 3000.0
    repetitions: int = 10

    def __post_init__(self) -> None:
        if self.distance <= 0:
            raise ValueError(f"BedShake distance must be > 0, got {self.distance}")
        if self.feed_rate <= 0:
            raise ValueError(f"BedShake feed_rate must be > 0, got {self.feed_rate}")
        if self.repetitions < 1:
            raise ValueError(
                f"BedShake repetitions must be >= 1, got {self.repetitions}"
            )


@dataclass(frozen=True, slots=True)
class PushOff(Directive):
    """Sweep the nozzle along +X at low height to push the part off."""

    distance: float = 30.0
    feed_rate: float = 300.0

    def __post_init__(self) -> None:
        if self.distance <= 0:
            raise ValueError(f"PushOff distance must be > 0, got {self.distance}")
        if self.feed_rate <= 0:
            raise ValueError(f"PushOff feed_rate must be > 0, got {self.feed_rate}")


@dataclass(frozen=True, slots=True)
class EjectConfig(Directive):
    """Which eject blocks to append.  ``None`` disables a block."""

    cool: CoolRelease | None = None
    shake: BedShake | None = None
    push: PushOff | None = None

    @property
    def enabled(self) -> bool:
        return any(block is not None for block in (self.cool, self.shake, self.push))


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MutationDirectives:
    """Every directive for one ``mutate`` invocation.

    Sequences are stored as tuples; lists passed in are converted.
    ``printer`` selects the profile used by the eject sequence.
    """

    rewrite: LineRewrite = field(default_factory=LineRewrite)
    pauses: tuple[LayerPause, ...] = ()
    injections: tuple[Injection, ...] = ()
    eject: EjectConfig = field(default_factory=EjectConfig)
    printer: str = "generic"

    def __post_init__(self) -> None:
        object.__setattr__(self, "pauses", tuple(self.pauses))
        object.__setattr__(self, "injections", tuple(self.injections))
        for pause in self.pauses:
            if not isinstance(pause, LayerPause):
                raise ValueError(f"pauses must hold LayerPause, got {type(pause).__name__}")
        for inj in self.injections:
            if not isinstance(inj, Injection):
                raise ValueError(
                    f"injections must hold Injection, got {type(inj).__name__}"
                )
        if not self.printer:
            raise ValueError("printer must not be empty")

    @property
    def layer_injections(self) -> tuple[Injection, ...]:
        return tuple(i for i in self.injections if i.mode == "layer")

    @property
    def line_injections(self) -> tuple[Injection, ...]:
        return tuple(i for i in self.injections if i.mode == "line")

    @property
    def is_empty(self) -> bool:
        """True when applying these directives cannot change a stream."""
        return (
            self.rewrite.is_neutral
            and not self.pauses
            and not self.injections
            and not self.eject.enabled
        )
