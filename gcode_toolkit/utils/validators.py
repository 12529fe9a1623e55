"""YAML schema validation for post-process job files.

A job file bundles every directive for one ``gcode-postprocess`` run so a
recurring edit (same pause layers, same eject routine) can be kept next
to the model it belongs to:

    schema: postprocess.v1
    printer: kobra_s1
    rewrite: {speed_percent: 90, nozzle_offset: 5}
    pauses:
      - {layer: 12, command: M600}
    injections:
      - {mode: layer, number: 3, code: "M117 Layer 3"}
      - {mode: line, number: 1, template: builtin-kobra-end}
    eject:
      cool: {target_temp: 28}
      push: {distance: 40}

Validation is fail-fast with pydantic; ``load_postprocess_job`` re-raises
every failure as ``ValueError`` naming the offending file.

Usage:
    from gcode_toolkit.utils import validators

    job = validators.load_postprocess_job("job.yaml")
    directives = job.to_directives()
"""

from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gcode_toolkit.directives.operations import (
    PAUSE_COMMANDS,
    BedShake,
    CoolRelease,
    EjectConfig,
    Injection,
    LayerPause,
    LineRewrite,
    MutationDirectives,
    PushOff,
)
from gcode_toolkit.directives.templates import get_template


# ============================================================================
# DIRECTIVE SCHEMAS
# ============================================================================

class RewriteSpec(BaseModel):
    """Global line-rewrite scalars."""
    speed_percent: float = Field(100.0, gt=0.0, le=1000.0, description="Feed-rate scale (%)")
    nozzle_offset: float = Field(0.0, ge=-100.0, le=100.0, description="Nozzle set-point offset (C)")
    bed_offset: float = Field(0.0, ge=-100.0, le=100.0, description="Bed set-point offset (C)")
    fan_percent: float = Field(100.0, ge=0.0, le=1000.0, description="Fan speed scale (%)")


class PauseSpec(BaseModel):
    """Pause before a layer."""
    layer: int = Field(..., ge=1, description="Layer number (1-based)")
    command: str = Field("M600", description="Pause command or 'custom'")
    custom_code: str = Field("", description="G-code for command 'custom'")

    @field_validator('command')
    @classmethod
    def validate_command(cls, v: str) -> str:
        if v not in PAUSE_COMMANDS:
            raise ValueError(f"Pause command must be one of {', '.join(PAUSE_COMMANDS)}, got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_custom(self) -> 'PauseSpec':
        if self.command == "custom" and not self.custom_code.strip():
            raise ValueError("Pause command 'custom' requires custom_code")
        return self


class InjectionSpec(BaseModel):
    """Code injection; exactly one of ``code`` or ``template``."""
    mode: Literal["layer", "line"] = Field(..., description="Target kind")
    number: int = Field(..., ge=1, description="Layer or 1-based line number")
    code: Optional[str] = Field(None, description="Literal G-code")
    template: Optional[str] = Field(None, description="Built-in template id")

    @field_validator('template')
    @classmethod
    def validate_template(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                get_template(v)
            except KeyError as e:
                raise ValueError(str(e).strip("'\"")) from e
        return v

    @model_validator(mode='after')
    def validate_source(self) -> 'InjectionSpec':
        has_code = bool(self.code and self.code.strip())
        if has_code == (self.template is not None):
            raise ValueError("Injection needs exactly one of 'code' or 'template'")
        return self

    def resolved_code(self) -> str:
        if self.template is not None:
            return get_template(self.template).code
        return self.code or ""


class CoolSpec(BaseModel):
    target_temp: float = Field(30.0, ge=0.0, le=120.0, description="Bed release temperature (C)")
    wait_seconds: float = Field(60.0, ge=0.0, le=3600.0, description="Dwell after cooling (s)")


class ShakeSpec(BaseModel):
    distance: float = Field(2.0, gt=0.0, le=50.0, description="Shake amplitude (mm)")
    feed_rate: float = Field(3000.0, gt=0.0, description="Shake feed (mm/min)")
    repetitions: int = Field(10, ge=1, le=100, description="Back-and-forth cycles")


class PushSpec(BaseModel):
    distance: float = Field(30.0, gt=0.0, le=500.0, description="Push travel (mm)")
    feed_rate: float = Field(300.0, gt=0.0, description="Push feed (mm/min)")


class EjectSpec(BaseModel):
    """Eject blocks; an omitted block is disabled."""
    cool: Optional[CoolSpec] = None
    shake: Optional[ShakeSpec] = None
    push: Optional[PushSpec] = None


# ============================================================================
# JOB SCHEMA V1
# ============================================================================

class PostProcessJobV1(BaseModel):
    """Complete post-process job."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("postprocess.v1", alias="schema", description="Schema version")
    printer: str = Field("generic", min_length=1, description="Printer profile id")
    rewrite: RewriteSpec = Field(default_factory=RewriteSpec)
    pauses: List[PauseSpec] = Field(default_factory=list)
    injections: List[InjectionSpec] = Field(default_factory=list)
    eject: EjectSpec = Field(default_factory=EjectSpec)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "postprocess.v1":
            raise ValueError(f"Expected schema 'postprocess.v1', got '{v}'")
        return v

    def to_directives(self) -> MutationDirectives:
        """Convert to the immutable directive bundle used by the pipeline."""
        e = self.eject
        return MutationDirectives(
            rewrite=LineRewrite(**self.rewrite.model_dump()),
            pauses=tuple(LayerPause(**p.model_dump()) for p in self.pauses),
            injections=tuple(
                Injection(mode=i.mode, number=i.number, code=i.resolved_code())
                for i in self.injections
            ),
            eject=EjectConfig(
                cool=CoolRelease(**e.cool.model_dump()) if e.cool else None,
                shake=BedShake(**e.shake.model_dump()) if e.shake else None,
                push=PushOff(**e.push.model_dump()) if e.push else None,
            ),
            printer=self.printer,
        )


# ============================================================================
# LOADERS
# ============================================================================

def load_postprocess_job(path: Union[str, Path]) -> PostProcessJobV1:
    """Load and validate a post-process job from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to the job file

    Returns
    -------
    PostProcessJobV1
        Validated job

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Job file not found: {path}")

    data = fs.load_yaml(path)
    if not isinstance(data, dict):
        raise ValueError(f"Job file validation failed at {path}: expected a mapping")
    try:
        return PostProcessJobV1(**data)
    except Exception as e:
        raise ValueError(f"Job file validation failed at {path}: {e}") from e
