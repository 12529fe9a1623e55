"""Tests for post-process job file validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml

from gcode_toolkit.directives.operations import (
    BedShake,
    CoolRelease,
    Injection,
    LayerPause,
    LineRewrite,
)
from gcode_toolkit.directives.templates import get_template
from gcode_toolkit.utils.validators import PostProcessJobV1, load_postprocess_job


def _write_job(tmp_path: Path, data: Any) -> Path:
    path = tmp_path / "job.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture()
def job_data() -> dict[str, Any]:
    return {
        "schema": "postprocess.v1",
        "printer": "kobra_s1",
        "rewrite": {"speed_percent": 90, "nozzle_offset": 5},
        "pauses": [{"layer": 12, "command": "M601"}],
        "injections": [
            {"mode": "layer", "number": 3, "code": "M117 Layer 3"},
            {"mode": "line", "number": 1, "template": "builtin-kobra-end"},
        ],
        "eject": {"cool": {"target_temp": 28}, "shake": {}},
    }


class TestLoadJob:
    def test_valid_job(self, tmp_path: Path, job_data: dict[str, Any]) -> None:
        job = load_postprocess_job(_write_job(tmp_path, job_data))
        assert job.schema_version == "postprocess.v1"
        assert job.printer == "kobra_s1"

    def test_to_directives(self, tmp_path: Path, job_data: dict[str, Any]) -> None:
        d = load_postprocess_job(_write_job(tmp_path, job_data)).to_directives()
        assert d.rewrite == LineRewrite(speed_percent=90, nozzle_offset=5)
        assert d.pauses == (LayerPause(layer=12, command="M601"),)
        assert d.injections[0] == Injection(mode="layer", number=3, code="M117 Layer 3")
        assert d.injections[1].code == get_template("builtin-kobra-end").code
        assert d.eject.cool == CoolRelease(target_temp=28)
        assert d.eject.shake == BedShake()
        assert d.eject.push is None
        assert d.printer == "kobra_s1"

    def test_minimal_job_is_empty(self, tmp_path: Path) -> None:
        job = load_postprocess_job(_write_job(tmp_path, {"schema": "postprocess.v1"}))
        assert job.to_directives().is_empty

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_postprocess_job(tmp_path / "absent.yaml")

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="expected a mapping"):
            load_postprocess_job(_write_job(tmp_path, ["a", "b"]))


class TestValidationErrors:
    @pytest.mark.parametrize(
        "patch, message",
        [
            ({"schema": "postprocess.v2"}, "Expected schema 'postprocess.v1'"),
            ({"pauses": [{"layer": 0}]}, "layer"),
            ({"pauses": [{"layer": 2, "command": "M999"}]}, "Pause command must be one of"),
            ({"pauses": [{"layer": 2, "command": "custom"}]}, "requires custom_code"),
            ({"injections": [{"mode": "line", "number": 1}]}, "exactly one of"),
            (
                {"injections": [{"mode": "line", "number": 1, "code": "M1", "template": "builtin-bambu-end"}]},
                "exactly one of",
            ),
            ({"injections": [{"mode": "line", "number": 1, "template": "nope"}]}, "Unknown template"),
            ({"rewrite": {"speed_percent": 0}}, "speed_percent"),
            ({"eject": {"shake": {"repetitions": 0}}}, "repetitions"),
        ],
    )
    def test_invalid(
        self, tmp_path: Path, job_data: dict[str, Any], patch: dict[str, Any], message: str
    ) -> None:
        job_data.update(patch)
        path = _write_job(tmp_path, job_data)
        with pytest.raises(ValueError, match=message) as excinfo:
            load_postprocess_job(path)
        assert str(path) in str(excinfo.value)

    def test_populate_by_field_name(self) -> None:
        job = PostProcessJobV1(schema_version="postprocess.v1")
        assert job.printer == "generic"
