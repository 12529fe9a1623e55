"""Filesystem helpers for G-code and YAML files.

Provides:
    - Atomic writes: tmp file -> fsync -> rename (prevents partial reads)
    - YAML load/save via PyYAML safe_load / safe_dump
    - G-code text read/write that carries stray non-UTF-8 bytes through
      unchanged (surrogateescape)
    - Output path derivation for post-processed files

The core engine (``gcode_toolkit.gcode``) never touches the filesystem;
only the configs loader and the command-line scripts call into here.

Usage:
    from gcode_toolkit.utils import fs
    text = fs.read_gcode("part.gcode")
    fs.write_gcode(fs.modified_output_path("part.gcode"), new_text)
"""

import os
from pathlib import Path
from typing import Any, Dict, Union

import yaml

GCODE_SUFFIXES = (".gcode", ".gco", ".g")
# Round-trips non-UTF-8 bytes through str unchanged
GCODE_ERRORS = "surrogateescape"


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp -> fsync -> rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Notes
    -----
    A printer that picks files off a watched folder never sees a
    half-written G-code file. The tmp file lives in the target directory
    so the rename stays on one filesystem.
    """
    path = Path(path)
    ensure_dir(path.parent)

    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        # Atomic rename (overwrites existing file on POSIX)
        tmp_path.replace(path)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "utf-8",
    errors: str = "strict"
) -> None:
    """Write text to file atomically.

    Convenience wrapper around atomic_write_bytes.
    """
    atomic_write_bytes(path, text.encode(encoding, errors))


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically.

    Parameters
    ----------
    obj : Any
        Python object (dict, list, primitives)
    path : Union[str, Path]
        Target YAML file path
    """
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content (``None`` for an empty file)

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    yaml.YAMLError
        If YAML parsing fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def read_gcode(path: Union[str, Path]) -> str:
    """Read a G-code file as text.

    Undecodable bytes (binary thumbnails, cp1252 degree signs) become lone
    surrogates, so ``write_gcode`` restores them byte for byte.

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"G-code file not found: {path}")
    # newline='' keeps CRLF files byte-faithful through a no-op mutate
    with open(path, 'r', encoding='utf-8', errors=GCODE_ERRORS, newline='') as f:
        return f.read()


def write_gcode(path: Union[str, Path], text: str) -> None:
    """Atomically write text produced from ``read_gcode``."""
    atomic_write_text(path, text, errors=GCODE_ERRORS)


def modified_output_path(source: Union[str, Path], tag: str = "modified") -> Path:
    """Derive ``<stem>_<tag><suffix>`` next to *source*.

    Unknown suffixes are replaced by ``.gcode``.

    Examples
    --------
    >>> modified_output_path("benchy.gco")
    PosixPath('benchy_modified.gco')
    """
    source = Path(source)
    suffix = source.suffix if source.suffix.lower() in GCODE_SUFFIXES else ".gcode"
    stem = source.stem if source.suffix.lower() in GCODE_SUFFIXES else source.name
    return source.with_name(f"{stem}_{tag}{suffix}")
