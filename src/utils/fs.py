"""Atomic filesystem operations for rendered rasters and YAML documents.

Provides:
    - Atomic writes: tmp file → fsync → rename (no half-written images)
    - YAML loading for render configs and scene documents
    - Directory creation with exist_ok semantics

A render either produces a complete file at the destination or leaves the
destination untouched; the temporary file is removed on failure.

All paths use pathlib.Path for cross-platform compatibility.

Usage:
    from src.utils import fs
    fs.atomic_write_bytes("outputs/tree2.png", png_bytes)
    scene = fs.load_yaml("configs/scenes/checker.yaml")

Note: Module named `fs.py` rather than `io.py` to avoid shadowing stdlib `io`.
"""

import os
from pathlib import Path
from typing import Any, Dict, Union

import yaml


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
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Raises
    ------
    RuntimeError
        If the destination (or its directory) cannot be written. The
        original OS error is chained as ``__cause__``.

    Notes
    -----
    The tmp file lives in the destination directory so the final rename
    stays on one filesystem.
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + tmp_suffix)

    try:
        ensure_dir(path.parent)
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


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load YAML file safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed YAML content (empty dict for an empty file)

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
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
