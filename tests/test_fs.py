"""Test atomic filesystem operations.

Tests for src.utils.fs:
    - atomic_write_bytes replaces the destination in one step
    - Failed writes raise RuntimeError and leave no tmp file behind
    - load_yaml parses, handles empty files and reports errors
    - ensure_dir creates parents

Test cases:
    - test_atomic_write_bytes()
    - test_atomic_write_overwrites()
    - test_atomic_write_failure_raises_runtime_error()
    - test_atomic_write_failure_on_directory_target()
    - test_load_yaml()
    - test_load_yaml_empty_file()
    - test_load_yaml_missing()
    - test_load_yaml_malformed()
    - test_ensure_dir()

Run:
    pytest tests/test_fs.py -v
"""

import pytest
import yaml

from src.utils import fs


def test_atomic_write_bytes(tmp_path):
    target = tmp_path / "a" / "b" / "out.bin"
    fs.atomic_write_bytes(target, b"\x00\x01\x02")

    assert target.read_bytes() == b"\x00\x01\x02"
    assert sorted(p.name for p in target.parent.iterdir()) == ["out.bin"]


def test_atomic_write_overwrites(tmp_path):
    target = tmp_path / "out.bin"
    target.write_bytes(b"old contents")
    fs.atomic_write_bytes(target, b"new")
    assert target.read_bytes() == b"new"


def test_atomic_write_failure_raises_runtime_error(tmp_path):
    blocker = tmp_path / "file_not_dir"
    blocker.write_bytes(b"x")

    with pytest.raises(RuntimeError) as excinfo:
        fs.atomic_write_bytes(blocker / "out.bin", b"data")
    assert isinstance(excinfo.value.__cause__, OSError)
    assert blocker.read_bytes() == b"x"


def test_atomic_write_failure_on_directory_target(tmp_path):
    """Renaming a file over a non-empty directory fails; the tmp file is removed."""
    target = tmp_path / "occupied"
    target.mkdir()
    (target / "keep.txt").write_text("keep")

    with pytest.raises(RuntimeError, match="occupied"):
        fs.atomic_write_bytes(target, b"data")

    assert (target / "keep.txt").read_text() == "keep"
    assert not (tmp_path / "occupied.tmp").exists()


def test_load_yaml(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("render:\n  width: 4\n  layers: [1, 2]\n")
    assert fs.load_yaml(path) == {"render": {"width": 4, "layers": [1, 2]}}


def test_load_yaml_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert fs.load_yaml(path) == {}


def test_load_yaml_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "missing.yaml")


def test_load_yaml_malformed(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("render: [unclosed\n")
    with pytest.raises(yaml.YAMLError, match="bad.yaml"):
        fs.load_yaml(path)


def test_ensure_dir(tmp_path):
    d = fs.ensure_dir(tmp_path / "x" / "y" / "z")
    assert d.is_dir()
    # Idempotent
    assert fs.ensure_dir(d) == d
