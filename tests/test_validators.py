"""Test pydantic schemas for render configs and scene documents.

Tests for src.utils.validators:
    - Repository render config validates
    - Range checks, version checks and unknown keys fail fast
    - Scene node discriminator and per-node constraints
    - Loader errors name the offending file

Run:
    pytest tests/test_validators.py -v
"""

from pathlib import Path

import pytest
import yaml

from src.utils import validators
from src.utils.validators import (
    JoinNode,
    RefNode,
    RenderConfigV1,
    RenderV1,
    SceneV1,
    StackNode,
    UniformNode,
)

REPO_ROOT = Path(__file__).resolve().parent.parent
CONFIGS = REPO_ROOT / "configs"


def _write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


def _scene(root, **extra):
    doc = {"root": root, "render": {"width": 4, "height": 4}}
    doc.update(extra)
    return doc


UNIFORM = {"kind": "uniform", "color": [1.0, 0.0, 0.0, 1.0]}


# ============================================================================
# RENDER CONFIG
# ============================================================================

def test_repository_render_config_validates():
    cfg = validators.load_render_config(CONFIGS / "render.v1.yaml")
    assert cfg.version == "render.v1"
    assert cfg.render.width == 512
    assert cfg.render.workers >= 1
    assert cfg.logging.log_level == "INFO"
    assert cfg.logging.json_format is False


def test_render_defaults():
    render = RenderV1(width=10, height=20)
    assert render.workers == 1
    assert render.output is None
    assert render.format is None


@pytest.mark.parametrize("field,value", [
    ("width", 0),
    ("height", -3),
    ("width", 70000),
    ("workers", 0),
])
def test_render_out_of_range(field, value):
    data = {"width": 8, "height": 8}
    data[field] = value
    with pytest.raises(ValueError):
        RenderV1(**data)


def test_log_level_normalized():
    cfg = RenderConfigV1(render={"width": 1, "height": 1}, logging={"log_level": "debug"})
    assert cfg.logging.log_level == "DEBUG"


def test_log_level_invalid():
    with pytest.raises(ValueError):
        RenderConfigV1(render={"width": 1, "height": 1}, logging={"log_level": "LOUD"})


def test_wrong_version(tmp_path):
    path = _write_yaml(tmp_path / "render.yaml", {
        "version": "render.v0",
        "render": {"width": 1, "height": 1},
    })
    with pytest.raises(ValueError, match="render.yaml"):
        validators.load_render_config(path)


def test_unknown_key_rejected(tmp_path):
    path = _write_yaml(tmp_path / "render.yaml", {
        "render": {"width": 1, "height": 1, "dpi": 300},
    })
    with pytest.raises(ValueError, match="dpi"):
        validators.load_render_config(path)


def test_missing_render_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        validators.load_render_config(tmp_path / "nope.yaml")


# ============================================================================
# SCENE SCHEMA
# ============================================================================

def test_scene_nested_nodes():
    scene = SceneV1(**_scene(
        {"kind": "join", "bottom": UNIFORM, "top": {"kind": "ref", "name": "veil"}},
        defs={"veil": {"kind": "uniform", "color": [0, 0, 0, 0.5]}},
    ))
    assert isinstance(scene.root, JoinNode)
    assert isinstance(scene.root.bottom, UniformNode)
    assert isinstance(scene.root.top, RefNode)
    assert isinstance(scene.defs["veil"], UniformNode)
    assert scene.version == 1


def test_scene_stack_and_transforms():
    scene = SceneV1(**_scene({
        "kind": "stack",
        "layers": [
            UNIFORM,
            {"kind": "translate", "dx": 3, "source": UNIFORM},
            {"kind": "scale", "sx": 2, "source": UNIFORM},
            {"kind": "rotate", "degrees": 90, "about": [1, 1], "source": UNIFORM},
            {"kind": "reflect", "axis": "x", "source": UNIFORM},
            {"kind": "transform", "matrix": [[1, 0, 0], [0, 1, 0], [0, 0, 1]], "source": UNIFORM},
        ],
    }))
    assert isinstance(scene.root, StackNode)
    translate = scene.root.layers[1]
    assert (translate.dx, translate.dy) == (3.0, 0.0)
    assert scene.root.layers[2].sy is None
    assert scene.root.layers[3].about == (1.0, 1.0)


def test_scene_repository_example_validates():
    scene = validators.load_scene_document(CONFIGS / "scenes" / "veil.yaml")
    assert "veil" in scene.defs
    assert scene.render.output == "veil.png"


@pytest.mark.parametrize("root", [
    {"kind": "sphere"},
    {"kind": "uniform", "color": [1, 0, 0]},
    {"kind": "uniform", "color": [1.5, 0, 0, 1]},
    {"kind": "uniform", "color": [1, 0, 0, 1], "blend": "multiply"},
    {"kind": "reflect", "axis": "z", "source": UNIFORM},
    {"kind": "stack", "layers": []},
    {"kind": "transform", "matrix": [[1, 0], [0, 1]], "source": UNIFORM},
    {"kind": "transform", "matrix": [[1, 0, 0], [0, 1, 0], [0, 0, float("inf")]], "source": UNIFORM},
    {"kind": "buffer", "path": ""},
    {"kind": "ref", "name": ""},
])
def test_scene_invalid_nodes(root):
    with pytest.raises(ValueError, match="Scene validation failed"):
        validators.parse_scene(_scene(root))


def test_scene_wrong_version():
    with pytest.raises(ValueError):
        validators.parse_scene(_scene(UNIFORM, version=2))


def test_scene_requires_render():
    with pytest.raises(ValueError):
        validators.parse_scene({"root": UNIFORM})


def test_scene_loader_names_file(tmp_path):
    path = _write_yaml(tmp_path / "broken_scene.yaml", _scene({"kind": "nope"}))
    with pytest.raises(ValueError, match="broken_scene.yaml"):
        validators.load_scene_document(path)


def test_missing_scene_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        validators.load_scene_document(tmp_path / "missing.yaml")
