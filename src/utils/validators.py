"""YAML schema validation for render configs and scene documents.

Provides centralized validation for configuration files using pydantic:
    - Render config schema (render.v1.yaml): output window, workers, logging
    - Scene schema (scene.v1): a tree of image nodes plus shared definitions

All loaders fail fast with actionable messages (offending keys, expected
ranges) wrapped as ValueError naming the file.

Units:
    - Geometry: output pixels (x right, y down, origin top-left)
    - Color: [0.0, 1.0] per channel, straight (non-premultiplied) alpha
    - Rotation: degrees in scene files

Usage:
    from src.utils import validators

    cfg = validators.load_render_config("configs/render.v1.yaml")
    scene = validators.load_scene_document("configs/scenes/checker.yaml")
"""

import math
from pathlib import Path
from typing import Annotated, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# RENDER SCHEMA V1
# ============================================================================

class LoggingV1(BaseModel):
    """Logging settings passed to logging_config.setup_logging()."""
    model_config = ConfigDict(extra="forbid")

    log_level: str = Field(default="INFO", description="Root logger level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")
    json_format: bool = Field(default=False, alias="json", description="JSON lines output")
    color: bool = Field(default=True, description="ANSI colors on console")

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}, got {v}")
        return v.upper()


class RenderV1(BaseModel):
    """Output window and execution settings for one render."""
    model_config = ConfigDict(extra="forbid")

    width: int = Field(..., ge=1, le=65535, description="Output width (px)")
    height: int = Field(..., ge=1, le=65535, description="Output height (px)")
    workers: int = Field(default=1, ge=1, le=256, description="Row-band worker threads")
    output: Optional[str] = Field(default=None, description="Destination image path")
    format: Optional[str] = Field(default=None, description="Pillow format; inferred from suffix if unset")


class RenderConfigV1(BaseModel):
    """Render configuration (render.v1.yaml schema)."""
    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="render.v1")
    render: RenderV1
    logging: LoggingV1 = Field(default_factory=LoggingV1)

    @field_validator('version')
    @classmethod
    def validate_version(cls, v: str) -> str:
        if v != "render.v1":
            raise ValueError(f"version must be 'render.v1', got {v}")
        return v


# ============================================================================
# SCENE SCHEMA V1
# ============================================================================

def _check_unit(values: Tuple[float, ...], what: str) -> Tuple[float, ...]:
    for v in values:
        if not (0.0 <= v <= 1.0):
            raise ValueError(f"{what} channels must be in [0, 1], got {values}")
    return values


class UniformNode(BaseModel):
    """Infinite solid-color plane."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["uniform"]
    color: Tuple[float, float, float, float] = Field(..., description="RGBA in [0, 1]")

    @field_validator('color')
    @classmethod
    def validate_color(cls, v):
        return _check_unit(v, "color")


class BufferNode(BaseModel):
    """Raster decoded from an image file (relative to the scene file)."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["buffer"]
    path: str = Field(..., min_length=1)


class TransformNode(BaseModel):
    """Affine transform given in the intuitive (image-moving) direction."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["transform"]
    matrix: List[List[float]]
    source: "SceneNode"

    @field_validator('matrix')
    @classmethod
    def validate_matrix(cls, v: List[List[float]]) -> List[List[float]]:
        if len(v) != 3 or any(len(row) != 3 for row in v):
            raise ValueError(f"matrix must be 3x3, got {[len(row) for row in v]} columns per row")
        if not all(math.isfinite(x) for row in v for x in row):
            raise ValueError("matrix entries must be finite")
        return v


class TranslateNode(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["translate"]
    dx: float = 0.0
    dy: float = 0.0
    source: "SceneNode"


class ScaleNode(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["scale"]
    sx: float
    sy: Optional[float] = None
    source: "SceneNode"


class RotateNode(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["rotate"]
    degrees: float
    about: Tuple[float, float] = (0.0, 0.0)
    source: "SceneNode"


class ReflectNode(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["reflect"]
    axis: Literal["x", "y"]
    source: "SceneNode"


class JoinNode(BaseModel):
    """Alpha-composite ``top`` over ``bottom``."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["join"]
    bottom: "SceneNode"
    top: "SceneNode"


class StackNode(BaseModel):
    """Layers listed bottom first; each is joined over the ones before it."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["stack"]
    layers: List["SceneNode"] = Field(..., min_length=1)


class RefNode(BaseModel):
    """Reference to an entry of SceneV1.defs (shared, built once)."""
    model_config = ConfigDict(extra="forbid")

    kind: Literal["ref"]
    name: str = Field(..., min_length=1)


SceneNode = Annotated[
    Union[
        UniformNode,
        BufferNode,
        TransformNode,
        TranslateNode,
        ScaleNode,
        RotateNode,
        ReflectNode,
        JoinNode,
        StackNode,
        RefNode,
    ],
    Field(discriminator="kind"),
]

for _model in (TransformNode, TranslateNode, ScaleNode, RotateNode, ReflectNode, JoinNode, StackNode):
    _model.model_rebuild()


class SceneV1(BaseModel):
    """Scene document (scene.v1 schema)."""
    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = 1
    defs: Dict[str, SceneNode] = Field(default_factory=dict)
    root: SceneNode
    render: RenderV1


# ============================================================================
# PUBLIC API
# ============================================================================

def load_render_config(path: Union[str, Path]) -> RenderConfigV1:
    """Load and validate render config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to render.v1.yaml file

    Returns
    -------
    RenderConfigV1
        Validated render configuration

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
        raise FileNotFoundError(f"Render config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return RenderConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Render config validation failed at {path}: {e}") from e


def load_scene_document(path: Union[str, Path]) -> SceneV1:
    """Load and validate a scene document from YAML.

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Scene file not found: {path}")

    data = fs.load_yaml(path)
    return parse_scene(data, source=str(path))


def parse_scene(data: Dict, source: str = "<dict>") -> SceneV1:
    """Validate an already-parsed scene mapping."""
    try:
        return SceneV1(**data)
    except Exception as e:
        raise ValueError(f"Scene validation failed at {source}: {e}") from e
