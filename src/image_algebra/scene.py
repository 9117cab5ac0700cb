"""Scene documents: build image trees from validated YAML.

A scene is the data form of the fluent construction API. Example:

    version: 1
    defs:
      tile:
        kind: scale
        sx: 0.5
        source: {kind: buffer, path: tile.png}
    root:
      kind: stack
      layers:
        - {kind: uniform, color: [1, 1, 1, 1]}
        - {kind: ref, name: tile}
        - {kind: translate, dx: 64, dy: 0, source: {kind: ref, name: tile}}
    render: {width: 128, height: 64, output: checker.png}

Invariants:
    - Each defs entry is built at most once; every ref to it shares the
      same node
    - Unknown refs and reference cycles raise SceneError
    - Relative buffer paths resolve against base_dir (the scene file's
      directory when loaded from disk)
"""

import logging
import math
from pathlib import Path
from typing import Dict, Optional, Set, Tuple, Union

from src.utils import validators
from src.utils.validators import (
    BufferNode,
    JoinNode,
    ReflectNode,
    RefNode,
    RenderV1,
    RotateNode,
    ScaleNode,
    SceneV1,
    StackNode,
    TransformNode,
    TranslateNode,
    UniformNode,
)

from .buffer import BufferSource
from .pixel import Pixel
from .renderer import write_to
from .sources import ImageSource, Join, Transform, Uniform, composite

logger = logging.getLogger(__name__)


class SceneError(ValueError):
    """Scene graph cannot be built (unknown ref, cycle)."""


class _SceneBuilder:
    """Recursive builder with memoized, cycle-checked defs."""

    def __init__(self, scene: SceneV1, base_dir: Path):
        self.scene = scene
        self.base_dir = base_dir
        self.built: Dict[str, ImageSource] = {}
        self.in_progress: Set[str] = set()

    def build(self, node) -> ImageSource:
        if isinstance(node, UniformNode):
            return Uniform(Pixel(*node.color))

        if isinstance(node, BufferNode):
            path = Path(node.path)
            if not path.is_absolute():
                path = self.base_dir / path
            return BufferSource.open(path)

        if isinstance(node, TransformNode):
            return Transform(self.build(node.source), node.matrix)

        if isinstance(node, TranslateNode):
            return self.build(node.source).translate(node.dx, node.dy)

        if isinstance(node, ScaleNode):
            return self.build(node.source).scale(node.sx, node.sy)

        if isinstance(node, RotateNode):
            return self.build(node.source).rotate(math.radians(node.degrees), node.about)

        if isinstance(node, ReflectNode):
            return self.build(node.source).reflect(node.axis)

        if isinstance(node, JoinNode):
            return Join(self.build(node.bottom), self.build(node.top))

        if isinstance(node, StackNode):
            return composite(self.build(layer) for layer in node.layers)

        if isinstance(node, RefNode):
            return self.resolve(node.name)

        raise SceneError(f"Unsupported scene node: {type(node).__name__}")

    def resolve(self, name: str) -> ImageSource:
        if name in self.built:
            return self.built[name]
        if name not in self.scene.defs:
            raise SceneError(f"Unknown ref '{name}'; defined: {sorted(self.scene.defs)}")
        if name in self.in_progress:
            raise SceneError(f"Reference cycle through '{name}'")

        self.in_progress.add(name)
        try:
            source = self.build(self.scene.defs[name])
        finally:
            self.in_progress.discard(name)
        self.built[name] = source
        return source


def build_scene(scene: Union[SceneV1, dict], base_dir: Union[str, Path] = ".") -> ImageSource:
    """Build the root image source of a scene.

    Parameters
    ----------
    scene : SceneV1 or dict
        Validated scene, or a raw mapping (validated here)
    base_dir : Union[str, Path]
        Directory that relative buffer paths resolve against

    Returns
    -------
    ImageSource
        Root of the built tree

    Raises
    ------
    ValueError
        Scene fails schema validation
    SceneError
        Unknown ref or reference cycle
    FileNotFoundError, codec.CodecError
        A buffer image is missing or undecodable
    """
    if not isinstance(scene, SceneV1):
        scene = validators.parse_scene(scene)
    builder = _SceneBuilder(scene, Path(base_dir))
    root = builder.build(scene.root)
    logger.debug(f"Built scene: {len(builder.built)} shared def(s), root={root!r}")
    return root


def load_scene(path: Union[str, Path]) -> Tuple[ImageSource, RenderV1]:
    """Load a scene file; returns (root source, render settings)."""
    path = Path(path)
    scene = validators.load_scene_document(path)
    return build_scene(scene, base_dir=path.parent), scene.render


def render_scene(
    path: Union[str, Path],
    output: Optional[Union[str, Path]] = None,
    workers: Optional[int] = None
) -> Path:
    """Load a scene file, render it and write the image.

    Parameters
    ----------
    path : Union[str, Path]
        Scene YAML file
    output : Union[str, Path], optional
        Destination; defaults to render.output (relative to the scene file)
    workers : int, optional
        Row-band threads; defaults to render.workers

    Returns
    -------
    Path
        The written image path

    Raises
    ------
    SceneError
        If neither output nor render.output is given
    """
    path = Path(path)
    root, render_cfg = load_scene(path)

    if output is None:
        if render_cfg.output is None:
            raise SceneError(f"{path}: no output given and render.output is unset")
        output = Path(render_cfg.output)
        if not output.is_absolute():
            output = path.parent / output

    logger.info(f"Rendering scene {path} → {output}")
    return write_to(
        root,
        output,
        render_cfg.width,
        render_cfg.height,
        fmt=render_cfg.format,
        workers=render_cfg.workers if workers is None else workers,
    )
