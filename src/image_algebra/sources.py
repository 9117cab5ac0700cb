"""Image sources: the sampling capability and its composite nodes.

Architecture:
    - ImageSource: get(x, y) → Pixel, total over the real plane
    - Uniform: same Pixel everywhere (infinite solid plane)
    - Transform: maps output coordinates through the inverse of an affine
      matrix, then samples its child
    - Join: samples bottom and top at the same point and composites
      top over bottom (Porter-Duff source-over, straight alpha)
    - Stack: flat list of layers, each joined over the ones below
    - BufferSource (buffer.py): finite raster, nearest-neighbor lookup

Evaluation is pull-based: the renderer asks the root for each output
coordinate and sample() walks the tree with an explicit work stack, so
tree depth is not limited by Python's recursion limit. No node caches
pixels.

Invariants:
    - get() never raises; "no data" is Pixel.TRANSPARENT
    - Nodes are immutable after construction; the same node may be the
      child of any number of parents (shared, read-only)
    - The tree is acyclic by construction (children exist before parents)
    - A Transform built from a zero-determinant matrix samples transparent
      everywhere

Usage:
    from src.image_algebra import BufferSource, Pixel, Uniform

    tree = BufferSource.open("tree.png")
    squished = tree.scale(0.5)
    canvas = (Uniform(Pixel.TRANSPARENT)
              .join(tree)
              .join(squished)
              .join(squished.translate(100, 0)))
    canvas.write_to("tree2.png", 512, 512)
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

import numpy as np

from . import matrix as mx
from .pixel import Pixel, TRANSPARENT

logger = logging.getLogger(__name__)


class ImageSource(ABC):
    """Anything that yields a Pixel for every real coordinate.

    Subclasses implement get(); the composition methods below wrap the
    receiver in a new node and never modify it.
    """

    __slots__ = ()

    @abstractmethod
    def get(self, x: float, y: float) -> Pixel:
        """Sample the image at (x, y). Must not raise."""

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        """(width, height) for finite sources, None when unbounded."""
        return None

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def transform(self, matrix: mx.MatrixLike) -> "Transform":
        """Move/scale/rotate this image by matrix (intuitive direction)."""
        return Transform(self, matrix)

    def translate(self, dx: float, dy: float) -> "Transform":
        return Transform(self, mx.translation(dx, dy))

    def scale(self, sx: float, sy: Optional[float] = None) -> "Transform":
        return Transform(self, mx.scaling(sx, sy))

    def rotate(self, theta: float, about: Tuple[float, float] = (0.0, 0.0)) -> "Transform":
        """Rotate by theta radians (clockwise on screen) about a pivot."""
        return Transform(self, mx.rotation(theta, about))

    def reflect(self, axis: str) -> "Transform":
        return Transform(self, mx.reflection(axis))

    def join(self, top: "ImageSource") -> "Join":
        """Composite top over this image."""
        return Join(self, top)

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    def render(self, width: int, height: int, workers: int = 1) -> bytes:
        """Interleaved RGBA8 bytes for the window [0, width) × [0, height)."""
        from .renderer import render
        return render(self, width, height, workers=workers)

    def write_to(self, path, width: int, height: int, fmt: Optional[str] = None, workers: int = 1):
        """Render the window and persist it through the codec."""
        from .renderer import write_to
        return write_to(self, path, width, height, fmt=fmt, workers=workers)


class Uniform(ImageSource):
    """Infinite plane of one color; useful as a canvas backdrop."""

    __slots__ = ("_color",)

    def __init__(self, color: Pixel):
        if not isinstance(color, Pixel):
            color = Pixel(*color)
        self._color = color

    @property
    def color(self) -> Pixel:
        return self._color

    def get(self, x: float, y: float) -> Pixel:
        return self._color

    def __repr__(self):
        return f"<Uniform color={self._color.as_tuple()}>"


class Transform(ImageSource):
    """Affine view of a child source.

    The constructor takes the matrix in the intuitive direction (how the
    child should appear to move in this node's space) and stores its
    inverse; get() pushes output coordinates through the inverse to find
    where to sample the child. Scaling by 0.5 therefore makes the child
    appear half size: get(10, 10) samples child.get(20, 20).

    A zero-determinant matrix has no inverse. The node keeps the all-zero
    matrix from mx.invert() and short-circuits every get() to transparent.
    """

    __slots__ = ("_source", "_matrix", "_inverse", "_degenerate", "_coeffs")

    def __init__(self, source: ImageSource, matrix: mx.MatrixLike):
        self._source = source
        self._matrix = mx.as_matrix(matrix)
        self._inverse = mx.invert(self._matrix)
        self._degenerate = not self._inverse.any()
        self._matrix.flags.writeable = False
        self._inverse.flags.writeable = False

        inv = self._inverse
        self._coeffs = (
            float(inv[0, 0]), float(inv[0, 1]), float(inv[0, 2]),
            float(inv[1, 0]), float(inv[1, 1]), float(inv[1, 2]),
        )
        if self._degenerate:
            logger.warning(
                f"Degenerate transform (det=0), node samples transparent: {self._matrix.tolist()}"
            )

    @property
    def source(self) -> ImageSource:
        return self._source

    @property
    def matrix(self) -> np.ndarray:
        """The matrix as given (read-only)."""
        return self._matrix

    @property
    def inverse(self) -> np.ndarray:
        """Stored inverse (all zeros when degenerate, read-only)."""
        return self._inverse

    @property
    def degenerate(self) -> bool:
        return self._degenerate

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        """Output coordinate → child coordinate."""
        a, b, c, d, e, f = self._coeffs
        return (x * a + y * b + c, x * d + y * e + f)

    def get(self, x: float, y: float) -> Pixel:
        return sample(self, x, y)

    def __repr__(self):
        return f"<Transform degenerate={self._degenerate} source={type(self._source).__name__}>"


class Join(ImageSource):
    """Top composited over bottom at every coordinate.

    Straight-alpha source-over:

        a     = a_t + a_b·(1 − a_t)
        out.c = (c_t·a_t + c_b·a_b·(1 − a_t)) / a      for c in r, g, b

    When a == 0 the result is Pixel.TRANSPARENT regardless of the color
    channels underneath, which also avoids the division by zero.
    """

    __slots__ = ("_bottom", "_top")

    def __init__(self, bottom: ImageSource, top: ImageSource):
        self._bottom = bottom
        self._top = top

    @property
    def bottom(self) -> ImageSource:
        return self._bottom

    @property
    def top(self) -> ImageSource:
        return self._top

    def get(self, x: float, y: float) -> Pixel:
        return sample(self, x, y)

    def __repr__(self):
        return f"<Join bottom={type(self._bottom).__name__} top={type(self._top).__name__}>"


class Stack(ImageSource):
    """Layers listed bottom first, each composited over the ones before it.

    Equivalent to layers[0].join(layers[1]).join(layers[2])... but flat, so
    thousands of layers cost one node and no nesting.
    """

    __slots__ = ("_layers",)

    def __init__(self, layers: Iterable[ImageSource]):
        self._layers = tuple(layers)
        if not self._layers:
            raise ValueError("Stack needs at least one layer")

    @property
    def layers(self) -> Tuple[ImageSource, ...]:
        return self._layers

    def get(self, x: float, y: float) -> Pixel:
        return sample(self, x, y)

    def __repr__(self):
        return f"<Stack layers={len(self._layers)}>"


def blend_over(bottom: Pixel, top: Pixel) -> Pixel:
    """Composite one pixel over another (see Join)."""
    under = bottom.a * (1.0 - top.a)
    a = top.a + under
    if a == 0.0:
        return TRANSPARENT
    return Pixel(
        (top.r * top.a + bottom.r * under) / a,
        (top.g * top.a + bottom.g * under) / a,
        (top.b * top.a + bottom.b * under) / a,
        a,
    )


# Work items for sample(): evaluate a node, or fold pixels already on the
# value stack.
_EVAL = 0
_BLEND = 1
_FOLD = 2


def sample(source: ImageSource, x: float, y: float) -> Pixel:
    """Evaluate a tree at (x, y) with an explicit work stack.

    Transform, Join and Stack nodes are expanded here instead of calling
    their children's get(), so evaluation depth is not bounded by the
    interpreter's recursion limit. Any other node is a leaf and answers
    through its own get().
    """
    work = [(_EVAL, source, x, y)]
    values: List[Pixel] = []

    while work:
        op, node, px, py = work.pop()

        if op == _BLEND:
            top = values.pop()
            values.append(blend_over(values.pop(), top))
        elif op == _FOLD:
            # node holds the layer count here
            start = len(values) - node
            acc = values[start]
            for p in values[start + 1:]:
                acc = blend_over(acc, p)
            del values[start:]
            values.append(acc)
        elif isinstance(node, Transform):
            if node._degenerate:
                values.append(TRANSPARENT)
            else:
                qx, qy = node.map_point(px, py)
                work.append((_EVAL, node._source, qx, qy))
        elif isinstance(node, Join):
            # Popped in reverse: bottom is evaluated first, then top
            work.append((_BLEND, None, px, py))
            work.append((_EVAL, node._top, px, py))
            work.append((_EVAL, node._bottom, px, py))
        elif isinstance(node, Stack):
            work.append((_FOLD, len(node._layers), px, py))
            for layer in reversed(node._layers):
                work.append((_EVAL, layer, px, py))
        else:
            values.append(node.get(px, py))

    return values[0]


def composite(layers: Iterable[ImageSource]) -> ImageSource:
    """Stack layers bottom-first: each layer is joined over all before it.

    composite([a, b, c]) samples the same as a.join(b).join(c); a single
    layer is returned as-is.

    Raises
    ------
    ValueError
        If layers is empty
    """
    layers = tuple(layers)
    if not layers:
        raise ValueError("composite() needs at least one layer")
    if len(layers) == 1:
        return layers[0]
    return Stack(layers)
