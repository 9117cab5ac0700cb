"""Composable image algebra over an infinite plane.

Provides lazily evaluated image trees:
    - Pixel: straight-alpha RGBA in [0,1]
    - Uniform: solid color everywhere
    - BufferSource: decoded raster, nearest-neighbor sampling
    - Transform: affine view of a source (stores the inverse matrix)
    - Join / Stack: source-over compositing of top onto bottom
    - render / write_to: materialize a window as RGBA8

Modules:
    - pixel: Pixel value type
    - matrix: affine matrices, adjugate inverse, degenerate handling
    - sources: ImageSource capability, Uniform, Transform, Join, Stack, composite
    - buffer: RasterBuffer and BufferSource
    - renderer: window evaluation and persistence via the codec
    - scene: YAML scene documents → image trees

Invariants:
    - get(x, y) is total: it never raises, "no data" is transparent black
    - Nodes are immutable and can be shared between parents
    - 8-bit conversion happens only at the codec boundary
"""

from . import matrix
from .buffer import BufferSource, RasterBuffer
from .pixel import Pixel, TRANSPARENT
from .renderer import render, render_array, write_to
from .scene import SceneError, build_scene, load_scene, render_scene
from .sources import ImageSource, Join, Stack, Transform, Uniform, blend_over, composite, sample

__all__ = [
    'matrix',
    'Pixel',
    'TRANSPARENT',
    'ImageSource',
    'Uniform',
    'Transform',
    'Join',
    'Stack',
    'BufferSource',
    'RasterBuffer',
    'blend_over',
    'composite',
    'sample',
    'render',
    'render_array',
    'write_to',
    'SceneError',
    'build_scene',
    'load_scene',
    'render_scene',
]
