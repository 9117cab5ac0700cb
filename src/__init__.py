"""Image Algebra: lazily evaluated, composable image trees.

This package contains the core modules for describing an image as a tree
of operations over an infinite plane (raster sources, affine transforms,
alpha-compositing joins, solid fills) and for materializing a finite
window of that plane into pixels.

Architecture layers (strict one-way dependency):
    src/image_algebra/ → src/utils/

Key invariants:
    - Sampling is total: every coordinate yields a Pixel, never an error
    - Channels are floats in [0,1] internally; 8-bit only at the codec boundary
    - Nodes are immutable after construction and may be shared by many parents
    - YAML-only configs, no JSON
"""

__version__ = "0.3.0"
