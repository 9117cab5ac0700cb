"""Buffer source: a finite raster sampled by nearest neighbor.

The raster is decoded once at construction (through src.utils.codec) into
a read-only (height, width, 4) float32 array with channels in [0, 1],
row-major, origin top-left, x right, y down.

Sampling rules for get(x, y):
    1. non-finite x or y          → transparent
    2. x < 0 or y < 0             → transparent
    3. col, row = x, y rounded to nearest, ties up (so 0.5 → 1)
    4. col ≥ width or row ≥ height → transparent
    5. otherwise the stored cell

Round half-up coincides with round-half-away-from-zero on the
non-negative coordinates that reach step 3, so x = 0.5 samples column 1
and x = width - 0.5 is already out of bounds.
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from src.utils import codec, compute

from .pixel import Pixel, TRANSPARENT
from .sources import ImageSource

logger = logging.getLogger(__name__)


def _round_half_up(v: float) -> int:
    """Nearest int, ties up; exact for every finite float."""
    c = math.floor(v)
    return c + 1 if v - c >= 0.5 else c


@dataclass(frozen=True)
class RasterBuffer:
    """Immutable width × height grid of normalized RGBA.

    Fields:
        width: Width, px.
        height: Height, px.
        pixels: float32 array (height, width, 4), read-only.
    """
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels.shape != (self.height, self.width, 4):
            raise ValueError(
                f"pixels must have shape ({self.height}, {self.width}, 4), got {self.pixels.shape}"
            )
        self.pixels.flags.writeable = False

    @classmethod
    def from_rgba8(cls, rgba: np.ndarray) -> "RasterBuffer":
        """Build from a uint8 (H, W, 4) array."""
        pixels = compute.to_0_1(rgba, src_range="uint8")
        h, w = pixels.shape[:2]
        return cls(width=w, height=h, pixels=pixels)

    def cell(self, col: int, row: int) -> Pixel:
        r, g, b, a = self.pixels[row, col]
        return Pixel(float(r), float(g), float(b), float(a))


class BufferSource(ImageSource):
    """Image source backed by a RasterBuffer.

    Construct from a decoded raster, encoded bytes, a file, or an array.
    Decode failures surface immediately as codec.CodecError; the sampling
    path itself never raises.
    """

    __slots__ = ("_raster",)

    def __init__(self, raster: RasterBuffer):
        self._raster = raster

    @classmethod
    def from_bytes(cls, data: bytes) -> "BufferSource":
        decoded = codec.decode(data)
        return cls(RasterBuffer.from_rgba8(decoded.rgba))

    @classmethod
    def open(cls, path: Union[str, Path]) -> "BufferSource":
        """Decode an image file.

        Raises
        ------
        FileNotFoundError
            If the file is missing
        codec.CodecError
            If the file is not a decodable image
        """
        decoded = codec.read_file(path)
        logger.info(f"Loaded buffer source {path}: {decoded.width}x{decoded.height}")
        return cls(RasterBuffer.from_rgba8(decoded.rgba))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "BufferSource":
        """Wrap an in-memory raster.

        Parameters
        ----------
        array : np.ndarray
            uint8 (H, W, 4) or (H, W, 3) (alpha set to opaque), or
            float (H, W, 4) already in [0, 1]

        Raises
        ------
        ValueError
            On any other shape/dtype, or non-finite float values
        """
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValueError(f"Expected (H, W, 3) or (H, W, 4) array, got shape {array.shape}")

        if array.dtype == np.uint8:
            if array.shape[2] == 3:
                alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
                array = np.concatenate([array, alpha], axis=2)
            return cls(RasterBuffer.from_rgba8(array))

        if np.issubdtype(array.dtype, np.floating) and array.shape[2] == 4:
            compute.assert_finite(array, name="raster")
            pixels = compute.to_0_1(array, src_range="0_1")
            h, w = pixels.shape[:2]
            return cls(RasterBuffer(width=w, height=h, pixels=pixels))

        raise ValueError(
            f"Unsupported raster dtype/shape: {array.dtype} {array.shape}; "
            f"use uint8 RGB/RGBA or float RGBA"
        )

    @property
    def raster(self) -> RasterBuffer:
        return self._raster

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        return (self._raster.width, self._raster.height)

    def get(self, x: float, y: float) -> Pixel:
        if not (math.isfinite(x) and math.isfinite(y)):
            return TRANSPARENT
        if x < 0.0 or y < 0.0:
            return TRANSPARENT

        col = _round_half_up(x)
        row = _round_half_up(y)
        if col >= self._raster.width or row >= self._raster.height:
            return TRANSPARENT

        return self._raster.cell(col, row)

    def __repr__(self):
        return f"<BufferSource {self._raster.width}x{self._raster.height}>"
