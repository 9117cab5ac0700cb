"""Raster codec: encoded image bytes ↔ dense RGBA8 grids (via Pillow).

Provides:
    - decode(): bytes → DecodedRaster (width, height, uint8 (H, W, 4))
    - encode(): width, height, interleaved RGBA8 → encoded bytes
    - read_file() / write_file(): the same, bound to a path

Every decoded raster is normalized to 4 channels. Sources without alpha
(L, RGB, P without transparency, CMYK) get full opacity synthesized by
Pillow's RGBA conversion.

Writes go through fs.atomic_write_bytes, so a failed save never leaves a
half-written file at the destination.

Usage:
    from src.utils import codec
    raster = codec.read_file("tree.png")
    codec.write_file("out.png", raster.width, raster.height, raster.rgba)
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from . import fs

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "PNG"


class CodecError(ValueError):
    """Pillow cannot decode or encode the raster."""


@dataclass(frozen=True)
class DecodedRaster:
    """Decoded raster, row-major, origin top-left.

    Fields:
        width: Width, px.
        height: Height, px.
        rgba: uint8 array of shape (height, width, 4).
    """
    width: int
    height: int
    rgba: np.ndarray


def decode(data: bytes) -> DecodedRaster:
    """Decode encoded image bytes into an RGBA8 raster.

    Parameters
    ----------
    data : bytes
        Encoded image (any container Pillow can identify: PNG, JPEG, BMP, ...)

    Returns
    -------
    DecodedRaster
        Raster normalized to RGBA, uint8 (H, W, 4)

    Raises
    ------
    CodecError
        If the bytes are not a recognizable or decodable image, or exceed
        Pillow's decompression-bomb pixel limit
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
        raise CodecError(f"Cannot decode image ({len(data)} bytes): {e}") from e

    height, width = rgba.shape[:2]
    rgba.flags.writeable = False
    return DecodedRaster(width=width, height=height, rgba=rgba)


def encode(
    width: int,
    height: int,
    rgba: Union[bytes, bytearray, np.ndarray],
    fmt: str = DEFAULT_FORMAT
) -> bytes:
    """Encode an interleaved RGBA8 buffer.

    Parameters
    ----------
    width, height : int
        Raster dimensions in px
    rgba : bytes or np.ndarray
        Row-major interleaved RGBA8, length width * height * 4
    fmt : str
        Pillow format name, default "PNG"

    Returns
    -------
    bytes
        Encoded image

    Raises
    ------
    CodecError
        If the buffer length does not match the dimensions, or Pillow
        cannot write the requested format
    """
    buf = np.frombuffer(bytes(rgba), dtype=np.uint8) if not isinstance(rgba, np.ndarray) \
        else np.ascontiguousarray(rgba, dtype=np.uint8).reshape(-1)
    expected = width * height * 4
    if buf.size != expected:
        raise CodecError(
            f"RGBA buffer has {buf.size} bytes, expected {expected} for {width}x{height}"
        )
    if width == 0 or height == 0:
        raise CodecError(f"Cannot encode empty raster {width}x{height}")

    img = Image.fromarray(buf.reshape(height, width, 4))
    if fmt.upper() in ("JPEG", "JPG"):
        # JPEG has no alpha channel
        img = img.convert("RGB")

    out = io.BytesIO()
    try:
        img.save(out, format=fmt)
    except (KeyError, ValueError, OSError) as e:
        raise CodecError(f"Cannot encode {width}x{height} raster as {fmt}: {e}") from e
    return out.getvalue()


def format_for_path(path: Union[str, Path]) -> str:
    """Pillow format name for a file suffix (e.g. ".png" → "PNG").

    Raises
    ------
    CodecError
        If the suffix is not a registered Pillow extension
    """
    suffix = Path(path).suffix.lower()
    fmt = Image.registered_extensions().get(suffix)
    if fmt is None:
        raise CodecError(f"Unknown image format for {path!s} (suffix {suffix!r})")
    return fmt


def read_file(path: Union[str, Path]) -> DecodedRaster:
    """Read and decode an image file.

    Raises
    ------
    FileNotFoundError
        If the path does not exist or is not a file
    CodecError
        If the file is not a decodable image
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image file not found: {path}")

    try:
        raster = decode(path.read_bytes())
    except CodecError as e:
        raise CodecError(f"{path}: {e}") from e

    logger.debug(f"Decoded {path}: {raster.width}x{raster.height}")
    return raster


def write_file(
    path: Union[str, Path],
    width: int,
    height: int,
    rgba: Union[bytes, bytearray, np.ndarray],
    fmt: Optional[str] = None
) -> Path:
    """Encode and atomically write a raster.

    Parameters
    ----------
    path : Union[str, Path]
        Destination file; parent directories are created
    width, height : int
        Raster dimensions in px
    rgba : bytes or np.ndarray
        Row-major interleaved RGBA8
    fmt : str, optional
        Pillow format name; inferred from the suffix when None

    Returns
    -------
    Path
        The written path

    Raises
    ------
    CodecError
        If encoding fails
    RuntimeError
        If the destination cannot be written
    """
    path = Path(path)
    data = encode(width, height, rgba, fmt=fmt or format_for_path(path))
    fs.atomic_write_bytes(path, data)
    logger.info(f"Wrote {width}x{height} raster to {path} ({len(data)} bytes)")
    return path
