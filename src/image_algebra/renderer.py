"""Renderer: materialize a finite window of an image tree.

Walks every integer coordinate (x, y) in [0, width) × [0, height), asks
the root source for a Pixel, and packs the results row-major as
interleaved RGBA8. Persistence is delegated to src.utils.codec; this
module opens no files itself.

Parallelism:
    Sources are immutable and side-effect-free, so the window is split
    into horizontal row bands (compute.row_bands) and each band is
    evaluated on its own thread with no locking. The output is identical
    for any worker count.

Channel conversion:
    Clamp to [0, 1], then round half-up to 8 bits (compute.to_uint8).
"""

import contextvars
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

import numpy as np

from src.utils import codec, compute

from .sources import ImageSource

logger = logging.getLogger(__name__)


def _check_window(width: int, height: int, workers: int) -> None:
    for name, v in (("width", width), ("height", height)):
        if isinstance(v, bool) or not isinstance(v, (int, np.integer)) or v < 0:
            raise ValueError(f"{name} must be a non-negative int, got {v!r}")
    if isinstance(workers, bool) or not isinstance(workers, (int, np.integer)) or workers < 1:
        raise ValueError(f"workers must be an int >= 1, got {workers!r}")


def _render_band(source: ImageSource, rows: slice, width: int, out: np.ndarray) -> None:
    """Fill out[rows] (float channels) by sampling source."""
    get = source.get
    for y in range(rows.start, rows.stop):
        line = out[y]
        fy = float(y)
        for x in range(width):
            p = get(float(x), fy)
            line[x, 0] = p.r
            line[x, 1] = p.g
            line[x, 2] = p.b
            line[x, 3] = p.a


def render_array(
    source: ImageSource,
    width: int,
    height: int,
    workers: int = 1
) -> np.ndarray:
    """Render a window to a uint8 array.

    Parameters
    ----------
    source : ImageSource
        Root of the image tree
    width, height : int
        Window size in px (non-negative)
    workers : int
        Number of row-band threads, default 1 (evaluate inline)

    Returns
    -------
    np.ndarray
        uint8 (height, width, 4), RGBA

    Raises
    ------
    ValueError
        If width/height are negative or not ints, or workers < 1
    """
    _check_window(width, height, workers)
    width, height, workers = int(width), int(height), int(workers)

    out = np.zeros((height, width, 4), dtype=np.float64)
    bands = compute.row_bands(height, workers) if width > 0 else []

    t0 = time.perf_counter()
    if len(bands) <= 1:
        for band in bands:
            _render_band(source, band, width, out)
    else:
        with ThreadPoolExecutor(max_workers=len(bands), thread_name_prefix="render") as ex:
            futures = [
                ex.submit(contextvars.copy_context().run, _render_band, source, band, width, out)
                for band in bands
            ]
            for fut in futures:
                fut.result()

    logger.debug(
        f"Rendered {width}x{height} in {time.perf_counter() - t0:.3f}s "
        f"({len(bands)} band(s))"
    )
    return compute.to_uint8(out)


def render(
    source: ImageSource,
    width: int,
    height: int,
    workers: int = 1
) -> bytes:
    """Render a window to interleaved RGBA8 bytes (len = width·height·4)."""
    return render_array(source, width, height, workers=workers).tobytes()


def write_to(
    source: ImageSource,
    path: Union[str, Path],
    width: int,
    height: int,
    fmt: Optional[str] = None,
    workers: int = 1
) -> Path:
    """Render a window and persist it through the codec.

    Parameters
    ----------
    source : ImageSource
        Root of the image tree
    path : Union[str, Path]
        Destination; format inferred from the suffix unless fmt is given
    width, height : int
        Window size in px (both ≥ 1; an empty raster cannot be encoded)
    fmt : str, optional
        Pillow format name (e.g. "PNG")
    workers : int
        Number of row-band threads

    Returns
    -------
    Path
        The written path

    Raises
    ------
    ValueError
        Invalid window or workers
    codec.CodecError
        Encoding failed (unknown format, empty raster)
    RuntimeError
        Destination could not be written; nothing is left at the destination
    """
    t0 = time.perf_counter()
    rgba = render_array(source, width, height, workers=workers)
    written = codec.write_file(path, width, height, rgba, fmt=fmt)
    logger.info(f"Rendered {width}x{height} to {written} in {time.perf_counter() - t0:.2f}s")
    return written
