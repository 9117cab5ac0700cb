"""Channel numerics, finiteness guards, and render-window partitioning.

Core utilities:
    - Channel conversions: to_0_1() (uint8 → float32), to_uint8() (float → uint8)
    - Finiteness guard: assert_finite() for construction-time validation
    - Band partitioning: row_bands() splits an output window for worker threads

Invariants:
    - Internal channels are floats in [0,1] (F32 arrays, Python floats per pixel)
    - 8-bit values exist only at the codec boundary
    - to_uint8 clamps first, then rounds half-up; out-of-range blend results
      never wrap around
"""

from typing import List

import numpy as np


def to_0_1(x: np.ndarray, src_range: str = "uint8") -> np.ndarray:
    """Convert channel array to [0, 1] range.

    Parameters
    ----------
    x : np.ndarray
        Input array, any shape
    src_range : str
        Source range: "uint8" [0,255] or "0_1" (no-op apart from dtype)

    Returns
    -------
    np.ndarray
        float32 array in [0, 1] range, same shape
    """
    if src_range == "uint8":
        return x.astype(np.float32) / 255.0
    elif src_range == "0_1":
        return x.astype(np.float32)
    else:
        raise ValueError(f"Unknown src_range: {src_range}. Use 'uint8' or '0_1'.")


def to_uint8(x: np.ndarray) -> np.ndarray:
    """Convert [0, 1] float channels to uint8 with clamping.

    Parameters
    ----------
    x : np.ndarray
        Float array, any shape; values outside [0, 1] are clamped

    Returns
    -------
    np.ndarray
        uint8 array, same shape

    Notes
    -----
    Rounds half-up: floor(v * 255 + 0.5). NaN maps to 0.
    This is the ONLY place where silent clamping is acceptable.
    """
    x = np.nan_to_num(np.asarray(x, dtype=np.float64), nan=0.0)
    x = np.clip(x, 0.0, 1.0)
    return np.floor(x * 255.0 + 0.5).astype(np.uint8)


def assert_finite(x: np.ndarray, name: str = "array") -> None:
    """Assert array contains no NaN or Inf values.

    Parameters
    ----------
    x : np.ndarray
        Array to check
    name : str
        Array name for error message

    Raises
    ------
    ValueError
        If array contains NaN or Inf
    """
    if not np.isfinite(x).all():
        nan_count = int(np.isnan(x).sum())
        inf_count = int(np.isinf(x).sum())
        raise ValueError(
            f"{name} contains non-finite values: {nan_count} NaNs, {inf_count} Infs. "
            f"Shape: {x.shape}, dtype: {x.dtype}"
        )


def row_bands(height: int, n_bands: int) -> List[slice]:
    """Split rows [0, height) into contiguous bands for parallel rendering.

    Parameters
    ----------
    height : int
        Number of output rows
    n_bands : int
        Desired number of bands (≥ 1)

    Returns
    -------
    list[slice]
        Non-overlapping row slices covering [0, height) in order.
        Never more bands than rows; empty list when height == 0.

    Notes
    -----
    Band sizes differ by at most one row (earlier bands take the remainder).
    """
    if n_bands < 1:
        raise ValueError(f"n_bands must be >= 1, got {n_bands}")
    if height <= 0:
        return []

    n_bands = min(n_bands, height)
    base, extra = divmod(height, n_bands)
    bands = []
    start = 0
    for i in range(n_bands):
        stop = start + base + (1 if i < extra else 0)
        bands.append(slice(start, stop))
        start = stop

    return bands
