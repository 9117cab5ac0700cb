"""Affine coordinate mapping in homogeneous 3×3 form.

Provides:
    - Constructors: identity, translation, scaling, rotation, shear, reflection
    - compose(): chain matrices in application order
    - determinant(), adjugate(), invert(): cofactor-based inverse
    - apply(): map a point through the first two rows

Matrices are numpy (3, 3) float64 arrays, rows (x_out, y_out, 1):

    x' = m[0,0]·x + m[0,1]·y + m[0,2]
    y' = m[1,0]·x + m[1,1]·y + m[1,2]

Coordinate frame: x right, y down, origin top-left (image frame). A
positive rotation angle therefore turns the image clockwise on screen.

Invariants:
    - invert(M) is the adjugate divided by det(M)
    - det(M) == 0 exactly → invert(M) is the all-zero matrix (no exception,
      no division); callers treat such a matrix as degenerate
    - Only the first two rows are read by apply(); the bottom row matters
      for the determinant alone
"""

import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np

MatrixLike = Union[np.ndarray, Sequence[Sequence[float]]]


def as_matrix(m: MatrixLike) -> np.ndarray:
    """Convert to a fresh (3, 3) float64 array.

    Raises
    ------
    ValueError
        If the input is not 3×3 or holds non-finite entries
    """
    try:
        arr = np.array(m, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Matrix must be a 3x3 numeric array: {e}") from e
    if arr.shape != (3, 3):
        raise ValueError(f"Matrix must have shape (3, 3), got {arr.shape}")
    if not np.isfinite(arr).all():
        raise ValueError(f"Matrix entries must be finite, got {arr.tolist()}")
    return arr


def identity() -> np.ndarray:
    return np.eye(3, dtype=np.float64)


def translation(dx: float, dy: float) -> np.ndarray:
    """Identity shifted by (dx, dy) in the translation column."""
    m = identity()
    m[0, 2] = dx
    m[1, 2] = dy
    return m


def scaling(sx: float, sy: Optional[float] = None) -> np.ndarray:
    """Scale about the origin; sy defaults to sx (uniform)."""
    if sy is None:
        sy = sx
    return np.array([
        [sx, 0.0, 0.0],
        [0.0, sy, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def rotation(theta: float, about: Tuple[float, float] = (0.0, 0.0)) -> np.ndarray:
    """Rotate by theta radians about a pivot point."""
    c = math.cos(theta)
    s = math.sin(theta)
    rot = np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)
    px, py = about
    if px == 0.0 and py == 0.0:
        return rot
    return compose(translation(-px, -py), rot, translation(px, py))


def shear(kx: float, ky: float = 0.0) -> np.ndarray:
    """x' = x + kx·y, y' = y + ky·x."""
    return np.array([
        [1.0, kx, 0.0],
        [ky, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ], dtype=np.float64)


def reflection(axis: str) -> np.ndarray:
    """Mirror across an axis: 'x' flips y (vertical flip), 'y' flips x."""
    if axis == "x":
        return scaling(1.0, -1.0)
    elif axis == "y":
        return scaling(-1.0, 1.0)
    raise ValueError(f"Unknown reflection axis: {axis}. Use 'x' or 'y'.")


def compose(*matrices: MatrixLike) -> np.ndarray:
    """Chain matrices so that the first argument is applied first.

    compose(A, B) maps p to B·(A·p), i.e. returns B @ A.
    """
    out = identity()
    for m in matrices:
        out = as_matrix(m) @ out
    return out


def adjugate(m: MatrixLike) -> np.ndarray:
    """Transpose of the cofactor matrix, written out term by term."""
    m = as_matrix(m)
    return np.array([
        [
            m[1, 1] * m[2, 2] - m[2, 1] * m[1, 2],
            m[0, 2] * m[2, 1] - m[0, 1] * m[2, 2],
            m[0, 1] * m[1, 2] - m[1, 1] * m[0, 2],
        ],
        [
            m[1, 2] * m[2, 0] - m[2, 2] * m[1, 0],
            m[0, 0] * m[2, 2] - m[0, 2] * m[2, 0],
            m[0, 2] * m[1, 0] - m[1, 2] * m[0, 0],
        ],
        [
            m[1, 0] * m[2, 1] - m[2, 0] * m[1, 1],
            m[0, 1] * m[2, 0] - m[0, 0] * m[2, 1],
            m[0, 0] * m[1, 1] - m[1, 0] * m[0, 1],
        ],
    ], dtype=np.float64)


def determinant(m: MatrixLike) -> float:
    """Cofactor expansion along the first row."""
    m = as_matrix(m)
    adj = adjugate(m)
    return float(m[0, 0] * adj[0, 0] + m[0, 1] * adj[1, 0] + m[0, 2] * adj[2, 0])


def is_degenerate(m: MatrixLike) -> bool:
    """True when the determinant is exactly zero (not invertible)."""
    return determinant(m) == 0.0


def invert(m: MatrixLike) -> np.ndarray:
    """Inverse by adjugate / determinant.

    Parameters
    ----------
    m : MatrixLike
        3×3 matrix

    Returns
    -------
    np.ndarray
        The inverse, or the all-zero (3, 3) matrix when det(m) == 0

    Notes
    -----
    Near-singular matrices are inverted as-is; only an exactly zero
    determinant is treated as degenerate.
    """
    m = as_matrix(m)
    adj = adjugate(m)
    det = float(m[0, 0] * adj[0, 0] + m[0, 1] * adj[1, 0] + m[0, 2] * adj[2, 0])
    if det == 0.0:
        return np.zeros((3, 3), dtype=np.float64)
    return adj / det


def apply(m: np.ndarray, x: float, y: float) -> Tuple[float, float]:
    """Map (x, y, 1) through the first two rows of m.

    Hot path: m must already be a (3, 3) array (no validation).
    """
    x2 = x * m[0, 0] + y * m[0, 1] + m[0, 2]
    y2 = x * m[1, 0] + y * m[1, 1] + m[1, 2]
    return float(x2), float(y2)
